"""Reliable message transactions."""

from __future__ import annotations

from dataclasses import dataclass

from .trans_base import TransBase
from .utils import must_marshal_string, or_string


@dataclass(kw_only=True)
class Msg(TransBase):
    """A reliable message whose steps run once the message is submitted."""

    trans_type: str = "msg"

    def add(self, action, post_data):
        """Add a step calling action with post_data as its JSON body."""
        self.steps.append({"action": action})
        self.payloads.append(must_marshal_string(post_data))
        return self

    def prepare(self, query_prepared=""):
        """Prepare the message; it is submitted later or checked via query_prepared."""
        self.query_prepared = or_string(query_prepared, self.query_prepared)
        self.call_dtm(self, "prepare")

    def submit(self):
        """Submit the message to the dtm server."""
        self.call_dtm(self, "submit")