"""Saga transactions."""

from __future__ import annotations

from dataclasses import dataclass, field

from .trans_base import TransBase
from .utils import must_marshal_string


@dataclass(kw_only=True)
class Saga(TransBase):
    """A saga: a list of actions, each with a compensating action."""

    trans_type: str = "saga"
    orders: dict[int, list[int]] = field(default_factory=dict)
    concurrent: bool = False

    def add(self, action, compensate, post_data):
        """Add a step with its action and compensate URLs."""
        self.steps.append({"action": action, "compensate": compensate})
        self.payloads.append(must_marshal_string(post_data))
        return self

    def add_branch_order(self, branch, pre_branches):
        """Run branch only after all of pre_branches (each smaller than branch)."""
        self.orders[branch] = list(pre_branches)
        return self

    def enable_concurrent(self):
        """Allow the steps to run concurrently."""
        self.concurrent = True
        return self

    def submit(self):
        """Submit the saga to the dtm server."""
        if self.concurrent:
            self.custom_data = must_marshal_string(
                {"orders": self.orders, "concurrent": self.concurrent}
            )
        self.call_dtm(self, "submit")