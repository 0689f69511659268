"""XA transactions over HTTP."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional
from urllib.parse import urlsplit

from .consts import BRANCH_ACTION, MAP_SUCCESS
from .trans_base import TransBase
from .xa_base import XaClientBase


def _url_path(url):
    """Path of url; raises ValueError when the scheme part is malformed."""
    for pos, ch in enumerate(url):
        if ch.isascii() and ch.isalpha():
            continue
        if ch.isascii() and (ch.isdigit() or ch in "+-.") and pos > 0:
            continue
        if ch == ":" and pos == 0:
            raise ValueError(f'parse "{url}": missing protocol scheme')
        break
    return urlsplit(url).path


@dataclass(kw_only=True)
class Xa(TransBase):
    """An XA global transaction."""

    trans_type: str = "xa"

    def call_branch(self, body, url):
        """Call an XA branch; returns the branch response."""
        branch_id = self.new_sub_branch_id()
        return self.request_branch(body, branch_id, BRANCH_ACTION, url)


def xa_from_query(qs):
    """Build an Xa from request query values; raises ValueError if incomplete."""
    xa = Xa.from_query(qs)
    if not xa.gid or not xa.branch_id:
        raise ValueError(f"bad xa info: gid: {xa.gid} branchid: {xa.branch_id}")
    return xa


@dataclass
class XaClient(XaClientBase):
    """XA client; register(path, client) is called to route the notify URL."""

    register: Optional[Callable[[str, "XaClient"], None]] = None

    def __post_init__(self):
        path = _url_path(self.notify_url)
        if self.register is not None:
            self.register(path, self)

    def handle_callback(self, gid, branch_id, action):
        """Handle a commit/rollback callback; returns the success body."""
        super().handle_callback(gid, branch_id, action)
        return MAP_SUCCESS

    def xa_local_transaction(self, qs, xa_func):
        """Run xa_func(db, xa) as an XA branch and register it with dtm."""
        xa = xa_from_query(qs)

        def run(db):
            xa_func(db, xa)
            xa.register_branch(
                {"url": self.notify_url, "branch_id": xa.branch_id}, "registerBranch"
            )

        self.handle_local_trans(xa, run)

    def xa_global_transaction(self, gid, xa_func, custom=None):
        """Prepare an XA global transaction, run xa_func(xa), then submit or abort."""
        xa = Xa(gid=gid, dtm=self.server)
        if custom is not None:
            custom(xa)
        self.handle_global_trans(
            xa,
            lambda action: xa.call_dtm(xa, action),
            lambda: xa_func(xa),
        )