"""TCC (try-confirm-cancel) transactions."""

from __future__ import annotations

from dataclasses import dataclass

from .consts import BRANCH_CANCEL, BRANCH_CONFIRM, BRANCH_TRY
from .trans_base import TransBase
from .utils import must_marshal_string


@dataclass(kw_only=True)
class Tcc(TransBase):
    """A TCC global transaction."""

    trans_type: str = "tcc"

    def call_branch(self, body, try_url, confirm_url, cancel_url):
        """Register a branch and call its try URL; returns the try response."""
        branch_id = self.new_sub_branch_id()
        self.register_branch(
            {
                "data": must_marshal_string(body),
                "branch_id": branch_id,
                BRANCH_CONFIRM: confirm_url,
                BRANCH_CANCEL: cancel_url,
            },
            "registerBranch",
        )
        return self.request_branch(body, branch_id, BRANCH_TRY, try_url)


def tcc_global_transaction(dtm, gid, tcc_func, custom=None):
    """Prepare a TCC transaction, run tcc_func(tcc), then submit or abort it.

    custom(tcc), when given, may adjust the transaction before it is prepared.
    An error raised by tcc_func aborts the transaction and is re-raised.
    """
    tcc = Tcc(gid=gid, dtm=dtm)
    if custom is not None:
        custom(tcc)
    tcc.call_dtm(tcc, "prepare")
    try:
        tcc_func(tcc)
    except BaseException:
        try:
            tcc.call_dtm(tcc, "abort")
        except Exception:
            pass
        raise
    tcc.call_dtm(tcc, "submit")


def tcc_from_query(qs):
    """Build a Tcc from request query values; raises ValueError if incomplete."""
    tcc = Tcc.from_query(qs)
    if not tcc.dtm or not tcc.gid:
        raise ValueError(
            f"bad tcc info. dtm: {tcc.dtm}, gid: {tcc.gid} parentID: {tcc.branch_id}"
        )
    return tcc