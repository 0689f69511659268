"""Sub-transaction barrier guarding against duplicate, empty and hanging calls."""

from __future__ import annotations

from dataclasses import dataclass

from . import logger
from .consts import BRANCH_ACTION, BRANCH_CANCEL, BRANCH_COMPENSATE, BRANCH_TRY
from .db_special import get_db_special
from .rest import settings
from .trans_base import _query_get
from .utils import db_exec

_ORIGIN_OPS = {
    BRANCH_CANCEL: BRANCH_TRY,
    BRANCH_COMPENSATE: BRANCH_ACTION,
}


def _insert_barrier(tx, trans_type, gid, branch_id, op, barrier_id, reason):
    if not op:
        return 0
    sql = get_db_special().insert_ignore_template(
        settings.barrier_table_name
        + "(trans_type, gid, branch_id, op, barrier_id, reason) values(?,?,?,?,?,?)",
        "uniq_barrier",
    )
    return db_exec(tx, sql, trans_type, gid, branch_id, op, barrier_id, reason)


@dataclass
class BranchBarrier:
    """Transaction info of one branch call, used to run it behind a barrier."""

    trans_type: str
    gid: str
    branch_id: str
    op: str
    barrier_id: int = 0

    def __str__(self):
        return f"transInfo: {self.trans_type} {self.gid} {self.branch_id} {self.op}"

    def call(self, tx, busi_call):
        """Run busi_call(tx) unless the call is empty compensation, a repeat or hanging.

        The transaction is committed on success and rolled back on any error.
        """
        self.barrier_id += 1
        bid = f"{self.barrier_id:02d}"
        try:
            origin_type = _ORIGIN_OPS.get(self.op, "")
            try:
                origin_affected = _insert_barrier(
                    tx, self.trans_type, self.gid, self.branch_id, origin_type, bid, self.op
                )
            except Exception:
                origin_affected = 0
            current_affected = _insert_barrier(
                tx, self.trans_type, self.gid, self.branch_id, self.op, bid, self.op
            )
            logger.debug(
                "originAffected: %d currentAffected: %d", origin_affected, current_affected
            )
            empty_compensation = self.op in _ORIGIN_OPS and origin_affected > 0
            if not empty_compensation and current_affected > 0:
                busi_call(tx)
        except BaseException:
            tx.rollback()
            raise
        tx.commit()

    def call_with_db(self, db, busi_call):
        """Begin a transaction on db and run call with it."""
        begin = getattr(db, "begin", None)
        if callable(begin):
            begin()
        self.call(db, busi_call)


def barrier_from(trans_type, gid, branch_id, op):
    """Build a barrier; raises ValueError if any field is empty."""
    barrier = BranchBarrier(trans_type=trans_type, gid=gid, branch_id=branch_id, op=op)
    if not (trans_type and gid and branch_id and op):
        raise ValueError(f"invalid trans info: {barrier}")
    return barrier


def barrier_from_query(qs):
    """Build a barrier from request query values."""
    return barrier_from(
        _query_get(qs, "trans_type"),
        _query_get(qs, "gid"),
        _query_get(qs, "branch_id"),
        _query_get(qs, "op"),
    )