"""XA handling shared by the HTTP and gRPC clients."""

from __future__ import annotations

from dataclasses import dataclass, field

from .db_special import get_db_special
from .utils import DBConf, db_exec, standalone_db

_IGNORED_CALLBACK_ERRORS = ("XAER_NOTA", "does not exist")


@dataclass
class XaClientBase:
    """Server address, database settings and notify URL of an XA client."""

    server: str = ""
    conf: DBConf = field(default_factory=DBConf)
    notify_url: str = ""

    def handle_callback(self, gid, branch_id, action):
        """Run an XA commit or rollback for the branch; repeats are ignored."""
        db = standalone_db(self.conf)
        try:
            db_exec(db, get_db_special().xa_sql(action, f"{gid}-{branch_id}"))
        except Exception as exc:
            text = str(exc)
            if not any(marker in text for marker in _IGNORED_CALLBACK_ERRORS):
                raise
        finally:
            db.close()

    def handle_local_trans(self, xa, callback):
        """Run callback(db) inside an XA branch and prepare it on success."""
        xa_branch = f"{xa.gid}-{xa.branch_id}"
        db = standalone_db(self.conf)
        try:
            try:
                db_exec(db, get_db_special().xa_sql("start", xa_branch))
                callback(db)
            except BaseException:
                try:
                    db_exec(db, get_db_special().xa_sql("end", xa_branch))
                except Exception:
                    pass
                raise
            db_exec(db, get_db_special().xa_sql("end", xa_branch))
            db_exec(db, get_db_special().xa_sql("prepare", xa_branch))
        finally:
            db.close()

    def handle_global_trans(self, xa, call_dtm, call_busi):
        """Prepare, run the business, then submit or abort the global transaction."""
        call_dtm("prepare")
        try:
            call_busi()
        except BaseException:
            try:
                call_dtm("abort")
            except Exception:
                pass
            raise
        call_dtm("submit")