import pytest

from dtmclient.barrier import BranchBarrier, barrier_from, barrier_from_query
from dtmclient.consts import DB_TYPE_MYSQL, DB_TYPE_POSTGRES
from dtmclient.db_special import set_current_db_type


class FakeCursor:
    def __init__(self, db):
        self.db = db
        self.rowcount = -1

    def execute(self, sql, params=()):
        params = tuple(params)
        self.db.statements.append((sql, params))
        if sql.startswith("insert"):
            key = params[:5]
            if key in self.db.rows or key in self.db.pending:
                self.rowcount = 0
            else:
                self.db.pending.append(key)
                self.rowcount = 1
        else:
            self.rowcount = 1

    def close(self):
        pass


class FakeDB:
    def __init__(self):
        self.rows = set()
        self.pending = []
        self.statements = []
        self.commits = 0
        self.rollbacks = 0
        self.begins = 0

    def cursor(self):
        return FakeCursor(self)

    def begin(self):
        self.begins += 1

    def commit(self):
        self.commits += 1
        self.rows.update(self.pending)
        self.pending.clear()

    def rollback(self):
        self.rollbacks += 1
        self.pending.clear()

    def rows_for(self, gid):
        return [row for row in self.rows if row[1] == gid]


@pytest.fixture(autouse=True)
def _mysql():
    set_current_db_type(DB_TYPE_MYSQL)
    yield
    set_current_db_type(DB_TYPE_MYSQL)


def test_from_query_missing_fields():
    with pytest.raises(ValueError):
        barrier_from_query({"a": "b"})
    with pytest.raises(ValueError):
        barrier_from_query({})


def test_from_query_reads_fields():
    barrier = barrier_from_query(
        {"trans_type": ["saga"], "gid": ["g1"], "branch_id": ["01"], "op": ["action"]}
    )
    assert barrier == BranchBarrier("saga", "g1", "01", "action")


def test_barrier_from_empty_op():
    with pytest.raises(ValueError):
        barrier_from("saga", "g1", "01", "")


def test_str():
    assert str(BranchBarrier("saga", "g1", "01", "action")) == "transInfo: saga g1 01 action"


def test_action_runs_busi_once_and_commits():
    db = FakeDB()
    barrier = barrier_from("saga", "gid2", "branch_id2", "action")
    called = []
    barrier.call(db, called.append)
    assert called == [db]
    assert db.statements == [
        (
            "insert ignore into dtm_barrier.barrier(trans_type, gid, branch_id, op, barrier_id, reason) values(?,?,?,?,?,?)",
            ("saga", "gid2", "branch_id2", "action", "01", "action"),
        )
    ]
    assert db.commits == 1
    assert barrier.barrier_id == 1


def test_error_rolls_back_then_retry_succeeds():
    db = FakeDB()
    db.rows.add(("saga", "gid1", "branch_id1", "action", ""))
    barrier = BranchBarrier(trans_type="saga", gid="gid2", branch_id="branch_id2", op="action")

    def fail(tx):
        raise RuntimeError("gid2 error")

    with pytest.raises(RuntimeError, match="gid2 error"):
        barrier.call(db, fail)
    assert db.rollbacks == 1
    assert len(db.rows_for("gid1")) == 1
    assert db.rows_for("gid2") == []

    barrier.barrier_id = 0
    barrier.call_with_db(db, lambda tx: None)
    assert db.begins == 1
    assert len(db.rows_for("gid2")) == 1


def test_duplicate_request_skips_busi():
    db = FakeDB()
    called = []
    barrier_from("saga", "g1", "01", "action").call(db, called.append)
    barrier_from("saga", "g1", "01", "action").call(db, called.append)
    assert len(called) == 1
    assert db.commits == 2


def test_empty_compensation_and_hanging_action():
    db = FakeDB()
    called = []
    barrier_from("saga", "g1", "01", "compensate").call(db, called.append)
    assert called == []
    ops = sorted(params[3] for _, params in db.statements)
    assert ops == ["action", "compensate"]
    barrier_from("saga", "g1", "01", "action").call(db, called.append)
    assert called == []


def test_cancel_after_try_runs_busi():
    db = FakeDB()
    called = []
    barrier_from("tcc", "g1", "01", "try").call(db, lambda tx: called.append("try"))
    barrier_from("tcc", "g1", "01", "cancel").call(db, lambda tx: called.append("cancel"))
    assert called == ["try", "cancel"]


def test_barrier_ids_increase_per_call():
    db = FakeDB()
    barrier = barrier_from("saga", "g1", "01", "action")
    barrier.call(db, lambda tx: None)
    barrier.call(db, lambda tx: None)
    assert [params[4] for _, params in db.statements] == ["01", "02"]


def test_postgres_sql():
    set_current_db_type(DB_TYPE_POSTGRES)
    db = FakeDB()
    barrier_from("saga", "g1", "01", "action").call(db, lambda tx: None)
    (sql, _), = db.statements
    assert sql == (
        "insert into dtm_barrier.barrier(trans_type, gid, branch_id, op, barrier_id, reason) "
        "values($1,$2,$3,$4,$5,$6) on conflict ON CONSTRAINT uniq_barrier do nothing"
    )