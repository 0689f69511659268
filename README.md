# dtmclient

`dtmclient` is a client library for a distributed transaction manager that
you reach over HTTP. You describe a global transaction, send it to the server,
and the server drives the branches to a consistent end.

Each transaction pattern has its own module:

- `dtmclient.saga`: `Saga` pairs each forward action with a compensation. The
  steps run one after another, or concurrently with ordering constraints.
- `dtmclient.tcc`: `tcc_global_transaction` and `Tcc` handle try / confirm /
  cancel branches that you register from your own code.
- `dtmclient.xa`: `XaClient` and `Xa` handle two-phase commit through MySQL's
  XA statements.
- `dtmclient.msg`: `Msg` is a reliable message. You prepare it, then submit it,
  and it carries a query-back URL.
- `dtmclient.barrier`: `BranchBarrier` is a sub-transaction barrier. It drops
  duplicate requests, empty compensations and hanging actions in your branch
  handlers.

## Installation

```
pip install dtmclient
```

To run the tests:

```
pip install "dtmclient[test]"
pytest
```

## SAGA

Transactions are dataclasses, so pass their fields as keyword arguments.

```python
from dtmclient.saga import Saga
from dtmclient.trans_base import gen_gid

DTM = "http://localhost:36789/api/dtmsvr"
BUSI = "http://localhost:8081/api/busi"

req = {"amount": 30}
saga = (
    Saga(dtm=DTM, gid=gen_gid(DTM))
    .add(BUSI + "/TransOut", BUSI + "/TransOutCompensate", req)
    .add(BUSI + "/TransIn", BUSI + "/TransInCompensate", req)
)
saga.wait_result = True
saga.submit()
```

`gen_gid(server)` asks the server for a new global transaction id. Use
`saga.enable_concurrent()` to let the steps run concurrently. Use
`saga.add_branch_order(1, [0])` to make step 1 wait for step 0. The orders are
sent only when concurrency is enabled.

## TCC

```python
from dtmclient.tcc import tcc_global_transaction

def body(tcc):
    tcc.call_branch(req, BUSI + "/TransOutTry", BUSI + "/TransOutConfirm", BUSI + "/TransOutCancel")
    tcc.call_branch(req, BUSI + "/TransInTry", BUSI + "/TransInConfirm", BUSI + "/TransInCancel")

tcc_global_transaction(DTM, gen_gid(DTM), body)
```

The transaction is prepared first. It is submitted if `body` returns normally.
If `body` raises, the transaction is aborted and the exception propagates.

`custom` is an optional callable. It receives the `Tcc` before the prepare
step, so it can set options such as `wait_result` or `branch_headers`.

`call_branch` registers the confirm and cancel URLs with the server. It then
POSTs to the try URL and returns the `requests.Response`.

Inside a branch handler, `tcc_from_query(query)` rebuilds the `Tcc` so you can
nest branches.

## Reliable messages

```python
from dtmclient.msg import Msg

msg = Msg(dtm=DTM, gid=gen_gid(DTM)).add(BUSI + "/TransOut", req).add(BUSI + "/TransIn", req)
msg.prepare(BUSI + "/QueryPrepared")
# ... local work ...
msg.submit()
```

## XA

```python
from dtmclient.utils import DBConf
from dtmclient.xa import XaClient

password = "password"
conf = DBConf(driver="mysql", host="localhost", port=3306, user="user", password=password)

def register(path, client):
    # route POST <path> to client.handle_callback(gid, branch_id, op)
    ...

xc = XaClient(server=DTM, conf=conf, notify_url=BUSI + "/xa", register=register)

# global side
xc.xa_global_transaction(gid, lambda xa: xa.call_branch(req, BUSI + "/TransOutXa"))

# branch side, inside the handler for /TransOutXa
xc.xa_local_transaction(query, lambda db, xa: adjust_balance(db, uid, amount))
```

`register(path, client)` is called once, when the client is created. It gets
the path of the notify URL, and it raises `ValueError` if that URL is
malformed.

`handle_callback` runs the XA commit or rollback and returns
`{"dtm_result": "SUCCESS"}`. A repeated commit or rollback is ignored.

## Barrier

In a branch handler, build a barrier from the query values and run your
business code through it:

```python
from dtmclient.barrier import barrier_from_query

barrier = barrier_from_query(request.args)
barrier.call_with_db(db, lambda tx: adjust_balance(tx, uid, amount))
```

Barrier rows are inserted into `settings.barrier_table_name`. The business
function runs only when the request is neither an empty compensation, nor a
repeat, nor a hanging call. The transaction is committed on success and rolled
back if anything raises.

Query mappings may hold either plain strings or lists of strings.

## Databases

`dtmclient.db_special.set_current_db_type("mysql")` selects the SQL dialect.
The other choice is `"postgres"`. The dialect controls placeholders, "insert
ignore" statements and XA statements.

`dtmclient.utils.standalone_db(conf)` opens connections, and
`dtmclient.utils.pooled_db(conf)` opens them once per data source name and
reuses them. Only a MySQL connector (PyMySQL) is registered. For PostgreSQL,
or any other driver, register a `connect(conf)` callable with
`dtmclient.utils.register_driver(name, connect)`.

`db_exec(db, sql, *args)` runs one statement with `?` placeholders and returns
the number of affected rows.

## HTTP client, settings and logging

All requests go through `dtmclient.rest.rest_client`. Before each request it
calls middleware added with `on_before_request(middleware)`, as
`middleware(client, request)`, where `request` is an `OutgoingRequest` you may
modify. After each response it calls middleware added with
`on_after_response(middleware)`, as `middleware(client, response)`.

When the `IS_DOCKER` environment variable is set, `localhost` in request URLs
and database hosts becomes `host.docker.internal`.

`dtmclient.rest.settings` holds three values:

- `xa_sql_timeout_ms`
- `barrier_table_name`
- `passthrough_headers`, which new transactions copy into their options.

`dtmclient.logger.init_log(level)` sets the level: `debug`, `info`, `warn` or
`error`. Logs are written to stderr as JSON lines. They use a coloured console
format instead when `DTM_DEBUG` is set.

## Errors

Errors from the server or from branches are raised as `dtmclient.utils.DtmError`:

- `FailureError` means a branch reported `FAILURE`.
- `OngoingError` means a branch reported `ONGOING`.

When request data is missing or invalid, for example in `barrier_from_query`,
`tcc_from_query`, `xa_from_query`, `set_current_db_type` or `get_dsn`, the
function raises `ValueError`.

## What this package does not do

This is a client library only:

- It does not include the transaction manager server, and it has no
  storage of its own.
- It has no gRPC transport.
- It provides no command-line program.

You need a running server at the address you pass as `dtm`.