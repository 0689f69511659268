"""Errors, JSON helpers, database access and response checks."""

from __future__ import annotations

import base64
import dataclasses
import inspect
import json
import os
import re
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable

import pymysql
import requests

from . import logger
from .consts import DB_TYPE_MYSQL, DB_TYPE_POSTGRES, RESULT_FAILURE, RESULT_ONGOING
from .db_special import get_db_special


class DtmError(Exception):
    """An error reported by the dtm server or by a transaction branch."""


class FailureError(DtmError):
    """A branch or transaction returned FAILURE."""

    def __init__(self, message=RESULT_FAILURE):
        super().__init__(message)


class OngoingError(DtmError):
    """A branch or transaction returned ONGOING."""

    def __init__(self, message=RESULT_ONGOING):
        super().__init__(message)


@dataclass
class DBConf:
    """Connection settings for a business database."""

    driver: str = ""
    host: str = ""
    port: int = 0
    user: str = ""
    password: str = ""


def as_error(value):
    """Turn an arbitrary raised value into an exception."""
    logger.error("panic wrapped to error: '%s'", value)
    if isinstance(value, BaseException):
        return value
    return DtmError(str(value))


_INTEGER = re.compile(r"[+-]?[0-9]+")


def must_atoi(s):
    """Parse a decimal integer strictly; raises ValueError otherwise."""
    if not isinstance(s, str) or not _INTEGER.fullmatch(s):
        raise ValueError(f"convert to int error: {s}")
    return int(s)


def or_string(*args):
    """Return the first non-empty string, or ''."""
    return next((s for s in args if s), "")


def _json_default(value):
    to_json = getattr(value, "to_json", None)
    if callable(to_json):
        return to_json()
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    if isinstance(value, (bytes, bytearray)):
        return base64.b64encode(value).decode("ascii")
    if isinstance(value, (set, frozenset)):
        return list(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def must_marshal(value):
    """Serialize to compact JSON bytes."""
    text = json.dumps(value, default=_json_default, ensure_ascii=False, separators=(",", ":"))
    return text.encode("utf-8")


def must_marshal_string(value):
    return must_marshal(value).decode("utf-8")


def must_unmarshal(data):
    """Parse JSON from bytes or str."""
    if isinstance(data, (bytes, bytearray)):
        data = data.decode("utf-8")
    return json.loads(data)


def get_func_name():
    """Name of the function that called this one."""
    frame = inspect.currentframe()
    try:
        caller = frame.f_back if frame is not None else None
        return caller.f_code.co_name if caller is not None else ""
    finally:
        del frame


def may_replace_localhost(host):
    """Inside docker, point localhost at the host machine."""
    if os.environ.get("IS_DOCKER"):
        return host.replace("localhost", "host.docker.internal", 1)
    return host


class _QmarkCursor:
    """Cursor that accepts '?' placeholders on a format-style driver."""

    def __init__(self, cursor):
        self._cursor = cursor

    def execute(self, sql, params=None):
        if params:
            sql = sql.replace("%", "%%").replace("?", "%s")
            return self._cursor.execute(sql, params)
        return self._cursor.execute(sql)

    def __getattr__(self, name):
        return getattr(self._cursor, name)


class _QmarkConnection:
    def __init__(self, conn):
        self._conn = conn

    def cursor(self):
        return _QmarkCursor(self._conn.cursor())

    def __getattr__(self, name):
        return getattr(self._conn, name)


Connector = Callable[[DBConf], Any]
_drivers: dict[str, Connector] = {}


def register_driver(name, connect):
    """Register a connect(conf) callable for a driver; returns the previous one."""
    previous = _drivers.get(name)
    if connect is None:
        _drivers.pop(name, None)
    else:
        _drivers[name] = connect
    return previous


def _connect_mysql(conf):
    conn = pymysql.connect(
        host=may_replace_localhost(conf.host),
        port=int(conf.port),
        user=conf.user,
        password=conf.password,
        charset="utf8mb4",
        autocommit=True,
    )
    return _QmarkConnection(conn)


register_driver(DB_TYPE_MYSQL, _connect_mysql)


def get_dsn(conf):
    """Build the data source name for a configuration."""
    host = may_replace_localhost(conf.host)
    if conf.driver == DB_TYPE_MYSQL:
        return (
            f"{conf.user}:{conf.password}@tcp({host}:{conf.port})/"
            "?charset=utf8mb4&parseTime=true&loc=Local"
        )
    if conf.driver == DB_TYPE_POSTGRES:
        return (
            f"host={host} user={conf.user} password={conf.password} "
            f"dbname='' port={conf.port} sslmode=disable"
        )
    raise ValueError(f"unknown driver: {conf.driver}")


def standalone_db(conf):
    """Open a new connection for the configuration."""
    dsn = get_dsn(conf)
    shown = dsn.replace(conf.password, "****", 1) if conf.password else dsn
    logger.info("opening standalone %s: %s", conf.driver, shown)
    connect = _drivers.get(conf.driver)
    if connect is None:
        raise ValueError(f'sql: unknown driver "{conf.driver}" (forgotten import?)')
    return connect(conf)


_pool: dict[str, Any] = {}
_pool_lock = threading.Lock()


def pooled_db(conf):
    """Return a shared connection, opened once per data source name."""
    dsn = get_dsn(conf)
    with _pool_lock:
        db = _pool.get(dsn)
        if db is None:
            db = standalone_db(conf)
            _pool[dsn] = db
        return db


def db_exec(db, sql, *args):
    """Execute one statement and return the number of affected rows."""
    if not sql:
        return 0
    began = time.monotonic()
    sql = get_db_special().placeholder_sql(sql)
    cursor = db.cursor()
    try:
        try:
            if args:
                cursor.execute(sql, args)
            else:
                cursor.execute(sql)
        except Exception as exc:
            used = int((time.monotonic() - began) * 1000)
            logger.error("used: %d ms exec error: %s for %s %s", used, exc, sql, list(args))
            raise
        affected = max(cursor.rowcount, 0)
    finally:
        cursor.close()
    used = int((time.monotonic() - began) * 1000)
    logger.debug("used: %d ms affected: %d for %s %s", used, affected, sql, list(args))
    return affected


def check_response(resp, err=None):
    """Raise the error that an HTTP response (or err) stands for."""
    if err is None and resp is not None:
        text = resp.text
        if resp.status_code >= 400:
            raise DtmError(text)
        if RESULT_FAILURE in text:
            raise FailureError()
        if RESULT_ONGOING in text:
            raise OngoingError()
    if err is not None:
        raise err


def check_result(res, err=None):
    """Raise the error that a branch result (or err) stands for."""
    if err is not None:
        raise err
    if isinstance(res, requests.Response):
        check_response(res)
        return
    if res is not None:
        text = must_marshal_string(res)
        if RESULT_FAILURE in text:
            raise FailureError()
        if RESULT_ONGOING in text:
            raise OngoingError()