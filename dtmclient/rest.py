"""Shared settings and the HTTP client used to talk to dtm and branches."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable

import requests

from . import logger
from .utils import may_replace_localhost, must_marshal_string, must_marshal


@dataclass
class Settings:
    """Client-wide tunables."""

    xa_sql_timeout_ms: int = 15000
    barrier_table_name: str = "dtm_barrier.barrier"
    passthrough_headers: list[str] = field(default_factory=list)


settings = Settings()


@dataclass
class OutgoingRequest:
    """A request about to be sent; before-request middleware may change it."""

    method: str
    url: str
    json: Any = None
    params: dict[str, str] = field(default_factory=dict)
    headers: dict[str, str] = field(default_factory=dict)


BeforeRequest = Callable[["RestClient", OutgoingRequest], None]
AfterResponse = Callable[["RestClient", requests.Response], None]


def _prepare_and_log(client, request):
    request.url = may_replace_localhost(request.url)
    logger.debug(
        "requesting: %s %s %s", request.method, request.url, must_marshal_string(request.json)
    )


def _log_response(client, response):
    sent = response.request
    logger.debug("requested: %s %s %s", sent.method, sent.url, response.text)


class RestClient:
    """HTTP client with before-request and after-response middleware."""

    def __init__(self, session=None, timeout=None):
        self.session = session if session is not None else requests.Session()
        self.timeout = timeout
        self._before: list[BeforeRequest] = [_prepare_and_log]
        self._after: list[AfterResponse] = [_log_response]

    def on_before_request(self, middleware):
        """Add middleware(client, request) run before each request."""
        self._before.append(middleware)

    def on_after_response(self, middleware):
        """Add middleware(client, response) run after each response."""
        self._after.append(middleware)

    def request(self, method, url, *, json=None, params=None, headers=None):
        outgoing = OutgoingRequest(
            method=method.upper(),
            url=url,
            json=json,
            params=dict(params or {}),
            headers=dict(headers or {}),
        )
        for middleware in self._before:
            middleware(self, outgoing)
        data = None
        if outgoing.json is not None:
            data = must_marshal(outgoing.json)
            outgoing.headers.setdefault("Content-Type", "application/json")
        response = self.session.request(
            outgoing.method,
            outgoing.url,
            params=outgoing.params or None,
            data=data,
            headers=outgoing.headers or None,
            timeout=self.timeout,
        )
        for middleware in self._after:
            middleware(self, response)
        return response

    def get(self, url, *, params=None, headers=None):
        return self.request("GET", url, params=params, headers=headers)

    def post(self, url, *, json=None, params=None, headers=None):
        return self.request("POST", url, json=json, params=params, headers=headers)


rest_client = RestClient()