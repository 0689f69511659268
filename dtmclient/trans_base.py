"""Common state and server calls shared by every transaction type."""

from __future__ import annotations

from dataclasses import dataclass, field

import requests

from .consts import RESULT_SUCCESS
from .rest import rest_client, settings
from .utils import DtmError, check_response, must_unmarshal


def _query_get(qs, key):
    """First value for key in a query mapping (str or list values), or ''."""
    value = qs.get(key, "")
    if isinstance(value, (list, tuple)):
        return value[0] if value else ""
    return value or ""


@dataclass
class BranchIDGen:
    """Generates sub branch ids below a parent branch id."""

    branch_id: str = ""
    sub_branch_id: int = 0

    def new_sub_branch_id(self):
        """Advance and return the next sub branch id."""
        if self.sub_branch_id >= 99:
            raise ValueError("branch id is larger than 99")
        if len(self.branch_id) >= 20:
            raise ValueError("total branch id is longer than 20")
        self.sub_branch_id += 1
        return self.current_sub_branch_id()

    def current_sub_branch_id(self):
        return f"{self.branch_id}{self.sub_branch_id:02d}"


def _default_passthrough_headers():
    return list(settings.passthrough_headers)


@dataclass
class TransOptions:
    """Options a transaction sends to the dtm server."""

    wait_result: bool = False
    timeout_to_fail: int = 0
    retry_interval: int = 0
    passthrough_headers: list[str] = field(default_factory=_default_passthrough_headers)
    branch_headers: dict[str, str] = field(default_factory=dict)


@dataclass(kw_only=True)
class TransBase(TransOptions):
    """Base state for all transaction types."""

    gid: str = ""
    trans_type: str = ""
    dtm: str = ""
    custom_data: str = ""
    steps: list[dict[str, str]] = field(default_factory=list)
    payloads: list[str] = field(default_factory=list)
    bin_payloads: list[bytes] = field(default_factory=list)
    op: str = ""
    query_prepared: str = ""
    branch_id_gen: BranchIDGen = field(default_factory=BranchIDGen)

    @property
    def branch_id(self):
        return self.branch_id_gen.branch_id

    @classmethod
    def from_query(cls, qs):
        """Build from request query values: gid, trans_type, dtm, branch_id."""
        return cls(
            gid=_query_get(qs, "gid"),
            trans_type=_query_get(qs, "trans_type"),
            dtm=_query_get(qs, "dtm"),
            branch_id_gen=BranchIDGen(_query_get(qs, "branch_id")),
        )

    def to_json(self):
        """The body sent to the dtm server; empty optional fields are left out."""
        data = {"gid": self.gid, "trans_type": self.trans_type}
        optional = (
            ("custom_data", self.custom_data),
            ("wait_result", self.wait_result),
            ("timeout_to_fail", self.timeout_to_fail),
            ("retry_interval", self.retry_interval),
            ("passthrough_headers", self.passthrough_headers),
            ("branch_headers", self.branch_headers),
            ("steps", self.steps),
            ("payloads", self.payloads),
            ("query_prepared", self.query_prepared),
        )
        data.update((key, value) for key, value in optional if value)
        return data

    def new_sub_branch_id(self):
        return self.branch_id_gen.new_sub_branch_id()

    def call_dtm(self, body, operation):
        """POST body to the dtm server; raises DtmError unless it reports SUCCESS."""
        resp = rest_client.post(f"{self.dtm}/{operation}", json=body)
        if RESULT_SUCCESS not in resp.text:
            raise DtmError(resp.text)

    def register_branch(self, added, operation):
        """Register a branch with the dtm server."""
        body = {"gid": self.gid, "trans_type": self.trans_type}
        body.update(added)
        self.call_dtm(body, operation)

    def request_branch(self, body, branch_id, op, url):
        """Call a branch with the transaction info in the query; returns the response."""
        resp = rest_client.post(
            url,
            json=body,
            params={
                "dtm": self.dtm,
                "gid": self.gid,
                "branch_id": branch_id,
                "trans_type": self.trans_type,
                "op": op,
            },
            headers=self.branch_headers,
        )
        check_response(resp)
        return resp


def gen_gid(server):
    """Ask the dtm server for a new global transaction id."""
    try:
        resp = rest_client.get(server + "/newGid")
        res = must_unmarshal(resp.text) if resp.ok and resp.text else {}
    except (requests.RequestException, ValueError) as exc:
        raise DtmError(f"newGid error: {exc}, resp: ") from exc
    gid = res.get("gid", "") if isinstance(res, dict) else ""
    if not gid:
        raise DtmError(f"newGid error: None, resp: {resp.text}")
    return gid