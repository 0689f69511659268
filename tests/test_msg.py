import json

import pytest
import requests
import responses

from dtmclient.consts import MAP_FAILURE, MAP_SUCCESS
from dtmclient.msg import Msg
from dtmclient.utils import DtmError

DTM = "http://dtm.example.com/api"
BUSI = "http://busi.example.com/api"


@pytest.fixture
def rsps(monkeypatch):
    monkeypatch.delenv("IS_DOCKER", raising=False)
    with responses.RequestsMock(assert_all_requests_are_fired=False) as mock:
        yield mock


def _gen_msg(gid):
    req = {"amount": 30, "trans_in_result": "", "trans_out_Result": ""}
    msg = Msg(gid=gid, dtm=DTM).add(BUSI + "/TransOut", req).add(BUSI + "/TransIn", req)
    msg.query_prepared = BUSI + "/CanSubmit"
    return msg, req


def test_add_records_steps_and_payloads():
    msg, req = _gen_msg("gid-add")
    assert msg.trans_type == "msg"
    assert msg.steps == [{"action": BUSI + "/TransOut"}, {"action": BUSI + "/TransIn"}]
    assert [json.loads(p) for p in msg.payloads] == [req, req]


def test_add_returns_same_message():
    msg = Msg(gid="g", dtm=DTM)
    assert msg.add(BUSI + "/a", {}) is msg


def test_submit_posts_body(rsps):
    rsps.add(responses.POST, DTM + "/submit", json=MAP_SUCCESS)
    msg, req = _gen_msg("gid-submit")
    msg.submit()
    assert len(rsps.calls) == 1
    body = json.loads(rsps.calls[0].request.body)
    assert body["gid"] == "gid-submit"
    assert body["trans_type"] == "msg"
    assert body["steps"] == msg.steps
    assert body["query_prepared"] == BUSI + "/CanSubmit"
    assert [json.loads(p) for p in body["payloads"]] == [req, req]


def test_prepare_keeps_existing_query_prepared_when_empty(rsps):
    rsps.add(responses.POST, DTM + "/prepare", json=MAP_SUCCESS)
    msg, _ = _gen_msg("gid-prepare")
    msg.prepare("")
    assert msg.query_prepared == BUSI + "/CanSubmit"
    assert rsps.calls[0].request.url == DTM + "/prepare"


def test_prepare_overrides_query_prepared(rsps):
    rsps.add(responses.POST, DTM + "/prepare", json=MAP_SUCCESS)
    msg, _ = _gen_msg("gid-override")
    msg.prepare(BUSI + "/Other")
    body = json.loads(rsps.calls[0].request.body)
    assert body["query_prepared"] == BUSI + "/Other"
    assert msg.query_prepared == BUSI + "/Other"


def test_prepare_failure_raises(rsps):
    rsps.add(responses.POST, DTM + "/prepare", json=MAP_FAILURE)
    msg, _ = _gen_msg("gid-fail")
    with pytest.raises(DtmError):
        msg.prepare("")


def test_submit_without_server_raises(rsps):
    msg, _ = _gen_msg("gid-noserver")
    with pytest.raises(requests.exceptions.ConnectionError):
        msg.submit()