import json

import pytest
import responses

from dtmclient.consts import MAP_FAILURE, MAP_SUCCESS
from dtmclient.saga import Saga
from dtmclient.utils import DtmError

DTM = "http://dtm.example.com/api"
BUSI = "http://busi.example.com/api"


@pytest.fixture
def rsps(monkeypatch):
    monkeypatch.delenv("IS_DOCKER", raising=False)
    with responses.RequestsMock(assert_all_requests_are_fired=False) as mock:
        yield mock


def _gen_saga(gid):
    req = {"amount": 30}
    saga = (
        Saga(gid=gid, dtm=DTM)
        .add(BUSI + "/TransOut", BUSI + "/TransOutRevert", req)
        .add(BUSI + "/TransIn", BUSI + "/TransInRevert", req)
    )
    return saga, req


def test_add_records_action_and_compensate():
    saga, req = _gen_saga("g-add")
    assert saga.trans_type == "saga"
    assert saga.steps == [
        {"action": BUSI + "/TransOut", "compensate": BUSI + "/TransOutRevert"},
        {"action": BUSI + "/TransIn", "compensate": BUSI + "/TransInRevert"},
    ]
    assert [json.loads(p) for p in saga.payloads] == [req, req]


def test_chaining_returns_same_saga():
    saga = Saga(gid="g", dtm=DTM)
    assert saga.enable_concurrent() is saga
    assert saga.add_branch_order(1, [0]) is saga
    assert saga.concurrent is True
    assert saga.orders == {1: [0]}


def test_submit_sequential_has_no_custom_data(rsps):
    rsps.add(responses.POST, DTM + "/submit", json=MAP_SUCCESS)
    saga, _ = _gen_saga("g-seq")
    saga.submit()
    body = json.loads(rsps.calls[0].request.body)
    assert "custom_data" not in body
    assert body["gid"] == "g-seq"
    assert body["steps"] == saga.steps


def test_submit_concurrent_sends_orders(rsps):
    rsps.add(responses.POST, DTM + "/submit", json=MAP_SUCCESS)
    saga, _ = _gen_saga("g-con")
    saga.enable_concurrent().add_branch_order(1, [0])
    saga.submit()
    body = json.loads(rsps.calls[0].request.body)
    assert body["custom_data"] == saga.custom_data
    custom = json.loads(body["custom_data"])
    assert custom["concurrent"] is True
    assert custom["orders"] == {"1": [0]}


def test_submit_wait_result_included(rsps):
    rsps.add(responses.POST, DTM + "/submit", json=MAP_SUCCESS)
    saga, _ = _gen_saga("g-wait")
    saga.wait_result = True
    saga.submit()
    body = json.loads(rsps.calls[0].request.body)
    assert body["wait_result"] is saga.wait_result
    assert body["wait_result"] is True
    assert body["payloads"] == saga.payloads


def test_submit_failure_raises(rsps):
    rsps.add(responses.POST, DTM + "/submit", json=MAP_FAILURE)
    saga, _ = _gen_saga("g-fail")
    with pytest.raises(DtmError):
        saga.submit()