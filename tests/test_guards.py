import logging

import httpx
import pytest

from wasteflow.core.errors import ApiError, AuthMissing, SyncWarning
from wasteflow.core.guards import ActiveJobGuard, find_active_conflict
from wasteflow.core.session import SessionContext
from wasteflow.services.api_client import ApiClient

from conftest import make_job


class FakeApi:
    def __init__(self, jobs=None, exc=None):
        self.jobs = jobs or []
        self.exc = exc
        self.calls = []

    def get_payments_by_driver_id(self, driver_id, token):
        self.calls.append((driver_id, token))
        if self.exc is not None:
            raise self.exc
        return list(self.jobs)


SESSION = SessionContext(driver_id="A", token="t0k")


def test_active_job_blocks_accepting_another():
    api = FakeApi([make_job("J1", "In-Progress", "A"), make_job("J2", "Available")])
    res = ActiveJobGuard(api).check(SESSION, "J2")
    assert not res.allowed
    assert res.conflict_id == "J1"
    assert api.calls == [("A", "Bearer t0k")]


def test_completed_job_no_longer_blocks():
    api = FakeApi([make_job("J1", "Completed", "A"), make_job("J2", "Available")])
    res = ActiveJobGuard(api).check(SESSION, "J2")
    assert res.allowed
    assert res.warning is None


def test_target_itself_is_not_a_conflict():
    assert find_active_conflict([make_job("J2", "Accepted", "A")], "J2") is None


@pytest.mark.parametrize("exc", [
    httpx.ConnectError("boom"),
    httpx.ReadTimeout("slow"),
])
def test_network_failure_lets_the_driver_through(exc, caplog):
    caplog.set_level(logging.WARNING, logger="wasteflow")
    res = ActiveJobGuard(FakeApi(exc=exc)).check(SESSION, "J2")
    assert res.allowed
    assert res.warning is SyncWarning.ACTIVE_JOB_CHECK_SKIPPED
    assert res.warning.message == "Network error. Proceeding with caution."
    assert "active job check" in caplog.text


@pytest.mark.parametrize("exc", [
    ApiError(500, "oops"),
    ValueError("bad json"),
])
def test_unusable_answer_is_not_called_a_network_error(exc):
    res = ActiveJobGuard(FakeApi(exc=exc)).check(SESSION, "J2")
    assert res.allowed
    assert res.warning is SyncWarning.ACTIVE_JOB_CHECK_UNVERIFIED
    assert "Network error" not in res.warning.message


def _client_returning(payload) -> ApiClient:
    transport = httpx.MockTransport(lambda request: httpx.Response(200, json=payload))
    return ApiClient(client=httpx.Client(base_url="http://api.test", transport=transport))


def test_unknown_status_record_does_not_hide_active_job(caplog):
    caplog.set_level(logging.WARNING, logger="wasteflow")
    processing = make_job("J9", "Available", "A").to_wire()
    processing["jobOrderStatus"] = "Processing"
    api = _client_returning([make_job("J1", "In-Progress", "A").to_wire(), processing])

    res = ActiveJobGuard(api).check(SESSION, "J2")
    assert not res.allowed
    assert res.conflict_id == "J1"
    assert res.warning is None
    assert "skipping job order J9" in caplog.text


def test_non_list_body_is_unverified():
    res = ActiveJobGuard(_client_returning({"error": "oops"})).check(SESSION, "J2")
    assert res.allowed
    assert res.warning is SyncWarning.ACTIVE_JOB_CHECK_UNVERIFIED


def test_missing_auth_is_not_swallowed():
    api = FakeApi()
    with pytest.raises(AuthMissing):
        ActiveJobGuard(api).check(SessionContext(driver_id="A"), "J2")
    with pytest.raises(AuthMissing):
        ActiveJobGuard(api).check(SessionContext(token="t0k"), "J2")
    assert api.calls == []
