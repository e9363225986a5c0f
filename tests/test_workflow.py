import httpx

from wasteflow.core.errors import SyncWarning
from wasteflow.core.session import SessionContext
from wasteflow.core.states import JobStatus, RejectionReason
from wasteflow.services.api_client import ApiClient
from wasteflow.services.remote_sync import RemoteSync, SyncResult
from wasteflow.services.workflow import JobOrderWorkflow, Screen

from conftest import make_job, put_job


def test_full_pickup_against_dev_server(repo, api, driver_a):
    put_job(repo, "JO-100", "Available")
    wf = JobOrderWorkflow.load(api, driver_a, "JO-100")

    out = wf.accept()
    assert out.ok, out.notices()
    assert out.record.status is JobStatus.ACCEPTED
    assert out.record.driver_id == "A"
    assert out.navigate is Screen.LOCATION
    assert out.message == "Job order accepted"
    assert repo.jobs["JO-100"].driver_id == "A"

    out = wf.continue_to_location()
    assert out.ok and out.navigate is Screen.LOCATION
    assert wf.record.status is JobStatus.ACCEPTED

    out = wf.confirm_arrival()
    assert out.message == "Arrival confirmed!"
    assert out.navigate is Screen.COMPLETION
    assert repo.jobs["JO-100"].status is JobStatus.IN_PROGRESS

    out = wf.complete()
    assert out.rejection is RejectionReason.MISSING_PROOF
    assert repo.jobs["JO-100"].status is JobStatus.IN_PROGRESS

    out = wf.attach_proof("https://x/proof.jpg")
    assert out.ok and out.message == "Driver proof uploaded"
    assert repo.jobs["JO-100"].proof_of_completion_url == "https://x/proof.jpg"

    out = wf.complete()
    assert out.ok
    assert out.message == "Collection completed successfully!"
    assert out.record.status is JobStatus.COMPLETED
    assert repo.jobs["JO-100"].status is JobStatus.COMPLETED

    out = wf.cancel()
    assert out.rejection is RejectionReason.TERMINAL_STATE
    assert repo.jobs["JO-100"].status is JobStatus.COMPLETED
    assert wf.back().navigate is Screen.JOB_LIST


def test_cancel_accepted_job(repo, api, driver_a):
    put_job(repo, "J", "Accepted", "A")
    wf = JobOrderWorkflow.load(api, driver_a, "J")
    out = wf.cancel()
    assert out.ok
    assert out.message == "Job order cancelled successfully!"
    assert out.navigate is Screen.JOB_LIST
    assert repo.jobs["J"].status is JobStatus.CANCELLED


def test_cancel_in_progress_is_locked(repo, api, driver_a):
    put_job(repo, "J", "In-Progress", "A")
    wf = JobOrderWorkflow.load(api, driver_a, "J")
    out = wf.cancel()
    assert out.rejection is RejectionReason.ACTIVE_JOB_LOCKED
    assert repo.jobs["J"].status is JobStatus.IN_PROGRESS


def test_second_accept_is_refused_while_one_is_active(repo, api, driver_a):
    put_job(repo, "J1", "In-Progress", "A")
    put_job(repo, "J2", "Available")

    wf = JobOrderWorkflow.load(api, driver_a, "J2")
    out = wf.accept()
    assert out.rejection is RejectionReason.ACTIVE_JOB_CONFLICT
    assert out.message == "Complete your active job order before accepting a new one"
    assert repo.jobs["J2"].status is JobStatus.AVAILABLE

    # once J1 is done the same driver can take J2
    repo.jobs["J1"] = repo.jobs["J1"].with_status(JobStatus.COMPLETED)
    out = wf.accept()
    assert out.ok
    assert repo.jobs["J2"].status is JobStatus.ACCEPTED


def test_offline_accept_degrades_to_local_update():
    def handler(request):
        raise httpx.ConnectError("offline", request=request)

    api = ApiClient(client=httpx.Client(base_url="http://api.test", transport=httpx.MockTransport(handler)))
    wf = JobOrderWorkflow(make_job("J", "Available"), api, SessionContext(driver_id="A", token="t"))

    out = wf.accept()
    assert out.ok and out.degraded
    assert out.warnings == [SyncWarning.ACTIVE_JOB_CHECK_SKIPPED, SyncWarning.DEGRADED_NETWORK]
    assert wf.record.status is JobStatus.ACCEPTED
    assert out.navigate is Screen.LOCATION
    assert out.notices() == [
        "Network error. Proceeding with caution.",
        "Network error, proceeding with local update",
        "Job order accepted",
    ]


def test_server_rejection_degrades_or_surfaces(repo, api, driver_a):
    put_job(repo, "J", "Accepted", "B")

    wf = JobOrderWorkflow.load(api, driver_a, "J", sync=RemoteSync(api, degrade_on_server_rejection=False))
    out = wf.cancel()
    assert not out.ok
    assert out.error.startswith("Server rejected the update (403")
    assert wf.record.status is JobStatus.ACCEPTED

    wf = JobOrderWorkflow.load(api, driver_a, "J", sync=RemoteSync(api, degrade_on_server_rejection=True))
    out = wf.cancel()
    assert out.ok and out.degraded
    assert out.warnings == [SyncWarning.DEGRADED_SERVER]
    assert wf.record.status is JobStatus.CANCELLED
    # the server copy is untouched
    assert repo.jobs["J"].status is JobStatus.ACCEPTED


def test_second_action_while_request_in_flight():
    inner = []

    class ReentrantSync:
        def apply(self, record, new_status, session):
            inner.append(wf.cancel())
            inner.append(wf.controls())
            return SyncResult(record=record.with_status(new_status))

    wf = JobOrderWorkflow(make_job("J", "Accepted", "A"), api=None,
                          session=SessionContext(driver_id="A", token="t"), sync=ReentrantSync())
    out = wf.confirm_arrival()
    assert out.ok
    assert inner[0].rejection is RejectionReason.REQUEST_IN_FLIGHT
    assert not inner[1].action_enabled
    assert not wf.busy
    assert wf.record.status is JobStatus.IN_PROGRESS


def test_missing_auth_is_reported_not_degraded(repo, api):
    put_job(repo, "J1", "Available")
    put_job(repo, "J2", "Accepted", "A")
    session = SessionContext(driver_id="A")

    out = JobOrderWorkflow.load(api, session, "J1").accept()
    assert out.rejection is RejectionReason.AUTH_MISSING
    assert out.message == "Authentication error. Please log in again."

    out = JobOrderWorkflow.load(api, session, "J2").cancel()
    assert out.rejection is RejectionReason.AUTH_MISSING
    assert repo.jobs["J2"].status is JobStatus.ACCEPTED


def test_proof_upload_failure_keeps_gate_closed(repo, api, driver_a):
    put_job(repo, "J", "In-Progress", "B")
    wf = JobOrderWorkflow.load(api, driver_a, "J")

    out = wf.attach_proof("https://x/proof.jpg")
    assert out.error == "Failed to save proof: 403"
    assert not wf.gate.is_satisfied()
    assert wf.complete().rejection is RejectionReason.MISSING_PROOF

    out = wf.attach_proof("   ")
    assert out.error == "Failed to upload image"


def test_proof_only_while_in_progress(repo, api, driver_a):
    put_job(repo, "J", "Accepted", "A")
    wf = JobOrderWorkflow.load(api, driver_a, "J")
    assert wf.attach_proof("https://x/p.jpg").rejection is RejectionReason.INVALID_TRANSITION
    assert repo.jobs["J"].proof_of_completion_url is None


def test_retake_clears_existing_proof():
    wf = JobOrderWorkflow(make_job("J", "In-Progress", "A", driverConfirmation="https://x/old.jpg"),
                          api=None, session=SessionContext(driver_id="A", token="t"))
    assert wf.controls().complete_enabled

    wf.retake_proof()
    assert not wf.gate.is_satisfied()
    assert wf.record.proof_of_completion_url is None
    assert wf.complete().rejection is RejectionReason.MISSING_PROOF
    assert wf.controls().proof_upload_visible


def test_arrival_rules():
    session = SessionContext(driver_id="A", token="t")
    wf = JobOrderWorkflow(make_job("J", "In-Progress", "A"), api=None, session=session)
    assert wf.confirm_arrival().navigate is Screen.COMPLETION

    wf = JobOrderWorkflow(make_job("J", "Available"), api=None, session=session)
    assert wf.confirm_arrival().rejection is RejectionReason.INVALID_TRANSITION

    wf = JobOrderWorkflow(make_job("J", "Cancelled", "A"), api=None, session=session)
    assert wf.confirm_arrival().rejection is RejectionReason.TERMINAL_STATE


def test_back_navigation():
    session = SessionContext(driver_id="A", token="t")
    wf = JobOrderWorkflow(make_job("J", "Accepted", "A"), api=None, session=session)
    out = wf.back()
    assert out.rejection is RejectionReason.BACK_NAVIGATION_BLOCKED
    assert out.message == "Cannot go back during an Accepted job"

    wf = JobOrderWorkflow(make_job("J", "Available"), api=None, session=session)
    assert wf.back().navigate is Screen.JOB_LIST


def test_controls_per_status():
    session = SessionContext(driver_id="A", token="t")

    ctl = JobOrderWorkflow(make_job("J", "Available"), None, session).controls()
    assert ctl.action_label == "ACCEPT JOB ORDER"
    assert ctl.action_enabled and ctl.back_enabled
    assert not ctl.cancel_visible

    ctl = JobOrderWorkflow(make_job("J", "Accepted", "A"), None, session).controls()
    assert ctl.title == "Accepted Job Order"
    assert ctl.cancel_visible and not ctl.back_enabled

    ctl = JobOrderWorkflow(make_job("J", "In-Progress", "A"), None, session).controls()
    assert ctl.proof_upload_visible and not ctl.complete_enabled and not ctl.cancel_visible

    ctl = JobOrderWorkflow(make_job("J", "Completed", "A", serviceRating=4), None, session).controls()
    assert not ctl.action_enabled
    assert ctl.rating == 4
    assert ctl.rating_feedback == "Very Good - Customer was pleased with service"
