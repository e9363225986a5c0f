"""Per-job driver workflow: turns button presses into one Outcome each.

A JobOrderWorkflow owns a single JobOrderRecord (the screen's copy) and the
proof gate for it. Every action goes through the same pipeline:

    decide() -> auth -> ActiveJobGuard (accept only) -> RemoteSync.apply()

and nothing raises past it; policy refusals, missing auth, degraded
updates and upload failures all come back as fields of the Outcome.
"""
from enum import Enum
from typing import List, Optional

import httpx
from pydantic import BaseModel

from wasteflow.core.errors import ApiError, AuthMissing, SyncError, SyncWarning
from wasteflow.core.guards import ActiveJobGuard
from wasteflow.core.logging import get_logger
from wasteflow.core.proof import ProofOfCompletionGate
from wasteflow.core.session import SessionContext
from wasteflow.core.states import (
    TERMINAL_STATUSES,
    JobAction,
    JobStatus,
    RejectionReason,
    back_navigation_message,
    can_navigate_back,
    decide,
    screen_title,
)
from wasteflow.models.job_order import JobOrderRecord
from wasteflow.services.remote_sync import RemoteSync

log = get_logger("workflow")


class Screen(str, Enum):
    JOB_LIST = "job_list"
    LOCATION = "location"
    COMPLETION = "completion"


class Outcome(BaseModel):
    record: Optional[JobOrderRecord] = None
    rejection: Optional[RejectionReason] = None
    warnings: List[SyncWarning] = []
    navigate: Optional[Screen] = None
    message: str = ""
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.rejection is None and self.error is None

    @property
    def degraded(self) -> bool:
        return any(w in (SyncWarning.DEGRADED_NETWORK, SyncWarning.DEGRADED_SERVER) for w in self.warnings)

    def notices(self) -> List[str]:
        """Transient messages for the UI, most important first."""
        out = []
        if self.error:
            out.append(self.error)
        out.extend(w.message for w in self.warnings)
        if self.message:
            out.append(self.message)
        return out


class ScreenControls(BaseModel):
    title: str
    action_label: str
    action_enabled: bool
    cancel_visible: bool
    complete_enabled: bool
    proof_upload_visible: bool
    back_enabled: bool
    rating: Optional[int] = None
    rating_feedback: Optional[str] = None


ACTION_LABELS = {
    JobStatus.AVAILABLE: "ACCEPT JOB ORDER",
    JobStatus.ACCEPTED: "GO TO LOCATION",
    JobStatus.IN_PROGRESS: "CONTINUE TO LOCATION",
    JobStatus.COMPLETED: "JOB ORDER COMPLETED",
    JobStatus.CANCELLED: "JOB ORDER CANCELLED",
}

SUCCESS_MESSAGES = {
    JobStatus.ACCEPTED: "Job order accepted",
    JobStatus.IN_PROGRESS: "Arrival confirmed!",
    JobStatus.COMPLETED: "Collection completed successfully!",
    JobStatus.CANCELLED: "Job order cancelled successfully!",
}

NEXT_SCREEN = {
    JobStatus.ACCEPTED: Screen.LOCATION,
    JobStatus.IN_PROGRESS: Screen.COMPLETION,
    JobStatus.CANCELLED: Screen.JOB_LIST,
}


def _rejected(reason: RejectionReason, record: Optional[JobOrderRecord] = None,
              message: Optional[str] = None) -> Outcome:
    return Outcome(record=record, rejection=reason, message=message or reason.message)


class JobOrderWorkflow:
    def __init__(self, record: JobOrderRecord, api, session: SessionContext,
                 sync: Optional[RemoteSync] = None, guard: Optional[ActiveJobGuard] = None):
        self.record = record
        self.api = api
        self.session = session
        self.sync = sync or RemoteSync(api)
        self.guard = guard or ActiveJobGuard(api)
        self.gate = ProofOfCompletionGate.from_record(record)
        self._busy = False

    @classmethod
    def load(cls, api, session: SessionContext, job_id: str, **kwargs) -> "JobOrderWorkflow":
        """Fetch the job fresh from the server; nothing is cached between screens."""
        token = session.bearer() if session.token else None
        return cls(api.get_payment(job_id, token), api, session, **kwargs)

    @property
    def busy(self) -> bool:
        return self._busy

    # ---------------- driver actions ----------------
    def accept(self) -> Outcome:
        return self.perform(JobAction.ACCEPT)

    def continue_to_location(self) -> Outcome:
        return self.perform(JobAction.CONTINUE)

    def complete(self) -> Outcome:
        return self.perform(JobAction.COMPLETE)

    def cancel(self) -> Outcome:
        return self.perform(JobAction.CANCEL)

    def perform(self, action: JobAction) -> Outcome:
        action = JobAction(action)
        if self._busy:
            return _rejected(RejectionReason.REQUEST_IN_FLIGHT, self.record)

        decision = decide(self.record.status, action, self.gate.is_satisfied())
        if not decision.allowed:
            log.info("job %s: %s refused in %s (%s)",
                     self.record.id, action.value, self.record.status.value, decision.reason.value)
            return _rejected(decision.reason, self.record)

        if decision.navigate:
            return Outcome(record=self.record, navigate=Screen.LOCATION)

        warnings: List[SyncWarning] = []
        if action is JobAction.ACCEPT:
            try:
                guard = self.guard.check(self.session, self.record.id)
            except AuthMissing:
                return _rejected(RejectionReason.AUTH_MISSING, self.record)
            if not guard.allowed:
                return _rejected(RejectionReason.ACTIVE_JOB_CONFLICT, self.record)
            if guard.warning is not None:
                warnings.append(guard.warning)

        return self._transition(decision.status, warnings)

    def confirm_arrival(self) -> Outcome:
        """The driver reached the pickup address: Accepted -> In-Progress."""
        if self._busy:
            return _rejected(RejectionReason.REQUEST_IN_FLIGHT, self.record)
        status = self.record.status
        if status is JobStatus.IN_PROGRESS:
            return Outcome(record=self.record, navigate=Screen.COMPLETION)
        if status in TERMINAL_STATUSES:
            return _rejected(RejectionReason.TERMINAL_STATE, self.record)
        if status is not JobStatus.ACCEPTED:
            return _rejected(RejectionReason.INVALID_TRANSITION, self.record)
        return self._transition(JobStatus.IN_PROGRESS, [])

    def attach_proof(self, image_url: str) -> Outcome:
        """Save an already-hosted proof photo URL against the job."""
        if self._busy:
            return _rejected(RejectionReason.REQUEST_IN_FLIGHT, self.record)
        if self.record.status in TERMINAL_STATUSES:
            return _rejected(RejectionReason.TERMINAL_STATE, self.record)
        if self.record.status is not JobStatus.IN_PROGRESS:
            return _rejected(RejectionReason.INVALID_TRANSITION, self.record)

        image_url = (image_url or "").strip()
        if not image_url:
            return Outcome(record=self.record, error="Failed to upload image")
        try:
            token = self.session.bearer()
        except AuthMissing:
            return _rejected(RejectionReason.AUTH_MISSING, self.record)

        self._busy = True
        try:
            self.api.upload_payment_confirmation_image(self.record.id, image_url, token)
        except ApiError as ex:
            log.error("job %s: failed to save proof: %s", self.record.id, ex)
            return Outcome(record=self.record, error=f"Failed to save proof: {ex.status_code}")
        except (httpx.HTTPError, ValueError) as ex:
            log.error("job %s: error uploading proof: %s", self.record.id, ex)
            return Outcome(record=self.record, error="Error uploading image")
        finally:
            self._busy = False

        self.gate.attach(image_url)
        self.record = self.record.model_copy(update={"proof_of_completion_url": image_url})
        log.info("job %s: proof attached", self.record.id)
        return Outcome(record=self.record, message="Driver proof uploaded")

    def retake_proof(self) -> Outcome:
        if self.record.status in TERMINAL_STATUSES:
            return _rejected(RejectionReason.TERMINAL_STATE, self.record)
        self.gate.clear()
        self.record = self.record.model_copy(update={"proof_of_completion_url": None})
        return Outcome(record=self.record, message="Capture a new proof photo")

    def back(self) -> Outcome:
        if not can_navigate_back(self.record.status):
            return _rejected(RejectionReason.BACK_NAVIGATION_BLOCKED, self.record,
                             message=back_navigation_message(self.record.status))
        return Outcome(record=self.record, navigate=Screen.JOB_LIST)

    # ---------------- rendering ----------------
    def controls(self) -> ScreenControls:
        status = self.record.status
        terminal = status in TERMINAL_STATUSES
        return ScreenControls(
            title=screen_title(status),
            action_label=ACTION_LABELS[status],
            action_enabled=not terminal and not self._busy,
            cancel_visible=status is JobStatus.ACCEPTED,
            complete_enabled=status is JobStatus.IN_PROGRESS and self.gate.is_satisfied() and not self._busy,
            proof_upload_visible=status is JobStatus.IN_PROGRESS and not self.gate.is_satisfied(),
            back_enabled=can_navigate_back(status),
            rating=self.record.visible_rating,
            rating_feedback=self.record.rating_feedback,
        )

    # ---------------- internals ----------------
    def _transition(self, new_status: JobStatus, warnings: List[SyncWarning]) -> Outcome:
        self._busy = True
        try:
            result = self.sync.apply(self.record, new_status, self.session)
        except AuthMissing:
            return _rejected(RejectionReason.AUTH_MISSING, self.record)
        finally:
            self._busy = False

        if result.warning is not None:
            warnings.append(result.warning)

        if result.error is SyncError.SERVER_REJECTED:
            return Outcome(record=self.record, warnings=warnings,
                           error=f"Server rejected the update ({result.detail})")

        self.record = result.record
        return Outcome(
            record=self.record,
            warnings=warnings,
            navigate=NEXT_SCREEN.get(self.record.status),
            message=SUCCESS_MESSAGES.get(self.record.status, ""),
        )
