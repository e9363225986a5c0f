from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict


class JobStatus(str, Enum):
    AVAILABLE = "Available"
    ACCEPTED = "Accepted"
    IN_PROGRESS = "In-Progress"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"

    @classmethod
    def parse(cls, value) -> "JobStatus":
        """Accepts the wire value plus the spellings seen in the wild
        ("InProgress", "in_progress", any casing)."""
        if isinstance(value, cls):
            return value
        key = str(value or "").strip().lower().replace("-", "").replace("_", "").replace(" ", "")
        if not key:
            raise ValueError("status cannot be empty")
        for status in cls:
            if status.value.lower().replace("-", "") == key:
                return status
        raise ValueError(f"unknown job order status: {value!r}")


class JobAction(str, Enum):
    ACCEPT = "accept"
    CONTINUE = "continue"
    COMPLETE = "complete"
    CANCEL = "cancel"


ACTIVE_STATUSES = frozenset({JobStatus.ACCEPTED, JobStatus.IN_PROGRESS})
TERMINAL_STATUSES = frozenset({JobStatus.COMPLETED, JobStatus.CANCELLED})


class RejectionReason(str, Enum):
    TERMINAL_STATE = "terminal_state"
    MISSING_PROOF = "missing_proof"
    ACTIVE_JOB_LOCKED = "active_job_locked"
    INVALID_TRANSITION = "invalid_transition"
    ACTIVE_JOB_CONFLICT = "active_job_conflict"
    AUTH_MISSING = "auth_missing"
    REQUEST_IN_FLIGHT = "request_in_flight"
    BACK_NAVIGATION_BLOCKED = "back_navigation_blocked"

    @property
    def message(self) -> str:
        return REJECTION_MESSAGES[self]


REJECTION_MESSAGES = {
    RejectionReason.TERMINAL_STATE: "This job order is already closed",
    RejectionReason.MISSING_PROOF: "Please upload a proof photo before completing the collection",
    RejectionReason.ACTIVE_JOB_LOCKED: "Cannot go back during an In-Progress job",
    RejectionReason.INVALID_TRANSITION: "This action is not available for the job order",
    RejectionReason.ACTIVE_JOB_CONFLICT: "Complete your active job order before accepting a new one",
    RejectionReason.AUTH_MISSING: "Authentication error. Please log in again.",
    RejectionReason.REQUEST_IN_FLIGHT: "Updating status...",
    RejectionReason.BACK_NAVIGATION_BLOCKED: "Cannot go back during an active job",
}


class Decision(BaseModel):
    model_config = ConfigDict(frozen=True)

    allowed: bool
    status: Optional[JobStatus] = None
    navigate: bool = False
    reason: Optional[RejectionReason] = None

    @property
    def message(self) -> str:
        return self.reason.message if self.reason else ""


# (current, action) -> resulting status; Continue keeps the status and navigates
TRANSITIONS = {
    (JobStatus.AVAILABLE, JobAction.ACCEPT): JobStatus.ACCEPTED,
    (JobStatus.ACCEPTED, JobAction.CONTINUE): JobStatus.ACCEPTED,
    (JobStatus.ACCEPTED, JobAction.CANCEL): JobStatus.CANCELLED,
    (JobStatus.IN_PROGRESS, JobAction.CONTINUE): JobStatus.IN_PROGRESS,
    (JobStatus.IN_PROGRESS, JobAction.COMPLETE): JobStatus.COMPLETED,
}


def _reject(reason: RejectionReason) -> Decision:
    return Decision(allowed=False, reason=reason)


def decide(current: JobStatus, action: JobAction, has_proof: bool) -> Decision:
    current = JobStatus.parse(current)
    action = JobAction(action)

    if current in TERMINAL_STATUSES:
        return _reject(RejectionReason.TERMINAL_STATE)

    target = TRANSITIONS.get((current, action))
    if target is None:
        if current is JobStatus.IN_PROGRESS and action is JobAction.CANCEL:
            return _reject(RejectionReason.ACTIVE_JOB_LOCKED)
        return _reject(RejectionReason.INVALID_TRANSITION)

    if action is JobAction.COMPLETE and not has_proof:
        return _reject(RejectionReason.MISSING_PROOF)

    return Decision(allowed=True, status=target, navigate=action is JobAction.CONTINUE)


def can_navigate_back(status: JobStatus) -> bool:
    return JobStatus.parse(status) not in ACTIVE_STATUSES


def back_navigation_message(status: JobStatus) -> str:
    return f"Cannot go back during an {JobStatus.parse(status).value} job"


SCREEN_TITLES = {
    JobStatus.AVAILABLE: "Available Job Order",
    JobStatus.ACCEPTED: "Accepted Job Order",
    JobStatus.IN_PROGRESS: "In-Progress Job Order",
    JobStatus.COMPLETED: "Completed Job Order",
    JobStatus.CANCELLED: "Cancelled Job Order",
}


def screen_title(status: JobStatus) -> str:
    return SCREEN_TITLES[JobStatus.parse(status)]
