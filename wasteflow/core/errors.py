from enum import Enum


class AuthMissing(Exception):
    """No bearer token (or driver id) in the session; the driver must log in again."""


class SyncError(str, Enum):
    DEGRADED_LOCAL_UPDATE = "degraded_local_update"
    SERVER_REJECTED = "server_rejected"


class SyncWarning(str, Enum):
    ACTIVE_JOB_CHECK_SKIPPED = "active_job_check_skipped"
    ACTIVE_JOB_CHECK_UNVERIFIED = "active_job_check_unverified"
    DEGRADED_NETWORK = "degraded_network"
    DEGRADED_SERVER = "degraded_server"

    @property
    def message(self) -> str:
        return WARNING_MESSAGES[self]


WARNING_MESSAGES = {
    SyncWarning.ACTIVE_JOB_CHECK_SKIPPED: "Network error. Proceeding with caution.",
    SyncWarning.ACTIVE_JOB_CHECK_UNVERIFIED: "Could not verify your active job orders. Proceeding with caution.",
    SyncWarning.DEGRADED_NETWORK: "Network error, proceeding with local update",
    SyncWarning.DEGRADED_SERVER: "Server error, proceeding with local update",
}


class ApiError(Exception):
    """The server answered, but not with a 2xx."""

    def __init__(self, status_code: int, detail: str = ""):
        self.status_code = status_code
        self.detail = detail
        super().__init__(f"{status_code}: {detail}")
