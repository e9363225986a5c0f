from datetime import datetime, timezone
from typing import Callable, Optional

import httpx
from pydantic import BaseModel

from wasteflow.core.config import settings
from wasteflow.core.errors import ApiError, SyncError, SyncWarning
from wasteflow.core.logging import get_logger
from wasteflow.core.session import SessionContext
from wasteflow.core.states import JobStatus
from wasteflow.models.job_order import JobOrderRecord

log = get_logger("sync")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SyncResult(BaseModel):
    record: JobOrderRecord
    error: Optional[SyncError] = None
    warning: Optional[SyncWarning] = None
    detail: Optional[str] = None

    @property
    def degraded(self) -> bool:
        return self.error is SyncError.DEGRADED_LOCAL_UPDATE

    @property
    def ok(self) -> bool:
        return self.error is None


class RemoteSync:
    """Sends a decided status change to the server, once.

    The server's answer replaces the local record. When the call does not
    succeed the last-known record is patched locally (status, and
    updatedAt for Completed) and returned tagged DEGRADED_LOCAL_UPDATE so
    the driver is not stuck mid-pickup. Whether a 4xx/5xx answer degrades
    the same way as a network failure is controlled by
    `degrade_on_server_rejection`.
    """

    def __init__(self, api, degrade_on_server_rejection: Optional[bool] = None,
                 clock: Callable[[], datetime] = _utcnow):
        self.api = api
        if degrade_on_server_rejection is None:
            degrade_on_server_rejection = settings.degrade_on_server_rejection
        self.degrade_on_server_rejection = degrade_on_server_rejection
        self._clock = clock

    def apply(self, record: JobOrderRecord, new_status: JobStatus, session: SessionContext) -> SyncResult:
        new_status = JobStatus.parse(new_status)
        token = session.bearer()  # AuthMissing is a hard stop, never degraded

        log.info("job %s: %s -> %s", record.id, record.status.value, new_status.value)
        try:
            updated = self.api.update_job_order_status(record.id, new_status, token)
        except httpx.TransportError as ex:
            log.warning("job %s: network error on status update, using local update: %s", record.id, ex)
            return self._degrade(record, new_status, SyncWarning.DEGRADED_NETWORK, str(ex))
        except ApiError as ex:
            if not self.degrade_on_server_rejection:
                log.error("job %s: server rejected %s (%s)", record.id, new_status.value, ex)
                return SyncResult(record=record, error=SyncError.SERVER_REJECTED, detail=str(ex))
            log.warning("job %s: server rejected status update, using local update: %s", record.id, ex)
            return self._degrade(record, new_status, SyncWarning.DEGRADED_SERVER, str(ex))
        except (httpx.HTTPError, ValueError) as ex:
            # unreadable body or protocol error
            log.warning("job %s: bad response on status update, using local update: %s", record.id, ex)
            return self._degrade(record, new_status, SyncWarning.DEGRADED_SERVER, str(ex))

        if updated is None:
            log.warning("job %s: empty response on status update, using local update", record.id)
            return self._degrade(record, new_status, SyncWarning.DEGRADED_SERVER, "empty response body")

        return SyncResult(record=updated)

    def _degrade(self, record: JobOrderRecord, new_status: JobStatus, warning: SyncWarning,
                 detail: str) -> SyncResult:
        return SyncResult(
            record=record.with_status(new_status, now=self._clock()),
            error=SyncError.DEGRADED_LOCAL_UPDATE,
            warning=warning,
            detail=detail,
        )
