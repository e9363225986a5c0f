from typing import Iterable, Optional

import httpx
from pydantic import BaseModel

from wasteflow.core.errors import ApiError, SyncWarning
from wasteflow.core.logging import get_logger
from wasteflow.core.session import SessionContext
from wasteflow.models.job_order import JobOrderRecord

log = get_logger("guards")


class GuardResult(BaseModel):
    allowed: bool
    conflict_id: Optional[str] = None
    warning: Optional[SyncWarning] = None


def find_active_conflict(jobs: Iterable[JobOrderRecord], target_id: str) -> Optional[JobOrderRecord]:
    for job in jobs:
        if job.id != target_id and job.is_active:
            return job
    return None


class ActiveJobGuard:
    """One active job (Accepted / In-Progress) per driver, checked before Accept.

    Advisory only: the server re-validates. When the job list cannot be
    fetched the driver is let through with a warning.
    """

    def __init__(self, api):
        self.api = api

    def check(self, session: SessionContext, target_id: str) -> GuardResult:
        driver_id = session.require_driver_id()
        token = session.bearer()
        try:
            jobs = self.api.get_payments_by_driver_id(driver_id, token)
        except httpx.TransportError as ex:
            log.warning("active job check for driver %s failed, allowing accept: %s", driver_id, ex)
            return GuardResult(allowed=True, warning=SyncWarning.ACTIVE_JOB_CHECK_SKIPPED)
        except (httpx.HTTPError, ApiError, ValueError) as ex:
            # non-2xx answer or a body that is not a job list
            log.warning("active job check for driver %s unverified, allowing accept: %s", driver_id, ex)
            return GuardResult(allowed=True, warning=SyncWarning.ACTIVE_JOB_CHECK_UNVERIFIED)

        conflict = find_active_conflict(jobs, target_id)
        if conflict is not None:
            log.info("driver %s already holds %s (%s), refusing %s",
                     driver_id, conflict.id, conflict.status.value, target_id)
            return GuardResult(allowed=False, conflict_id=conflict.id)
        return GuardResult(allowed=True)
