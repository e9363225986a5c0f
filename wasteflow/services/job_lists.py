from typing import Iterable, List

from pydantic import BaseModel

from wasteflow.core.states import JobStatus
from wasteflow.models.job_order import JobOrderRecord


class JobBuckets(BaseModel):
    active: List[JobOrderRecord] = []
    available: List[JobOrderRecord] = []
    completed: List[JobOrderRecord] = []

    @property
    def has_active(self) -> bool:
        return bool(self.active)


def split_jobs(records: Iterable[JobOrderRecord]) -> JobBuckets:
    """Split a driver's job orders the way the home screen lists them.

    Completed jobs already handed over (is_delivered) drop off the list.
    Cancelled jobs are not listed at all.
    """
    buckets = JobBuckets()
    for rec in records:
        if rec.is_active:
            buckets.active.append(rec)
        elif rec.status is JobStatus.AVAILABLE:
            buckets.available.append(rec)
        elif rec.status is JobStatus.COMPLETED and not rec.is_delivered:
            buckets.completed.append(rec)
    return buckets
