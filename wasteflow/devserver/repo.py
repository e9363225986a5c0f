# wasteflow/devserver/repo.py
from datetime import datetime, timezone
from typing import Dict, List, Optional

from wasteflow.core.states import JobStatus
from wasteflow.models.job_order import JobOrderRecord


def _utcnow():
    return datetime.now(timezone.utc)


class InMemoryJobRepo:
    def __init__(self):
        self.jobs: Dict[str, JobOrderRecord] = {}

    async def insert(self, record: JobOrderRecord) -> JobOrderRecord:
        self.jobs[record.id] = record
        return record

    async def get(self, job_id: str) -> Optional[JobOrderRecord]:
        return self.jobs.get(job_id)

    async def list_for_driver(self, driver_id: str) -> List[JobOrderRecord]:
        # the driver's own jobs plus the unclaimed ones up for grabs
        return [
            j for j in self.jobs.values()
            if j.driver_id == driver_id or (j.driver_id is None and j.status is JobStatus.AVAILABLE)
        ]

    async def active_for_driver(self, driver_id: str) -> List[JobOrderRecord]:
        return [j for j in self.jobs.values() if j.driver_id == driver_id and j.is_active]

    async def set_status(self, job_id: str, status: JobStatus, driver_id: Optional[str] = None) -> JobOrderRecord:
        update = {"status": status, "updated_at": _utcnow()}
        if driver_id is not None:
            update["driver_id"] = driver_id
        rec = self.jobs[job_id].model_copy(update=update)
        self.jobs[job_id] = rec
        return rec

    async def set_proof(self, job_id: str, image_url: str) -> JobOrderRecord:
        rec = self.jobs[job_id].model_copy(update={"proof_of_completion_url": image_url, "updated_at": _utcnow()})
        self.jobs[job_id] = rec
        return rec


async def seed_demo(repo: InMemoryJobRepo) -> List[str]:
    now = _utcnow()
    docs = [
        {"id": "JO-100", "orderId": "ORD-100", "customerName": "Maria Santos",
         "address": "12 Rizal St, Barangay San Isidro", "latitude": 14.5995, "longitude": 120.9842,
         "wasteType": "Recyclable", "paymentMethod": "GCash", "status": "PAID",
         "amount": 500.0, "tax": 60.0, "totalAmount": 560.0, "jobOrderStatus": "Available"},
        {"id": "JO-101", "orderId": "ORD-101", "customerName": "Jose Reyes",
         "address": "3 Mabini Ave, Barangay Poblacion", "latitude": 14.6042, "longitude": 120.9822,
         "wasteType": "Biodegradable", "paymentMethod": "Cash", "status": "PAID",
         "amount": 300.0, "tax": 36.0, "totalAmount": 336.0, "jobOrderStatus": "Available"},
    ]
    ids = []
    for d in docs:
        rec = JobOrderRecord.model_validate({**d, "createdAt": now.isoformat(), "updatedAt": now.isoformat()})
        await repo.insert(rec)
        ids.append(rec.id)
    return ids
