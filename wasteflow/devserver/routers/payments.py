# wasteflow/devserver/routers/payments.py
from fastapi import APIRouter, Depends, HTTPException, Request

from wasteflow.core.states import JobStatus
from wasteflow.devserver.repo import InMemoryJobRepo
from wasteflow.devserver.security import get_current_claims, get_current_driver
from wasteflow.models.job_order import ConfirmationImageIn, JobOrderStatusUpdate

router = APIRouter(prefix="/api", tags=["payments"])

# server-side edges; the client table is stricter
TRANSITIONS = {
    (JobStatus.AVAILABLE, JobStatus.ACCEPTED),
    (JobStatus.AVAILABLE, JobStatus.CANCELLED),
    (JobStatus.ACCEPTED, JobStatus.IN_PROGRESS),
    (JobStatus.ACCEPTED, JobStatus.CANCELLED),
    (JobStatus.IN_PROGRESS, JobStatus.COMPLETED),
}

# edges only back-office roles may take
STAFF_ONLY = {(JobStatus.AVAILABLE, JobStatus.CANCELLED)}
STAFF_ROLES = {"admin", "dispatcher"}


def can_transition(src: JobStatus, dst: JobStatus) -> bool:
    return (src, dst) in TRANSITIONS


def get_repo(request: Request) -> InMemoryJobRepo:
    return request.app.state.repo


async def _job_or_404(repo: InMemoryJobRepo, payment_id: str):
    rec = await repo.get(payment_id)
    if not rec:
        raise HTTPException(404, "Job order not found")
    return rec


@router.get("/payments/driver/{driver_id}")
async def list_driver_jobs(driver_id: str, repo: InMemoryJobRepo = Depends(get_repo),
                           current=Depends(get_current_driver)):
    if driver_id != current:
        raise HTTPException(403, "Drivers can only list their own job orders")
    return [j.to_wire() for j in await repo.list_for_driver(driver_id)]


@router.get("/payments/{payment_id}")
async def get_payment(payment_id: str, repo: InMemoryJobRepo = Depends(get_repo)):
    return (await _job_or_404(repo, payment_id)).to_wire()


@router.put("/driver/job/{payment_id}/status")
async def update_job_order_status(payment_id: str, body: JobOrderStatusUpdate,
                                  repo: InMemoryJobRepo = Depends(get_repo),
                                  claims: dict = Depends(get_current_claims)):
    current = claims["sub"]
    rec = await _job_or_404(repo, payment_id)

    # Drivers can only move jobs that are unclaimed or already theirs
    if rec.driver_id and rec.driver_id != current:
        raise HTTPException(403, "Job order is assigned to another driver")

    src, dst = rec.status, body.status
    if src == dst:
        return rec.to_wire()
    if not can_transition(src, dst):
        raise HTTPException(409, f"Transition {src.value} -> {dst.value} not allowed")
    if (src, dst) in STAFF_ONLY and claims.get("role") not in STAFF_ROLES:
        raise HTTPException(403, f"Transition {src.value} -> {dst.value} is not a driver action")

    if dst is JobStatus.ACCEPTED:
        others = [j for j in await repo.active_for_driver(current) if j.id != rec.id]
        if others:
            raise HTTPException(409, "Driver already has an active job order")
    if dst is JobStatus.COMPLETED and not rec.has_proof:
        raise HTTPException(409, "Proof photo required before completion")

    updated = await repo.set_status(payment_id, dst, driver_id=current if dst is JobStatus.ACCEPTED else None)
    return updated.to_wire()


@router.post("/payments/{payment_id}/confirmation-image")
async def upload_confirmation_image(payment_id: str, body: ConfirmationImageIn,
                                    repo: InMemoryJobRepo = Depends(get_repo),
                                    current=Depends(get_current_driver)):
    rec = await _job_or_404(repo, payment_id)
    if rec.driver_id != current:
        raise HTTPException(403, "Job order is assigned to another driver")
    await repo.set_proof(payment_id, body.image_url)
    return {"ok": True, "imageUrl": body.image_url}
