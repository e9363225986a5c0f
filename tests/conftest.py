# tests/conftest.py
import logging
from datetime import datetime, timezone

import pytest
from asgi_lifespan import LifespanManager
from fastapi.testclient import TestClient
from httpx import ASGITransport, AsyncClient

from wasteflow.core.session import SessionContext
from wasteflow.devserver.main import create_app
from wasteflow.devserver.repo import InMemoryJobRepo
from wasteflow.devserver.security import create_token
from wasteflow.models.job_order import JobOrderRecord
from wasteflow.services.api_client import ApiClient

LAST_WEEK = datetime(2025, 1, 6, 8, 0, tzinfo=timezone.utc)


def make_job(job_id: str, status: str = "Available", driver_id=None, **extra) -> JobOrderRecord:
    doc = {
        "id": job_id,
        "orderId": f"ORD-{job_id}",
        "customerName": "Maria Santos",
        "address": "12 Rizal St",
        "latitude": 14.5995,
        "longitude": 120.9842,
        "status": "PAID",
        "jobOrderStatus": status,
        "driverId": driver_id,
        "amount": 500.0,
        "tax": 60.0,
        "totalAmount": 560.0,
        "createdAt": LAST_WEEK.isoformat(),
        "updatedAt": LAST_WEEK.isoformat(),
    }
    doc.update(extra)
    return JobOrderRecord.model_validate(doc)


def put_job(repo: InMemoryJobRepo, job_id: str, status: str = "Available", driver_id=None, **extra):
    rec = make_job(job_id, status, driver_id, **extra)
    repo.jobs[rec.id] = rec
    return rec


@pytest.fixture(scope="session")
def anyio_backend():
    # keep AnyIO on asyncio for the whole test session
    return "asyncio"


@pytest.fixture(autouse=True)
def _reset_wasteflow_logging():
    yield
    logging.getLogger("wasteflow").handlers.clear()


@pytest.fixture
def repo():
    return InMemoryJobRepo()


@pytest.fixture
def dev_app(repo):
    return create_app(repo)


@pytest.fixture
def api(dev_app):
    with TestClient(dev_app) as tc:
        yield ApiClient(client=tc)


@pytest.fixture
def driver_a():
    return SessionContext(driver_id="A", token=create_token("A"))


@pytest.fixture
def driver_b():
    return SessionContext(driver_id="B", token=create_token("B"))


@pytest.fixture
async def dev_client(dev_app):
    async with LifespanManager(dev_app):
        transport = ASGITransport(app=dev_app, raise_app_exceptions=True)
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            yield ac
