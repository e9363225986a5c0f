from typing import Any, List, Optional

import httpx
from pydantic import ValidationError

from wasteflow.core.config import settings
from wasteflow.core.errors import ApiError
from wasteflow.core.logging import get_logger
from wasteflow.core.states import JobStatus
from wasteflow.models.job_order import ConfirmationImageIn, JobOrderRecord, JobOrderStatusUpdate

log = get_logger("api")


class ApiClient:
    """Driver-side client for the pickup/payment REST API.

    Pass `client` to reuse an existing httpx.Client (a FastAPI TestClient in
    tests, or one built with a custom transport).
    """

    def __init__(self, base_url: Optional[str] = None, timeout: Optional[float] = None,
                 client: Optional[httpx.Client] = None):
        self.base_url = (base_url or settings.api_base).rstrip("/")
        if client is None:
            client = httpx.Client(
                base_url=self.base_url,
                timeout=timeout if timeout is not None else settings.http_timeout,
            )
        self._http = client

    def close(self):
        self._http.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    # ---------------- HTTP helpers ----------------
    def _headers(self, token: Optional[str] = None) -> dict:
        h = {"Accept": "application/json"}
        if token:
            h["Authorization"] = token if token.startswith("Bearer ") else f"Bearer {token}"
        return h

    def _request(self, method: str, path: str, token: Optional[str] = None, json=None) -> Any:
        log.debug("%s %s %s", method, path, json if json is not None else "")
        r = self._http.request(method, path, json=json, headers=self._headers(token))
        log.debug("-> %s %s", r.status_code, r.text[:200])
        if r.status_code >= 400:
            raise ApiError(r.status_code, r.text)
        if not r.content:
            return None
        return r.json()

    # ---------------- endpoints ----------------
    def get_payments_by_driver_id(self, driver_id: str, token: str) -> List[JobOrderRecord]:
        """Records that fail validation (unknown status and the like) are logged and left out."""
        data = self._request("GET", f"/api/payments/driver/{driver_id}", token=token)
        if data is None:
            return []
        if not isinstance(data, list):
            raise ValueError(f"expected a list of job orders, got {type(data).__name__}")
        records = []
        for doc in data:
            try:
                records.append(JobOrderRecord.model_validate(doc))
            except ValidationError as ex:
                doc_id = doc.get("id") if isinstance(doc, dict) else None
                log.warning("skipping job order %s for driver %s: %s", doc_id, driver_id, ex)
        return records

    def get_payment(self, payment_id: str, token: Optional[str] = None) -> JobOrderRecord:
        data = self._request("GET", f"/api/payments/{payment_id}", token=token)
        if data is None:
            raise ApiError(204, "empty payment body")
        return JobOrderRecord.model_validate(data)

    def update_job_order_status(self, payment_id: str, status: JobStatus, token: str) -> Optional[JobOrderRecord]:
        """Returns the server's record, or None when it answered 2xx without one."""
        body = JobOrderStatusUpdate(status=status).model_dump(by_alias=True, mode="json")
        data = self._request("PUT", f"/api/driver/job/{payment_id}/status", token=token, json=body)
        if not data:
            return None
        return JobOrderRecord.model_validate(data)

    def upload_payment_confirmation_image(self, payment_id: str, image_url: str, token: str) -> dict:
        body = ConfirmationImageIn(image_url=image_url).model_dump(by_alias=True)
        data = self._request("POST", f"/api/payments/{payment_id}/confirmation-image", token=token, json=body)
        return data or {}
