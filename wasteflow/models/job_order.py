from datetime import datetime, timezone
from typing import Any, Optional, Tuple

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator

from wasteflow.core.states import ACTIVE_STATUSES, TERMINAL_STATUSES, JobStatus

# What the driver sees under the stars once the customer has rated the pickup
RATING_FEEDBACK = {
    1: "Poor - Customer was not satisfied",
    2: "Fair - Customer felt service could be better",
    3: "Good - Customer found service satisfactory",
    4: "Very Good - Customer was pleased with service",
    5: "Excellent - Customer was very satisfied!",
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class JobOrderRecord(BaseModel):
    """A pickup job as the server last described it (the payment/order document)."""

    # wire (camelCase) names only: "status" is the payment status, not the job status
    model_config = ConfigDict(extra="ignore")

    id: str
    order_id: Optional[str] = Field(None, alias="orderId")
    driver_id: Optional[str] = Field(None, alias="driverId")
    status: JobStatus = Field(JobStatus.AVAILABLE, alias="jobOrderStatus")
    proof_of_completion_url: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("driverConfirmation", "proofOfCompletionUrl", "proof_of_completion_url"),
        serialization_alias="driverConfirmation",
    )
    service_rating: Optional[int] = Field(None, alias="serviceRating")

    customer_name: Optional[str] = Field(None, alias="customerName")
    customer_email: Optional[str] = Field(None, alias="customerEmail")
    phone_number: Optional[str] = Field(None, alias="phoneNumber")
    address: Optional[str] = None
    latitude: float = 0.0
    longitude: float = 0.0
    waste_type: str = Field("Recyclable", alias="wasteType")
    payment_method: Optional[str] = Field(None, alias="paymentMethod")
    payment_status: Optional[str] = Field(None, alias="status")
    amount: float = 0.0
    tax: float = 0.0
    total_amount: float = Field(0.0, alias="totalAmount")
    notes: Optional[str] = None
    is_delivered: bool = Field(False, alias="isDelivered")

    created_at: Optional[datetime] = Field(None, alias="createdAt")
    updated_at: Optional[datetime] = Field(None, alias="updatedAt")

    @model_validator(mode="before")
    @classmethod
    def _effective_status(cls, data: Any) -> Any:
        # jobOrderStatus wins; older documents only carry the generic status field
        if not isinstance(data, dict):
            return data
        job_status = data.get("jobOrderStatus")
        if job_status is None or (isinstance(job_status, str) and not job_status.strip()):
            data = dict(data)
            try:
                data["jobOrderStatus"] = JobStatus.parse(data.get("status"))
            except ValueError:
                data["jobOrderStatus"] = JobStatus.AVAILABLE
        return data

    @field_validator("status", mode="before")
    @classmethod
    def _parse_status(cls, v):
        return JobStatus.parse(v)

    @field_validator("service_rating", mode="before")
    @classmethod
    def _rating_range(cls, v):
        if v is None:
            return None
        v = int(v)
        if v <= 0:
            return None
        if v > 5:
            raise ValueError("service rating must be between 1 and 5")
        return v

    @field_validator("proof_of_completion_url", mode="before")
    @classmethod
    def _blank_proof(cls, v):
        if v is None:
            return None
        v = str(v).strip()
        return v or None

    @field_validator("created_at", "updated_at")
    @classmethod
    def _aware(cls, v: Optional[datetime]) -> Optional[datetime]:
        if v is not None and v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    # ---------- derived ----------
    @property
    def location(self) -> Tuple[float, float]:
        return (self.latitude, self.longitude)

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def has_proof(self) -> bool:
        return self.proof_of_completion_url is not None

    @property
    def visible_rating(self) -> Optional[int]:
        """Only completed jobs show the customer's rating."""
        if self.status is not JobStatus.COMPLETED:
            return None
        return self.service_rating

    @property
    def rating_feedback(self) -> Optional[str]:
        rating = self.visible_rating
        if rating is None:
            return None
        return RATING_FEEDBACK.get(rating, f"Customer rated: {rating} stars")

    def with_status(self, status: JobStatus, now: Optional[datetime] = None) -> "JobOrderRecord":
        """Local patch used when the server could not confirm an update."""
        status = JobStatus.parse(status)
        update: dict = {"status": status}
        if status is JobStatus.COMPLETED:
            update["updated_at"] = now or _utcnow()
        return self.model_copy(update=update)

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")


class JobOrderStatusUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    status: JobStatus = Field(alias="jobOrderStatus")

    @field_validator("status", mode="before")
    @classmethod
    def _parse_status(cls, v):
        return JobStatus.parse(v)


class ConfirmationImageIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    image_url: str = Field(alias="imageUrl")

    @field_validator("image_url")
    @classmethod
    def _not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("imageUrl cannot be blank")
        return v
