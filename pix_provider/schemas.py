from datetime import datetime, timedelta
from typing import Optional
from pydantic import BaseModel, Field, StrictInt, StrictStr, model_validator
from pix_provider.models import PaymentStatus, PERSISTED_STATUSES

# Expiry window: at least a millisecond, at most 100 years
MIN_EXPIRES_IN = 0.001
MAX_EXPIRES_IN = 100 * 365 * 24 * 3600


class PaymentCreate(BaseModel):
    value: StrictInt = Field(..., gt=0, examples=[1000])
    expires_in: float = Field(..., ge=MIN_EXPIRES_IN, le=MAX_EXPIRES_IN, strict=True, examples=[60])
    description: StrictStr = Field(..., examples=["order-1"])


class Payment(BaseModel):
    """Persisted payment record. Status is PENDING or PAID only."""

    id: str
    value: int = Field(..., gt=0)
    description: str
    pix_code: str
    qr_code: str
    created_at: datetime
    # Absent on records written before expires_in was stored
    expires_in: Optional[float] = Field(default=None, gt=0)
    expires_at: datetime
    status: PaymentStatus = PaymentStatus.PENDING
    paid_at: Optional[datetime] = None

    @model_validator(mode="after")
    def check_lifecycle(self) -> "Payment":
        if self.status not in PERSISTED_STATUSES:
            raise ValueError(f"status {self.status.value} cannot be persisted")
        if self.expires_at <= self.created_at:
            raise ValueError("expires_at must be after created_at")
        if (self.paid_at is not None) != (self.status == PaymentStatus.PAID):
            raise ValueError("paid_at must be set if and only if status is PAID")
        return self

    @classmethod
    def new(cls, *, id: str, value: int, description: str, pix_code: str, qr_code: str,
            created_at: datetime, expires_in: float) -> "Payment":
        return cls(
            id=id,
            value=value,
            description=description,
            pix_code=pix_code,
            qr_code=qr_code,
            created_at=created_at,
            expires_in=expires_in,
            expires_at=created_at + timedelta(seconds=expires_in),
            status=PaymentStatus.PENDING,
        )

    def to_record(self) -> dict:
        return self.model_dump(mode="json", exclude_none=True)


class PaymentRead(BaseModel):
    """Externally visible payment; status may be the derived EXPIRED."""

    id: str
    value: int
    description: str
    pix_code: str
    qr_code: str
    created_at: datetime
    expires_in: Optional[float] = None
    expires_at: datetime
    status: PaymentStatus
    paid_at: Optional[datetime] = None


class PaidPayment(BaseModel):
    id: str
    description: str
    status: PaymentStatus
    paid_at: datetime

