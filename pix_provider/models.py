from sqlalchemy import Column, Integer, Text, DateTime
from sqlalchemy.orm import declarative_base
from datetime import datetime, timezone
import enum

Base = declarative_base()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PaymentStatus(str, enum.Enum):
    PENDING = "PENDING"
    PAID = "PAID"
    EXPIRED = "EXPIRED"  # derived at read time, never persisted


PERSISTED_STATUSES = (PaymentStatus.PENDING, PaymentStatus.PAID)


class PaymentStoreBlob(Base):
    __tablename__ = "payment_store"

    id = Column(Integer, primary_key=True)
    data = Column(Text, nullable=False)  # whole payment collection as JSON
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)
