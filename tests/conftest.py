import pytest
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock
from pix_provider.codegen import GeneratedCode, Merchant
from pix_provider.errors import StorageError
from pix_provider.lifecycle import PaymentLifecycleEngine
from pix_provider.notifier import WebhookNotifier
from pix_provider.repository import PaymentRepository
from pix_provider.schemas import Payment

START = datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
MERCHANT = Merchant("pix@example.com", "Loja Teste", "Sao Paulo")


class FakeClock:
    def __init__(self, now: datetime = START):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float):
        self.now += timedelta(seconds=seconds)


class MemoryStore:
    def __init__(self, records=None):
        self.records = list(records or [])
        self.saves = 0

    async def load(self):
        return [dict(r) for r in self.records]

    async def save(self, records):
        self.records = [dict(r) for r in records]
        self.saves += 1


class FailingStore(MemoryStore):
    async def load(self):
        raise StorageError("Read data error: disk gone")

    async def save(self, records):
        raise StorageError("Write data error: disk full")


class StubCodeGenerator:
    def __init__(self, error: Exception = None):
        self.error = error
        self.calls = []

    async def generate(self, merchant, amount, description, reference):
        self.calls.append((merchant, amount, description, reference))
        if self.error:
            raise self.error
        return GeneratedCode(code=f"000201-{reference}", image="data:image/svg+xml;base64,PHN2Zy8+")


def make_payment(payment_id="a1b2c3", created_at=START, expires_in=60, **overrides) -> Payment:
    payment = Payment.new(
        id=payment_id,
        value=1000,
        description="order-1",
        pix_code="000201",
        qr_code="data:image/svg+xml;base64,PHN2Zy8+",
        created_at=created_at,
        expires_in=expires_in,
    )
    return payment.model_copy(update=overrides) if overrides else payment


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def repository(store):
    return PaymentRepository(store)


@pytest.fixture
def code_generator():
    return StubCodeGenerator()


@pytest.fixture
def notifier():
    return MagicMock(spec=WebhookNotifier)


@pytest.fixture
def engine(repository, code_generator, notifier, clock):
    return PaymentLifecycleEngine(
        repository=repository,
        code_generator=code_generator,
        notifier=notifier,
        merchant=MERCHANT,
        clock=clock,
    )
