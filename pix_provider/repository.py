import asyncio
import logging
from typing import Callable, Dict, List, Optional
from pydantic import ValidationError as SchemaValidationError
from pix_provider.errors import NotFoundError, StorageError, ValidationError
from pix_provider.schemas import Payment
from pix_provider.store import PaymentStore

logger = logging.getLogger("pix_provider")

Mutator = Callable[[Payment], Payment]


class PaymentRepository:
    """In-memory payment map mirrored to a durable store.

    Every mutation, persistence included, runs behind one writer lock, so a
    full-collection save never carries a stale copy of another record.
    Persistence is best-effort: a failed save is logged and the in-memory
    state still advances. With ``strict`` set the failure is also raised.
    Records that fail validation on load are kept verbatim and written back
    on every save.
    """

    def __init__(self, store: PaymentStore, strict: bool = False):
        self.store = store
        self.strict = strict
        self._payments: Dict[str, Payment] = {}
        self._unreadable: List[dict] = []
        self._lock = asyncio.Lock()

    async def load(self) -> None:
        try:
            records = await self.store.load()
        except StorageError as e:
            logger.error(f"Could not load payments, starting empty: {e}")
            return

        payments = {}
        unreadable = []
        for record in records:
            try:
                payment = Payment.model_validate(record)
            except SchemaValidationError as e:
                logger.warning(f"Keeping unreadable payment record as is: {e}")
                unreadable.append(record)
                continue
            payments[payment.id] = payment
        async with self._lock:
            self._payments = payments
            self._unreadable = unreadable
        logger.info(f"Loaded {len(payments)} payments from store ({len(unreadable)} unreadable)")

    async def create(self, payment: Payment) -> Payment:
        async with self._lock:
            if payment.id in self._payments or payment.id in self._unreadable_ids():
                raise ValidationError(f"Payment {payment.id} already exists.")
            self._payments[payment.id] = payment
            await self._persist()
        return payment

    def find_by_id(self, payment_id: str) -> Optional[Payment]:
        return self._payments.get(payment_id)

    async def update(self, payment_id: str, mutator: Mutator) -> Payment:
        """Apply ``mutator`` to the current record and persist the result.

        The mutator runs under the writer lock; if it raises, nothing is
        written and the error propagates.
        """
        async with self._lock:
            current = self._payments.get(payment_id)
            if current is None:
                raise NotFoundError()
            updated = mutator(current.model_copy())
            self._payments[payment_id] = Payment.model_validate(updated.model_dump())
            await self._persist()
            return self._payments[payment_id]

    def all(self) -> List[Payment]:
        return list(self._payments.values())

    def _unreadable_ids(self) -> set:
        return {r.get("id") for r in self._unreadable if isinstance(r, dict)}

    async def _persist(self) -> None:
        records = [p.to_record() for p in self._payments.values()] + self._unreadable
        try:
            await self.store.save(records)
        except StorageError as e:
            logger.error(f"Write data error: {e}")
            if self.strict:
                raise
