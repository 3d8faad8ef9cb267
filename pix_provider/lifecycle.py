"""Payment lifecycle: creation, expiry view and the PENDING -> PAID transition.

EXPIRED is never stored. It is derived from the clock whenever a payment is
read or a transition is attempted.
"""
import logging
from datetime import datetime
from typing import Callable
from uuid import uuid4
from pydantic import ValidationError as SchemaValidationError
from pix_provider.codegen import CodeGenerator, Merchant
from pix_provider.errors import (
    AlreadyExpiredError,
    AlreadyPaidError,
    CodeGenerationError,
    NotFoundError,
    ValidationError,
)
from pix_provider.models import PaymentStatus, utcnow
from pix_provider.notifier import WebhookNotifier
from pix_provider.repository import PaymentRepository
from pix_provider.schemas import PaidPayment, Payment, PaymentCreate, PaymentRead

logger = logging.getLogger("pix_provider")

PAYMENT_PAID_EVENT = "payment.paid"
ID_LENGTH = 25


def new_payment_id() -> str:
    return uuid4().hex[:ID_LENGTH]


def is_expired(payment: Payment, now: datetime) -> bool:
    return now > payment.expires_at


def derive_status(payment: Payment, now: datetime) -> PaymentStatus:
    if payment.status != PaymentStatus.PAID and is_expired(payment, now):
        return PaymentStatus.EXPIRED
    return payment.status


class PaymentLifecycleEngine:
    def __init__(
        self,
        repository: PaymentRepository,
        code_generator: CodeGenerator,
        notifier: WebhookNotifier,
        merchant: Merchant,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.repository = repository
        self.code_generator = code_generator
        self.notifier = notifier
        self.merchant = merchant
        self.clock = clock

    async def create_payment(self, value, expires_in, description) -> Payment:
        try:
            request = PaymentCreate(value=value, expires_in=expires_in, description=description)
        except SchemaValidationError as e:
            raise ValidationError() from e

        payment_id = new_payment_id()
        try:
            generated = await self.code_generator.generate(
                self.merchant, request.value / 100, request.description, payment_id
            )
        except CodeGenerationError:
            raise
        except Exception as e:
            raise CodeGenerationError(str(e)) from e

        try:
            payment = Payment.new(
                id=payment_id,
                value=request.value,
                description=request.description,
                pix_code=generated.code,
                qr_code=generated.image,
                created_at=self.clock(),
                expires_in=request.expires_in,
            )
        except (SchemaValidationError, OverflowError) as e:
            raise ValidationError() from e

        await self.repository.create(payment)
        logger.info(f"Payment created: {payment_id}")
        return payment

    def get_payment(self, payment_id: str) -> PaymentRead:
        payment = self.repository.find_by_id(payment_id)
        if payment is None:
            raise NotFoundError()

        status = derive_status(payment, self.clock())
        return PaymentRead.model_validate({**payment.model_dump(), "status": status})

    async def simulate_payment(self, payment_id: str) -> PaidPayment:
        def mark_paid(payment: Payment) -> Payment:
            now = self.clock()
            # Expiry wins over every other check, including already-paid
            if is_expired(payment, now):
                raise AlreadyExpiredError()
            if payment.status == PaymentStatus.PAID:
                raise AlreadyPaidError()
            payment.status = PaymentStatus.PAID
            payment.paid_at = now
            return payment

        payment = await self.repository.update(payment_id, mark_paid)

        paid = PaidPayment(
            id=payment.id,
            description=payment.description,
            status=payment.status,
            paid_at=payment.paid_at,
        )
        self.notifier.dispatch(PAYMENT_PAID_EVENT, paid.model_dump(mode="json"))
        logger.info(f"Payment simulated: {payment.id}")
        return paid

    @staticmethod
    def echo_webhook(payload):
        logger.info(f"Webhook received: {payload}")
        return payload
