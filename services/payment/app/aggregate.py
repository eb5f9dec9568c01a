"""
Payment Service — 支払い集約 (Payment Aggregate)

状態遷移:
    PENDING → COMPLETED → REFUNDED
    PENDING → FAILED      (終端)

FAILED / REFUNDED からはどこへも遷移できない。
遷移メソッドは新しいインスタンスを返し、自身は変更しない。
"""

from datetime import datetime
from enum import Enum
from uuid import uuid4

from ...shared.errors import InvalidStateError
from ...shared.models import CamelModel, new_id, utcnow


class PaymentStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"


class Currency(str, Enum):
    USD = "USD"
    EUR = "EUR"
    GBP = "GBP"


class PaymentMethod(str, Enum):
    CARD = "card"
    BANK_TRANSFER = "bank_transfer"
    PAYPAL = "paypal"


def new_transaction_id() -> str:
    return f"txn_{uuid4().hex[:16]}"


class Payment(CamelModel):
    id: str
    order_id: str
    amount: float
    currency: Currency
    method: PaymentMethod
    status: PaymentStatus = PaymentStatus.PENDING
    transaction_id: str | None = None
    error: str | None = None
    created_at: datetime
    processed_at: datetime | None = None
    refunded_at: datetime | None = None
    refund_transaction_id: str | None = None

    @classmethod
    def open(
        cls,
        order_id: str,
        amount: float,
        currency: Currency,
        method: PaymentMethod,
    ) -> "Payment":
        return cls(
            id=new_id("pay"),
            order_id=order_id,
            amount=amount,
            currency=currency,
            method=method,
            created_at=utcnow(),
        )

    def _require(self, expected: PaymentStatus, action: str) -> None:
        if self.status != expected:
            raise InvalidStateError(
                f"Payment status is {self.status.value}, only {expected.value} "
                f"payments can be {action}",
                paymentId=self.id,
                status=self.status.value,
            )

    def complete(self, transaction_id: str) -> "Payment":
        self._require(PaymentStatus.PENDING, "completed")
        return self.model_copy(
            update={
                "status": PaymentStatus.COMPLETED,
                "transaction_id": transaction_id,
                "processed_at": utcnow(),
            }
        )

    def fail(self, reason: str) -> "Payment":
        self._require(PaymentStatus.PENDING, "failed")
        return self.model_copy(
            update={
                "status": PaymentStatus.FAILED,
                "error": reason,
                "processed_at": utcnow(),
            }
        )

    def refund(self, refund_transaction_id: str) -> "Payment":
        self._require(PaymentStatus.COMPLETED, "refunded")
        return self.model_copy(
            update={
                "status": PaymentStatus.REFUNDED,
                "refunded_at": utcnow(),
                "refund_transaction_id": refund_transaction_id,
            }
        )

    def check_refundable(self) -> None:
        self._require(PaymentStatus.COMPLETED, "refunded")
