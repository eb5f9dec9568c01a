"""
Order Service — 注文集約 (Order Aggregate)

合計金額は作成時に明細から 1 度だけ計算し、以後は変更しない。
ステータスは遷移メソッド経由でのみ変わる。遷移メソッドは新しい
インスタンスを返し、自身は変更しない（ストアが丸ごと置き換える）。

状態遷移:
    PENDING → CONFIRMED → SHIPPED → DELIVERED
    PENDING / CONFIRMED → CANCELLED
"""

from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum

from pydantic import Field

from ...shared.errors import InvalidTransitionError, ValidationError
from ...shared.models import CamelModel, new_id, utcnow


class OrderStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


ALLOWED_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.CONFIRMED, OrderStatus.CANCELLED}),
    OrderStatus.CONFIRMED: frozenset({OrderStatus.SHIPPED, OrderStatus.CANCELLED}),
    OrderStatus.SHIPPED: frozenset({OrderStatus.DELIVERED}),
    OrderStatus.DELIVERED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}

CENT = Decimal("0.01")


class LineItem(CamelModel):
    product_id: str
    quantity: int = Field(ge=1)
    unit_price: float = Field(ge=0)


def compute_total(items: list[LineItem]) -> float:
    """Σ(quantity × unitPrice) を 10 進数で計算し、小数点以下 2 桁に丸める。"""
    total = sum(
        (Decimal(str(item.unit_price)) * item.quantity for item in items),
        Decimal("0"),
    )
    return float(total.quantize(CENT, rounding=ROUND_HALF_UP))


class Order(CamelModel):
    id: str
    user_id: str
    items: list[LineItem]
    total_amount: float
    status: OrderStatus = OrderStatus.PENDING
    payment_id: str | None = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def place(cls, user_id: str, items: list[LineItem]) -> "Order":
        if not items:
            raise ValidationError("Order must contain at least one item")
        now = utcnow()
        return cls(
            id=new_id("ord"),
            user_id=user_id,
            items=list(items),
            total_amount=compute_total(items),
            created_at=now,
            updated_at=now,
        )

    def can_transition_to(self, new_status: OrderStatus) -> bool:
        return new_status in ALLOWED_TRANSITIONS[self.status]

    def transition_to(self, new_status: OrderStatus) -> "Order":
        if not self.can_transition_to(new_status):
            raise InvalidTransitionError(
                f"Cannot move order from {self.status.value} to {new_status.value}",
                orderId=self.id,
                currentStatus=self.status.value,
                requestedStatus=new_status.value,
            )
        return self.model_copy(update={"status": new_status, "updated_at": utcnow()})

    def confirm_payment(self, payment_id: str) -> "Order":
        confirmed = self.transition_to(OrderStatus.CONFIRMED)
        return confirmed.model_copy(update={"payment_id": payment_id})
