"""
Order Service — 注文オーケストレーター

中央のオーケストレーターが依存サービスの呼び出し順序と、
それぞれの失敗をどう扱うかを決める。

  フロー:
  ┌──────────────────────────────────────────────────────────────┐
  │  1. Identity Lookup でユーザーを検証     (クリティカル・短いタイムアウト) │
  │     └─ 失敗 → InvalidUserError、注文は作らない                    │
  │  2. 合計金額を計算し pending で注文を保存                          │
  │  3. Payment Service に承認を依頼        (ソフト・長いタイムアウト)    │
  │     ├─ 承認 → confirmed + paymentId                              │
  │     └─ 拒否・タイムアウト・通信失敗 → pending のまま（ロールバックしない）│
  │  4. OrderCreated を発行                 (ベストエフォート・待たない) │
  │  5. 呼び出し元に注文を返す                                         │
  └──────────────────────────────────────────────────────────────┘

クリティカルな呼び出しは例外で即座に中断し、ソフトな呼び出しは
結果の値(AuthorizationResult)を見て分岐する。
"""

import logging
from dataclasses import dataclass

from ...shared.dispatcher import EventDispatcher
from ...shared.errors import (
    InvalidTransitionError,
    InvalidUserError,
    ServiceError,
    ValidationError,
)
from ...shared.events import EventType, new_event
from ...shared.identity import IdentityClient
from ...shared.store import EntityStore
from . import commands
from .aggregate import LineItem, Order, OrderStatus
from .events import OrderCreated, OrderUpdated
from .payment_gateway import AuthorizationResult, PaymentGateway

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OrderPlacement:
    order: Order
    authorization: AuthorizationResult

    @property
    def payment(self) -> dict | None:
        return self.authorization.payment


class OrderOrchestrator:
    def __init__(
        self,
        store: EntityStore[Order],
        identity: IdentityClient,
        payments: PaymentGateway,
        dispatcher: EventDispatcher,
    ):
        self.store = store
        self.identity = identity
        self.payments = payments
        self.dispatcher = dispatcher

    async def create_order(self, user_id: str, items: list[LineItem]) -> OrderPlacement:
        if not items:
            raise ValidationError("Order must contain at least one item")

        # ── Step 1: ユーザーを検証 ──────────────────
        try:
            user = await self.identity.get_user(user_id)
        except ServiceError as e:
            logger.error("User validation failed for %s: %s", user_id, e.message)
            raise InvalidUserError(
                f"User {user_id} not found or user-service unavailable",
                userId=user_id,
            ) from e
        logger.info("User validated: %s", user.display_name)

        # ── Step 2: 注文を作成 ──────────────────────
        order = commands.create_order(self.store, user_id, items)

        # ── Step 3: 決済を依頼 ──────────────────────
        authorization = await self.payments.authorize(order)
        if authorization.approved:
            try:
                order = await commands.confirm_order(
                    self.store, order.id, authorization.payment_id
                )
            except InvalidTransitionError:
                # 決済の間に注文が cancelled にされた場合はそのまま残す
                order = self.store.require(order.id)
                logger.warning(
                    "Order %s moved to %s while payment %s settled",
                    order.id, order.status.value, authorization.payment_id,
                )
        else:
            logger.warning(
                "Order %s stays pending: %s", order.id, authorization.error
            )

        # ── Step 4: イベントを発行 ──────────────────
        self.dispatcher.publish(
            new_event(
                EventType.ORDER_CREATED,
                OrderCreated(
                    order_id=order.id,
                    user_id=order.user_id,
                    total_amount=order.total_amount,
                    items=order.items,
                    status=order.status.value,
                    payment_id=order.payment_id,
                ),
            )
        )
        logger.info("Order creation complete: %s (%s)", order.id, order.status.value)
        return OrderPlacement(order=order, authorization=authorization)

    async def update_status(self, order_id: str, new_status: OrderStatus) -> Order:
        order, previous = await commands.change_status(self.store, order_id, new_status)
        self.dispatcher.publish(
            new_event(
                EventType.ORDER_UPDATED,
                OrderUpdated(
                    order_id=order.id,
                    user_id=order.user_id,
                    status=order.status.value,
                    previous_status=previous.value,
                ),
            )
        )
        return order
