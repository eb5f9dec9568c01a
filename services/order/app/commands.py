"""
Order Service — コマンドハンドラ (Write 側)

注文ストアを変更する唯一の入口。各コマンドはキー単位のロック内で
read-modify-write を 1 ステップとして行う。
イベントの発行は呼び出し側(orchestrator)が結果を見て行う。
"""

import logging

from ...shared.store import EntityStore
from .aggregate import LineItem, Order, OrderStatus

logger = logging.getLogger(__name__)


def create_order(
    store: EntityStore[Order],
    user_id: str,
    items: list[LineItem],
) -> Order:
    """pending の注文を作成して保存する。合計金額はここで確定する。"""
    order = Order.place(user_id, items)
    store.add(order.id, order)
    logger.info("Order created: %s (total=%.2f)", order.id, order.total_amount)
    return order


async def confirm_order(
    store: EntityStore[Order],
    order_id: str,
    payment_id: str,
) -> Order:
    """決済成功時: confirmed にして支払い ID を記録する。"""
    order = await store.update(order_id, lambda o: o.confirm_payment(payment_id))
    logger.info("Order confirmed: %s (payment=%s)", order_id, payment_id)
    return order


async def change_status(
    store: EntityStore[Order],
    order_id: str,
    new_status: OrderStatus,
) -> tuple[Order, OrderStatus]:
    """ステータスを遷移させ、(更新後の注文, 直前のステータス) を返す。"""
    previous: list[OrderStatus] = []

    def transition(current: Order) -> Order:
        previous.append(current.status)
        return current.transition_to(new_status)

    order = await store.update(order_id, transition)
    logger.info("Order %s: %s -> %s", order_id, previous[0].value, new_status.value)
    return order, previous[0]
