"""
Order Service — クエリハンドラ (Read 側)
"""

from ...shared.store import EntityStore
from .aggregate import Order, OrderStatus


def get_order(store: EntityStore[Order], order_id: str) -> Order:
    return store.require(order_id)


def list_orders(store: EntityStore[Order]) -> list[Order]:
    """全注文を新しい順に返す。"""
    return sorted(store.values(), key=lambda o: o.created_at, reverse=True)


def order_stats(store: EntityStore[Order]) -> dict:
    orders = store.values()
    stats = {"total": len(orders)}
    for status in OrderStatus:
        stats[status.value] = sum(1 for o in orders if o.status == status)
    return stats
