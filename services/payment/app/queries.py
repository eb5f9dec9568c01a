"""
Payment Service — クエリハンドラ (Read 側)
"""

from ...shared.store import EntityStore
from .aggregate import Payment, PaymentStatus


def get_payment(store: EntityStore[Payment], payment_id: str) -> Payment:
    return store.require(payment_id)


def list_payments(store: EntityStore[Payment]) -> list[Payment]:
    return sorted(store.values(), key=lambda p: p.created_at, reverse=True)


def payment_stats(store: EntityStore[Payment]) -> dict:
    """ヘルスチェック用のステータス別件数"""
    payments = store.values()
    stats = {"total": len(payments)}
    for status in PaymentStatus:
        stats[status.value] = sum(1 for p in payments if p.status == status)
    return stats
