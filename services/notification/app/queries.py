"""
Notification Service — クエリハンドラ (Read 側)
"""

from ...shared.store import EntityStore
from .aggregate import Notification, NotificationStatus


def get_notification(store: EntityStore[Notification], notification_id: str) -> Notification:
    return store.require(notification_id)


def list_notifications(store: EntityStore[Notification]) -> list[Notification]:
    return sorted(store.values(), key=lambda n: n.created_at, reverse=True)


def notification_stats(store: EntityStore[Notification]) -> dict:
    notifications = store.values()
    stats = {"total": len(notifications)}
    for status in NotificationStatus:
        stats[status.value] = sum(1 for n in notifications if n.status == status)
    return stats
