"""
Notification Service — 通知集約

状態遷移:
    PENDING → SENT
    PENDING → FAILED

注文・支払いとは ID による相関参照だけを持ち、構造的な所有関係はない。
"""

from datetime import datetime
from enum import Enum

from ...shared.models import CamelModel, new_id, utcnow


class Channel(str, Enum):
    EMAIL = "email"
    SMS = "sms"
    PUSH = "push"


class NotificationStatus(str, Enum):
    PENDING = "pending"
    SENT = "sent"
    FAILED = "failed"


class Notification(CamelModel):
    id: str
    user_id: str
    channel: Channel
    subject: str
    message: str
    status: NotificationStatus = NotificationStatus.PENDING
    related_order_id: str | None = None
    related_payment_id: str | None = None
    event_type: str | None = None
    error: str | None = None
    created_at: datetime
    sent_at: datetime | None = None

    @classmethod
    def draft(
        cls,
        user_id: str,
        channel: Channel,
        subject: str,
        message: str,
        related_order_id: str | None = None,
        related_payment_id: str | None = None,
        event_type: str | None = None,
    ) -> "Notification":
        return cls(
            id=new_id("ntf"),
            user_id=user_id,
            channel=channel,
            subject=subject,
            message=message,
            related_order_id=related_order_id,
            related_payment_id=related_payment_id,
            event_type=event_type,
            created_at=utcnow(),
        )

    def mark_sent(self, sent_at: datetime) -> "Notification":
        return self.model_copy(update={"status": NotificationStatus.SENT, "sent_at": sent_at})

    def mark_failed(self, error: str) -> "Notification":
        return self.model_copy(update={"status": NotificationStatus.FAILED, "error": error})
