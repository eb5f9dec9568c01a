"""
Notification Service — 送信シミュレーション

本番なら SendGrid / Twilio / Firebase などを呼ぶ部分。
成功確率 (OutcomePolicy) と送信遅延だけで結果を決める。
"""

import logging
from dataclasses import dataclass
from datetime import datetime

from ...shared.models import utcnow
from ...shared.simulation import OutcomePolicy, simulate_latency
from .aggregate import Notification

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DeliveryResult:
    success: bool
    sent_at: datetime | None = None
    error: str | None = None


class ChannelSender:
    def __init__(self, policy: OutcomePolicy, latency: float = 0.5):
        self.policy = policy
        self.latency = latency

    async def send(self, notification: Notification) -> DeliveryResult:
        logger.info(
            "Sending %s notification to user: %s",
            notification.channel.value, notification.user_id,
        )
        await simulate_latency(self.latency)
        if self.policy.succeeds():
            return DeliveryResult(success=True, sent_at=utcnow())
        return DeliveryResult(success=False, error="Failed to deliver")
