"""
Payment Service — 決済プロセッサのシミュレーション

本番なら Stripe や PayPal と連携する部分。ここでは成功確率
(OutcomePolicy) と処理遅延だけで承認結果を決める。
"""

import logging
from dataclasses import dataclass

from ...shared.simulation import OutcomePolicy, simulate_latency
from .aggregate import new_transaction_id

logger = logging.getLogger(__name__)

DECLINE_REASON = "Payment declined by processor"


@dataclass(frozen=True)
class Settlement:
    approved: bool
    transaction_id: str | None = None
    error: str | None = None


class PaymentProcessor:
    def __init__(
        self,
        policy: OutcomePolicy,
        latency: float = 1.0,
        refund_latency: float = 0.5,
    ):
        self.policy = policy
        self.latency = latency
        self.refund_latency = refund_latency

    async def settle(self, amount: float) -> Settlement:
        await simulate_latency(self.latency)
        if self.policy.succeeds():
            return Settlement(approved=True, transaction_id=new_transaction_id())
        logger.info("Processor declined payment of %.2f", amount)
        return Settlement(approved=False, error=DECLINE_REASON)

    async def settle_refund(self) -> str:
        await simulate_latency(self.refund_latency)
        return new_transaction_id()
