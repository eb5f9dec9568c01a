"""
Order Service — Payment Service へのゲートウェイ

決済はソフトな依存: 失敗しても注文は取り消さない。
そのためこのゲートウェイは例外を投げず、常に AuthorizationResult を返す。

  ┌──────────────────────┬───────────────────────────────┐
  │ 201 + completed      │ approved (payment あり)        │
  │ 402 + failed         │ declined (payment あり)        │
  │ タイムアウト・通信失敗 │ unavailable (payment なし)     │
  │ その他のステータス     │ unavailable (payment なし)     │
  └──────────────────────┴───────────────────────────────┘
"""

import logging
from dataclasses import dataclass

import httpx

from .aggregate import Order

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthorizationResult:
    payment: dict | None = None
    error: str | None = None

    @property
    def approved(self) -> bool:
        return self.payment is not None and self.payment.get("status") == "completed"

    @property
    def payment_id(self) -> str | None:
        return self.payment.get("id") if self.payment else None


class PaymentGateway:
    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    async def authorize(
        self,
        order: Order,
        currency: str = "USD",
        method: str = "card",
    ) -> AuthorizationResult:
        async with httpx.AsyncClient(
            timeout=self.timeout, transport=self.transport
        ) as client:
            try:
                resp = await client.post(
                    f"{self.base_url}/payments",
                    json={
                        "orderId": order.id,
                        "amount": order.total_amount,
                        "currency": currency,
                        "method": method,
                    },
                )
            except httpx.HTTPError as e:
                logger.error("Payment initiation failed for %s: %r", order.id, e)
                return AuthorizationResult(error=f"Payment service unavailable: {e!r}")

        try:
            body = resp.json()
        except ValueError:
            body = None
        if not isinstance(body, dict):
            logger.error("Payment service sent an unreadable body for %s", order.id)
            return AuthorizationResult(
                error=f"Payment service responded {resp.status_code} without a payment"
            )

        if resp.status_code == 402:
            logger.info("Payment %s declined for %s", body.get("id"), order.id)
            return AuthorizationResult(
                payment=body, error=body.get("error") or "Payment declined"
            )
        if resp.is_error:
            logger.error("Payment service responded %s for %s", resp.status_code, order.id)
            return AuthorizationResult(
                error=f"Payment service responded {resp.status_code}"
            )
        return AuthorizationResult(payment=body)
