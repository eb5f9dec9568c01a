"""
Notification Service — Order Service の注文参照クライアント

PaymentProcessed の payload にはユーザー ID が含まれないため、
注文を引いて userId を得る。
"""

import logging

import httpx

from ...shared.errors import DependencyUnavailableError, NotFoundError

logger = logging.getLogger(__name__)


class OrderLookupClient:
    def __init__(
        self,
        base_url: str,
        timeout: float = 5.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    async def get_order(self, order_id: str) -> dict:
        async with httpx.AsyncClient(
            timeout=self.timeout, transport=self.transport
        ) as client:
            try:
                resp = await client.get(f"{self.base_url}/orders/{order_id}")
            except httpx.HTTPError as e:
                raise DependencyUnavailableError(
                    f"Order service unavailable: {e}", orderId=order_id
                ) from e

        if resp.status_code == 404:
            raise NotFoundError(f"Order {order_id} not found", orderId=order_id)
        if resp.is_error:
            raise DependencyUnavailableError(
                f"Order service responded {resp.status_code}", orderId=order_id
            )
        return resp.json()
