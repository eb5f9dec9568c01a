"""
Order Service — FastAPI エントリーポイント

注文レコードを所有し、注文作成のワークフローをオーケストレーションする。

┌────────┐  POST /orders  ┌───────────────┐──▶ User Service     (クリティカル)
│ Client │ ─────────────▶ │ Order Service │──▶ Payment Service  (ソフト)
└────────┘                └───────┬───────┘
                                  │ OrderCreated / OrderUpdated (ベストエフォート)
                        ┌─────────▼──────────┐
                        │ Notification / Metrics │
                        └────────────────────┘
"""

import logging
import os
from contextlib import asynccontextmanager

import redis.asyncio as aioredis
from fastapi import FastAPI
from pydantic import Field

from ...shared.dispatcher import EventDispatcher, HttpSubscriber, RedisChannelSubscriber
from ...shared.errors import install_error_handlers
from ...shared.identity import IdentityClient
from ...shared.models import CamelModel
from ...shared.store import EntityStore
from . import queries
from .aggregate import LineItem, Order, OrderStatus
from .orchestrator import OrderOrchestrator
from .payment_gateway import PaymentGateway

USER_SERVICE_URL = os.environ.get("USER_SERVICE_URL", "http://localhost:3001")
PAYMENT_SERVICE_URL = os.environ.get("PAYMENT_SERVICE_URL", "http://localhost:3003")
NOTIFICATION_SERVICE_URL = os.environ.get("NOTIFICATION_SERVICE_URL", "http://localhost:3004")
METRICS_SERVICE_URL = os.environ.get("METRICS_SERVICE_URL", "http://localhost:3005")
REDIS_URL = os.environ.get("REDIS_URL")
IDENTITY_TIMEOUT = float(os.environ.get("IDENTITY_TIMEOUT", "5.0"))
PAYMENT_TIMEOUT = float(os.environ.get("PAYMENT_TIMEOUT", "10.0"))
EVENT_DELIVERY_TIMEOUT = float(os.environ.get("EVENT_DELIVERY_TIMEOUT", "5.0"))

logging.basicConfig(level=os.environ.get("LOG_LEVEL", "INFO"))

store: EntityStore[Order] = EntityStore("Order")
dispatcher = EventDispatcher(
    "order-service",
    [
        HttpSubscriber("notification-service", NOTIFICATION_SERVICE_URL, EVENT_DELIVERY_TIMEOUT),
        HttpSubscriber("metrics-service", METRICS_SERVICE_URL, EVENT_DELIVERY_TIMEOUT),
    ],
)
orchestrator = OrderOrchestrator(
    store,
    IdentityClient(USER_SERVICE_URL, timeout=IDENTITY_TIMEOUT),
    PaymentGateway(PAYMENT_SERVICE_URL, timeout=PAYMENT_TIMEOUT),
    dispatcher,
)
redis_pool: aioredis.Redis | None = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    global redis_pool
    if REDIS_URL:
        redis_pool = aioredis.from_url(REDIS_URL, decode_responses=True)
        dispatcher.register(
            RedisChannelSubscriber(redis_pool, "order_events", EVENT_DELIVERY_TIMEOUT)
        )
    yield
    await dispatcher.drain()
    if redis_pool is not None:
        await redis_pool.aclose()


app = FastAPI(title="Order Service", lifespan=lifespan)
install_error_handlers(app)


# ── Request Models ───────────────────────────────


class CreateOrderRequest(CamelModel):
    user_id: str = Field(min_length=1)
    items: list[LineItem] = Field(min_length=1)


class UpdateStatusRequest(CamelModel):
    status: OrderStatus


# ── Command Endpoints (Write 側) ─────────────────


@app.post("/orders", status_code=201)
async def cmd_create_order(req: CreateOrderRequest):
    """
    注文作成コマンド

    決済が失敗しても注文が作成されていれば 201 を返す。
    その場合 order.status は pending、paymentId は null のまま。
    """
    placement = await orchestrator.create_order(req.user_id, req.items)
    response = {"order": placement.order, "message": "Order created successfully"}
    if placement.payment is not None:
        response["payment"] = placement.payment
    return response


@app.put("/orders/{order_id}/status")
async def cmd_update_status(order_id: str, req: UpdateStatusRequest):
    """ステータス更新コマンド（状態遷移表に従う）"""
    order = await orchestrator.update_status(order_id, req.status)
    return {"order": order, "message": "Status updated successfully"}


# ── Query Endpoints (Read 側) ────────────────────


@app.get("/orders")
async def query_list_orders():
    orders = queries.list_orders(store)
    return {"orders": orders, "count": len(orders)}


@app.get("/orders/{order_id}")
async def query_get_order(order_id: str):
    """指定注文を取得（Notification Service の注文参照にも使われる）"""
    return queries.get_order(store, order_id)


@app.get("/health")
async def health():
    return {
        "status": "ok",
        "service": "order-service",
        "stats": queries.order_stats(store),
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "services.order.app.main:app",
        host=os.environ.get("HOST", "0.0.0.0"),
        port=int(os.environ.get("PORT", "3002")),
    )
