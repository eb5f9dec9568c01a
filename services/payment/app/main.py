"""
Payment Service — FastAPI エントリーポイント

支払いレコードを所有し、決済承認をシミュレートする。
Order Service から同期的に呼ばれるが、Order 側にとっては
「失敗してもよい」ソフトな依存。

承認が拒否された場合は 402 で支払いレコード(status=failed)を返す。
これは障害ではなく結果の値であり、どう扱うかは呼び出し側が決める。
"""

import logging
import os
from contextlib import asynccontextmanager

import redis.asyncio as aioredis
from fastapi import FastAPI
from fastapi.responses import JSONResponse
from pydantic import Field

from ...shared.dispatcher import EventDispatcher, HttpSubscriber, RedisChannelSubscriber
from ...shared.errors import install_error_handlers
from ...shared.models import CamelModel
from ...shared.simulation import RandomOutcome
from ...shared.store import EntityStore
from . import commands, queries
from .aggregate import Currency, Payment, PaymentMethod, PaymentStatus
from .processor import PaymentProcessor

NOTIFICATION_SERVICE_URL = os.environ.get("NOTIFICATION_SERVICE_URL", "http://localhost:3004")
METRICS_SERVICE_URL = os.environ.get("METRICS_SERVICE_URL", "http://localhost:3005")
REDIS_URL = os.environ.get("REDIS_URL")
EVENT_DELIVERY_TIMEOUT = float(os.environ.get("EVENT_DELIVERY_TIMEOUT", "5.0"))
PAYMENT_SUCCESS_RATE = float(os.environ.get("PAYMENT_SUCCESS_RATE", "0.9"))
PAYMENT_LATENCY = float(os.environ.get("PAYMENT_LATENCY", "1.0"))
REFUND_LATENCY = float(os.environ.get("REFUND_LATENCY", "0.5"))

logging.basicConfig(level=os.environ.get("LOG_LEVEL", "INFO"))

store: EntityStore[Payment] = EntityStore("Payment")
processor = PaymentProcessor(
    RandomOutcome(PAYMENT_SUCCESS_RATE),
    latency=PAYMENT_LATENCY,
    refund_latency=REFUND_LATENCY,
)
dispatcher = EventDispatcher(
    "payment-service",
    [
        HttpSubscriber("notification-service", NOTIFICATION_SERVICE_URL, EVENT_DELIVERY_TIMEOUT),
        HttpSubscriber("metrics-service", METRICS_SERVICE_URL, EVENT_DELIVERY_TIMEOUT),
    ],
)
redis_pool: aioredis.Redis | None = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    global redis_pool
    if REDIS_URL:
        redis_pool = aioredis.from_url(REDIS_URL, decode_responses=True)
        dispatcher.register(
            RedisChannelSubscriber(redis_pool, "payment_events", EVENT_DELIVERY_TIMEOUT)
        )
    yield
    await dispatcher.drain()
    if redis_pool is not None:
        await redis_pool.aclose()


app = FastAPI(title="Payment Service", lifespan=lifespan)
install_error_handlers(app)


# ── Request Models ───────────────────────────────


class PaymentRequest(CamelModel):
    order_id: str
    amount: float = Field(ge=0)
    currency: Currency = Currency.USD
    method: PaymentMethod = PaymentMethod.CARD


# ── Command Endpoints (Write 側) ─────────────────


@app.post("/payments", status_code=201)
async def cmd_authorize(req: PaymentRequest):
    """決済承認コマンド（Order Service から呼ばれる）"""
    payment = await commands.authorize_payment(
        store, processor, dispatcher,
        req.order_id, req.amount, req.currency, req.method,
    )
    if payment.status == PaymentStatus.FAILED:
        return JSONResponse(
            status_code=402,
            content=payment.model_dump(mode="json", by_alias=True),
        )
    return payment


@app.post("/payments/{payment_id}/refund")
async def cmd_refund(payment_id: str):
    """返金コマンド（completed の支払いのみ）"""
    payment = await commands.refund_payment(store, processor, dispatcher, payment_id)
    return {"payment": payment, "message": "Payment refunded successfully"}


# ── Query Endpoints (Read 側) ────────────────────


@app.get("/payments")
async def query_list_payments():
    payments = queries.list_payments(store)
    return {"payments": payments, "count": len(payments)}


@app.get("/payments/{payment_id}")
async def query_get_payment(payment_id: str):
    return queries.get_payment(store, payment_id)


@app.get("/health")
async def health():
    return {
        "status": "ok",
        "service": "payment-service",
        "stats": queries.payment_stats(store),
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "services.payment.app.main:app",
        host=os.environ.get("HOST", "0.0.0.0"),
        port=int(os.environ.get("PORT", "3003")),
    )
