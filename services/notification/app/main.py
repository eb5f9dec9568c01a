"""
Notification Service — FastAPI エントリーポイント

Order / Payment Service から POST /events でイベントを受け取り、
ユーザーへの通知に変換する。イベントの受信はすぐに応答し、
処理はバックグラウンドで行う（発行側を待たせない）。

┌─────────────────┐  POST /events  ┌──────────────────────┐──▶ User Service
│ Order / Payment │ ─────────────▶ │ Notification Service │──▶ Order Service
└─────────────────┘   (即時 ack)    └──────────────────────┘
"""

import logging
import os

from fastapi import BackgroundTasks, FastAPI
from pydantic import Field

from ...shared.errors import install_error_handlers
from ...shared.events import EventEnvelope
from ...shared.identity import IdentityClient
from ...shared.models import CamelModel
from ...shared.simulation import RandomOutcome
from ...shared.store import EntityStore
from . import commands, handlers, queries
from .aggregate import Channel, Notification, NotificationStatus
from .order_lookup import OrderLookupClient
from .sender import ChannelSender

USER_SERVICE_URL = os.environ.get("USER_SERVICE_URL", "http://localhost:3001")
ORDER_SERVICE_URL = os.environ.get("ORDER_SERVICE_URL", "http://localhost:3002")
IDENTITY_TIMEOUT = float(os.environ.get("IDENTITY_TIMEOUT", "5.0"))
NOTIFICATION_SUCCESS_RATE = float(os.environ.get("NOTIFICATION_SUCCESS_RATE", "0.95"))
NOTIFICATION_LATENCY = float(os.environ.get("NOTIFICATION_LATENCY", "0.5"))
NOTIFICATION_DEFAULT_CHANNEL = Channel(os.environ.get("NOTIFICATION_DEFAULT_CHANNEL", "email"))

logging.basicConfig(level=os.environ.get("LOG_LEVEL", "INFO"))
logger = logging.getLogger(__name__)

store: EntityStore[Notification] = EntityStore("Notification")
context = handlers.NotificationContext(
    store=store,
    sender=ChannelSender(RandomOutcome(NOTIFICATION_SUCCESS_RATE), NOTIFICATION_LATENCY),
    identity=IdentityClient(USER_SERVICE_URL, timeout=IDENTITY_TIMEOUT),
    orders=OrderLookupClient(ORDER_SERVICE_URL, timeout=IDENTITY_TIMEOUT),
    default_channel=NOTIFICATION_DEFAULT_CHANNEL,
)

app = FastAPI(title="Notification Service")
install_error_handlers(app)


# ── Request Models ───────────────────────────────


class NotifyRequest(CamelModel):
    user_id: str = Field(min_length=1)
    channel: Channel
    subject: str = Field(min_length=1)
    message: str = Field(min_length=1)


# ── Event Ingress ────────────────────────────────


async def process_event(event: EventEnvelope) -> None:
    try:
        await handlers.handle_event(context, event)
    except Exception:
        logger.exception("Failed to process event %s", event.event_id)


@app.post("/events")
async def receive_event(event: EventEnvelope, background_tasks: BackgroundTasks):
    """イベントを受信してすぐに ack を返す。処理はレスポンス送信後に行う。"""
    logger.info("Received event: %s (%s)", event.event_type, event.event_id)
    background_tasks.add_task(process_event, event)
    return {"received": True, "eventType": event.event_type}


# ── Command Endpoints (Write 側) ─────────────────


@app.post("/notify", status_code=201)
async def cmd_notify(req: NotifyRequest):
    """直接通知コマンド"""
    notification = await commands.notify(
        context.store, context.sender, context.identity,
        req.user_id, req.channel, req.subject, req.message,
    )
    sent = notification.status == NotificationStatus.SENT
    return {
        "notification": notification,
        "message": "Notification sent successfully" if sent else "Failed to send notification",
    }


# ── Query Endpoints (Read 側) ────────────────────


@app.get("/notifications")
async def query_list_notifications():
    notifications = queries.list_notifications(context.store)
    return {"notifications": notifications, "count": len(notifications)}


@app.get("/notifications/{notification_id}")
async def query_get_notification(notification_id: str):
    return queries.get_notification(context.store, notification_id)


@app.get("/health")
async def health():
    return {
        "status": "ok",
        "service": "notification-service",
        "stats": queries.notification_stats(context.store),
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "services.notification.app.main:app",
        host=os.environ.get("HOST", "0.0.0.0"),
        port=int(os.environ.get("PORT", "3004")),
    )
