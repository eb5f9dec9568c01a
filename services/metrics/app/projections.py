"""
Metrics Service — イベント投影 (Projection)

受信したイベントを (サービス名, メトリクス名) をキーとする
メトリクスに変換して追記する。発行側へのフィードバックはない。

  OrderCreated     → order-service.orders_created         (値 = totalAmount)
  OrderUpdated     → order-service.orders_updated         (値 = 1)
  PaymentProcessed → payment-service.payments_successful
                     / payments_failed                    (値 = amount)
  PaymentRefunded  → payment-service.payments_refunded    (値 = amount)
  UserCreated      → user-service.users_created           (値 = 1)
"""

import logging

from ...shared.events import EventEnvelope, EventType
from .store import MetricEntry, MetricStore

logger = logging.getLogger(__name__)


def ingest(store: MetricStore, event: EventEnvelope) -> list[MetricEntry]:
    """
    イベントを保存し、対応するメトリクスを導出する。
    投影に失敗しても例外は外に出さない（呼び出し側から見て常に成功）。
    """
    store.record_event(event)
    handler = {
        EventType.ORDER_CREATED.value: _project_order_created,
        EventType.ORDER_UPDATED.value: _project_order_updated,
        EventType.PAYMENT_PROCESSED.value: _project_payment_processed,
        EventType.PAYMENT_REFUNDED.value: _project_payment_refunded,
        EventType.USER_CREATED.value: _project_user_created,
    }.get(event.event_type)
    if handler is None:
        logger.info("No metrics derived for event type: %s", event.event_type)
        return []
    try:
        entries = [store.append(entry) for entry in handler(event.payload)]
    except (KeyError, TypeError, ValueError):
        logger.exception("Failed to project %s (%s)", event.event_type, event.event_id)
        return []
    for entry in entries:
        logger.info("Metric recorded: %s.%s = %s", entry.service, entry.metric, entry.value)
    return entries


def _project_order_created(payload: dict) -> list[MetricEntry]:
    return [
        MetricEntry(
            service="order-service",
            metric="orders_created",
            value=float(payload.get("totalAmount", 0)),
            tags={
                "orderId": payload["orderId"],
                "userId": payload.get("userId"),
                "status": payload.get("status"),
            },
        )
    ]


def _project_order_updated(payload: dict) -> list[MetricEntry]:
    return [
        MetricEntry(
            service="order-service",
            metric="orders_updated",
            value=1,
            tags={
                "orderId": payload["orderId"],
                "status": payload.get("status"),
                "previousStatus": payload.get("previousStatus"),
            },
        )
    ]


def _project_payment_processed(payload: dict) -> list[MetricEntry]:
    succeeded = payload.get("status") == "completed"
    return [
        MetricEntry(
            service="payment-service",
            metric="payments_successful" if succeeded else "payments_failed",
            value=float(payload.get("amount", 0)),
            tags={"paymentId": payload["paymentId"], "orderId": payload.get("orderId")},
        )
    ]


def _project_payment_refunded(payload: dict) -> list[MetricEntry]:
    return [
        MetricEntry(
            service="payment-service",
            metric="payments_refunded",
            value=float(payload.get("amount", 0)),
            tags={"paymentId": payload["paymentId"], "orderId": payload.get("orderId")},
        )
    ]


def _project_user_created(payload: dict) -> list[MetricEntry]:
    return [
        MetricEntry(
            service="user-service",
            metric="users_created",
            value=1,
            tags={"userId": payload.get("userId")},
        )
    ]
