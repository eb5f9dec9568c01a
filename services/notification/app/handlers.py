"""
Notification Service — イベントハンドラ

Order / Payment Service から届いたイベントを通知に変換する。
コンテキスト(ユーザー・注文)が解決できないイベントはログを残して捨てる。
リトライはしない。

  OrderCreated     → userId でユーザーを引く → 注文受付の通知
  PaymentProcessed → orderId で注文を引く → userId でユーザーを引く
                     → 決済成功 / 失敗の通知
  それ以外          → 無視
"""

import logging
from dataclasses import dataclass

from ...shared.errors import ServiceError
from ...shared.events import EventEnvelope, EventType
from ...shared.identity import IdentityClient
from ...shared.store import EntityStore
from . import commands, composer
from .aggregate import Channel, Notification
from .order_lookup import OrderLookupClient
from .sender import ChannelSender

logger = logging.getLogger(__name__)


@dataclass
class NotificationContext:
    store: EntityStore[Notification]
    sender: ChannelSender
    identity: IdentityClient
    orders: OrderLookupClient
    default_channel: Channel = Channel.EMAIL


async def handle_event(ctx: NotificationContext, event: EventEnvelope) -> Notification | None:
    """イベントタイプに応じたハンドラを呼び出す。通知を作らなかった場合は None。"""
    handler = {
        EventType.ORDER_CREATED.value: _on_order_created,
        EventType.PAYMENT_PROCESSED.value: _on_payment_processed,
    }.get(event.event_type)
    if handler is None:
        logger.info("Ignoring event type: %s", event.event_type)
        return None
    try:
        return await handler(ctx, event)
    except ServiceError as e:
        logger.warning("Dropped %s (%s): %s", event.event_type, event.event_id, e.message)
        return None
    except (KeyError, TypeError) as e:
        logger.warning("Dropped malformed %s (%s): missing %s", event.event_type, event.event_id, e)
        return None


async def _on_order_created(ctx: NotificationContext, event: EventEnvelope) -> Notification:
    payload = event.payload
    user = await ctx.identity.get_user(payload["userId"])
    message = composer.order_created(user, payload, ctx.default_channel)
    notification = Notification.draft(
        user.id,
        ctx.default_channel,
        message.subject,
        message.body,
        related_order_id=payload["orderId"],
        event_type=event.event_type,
    )
    return await commands.deliver_notification(ctx.store, ctx.sender, notification)


async def _on_payment_processed(ctx: NotificationContext, event: EventEnvelope) -> Notification:
    payload = event.payload
    order = await ctx.orders.get_order(payload["orderId"])
    user = await ctx.identity.get_user(order["userId"])
    message = composer.payment_processed(user, payload, ctx.default_channel)
    notification = Notification.draft(
        user.id,
        ctx.default_channel,
        message.subject,
        message.body,
        related_order_id=payload["orderId"],
        related_payment_id=payload.get("paymentId"),
        event_type=event.event_type,
    )
    return await commands.deliver_notification(ctx.store, ctx.sender, notification)
