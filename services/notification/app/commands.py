"""
Notification Service — コマンドハンドラ (Write 側)

通知は pending で保存してから送信をシミュレートし、
結果に応じて sent / failed に更新する。
イベント経由でも直接リクエストでも同じ手順を通る。
"""

import logging

from ...shared.identity import IdentityClient
from ...shared.store import EntityStore
from .aggregate import Channel, Notification
from .sender import ChannelSender

logger = logging.getLogger(__name__)


async def deliver_notification(
    store: EntityStore[Notification],
    sender: ChannelSender,
    notification: Notification,
) -> Notification:
    store.add(notification.id, notification)
    result = await sender.send(notification)

    def apply_result(current: Notification) -> Notification:
        if result.success:
            return current.mark_sent(result.sent_at)
        return current.mark_failed(result.error)

    notification = await store.update(notification.id, apply_result)
    logger.info("Notification %s: %s", notification.id, notification.status.value)
    return notification


async def notify(
    store: EntityStore[Notification],
    sender: ChannelSender,
    identity: IdentityClient,
    user_id: str,
    channel: Channel,
    subject: str,
    message: str,
) -> Notification:
    """
    直接通知コマンド

    ユーザーが存在しなければ NotFoundError、User Service に届かなければ
    DependencyUnavailableError をそのまま投げる。どちらの場合も通知は保存しない。
    """
    await identity.get_user(user_id)
    notification = Notification.draft(user_id, channel, subject, message)
    return await deliver_notification(store, sender, notification)
