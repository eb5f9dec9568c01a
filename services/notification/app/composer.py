"""
Notification Service — メッセージ作成

イベントの payload とユーザー情報からチャネル別のメッセージを組み立てる。

  email: 件名と本文をそのまま使う
  sms  : 件名を先頭に付けた 1 行のテキスト（160 文字まで）
  push : 件名をタイトルに、本文は 120 文字まで
"""

from dataclasses import dataclass

from ...shared.identity import UserProfile
from .aggregate import Channel

BRAND = "KaChow"
SMS_LIMIT = 160
PUSH_LIMIT = 120


@dataclass(frozen=True)
class Message:
    subject: str
    body: str


def _truncate(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    return text[: limit - 3].rstrip() + "..."


def for_channel(channel: Channel, subject: str, body: str) -> Message:
    """チャネルの制約に合わせて件名と本文を整形する。"""
    if channel == Channel.SMS:
        return Message(subject=subject, body=_truncate(f"{subject}: {body}", SMS_LIMIT))
    if channel == Channel.PUSH:
        return Message(subject=subject, body=_truncate(body, PUSH_LIMIT))
    return Message(subject=subject, body=body)


def order_created(user: UserProfile, payload: dict, channel: Channel) -> Message:
    total = float(payload.get("totalAmount") or 0)
    item_count = len(payload.get("items") or [])
    return for_channel(
        channel,
        f"Order Confirmation - {BRAND}",
        f"Hi {user.display_name}, your order #{payload['orderId']} for "
        f"${total:.2f} has been received and is being processed. "
        f"You ordered {item_count} item(s).",
    )


def payment_processed(user: UserProfile, payload: dict, channel: Channel) -> Message:
    amount = float(payload.get("amount") or 0)
    order_id = payload["orderId"]
    if payload.get("status") == "completed":
        return for_channel(
            channel,
            f"Payment Confirmed - {BRAND}",
            f"Hi {user.display_name}, your payment of ${amount:.2f} for order "
            f"#{order_id} has been successfully processed. "
            f"Transaction ID: {payload.get('transactionId')}",
        )
    return for_channel(
        channel,
        "Payment Failed - Action Required",
        f"Hi {user.display_name}, we were unable to process your payment of "
        f"${amount:.2f} for order #{order_id}. "
        f"Error: {payload.get('error') or 'Unknown error'}. "
        "Please update your payment method.",
    )
