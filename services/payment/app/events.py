"""
Payment Service — イベント定義

決済の結果を他サービス(Notification, Metrics)へ知らせる payload。
"""

from datetime import datetime

from ...shared.models import CamelModel


class PaymentProcessed(CamelModel):
    """決済の承認処理が終わった（成功・失敗の両方）"""
    payment_id: str
    order_id: str
    status: str
    amount: float
    currency: str
    transaction_id: str | None
    processed_at: datetime | None
    error: str | None


class PaymentRefunded(CamelModel):
    """完了済みの決済が返金された"""
    payment_id: str
    order_id: str
    amount: float
    currency: str
    refund_transaction_id: str
    refunded_at: datetime
