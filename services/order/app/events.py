"""
Order Service — イベント定義

ドメインで発生した事実(イベント)の payload。
イベントは過去形で命名し、不変(immutable)として扱う。
"""

from ...shared.models import CamelModel
from .aggregate import LineItem


class OrderCreated(CamelModel):
    """注文が作成された（決済の結果を反映したステータス付き）"""
    order_id: str
    user_id: str
    total_amount: float
    items: list[LineItem]
    status: str
    payment_id: str | None


class OrderUpdated(CamelModel):
    """注文のステータスが変わった"""
    order_id: str
    user_id: str
    status: str
    previous_status: str
