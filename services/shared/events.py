"""
Shared — ドメインイベントのエンベロープ

イベントは過去形で命名し、不変(immutable)として扱う。
サービス間では以下の形で POST される:

    {"eventId": "evt-...", "eventType": "OrderCreated",
     "timestamp": "2024-01-20T10:00:00+00:00", "payload": {...}}

payload の中身はイベント種別ごとに各サービスの events.py で定義する。
"""

import copy
from collections.abc import Mapping
from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

from .models import CamelModel, new_id, utcnow


class EventType(str, Enum):
    ORDER_CREATED = "OrderCreated"
    ORDER_UPDATED = "OrderUpdated"
    PAYMENT_PROCESSED = "PaymentProcessed"
    PAYMENT_REFUNDED = "PaymentRefunded"
    USER_CREATED = "UserCreated"


class EventEnvelope(CamelModel):
    model_config = ConfigDict(frozen=True)

    event_id: str = Field(default_factory=lambda: new_id("evt"))
    event_type: str
    timestamp: datetime = Field(default_factory=utcnow)
    payload: dict[str, Any] = Field(default_factory=dict, validate_default=True)

    @field_validator("payload", mode="after")
    @classmethod
    def _freeze_payload(cls, value: dict[str, Any]) -> Mapping[str, Any]:
        # 発行側の dict とは共有せず、読み取り専用のビューとして持つ
        return MappingProxyType(copy.deepcopy(value))

    @field_serializer("payload")
    def _thaw_payload(self, value: Mapping[str, Any]) -> dict[str, Any]:
        return copy.deepcopy(dict(value))

    def to_wire(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


def new_event(event_type: EventType, payload: BaseModel | dict) -> EventEnvelope:
    """payload モデルを JSON 互換の dict に変換してエンベロープに包む。"""
    if isinstance(payload, BaseModel):
        payload = payload.model_dump(mode="json", by_alias=True)
    return EventEnvelope(event_type=event_type.value, payload=payload)
