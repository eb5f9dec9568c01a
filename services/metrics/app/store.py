"""
Metrics Service — 追記専用ストア

受信したイベントと、そこから導出したメトリクスを追記するだけ。
更新・削除はしない。
"""

import copy
from datetime import datetime
from typing import Any

from pydantic import Field

from ...shared.events import EventEnvelope
from ...shared.models import CamelModel, new_id, utcnow


class MetricEntry(CamelModel):
    id: str = Field(default_factory=lambda: new_id("mtr"))
    service: str
    metric: str
    value: float
    timestamp: datetime = Field(default_factory=utcnow)
    tags: dict[str, Any] = Field(default_factory=dict)


class ReceivedEvent(CamelModel):
    event_id: str
    event_type: str
    timestamp: datetime
    payload: dict[str, Any]
    received_at: datetime = Field(default_factory=utcnow)


class MetricStore:
    def __init__(self) -> None:
        self.metrics: list[MetricEntry] = []
        self.events: list[ReceivedEvent] = []

    def record_event(self, event: EventEnvelope) -> ReceivedEvent:
        received = ReceivedEvent(
            event_id=event.event_id,
            event_type=event.event_type,
            timestamp=event.timestamp,
            payload=copy.deepcopy(dict(event.payload)),
        )
        self.events.append(received)
        return received

    def append(self, entry: MetricEntry) -> MetricEntry:
        self.metrics.append(entry)
        return entry
