"""
Shared — イベント・ファンアウト・ディスパッチャ

ドメインイベントを登録済みの購読者(Notification, Metrics ...)へ
ベストエフォートで配信する。

  ┌────────────────┐  publish()  ┌────────────┐──▶ Notification Service
  │ Order/Payment  │ ──────────▶ │ Dispatcher │──▶ Metrics Service
  │ Service        │  (待たない)  └────────────┘──▶ Redis Pub/Sub (任意)
  └────────────────┘

ルール:
  - publish() は配信を待たずに戻る。発行側の結果には一切影響しない
  - 購読者ごとに個別のタイムアウトで並列に配信する
  - 失敗（タイムアウト・到達不能・2xx 以外）はログに残して捨てる。リトライしない
  - 購読者間・イベント間の順序は保証しない
"""

import asyncio
import json
import logging
from typing import Protocol

import httpx
import redis.asyncio as aioredis
from redis.exceptions import RedisError

from .errors import DependencyUnavailableError
from .events import EventEnvelope

logger = logging.getLogger(__name__)


class Subscriber(Protocol):
    name: str
    timeout: float

    async def deliver(self, event: EventEnvelope) -> None: ...


class HttpSubscriber:
    """`POST {base_url}/events` でエンベロープを送る購読者。"""

    def __init__(
        self,
        name: str,
        base_url: str,
        timeout: float = 5.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.name = name
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    async def deliver(self, event: EventEnvelope) -> None:
        async with httpx.AsyncClient(
            timeout=self.timeout, transport=self.transport
        ) as client:
            try:
                resp = await client.post(f"{self.base_url}/events", json=event.to_wire())
                resp.raise_for_status()
            except httpx.HTTPError as e:
                raise DependencyUnavailableError(
                    f"{self.name} rejected or missed {event.event_type}: {e}"
                ) from e


class RedisChannelSubscriber:
    """Redis Pub/Sub のチャネルにエンベロープを流す購読者（外部向けのイベントタップ）。"""

    def __init__(
        self,
        redis: aioredis.Redis,
        channel: str,
        timeout: float = 5.0,
    ):
        self.name = f"redis:{channel}"
        self.redis = redis
        self.channel = channel
        self.timeout = timeout

    async def deliver(self, event: EventEnvelope) -> None:
        try:
            await self.redis.publish(self.channel, json.dumps(event.to_wire(), default=str))
        except RedisError as e:
            raise DependencyUnavailableError(
                f"{self.name} publish of {event.event_type} failed: {e}"
            ) from e


class EventDispatcher:
    def __init__(self, source: str, subscribers: list[Subscriber] | None = None):
        self.source = source
        self.subscribers: list[Subscriber] = list(subscribers or [])
        self._in_flight: set[asyncio.Task] = set()

    def register(self, subscriber: Subscriber) -> None:
        self.subscribers.append(subscriber)

    def publish(self, event: EventEnvelope) -> asyncio.Task:
        """
        イベントの配信をバックグラウンドタスクとして開始し、すぐに戻る。
        返したタスクを待つかどうかは呼び出し側の自由（通常は待たない）。
        """
        logger.info("[%s] Emitting event: %s (%s)", self.source, event.event_type, event.event_id)
        task = asyncio.create_task(self._fan_out(event))
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)
        return task

    async def drain(self) -> None:
        """配信中のイベントがすべて終わるまで待つ（シャットダウン・テスト用）。"""
        while self._in_flight:
            await asyncio.gather(*list(self._in_flight), return_exceptions=True)

    async def _fan_out(self, event: EventEnvelope) -> dict[str, bool]:
        subscribers = list(self.subscribers)
        results = await asyncio.gather(
            *(self._deliver(sub, event) for sub in subscribers),
            return_exceptions=True,
        )
        return {sub.name: result is True for sub, result in zip(subscribers, results)}

    async def _deliver(self, subscriber: Subscriber, event: EventEnvelope) -> bool:
        try:
            await asyncio.wait_for(subscriber.deliver(event), timeout=subscriber.timeout)
        except asyncio.TimeoutError:
            logger.warning(
                "[%s] %s timed out after %.1fs delivering %s",
                self.source, subscriber.name, subscriber.timeout, event.event_type,
            )
            return False
        except DependencyUnavailableError as e:
            logger.warning("[%s] Failed to notify %s: %s", self.source, subscriber.name, e)
            return False
        except Exception:
            logger.exception(
                "[%s] Unexpected error delivering %s to %s",
                self.source, event.event_type, subscriber.name,
            )
            return False
        logger.info("[%s] Event %s sent to %s", self.source, event.event_type, subscriber.name)
        return True
