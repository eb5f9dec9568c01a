"""Tests for the best-effort event fan-out."""

import asyncio
import json
from unittest.mock import AsyncMock

import httpx
import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from services.shared.dispatcher import EventDispatcher, HttpSubscriber, RedisChannelSubscriber
from services.shared.events import EventType, new_event


def _event():
    return new_event(EventType.ORDER_CREATED, {"orderId": "ord-1", "userId": "u1"})


class _Recorder:
    def __init__(self, status_code: int = 200):
        self.status_code = status_code
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status_code, json={"received": True})


class _SlowSubscriber:
    name = "slow"
    timeout = 0.05

    def __init__(self):
        self.cancelled = False

    async def deliver(self, event):
        try:
            await asyncio.sleep(1.0)
        except asyncio.CancelledError:
            self.cancelled = True
            raise


class _BrokenSubscriber:
    name = "broken"
    timeout = 1.0

    async def deliver(self, event):
        raise RuntimeError("boom")


# ------------------------------------------------------------------ #
#  HttpSubscriber fan-out                                              #
# ------------------------------------------------------------------ #


class TestFanOut:
    @pytest.mark.asyncio
    async def test_delivers_envelope_to_every_subscriber(self):
        notifications, metrics = _Recorder(), _Recorder()
        dispatcher = EventDispatcher(
            "order-service",
            [
                HttpSubscriber("notification-service", "http://ntf.test",
                               transport=httpx.MockTransport(notifications)),
                HttpSubscriber("metrics-service", "http://mtr.test",
                               transport=httpx.MockTransport(metrics)),
            ],
        )
        event = _event()

        outcome = await dispatcher.publish(event)

        assert outcome == {"notification-service": True, "metrics-service": True}
        for recorder in (notifications, metrics):
            assert len(recorder.requests) == 1
            request = recorder.requests[0]
            assert request.url.path == "/events"
            body = json.loads(request.content)
            assert body["eventId"] == event.event_id
            assert body["eventType"] == "OrderCreated"
            assert body["payload"] == {"orderId": "ord-1", "userId": "u1"}
            assert "timestamp" in body

    @pytest.mark.asyncio
    async def test_unreachable_subscriber_does_not_block_the_other(self, unreachable_transport):
        metrics = _Recorder()
        dispatcher = EventDispatcher(
            "order-service",
            [
                HttpSubscriber("notification-service", "http://ntf.test",
                               transport=unreachable_transport),
                HttpSubscriber("metrics-service", "http://mtr.test",
                               transport=httpx.MockTransport(metrics)),
            ],
        )

        outcome = await dispatcher.publish(_event())

        assert outcome == {"notification-service": False, "metrics-service": True}
        assert len(metrics.requests) == 1

    @pytest.mark.asyncio
    async def test_non_2xx_counts_as_failed_delivery(self):
        rejecting = _Recorder(status_code=500)
        dispatcher = EventDispatcher(
            "payment-service",
            [HttpSubscriber("metrics-service", "http://mtr.test",
                            transport=httpx.MockTransport(rejecting))],
        )

        outcome = await dispatcher.publish(_event())

        assert outcome == {"metrics-service": False}
        assert len(rejecting.requests) == 1

    @pytest.mark.asyncio
    async def test_slow_subscriber_times_out_independently(self):
        slow, metrics = _SlowSubscriber(), _Recorder()
        dispatcher = EventDispatcher(
            "order-service",
            [slow, HttpSubscriber("metrics-service", "http://mtr.test",
                                  transport=httpx.MockTransport(metrics))],
        )

        outcome = await dispatcher.publish(_event())

        assert outcome == {"slow": False, "metrics-service": True}
        assert slow.cancelled is True

    @pytest.mark.asyncio
    async def test_unexpected_subscriber_error_is_contained(self):
        metrics = _Recorder()
        dispatcher = EventDispatcher(
            "order-service",
            [_BrokenSubscriber(), HttpSubscriber("metrics-service", "http://mtr.test",
                                                 transport=httpx.MockTransport(metrics))],
        )

        outcome = await dispatcher.publish(_event())

        assert outcome == {"broken": False, "metrics-service": True}

    @pytest.mark.asyncio
    async def test_publish_returns_before_delivery_completes(self):
        slow = _SlowSubscriber()
        slow.timeout = 0.2
        dispatcher = EventDispatcher("order-service", [slow])

        task = dispatcher.publish(_event())

        assert not task.done()
        await dispatcher.drain()
        assert task.done()

    @pytest.mark.asyncio
    async def test_no_subscribers_is_a_no_op(self):
        dispatcher = EventDispatcher("order-service")
        assert await dispatcher.publish(_event()) == {}


# ------------------------------------------------------------------ #
#  RedisChannelSubscriber                                              #
# ------------------------------------------------------------------ #


class TestRedisChannelSubscriber:
    @pytest.mark.asyncio
    async def test_publishes_envelope_on_channel(self):
        redis = AsyncMock()
        dispatcher = EventDispatcher(
            "order-service", [RedisChannelSubscriber(redis, "order_events")]
        )
        event = _event()

        outcome = await dispatcher.publish(event)

        assert outcome == {"redis:order_events": True}
        channel, data = redis.publish.await_args.args
        assert channel == "order_events"
        assert json.loads(data)["eventId"] == event.event_id

    @pytest.mark.asyncio
    async def test_redis_error_is_logged_and_discarded(self):
        redis = AsyncMock()
        redis.publish.side_effect = RedisConnectionError("redis down")
        dispatcher = EventDispatcher(
            "payment-service", [RedisChannelSubscriber(redis, "payment_events")]
        )

        outcome = await dispatcher.publish(_event())

        assert outcome == {"redis:payment_events": False}
