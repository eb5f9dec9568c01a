import asyncio
import json

import httpx
import pytest

from services.order.app.aggregate import LineItem, Order, OrderStatus
from services.order.app.orchestrator import OrderOrchestrator
from services.order.app.payment_gateway import AuthorizationResult, PaymentGateway
from services.shared.dispatcher import EventDispatcher, HttpSubscriber
from services.shared.errors import (
    InvalidTransitionError,
    InvalidUserError,
    NotFoundError,
    ValidationError,
)
from services.shared.identity import IdentityClient
from services.shared.store import EntityStore


def _items():
    return [LineItem(product_id="p1", quantity=2, unit_price=29.99)]


def _payment_transport(status_code: int, payment_status: str):
    def handler(request: httpx.Request) -> httpx.Response:
        data = json.loads(request.content)
        return httpx.Response(
            status_code,
            json={
                "id": "pay-abc",
                "orderId": data["orderId"],
                "amount": data["amount"],
                "currency": data["currency"],
                "method": data["method"],
                "status": payment_status,
            },
        )

    return httpx.MockTransport(handler)


def _orchestrator(identity, dispatcher, transport):
    store: EntityStore[Order] = EntityStore("Order")
    payments = PaymentGateway("http://payments.test", transport=transport)
    return OrderOrchestrator(store, identity, payments, dispatcher)


@pytest.fixture
def approving():
    return _payment_transport(201, "completed")


@pytest.fixture
def declining():
    return _payment_transport(402, "failed")


# ------------------------------------------------------------------ #
#  create_order                                                        #
# ------------------------------------------------------------------ #


class TestCreateOrder:
    @pytest.mark.asyncio
    async def test_approved_payment_confirms_order(self, identity, dispatcher, approving):
        orchestrator = _orchestrator(identity, dispatcher, approving)

        placement = await orchestrator.create_order("u1", _items())

        order = placement.order
        assert order.status == OrderStatus.CONFIRMED
        assert order.total_amount == 59.98
        assert order.payment_id == placement.payment["id"] == "pay-abc"
        assert placement.payment["amount"] == 59.98
        assert orchestrator.store.require(order.id) == order

    @pytest.mark.asyncio
    async def test_declined_payment_leaves_order_pending(self, identity, dispatcher, declining):
        orchestrator = _orchestrator(identity, dispatcher, declining)

        placement = await orchestrator.create_order("u1", _items())

        assert placement.order.status == OrderStatus.PENDING
        assert placement.order.payment_id is None
        assert placement.payment["status"] == "failed"
        assert len(orchestrator.store) == 1

    @pytest.mark.asyncio
    async def test_unreachable_payment_service_leaves_order_pending(
        self, identity, dispatcher, unreachable_transport
    ):
        orchestrator = _orchestrator(identity, dispatcher, unreachable_transport)

        placement = await orchestrator.create_order("u1", _items())

        assert placement.order.status == OrderStatus.PENDING
        assert placement.order.payment_id is None
        assert placement.payment is None
        assert orchestrator.store.require(placement.order.id).status == OrderStatus.PENDING

    @pytest.mark.asyncio
    async def test_unknown_user_creates_nothing(self, identity, dispatcher, approving):
        orchestrator = _orchestrator(identity, dispatcher, approving)

        with pytest.raises(InvalidUserError) as exc:
            await orchestrator.create_order("ghost", _items())

        assert exc.value.details == {"userId": "ghost"}
        assert len(orchestrator.store) == 0
        assert dispatcher.events == []

    @pytest.mark.asyncio
    async def test_identity_outage_is_reported_as_invalid_user(
        self, identity_down, dispatcher, approving
    ):
        orchestrator = _orchestrator(identity_down, dispatcher, approving)

        with pytest.raises(InvalidUserError):
            await orchestrator.create_order("u1", _items())

        assert len(orchestrator.store) == 0

    @pytest.mark.asyncio
    async def test_unreadable_identity_reply_is_reported_as_invalid_user(
        self, dispatcher, approving
    ):
        identity = IdentityClient(
            "http://users.test",
            transport=httpx.MockTransport(
                lambda request: httpx.Response(200, text="<html>proxy</html>")
            ),
        )
        orchestrator = _orchestrator(identity, dispatcher, approving)

        with pytest.raises(InvalidUserError):
            await orchestrator.create_order("u1", _items())

        assert len(orchestrator.store) == 0
        assert dispatcher.events == []

    @pytest.mark.asyncio
    async def test_empty_items_rejected_before_any_call(self, identity_down, dispatcher, approving):
        orchestrator = _orchestrator(identity_down, dispatcher, approving)

        with pytest.raises(ValidationError):
            await orchestrator.create_order("u1", [])

        assert len(orchestrator.store) == 0

    @pytest.mark.asyncio
    async def test_order_created_event_reflects_final_state(self, identity, dispatcher, approving):
        orchestrator = _orchestrator(identity, dispatcher, approving)

        placement = await orchestrator.create_order("u1", _items())

        [event] = dispatcher.of_type("OrderCreated")
        assert event.payload == {
            "orderId": placement.order.id,
            "userId": "u1",
            "totalAmount": 59.98,
            "items": [{"productId": "p1", "quantity": 2, "unitPrice": 29.99}],
            "status": "confirmed",
            "paymentId": "pay-abc",
        }

    @pytest.mark.asyncio
    async def test_order_created_event_for_pending_order(self, identity, dispatcher, declining):
        orchestrator = _orchestrator(identity, dispatcher, declining)

        await orchestrator.create_order("u1", _items())

        [event] = dispatcher.of_type("OrderCreated")
        assert event.payload["status"] == "pending"
        assert event.payload["paymentId"] is None

    @pytest.mark.asyncio
    async def test_failing_subscribers_do_not_change_the_result(
        self, identity, approving, unreachable_transport
    ):
        real_dispatcher = EventDispatcher(
            "order-service",
            [
                HttpSubscriber("notification-service", "http://ntf.test",
                               transport=unreachable_transport),
                HttpSubscriber("metrics-service", "http://mtr.test",
                               transport=httpx.MockTransport(lambda r: httpx.Response(500))),
            ],
        )
        orchestrator = _orchestrator(identity, real_dispatcher, approving)

        placement = await orchestrator.create_order("u1", _items())
        await real_dispatcher.drain()

        assert placement.order.status == OrderStatus.CONFIRMED

    @pytest.mark.asyncio
    async def test_cancel_during_payment_is_kept(self, identity, dispatcher):
        release = asyncio.Event()
        holder = {}

        class SlowGateway:
            async def authorize(self, order):
                holder["order_id"] = order.id
                await release.wait()
                return AuthorizationResult(payment={"id": "pay-late", "status": "completed"})

        store: EntityStore[Order] = EntityStore("Order")
        orchestrator = OrderOrchestrator(store, identity, SlowGateway(), dispatcher)

        creating = asyncio.create_task(orchestrator.create_order("u1", _items()))
        while "order_id" not in holder:
            await asyncio.sleep(0)
        await orchestrator.update_status(holder["order_id"], OrderStatus.CANCELLED)
        release.set()
        placement = await creating

        assert placement.order.status == OrderStatus.CANCELLED
        assert placement.order.payment_id is None


# ------------------------------------------------------------------ #
#  update_status                                                       #
# ------------------------------------------------------------------ #


class TestUpdateStatus:
    @pytest.mark.asyncio
    async def test_transition_emits_previous_status(self, identity, dispatcher, approving):
        orchestrator = _orchestrator(identity, dispatcher, approving)
        order = (await orchestrator.create_order("u1", _items())).order

        shipped = await orchestrator.update_status(order.id, OrderStatus.SHIPPED)

        assert shipped.status == OrderStatus.SHIPPED
        [event] = dispatcher.of_type("OrderUpdated")
        assert event.payload == {
            "orderId": order.id,
            "userId": "u1",
            "status": "shipped",
            "previousStatus": "confirmed",
        }

    @pytest.mark.asyncio
    async def test_unknown_order(self, identity, dispatcher, approving):
        orchestrator = _orchestrator(identity, dispatcher, approving)

        with pytest.raises(NotFoundError):
            await orchestrator.update_status("ord-missing", OrderStatus.SHIPPED)

        assert dispatcher.of_type("OrderUpdated") == []

    @pytest.mark.asyncio
    async def test_invalid_transition_leaves_order_untouched(self, identity, dispatcher, declining):
        orchestrator = _orchestrator(identity, dispatcher, declining)
        order = (await orchestrator.create_order("u1", _items())).order

        with pytest.raises(InvalidTransitionError):
            await orchestrator.update_status(order.id, OrderStatus.SHIPPED)

        stored = orchestrator.store.require(order.id)
        assert stored.status == OrderStatus.PENDING
        assert stored.updated_at == order.updated_at
        assert dispatcher.of_type("OrderUpdated") == []

    @pytest.mark.asyncio
    async def test_full_lifecycle(self, identity, dispatcher, approving):
        orchestrator = _orchestrator(identity, dispatcher, approving)
        order = (await orchestrator.create_order("u1", _items())).order

        await orchestrator.update_status(order.id, OrderStatus.SHIPPED)
        delivered = await orchestrator.update_status(order.id, OrderStatus.DELIVERED)

        assert delivered.status == OrderStatus.DELIVERED
        assert delivered.total_amount == 59.98
        assert [e.payload["previousStatus"] for e in dispatcher.of_type("OrderUpdated")] == [
            "confirmed",
            "shipped",
        ]
