"""Tests for the order lifecycle: create, verify payment, approve."""

import anyio
import pytest

from tiffin.config import settings
from tiffin.errors import ConflictError, GatewayError, NotFoundError, ValidationError
from tiffin.models.order import Order as OrderModel, OrderStatus, PaymentStatus
from tiffin.schemas.order import CartLine, OrderCreate
from tiffin.services.notifier import NotificationQueue
from tiffin.services.order import OrderLifecycle
from tiffin.services.store import OrderStore

from .conftest import sign

pytestmark = pytest.mark.anyio


@pytest.fixture
async def queue(notifier, log):
    q = NotificationQueue(notifier, log, timeout=1.0)
    q.start()
    yield q
    await q.stop()


@pytest.fixture
def lifecycle(db, gateway, log, queue):
    return OrderLifecycle(
        store=OrderStore(db),
        gateway=gateway,
        log=log,
        notifications=queue,
        gateway_secret="test_secret",
        currency="INR",
    )


def cart(items=None, subtotal=20, **overrides):
    data = {
        "name": "A",
        "mobile": "9999999999",
        "address": "X",
        "items": [CartLine(name="Idli (3)")] if items is None else items,
        "subtotal": subtotal,
    }
    data.update(overrides)
    return OrderCreate(**data)


class TestCreateOrder:
    async def test_small_cart_gets_delivery_fee(self, lifecycle, gateway):
        handle = await lifecycle.create_order(cart())

        assert handle.amount == 50
        assert handle.key == "rzp_test_key"
        assert handle.gateway_order_id == "order_fake1"
        assert gateway.calls == [{"amount": 5000, "currency": "INR", "receipt": handle.order_code}]

        order = await lifecycle.store.find_by_code(handle.order_code)
        assert order.subtotal == 20
        assert order.delivery == 30
        assert order.total == 50
        assert order.payment_status == "Created"
        assert order.order_status == "Pending"
        assert order.gateway_order_id == "order_fake1"
        assert order.items == [{"name": "Idli (3)", "quantity": 1, "price": 20}]
        assert order.created_at is not None

    async def test_large_cart_is_free(self, lifecycle):
        items = [CartLine(name="Chapati (3)", quantity=2)]
        handle = await lifecycle.create_order(cart(items=items, subtotal=120))
        assert handle.amount == 120

    async def test_meal_in_cart_waives_delivery(self, lifecycle):
        items = [CartLine(name="Veg Meals")]
        handle = await lifecycle.create_order(cart(items=items, subtotal=100))

        order = await lifecycle.store.find_by_code(handle.order_code)
        assert order.delivery == 0
        assert order.total == 100

    async def test_line_items_are_snapshotted(self, lifecycle, db):
        from tiffin.services import menu

        handle = await lifecycle.create_order(cart())
        items = await menu.items_by_name(db, ["Idli (3)"])
        items["Idli (3)"].price = 99
        await db.commit()

        order = await lifecycle.store.find_by_code(handle.order_code)
        assert order.items[0]["price"] == 20

    @pytest.mark.parametrize("field", ["name", "mobile", "address"])
    async def test_missing_customer_field(self, lifecycle, gateway, field):
        with pytest.raises(ValidationError):
            await lifecycle.create_order(cart(**{field: "  "}))
        assert gateway.calls == []

    async def test_empty_cart(self, lifecycle, gateway):
        with pytest.raises(ValidationError):
            await lifecycle.create_order(cart(items=[], subtotal=0))
        assert gateway.calls == []

    async def test_unknown_item(self, lifecycle, gateway):
        with pytest.raises(ValidationError, match="Unknown menu item"):
            await lifecycle.create_order(cart(items=[CartLine(name="Pizza")]))
        assert gateway.calls == []

    async def test_unavailable_item(self, lifecycle, gateway, db):
        from tiffin.services import menu

        items = await menu.items_by_name(db, ["Idli (3)"])
        await menu.toggle_item(db, items["Idli (3)"].id, False)

        with pytest.raises(ValidationError, match="not available"):
            await lifecycle.create_order(cart())
        assert gateway.calls == []

    async def test_subtotal_mismatch(self, lifecycle, gateway):
        with pytest.raises(ValidationError, match="Subtotal mismatch"):
            await lifecycle.create_order(cart(subtotal=5))
        assert gateway.calls == []

    async def test_negative_subtotal(self, lifecycle):
        with pytest.raises(ValidationError):
            await lifecycle.create_order(cart(subtotal=-1))

    async def test_gateway_failure_persists_nothing(self, lifecycle, gateway):
        gateway.fail = True
        with pytest.raises(GatewayError):
            await lifecycle.create_order(cart())
        assert await lifecycle.store.list_all() == []

    async def test_unexpected_gateway_exception_becomes_gateway_error(self, lifecycle, gateway):
        async def boom(*args):
            raise RuntimeError("socket closed")

        gateway.create_transaction = boom
        with pytest.raises(GatewayError):
            await lifecycle.create_order(cart())

    async def test_duplicate_code_is_conflict(self, lifecycle):
        lifecycle.code_factory = lambda: "AT0000000000001ABCD"
        await lifecycle.create_order(cart())
        with pytest.raises(ConflictError):
            await lifecycle.create_order(cart())

    async def test_codes_are_unique(self, lifecycle):
        codes = {(await lifecycle.create_order(cart())).order_code for _ in range(25)}
        assert len(codes) == 25


class TestVerifyPayment:
    async def test_valid_signature_marks_paid(self, lifecycle):
        handle = await lifecycle.create_order(cart())
        sig = sign(handle.gateway_order_id, "pay_1")

        ok = await lifecycle.verify_payment(handle.order_code, handle.gateway_order_id, "pay_1", sig)

        assert ok is True
        order = await lifecycle.store.find_by_code(handle.order_code)
        assert order.payment_status == "Paid"

    async def test_bad_signature_marks_failed(self, lifecycle):
        handle = await lifecycle.create_order(cart())

        ok = await lifecycle.verify_payment(handle.order_code, handle.gateway_order_id, "pay_1", "deadbeef")

        assert ok is False
        order = await lifecycle.store.find_by_code(handle.order_code)
        assert order.payment_status == "Failed"

    async def test_unknown_code(self, lifecycle):
        with pytest.raises(NotFoundError):
            await lifecycle.verify_payment("AT_missing", "order_x", "pay_x", sign("order_x", "pay_x"))
        assert await lifecycle.store.list_all() == []

    async def test_terminal_status_is_not_changed(self, lifecycle):
        handle = await lifecycle.create_order(cart())
        good = sign(handle.gateway_order_id, "pay_1")

        assert await lifecycle.verify_payment(handle.order_code, handle.gateway_order_id, "pay_1", good)
        # повторная проверка с плохой подписью Paid не сбрасывает
        assert not await lifecycle.verify_payment(handle.order_code, handle.gateway_order_id, "pay_1", "bad")
        order = await lifecycle.store.find_by_code(handle.order_code)
        assert order.payment_status == "Paid"
        # и повторная хорошая подпись по-прежнему успешна
        assert await lifecycle.verify_payment(handle.order_code, handle.gateway_order_id, "pay_1", good)

    async def test_failed_stays_failed(self, lifecycle):
        handle = await lifecycle.create_order(cart())
        await lifecycle.verify_payment(handle.order_code, handle.gateway_order_id, "pay_1", "bad")

        good = sign(handle.gateway_order_id, "pay_2")
        assert not await lifecycle.verify_payment(handle.order_code, handle.gateway_order_id, "pay_2", good)
        order = await lifecycle.store.find_by_code(handle.order_code)
        assert order.payment_status == "Failed"


class TestApproveOrder:
    async def test_approve_notifies_once(self, lifecycle, queue, notifier):
        handle = await lifecycle.create_order(cart())

        order = await lifecycle.approve_order(handle.order_code)
        await lifecycle.approve_order(handle.order_code)
        await queue.join()

        assert order.order_status == "Approved"
        assert await lifecycle.order_status(handle.order_code) == "Approved"
        assert len(notifier.calls) == 1
        channel, recipient, message = notifier.calls[0]
        assert channel == "whatsapp"
        assert recipient == "9999999999"
        assert handle.order_code in message

    async def test_unknown_code(self, lifecycle, notifier, queue):
        with pytest.raises(NotFoundError):
            await lifecycle.approve_order("AT_missing")
        await queue.join()
        assert notifier.calls == []

    async def test_notifier_failure_does_not_fail_approval(self, lifecycle, queue, notifier):
        notifier.fail = True
        handle = await lifecycle.create_order(cart())

        await lifecycle.approve_order(handle.order_code)
        await queue.join()

        assert await lifecycle.order_status(handle.order_code) == "Approved"
        assert queue.failed == 1

    async def test_without_queue(self, db, gateway, log):
        lifecycle = OrderLifecycle(OrderStore(db), gateway, log, gateway_secret="test_secret")
        handle = await lifecycle.create_order(cart())
        order = await lifecycle.approve_order(handle.order_code)
        assert order.order_status == "Approved"

    async def test_broken_template_does_not_fail_approval(self, lifecycle, queue, notifier, monkeypatch):
        monkeypatch.setattr(settings, "APPROVAL_TEMPLATE", "Hi {customer}")
        handle = await lifecycle.create_order(cart())

        order = await lifecycle.approve_order(handle.order_code)
        await queue.join()

        assert order.order_status == "Approved"
        assert await lifecycle.order_status(handle.order_code) == "Approved"
        assert notifier.calls == []


class TestQueries:
    async def test_unknown_status_is_pending(self, lifecycle):
        assert await lifecycle.order_status("AT_never_created") == "Pending"

    async def test_customer_orders_newest_first(self, lifecycle):
        first = await lifecycle.create_order(cart(mobile="8888888888"))
        second = await lifecycle.create_order(cart(mobile="8888888888"))
        await lifecycle.create_order(cart(mobile="7777777777"))

        rows = await lifecycle.customer_orders("8888888888")

        assert [r.order_code for r in rows] == [second.order_code, first.order_code]
        assert rows[0].total == 50
        assert rows[0].order_status == "Pending"

    async def test_all_orders_newest_first(self, lifecycle):
        codes = [(await lifecycle.create_order(cart())).order_code for _ in range(3)]
        orders = await lifecycle.all_orders()
        assert [o.code for o in orders] == list(reversed(codes))

    async def test_scenario(self, lifecycle, queue, notifier):
        handle = await lifecycle.create_order(cart())
        order = await lifecycle.store.find_by_code(handle.order_code)
        assert (order.delivery, order.total) == (30, 50)

        sig = sign(handle.gateway_order_id, "pay_42")
        assert await lifecycle.verify_payment(handle.order_code, handle.gateway_order_id, "pay_42", sig)
        order = await lifecycle.store.find_by_code(handle.order_code)
        assert order.payment_status == "Paid"

        await lifecycle.approve_order(handle.order_code)
        await queue.join()
        order = await lifecycle.store.find_by_code(handle.order_code)
        assert order.order_status == "Approved"
        assert len(notifier.calls) == 1


async def test_store_insert_conflict(db):
    store = OrderStore(db)

    def row():
        return OrderModel(
            code="ATDUP", name="A", mobile="1", address="X", items=[],
            subtotal=0, delivery=0, total=0,
        )

    await store.insert(row())
    with pytest.raises(ConflictError):
        await store.insert(row())
    assert len(await store.list_all()) == 1


def new_row(code):
    return OrderModel(
        code=code, name="A", mobile="1", address="X", items=[],
        subtotal=20, delivery=30, total=50,
    )


async def race(session_factory, update, values):
    """Запускает update(store, value) одновременно в отдельных сессиях."""
    results = {}

    async def run(value):
        async with session_factory() as session:
            results[value] = await update(OrderStore(session), value)

    async with anyio.create_task_group() as tg:
        for value in values:
            tg.start_soon(run, value)
    return results


async def test_concurrent_payment_updates_one_wins(session_factory):
    async with session_factory() as session:
        await OrderStore(session).insert(new_row("ATRACE1"))

    results = await race(
        session_factory,
        lambda store, status: store.update_payment_status("ATRACE1", status),
        [PaymentStatus.PAID, PaymentStatus.FAILED],
    )

    winners = [status for status, changed in results.items() if changed]
    assert len(winners) == 1
    async with session_factory() as session:
        order = await OrderStore(session).find_by_code("ATRACE1")
    assert order.payment_status == winners[0].value


async def test_concurrent_approvals_one_wins(session_factory):
    async with session_factory() as session:
        await OrderStore(session).insert(new_row("ATRACE2"))

    results = await race(
        session_factory,
        lambda store, n: store.update_order_status("ATRACE2", OrderStatus.APPROVED),
        [1, 2, 3],
    )

    assert sorted(results.values()) == [False, False, True]
