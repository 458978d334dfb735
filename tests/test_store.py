"""
Behavioral tests shared by the in-memory and the SQL Order Store.
"""

import threading
from datetime import datetime, timedelta, timezone

import pytest

from conftest import PRODUCT_NAME, create_kim
from order_intake.errors import InvalidTransition, OrderNotFound
from order_intake.models import OrderStatus
from order_intake.store import InMemoryOrderStore, check_transition, status_changes


class TestCreate:

    def test_new_order_is_pending(self, store):
        order = create_kim(store)
        assert order.id == 1
        assert order.status == OrderStatus.PENDING
        assert order.productName == PRODUCT_NAME
        assert order.buyerName == "Kim"
        assert order.totalAmount == "20000"
        assert order.trackingNumber is None
        assert order.cancellationReason is None
        assert order.orderDate is not None

    def test_order_date_is_utc_everywhere(self, store):
        order = create_kim(store)
        listed = store.list_all()[0]
        assert order.orderDate.utcoffset() == timedelta(0)
        assert listed.orderDate.utcoffset() == timedelta(0)
        assert listed.orderDate == order.orderDate
        assert listed.model_dump_json() == order.model_dump_json()

    def test_ids_strictly_increase(self, store):
        ids = [create_kim(store).id for _ in range(5)]
        assert ids == sorted(ids)
        assert len(set(ids)) == 5

    def test_ids_are_not_reused_after_delete(self, store):
        create_kim(store)
        second = create_kim(store)
        store.delete_one(second.id)
        assert create_kim(store).id > second.id


class TestListAll:

    def test_empty_store(self, store):
        assert store.list_all() == []

    def test_newest_first(self, store):
        for name in ("A", "B", "C"):
            create_kim(store, buyer_name=name)
        orders = store.list_all()
        assert [o.buyerName for o in orders] == ["C", "B", "A"]
        assert [o.id for o in orders] == [3, 2, 1]

    def test_orders_sorted_by_order_date(self):
        start = datetime(2026, 1, 1, tzinfo=timezone.utc)
        # second order is stamped earlier than the first
        dates = iter([start, start - timedelta(days=1), start + timedelta(days=1)])
        store = InMemoryOrderStore(PRODUCT_NAME, clock=lambda: next(dates))
        for _ in range(3):
            create_kim(store)
        assert [o.id for o in store.list_all()] == [3, 1, 2]


class TestSetStatus:

    def test_complete_with_tracking(self, store):
        order = create_kim(store)
        updated = store.set_status(order.id, OrderStatus.COMPLETED, tracking_number="TN1", carrier="CJ")
        assert updated.status == OrderStatus.COMPLETED
        assert updated.trackingNumber == "TN1"
        assert updated.trackingCarrier == "CJ"
        assert updated.orderDate == order.orderDate

    def test_cancel_request_then_cancel(self, store):
        order = create_kim(store)
        requested = store.set_status(order.id, OrderStatus.CANCEL_REQUESTED, reason="changed my mind")
        assert requested.status == OrderStatus.CANCEL_REQUESTED
        assert requested.cancellationReason == "changed my mind"

        cancelled = store.set_status(order.id, OrderStatus.CANCELLED)
        assert cancelled.status == OrderStatus.CANCELLED
        # no new reason given, the buyer's reason stays
        assert cancelled.cancellationReason == "changed my mind"

    def test_admin_cancel_skips_request(self, store):
        order = create_kim(store)
        cancelled = store.set_status(order.id, OrderStatus.CANCELLED, reason="out of stock")
        assert cancelled.status == OrderStatus.CANCELLED
        assert cancelled.cancellationReason == "out of stock"

    def test_tracking_ignored_on_cancel(self, store):
        order = create_kim(store)
        cancelled = store.set_status(order.id, OrderStatus.CANCELLED, tracking_number="TN1")
        assert cancelled.trackingNumber is None

    @pytest.mark.parametrize("terminal", [OrderStatus.COMPLETED, OrderStatus.CANCELLED])
    @pytest.mark.parametrize("target", list(OrderStatus))
    def test_terminal_states_reject_transitions(self, store, terminal, target):
        order = create_kim(store)
        store.set_status(order.id, terminal)
        with pytest.raises(InvalidTransition):
            store.set_status(order.id, target)
        assert store.list_all()[0].status == terminal

    def test_unknown_id(self, store):
        create_kim(store)
        with pytest.raises(OrderNotFound):
            store.set_status(42, OrderStatus.COMPLETED)
        assert store.list_all()[0].status == OrderStatus.PENDING

    def test_update_is_persisted(self, store):
        order = create_kim(store)
        store.set_status(order.id, OrderStatus.COMPLETED, tracking_number="TN9")
        stored = store.list_all()[0]
        assert stored.status == OrderStatus.COMPLETED
        assert stored.trackingNumber == "TN9"


class TestDelete:

    def test_delete_one(self, store):
        first = create_kim(store)
        second = create_kim(store)
        store.delete_one(first.id)
        assert [o.id for o in store.list_all()] == [second.id]

    def test_delete_unknown_leaves_store_unchanged(self, store):
        create_kim(store)
        with pytest.raises(OrderNotFound):
            store.delete_one(99)
        assert len(store.list_all()) == 1

    def test_delete_all_resets_ids(self, store):
        for _ in range(3):
            create_kim(store)
        store.delete_all()
        assert store.list_all() == []
        assert create_kim(store).id == 1


class TestStateMachine:

    @pytest.mark.parametrize("current, target", [
        (OrderStatus.PENDING, OrderStatus.COMPLETED),
        (OrderStatus.PENDING, OrderStatus.CANCEL_REQUESTED),
        (OrderStatus.PENDING, OrderStatus.CANCELLED),
        (OrderStatus.CANCEL_REQUESTED, OrderStatus.CANCELLED),
    ])
    def test_allowed(self, current, target):
        check_transition(1, current, target)

    @pytest.mark.parametrize("current, target", [
        (OrderStatus.PENDING, OrderStatus.PENDING),
        (OrderStatus.CANCEL_REQUESTED, OrderStatus.CANCEL_REQUESTED),
        (OrderStatus.CANCEL_REQUESTED, OrderStatus.COMPLETED),
        (OrderStatus.COMPLETED, OrderStatus.CANCELLED),
        (OrderStatus.CANCELLED, OrderStatus.PENDING),
    ])
    def test_rejected(self, current, target):
        with pytest.raises(InvalidTransition):
            check_transition(1, current, target)

    def test_status_changes_skip_missing_extras(self):
        assert status_changes(OrderStatus.COMPLETED, carrier="CJ") == {
            "status": OrderStatus.COMPLETED,
            "trackingCarrier": "CJ",
        }
        assert status_changes(OrderStatus.CANCELLED) == {"status": OrderStatus.CANCELLED}


class TestInMemoryConcurrency:

    def test_parallel_creates_get_unique_ids(self, memory_store):
        def worker():
            for _ in range(50):
                create_kim(memory_store)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        ids = [o.id for o in memory_store.list_all()]
        assert len(ids) == 400
        assert sorted(ids) == list(range(1, 401))

    def test_returned_orders_are_copies(self, memory_store):
        order = create_kim(memory_store)
        order.buyerName = "Lee"
        assert memory_store.list_all()[0].buyerName == "Kim"
