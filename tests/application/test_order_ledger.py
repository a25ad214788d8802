"""
Order ledger and status catalog tests.
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from checkout.data.models import (
    OrderActivityModel,
    OrderItemModel,
    OrderModel,
    OrderStatusModel,
)
from checkout.domain.errors import NotFoundError, ValidationError
from checkout.services.order_ledger import OrderLedger
from checkout.services.status_service import StatusService


@pytest.fixture()
def order(db, provider):
    row = OrderModel(
        customer_id=1,
        shipping_destination_id=9,
        total_amount=Decimal("10.00"),
        created_at=datetime.now(timezone.utc),
    )
    db.add(row)
    db.flush()
    db.add(
        OrderItemModel(
            order_id=row.id,
            product_id=1,
            quantity=1,
            price=Decimal("10.00"),
            provider_id=provider,
            created_at=datetime.now(timezone.utc),
        )
    )
    db.commit()
    return row


@pytest.fixture()
def ledger(db):
    return OrderLedger(db)


class TestOrderLedger:
    def test_order_without_activity_is_implicitly_pending(self, ledger, order, statuses):
        status = ledger.current_order_status(order.id)

        assert status.name == "Pending"
        assert status.id is None

    def test_appended_status_becomes_current(self, ledger, order, statuses):
        ledger.append_order_status(order.id, statuses["Pending"])
        activity = ledger.append_order_status(order.id, statuses["Shipped"])

        assert activity.status_name == "Shipped"
        assert ledger.current_order_status(order.id).name == "Shipped"

    def test_history_is_kept_in_full(self, ledger, order, statuses):
        for name in ["Pending", "Processing", "Shipped"]:
            ledger.append_order_status(order.id, statuses[name])

        history = ledger.order_history(order.id)

        assert [a.status_name for a in history] == ["Pending", "Processing", "Shipped"]

    def test_any_status_may_follow_any_other(self, ledger, order, statuses):
        ledger.append_order_status(order.id, statuses["Delivered"])
        ledger.append_order_status(order.id, statuses["Pending"])

        assert ledger.current_order_status(order.id).name == "Pending"

    def test_current_status_follows_timestamps_not_insert_order(self, db, ledger, order, statuses):
        base = datetime(2024, 1, 1, tzinfo=timezone.utc)
        # inserted last, but happened first
        db.add(OrderActivityModel(order_id=order.id, status_id=statuses["Shipped"], created_at=base + timedelta(hours=2)))
        db.add(OrderActivityModel(order_id=order.id, status_id=statuses["Processing"], created_at=base + timedelta(hours=3)))
        db.add(OrderActivityModel(order_id=order.id, status_id=statuses["Pending"], created_at=base))
        db.commit()

        assert ledger.current_order_status(order.id).name == "Processing"
        assert [a.status_name for a in ledger.order_history(order.id)] == ["Pending", "Shipped", "Processing"]

    def test_same_timestamp_is_broken_by_insertion(self, db, ledger, order, statuses):
        at = datetime(2024, 1, 1, tzinfo=timezone.utc)
        db.add(OrderActivityModel(order_id=order.id, status_id=statuses["Processing"], created_at=at))
        db.flush()
        db.add(OrderActivityModel(order_id=order.id, status_id=statuses["Shipped"], created_at=at))
        db.commit()

        assert ledger.current_order_status(order.id).name == "Shipped"

    def test_item_status_is_independent_of_the_order(self, ledger, order, statuses):
        item_id = order.items[0].id

        ledger.append_item_status(item_id, statuses["Shipped"])

        assert ledger.current_item_status(item_id).name == "Shipped"
        assert ledger.current_order_status(order.id).name == "Pending"
        assert ledger.order_history(order.id) == []

    def test_unknown_status_is_rejected(self, ledger, order, statuses):
        with pytest.raises(NotFoundError) as exc_info:
            ledger.append_order_status(order.id, 999)

        assert exc_info.value.code == "StatusNotFound"
        assert ledger.order_history(order.id) == []

    def test_inactive_status_is_rejected(self, db, ledger, order, statuses):
        retired = OrderStatusModel(name="OnHold", is_active=False)
        db.add(retired)
        db.commit()

        with pytest.raises(NotFoundError):
            ledger.append_order_status(order.id, retired.id)

    def test_unknown_order_is_rejected(self, ledger, statuses):
        with pytest.raises(NotFoundError) as exc_info:
            ledger.append_order_status(12345, statuses["Shipped"])

        assert exc_info.value.code == "OrderNotFound"

    def test_unknown_order_item_is_rejected(self, ledger, statuses):
        with pytest.raises(NotFoundError) as exc_info:
            ledger.append_item_status(12345, statuses["Shipped"])

        assert exc_info.value.code == "OrderItemNotFound"


class TestStatusService:
    def test_seeded_statuses_are_listed(self, db, statuses):
        names = [s.name for s in StatusService(db).list_statuses()]

        assert names == sorted(["Pending", "Processing", "Shipped", "Delivered", "Cancelled"])

    def test_new_status_extends_the_lifecycle(self, db, statuses, ledger, order):
        created = StatusService(db).create_status("  Returned ")

        assert created.name == "Returned"
        ledger.append_order_status(order.id, created.id)
        assert ledger.current_order_status(order.id).name == "Returned"

    def test_duplicate_name_is_rejected(self, db, statuses):
        with pytest.raises(ValidationError) as exc_info:
            StatusService(db).create_status("Shipped")

        assert exc_info.value.code == "StatusNameExists"

    def test_blank_name_is_rejected(self, db, statuses):
        with pytest.raises(ValidationError) as exc_info:
            StatusService(db).create_status("   ")

        assert exc_info.value.code == "StatusNameRequired"

    def test_inactive_statuses_are_hidden_by_default(self, db, statuses):
        StatusService(db).create_status("Archived", is_active=False)

        active = [s.name for s in StatusService(db).list_statuses()]
        every = [s.name for s in StatusService(db).list_statuses(active_only=False)]

        assert "Archived" not in active
        assert "Archived" in every

    def test_get_status(self, db, statuses):
        assert StatusService(db).get_status(statuses["Delivered"]).name == "Delivered"
        with pytest.raises(NotFoundError):
            StatusService(db).get_status(999)
