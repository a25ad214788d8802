"""
Checkout tests against a real (sqlite) database.

Whatever goes wrong inside a checkout, the cart, the stock and the order
tables must look exactly as they did before it started.
"""

from decimal import Decimal
from threading import Event

import pytest
from sqlalchemy.exc import OperationalError

from checkout.data.models import (
    CartItemModel,
    OrderActivityModel,
    OrderItemActivityModel,
    OrderItemModel,
    OrderModel,
    ProductModel,
)
from checkout.domain.schemas import CheckoutFailureKind
from checkout.repos.activity_repo import ActivityRepo
from checkout.repos.cart_repo import CartRepo
from checkout.repos.order_repo import OrderRepo
from checkout.repos.product_repo import ProductRepo
from checkout.services.catalog import CachedCatalogLookup, CatalogCache, SqlCatalogLookup
from checkout.services.checkout_service import CheckoutService
from checkout.services.order_service import OrderService
from checkout.services.stock_validator import StockValidator

CUSTOMER = 1
DESTINATION = 9


def count(session_factory, model):
    with session_factory() as session:
        return session.query(model).count()


def live_items(session_factory, customer_id=CUSTOMER):
    with session_factory() as session:
        repo = CartRepo(session)
        cart = repo.get_cart_by_customer(customer_id)
        return [(i.product_id, i.quantity) for i in repo.get_cart_items(cart.id)]


class TestCheckoutOutcomes:
    def test_successful_checkout(self, cart_service, checkout_service, make_product, stock_of, notifier):
        a = make_product(name="Product A", price="10.00", quantity=3)
        cart_service.add_item(CUSTOMER, a, 1)

        result = checkout_service.checkout(CUSTOMER, DESTINATION)

        assert result.success
        assert result.failure is None
        order = result.order
        assert order.total_amount == Decimal("10.00")
        assert order.shipping_destination_id == DESTINATION
        assert order.current_status.name == "Pending"
        assert stock_of(a) == 2
        assert cart_service.get_cart(CUSTOMER).items == []
        assert cart_service.get_cart(CUSTOMER).total_amount == Decimal("0.00")
        assert notifier.sent == [(CUSTOMER, order.id)]

    def test_shortfall_leaves_everything_untouched(
        self, session_factory, cart_service, checkout_service, make_product, stock_of
    ):
        a = make_product(name="Product A", price="10.00", quantity=5)
        b = make_product(name="Product B", price="25.00", quantity=0)
        cart_service.add_item(CUSTOMER, a, 2)
        cart_service.add_item(CUSTOMER, b, 1)

        result = checkout_service.checkout(CUSTOMER, DESTINATION)

        assert not result.success
        assert result.failure == CheckoutFailureKind.STOCK_SHORTFALL
        assert [(s.product_id, s.product_name, s.requested, s.available) for s in result.shortfalls] == [
            (b, "Product B", 1, 0)
        ]
        assert not result.retryable
        assert stock_of(a) == 5
        assert live_items(session_factory) == [(a, 2), (b, 1)]
        assert count(session_factory, OrderModel) == 0

    def test_order_items_copy_price_provider_and_post(self, cart_service, checkout_service, make_product):
        a = make_product(name="Product A", price="10.00", quantity=5)
        c = make_product(name="Product C", price="2.50", quantity=5)
        cart_service.add_item(CUSTOMER, a, 2, post_id=31)
        cart_service.add_item(CUSTOMER, c, 1)

        order = checkout_service.checkout(CUSTOMER, DESTINATION).order

        assert order.total_amount == Decimal("22.50")
        assert [(i.product_id, i.post_id, i.quantity, i.price) for i in order.items] == [
            (a, 31, 2, Decimal("10.00")),
            (c, None, 1, Decimal("2.50")),
        ]
        assert {i.provider_name for i in order.items} == {"Acme Supplies"}
        assert all(i.current_status.name == "Pending" for i in order.items)
        assert all(len(i.activities) == 1 for i in order.items)
        assert len(order.activities) == 1

    def test_two_lines_of_one_product_share_its_stock(
        self, session_factory, cart_service, checkout_service, make_product, stock_of
    ):
        a = make_product(quantity=5)
        cart_service.add_item(CUSTOMER, a, 3, post_id=1)
        cart_service.add_item(CUSTOMER, a, 3, post_id=2)

        result = checkout_service.checkout(CUSTOMER, DESTINATION)

        assert result.failure == CheckoutFailureKind.STOCK_SHORTFALL
        assert result.shortfalls[0].requested == 6
        assert stock_of(a) == 5

    def test_price_snapshot_survives_catalog_changes(self, db, cart_service, checkout_service, make_product):
        a = make_product(price="10.00", quantity=5)
        cart_service.add_item(CUSTOMER, a, 1)
        order = checkout_service.checkout(CUSTOMER, DESTINATION).order

        db.get(ProductModel, a).price = Decimal("99.00")
        db.commit()

        view = OrderService(db, SqlCatalogLookup(db)).get_order(order.id)
        assert view.items[0].price == Decimal("10.00")
        assert view.total_amount == Decimal("10.00")

    def test_empty_cart(self, session_factory, checkout_service):
        result = checkout_service.checkout(CUSTOMER, DESTINATION)

        assert result.failure == CheckoutFailureKind.EMPTY_CART
        assert count(session_factory, OrderModel) == 0

    def test_repeated_checkout_creates_one_order(self, session_factory, cart_service, checkout_service, make_product):
        a = make_product(quantity=5)
        cart_service.add_item(CUSTOMER, a, 1)

        first = checkout_service.checkout(CUSTOMER, DESTINATION)
        second = checkout_service.checkout(CUSTOMER, DESTINATION)

        assert first.success
        assert second.failure == CheckoutFailureKind.EMPTY_CART
        assert count(session_factory, OrderModel) == 1

    def test_cart_is_reused_after_checkout(self, cart_service, checkout_service, make_product):
        a = make_product(quantity=5)
        first = cart_service.add_item(CUSTOMER, a, 1)
        checkout_service.checkout(CUSTOMER, DESTINATION)

        again = cart_service.add_item(CUSTOMER, a, 2)

        assert again.cart_id == first.cart_id
        assert [(i.product_id, i.quantity) for i in again.items] == [(a, 2)]
        assert again.total_amount == Decimal("20.00")

    @pytest.mark.parametrize("destination", [None, 0])
    def test_shipping_destination_is_required(self, cart_service, checkout_service, make_product, destination):
        a = make_product(quantity=5)
        cart_service.add_item(CUSTOMER, a, 1)

        result = checkout_service.checkout(CUSTOMER, destination)

        assert result.failure == CheckoutFailureKind.VALIDATION

    def test_missing_initial_status_fails_without_changes(
        self, db, session_factory, cart_service, make_product, stock_of
    ):
        # no status catalog seeded
        a = make_product(quantity=5)
        cart_service.add_item(CUSTOMER, a, 1)

        result = CheckoutService(db).checkout(CUSTOMER, DESTINATION)

        assert result.failure == CheckoutFailureKind.NOT_FOUND
        assert stock_of(a) == 5
        assert count(session_factory, OrderModel) == 0

    def test_missing_provider_fails_without_changes(
        self, session_factory, cart_service, checkout_service, make_product, stock_of
    ):
        a = make_product(quantity=5, provider_id=999)
        cart_service.add_item(CUSTOMER, a, 1)

        result = checkout_service.checkout(CUSTOMER, DESTINATION)

        assert result.failure == CheckoutFailureKind.NOT_FOUND
        assert stock_of(a) == 5
        assert live_items(session_factory) == [(a, 1)]

    def test_failed_notification_does_not_undo_the_order(self, db, statuses, cart_service, make_product):
        class BrokenNotifier:
            def send_order_notification(self, customer_id, order_id):
                raise ConnectionError("broker down")

        a = make_product(quantity=5)
        cart_service.add_item(CUSTOMER, a, 1)

        result = CheckoutService(db, notifier=BrokenNotifier()).checkout(CUSTOMER, DESTINATION)

        assert result.success


FAILING_STEPS = [
    (OrderRepo, "create_order"),
    (OrderRepo, "add_order_item"),
    (ProductRepo, "decrement_quantity"),
    (CartRepo, "soft_delete_items"),
    (CartRepo, "update_cart_version"),
    (ActivityRepo, "add_order_activity"),
    (ActivityRepo, "add_item_activity"),
]


class TestAtomicity:
    @pytest.fixture()
    def filled_cart(self, cart_service, make_product):
        a = make_product(name="Product A", price="10.00", quantity=5)
        b = make_product(name="Product B", price="4.00", quantity=5)
        cart_service.add_item(CUSTOMER, a, 2)
        cart_service.add_item(CUSTOMER, b, 1)
        return a, b

    def assert_nothing_changed(self, session_factory, stock_of, cart_service, a, b):
        assert stock_of(a) == 5
        assert stock_of(b) == 5
        assert live_items(session_factory) == [(a, 2), (b, 1)]
        assert cart_service.get_cart(CUSTOMER).total_amount == Decimal("24.00")
        assert count(session_factory, OrderModel) == 0
        assert count(session_factory, OrderItemModel) == 0
        assert count(session_factory, OrderActivityModel) == 0
        assert count(session_factory, OrderItemActivityModel) == 0
        with session_factory() as session:
            assert session.query(CartItemModel).filter(CartItemModel.is_deleted.is_(True)).count() == 0

    @pytest.mark.parametrize("owner, method", FAILING_STEPS)
    def test_unexpected_error_rolls_back_and_propagates(
        self, monkeypatch, session_factory, stock_of, cart_service, checkout_service, filled_cart, owner, method
    ):
        a, b = filled_cart

        def explode(*args, **kwargs):
            raise RuntimeError(f"{method} blew up")

        monkeypatch.setattr(owner, method, explode)

        with pytest.raises(RuntimeError):
            checkout_service.checkout(CUSTOMER, DESTINATION)

        monkeypatch.undo()
        self.assert_nothing_changed(session_factory, stock_of, cart_service, a, b)

    @pytest.mark.parametrize("owner, method", FAILING_STEPS)
    def test_storage_error_is_retried_once_then_reported(
        self, monkeypatch, session_factory, stock_of, cart_service, checkout_service, filled_cart, owner, method
    ):
        a, b = filled_cart
        calls = []

        def storage_down(*args, **kwargs):
            calls.append(method)
            raise OperationalError("INSERT ...", {}, Exception("disk I/O error"))

        monkeypatch.setattr(owner, method, storage_down)

        result = checkout_service.checkout(CUSTOMER, DESTINATION)

        assert result.failure == CheckoutFailureKind.PERSISTENCE
        assert result.retryable
        assert len(calls) == 2

        monkeypatch.undo()
        self.assert_nothing_changed(session_factory, stock_of, cart_service, a, b)

    def test_cancelled_before_start(self, session_factory, stock_of, cart_service, checkout_service, filled_cart):
        a, b = filled_cart
        cancel = Event()
        cancel.set()

        result = checkout_service.checkout(CUSTOMER, DESTINATION, cancel_event=cancel)

        assert result.failure == CheckoutFailureKind.CANCELLED
        assert not result.retryable
        self.assert_nothing_changed(session_factory, stock_of, cart_service, a, b)

    def test_cancelled_midway(self, monkeypatch, session_factory, stock_of, cart_service, checkout_service, filled_cart):
        a, b = filled_cart
        cancel = Event()
        original = StockValidator.check

        def check_then_cancel(self, demands):
            result = original(self, demands)
            cancel.set()
            return result

        monkeypatch.setattr(StockValidator, "check", check_then_cancel)

        result = checkout_service.checkout(CUSTOMER, DESTINATION, cancel_event=cancel)

        assert result.failure == CheckoutFailureKind.CANCELLED
        monkeypatch.undo()
        self.assert_nothing_changed(session_factory, stock_of, cart_service, a, b)


class TestInventoryRace:
    def test_lost_race_is_retried(self, monkeypatch, session_factory, cart_service, checkout_service, make_product, stock_of):
        a = make_product(quantity=5)
        cart_service.add_item(CUSTOMER, a, 2)
        original = ProductRepo.decrement_quantity
        calls = []

        def lose_first(self, product_id, quantity, expected_version):
            calls.append(product_id)
            if len(calls) == 1:
                return 0
            return original(self, product_id, quantity, expected_version)

        monkeypatch.setattr(ProductRepo, "decrement_quantity", lose_first)

        result = checkout_service.checkout(CUSTOMER, DESTINATION)

        assert result.success
        assert len(calls) == 2
        assert stock_of(a) == 3
        assert count(session_factory, OrderModel) == 1

    def test_gives_up_after_the_attempt_limit(self, monkeypatch, session_factory, cart_service, checkout_service, make_product, stock_of):
        a = make_product(quantity=5)
        cart_service.add_item(CUSTOMER, a, 2)
        calls = []

        def always_lose(self, product_id, quantity, expected_version):
            calls.append(product_id)
            return 0

        monkeypatch.setattr(ProductRepo, "decrement_quantity", always_lose)

        result = checkout_service.checkout(CUSTOMER, DESTINATION)

        assert result.failure == CheckoutFailureKind.CONCURRENCY_CONFLICT
        assert result.retryable
        assert len(calls) == 3
        assert stock_of(a) == 5
        monkeypatch.undo()
        assert live_items(session_factory) == [(a, 2)]

    def test_competing_checkout_between_validation_and_decrement(
        self, monkeypatch, session_factory, cart_service, checkout_service, make_product, stock_of
    ):
        a = make_product(quantity=5)
        cart_service.add_item(CUSTOMER, a, 4)
        original = StockValidator.check
        interfered = []

        def check_then_compete(self, demands):
            result = original(self, demands)
            if not interfered:
                # another customer takes 3 units after our read and before our write
                with session_factory() as other:
                    product = ProductRepo(other).get_product(a)
                    assert ProductRepo(other).decrement_quantity(a, 3, product.version) == 1
                    other.commit()
                interfered.append(True)
            return result

        monkeypatch.setattr(StockValidator, "check", check_then_compete)

        result = checkout_service.checkout(CUSTOMER, DESTINATION)

        # the stale version is detected, the retry sees only 2 left
        assert result.failure == CheckoutFailureKind.STOCK_SHORTFALL
        assert result.shortfalls[0].requested == 4
        assert result.shortfalls[0].available == 2
        assert stock_of(a) == 2
        assert count(session_factory, OrderModel) == 0

    def test_second_customer_cannot_oversell(self, cart_service, checkout_service, make_product, stock_of):
        a = make_product(quantity=5)
        cart_service.add_item(1, a, 3)
        cart_service.add_item(2, a, 3)

        first = checkout_service.checkout(1, DESTINATION)
        second = checkout_service.checkout(2, DESTINATION)

        assert first.success
        assert second.failure == CheckoutFailureKind.STOCK_SHORTFALL
        assert second.shortfalls[0].available == 2
        assert stock_of(a) == 2


class DictRedis:
    def __init__(self):
        self.store = {}

    def get(self, key):
        return self.store.get(key)

    def set(self, name, value, ex=None):
        self.store[name] = value

    def delete(self, *keys):
        return sum(1 for key in keys if self.store.pop(key, None) is not None)


class TestAfterCommit:
    def test_cached_stock_of_bought_products_is_invalidated(self, db, notifier, statuses, cart_service, make_product):
        a = make_product(quantity=5)
        untouched = make_product(name="Other", quantity=5)
        cart_service.add_item(CUSTOMER, a, 2)
        cache = CatalogCache(client=DictRedis())
        cached = CachedCatalogLookup(SqlCatalogLookup(db), cache)
        assert cached.get_product(a).available_quantity == 5
        cached.get_product(untouched)

        result = CheckoutService(db, notifier=notifier, cache=cache).checkout(CUSTOMER, DESTINATION)

        assert result.success
        assert CatalogCache.product_key(a) not in cache.redis.store
        assert CatalogCache.product_key(untouched) in cache.redis.store
        assert cached.get_product(a).available_quantity == 3

    def test_order_stays_placed_when_its_view_cannot_be_read(
        self, monkeypatch, session_factory, cart_service, checkout_service, make_product, stock_of, notifier
    ):
        a = make_product(quantity=5)
        cart_service.add_item(CUSTOMER, a, 1)

        def unreadable(self, order_id, customer_id=None):
            raise OperationalError("SELECT ...", {}, Exception("connection lost"))

        monkeypatch.setattr(OrderService, "get_order", unreadable)

        result = checkout_service.checkout(CUSTOMER, DESTINATION)

        assert result.success
        assert result.order is None
        assert result.order_id is not None
        assert count(session_factory, OrderModel) == 1
        assert stock_of(a) == 4
        assert notifier.sent == [(CUSTOMER, result.order_id)]
