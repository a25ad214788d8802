# checkout/services/checkout_service.py
from datetime import datetime, timezone
from decimal import Decimal
from threading import Event
from typing import List, Tuple

from redis.exceptions import RedisError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from checkout.data.models.order import OrderModel
from checkout.data.models.order_item import OrderItemModel
from checkout.domain.errors import (
    AppError,
    CatalogUnavailableError,
    CheckoutCancelledError,
    ConcurrencyConflictError,
    EmptyCartError,
    NotFoundError,
    PersistenceError,
    StockShortfallError,
    ValidationError,
)
from checkout.domain.schemas import CheckoutFailureKind, CheckoutResult, OrderOut
from checkout.repos.cart_repo import CartRepo
from checkout.repos.order_repo import OrderRepo
from checkout.repos.product_repo import ProductRepo
from checkout.repos.status_repo import StatusRepo
from checkout.services.catalog import CatalogCache, SqlCatalogLookup
from checkout.services.notification_service import NotificationService
from checkout.services.order_ledger import OrderLedger
from checkout.services.order_service import OrderService
from checkout.services.stock_validator import StockValidator, aggregate_demands
from checkout.utils.retry import conflict_retry, persistence_retry
from checkout.utils.settings import INITIAL_ORDER_STATUS
from checkout.utils.logging import get_logger

logger = get_logger(__name__)

_FAILURE_KINDS = [
    (EmptyCartError, CheckoutFailureKind.EMPTY_CART),
    (ValidationError, CheckoutFailureKind.VALIDATION),
    (NotFoundError, CheckoutFailureKind.NOT_FOUND),
    (ConcurrencyConflictError, CheckoutFailureKind.CONCURRENCY_CONFLICT),
    (PersistenceError, CheckoutFailureKind.PERSISTENCE),
    (CatalogUnavailableError, CheckoutFailureKind.CATALOG_UNAVAILABLE),
    (CheckoutCancelledError, CheckoutFailureKind.CANCELLED),
]


def failure_kind(error: AppError) -> CheckoutFailureKind:
    for error_type, kind in _FAILURE_KINDS:
        if isinstance(error, error_type):
            return kind
    return CheckoutFailureKind.PERSISTENCE


class CheckoutService:
    """
    Turns a customer's cart into an order, all or nothing.

    One attempt is one database transaction:
    1. load the cart and its live items (empty -> EmptyCart)
    2. validate stock with row locks held (shortfall -> abort)
    3. insert the order with the cart total and shipping destination
    4. insert order items with price and provider fixed, decrement stock
       under a version check
    5. soft-delete the cart items and zero the cart total
    6. record the initial status for the order and every item
    7. commit

    A lost inventory race (ConcurrencyConflictError) restarts the whole
    attempt a few times; a storage failure is retried once. Whatever is left
    is turned into a CheckoutResult, no exception leaves ``checkout``
    except programming errors, which are rolled back and re-raised.
    """

    def __init__(
        self,
        db: Session,
        notifier: NotificationService | None = None,
        cache: CatalogCache | None = None,
    ):
        self.db = db
        self.carts = CartRepo(db)
        self.orders = OrderRepo(db)
        self.products = ProductRepo(db)
        self.statuses = StatusRepo(db)
        self.ledger = OrderLedger(db)
        self.stock = StockValidator(SqlCatalogLookup(db, for_update=True))
        self.notifier = notifier or NotificationService()
        self.cache = cache

    def checkout(
        self,
        customer_id: int,
        shipping_destination_id: int | None,
        cancel_event: Event | None = None,
    ) -> CheckoutResult:
        try:
            self._check_input(customer_id, shipping_destination_id)
            order_id, product_ids = self._attempt(customer_id, shipping_destination_id, cancel_event)
        except StockShortfallError as e:
            return CheckoutResult.fail(
                CheckoutFailureKind.STOCK_SHORTFALL,
                e.message,
                shortfalls=e.shortfalls,
            )
        except AppError as e:
            logger.warning(f"Checkout for customer {customer_id} failed: {e.code} {e.message}")
            return CheckoutResult.fail(failure_kind(e), e.message, retryable=e.retryable)

        # zamowienie zapisane, od tego miejsca nic go juz nie cofa
        self._invalidate(product_ids)
        self._notify(customer_id, order_id)
        return CheckoutResult.ok(order_id, self._view(order_id))

    @staticmethod
    def _check_input(customer_id: int, shipping_destination_id: int | None) -> None:
        if customer_id is None or customer_id < 1:
            raise ValidationError("Customer id must be positive", code="InvalidCustomer")
        if shipping_destination_id is None or shipping_destination_id < 1:
            raise ValidationError("Shipping destination is required", code="ShippingDestinationRequired")

    @staticmethod
    def _raise_if_cancelled(cancel_event: Event | None) -> None:
        if cancel_event is not None and cancel_event.is_set():
            raise CheckoutCancelledError()

    @conflict_retry()
    @persistence_retry()
    def _attempt(
        self, customer_id: int, shipping_destination_id: int, cancel_event: Event | None
    ) -> Tuple[int, List[int]]:
        try:
            order, product_ids = self._run(customer_id, shipping_destination_id, cancel_event)
            order_id = order.id
            self._raise_if_cancelled(cancel_event)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Checkout transaction for customer {customer_id} failed: {e}")
            raise PersistenceError(f"Checkout could not be stored: {e}") from e
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"Customer {customer_id} checked out, order {order_id} created")
        return order_id, product_ids

    def _run(
        self, customer_id: int, shipping_destination_id: int, cancel_event: Event | None
    ) -> Tuple[OrderModel, List[int]]:
        # 1. koszyk
        cart = self.carts.get_cart_by_customer(customer_id)
        items = self.carts.get_cart_items(cart.id) if cart else []
        if not items:
            raise EmptyCartError()
        self._raise_if_cancelled(cancel_event)

        # 2. stock, tu zakladamy row locki
        demands = [(i.product_id, i.quantity) for i in items]
        stock = self.stock.check(demands)
        if not stock.ok:
            raise StockShortfallError(stock.shortfalls)
        self._raise_if_cancelled(cancel_event)

        initial_status = self.statuses.get_by_name(INITIAL_ORDER_STATUS)
        if not initial_status:
            raise NotFoundError(f"Status '{INITIAL_ORDER_STATUS}' not found", code="StatusNotFound")

        now = datetime.now(timezone.utc)

        # 3. zamowienie
        order = self.orders.create_order(
            OrderModel(
                customer_id=customer_id,
                shipping_destination_id=shipping_destination_id,
                total_amount=cart.total_amount,
                created_at=now,
            )
        )

        # 4. pozycje + magazyn
        order_items: List[OrderItemModel] = []
        for item in items:
            product = stock.products[item.product_id]
            if not self.products.get_provider(product.provider_id):
                raise NotFoundError(
                    f"Provider {product.provider_id} of product {product.id} not found",
                    code="ProviderNotFound",
                )

            order_items.append(
                self.orders.add_order_item(
                    OrderItemModel(
                        order_id=order.id,
                        product_id=item.product_id,
                        post_id=item.post_id,
                        quantity=item.quantity,
                        price=item.price,
                        provider_id=product.provider_id,
                        created_at=now,
                    )
                )
            )

        for product_id, quantity in aggregate_demands(demands).items():
            rowcount = self.products.decrement_quantity(
                product_id=product_id,
                quantity=quantity,
                expected_version=stock.products[product_id].version,
            )
            if rowcount == 0:
                logger.warning(f"Lost inventory race on product {product_id}")
                raise ConcurrencyConflictError(f"Stock of product {product_id} changed during checkout")
        self._raise_if_cancelled(cancel_event)

        # 5. czyscimy koszyk
        self.carts.soft_delete_items(items, now)
        rowcount = self.carts.update_cart_version(
            cart_id=cart.id,
            old_version=cart.version,
            new_data={
                "total_amount": Decimal("0.00"),
                "version": cart.version + 1,
                "updated_at": now,
            },
        )
        if rowcount == 0:
            raise ConcurrencyConflictError(f"Cart {cart.id} was modified during checkout")

        # 6. historia statusow
        self.ledger.record_order_status(order.id, initial_status.id)
        for order_item in order_items:
            self.ledger.record_item_status(order_item.id, initial_status.id)

        return order, list(aggregate_demands(demands).keys())

    def _invalidate(self, product_ids: List[int]) -> None:
        # cache trzyma stany magazynowe, po zakupie musza zniknac
        if self.cache is None:
            return
        for product_id in product_ids:
            try:
                self.cache.invalidate_product(product_id)
            except RedisError as e:
                logger.warning(f"Catalog cache entry of product {product_id} not invalidated: {e}")

    def _view(self, order_id: int) -> OrderOut | None:
        try:
            return OrderService(self.db, SqlCatalogLookup(self.db)).get_order(order_id)
        except (AppError, SQLAlchemyError) as e:
            # zamowienie jest w bazie, nie udal sie tylko odczyt
            self.db.rollback()
            logger.error(f"Order {order_id} committed but its view could not be built: {e}")
            return None

    def _notify(self, customer_id: int, order_id: int) -> None:
        try:
            self.notifier.send_order_notification(customer_id, order_id)
        except Exception as e:
            # zamowienie juz jest, zgubione powiadomienie go nie cofa
            logger.warning(f"Order {order_id} notification not dispatched: {e}")
