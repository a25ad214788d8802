from datetime import datetime, timezone
from decimal import Decimal
from typing import List

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from checkout.data.models.cart import CartModel
from checkout.data.models.cart_item import CartItemModel
from checkout.domain.errors import (
    ConcurrencyConflictError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from checkout.domain.schemas import CartItemOut, CartOut, ProductInfo
from checkout.repos.cart_repo import CartRepo
from checkout.services.catalog import CatalogLookup
from checkout.utils.logging import get_logger

logger = get_logger(__name__)

CENT = Decimal("0.01")


def cart_total(items: List[CartItemModel]) -> Decimal:
    total = sum((Decimal(i.price) * i.quantity for i in items if not i.is_deleted), Decimal("0.00"))
    return total.quantize(CENT)


class CartService:
    """
    Cart Store: one mutable cart per customer.
    commands (add, set quantity, remove, clear) modify state and always
    re-materialize total_amount under the cart version check
    query (get) read only
    """

    def __init__(self, db: Session, lookup: CatalogLookup):
        self.repo = CartRepo(db)
        self.lookup = lookup

    #query - odczyt
    def get_cart(self, customer_id: int) -> CartOut:
        self._check_customer(customer_id)
        cart = self.repo.get_cart_by_customer(customer_id)

        if not cart:
            # nic nie dodane, nic nie tworzymy
            return CartOut(customer_id=customer_id)

        return self._cart_out(cart, with_names=True)

    #commands - zapis
    def get_or_create_cart(self, customer_id: int) -> CartOut:
        self._check_customer(customer_id)
        return self._cart_out(self._get_or_create(customer_id))

    def add_item(
        self,
        customer_id: int,
        product_id: int,
        quantity: int,
        post_id: int | None = None,
    ) -> CartOut:
        self._check_customer(customer_id)
        self._check_quantity(quantity)

        product = self._product(product_id)
        cart = self._get_or_create(customer_id)
        now = datetime.now(timezone.utc)

        existing_item = self.repo.find_cart_item(cart.id, product_id, post_id)

        if existing_item:
            logger.info(
                f"Product {product_id} already in cart {cart.id}, quantity "
                f"{existing_item.quantity} -> {existing_item.quantity + quantity}"
            )
            existing_item.quantity += quantity
            existing_item.price = product.price  # update ceny
            existing_item.updated_at = now
        else:
            logger.info(f"Adding product {product_id} to cart {cart.id}")
            self.repo.add_cart_item(
                CartItemModel(
                    cart_id=cart.id,
                    product_id=product_id,
                    post_id=post_id,
                    quantity=quantity,
                    price=product.price,
                    is_deleted=False,
                    created_at=now,
                    updated_at=now,
                )
            )

        return self._save(cart, now)

    def set_item_quantity(self, customer_id: int, item_id: int, quantity: int) -> CartOut:
        self._check_customer(customer_id)
        self._check_quantity(quantity)

        cart, item = self._owned_item(customer_id, item_id)
        product = self._product(item.product_id)
        now = datetime.now(timezone.utc)

        item.quantity = quantity
        item.price = product.price
        item.updated_at = now

        logger.info(f"Cart item {item_id} quantity set to {quantity}")
        return self._save(cart, now)

    def remove_item(self, customer_id: int, item_id: int) -> CartOut:
        self._check_customer(customer_id)

        cart, item = self._owned_item(customer_id, item_id)
        now = datetime.now(timezone.utc)

        self.repo.soft_delete_items([item], now)

        logger.info(f"Cart item {item_id} removed from cart {cart.id}")
        return self._save(cart, now)

    def clear(self, customer_id: int) -> CartOut:
        self._check_customer(customer_id)
        cart = self.repo.get_cart_by_customer(customer_id)

        if not cart:
            return CartOut(customer_id=customer_id)

        now = datetime.now(timezone.utc)
        self.repo.soft_delete_items(self.repo.get_cart_items(cart.id), now)

        logger.info(f"Cart {cart.id} cleared")
        return self._save(cart, now)

    # helpers
    @staticmethod
    def _check_customer(customer_id: int) -> None:
        if customer_id is None or customer_id < 1:
            raise ValidationError("Customer id must be positive", code="InvalidCustomer")

    @staticmethod
    def _check_quantity(quantity: int) -> None:
        if quantity is None or quantity <= 0:
            raise ValidationError("Quantity must be greater than 0", code="InvalidQuantity")

    def _product(self, product_id: int) -> ProductInfo:
        logger.info(f"Fetching product {product_id} from catalog")
        product = self.lookup.get_product(product_id)
        if product is None or not product.is_active:
            raise NotFoundError(f"Product {product_id} not found", code="ProductNotFound")
        return product

    def _owned_item(self, customer_id: int, item_id: int):
        cart = self.repo.get_cart_by_customer(customer_id)
        item = self.repo.get_cart_item(cart.id, item_id) if cart else None

        # cudzy item wyglada tak samo jak brakujacy
        if not item:
            raise NotFoundError(f"Cart item {item_id} not found", code="ItemNotFound")
        return cart, item

    def _get_or_create(self, customer_id: int) -> CartModel:
        existing = self.repo.get_cart_by_customer(customer_id)
        if existing:
            return existing

        now = datetime.now(timezone.utc)
        try:
            created = self.repo.create_cart(
                CartModel(
                    customer_id=customer_id,
                    total_amount=Decimal("0.00"),
                    version=1,
                    created_at=now,
                    updated_at=now,
                )
            )
        except IntegrityError:
            # ktos inny utworzyl go pierwszy (unique na customer_id)
            self.repo.rollback()
            existing = self.repo.get_cart_by_customer(customer_id)
            if not existing:
                raise PersistenceError(f"Could not create cart for customer {customer_id}")
            return existing

        logger.info(f"Created cart {created.id} for customer {customer_id}")
        return created

    def _save(self, cart: CartModel, now: datetime) -> CartOut:
        try:
            self.repo.db.flush()
            total = cart_total(self.repo.get_cart_items(cart.id))

            # Optimistic locking, warunek na wersje koszyka
            rowcount = self.repo.update_cart_version(
                cart_id=cart.id,
                old_version=cart.version,
                new_data={
                    "total_amount": total,
                    "version": cart.version + 1,
                    "updated_at": now,
                },
            )

            if rowcount == 0:
                self.repo.rollback()
                raise ConcurrencyConflictError(
                    f"Cart {cart.id} was modified by another operation"
                )

            self.repo.commit()
        except SQLAlchemyError as e:
            self.repo.rollback()
            logger.error(f"Saving cart {cart.id} failed: {e}")
            raise PersistenceError(f"Could not save cart {cart.id}") from e

        self.repo.db.refresh(cart)
        logger.info(f"Cart {cart.id} saved, total {cart.total_amount}, version {cart.version}")
        return self._cart_out(cart)

    def _cart_out(self, cart: CartModel, with_names: bool = False) -> CartOut:
        items = self.repo.get_cart_items(cart.id)
        names = {}
        if with_names:
            for i in items:
                if i.product_id not in names:
                    product = self.lookup.get_product(i.product_id)
                    names[i.product_id] = product.name if product else "Unknown Product"

        return CartOut(
            cart_id=cart.id,
            customer_id=cart.customer_id,
            items=[
                CartItemOut(
                    id=i.id,
                    product_id=i.product_id,
                    post_id=i.post_id,
                    product_name=names.get(i.product_id),
                    quantity=i.quantity,
                    price=i.price,
                )
                for i in items
            ],
            total_amount=cart.total_amount,
            version=cart.version,
            updated_at=cart.updated_at,
        )
