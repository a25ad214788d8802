# checkout/repos/cart_repo.py
from datetime import datetime
from typing import List

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from checkout.data.models.cart import CartModel
from checkout.data.models.cart_item import CartItemModel


class CartRepo:
    """Cart persistence. Every item read filters out soft-deleted rows."""

    def __init__(self, db: Session):
        self.db = db

    def get_cart_by_customer(self, customer_id: int) -> CartModel | None:
        return self.db.execute(
            select(CartModel).where(CartModel.customer_id == customer_id)
        ).scalar_one_or_none()

    def create_cart(self, cart: CartModel) -> CartModel:
        self.db.add(cart)
        self.db.commit()
        self.db.refresh(cart)
        return cart

    def get_cart_items(self, cart_id: int) -> List[CartItemModel]:
        return list(
            self.db.execute(
                select(CartItemModel)
                .where(CartItemModel.cart_id == cart_id, CartItemModel.is_deleted.is_(False))
                .order_by(CartItemModel.id)
            ).scalars().all()
        )

    def get_cart_item(self, cart_id: int, item_id: int) -> CartItemModel | None:
        return self.db.execute(
            select(CartItemModel).where(
                CartItemModel.id == item_id,
                CartItemModel.cart_id == cart_id,
                CartItemModel.is_deleted.is_(False),
            )
        ).scalar_one_or_none()

    def find_cart_item(self, cart_id: int, product_id: int, post_id: int | None) -> CartItemModel | None:
        # same product from a different listing is a separate line
        post_clause = CartItemModel.post_id.is_(None) if post_id is None else CartItemModel.post_id == post_id
        return self.db.execute(
            select(CartItemModel).where(
                CartItemModel.cart_id == cart_id,
                CartItemModel.product_id == product_id,
                post_clause,
                CartItemModel.is_deleted.is_(False),
            )
        ).scalar_one_or_none()

    def add_cart_item(self, item: CartItemModel) -> CartItemModel:
        self.db.add(item)
        self.db.flush()
        return item

    def soft_delete_items(self, items: List[CartItemModel], when: datetime) -> None:
        for item in items:
            item.is_deleted = True
            item.deleted_at = when
            item.updated_at = when
        self.db.flush()

    def update_cart_version(self, cart_id: int, old_version: int, new_data: dict) -> int:
        # optimistic locking: UPDATE carts SET ... WHERE id = :id AND version = :old
        result = self.db.execute(
            update(CartModel)
            .where(CartModel.id == cart_id, CartModel.version == old_version)
            .values(**new_data)
        )
        return result.rowcount

    def commit(self) -> None:
        self.db.commit()

    def rollback(self) -> None:
        self.db.rollback()
