# checkout/repos/order_repo.py
from typing import List, Tuple

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from checkout.data.models.order import OrderModel
from checkout.data.models.order_item import OrderItemModel
from checkout.repos.activity_repo import latest_order_status_id


class OrderRepo:
    """Orders are inserted once and never updated or deleted."""

    def __init__(self, db: Session):
        self.db = db

    def create_order(self, order: OrderModel) -> OrderModel:
        self.db.add(order)
        self.db.flush()
        return order

    def add_order_item(self, item: OrderItemModel) -> OrderItemModel:
        self.db.add(item)
        self.db.flush()
        return item

    def get_order(self, order_id: int) -> OrderModel | None:
        return self.db.get(OrderModel, order_id)

    def get_order_item(self, order_item_id: int) -> OrderItemModel | None:
        return self.db.get(OrderItemModel, order_item_id)

    def get_order_items(self, order_id: int) -> List[OrderItemModel]:
        return list(
            self.db.execute(
                select(OrderItemModel).where(OrderItemModel.order_id == order_id).order_by(OrderItemModel.id)
            ).scalars().all()
        )

    def list_orders(
        self,
        page: int,
        page_size: int,
        customer_id: int | None = None,
        status_id: int | None = None,
    ) -> Tuple[List[OrderModel], int]:
        conditions = []
        if customer_id is not None:
            conditions.append(OrderModel.customer_id == customer_id)
        if status_id is not None:
            conditions.append(latest_order_status_id() == status_id)

        count_stmt = select(func.count()).select_from(OrderModel)
        page_stmt = select(OrderModel)
        for condition in conditions:
            count_stmt = count_stmt.where(condition)
            page_stmt = page_stmt.where(condition)

        total = self.db.execute(count_stmt).scalar_one()

        orders = self.db.execute(
            page_stmt
            .order_by(OrderModel.created_at.desc(), OrderModel.id.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
        ).scalars().all()

        return list(orders), total
