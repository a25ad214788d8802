# checkout/repos/activity_repo.py
from datetime import datetime, timezone
from typing import List

from sqlalchemy import select
from sqlalchemy.orm import Session

from checkout.data.models.order import OrderModel
from checkout.data.models.order_activity import OrderActivityModel, OrderItemActivityModel


def latest_order_status_id():
    """Correlated scalar subquery: status id of the newest activity of ``orders.id``."""
    return (
        select(OrderActivityModel.status_id)
        .where(OrderActivityModel.order_id == OrderModel.id)
        .order_by(OrderActivityModel.created_at.desc(), OrderActivityModel.id.desc())
        .limit(1)
        .correlate(OrderModel)
        .scalar_subquery()
    )


class ActivityRepo:
    """Append-only access to the order/order-item activity log.

    There is intentionally no update or delete here.
    """

    def __init__(self, db: Session):
        self.db = db

    def add_order_activity(self, order_id: int, status_id: int) -> OrderActivityModel:
        activity = OrderActivityModel(
            order_id=order_id,
            status_id=status_id,
            created_at=datetime.now(timezone.utc),
        )
        self.db.add(activity)
        self.db.flush()
        return activity

    def add_item_activity(self, order_item_id: int, status_id: int) -> OrderItemActivityModel:
        activity = OrderItemActivityModel(
            order_item_id=order_item_id,
            status_id=status_id,
            created_at=datetime.now(timezone.utc),
        )
        self.db.add(activity)
        self.db.flush()
        return activity

    def latest_order_activity(self, order_id: int) -> OrderActivityModel | None:
        return self.db.execute(
            select(OrderActivityModel)
            .where(OrderActivityModel.order_id == order_id)
            .order_by(OrderActivityModel.created_at.desc(), OrderActivityModel.id.desc())
            .limit(1)
        ).scalar_one_or_none()

    def latest_item_activity(self, order_item_id: int) -> OrderItemActivityModel | None:
        return self.db.execute(
            select(OrderItemActivityModel)
            .where(OrderItemActivityModel.order_item_id == order_item_id)
            .order_by(OrderItemActivityModel.created_at.desc(), OrderItemActivityModel.id.desc())
            .limit(1)
        ).scalar_one_or_none()

    def order_activities(self, order_id: int) -> List[OrderActivityModel]:
        return list(
            self.db.execute(
                select(OrderActivityModel)
                .where(OrderActivityModel.order_id == order_id)
                .order_by(OrderActivityModel.created_at, OrderActivityModel.id)
            ).scalars().all()
        )

    def item_activities(self, order_item_id: int) -> List[OrderItemActivityModel]:
        return list(
            self.db.execute(
                select(OrderItemActivityModel)
                .where(OrderItemActivityModel.order_item_id == order_item_id)
                .order_by(OrderItemActivityModel.created_at, OrderItemActivityModel.id)
            ).scalars().all()
        )
