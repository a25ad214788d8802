# checkout/services/order_ledger.py
from typing import List

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from checkout.data.models.order_activity import OrderActivityModel, OrderItemActivityModel
from checkout.data.models.order_status import OrderStatusModel
from checkout.domain.errors import NotFoundError, PersistenceError
from checkout.domain.schemas import OrderActivityOut, OrderItemActivityOut, StatusOut
from checkout.repos.activity_repo import ActivityRepo
from checkout.repos.order_repo import OrderRepo
from checkout.repos.status_repo import StatusRepo
from checkout.utils.settings import INITIAL_ORDER_STATUS
from checkout.utils.logging import get_logger

logger = get_logger(__name__)


def order_activity_out(activity: OrderActivityModel) -> OrderActivityOut:
    return OrderActivityOut(
        id=activity.id,
        order_id=activity.order_id,
        status_id=activity.status_id,
        status_name=activity.status.name,
        created_at=activity.created_at,
    )


def item_activity_out(activity: OrderItemActivityModel) -> OrderItemActivityOut:
    return OrderItemActivityOut(
        id=activity.id,
        order_item_id=activity.order_item_id,
        status_id=activity.status_id,
        status_name=activity.status.name,
        created_at=activity.created_at,
    )


class OrderLedger:
    """
    Append-only status history of orders and order items.

    The current status is never stored; it is the status of the newest
    activity (created_at, then id). Any recognized status may follow any
    other, there is no transition table.

    ``record_*`` write inside the caller's transaction, ``append_*`` commit.
    """

    def __init__(self, db: Session):
        self.db = db
        self.activities = ActivityRepo(db)
        self.orders = OrderRepo(db)
        self.statuses = StatusRepo(db)

    def _recognized_status(self, status_id: int) -> OrderStatusModel:
        status = self.statuses.get(status_id)
        if not status or not status.is_active:
            raise NotFoundError(f"Status {status_id} is not recognized", code="StatusNotFound")
        return status

    # commands - inside the caller's transaction
    def record_order_status(self, order_id: int, status_id: int) -> OrderActivityModel:
        self._recognized_status(status_id)
        return self.activities.add_order_activity(order_id, status_id)

    def record_item_status(self, order_item_id: int, status_id: int) -> OrderItemActivityModel:
        self._recognized_status(status_id)
        return self.activities.add_item_activity(order_item_id, status_id)

    # commands - standalone
    def append_order_status(self, order_id: int, status_id: int) -> OrderActivityOut:
        if not self.orders.get_order(order_id):
            raise NotFoundError(f"Order {order_id} not found", code="OrderNotFound")

        activity = self.record_order_status(order_id, status_id)
        self._commit()

        logger.info(f"Order {order_id} moved to status {status_id}")
        return order_activity_out(activity)

    def append_item_status(self, order_item_id: int, status_id: int) -> OrderItemActivityOut:
        if not self.orders.get_order_item(order_item_id):
            raise NotFoundError(f"Order item {order_item_id} not found", code="OrderItemNotFound")

        activity = self.record_item_status(order_item_id, status_id)
        self._commit()

        logger.info(f"Order item {order_item_id} moved to status {status_id}")
        return item_activity_out(activity)

    def _commit(self) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise PersistenceError(f"Could not record activity: {e}") from e

    # queries
    @staticmethod
    def implicit_status() -> StatusOut:
        return StatusOut(id=None, name=INITIAL_ORDER_STATUS)

    def current_order_status(self, order_id: int) -> StatusOut:
        latest = self.activities.latest_order_activity(order_id)
        if latest is None:
            return self.implicit_status()
        return StatusOut.model_validate(latest.status)

    def current_item_status(self, order_item_id: int) -> StatusOut:
        latest = self.activities.latest_item_activity(order_item_id)
        if latest is None:
            return self.implicit_status()
        return StatusOut.model_validate(latest.status)

    def order_history(self, order_id: int) -> List[OrderActivityOut]:
        return [order_activity_out(a) for a in self.activities.order_activities(order_id)]

    def item_history(self, order_item_id: int) -> List[OrderItemActivityOut]:
        return [item_activity_out(a) for a in self.activities.item_activities(order_item_id)]
