from typing import List

from sqlalchemy import select
from sqlalchemy.orm import Session

from checkout.data.models.order_status import OrderStatusModel


class StatusRepo:
    def __init__(self, db: Session):
        self.db = db

    def get(self, status_id: int) -> OrderStatusModel | None:
        return self.db.get(OrderStatusModel, status_id)

    def get_by_name(self, name: str) -> OrderStatusModel | None:
        return self.db.execute(
            select(OrderStatusModel).where(OrderStatusModel.name == name)
        ).scalar_one_or_none()

    def list(self, active_only: bool = True) -> List[OrderStatusModel]:
        stmt = select(OrderStatusModel).order_by(OrderStatusModel.name)
        if active_only:
            stmt = stmt.where(OrderStatusModel.is_active.is_(True))
        return list(self.db.execute(stmt).scalars().all())

    def create(self, status: OrderStatusModel) -> OrderStatusModel:
        self.db.add(status)
        self.db.commit()
        self.db.refresh(status)
        return status
