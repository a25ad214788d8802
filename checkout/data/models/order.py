from sqlalchemy import Column, Integer, DateTime, Numeric
from sqlalchemy.orm import relationship
from datetime import datetime, timezone

from checkout.data.database import Base


class OrderModel(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True)
    customer_id = Column(Integer, nullable=False, index=True)
    shipping_destination_id = Column(Integer, nullable=False)

    # fixed at checkout; current status lives in order_activities
    total_amount = Column(Numeric(10, 2), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    items = relationship("OrderItemModel", back_populates="order", order_by="OrderItemModel.id")
    activities = relationship(
        "OrderActivityModel",
        back_populates="order",
        order_by="OrderActivityModel.id",
    )
