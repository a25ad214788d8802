# checkout/data/models/order_activity.py
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer
from sqlalchemy.orm import relationship

from checkout.data.database import Base


class OrderActivityModel(Base):
    """Append-only status event of an order. Never updated or deleted."""

    __tablename__ = "order_activities"

    id = Column(Integer, primary_key=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False)
    status_id = Column(Integer, ForeignKey("order_statuses.id"), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    order = relationship("OrderModel", back_populates="activities")
    status = relationship("OrderStatusModel")

    __table_args__ = (Index("ix_order_activities_order_created", "order_id", "created_at"),)


class OrderItemActivityModel(Base):
    """Append-only status event of a single order item."""

    __tablename__ = "order_item_activities"

    id = Column(Integer, primary_key=True)
    order_item_id = Column(Integer, ForeignKey("order_items.id"), nullable=False)
    status_id = Column(Integer, ForeignKey("order_statuses.id"), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    order_item = relationship("OrderItemModel", back_populates="activities")
    status = relationship("OrderStatusModel")

    __table_args__ = (Index("ix_order_item_activities_item_created", "order_item_id", "created_at"),)
