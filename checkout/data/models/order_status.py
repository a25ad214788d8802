from sqlalchemy import Boolean, Column, Integer, String

from checkout.data.database import Base


class OrderStatusModel(Base):
    __tablename__ = "order_statuses"

    id = Column(Integer, primary_key=True)
    name = Column(String(100), nullable=False, unique=True)
    is_active = Column(Boolean, nullable=False, default=True)
