# checkout/data/models/product.py
# catalog-owned tables; this service only reads them and decrements quantity
from sqlalchemy import Boolean, Column, ForeignKey, Integer, Numeric, String

from checkout.data.database import Base


class ProviderModel(Base):
    __tablename__ = "providers"

    id = Column(Integer, primary_key=True)
    business_name = Column(String(255), nullable=False)


class ProductModel(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    quantity = Column(Integer, nullable=False, default=0)
    provider_id = Column(Integer, ForeignKey("providers.id"), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    version = Column(Integer, nullable=False, default=1)
