# checkout/data/seed.py
from decimal import Decimal

from sqlalchemy.orm import Session

from checkout.data.database import SessionLocal
from checkout.data.models import OrderStatusModel, ProductModel, ProviderModel

DEFAULT_STATUSES = ["Pending", "Processing", "Shipped", "Delivered", "Cancelled"]


def seed_statuses(db: Session) -> None:
    # not forcing: only add the ones that are missing
    existing = {s.name for s in db.query(OrderStatusModel).all()}
    for name in DEFAULT_STATUSES:
        if name not in existing:
            db.add(OrderStatusModel(name=name, is_active=True))
    db.commit()


def seed_demo_catalog(db: Session) -> None:
    if db.query(ProductModel).first():
        return
    provider = ProviderModel(id=1, business_name="Demo Provider")
    db.add(provider)
    db.flush()
    db.add_all(
        [
            ProductModel(id=1, name="Keyboard", price=Decimal("199.99"), quantity=10, provider_id=provider.id),
            ProductModel(id=2, name="Mouse", price=Decimal("49.50"), quantity=25, provider_id=provider.id),
            ProductModel(id=3, name="Monitor", price=Decimal("899.00"), quantity=3, provider_id=provider.id),
        ]
    )
    db.commit()


def seed(with_demo_catalog: bool = False):
    db = SessionLocal()
    try:
        seed_statuses(db)
        if with_demo_catalog:
            seed_demo_catalog(db)
    finally:
        db.close()
