import os
from decimal import Decimal
from pathlib import Path

import pytest

# has to happen before anything from checkout is imported: settings are read at import time
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["CATALOG_BACKEND"] = "db"
os.environ["CATALOG_CACHE_ENABLED"] = "false"
os.environ["CELERY_TASK_ALWAYS_EAGER"] = "true"
os.environ["CHECKOUT_MAX_ATTEMPTS"] = "3"
os.environ["INITIAL_ORDER_STATUS"] = "Pending"


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their directory location."""
    for item in items:
        test_path = str(Path(item.fspath))

        if "/domain/" in test_path:
            item.add_marker(pytest.mark.domain)
        elif "/application/" in test_path:
            item.add_marker(pytest.mark.application)
        elif "/integration/" in test_path:
            item.add_marker(pytest.mark.integration)


@pytest.fixture()
def engine(tmp_path):
    from sqlalchemy import create_engine

    from checkout.data.database import init_db

    # file backed so that separate sessions really are separate connections
    engine = create_engine(
        f"sqlite:///{tmp_path / 'checkout.db'}",
        connect_args={"check_same_thread": False},
    )
    init_db(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def session_factory(engine):
    from sqlalchemy.orm import sessionmaker

    return sessionmaker(bind=engine, autoflush=False, autocommit=False)


@pytest.fixture()
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture()
def statuses(db):
    """Seeded status catalog as {name: id}."""
    from checkout.data.models import OrderStatusModel
    from checkout.data.seed import seed_statuses

    seed_statuses(db)
    return {s.name: s.id for s in db.query(OrderStatusModel).all()}


@pytest.fixture()
def provider(db):
    from checkout.data.models import ProviderModel

    row = ProviderModel(business_name="Acme Supplies")
    db.add(row)
    db.commit()
    return row.id


@pytest.fixture()
def make_product(db, provider):
    from checkout.data.models import ProductModel

    def _make(name="Product A", price="10.00", quantity=5, provider_id=None, is_active=True):
        row = ProductModel(
            name=name,
            price=Decimal(price),
            quantity=quantity,
            provider_id=provider_id or provider,
            is_active=is_active,
            version=1,
        )
        db.add(row)
        db.commit()
        return row.id

    return _make


@pytest.fixture()
def stock_of(session_factory):
    """Read the current quantity of a product through a fresh session."""
    from checkout.data.models import ProductModel

    def _stock(product_id):
        with session_factory() as session:
            return session.get(ProductModel, product_id).quantity

    return _stock


@pytest.fixture()
def lookup(db):
    from checkout.services.catalog import SqlCatalogLookup

    return SqlCatalogLookup(db)


@pytest.fixture()
def cart_service(db, lookup):
    from checkout.services.cart_service import CartService

    return CartService(db, lookup)


class RecordingNotifier:
    def __init__(self):
        self.sent = []

    def send_order_notification(self, customer_id, order_id):
        self.sent.append((customer_id, order_id))


@pytest.fixture()
def notifier():
    return RecordingNotifier()


@pytest.fixture()
def checkout_service(db, statuses, notifier):
    from checkout.services.checkout_service import CheckoutService

    return CheckoutService(db, notifier=notifier)
