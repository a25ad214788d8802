# checkout/main.py
from fastapi import FastAPI
import uvicorn

from checkout.api.routers import carts, health, order_statuses, orders
from checkout.data.database import init_db
from checkout.data.seed import seed
from checkout.utils.logging import get_logger
from checkout.utils.settings import SEED_DEMO_CATALOG

logger = get_logger(__name__)

logger.info("Initializing database")

try:
    init_db()
    seed(with_demo_catalog=SEED_DEMO_CATALOG)
    logger.info("Database tables created")
except Exception as e:
    logger.error(f"Failed to create tables: {e}")
    raise


def create_app() -> FastAPI:
    app = FastAPI(
        title="Checkout Service",
        version="1.0.0",
    )

    # Include routers
    app.include_router(health.router)
    app.include_router(carts.router)
    app.include_router(orders.router)
    app.include_router(order_statuses.router)

    return app


app = create_app()

if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000)
