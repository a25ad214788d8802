# checkout/domain/schemas.py
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# catalog (consumed)
# ---------------------------------------------------------------------------
class ProductInfo(BaseModel):
    """Snapshot of a product as seen by Catalog Lookup."""

    id: int
    name: str
    price: Decimal
    available_quantity: int
    provider_id: int
    is_active: bool = True
    version: int = 1

    model_config = ConfigDict(from_attributes=True)


class ProviderInfo(BaseModel):
    id: int
    name: str


# ---------------------------------------------------------------------------
# cart
# ---------------------------------------------------------------------------
class ItemIn(BaseModel):
    product_id: int = Field(..., gt=0)
    # no lower bound here: the cart service reports InvalidQuantity itself
    quantity: int
    post_id: Optional[int] = Field(default=None, gt=0)


class QuantityIn(BaseModel):
    quantity: int


class CartItemOut(BaseModel):
    id: int
    product_id: int
    post_id: Optional[int] = None
    product_name: Optional[str] = None
    quantity: int
    price: Decimal


class CartOut(BaseModel):
    # cart_id is None for a customer that never added anything
    cart_id: Optional[int] = None
    customer_id: int
    items: List[CartItemOut] = []
    total_amount: Decimal = Decimal("0.00")
    version: int = 0
    updated_at: Optional[datetime] = None


# ---------------------------------------------------------------------------
# stock
# ---------------------------------------------------------------------------
class StockShortfall(BaseModel):
    product_id: int
    product_name: str
    requested: int
    available: int


# ---------------------------------------------------------------------------
# ledger
# ---------------------------------------------------------------------------
class StatusOut(BaseModel):
    # id is None for the implicit initial status (no activity recorded yet)
    id: Optional[int] = None
    name: str
    is_active: bool = True

    model_config = ConfigDict(from_attributes=True)


class StatusCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    is_active: bool = True


class StatusAppendIn(BaseModel):
    status_id: int = Field(..., gt=0)


class OrderActivityOut(BaseModel):
    id: int
    order_id: int
    status_id: int
    status_name: str
    created_at: datetime


class OrderItemActivityOut(BaseModel):
    id: int
    order_item_id: int
    status_id: int
    status_name: str
    created_at: datetime


# ---------------------------------------------------------------------------
# orders
# ---------------------------------------------------------------------------
class CheckoutIn(BaseModel):
    shipping_destination_id: Optional[int] = None


class OrderItemOut(BaseModel):
    id: int
    order_id: int
    product_id: int
    post_id: Optional[int] = None
    product_name: str
    quantity: int
    price: Decimal
    provider_id: int
    provider_name: str
    current_status: StatusOut
    activities: List[OrderItemActivityOut] = []


class OrderOut(BaseModel):
    id: int
    customer_id: int
    shipping_destination_id: int
    total_amount: Decimal
    created_at: datetime
    current_status: StatusOut
    items: List[OrderItemOut] = []
    activities: List[OrderActivityOut] = []


class OrderPage(BaseModel):
    items: List[OrderOut]
    total_count: int
    page: int
    page_size: int


# ---------------------------------------------------------------------------
# checkout result
# ---------------------------------------------------------------------------
class CheckoutFailureKind(str, Enum):
    EMPTY_CART = "EmptyCart"
    STOCK_SHORTFALL = "StockShortfall"
    VALIDATION = "ValidationError"
    NOT_FOUND = "NotFound"
    CONCURRENCY_CONFLICT = "ConcurrencyConflict"
    PERSISTENCE = "PersistenceError"
    CATALOG_UNAVAILABLE = "CatalogUnavailable"
    CANCELLED = "Cancelled"


class CheckoutResult(BaseModel):
    """Either ``order_id`` is set (success) or ``failure`` is set, never both.

    ``order`` is the read model of the new order; it stays None when the order
    was committed but could not be read back.
    """

    success: bool
    order_id: Optional[int] = None
    order: Optional[OrderOut] = None
    failure: Optional[CheckoutFailureKind] = None
    shortfalls: List[StockShortfall] = []
    message: Optional[str] = None
    retryable: bool = False

    @classmethod
    def ok(cls, order_id: int, order: Optional[OrderOut] = None) -> "CheckoutResult":
        return cls(success=True, order_id=order_id, order=order)

    @classmethod
    def fail(
        cls,
        kind: CheckoutFailureKind,
        message: str,
        shortfalls: Optional[List[StockShortfall]] = None,
        retryable: bool = False,
    ) -> "CheckoutResult":
        return cls(
            success=False,
            failure=kind,
            message=message,
            shortfalls=shortfalls or [],
            retryable=retryable,
        )
