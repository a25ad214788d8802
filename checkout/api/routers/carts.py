#checkout/api/routers/carts.py
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from checkout.api.deps import get_cached_catalog_lookup, get_catalog_cache, get_catalog_lookup
from checkout.api.errors import FAILURE_STATUS_CODES, http_error
from checkout.data.database import get_db
from checkout.domain.errors import AppError
from checkout.domain.schemas import CartOut, CheckoutIn, ItemIn, OrderOut, QuantityIn
from checkout.services.cart_service import CartService
from checkout.services.catalog import CatalogCache, CatalogLookup
from checkout.services.checkout_service import CheckoutService

router = APIRouter(prefix="/carts", tags=["carts"])


def get_service(db: Session, lookup: CatalogLookup):
    return CartService(db=db, lookup=lookup)


@router.get("/{customer_id}", response_model=CartOut)
def get_cart(
    customer_id: int,
    db: Session = Depends(get_db),
    lookup: CatalogLookup = Depends(get_cached_catalog_lookup),
):
    svc = get_service(db, lookup)
    try:
        return svc.get_cart(customer_id)
    except AppError as e:
        raise http_error(e)


@router.post("/{customer_id}/items", response_model=CartOut)
def add_item(
    customer_id: int,
    payload: ItemIn,
    db: Session = Depends(get_db),
    lookup: CatalogLookup = Depends(get_catalog_lookup),
):
    svc = get_service(db, lookup)
    try:
        return svc.add_item(
            customer_id=customer_id,
            product_id=payload.product_id,
            quantity=payload.quantity,
            post_id=payload.post_id,
        )
    except AppError as e:
        raise http_error(e)


@router.patch("/{customer_id}/items/{item_id}", response_model=CartOut)
def update_quantity(
    customer_id: int,
    item_id: int,
    payload: QuantityIn,
    db: Session = Depends(get_db),
    lookup: CatalogLookup = Depends(get_catalog_lookup),
):
    svc = get_service(db, lookup)
    try:
        return svc.set_item_quantity(customer_id, item_id, payload.quantity)
    except AppError as e:
        raise http_error(e)


@router.delete("/{customer_id}/items/{item_id}", response_model=CartOut)
def remove_item(
    customer_id: int,
    item_id: int,
    db: Session = Depends(get_db),
    lookup: CatalogLookup = Depends(get_catalog_lookup),
):
    svc = get_service(db, lookup)
    try:
        return svc.remove_item(customer_id, item_id)
    except AppError as e:
        raise http_error(e)


@router.delete("/{customer_id}/items", response_model=CartOut)
def clear_cart(
    customer_id: int,
    db: Session = Depends(get_db),
    lookup: CatalogLookup = Depends(get_catalog_lookup),
):
    svc = get_service(db, lookup)
    try:
        return svc.clear(customer_id)
    except AppError as e:
        raise http_error(e)


@router.post("/{customer_id}/checkout", response_model=OrderOut, status_code=201)
def checkout(
    customer_id: int,
    payload: CheckoutIn,
    db: Session = Depends(get_db),
    cache: CatalogCache | None = Depends(get_catalog_cache),
):
    """
    Converts the cart into an order.
    A failed checkout answers with the failure kind, the per-product
    shortfalls and whether retrying makes sense.
    """
    result = CheckoutService(db, cache=cache).checkout(customer_id, payload.shipping_destination_id)

    if result.success and result.order is not None:
        return result.order
    if result.success:
        # order stored, only its view could not be built
        return JSONResponse(status_code=201, content={"id": result.order_id, "customer_id": customer_id})

    return JSONResponse(
        status_code=FAILURE_STATUS_CODES[result.failure],
        content={
            "detail": {
                "message": result.message,
                "code": result.failure.value,
                "shortfalls": [s.model_dump(mode="json") for s in result.shortfalls],
                "retryable": result.retryable,
            }
        },
    )
