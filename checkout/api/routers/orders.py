# checkout/api/routers/orders.py
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from checkout.api.deps import get_catalog_lookup
from checkout.api.errors import http_error
from checkout.data.database import get_db
from checkout.domain.errors import AppError
from checkout.domain.schemas import (
    OrderActivityOut,
    OrderItemActivityOut,
    OrderOut,
    OrderPage,
    StatusAppendIn,
)
from checkout.services.catalog import CatalogLookup
from checkout.services.order_ledger import OrderLedger
from checkout.services.order_service import OrderService

router = APIRouter(prefix="/orders", tags=["orders"])


def get_service(db: Session, lookup: CatalogLookup):
    return OrderService(db, lookup)


@router.get("", response_model=OrderPage)
def list_orders(
    page: int = Query(1),
    page_size: int = Query(20),
    status_id: int | None = Query(None),
    db: Session = Depends(get_db),
    lookup: CatalogLookup = Depends(get_catalog_lookup),
):
    """
    Admin listing, newest first, optionally by current status.
    """
    svc = get_service(db, lookup)
    try:
        return svc.list_orders(page, page_size, status_id=status_id)
    except AppError as e:
        raise http_error(e)


@router.get("/customer/{customer_id}", response_model=OrderPage)
def list_customer_orders(
    customer_id: int,
    page: int = Query(1),
    page_size: int = Query(20),
    db: Session = Depends(get_db),
    lookup: CatalogLookup = Depends(get_catalog_lookup),
):
    svc = get_service(db, lookup)
    try:
        return svc.list_orders_for_customer(customer_id, page, page_size)
    except AppError as e:
        raise http_error(e)


@router.get("/{order_id}", response_model=OrderOut)
def get_order(
    order_id: int,
    customer_id: int | None = Query(None),
    db: Session = Depends(get_db),
    lookup: CatalogLookup = Depends(get_catalog_lookup),
):
    svc = get_service(db, lookup)
    try:
        return svc.get_order(order_id, customer_id=customer_id)
    except AppError as e:
        raise http_error(e)


@router.post("/{order_id}/activities", response_model=OrderActivityOut, status_code=201)
def append_order_status(order_id: int, payload: StatusAppendIn, db: Session = Depends(get_db)):
    try:
        return OrderLedger(db).append_order_status(order_id, payload.status_id)
    except AppError as e:
        raise http_error(e)


@router.post("/items/{item_id}/activities", response_model=OrderItemActivityOut, status_code=201)
def append_item_status(item_id: int, payload: StatusAppendIn, db: Session = Depends(get_db)):
    try:
        return OrderLedger(db).append_item_status(item_id, payload.status_id)
    except AppError as e:
        raise http_error(e)
