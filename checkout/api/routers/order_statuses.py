from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from checkout.api.errors import http_error
from checkout.data.database import get_db
from checkout.domain.errors import AppError
from checkout.domain.schemas import StatusCreate, StatusOut
from checkout.services.status_service import StatusService

router = APIRouter(prefix="/order-statuses", tags=["order-statuses"])


@router.get("", response_model=List[StatusOut])
def list_statuses(active_only: bool = Query(True), db: Session = Depends(get_db)):
    return StatusService(db).list_statuses(active_only=active_only)


@router.post("", response_model=StatusOut, status_code=201)
def create_status(payload: StatusCreate, db: Session = Depends(get_db)):
    try:
        return StatusService(db).create_status(payload.name, is_active=payload.is_active)
    except AppError as e:
        raise http_error(e)


@router.get("/{status_id}", response_model=StatusOut)
def get_status(status_id: int, db: Session = Depends(get_db)):
    try:
        return StatusService(db).get_status(status_id)
    except AppError as e:
        raise http_error(e)
