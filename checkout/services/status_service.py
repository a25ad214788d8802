# checkout/services/status_service.py
from typing import List

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from checkout.data.models.order_status import OrderStatusModel
from checkout.domain.errors import NotFoundError, ValidationError
from checkout.domain.schemas import StatusOut
from checkout.repos.status_repo import StatusRepo
from checkout.utils.logging import get_logger

logger = get_logger(__name__)


class StatusService:
    """Status catalog used by the ledger. Adding a row adds a lifecycle stage."""

    def __init__(self, db: Session):
        self.repo = StatusRepo(db)

    def list_statuses(self, active_only: bool = True) -> List[StatusOut]:
        return [StatusOut.model_validate(s) for s in self.repo.list(active_only=active_only)]

    def get_status(self, status_id: int) -> StatusOut:
        status = self.repo.get(status_id)
        if not status:
            raise NotFoundError(f"Status {status_id} not found", code="StatusNotFound")
        return StatusOut.model_validate(status)

    def create_status(self, name: str, is_active: bool = True) -> StatusOut:
        name = (name or "").strip()
        if not name:
            raise ValidationError("Status name is required", code="StatusNameRequired")

        if self.repo.get_by_name(name):
            raise ValidationError(f"Status '{name}' already exists", code="StatusNameExists")

        try:
            created = self.repo.create(OrderStatusModel(name=name, is_active=is_active))
        except IntegrityError as e:
            self.repo.db.rollback()
            raise ValidationError(f"Status '{name}' already exists", code="StatusNameExists") from e

        logger.info(f"Created order status {created.id} '{created.name}'")
        return StatusOut.model_validate(created)
