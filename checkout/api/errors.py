# checkout/api/errors.py
from fastapi import HTTPException

from checkout.domain.errors import (
    AppError,
    CatalogUnavailableError,
    CheckoutCancelledError,
    ConcurrencyConflictError,
    EmptyCartError,
    NotFoundError,
    PersistenceError,
    StockShortfallError,
    ValidationError,
)
from checkout.domain.schemas import CheckoutFailureKind

_STATUS_CODES = [
    (ValidationError, 400),
    (EmptyCartError, 400),
    (NotFoundError, 404),
    (StockShortfallError, 409),
    (ConcurrencyConflictError, 409),
    (CheckoutCancelledError, 409),
    (PersistenceError, 503),
    (CatalogUnavailableError, 503),
]

FAILURE_STATUS_CODES = {
    CheckoutFailureKind.EMPTY_CART: 400,
    CheckoutFailureKind.VALIDATION: 400,
    CheckoutFailureKind.NOT_FOUND: 404,
    CheckoutFailureKind.STOCK_SHORTFALL: 409,
    CheckoutFailureKind.CONCURRENCY_CONFLICT: 409,
    CheckoutFailureKind.CANCELLED: 409,
    CheckoutFailureKind.PERSISTENCE: 503,
    CheckoutFailureKind.CATALOG_UNAVAILABLE: 503,
}


def status_code_for(error: AppError) -> int:
    for error_type, status_code in _STATUS_CODES:
        if isinstance(error, error_type):
            return status_code
    return 500


def http_error(error: AppError) -> HTTPException:
    detail = {"message": error.message, "code": error.code}
    if error.details:
        detail["errors"] = error.details
    if error.retryable:
        detail["retryable"] = True
    return HTTPException(status_code=status_code_for(error), detail=detail)
