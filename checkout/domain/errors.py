# checkout/domain/errors.py
"""
Error taxonomy shared by the cart, ledger and checkout services.

Every error carries a machine readable ``code`` so the API layer (and the
checkout result) can tell "3 left in stock" apart from "something went wrong".
"""
from typing import Any, Dict, List, Optional


class AppError(Exception):
    code = "Error"
    retryable = False

    def __init__(self, message: str, code: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code
        self.details = details or {}


class ValidationError(AppError):
    code = "ValidationError"


class NotFoundError(AppError):
    code = "NotFound"


class EmptyCartError(AppError):
    code = "EmptyCart"

    def __init__(self, message: str = "Cart is empty"):
        super().__init__(message)


class StockShortfallError(AppError):
    """Expected failure: one entry per under-stocked product."""

    code = "StockShortfall"

    def __init__(self, shortfalls: List[Any]):
        names = ", ".join(str(s.product_name) for s in shortfalls)
        super().__init__(f"Insufficient stock for: {names}")
        self.shortfalls = list(shortfalls)


class ConcurrencyConflictError(AppError):
    code = "ConcurrencyConflict"
    retryable = True


class PersistenceError(AppError):
    code = "PersistenceError"
    retryable = True


class CatalogUnavailableError(AppError):
    code = "CatalogUnavailable"
    retryable = True


class CheckoutCancelledError(AppError):
    code = "Cancelled"

    def __init__(self, message: str = "Checkout cancelled"):
        super().__init__(message)
