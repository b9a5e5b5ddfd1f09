# backend/kardex/routes/errors.py
"""
Exception -> HTTP status mapping shared by the blueprints.

Routes catch the domain exceptions they expect and answer
error_response(exc); anything else is logged and answered 500.
"""

from ..immutability import ImmutableRecordError
from ..services.checkout_service import EmptyCartError, ConfigurationError
from ..services.production_service import NoRecipeError
from ..validation import ValidationError, ConflictError, NotFoundError, error_body


# Checked in order; subclasses (InsufficientStockError, ProductNotFoundError)
# resolve through their base class.
STATUS_BY_ERROR = (
    (ValidationError, 400),
    (EmptyCartError, 400),
    (NotFoundError, 404),
    (ConflictError, 409),
    (ImmutableRecordError, 409),
    (NoRecipeError, 422),
    (ConfigurationError, 500),
)

DOMAIN_ERRORS = tuple(cls for cls, _status in STATUS_BY_ERROR)


def error_response(exc: Exception):
    for cls, status in STATUS_BY_ERROR:
        if isinstance(exc, cls):
            return error_body(exc), status
    return {"error": "Internal server error"}, 500
