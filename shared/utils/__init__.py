"""
Utilities module: Exceptions, validators, schemas.
"""

from shared.utils.exceptions import (
    NotFoundError,
    OrderNotFoundError,
    ForbiddenError,
    ValidationError,
    InvalidTransitionError,
    ConflictError,
    DatabaseError,
)
from shared.utils.validators import (
    validate_image_url,
    escape_like_pattern,
    phone_digits,
    validate_phone,
    sanitize_notes,
    format_brl,
)

__all__ = [
    # exceptions
    "NotFoundError",
    "OrderNotFoundError",
    "ForbiddenError",
    "ValidationError",
    "InvalidTransitionError",
    "ConflictError",
    "DatabaseError",
    # validators
    "validate_image_url",
    "escape_like_pattern",
    "phone_digits",
    "validate_phone",
    "sanitize_notes",
    "format_brl",
]
