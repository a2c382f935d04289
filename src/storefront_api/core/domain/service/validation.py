from __future__ import annotations

import re

from returns.result import Failure, Result, Success

from storefront_api.core.domain.model.catalog import ProductId
from storefront_api.core.domain.model.errors import StorefrontError, ValidationError

CONTACT_MIN_DIGITS = 7
CONTACT_MAX_DIGITS = 15

_NON_DIGITS = re.compile(r"\D")


def _is_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def validate_product_id(raw: str) -> Result[ProductId, StorefrontError]:
    if not isinstance(raw, str) or not raw.strip():
        return Failure(ValidationError("product_id is required"))
    return Success(ProductId(raw.strip()))


def validate_delta(delta: object) -> Result[int, StorefrontError]:
    if not _is_int(delta):
        return Failure(ValidationError("quantity must be an integer"))
    if delta < 1:  # type: ignore[operator]
        return Failure(ValidationError("quantity must be > 0"))
    return Success(delta)  # type: ignore[arg-type]


def validate_quantity(quantity: object) -> Result[int, StorefrontError]:
    """Any integer is accepted; values below 1 mean "remove the line"."""
    if not _is_int(quantity):
        return Failure(ValidationError("quantity must be an integer"))
    return Success(quantity)  # type: ignore[arg-type]


def normalize_contact(contact: str) -> str:
    return _NON_DIGITS.sub("", contact or "")


def validate_contact(contact: str) -> Result[str, StorefrontError]:
    """Phone number with 7-15 digits once separators are stripped."""
    digits = normalize_contact(contact)
    if not CONTACT_MIN_DIGITS <= len(digits) <= CONTACT_MAX_DIGITS:
        return Failure(
            ValidationError(
                "contact must be a phone number with "
                f"{CONTACT_MIN_DIGITS}-{CONTACT_MAX_DIGITS} digits"
            )
        )
    return Success(digits)
