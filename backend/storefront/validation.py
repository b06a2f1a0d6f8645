from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

from sqlalchemy import Boolean, Integer, String, Text
from sqlalchemy.orm import DeclarativeMeta


EMAIL_RE = re.compile(r"^[A-Za-z0-9.!#$%&'*+/=?^_`{|}~-]+@[A-Za-z0-9-]+(\.[A-Za-z0-9-]+)*\.[A-Za-z]{2,}$")
CARD_LAST_FOUR_RE = re.compile(r"^[0-9]{4}$")

# Largest value a 64-bit signed INTEGER column can hold.
MAX_DB_INT = 2**63 - 1


class ValidationError(ValueError):
    """400-level input problem. errors holds one {field, message} per violation."""

    def __init__(self, message: str, errors: list[dict] | None = None):
        super().__init__(message)
        self.errors = errors or []


class ConflictError(ValueError):
    """409-level business rule conflict (e.g., duplicate wishlist entry)."""


class NotFoundError(LookupError):
    """404-level: missing, or owned by somebody else."""


class InvalidStateError(ValueError):
    """400-level business rule violation on well-formed input (stock, empty cart)."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class AuthenticationError(Exception):
    """401-level credential problem."""


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    """
    writable_fields: set[str]
    required_on_create: set[str] = None  # type: ignore


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    # Integers - strict validation to reject floats and scientific notation
    if isinstance(coltype, Integer):
        return parse_positive_int(value, col.key, minimum=None)

    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        return bool(value)

    if isinstance(coltype, (String, Text)):
        return str(value).strip()

    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes incoming JSON against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - a policy allowlist (writable_fields)
    - required_on_create (if partial=False)
    Returns a cleaned patch dict with only writable fields. Keys outside
    the allowlist are ignored rather than rejected, so callers can mix in
    non-column keys (e.g. password) and handle them separately.
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    required = policy.required_on_create or set()
    if not partial:
        missing = sorted(f for f in required if f not in payload)
        if missing:
            raise ValidationError(
                f"Missing required fields: {', '.join(missing)}",
                errors=[{"field": f, "message": f"{f} is required"} for f in missing],
            )

    cols = _columns_by_key(model)
    patch: dict = {}

    for k, raw in payload.items():
        if k not in policy.writable_fields or k not in cols:
            continue
        col = cols[k]

        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null", errors=[{"field": k, "message": f"{k} cannot be null"}])
            patch[k] = None
            continue

        val = _coerce_value(col, raw)

        # Blank string check for non-nullable text fields
        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise ValidationError(f"{k} cannot be blank", errors=[{"field": k, "message": f"{k} cannot be blank"}])

        # Max length check for String(n)
        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(
                    f"{k} exceeds max length {col.type.length}",
                    errors=[{"field": k, "message": f"{k} exceeds max length {col.type.length}"}],
                )

        patch[k] = val

    return patch


def parse_positive_int(value: Any, field: str, *, minimum: int | None = 1) -> int:
    """
    Strict integer parsing for ids and quantities.
    Rejects bools, floats, decimals and scientific notation.
    """
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer", errors=[{"field": field, "message": f"{field} must be an integer"}])
    if isinstance(value, int):
        result = value
    elif isinstance(value, str) and re.fullmatch(r"-?\d+", value.strip()):
        result = int(value.strip())
    else:
        raise ValidationError(f"{field} must be an integer", errors=[{"field": field, "message": f"{field} must be an integer"}])

    if minimum is not None and result < minimum:
        message = f"{field} must be at least {minimum}"
        raise ValidationError(message, errors=[{"field": field, "message": message}])
    if not fits_db_int(result):
        message = f"{field} is out of range"
        raise ValidationError(message, errors=[{"field": field, "message": message}])
    return result


def fits_db_int(value: int) -> bool:
    return -MAX_DB_INT - 1 <= value <= MAX_DB_INT


def is_valid_email(value: Any) -> bool:
    return isinstance(value, str) and bool(EMAIL_RE.match(value.strip()))


# (field, predicate on trimmed value, message)
SHIPPING_RULES = (
    ("first_name", lambda v: len(v) >= 1, "First name is required"),
    ("last_name", lambda v: len(v) >= 1, "Last name is required"),
    ("email", lambda v: bool(EMAIL_RE.match(v)), "Please enter a valid email address"),
    ("phone", lambda v: len(v) >= 10, "Please enter a valid phone number"),
    ("address", lambda v: len(v) >= 5, "Address is required"),
    ("city", lambda v: len(v) >= 1, "City is required"),
    ("state", lambda v: len(v) >= 1, "State is required"),
    ("zip_code", lambda v: len(v) >= 5, "ZIP code is required"),
)

PAYMENT_RULES = (
    ("card_last_four", lambda v: bool(CARD_LAST_FOUR_RE.match(v)), "Card last four digits must be 4 numbers"),
    ("card_type", lambda v: len(v) >= 1, "Card type is required"),
)


def _check_section(section: Any, prefix: str, rules, errors: list[dict], *, numbers_as_text: bool = False) -> dict:
    cleaned: dict = {}
    for field, predicate, message in rules:
        raw = section.get(field)
        if numbers_as_text and isinstance(raw, (int, float)) and not isinstance(raw, bool):
            raw = str(raw)
        value = raw.strip() if isinstance(raw, str) else ""
        if not predicate(value):
            errors.append({"field": f"{prefix}.{field}", "message": message})
        else:
            cleaned[field] = value
    return cleaned


def validate_checkout(payload: Any) -> tuple[dict, dict, str | None]:
    """
    Validate a checkout body before any storage access.

    Every failing field is reported, not just the first. Returns trimmed
    (shipping, payment, order_note). Any payment status or card number
    beyond the last four digits in the input is dropped here.
    """
    if not isinstance(payload, dict):
        raise ValidationError("Validation failed", errors=[{"field": "body", "message": "Invalid JSON payload"}])

    errors: list[dict] = []
    shipping_in = payload.get("shippingInfo")
    payment_in = payload.get("paymentInfo")

    shipping: dict = {}
    payment: dict = {}

    if not isinstance(shipping_in, dict):
        errors.append({"field": "shippingInfo", "message": "Shipping information is required"})
    else:
        shipping = _check_section(shipping_in, "shippingInfo", SHIPPING_RULES, errors, numbers_as_text=True)
        country = shipping_in.get("country")
        if isinstance(country, str) and country.strip():
            shipping["country"] = country.strip()

    if not isinstance(payment_in, dict):
        errors.append({"field": "paymentInfo", "message": "Payment information is required"})
    else:
        payment = _check_section(payment_in, "paymentInfo", PAYMENT_RULES, errors)
        transaction_id = payment_in.get("transaction_id")
        if isinstance(transaction_id, str) and transaction_id.strip():
            payment["transaction_id"] = transaction_id.strip()

    note = payload.get("order_note")
    if note is not None and not isinstance(note, str):
        errors.append({"field": "order_note", "message": "Order note must be text"})
        note = None

    if errors:
        raise ValidationError("Validation failed", errors=errors)

    note = note.strip() if note else None
    return shipping, payment, (note or None)
