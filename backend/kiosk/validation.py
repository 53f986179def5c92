from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

from sqlalchemy import Boolean, Integer, String, Text
from sqlalchemy.orm import DeclarativeMeta

from .errors import ValidationError, InvalidAmountError
from .models.users import VALID_COUNTRIES


# Maximum price / single movement: $9,999,999.99 (999,999,999 cents)
# This prevents database overflow issues and nonsensical amounts
MAX_AMOUNT_CENTS = 999_999_999

# Stock level or line quantity ceiling
MAX_QUANTITY = 1_000_000

# SQLite INTEGER is a signed 64-bit value
MAX_ID = 2**63 - 1

# 10-15 digits, optional leading "+"
PHONE_PATTERN = re.compile(r"^\+?\d{10,15}$")


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


def coerce_int(value: Any, field: str) -> int:
    """
    Strict integer coercion for JSON input.

    Accepts ints and plain digit strings; rejects bools, floats, decimals and
    scientific notation.
    """
    # Already an int (but not bool which is a subclass of int)
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    # String input - must be plain digits (with optional leading minus)
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{field} must be an integer")
        # Reject scientific notation (e.g., "1e15", "1E10")
        if 'e' in stripped.lower():
            raise ValidationError(f"{field} must be a plain integer (scientific notation not allowed)")
        # Reject decimal points (e.g., "12.5")
        if '.' in stripped:
            raise ValidationError(f"{field} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{field} must be an integer")
    # Reject floats explicitly
    if isinstance(value, float):
        raise ValidationError(f"{field} must be an integer, not a decimal")
    raise ValidationError(f"{field} must be an integer")


def coerce_amount_cents(value: Any, field: str = "amount_cents") -> int:
    """Money amount in cents: a positive integer no larger than MAX_AMOUNT_CENTS."""
    if value is None:
        raise InvalidAmountError(f"{field} is required")
    try:
        amount = coerce_int(value, field)
    except ValidationError as e:
        raise InvalidAmountError(str(e))
    if amount <= 0:
        raise InvalidAmountError(f"{field} must be a positive integer")
    if amount > MAX_AMOUNT_CENTS:
        raise InvalidAmountError(f"{field} cannot exceed {MAX_AMOUNT_CENTS}")
    return amount


def coerce_quantity(
    value: Any,
    field: str = "quantity",
    *,
    minimum: int = 1,
    maximum: int = MAX_QUANTITY,
) -> int:
    qty = coerce_int(value, field)
    if qty < minimum:
        raise ValidationError(f"{field} must be >= {minimum}")
    if qty > maximum:
        raise ValidationError(f"{field} cannot exceed {maximum}")
    return qty


def coerce_id(value: Any, field: str) -> int:
    if value is None:
        raise ValidationError(f"{field} is required")
    return coerce_quantity(value, field, minimum=1, maximum=MAX_ID)


def json_object(payload: Any) -> dict:
    """Request body as a dict. A missing body is empty; arrays and scalars are rejected."""
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    return payload


def normalize_phone(value: Any) -> str:
    if not isinstance(value, str):
        raise ValidationError("phone is required")
    phone = re.sub(r"[\s\-()]", "", value)
    if not PHONE_PATTERN.match(phone):
        raise ValidationError("phone must contain 10 to 15 digits")
    return phone


def validate_country(value: Any) -> str:
    if value not in VALID_COUNTRIES:
        raise ValidationError(f"country must be one of: {', '.join(VALID_COUNTRIES)}")
    return value


def require_text(payload: dict, field: str, *, max_length: int | None = None) -> str:
    raw = payload.get(field)
    if raw is None or not str(raw).strip():
        raise ValidationError(f"{field} is required")
    val = str(raw).strip()
    if max_length and len(val) > max_length:
        raise ValidationError(f"{field} exceeds max length {max_length}")
    return val


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    if isinstance(coltype, Integer):
        return coerce_int(value, col.key)

    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        return bool(value)

    # Strings / Text
    if isinstance(coltype, (String, Text)):
        return str(value).strip()

    # Default: leave as-is
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
    Returns a cleaned patch dict with only writable fields.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    required = policy.required_on_create or set()
    if not partial:
        missing = sorted(f for f in required if f not in payload)
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)

    # Reject unknown / non-writable fields
    for k in payload.keys():
        if k not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {k}")
        if k not in cols:
            raise ValidationError(f"Unknown field: {k}")

    patch: dict = {}

    for k, raw in payload.items():
        col = cols[k]

        # NULL handling
        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null")
            patch[k] = None
            continue

        val = _coerce_value(col, raw)

        # Blank string check for required text fields
        if isinstance(col.type, (String, Text)) and k in required:
            if isinstance(val, str) and val == "":
                raise ValidationError(f"{k} cannot be blank")

        # Max length check for String(n)
        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        patch[k] = val

    return patch


def enforce_rules_product(patch: dict) -> None:
    """
    Business rules that are not captured by SQLAlchemy metadata alone.
    Keep these small and centralized.
    """
    if "price_cents" in patch:
        price = patch["price_cents"]
        if price <= 0:
            raise ValidationError("price_cents must be > 0")
        if price > MAX_AMOUNT_CENTS:
            raise ValidationError(f"price_cents cannot exceed {MAX_AMOUNT_CENTS} (${MAX_AMOUNT_CENTS / 100:,.2f})")

    if "quantity" in patch:
        quantity = patch["quantity"]
        if quantity < 0:
            raise ValidationError("quantity must be >= 0")
        if quantity > MAX_QUANTITY:
            raise ValidationError(f"quantity cannot exceed {MAX_QUANTITY}")

    if "country" in patch:
        validate_country(patch["country"])

    if "name" in patch and patch["name"] == "":
        raise ValidationError("name cannot be blank")
