from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import Boolean, Integer, Numeric, String, Text
from sqlalchemy.orm import DeclarativeMeta

from .decimal_utils import to_decimal


# Maximum money amount accepted at the boundary: 9,999,999,999.99
MAX_AMOUNT = to_decimal("9999999999.99")

# Maximum number of option pairs on a cart line
MAX_OPTIONS = 32


class ValidationError(ValueError):
    """400-level input problem."""


class ConflictError(ValueError):
    """409-level business rule conflict (e.g., stock policy violation)."""


class NotFoundError(LookupError):
    """404-level unknown id (product, location, session, order, cart item)."""


class ProductNotFoundError(NotFoundError):
    """Raised when a product id does not reference an existing product."""


def error_body(exc: Exception) -> dict:
    """Structured failure payload: machine-checkable kind plus readable message."""
    return {"error": str(exc), "kind": type(exc).__name__}


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    - extra_fields: request-only fields that are not model columns, mapped to
      the SQLAlchemy type used to coerce them (always nullable)
    """
    writable_fields: set[str]
    required_on_create: set[str] = field(default_factory=set)
    extra_fields: dict[str, Any] = field(default_factory=dict)


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def _coerce_value(key: str, coltype, value: Any):
    if value is None:
        return None

    # Integers - strict validation to reject floats and scientific notation
    if isinstance(coltype, Integer):
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        if isinstance(value, str):
            stripped = value.strip()
            if not stripped:
                raise ValidationError(f"{key} must be an integer")
            if 'e' in stripped.lower():
                raise ValidationError(f"{key} must be a plain integer (scientific notation not allowed)")
            if '.' in stripped:
                raise ValidationError(f"{key} must be an integer (no decimals)")
            try:
                return int(stripped)
            except ValueError:
                raise ValidationError(f"{key} must be an integer")
        if isinstance(value, float):
            raise ValidationError(f"{key} must be an integer, not a decimal")
        raise ValidationError(f"{key} must be an integer")

    # Decimals (quantities and money); floats go through str() to stay exact
    if isinstance(coltype, Numeric):
        if isinstance(value, (dict, list)):
            raise ValidationError(f"{key} must be a number")
        try:
            number = to_decimal(value.strip() if isinstance(value, str) else value)
        except ValueError:
            raise ValidationError(f"{key} must be a number")
        if coltype.scale is not None and number.as_tuple().exponent < -coltype.scale:
            raise ValidationError(f"{key} allows at most {coltype.scale} decimal places")
        return number

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

    if not partial:
        missing = sorted(f for f in policy.required_on_create if payload.get(f) is None)
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)

    # Reject unknown / non-writable fields
    for k in payload.keys():
        if k not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {k}")
        if k not in cols and k not in policy.extra_fields:
            raise ValidationError(f"Unknown field: {k}")

    patch: dict = {}

    for k, raw in payload.items():
        if k in policy.extra_fields:
            patch[k] = _coerce_value(k, policy.extra_fields[k], raw)
            continue

        col = cols[k]

        if raw is None:
            if not col.nullable and k in policy.required_on_create:
                raise ValidationError(f"{k} cannot be null")
            patch[k] = None
            continue

        val = _coerce_value(k, col.type, raw)

        # Blank string check for non-nullable text fields
        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise ValidationError(f"{k} cannot be blank")

        # Max length check for String(n)
        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        patch[k] = val

    return patch


def normalize_options(raw: Any) -> list[dict]:
    """
    Cart/order line options as an explicit list of {"name", "value"} pairs.

    Accepts None, a list of pairs, or a flat mapping (converted to pairs in key
    order). Values must be scalars (str, int, float, bool); names are
    non-blank strings and unique per line.
    """
    if raw is None:
        return []

    if isinstance(raw, dict):
        raw = [{"name": k, "value": v} for k, v in raw.items()]

    if not isinstance(raw, list):
        raise ValidationError("options must be a list of {name, value} pairs")
    if len(raw) > MAX_OPTIONS:
        raise ValidationError(f"options cannot have more than {MAX_OPTIONS} entries")

    pairs: list[dict] = []
    seen: set[str] = set()
    for item in raw:
        if not isinstance(item, dict) or set(item.keys()) - {"name", "value"} or "name" not in item:
            raise ValidationError("each option must be an object with 'name' and 'value'")
        name = item["name"]
        if not isinstance(name, str) or not name.strip():
            raise ValidationError("option name must be a non-blank string")
        name = name.strip()
        if name in seen:
            raise ValidationError(f"duplicate option: {name}")
        value = item.get("value")
        if value is not None and not isinstance(value, (str, int, float, bool)):
            raise ValidationError(f"option {name} must have a scalar value")
        seen.add(name)
        pairs.append({"name": name, "value": value})
    return pairs


def enforce_positive_quantity(value, *, field_name: str = "quantity") -> None:
    if value is None or value <= 0:
        raise ValidationError(f"{field_name} must be > 0")


def enforce_rules_movement(patch: dict) -> None:
    # Sign is derived from the movement type, so only zero is rejected here
    if patch.get("quantity") is None or patch["quantity"] == 0:
        raise ValidationError("quantity must be non-zero")

    if patch.get("type") == "transfer" and patch.get("to_location_id") is None:
        raise ValidationError("to_location_id is required for transfer")


def enforce_rules_finance_entry(patch: dict) -> None:
    amount = patch.get("amount")
    if amount is None or amount < 0:
        raise ValidationError("amount must be >= 0")
    if amount > MAX_AMOUNT:
        raise ValidationError(f"amount cannot exceed {MAX_AMOUNT}")
