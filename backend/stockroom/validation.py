from __future__ import annotations
from datetime import datetime
import re
from stockroom.time_utils import parse_iso_datetime

from dataclasses import dataclass
from typing import Any

from sqlalchemy import Boolean, Integer, Numeric, String, Text, DateTime
from sqlalchemy.orm import DeclarativeMeta

from .errors import InvalidArgumentError
from .models import MOVEMENT_TYPES, ORDER_STATUSES
from .money import MAX_AMOUNT, to_money

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


class ValidationError(InvalidArgumentError):
    """400-level input problem."""


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: column keys clients are allowed to set (security boundary)
    - required_on_create: column keys required for POST
    """
    writable_fields: set[str]
    required_on_create: set[str] = None  # type: ignore


def to_snake(key: str) -> str:
    """Wire key -> column key ("unitPrice" -> "unit_price")."""
    return _CAMEL_BOUNDARY.sub("_", key).lower()


def to_camel(key: str) -> str:
    """Column key -> wire key ("unit_price" -> "unitPrice")."""
    head, *rest = key.split("_")
    return head + "".join(part.title() for part in rest)


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def _coerce_value(col, value: Any):
    coltype = col.type
    field = to_camel(col.key)

    if value is None:
        return None

    # Integers - strict validation to reject floats and scientific notation
    if isinstance(coltype, Integer):
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        if isinstance(value, str):
            stripped = value.strip()
            if not stripped:
                raise ValidationError(f"{field} must be an integer")
            if 'e' in stripped.lower():
                raise ValidationError(f"{field} must be a plain integer (scientific notation not allowed)")
            if '.' in stripped:
                raise ValidationError(f"{field} must be an integer (no decimals)")
            try:
                return int(stripped)
            except ValueError:
                raise ValidationError(f"{field} must be an integer")
        if isinstance(value, float):
            raise ValidationError(f"{field} must be an integer, not a decimal")
        raise ValidationError(f"{field} must be an integer")

    # Money columns: NUMERIC(12, 2)
    if isinstance(coltype, Numeric):
        try:
            amount = to_money(value)
        except ValueError:
            raise ValidationError(f"{field} must be a number")
        if not amount.is_finite():
            raise ValidationError(f"{field} must be a finite number")
        return amount

    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        return bool(value)

    # Datetimes (accept ISO-8601 strings; normalize to UTC)
    if isinstance(coltype, DateTime):
        if isinstance(value, datetime):
            return value
        if isinstance(value, str):
            try:
                dt = parse_iso_datetime(value)
            except ValueError:
                raise ValidationError(f"{field} must be an ISO-8601 datetime")
            if dt is None:
                raise ValidationError(f"{field} must be an ISO-8601 datetime")
            return dt
        raise ValidationError(f"{field} must be a datetime")

    if isinstance(coltype, (String, Text)):
        if isinstance(value, (dict, list)):
            raise ValidationError(f"{field} must be a string")
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
    Validates + normalizes incoming camelCase JSON against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - a policy allowlist (writable_fields)
    - required_on_create (if partial=False)
    Returns a cleaned patch dict keyed by column name with only the fields the
    client actually sent.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    snake_payload = {to_snake(k): v for k, v in payload.items()}

    required = policy.required_on_create or set()
    if not partial:
        missing = sorted(to_camel(f) for f in required if snake_payload.get(f) is None)
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)

    # Reject unknown / non-writable fields
    for k in snake_payload.keys():
        if k not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {to_camel(k)}")
        if k not in cols:
            raise ValidationError(f"Unknown field: {to_camel(k)}")

    patch: dict = {}

    for k, raw in snake_payload.items():
        col = cols[k]

        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{to_camel(k)} cannot be null")
            patch[k] = None
            continue

        val = _coerce_value(col, raw)

        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise ValidationError(f"{to_camel(k)} cannot be blank")

        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{to_camel(k)} exceeds max length {col.type.length}")

        patch[k] = val

    return patch


def require_non_empty_patch(patch: dict) -> None:
    if not patch:
        raise ValidationError("no fields to update")


def _check_amount(patch: dict, key: str) -> None:
    if key in patch and patch[key] is not None:
        if patch[key] < 0:
            raise ValidationError(f"{to_camel(key)} must be >= 0")
        if patch[key] > MAX_AMOUNT:
            raise ValidationError(f"{to_camel(key)} cannot exceed {MAX_AMOUNT}")


def enforce_rules_product(patch: dict) -> None:
    """
    Business rules that are not captured by SQLAlchemy metadata alone.
    Keep these small and centralized.
    """
    _check_amount(patch, "unit_price")
    _check_amount(patch, "cost_price")
    if patch.get("reorder_level") is not None and patch["reorder_level"] < 0:
        raise ValidationError("reorderLevel must be >= 0")


def enforce_rules_stock_adjust(patch: dict) -> None:
    # any signed delta, zero included
    if patch.get("quantity") is None:
        raise ValidationError("quantity is required")


def enforce_rules_stock_movement(patch: dict) -> None:
    movement_type = patch.get("movement_type")
    if movement_type not in MOVEMENT_TYPES:
        raise ValidationError(f"movementType must be one of: {', '.join(MOVEMENT_TYPES)}")

    quantity = patch.get("quantity")
    if movement_type in ("in", "out"):
        if quantity is None or quantity <= 0:
            raise ValidationError(f"quantity must be > 0 for '{movement_type}' movements")
    elif quantity is None:
        raise ValidationError("quantity is required")

    if patch.get("reference_id") is not None and not patch.get("reference_type"):
        raise ValidationError("referenceType is required when referenceId is given")


def enforce_rules_sales_order(patch: dict) -> None:
    status = patch.get("status")
    if status is not None and status not in ORDER_STATUSES:
        raise ValidationError(f"status must be one of: {', '.join(ORDER_STATUSES)}")


def validate_order_items(items: Any) -> list[dict]:
    """
    Validate the line items of a new sales order.

    Returns a list of {"product_id", "quantity", "unit_price"} dicts.
    """
    if not isinstance(items, list) or not items:
        raise ValidationError("order must have at least one item")

    cleaned = []
    for index, item in enumerate(items, start=1):
        if not isinstance(item, dict):
            raise ValidationError(f"item {index} must be an object")

        product_id = item.get("productId")
        quantity = item.get("quantity")
        unit_price = item.get("unitPrice")

        if not isinstance(product_id, int) or isinstance(product_id, bool):
            raise ValidationError(f"item {index}: productId must be an integer")
        if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity <= 0:
            raise ValidationError(f"item {index}: quantity must be a positive integer")
        if unit_price is None:
            raise ValidationError(f"item {index}: unitPrice is required")
        try:
            price = to_money(unit_price)
        except ValueError:
            raise ValidationError(f"item {index}: unitPrice must be a number")
        if not price.is_finite() or price < 0 or price > MAX_AMOUNT:
            raise ValidationError(f"item {index}: unitPrice must be between 0 and {MAX_AMOUNT}")

        cleaned.append({"product_id": product_id, "quantity": quantity, "unit_price": price})

    return cleaned
