# Overview: Flask API routes for the stock ledger; parses input and returns JSON responses.

# backend/stockroom/routes/stock.py
"""
Stock ledger routes.

- POST /stock/adjust: signed manual delta, logged as an 'adjustment' movement
- POST /stock/movement: in / out / adjustment movement with optional reference
- GET /stock/movements: latest movements for the company

Levels are clamped at zero; movements keep the requested quantity.
"""
from flask import Blueprint, current_app, request, g

from ..decorators import require_company
from ..models import StockMovement
from ..services import stock_service
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_stock_adjust,
    enforce_rules_stock_movement,
)

stock_bp = Blueprint("stock", __name__, url_prefix="/stock")

STOCK_ADJUST_POLICY = ModelValidationPolicy(
    writable_fields={"product_id", "warehouse_id", "quantity", "notes"},
    required_on_create={"product_id", "warehouse_id", "quantity"},
)

STOCK_MOVEMENT_POLICY = ModelValidationPolicy(
    writable_fields={
        "product_id",
        "warehouse_id",
        "movement_type",
        "quantity",
        "reference_type",
        "reference_id",
        "notes",
    },
    required_on_create={"product_id", "warehouse_id", "movement_type", "quantity"},
)


@stock_bp.post("/adjust")
@require_company
def adjust_stock_route():
    """
    Apply a signed delta to a (product, warehouse) stock level.

    Body: {productId, warehouseId, quantity, notes?}. Returns the resulting level.
    """
    payload = request.get_json(silent=True) or {}

    patch = validate_payload(model=StockMovement, payload=payload, policy=STOCK_ADJUST_POLICY, partial=False)
    enforce_rules_stock_adjust(patch)

    level = stock_service.adjust_stock(
        company_id=g.company_id,
        product_id=patch["product_id"],
        warehouse_id=patch["warehouse_id"],
        delta=patch["quantity"],
        notes=patch.get("notes"),
    )
    return level.to_dict(), 200


@stock_bp.post("/movement")
@require_company
def record_movement_route():
    payload = request.get_json(silent=True) or {}

    patch = validate_payload(model=StockMovement, payload=payload, policy=STOCK_MOVEMENT_POLICY, partial=False)
    enforce_rules_stock_movement(patch)

    movement = stock_service.record_stock_movement(
        company_id=g.company_id,
        product_id=patch["product_id"],
        warehouse_id=patch["warehouse_id"],
        movement_type=patch["movement_type"],
        quantity=patch["quantity"],
        reference_type=patch.get("reference_type"),
        reference_id=patch.get("reference_id"),
        notes=patch.get("notes"),
    )
    return movement.to_dict(), 201


@stock_bp.get("/movements")
@require_company
def list_movements():
    limit = current_app.config.get("STOCK_MOVEMENTS_PAGE_SIZE", 100)
    return {"movements": stock_service.list_stock_movements(company_id=g.company_id, limit=limit)}
