# Overview: Flask API routes for warehouses; parses input and returns JSON responses.

# backend/stockroom/routes/warehouses.py
"""
Warehouse routes.

MULTI-TENANT: every route is scoped to g.company_id (set by @require_company).
A warehouse id from another company answers 404.
"""
from flask import Blueprint, request, g

from ..decorators import require_company
from ..models import Warehouse
from ..services import directory_service
from ..validation import ModelValidationPolicy, require_non_empty_patch, validate_payload

WAREHOUSE_POLICY = ModelValidationPolicy(
    writable_fields={"name", "address"},
    required_on_create={"name"},
)

warehouses_bp = Blueprint("warehouses", __name__, url_prefix="/warehouses")


@warehouses_bp.post("")
@require_company
def create_warehouse_route():
    payload = request.get_json(silent=True) or {}
    patch = validate_payload(model=Warehouse, payload=payload, policy=WAREHOUSE_POLICY, partial=False)

    warehouse = directory_service.create_entry(Warehouse, company_id=g.company_id, patch=patch)
    return warehouse.to_dict(), 201


@warehouses_bp.get("")
@require_company
def list_warehouses():
    warehouses = directory_service.list_entries(Warehouse, g.company_id)
    return {"warehouses": [w.to_dict() for w in warehouses]}


@warehouses_bp.get("/<int:warehouse_id>")
@require_company
def get_warehouse(warehouse_id: int):
    return directory_service.get_entry(Warehouse, g.company_id, warehouse_id).to_dict()


@warehouses_bp.put("/<int:warehouse_id>")
@require_company
def update_warehouse_route(warehouse_id: int):
    directory_service.get_entry(Warehouse, g.company_id, warehouse_id)
    payload = request.get_json(silent=True) or {}
    patch = validate_payload(model=Warehouse, payload=payload, policy=WAREHOUSE_POLICY, partial=True)
    require_non_empty_patch(patch)

    warehouse = directory_service.update_entry(
        Warehouse, company_id=g.company_id, entry_id=warehouse_id, patch=patch
    )
    return warehouse.to_dict()


@warehouses_bp.delete("/<int:warehouse_id>")
@require_company
def delete_warehouse_route(warehouse_id: int):
    """Delete a warehouse and its stock rows."""
    directory_service.delete_entry(Warehouse, company_id=g.company_id, entry_id=warehouse_id)
    return {"ok": True}, 200
