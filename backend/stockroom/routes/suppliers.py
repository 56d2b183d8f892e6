# Overview: Flask API routes for suppliers; parses input and returns JSON responses.

# backend/stockroom/routes/suppliers.py
"""
Supplier routes.

MULTI-TENANT: every route is scoped to g.company_id (set by @require_company).
"""
from flask import Blueprint, request, g

from ..decorators import require_company
from ..models import Supplier
from ..services import directory_service
from ..validation import ModelValidationPolicy, require_non_empty_patch, validate_payload

SUPPLIER_POLICY = ModelValidationPolicy(
    writable_fields={"name", "email", "phone", "address"},
    required_on_create={"name"},
)

suppliers_bp = Blueprint("suppliers", __name__, url_prefix="/suppliers")


@suppliers_bp.post("")
@require_company
def create_supplier_route():
    payload = request.get_json(silent=True) or {}
    patch = validate_payload(model=Supplier, payload=payload, policy=SUPPLIER_POLICY, partial=False)

    supplier = directory_service.create_entry(Supplier, company_id=g.company_id, patch=patch)
    return supplier.to_dict(), 201


@suppliers_bp.get("")
@require_company
def list_suppliers():
    suppliers = directory_service.list_entries(Supplier, g.company_id)
    return {"suppliers": [s.to_dict() for s in suppliers]}


@suppliers_bp.get("/<int:supplier_id>")
@require_company
def get_supplier(supplier_id: int):
    return directory_service.get_entry(Supplier, g.company_id, supplier_id).to_dict()


@suppliers_bp.put("/<int:supplier_id>")
@require_company
def update_supplier_route(supplier_id: int):
    directory_service.get_entry(Supplier, g.company_id, supplier_id)
    payload = request.get_json(silent=True) or {}
    patch = validate_payload(model=Supplier, payload=payload, policy=SUPPLIER_POLICY, partial=True)
    require_non_empty_patch(patch)

    supplier = directory_service.update_entry(
        Supplier, company_id=g.company_id, entry_id=supplier_id, patch=patch
    )
    return supplier.to_dict()


@suppliers_bp.delete("/<int:supplier_id>")
@require_company
def delete_supplier_route(supplier_id: int):
    directory_service.delete_entry(Supplier, company_id=g.company_id, entry_id=supplier_id)
    return {"ok": True}, 200
