# Overview: Flask API routes for customers; parses input and returns JSON responses.

# backend/stockroom/routes/customers.py
"""
Customer routes.

MULTI-TENANT: every route is scoped to g.company_id (set by @require_company).
Deleting a customer keeps its orders; they lose the customer link.
"""
from flask import Blueprint, request, g

from ..decorators import require_company
from ..models import Customer
from ..services import directory_service
from ..validation import ModelValidationPolicy, require_non_empty_patch, validate_payload

CUSTOMER_POLICY = ModelValidationPolicy(
    writable_fields={"name", "email", "phone", "address"},
    required_on_create={"name"},
)

customers_bp = Blueprint("customers", __name__, url_prefix="/customers")


@customers_bp.post("")
@require_company
def create_customer_route():
    payload = request.get_json(silent=True) or {}
    patch = validate_payload(model=Customer, payload=payload, policy=CUSTOMER_POLICY, partial=False)

    customer = directory_service.create_entry(Customer, company_id=g.company_id, patch=patch)
    return customer.to_dict(), 201


@customers_bp.get("")
@require_company
def list_customers():
    customers = directory_service.list_entries(Customer, g.company_id)
    return {"customers": [c.to_dict() for c in customers]}


@customers_bp.get("/<int:customer_id>")
@require_company
def get_customer(customer_id: int):
    return directory_service.get_entry(Customer, g.company_id, customer_id).to_dict()


@customers_bp.put("/<int:customer_id>")
@require_company
def update_customer_route(customer_id: int):
    directory_service.get_entry(Customer, g.company_id, customer_id)
    payload = request.get_json(silent=True) or {}
    patch = validate_payload(model=Customer, payload=payload, policy=CUSTOMER_POLICY, partial=True)
    require_non_empty_patch(patch)

    customer = directory_service.update_entry(
        Customer, company_id=g.company_id, entry_id=customer_id, patch=patch
    )
    return customer.to_dict()


@customers_bp.delete("/<int:customer_id>")
@require_company
def delete_customer_route(customer_id: int):
    directory_service.delete_entry(Customer, company_id=g.company_id, entry_id=customer_id)
    return {"ok": True}, 200
