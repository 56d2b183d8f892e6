# Overview: Flask API routes for company creation and lookup.

# backend/stockroom/routes/companies.py
"""
Company routes.

These two endpoints only require authentication: a user has no company until
POST /companies links them to one as admin.
"""
from flask import Blueprint, request, g

from ..decorators import require_auth
from ..models import Company
from ..services import tenant_service
from ..validation import ModelValidationPolicy, validate_payload

COMPANY_POLICY = ModelValidationPolicy(
    writable_fields={"name", "email", "phone", "address", "tax_number"},
    required_on_create={"name", "email"},
)

companies_bp = Blueprint("companies", __name__, url_prefix="/companies")


@companies_bp.post("")
@require_auth
def create_company_route():
    """Create a company and make the caller its admin (409 if already linked)."""
    payload = request.get_json(silent=True) or {}
    patch = validate_payload(model=Company, payload=payload, policy=COMPANY_POLICY, partial=False)

    company = tenant_service.create_company(g.user_id, patch)
    return company.to_dict(), 201


@companies_bp.get("/me")
@require_auth
def get_my_company():
    company_id = tenant_service.resolve_company(g.user_id)
    return tenant_service.get_company(company_id).to_dict()
