# Overview: Flask API routes for products; parses input and returns JSON responses.

# backend/stockroom/routes/products.py
"""
Product management routes with multi-tenant support.

MULTI-TENANT: All product operations are scoped to the caller's company.
The company_id is derived from g.company_id (set by @require_company).

Every product in a response carries totalStock, stockByWarehouse and lowStock.
"""
from flask import Blueprint, request, g

from ..decorators import require_company
from ..models import Product
from ..services import products_service, tenant_service
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_product,
    require_non_empty_patch,
)

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={
        "sku", "name", "description", "category", "unit_price", "cost_price",
        "barcode", "qr_code", "reorder_level",
    },
    required_on_create={"sku", "name"},
)

products_bp = Blueprint("products", __name__, url_prefix="/products")


@products_bp.get("")
@require_company
def list_products():
    """List all products ordered by name."""
    return {"products": products_service.list_products(g.company_id)}


@products_bp.get("/low-stock")
@require_company
def list_low_stock():
    """Products whose total stock is at or below their reorder level."""
    return {"products": products_service.list_low_stock_products(g.company_id)}


@products_bp.post("")
@require_company
def create_product_route():
    """Create a new product (409 if the SKU is taken in this company)."""
    payload = request.get_json(silent=True) or {}

    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
    enforce_rules_product(patch)

    created = products_service.create_product(company_id=g.company_id, patch=patch)
    return created, 201


@products_bp.get("/<int:product_id>")
@require_company
def get_product(product_id: int):
    return products_service.get_product(g.company_id, product_id)


@products_bp.put("/<int:product_id>")
@require_company
def update_product_route(product_id: int):
    """Partially update a product; only fields present in the body change."""
    tenant_service.get_scoped(Product, product_id, g.company_id, label="product")
    payload = request.get_json(silent=True) or {}

    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
    require_non_empty_patch(patch)
    enforce_rules_product(patch)

    return products_service.update_product(company_id=g.company_id, product_id=product_id, patch=patch)


@products_bp.delete("/<int:product_id>")
@require_company
def delete_product_route(product_id: int):
    """
    Delete a product and its stock rows.

    409 if the product appears on a sales order.
    """
    products_service.delete_product(company_id=g.company_id, product_id=product_id)
    return {"ok": True}, 200
