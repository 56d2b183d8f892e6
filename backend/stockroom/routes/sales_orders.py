# Overview: Flask API routes for sales orders; parses input and returns JSON responses.

# backend/stockroom/routes/sales_orders.py
"""
Sales order routes.

Lifecycle:
- POST creates a pending order with its items
- PUT is a free-form partial patch (customerId, status, orderDate, dueDate, notes)
- POST /<id>/fulfill ships a confirmed order from one warehouse, deducting stock

MULTI-TENANT: orders, customers, products and warehouses are all checked
against g.company_id; out-of-scope ids answer 404.
"""
from flask import Blueprint, request, g

from ..decorators import require_company
from ..errors import InvalidArgumentError
from ..models import SalesOrder
from ..services import sales_order_service
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    validate_order_items,
    enforce_rules_sales_order,
    require_non_empty_patch,
)

ORDER_CREATE_POLICY = ModelValidationPolicy(
    writable_fields={"customer_id", "order_date", "due_date", "notes"},
    required_on_create={"order_date"},
)

ORDER_UPDATE_POLICY = ModelValidationPolicy(
    writable_fields={"customer_id", "status", "order_date", "due_date", "notes"},
)

sales_orders_bp = Blueprint("sales_orders", __name__, url_prefix="/sales-orders")


@sales_orders_bp.post("")
@require_company
def create_sales_order_route():
    """
    Create a sales order.

    Body: {customerId?, orderDate, dueDate?, notes?, items: [{productId, quantity, unitPrice}]}
    """
    payload = dict(request.get_json(silent=True) or {})
    items = validate_order_items(payload.pop("items", None))
    patch = validate_payload(model=SalesOrder, payload=payload, policy=ORDER_CREATE_POLICY, partial=False)

    order = sales_order_service.create_sales_order(company_id=g.company_id, patch=patch, items=items)
    return order.to_dict(include_items=True), 201


@sales_orders_bp.get("")
@require_company
def list_sales_orders():
    """Orders newest first, without items."""
    orders = sales_order_service.list_sales_orders(g.company_id)
    return {"orders": [o.to_dict() for o in orders]}


@sales_orders_bp.get("/<int:order_id>")
@require_company
def get_sales_order(order_id: int):
    order = sales_order_service.get_sales_order(g.company_id, order_id)
    return order.to_dict(include_items=True)


@sales_orders_bp.put("/<int:order_id>")
@require_company
def update_sales_order_route(order_id: int):
    sales_order_service.get_sales_order(g.company_id, order_id)
    payload = request.get_json(silent=True) or {}

    patch = validate_payload(model=SalesOrder, payload=payload, policy=ORDER_UPDATE_POLICY, partial=True)
    require_non_empty_patch(patch)
    enforce_rules_sales_order(patch)

    order = sales_order_service.update_sales_order(company_id=g.company_id, order_id=order_id, patch=patch)
    return order.to_dict(include_items=True)


@sales_orders_bp.post("/<int:order_id>/fulfill")
@require_company
def fulfill_sales_order_route(order_id: int):
    """
    Ship a confirmed order: one 'out' movement per item, then status=shipped.

    409 unless the order is confirmed.
    """
    sales_order_service.get_sales_order(g.company_id, order_id)
    payload = request.get_json(silent=True) or {}
    warehouse_id = payload.get("warehouseId")
    if not isinstance(warehouse_id, int) or isinstance(warehouse_id, bool):
        raise InvalidArgumentError("warehouseId must be an integer")

    order = sales_order_service.fulfill_sales_order(
        company_id=g.company_id, order_id=order_id, warehouse_id=warehouse_id
    )
    return order.to_dict(include_items=True)
