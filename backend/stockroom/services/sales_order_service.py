# Overview: Service-layer operations for sales orders; numbering, totals, status changes and fulfillment.

from __future__ import annotations

import logging
from decimal import Decimal

from ..extensions import db
from ..errors import FailedPreconditionError, InternalError
from ..models import Customer, Product, SalesOrder, SalesOrderItem, Warehouse
from ..money import to_money
from .concurrency import atomic, begin_immediate, run_with_retry
from .document_service import generate_order_number
from .stock_service import _record_movement_inner
from .tenant_service import get_scoped, scoped_query

logger = logging.getLogger(__name__)

ORDER_MUTABLE_FIELDS = {"customer_id", "status", "order_date", "due_date", "notes"}

FULFILLABLE_STATUS = "confirmed"
SHIPPED_STATUS = "shipped"
ORDER_REFERENCE = "sales_order"


def apply_order_patch(order: SalesOrder, patch: dict) -> None:
    for k, v in patch.items():
        if k not in ORDER_MUTABLE_FIELDS:
            continue
        setattr(order, k, v)


def compute_totals(items: list[dict]) -> dict:
    """
    Order totals from validated line items.

    Tax and discount are not calculated; both are always zero.
    """
    subtotal = sum((to_money(i["unit_price"]) * i["quantity"] for i in items), Decimal("0"))
    subtotal = to_money(subtotal)
    zero = to_money(0)
    return {
        "subtotal": subtotal,
        "tax_amount": zero,
        "discount_amount": zero,
        "total_amount": subtotal,
    }


def create_sales_order(*, company_id: int, patch: dict, items: list[dict]) -> SalesOrder:
    """
    Create a pending sales order with its line items.

    Args:
        patch: validated header fields (customer_id, order_date, due_date, notes)
        items: output of validation.validate_order_items()

    Raises:
        NotFoundError: customer or a product is not in this company
    """
    customer_id = patch.get("customer_id")
    if customer_id is not None:
        get_scoped(Customer, customer_id, company_id, label="customer")
    for item in items:
        get_scoped(Product, item["product_id"], company_id, label="product")

    totals = compute_totals(items)

    def _op():
        with atomic():
            order = SalesOrder(
                company_id=company_id,
                order_number=generate_order_number(company_id),
                status="pending",
                **totals,
            )
            apply_order_patch(order, patch)
            db.session.add(order)
            db.session.flush()
            if order.id is None:
                raise InternalError("failed to create sales order")

            for item in items:
                db.session.add(SalesOrderItem(
                    sales_order_id=order.id,
                    product_id=item["product_id"],
                    quantity=item["quantity"],
                    unit_price=item["unit_price"],
                    total_price=to_money(item["unit_price"] * item["quantity"]),
                ))
            db.session.flush()
        return order

    order = run_with_retry(_op)
    logger.info(
        "Created sales order %s id=%s company=%s total=%s",
        order.order_number, order.id, company_id, order.total_amount,
    )
    return order


def list_sales_orders(company_id: int) -> list[SalesOrder]:
    return (
        scoped_query(SalesOrder, company_id)
        .order_by(SalesOrder.created_at.desc(), SalesOrder.id.desc())
        .all()
    )


def get_sales_order(company_id: int, order_id: int) -> SalesOrder:
    return get_scoped(SalesOrder, order_id, company_id, label="sales order")


def update_sales_order(*, company_id: int, order_id: int, patch: dict) -> SalesOrder:
    """Apply a validated partial patch to an order header."""
    order = get_scoped(SalesOrder, order_id, company_id, label="sales order")

    if patch.get("customer_id") is not None:
        get_scoped(Customer, patch["customer_id"], company_id, label="customer")

    previous_status = order.status
    with atomic():
        apply_order_patch(order, patch)
        db.session.flush()

    if order.status != previous_status:
        logger.info(
            "Sales order %s status %s -> %s",
            order.order_number, previous_status, order.status,
        )
    return order


def fulfill_sales_order(*, company_id: int, order_id: int, warehouse_id: int) -> SalesOrder:
    """
    Ship a confirmed order from one warehouse.

    Records one 'out' movement per line item and flips the order to shipped,
    all in a single transaction with the order row locked. A concurrent second
    fulfillment waits for the lock and then fails on the status check.

    Raises:
        NotFoundError: order or warehouse not in this company
        FailedPreconditionError: order status is not 'confirmed'
    """
    get_scoped(Warehouse, warehouse_id, company_id, label="warehouse")

    def _op():
        with atomic():
            begin_immediate()
            order = get_scoped(SalesOrder, order_id, company_id, label="sales order", lock=True)

            if order.status != FULFILLABLE_STATUS:
                raise FailedPreconditionError(
                    f"only confirmed orders can be fulfilled (status is {order.status})"
                )

            note = f"Fulfilled sales order {order.order_number}"
            for item in order.items:
                _record_movement_inner(
                    product_id=item.product_id,
                    warehouse_id=warehouse_id,
                    movement_type="out",
                    quantity=item.quantity,
                    reference_type=ORDER_REFERENCE,
                    reference_id=order.id,
                    notes=note,
                )

            order.status = SHIPPED_STATUS
            db.session.flush()
        return order

    order = run_with_retry(_op)
    logger.info(
        "Fulfilled sales order %s id=%s from warehouse=%s (%s items)",
        order.order_number, order.id, warehouse_id, len(order.items),
    )
    return order
