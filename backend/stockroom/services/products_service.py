# backend/stockroom/services/products_service.py
"""
Products Service with Multi-Tenant Support

MULTI-TENANT: All product operations are company-scoped.
- SKUs are unique within a company (checked up front, backed by a constraint)
- Reads attach live stock: totalStock, stockByWarehouse, lowStock
- Lookups outside the caller's company fail as NotFound
"""
from __future__ import annotations

import logging

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..errors import AlreadyExistsError, FailedPreconditionError
from ..models import Product, SalesOrderItem, StockLevel, StockMovement
from .concurrency import atomic
from .stock_service import get_stock_by_warehouse
from .tenant_service import get_scoped, scoped_query

logger = logging.getLogger(__name__)

PRODUCT_MUTABLE_FIELDS = {
    "sku", "name", "description", "category", "unit_price", "cost_price",
    "barcode", "qr_code", "reorder_level",
}


def apply_product_patch(p: Product, patch: dict) -> None:
    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        setattr(p, k, v)


def _with_stock(products: list[Product]) -> list[dict]:
    """Serialize products with their per-warehouse stock in one extra query."""
    stock = get_stock_by_warehouse([p.id for p in products])
    result = []
    for p in products:
        data = p.to_dict()
        rows = stock.get(p.id, [])
        total = sum(r["quantity"] for r in rows)
        data["totalStock"] = total
        data["stockByWarehouse"] = rows
        data["lowStock"] = total <= p.reorder_level
        result.append(data)
    return result


def _ensure_sku_free(company_id: int, sku: str, *, exclude_id: int | None = None) -> None:
    query = scoped_query(Product, company_id).filter(Product.sku == sku)
    if exclude_id is not None:
        query = query.filter(Product.id != exclude_id)
    if query.first() is not None:
        raise AlreadyExistsError(f"product with SKU {sku} already exists")


def list_products(company_id: int) -> list[dict]:
    products = (
        scoped_query(Product, company_id)
        .order_by(Product.name.asc(), Product.id.asc())
        .all()
    )
    return _with_stock(products)


def list_low_stock_products(company_id: int) -> list[dict]:
    """Products whose total on-hand quantity is at or below their reorder level."""
    totals = (
        db.session.query(StockLevel.product_id, func.sum(StockLevel.quantity).label("total"))
        .group_by(StockLevel.product_id)
        .subquery()
    )
    products = (
        scoped_query(Product, company_id)
        .outerjoin(totals, totals.c.product_id == Product.id)
        .filter(func.coalesce(totals.c.total, 0) <= Product.reorder_level)
        .order_by(Product.name.asc(), Product.id.asc())
        .all()
    )
    return _with_stock(products)


def get_product(company_id: int, product_id: int) -> dict:
    product = get_scoped(Product, product_id, company_id, label="product")
    return _with_stock([product])[0]


def create_product(*, company_id: int, patch: dict) -> dict:
    """
    Create a product from a validated patch dict.

    Raises:
        AlreadyExistsError: If the SKU is already used in this company
    """
    _ensure_sku_free(company_id, patch["sku"])

    try:
        with atomic():
            product = Product(company_id=company_id)
            apply_product_patch(product, patch)
            db.session.add(product)
            db.session.flush()
    except IntegrityError:
        raise AlreadyExistsError(f"product with SKU {patch['sku']} already exists")

    logger.info("Created product id=%s sku=%s company=%s", product.id, product.sku, company_id)
    return _with_stock([product])[0]


def update_product(*, company_id: int, product_id: int, patch: dict) -> dict:
    product = get_scoped(Product, product_id, company_id, label="product")

    if "sku" in patch and patch["sku"] != product.sku:
        _ensure_sku_free(company_id, patch["sku"], exclude_id=product.id)

    try:
        with atomic():
            apply_product_patch(product, patch)
            db.session.flush()
    except IntegrityError:
        raise AlreadyExistsError(f"product with SKU {patch.get('sku')} already exists")

    return _with_stock([product])[0]


def delete_product(*, company_id: int, product_id: int) -> None:
    """
    Hard-delete a product together with its stock rows and movement history.

    Products referenced by sales order items cannot be deleted.
    """
    product = get_scoped(Product, product_id, company_id, label="product")

    in_orders = db.session.query(SalesOrderItem.id).filter_by(product_id=product.id).first()
    if in_orders is not None:
        raise FailedPreconditionError("product is referenced by sales orders")

    with atomic():
        db.session.query(StockMovement).filter_by(product_id=product.id).delete(synchronize_session=False)
        db.session.query(StockLevel).filter_by(product_id=product.id).delete(synchronize_session=False)
        db.session.delete(product)

    logger.info("Deleted product id=%s company=%s", product_id, company_id)
