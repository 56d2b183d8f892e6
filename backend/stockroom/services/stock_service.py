# Overview: Service-layer operations for the stock ledger; encapsulates business logic and database work.

# backend/stockroom/services/stock_service.py
"""
Stock Ledger Invariants (authoritative)

Two tables:
- stock_levels: materialized on-hand quantity per (product, warehouse)
- stock_movements: append-only log of every change

Clamp policy:
- A level never goes below zero. Applying delta d to level q yields max(0, q + d).
- The log stores what was requested (adjustments keep the raw signed delta),
  so a clamped write is visible as a movement larger than the level change.

Replay invariant:
- For every pair, stock_levels.quantity == fold(max(0, acc + delta), movements, 0)
  over the pair's movements in id order. replay_stock_level() computes that fold
  and find_ledger_drift() reports pairs where the two disagree.

Write protocol:
- The level is written with one INSERT ... ON CONFLICT DO UPDATE whose SET clause
  computes the clamped value from the row's current quantity. There is no
  read-then-write window, so concurrent writers to the same pair cannot lose
  updates.
- Movement insert and level upsert share one transaction; a failure in either
  rolls back both.
"""

from __future__ import annotations

import logging

from sqlalchemy import case, func

from ..extensions import db
from ..errors import InternalError
from ..models import Product, StockLevel, StockMovement, Warehouse
from .concurrency import atomic, run_with_retry
from .tenant_service import get_scoped

logger = logging.getLogger(__name__)

MANUAL_REFERENCE = "manual"


def movement_delta(movement_type: str, quantity: int) -> int:
    """Signed level change for a movement: 'out' subtracts, 'in' and 'adjustment' add."""
    if movement_type == "out":
        return -quantity
    return quantity


def clamp_quantity(current: int, delta: int) -> int:
    return max(0, current + delta)


def _ensure_pair_in_company(product_id: int, warehouse_id: int, company_id: int) -> tuple[Product, Warehouse]:
    product = get_scoped(Product, product_id, company_id, label="product")
    warehouse = get_scoped(Warehouse, warehouse_id, company_id, label="warehouse")
    return product, warehouse


def _upsert_insert():
    if db.engine.dialect.name == "postgresql":
        from sqlalchemy.dialects.postgresql import insert
    else:
        from sqlalchemy.dialects.sqlite import insert
    return insert(StockLevel.__table__)


def _apply_delta(product_id: int, warehouse_id: int, delta: int) -> StockLevel:
    """
    Apply a signed delta to a stock level, clamped at zero, in the current transaction.

    Creates the row on first movement (starting from 0), otherwise updates it in
    place with a single conditional expression.
    """
    table = StockLevel.__table__
    clamped = case(
        (table.c.quantity + delta < 0, 0),
        else_=table.c.quantity + delta,
    )

    stmt = _upsert_insert().values(
        product_id=product_id,
        warehouse_id=warehouse_id,
        quantity=clamp_quantity(0, delta),
        reserved_quantity=0,
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=[table.c.product_id, table.c.warehouse_id],
        set_={"quantity": clamped, "updated_at": func.now()},
    )
    db.session.execute(stmt)

    level = (
        db.session.query(StockLevel)
        .filter_by(product_id=product_id, warehouse_id=warehouse_id)
        .populate_existing()
        .first()
    )
    if level is None:
        raise InternalError("failed to update stock level")
    return level


def _record_movement_inner(
    *,
    product_id: int,
    warehouse_id: int,
    movement_type: str,
    quantity: int,
    reference_type: str | None = None,
    reference_id: int | None = None,
    notes: str | None = None,
) -> tuple[StockMovement, StockLevel]:
    """Core movement logic without ownership checks, retry, or commit.

    Called by record_stock_movement() and by sales order fulfillment, which
    runs several of these inside its own transaction.
    """
    movement = StockMovement(
        product_id=product_id,
        warehouse_id=warehouse_id,
        movement_type=movement_type,
        quantity=quantity,
        reference_type=reference_type,
        reference_id=reference_id,
        notes=notes,
    )
    db.session.add(movement)
    db.session.flush()
    if movement.id is None:
        raise InternalError("failed to record stock movement")

    level = _apply_delta(product_id, warehouse_id, movement_delta(movement_type, quantity))
    return movement, level


def adjust_stock(
    *,
    company_id: int,
    product_id: int,
    warehouse_id: int,
    delta: int,
    notes: str | None = None,
) -> StockLevel:
    """
    Apply a signed manual adjustment to one stock level.

    The level is clamped at zero; the logged movement keeps the raw delta.
    Returns the resulting StockLevel.
    """
    _ensure_pair_in_company(product_id, warehouse_id, company_id)

    def _op():
        with atomic():
            level = _apply_delta(product_id, warehouse_id, delta)
            db.session.add(StockMovement(
                product_id=product_id,
                warehouse_id=warehouse_id,
                movement_type="adjustment",
                quantity=delta,
                reference_type=MANUAL_REFERENCE,
                notes=notes,
            ))
            db.session.flush()
        return level

    level = run_with_retry(_op)
    logger.info(
        "Adjusted stock product=%s warehouse=%s delta=%s -> quantity=%s",
        product_id, warehouse_id, delta, level.quantity,
    )
    return level


def record_stock_movement(
    *,
    company_id: int,
    product_id: int,
    warehouse_id: int,
    movement_type: str,
    quantity: int,
    reference_type: str | None = None,
    reference_id: int | None = None,
    notes: str | None = None,
) -> StockMovement:
    """
    Record an in / out / adjustment movement and update the stock level.

    'in' adds quantity, 'out' subtracts it, 'adjustment' applies quantity as a
    signed delta. Same clamp policy as adjust_stock().
    """
    _ensure_pair_in_company(product_id, warehouse_id, company_id)

    def _op():
        with atomic():
            movement, _ = _record_movement_inner(
                product_id=product_id,
                warehouse_id=warehouse_id,
                movement_type=movement_type,
                quantity=quantity,
                reference_type=reference_type,
                reference_id=reference_id,
                notes=notes,
            )
        return movement

    movement = run_with_retry(_op)
    logger.info(
        "Recorded %s movement product=%s warehouse=%s quantity=%s",
        movement_type, product_id, warehouse_id, quantity,
    )
    return movement


def list_stock_movements(*, company_id: int, limit: int = 100) -> list[dict]:
    """Latest movements for a company, newest first, with display fields joined."""
    rows = (
        db.session.query(StockMovement, Product.name, Product.sku, Warehouse.name)
        .join(Product, StockMovement.product_id == Product.id)
        .join(Warehouse, StockMovement.warehouse_id == Warehouse.id)
        .filter(Product.company_id == company_id)
        .order_by(StockMovement.created_at.desc(), StockMovement.id.desc())
        .limit(limit)
        .all()
    )

    result = []
    for movement, product_name, product_sku, warehouse_name in rows:
        data = movement.to_dict()
        data["productName"] = product_name
        data["productSku"] = product_sku
        data["warehouseName"] = warehouse_name
        result.append(data)
    return result


def get_stock_by_warehouse(product_ids: list[int]) -> dict[int, list[dict]]:
    """Per-warehouse stock rows for a set of products, keyed by product id."""
    by_product: dict[int, list[dict]] = {pid: [] for pid in product_ids}
    if not product_ids:
        return by_product

    rows = (
        db.session.query(StockLevel, Warehouse.name)
        .join(Warehouse, StockLevel.warehouse_id == Warehouse.id)
        .filter(StockLevel.product_id.in_(product_ids))
        .order_by(Warehouse.name.asc(), Warehouse.id.asc())
        .all()
    )
    for level, warehouse_name in rows:
        by_product[level.product_id].append({
            "warehouseId": level.warehouse_id,
            "warehouseName": warehouse_name,
            "quantity": level.quantity,
            "reservedQuantity": level.reserved_quantity,
        })
    return by_product


def replay_stock_level(product_id: int, warehouse_id: int) -> int:
    """Recompute a pair's level by folding its movement log with the clamp policy."""
    movements = (
        db.session.query(StockMovement.movement_type, StockMovement.quantity)
        .filter_by(product_id=product_id, warehouse_id=warehouse_id)
        .order_by(StockMovement.id.asc())
        .all()
    )
    quantity = 0
    for movement_type, amount in movements:
        quantity = clamp_quantity(quantity, movement_delta(movement_type, amount))
    return quantity


def find_ledger_drift(company_id: int | None = None) -> list[dict]:
    """
    Compare every materialized stock level against its replayed movement log.

    Returns one entry per mismatching pair; an empty list means the ledger is
    consistent. Pairs with movements but no level row count as level 0.
    """
    pairs_query = (
        db.session.query(StockMovement.product_id, StockMovement.warehouse_id)
        .join(Product, StockMovement.product_id == Product.id)
        .distinct()
    )
    levels_query = db.session.query(StockLevel).join(Product, StockLevel.product_id == Product.id)
    if company_id is not None:
        pairs_query = pairs_query.filter(Product.company_id == company_id)
        levels_query = levels_query.filter(Product.company_id == company_id)

    levels = {(lvl.product_id, lvl.warehouse_id): lvl.quantity for lvl in levels_query.all()}
    pairs = set(levels) | {(p, w) for p, w in pairs_query.all()}

    drift = []
    for product_id, warehouse_id in sorted(pairs):
        expected = replay_stock_level(product_id, warehouse_id)
        actual = levels.get((product_id, warehouse_id), 0)
        if expected != actual:
            drift.append({
                "productId": product_id,
                "warehouseId": warehouse_id,
                "expected": expected,
                "actual": actual,
            })
    return drift
