# Overview: Company-scoped CRUD for warehouses, customers and suppliers.

from __future__ import annotations

import logging

from ..extensions import db
from ..models import Customer, SalesOrder, StockLevel, StockMovement, Supplier, Warehouse
from .concurrency import atomic
from .tenant_service import get_scoped, scoped_query

logger = logging.getLogger(__name__)

WAREHOUSE_MUTABLE_FIELDS = {"name", "address"}
PARTY_MUTABLE_FIELDS = {"name", "email", "phone", "address"}

# model -> (label used in NotFound messages, fields a patch may set)
DIRECTORY_MODELS = {
    Warehouse: ("warehouse", WAREHOUSE_MUTABLE_FIELDS),
    Customer: ("customer", PARTY_MUTABLE_FIELDS),
    Supplier: ("supplier", PARTY_MUTABLE_FIELDS),
}


def _apply_patch(entity, patch: dict, fields: set[str]) -> None:
    for k, v in patch.items():
        if k in fields:
            setattr(entity, k, v)


def list_entries(model, company_id: int) -> list:
    return (
        scoped_query(model, company_id)
        .order_by(model.name.asc(), model.id.asc())
        .all()
    )


def get_entry(model, company_id: int, entry_id: int):
    label, _ = DIRECTORY_MODELS[model]
    return get_scoped(model, entry_id, company_id, label=label)


def create_entry(model, *, company_id: int, patch: dict):
    label, fields = DIRECTORY_MODELS[model]
    with atomic():
        entry = model(company_id=company_id)
        _apply_patch(entry, patch, fields)
        db.session.add(entry)
        db.session.flush()

    logger.info("Created %s id=%s company=%s", label, entry.id, company_id)
    return entry


def update_entry(model, *, company_id: int, entry_id: int, patch: dict):
    label, fields = DIRECTORY_MODELS[model]
    entry = get_scoped(model, entry_id, company_id, label=label)
    with atomic():
        _apply_patch(entry, patch, fields)
        db.session.flush()
    return entry


def delete_entry(model, *, company_id: int, entry_id: int) -> None:
    """
    Hard-delete a directory entry.

    Warehouses take their stock rows and movement history with them. Orders
    that pointed at a deleted customer keep their rows with customer_id unset.
    """
    label, _ = DIRECTORY_MODELS[model]
    entry = get_scoped(model, entry_id, company_id, label=label)

    with atomic():
        if model is Warehouse:
            db.session.query(StockMovement).filter_by(warehouse_id=entry.id).delete(synchronize_session=False)
            db.session.query(StockLevel).filter_by(warehouse_id=entry.id).delete(synchronize_session=False)
        elif model is Customer:
            db.session.query(SalesOrder).filter_by(customer_id=entry.id).update(
                {SalesOrder.customer_id: None}, synchronize_session=False
            )
        db.session.delete(entry)

    logger.info("Deleted %s id=%s company=%s", label, entry_id, company_id)
