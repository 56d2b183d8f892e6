from __future__ import annotations

from ..extensions import db
from stockroom.money import money_json
from stockroom.time_utils import to_utc_z

MOVEMENT_TYPES = ("in", "out", "adjustment")


class Product(db.Model):
    """
    Product master data.

    MULTI-TENANT: Products are scoped to companies via company_id.
    SKUs are unique within a company, not globally.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.UniqueConstraint("company_id", "sku", name="uq_products_company_sku"),
        db.Index("ix_products_company_name", "company_id", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True)

    sku = db.Column(db.String(64), nullable=False)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    category = db.Column(db.String(128), nullable=True)

    unit_price = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    cost_price = db.Column(db.Numeric(12, 2), nullable=False, default=0)

    barcode = db.Column(db.String(128), nullable=True)
    qr_code = db.Column(db.String(255), nullable=True)

    # Low-stock threshold: flagged when total on-hand <= reorder_level
    reorder_level = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    company = db.relationship("Company", backref=db.backref("products", lazy=True))

    def __repr__(self) -> str:
        return f"<Product id={self.id} sku={self.sku!r} company_id={self.company_id}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "companyId": self.company_id,
            "sku": self.sku,
            "name": self.name,
            "description": self.description,
            "category": self.category,
            "unitPrice": money_json(self.unit_price),
            "costPrice": money_json(self.cost_price),
            "barcode": self.barcode,
            "qrCode": self.qr_code,
            "reorderLevel": self.reorder_level,
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }


class StockLevel(db.Model):
    """
    Materialized on-hand quantity for one (product, warehouse) pair.

    INVARIANT: quantity equals the clamped-at-zero fold of the pair's
    StockMovement rows (see stock_service.replay_stock_level). It is only ever
    written by the upsert in stock_service, never by read-modify-write.
    """
    __tablename__ = "stock_levels"
    __table_args__ = (
        db.UniqueConstraint("product_id", "warehouse_id", name="uq_stock_levels_product_warehouse"),
        db.CheckConstraint("quantity >= 0", name="ck_stock_levels_quantity_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)
    warehouse_id = db.Column(db.Integer, db.ForeignKey("warehouses.id", ondelete="CASCADE"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False, default=0)
    reserved_quantity = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    product = db.relationship("Product")
    warehouse = db.relationship("Warehouse")

    def __repr__(self) -> str:
        return f"<StockLevel product_id={self.product_id} warehouse_id={self.warehouse_id} quantity={self.quantity}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "productId": self.product_id,
            "warehouseId": self.warehouse_id,
            "quantity": self.quantity,
            "reservedQuantity": self.reserved_quantity,
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }


class StockMovement(db.Model):
    """
    Append-only stock movement log (the audit trail).

    quantity semantics by movement_type:
    - in / out: positive amount moved (direction comes from the type)
    - adjustment: signed delta exactly as requested, even when the level clamped

    Rows are never updated or deleted by application code.
    """
    __tablename__ = "stock_movements"
    __table_args__ = (
        db.Index("ix_stock_movements_pair_created", "product_id", "warehouse_id", "created_at"),
        db.Index("ix_stock_movements_reference", "reference_type", "reference_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)
    warehouse_id = db.Column(db.Integer, db.ForeignKey("warehouses.id", ondelete="CASCADE"), nullable=False, index=True)

    movement_type = db.Column(db.String(16), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)

    reference_type = db.Column(db.String(32), nullable=True)
    reference_id = db.Column(db.Integer, nullable=True)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    product = db.relationship("Product")
    warehouse = db.relationship("Warehouse")

    @property
    def delta(self) -> int:
        """Signed effect of this movement on the stock level (before clamping)."""
        if self.movement_type == "in":
            return self.quantity
        if self.movement_type == "out":
            return -self.quantity
        return self.quantity

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "productId": self.product_id,
            "warehouseId": self.warehouse_id,
            "movementType": self.movement_type,
            "quantity": self.quantity,
            "referenceType": self.reference_type,
            "referenceId": self.reference_id,
            "notes": self.notes,
            "createdAt": to_utc_z(self.created_at),
        }
