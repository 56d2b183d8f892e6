from __future__ import annotations

from ..extensions import db
from stockroom.money import money_json
from stockroom.time_utils import to_utc_z

ORDER_STATUSES = ("pending", "confirmed", "shipped", "delivered", "cancelled")


class SalesOrder(db.Model):
    """
    Sales order document.

    Lifecycle: pending -> confirmed -> shipped -> delivered, or cancelled.
    Only confirmed orders can be fulfilled; fulfillment is the single path that
    also writes to the stock ledger.
    """
    __tablename__ = "sales_orders"
    __table_args__ = (
        db.UniqueConstraint("company_id", "order_number", name="uq_sales_orders_company_number"),
        db.Index("ix_sales_orders_company_status_created", "company_id", "status", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True)

    # Human-readable number, e.g. "SO-20240521-001"
    order_number = db.Column(db.String(64), nullable=False)

    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id", ondelete="SET NULL"), nullable=True, index=True)
    status = db.Column(db.String(16), nullable=False, default="pending", index=True)

    order_date = db.Column(db.DateTime(timezone=True), nullable=False)
    due_date = db.Column(db.DateTime(timezone=True), nullable=True)

    subtotal = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    tax_amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    discount_amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    total_amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)

    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    customer = db.relationship("Customer")
    items = db.relationship(
        "SalesOrderItem",
        backref="sales_order",
        order_by="SalesOrderItem.id",
        lazy=True,
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<SalesOrder id={self.id} number={self.order_number!r} status={self.status}>"

    def to_dict(self, *, include_items: bool = False) -> dict:
        data = {
            "id": self.id,
            "companyId": self.company_id,
            "orderNumber": self.order_number,
            "customerId": self.customer_id,
            "customerName": self.customer.name if self.customer is not None else None,
            "status": self.status,
            "orderDate": to_utc_z(self.order_date),
            "dueDate": to_utc_z(self.due_date) if self.due_date else None,
            "subtotal": money_json(self.subtotal),
            "taxAmount": money_json(self.tax_amount),
            "discountAmount": money_json(self.discount_amount),
            "totalAmount": money_json(self.total_amount),
            "notes": self.notes,
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data


class SalesOrderItem(db.Model):
    """Line item on a sales order; product name/sku are joined for display."""
    __tablename__ = "sales_order_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    sales_order_id = db.Column(
        db.Integer, db.ForeignKey("sales_orders.id", ondelete="CASCADE"), nullable=False, index=True
    )
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price = db.Column(db.Numeric(12, 2), nullable=False)
    total_price = db.Column(db.Numeric(12, 2), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "salesOrderId": self.sales_order_id,
            "productId": self.product_id,
            "productName": self.product.name if self.product is not None else "",
            "productSku": self.product.sku if self.product is not None else "",
            "quantity": self.quantity,
            "unitPrice": money_json(self.unit_price),
            "totalPrice": money_json(self.total_price),
            "createdAt": to_utc_z(self.created_at),
        }


class OrderSequence(db.Model):
    """
    Atomic per-company, per-prefix order number allocator.

    One row per (company, "SO-YYYYMMDD"); next_number is incremented with a
    single UPDATE so concurrent order creation never reuses a suffix.
    """
    __tablename__ = "order_sequences"
    __table_args__ = (
        db.UniqueConstraint("company_id", "prefix", name="uq_order_sequences_company_prefix"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True)
    prefix = db.Column(db.String(32), nullable=False)
    next_number = db.Column(db.Integer, nullable=False, default=1)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "companyId": self.company_id,
            "prefix": self.prefix,
            "nextNumber": self.next_number,
            "updatedAt": to_utc_z(self.updated_at),
        }
