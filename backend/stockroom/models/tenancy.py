from __future__ import annotations

from ..extensions import db
from stockroom.time_utils import to_utc_z

COMPANY_ROLES = ("admin", "manager", "staff")


class Company(db.Model):
    """
    Multi-tenant root: every tenant is a Company.

    All warehouses, products, parties and orders carry company_id. No data may
    cross company boundaries.
    """
    __tablename__ = "companies"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), nullable=False)
    phone = db.Column(db.String(64), nullable=True)
    address = db.Column(db.Text, nullable=True)
    tax_number = db.Column(db.String(64), nullable=True)

    subscription_status = db.Column(db.String(32), nullable=False, default="trial")
    subscription_plan = db.Column(db.String(32), nullable=False, default="basic")

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<Company id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "address": self.address,
            "taxNumber": self.tax_number,
            "subscriptionStatus": self.subscription_status,
            "subscriptionPlan": self.subscription_plan,
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }


class CompanyUser(db.Model):
    """
    Links an external identity to exactly one company.

    user_id is the subject of the bearer token (an opaque string issued by the
    identity provider). The unique constraint on user_id is what makes
    "one company per user" hold under concurrent company creation.
    """
    __tablename__ = "company_users"
    __table_args__ = (
        db.UniqueConstraint("user_id", name="uq_company_users_user"),
        db.Index("ix_company_users_company", "company_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id", ondelete="CASCADE"), nullable=False)
    user_id = db.Column(db.String(128), nullable=False)
    role = db.Column(db.String(16), nullable=False, default="staff")
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    company = db.relationship("Company", backref=db.backref("members", lazy=True))

    def __repr__(self) -> str:
        return f"<CompanyUser user_id={self.user_id!r} company_id={self.company_id} role={self.role}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "companyId": self.company_id,
            "userId": self.user_id,
            "role": self.role,
            "createdAt": to_utc_z(self.created_at),
        }


class Warehouse(db.Model):
    __tablename__ = "warehouses"
    __table_args__ = (
        db.Index("ix_warehouses_company_name", "company_id", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True)
    name = db.Column(db.String(255), nullable=False)
    address = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    company = db.relationship("Company", backref=db.backref("warehouses", lazy=True))

    def __repr__(self) -> str:
        return f"<Warehouse id={self.id} name={self.name!r} company_id={self.company_id}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "companyId": self.company_id,
            "name": self.name,
            "address": self.address,
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }
