"""
Multi-Tenant Service: Company Directory and Scoping Helpers

WHY: Centralize tenant resolution and validation for reuse across services
and routes. Every request is scoped to one company, and cross-company access
is denied as "not found".

SECURITY INVARIANTS:
1. Every request past @require_company has g.company_id set
2. IDs from client input are validated against g.company_id before use
3. Out-of-scope IDs fail exactly like unknown IDs (NotFoundError)
4. Cross-tenant access attempts are logged

USAGE:
    from stockroom.services.tenant_service import get_scoped, resolve_company

    company_id = resolve_company(user_id)
    product = get_scoped(Product, product_id, company_id, label="product")
"""

import logging

from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..errors import AlreadyExistsError, NotFoundError
from ..models import Company, CompanyUser
from .concurrency import atomic, lock_for_update

logger = logging.getLogger(__name__)

COMPANY_FIELDS = {"name", "email", "phone", "address", "tax_number"}


def get_membership(user_id: str) -> CompanyUser | None:
    return db.session.query(CompanyUser).filter_by(user_id=user_id).first()


def resolve_company(user_id: str) -> int:
    """
    Map an authenticated user to their company id.

    Raises NotFoundError when the user is not linked to any company.
    """
    membership = get_membership(user_id)
    if membership is None:
        raise NotFoundError("user not associated with any company")
    return membership.company_id


def get_company(company_id: int) -> Company:
    company = db.session.get(Company, company_id)
    if company is None:
        raise NotFoundError("company not found")
    return company


def create_company(user_id: str, info: dict) -> Company:
    """
    Create a company and link the calling user to it as admin.

    Both rows are written in one transaction: a company without its admin is
    invalid. The unique constraint on company_users.user_id turns a concurrent
    second create by the same user into AlreadyExistsError; any other integrity
    failure propagates unchanged.
    """
    if get_membership(user_id) is not None:
        raise AlreadyExistsError("user is already part of a company")

    try:
        with atomic():
            company = Company(**{k: v for k, v in info.items() if k in COMPANY_FIELDS})
            db.session.add(company)
            db.session.flush()

            db.session.add(CompanyUser(company_id=company.id, user_id=user_id, role="admin"))
            db.session.flush()
    except IntegrityError:
        # only the user_id unique violation means "already linked"
        if get_membership(user_id) is None:
            raise
        raise AlreadyExistsError("user is already part of a company")

    logger.info("Created company id=%s for user %s", company.id, user_id)
    return company


def get_scoped(model, entity_id: int, company_id: int, *, label: str, lock: bool = False):
    """
    Load a company-owned row by id.

    Raises NotFoundError if the row does not exist or belongs to another
    company; the two cases are indistinguishable to the caller.
    """
    query = db.session.query(model).filter(model.id == entity_id)
    if lock:
        query = lock_for_update(query)
    row = query.first()

    if row is None:
        raise NotFoundError(f"{label} not found")

    if row.company_id != company_id:
        _log_cross_tenant_attempt(model.__tablename__, entity_id, company_id)
        raise NotFoundError(f"{label} not found")

    return row


def scoped_query(model, company_id: int):
    """Base query over a company-owned model, filtered to one tenant."""
    return db.session.query(model).filter(model.company_id == company_id)


def _log_cross_tenant_attempt(table: str, entity_id: int, company_id: int) -> None:
    logger.warning(
        "Cross-tenant access denied: %s id=%s requested by company %s",
        table,
        entity_id,
        company_id,
        extra={"event_type": "CROSS_TENANT_ACCESS_DENIED"},
    )
