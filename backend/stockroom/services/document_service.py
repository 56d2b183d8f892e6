# Overview: Atomic allocation of human-readable order numbers.

from __future__ import annotations

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import OrderSequence
from ..time_utils import utctoday

ORDER_PREFIX = "SO"


def order_number_prefix(day=None) -> str:
    day = day or utctoday()
    return f"{ORDER_PREFIX}-{day.strftime('%Y%m%d')}"


def generate_order_number(company_id: int, *, day=None, pad: int = 3) -> str:
    """
    Allocate the next order number for a company, e.g. "SO-20240521-001".

    Numbering restarts each UTC day. Runs inside the caller's transaction: the
    UPDATE on the sequence row holds it until the order itself is committed, so
    two concurrent orders never draw the same suffix.
    """
    prefix = order_number_prefix(day)
    stmt = (
        update(OrderSequence)
        .where(OrderSequence.company_id == company_id, OrderSequence.prefix == prefix)
        .values(next_number=OrderSequence.next_number + 1)
    )

    result = db.session.execute(stmt)
    if result.rowcount:
        next_num = _allocated(company_id, prefix)
    else:
        try:
            # Savepoint so a lost first-use race does not discard the caller's work
            with db.session.begin_nested():
                db.session.add(OrderSequence(company_id=company_id, prefix=prefix, next_number=2))
            next_num = 1
        except IntegrityError:
            result = db.session.execute(stmt)
            if not result.rowcount:
                raise
            next_num = _allocated(company_id, prefix)

    return f"{prefix}-{next_num:0{pad}d}"


def _allocated(company_id: int, prefix: str) -> int:
    current = (
        db.session.query(OrderSequence.next_number)
        .filter_by(company_id=company_id, prefix=prefix)
        .scalar()
    )
    return current - 1
