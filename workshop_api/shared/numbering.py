"""Human-readable document numbers (ORC-2024-0001, OS-2024-0001)"""

import logging

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .timeutils import utcnow

logger = logging.getLogger(__name__)

NUMBERING_ATTEMPTS = 5


def next_document_number(db: Session, model, tenant_id: str, prefix: str) -> str:
    """
    Next sequential number for the tenant and the current year.

    The counter restarts every year. Numbers are zero padded to four digits so
    the string maximum is also the numeric maximum.
    """
    year_prefix = f"{prefix}-{utcnow().year}-"
    last = (
        db.query(func.max(model.number))
        .filter(model.tenant_id == tenant_id, model.number.like(f"{year_prefix}%"))
        .scalar()
    )
    sequence = int(last.rsplit("-", 1)[-1]) + 1 if last else 1
    return f"{year_prefix}{sequence:04d}"


def add_numbered(db: Session, record, prefix: str):
    """
    Add ``record`` under the next free number and flush it.

    Two transactions can read the same maximum. The one that loses hits the
    (tenant_id, number) unique constraint inside a savepoint and retries with
    a fresh maximum, leaving the rest of the caller's transaction intact.
    """
    model = type(record)
    for attempt in range(1, NUMBERING_ATTEMPTS + 1):
        record.number = next_document_number(db, model, record.tenant_id, prefix)
        try:
            with db.begin_nested():
                db.add(record)
                db.flush()
            return record
        except IntegrityError:
            if attempt == NUMBERING_ATTEMPTS:
                raise
            logger.warning(f"{model.__name__} number {record.number} taken concurrently, retrying")
