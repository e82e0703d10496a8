"""Small write helpers giving insert-if-absent semantics on unique keys."""

from __future__ import annotations

import logging
from typing import Any

import sqlalchemy as sa
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from gamebox.db.session import Base
from gamebox.services.result import is_unique_violation

logger = logging.getLogger(__name__)


def insert_once(db: Session, model: type[Base], **values: Any) -> bool:
    """Insert a row and commit; return False when it already existed.

    Duplicate-key errors are the store's way of saying the row is present, so
    they are absorbed. Any other integrity error propagates.
    """
    try:
        db.execute(sa.insert(model).values(**values))
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        if is_unique_violation(exc):
            logger.debug("Duplicate %s insert ignored: %s", model.__tablename__, values)
            return False
        raise
    return True


def delete_where(db: Session, model: type[Base], *criteria: Any) -> int:
    """Delete matching rows and commit; return the number of rows removed."""
    result = db.execute(sa.delete(model).where(*criteria))
    db.commit()
    return int(result.rowcount or 0)
