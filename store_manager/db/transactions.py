"""Transaction helpers for multi-statement writes.

Every unit that touches stock runs inside :func:`atomic`: the session commits
once at the end, and any exception rolls the whole unit back before it
propagates. Nothing here retries; callers resubmit failed requests.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.errors import InternalError

logger = logging.getLogger(__name__)


def lock_for_update(stmt):
    """Apply row-level locking to a select.

    SQLite ignores ``FOR UPDATE``; there the conditional ``UPDATE`` statements
    in the callers are what keep concurrent writers honest. Rows already in
    the identity map are overwritten with what the database returns.
    """

    return stmt.with_for_update().execution_options(populate_existing=True)


@contextmanager
def atomic(db: Session, *, operation: str) -> Iterator[Session]:
    try:
        yield db
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception(
            "transaction.failed",
            extra={"extra_data": {"operation": operation}},
        )
        raise InternalError(f"{operation} failed and was rolled back") from exc
    except Exception:
        db.rollback()
        raise
