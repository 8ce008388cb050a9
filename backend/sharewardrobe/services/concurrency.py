# Overview: Transaction boundaries, row locking and retry for the money/inventory paths.

from __future__ import annotations

import time
from contextlib import contextmanager

from sqlalchemy import text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE; unit_of_work(immediate=True)
    takes the database write lock up front instead.
    """
    return query.with_for_update()


def _begin_immediate(session) -> None:
    if session.get_bind().dialect.name == "sqlite":
        session.execute(text("BEGIN IMMEDIATE"))


@contextmanager
def unit_of_work(*, immediate: bool = False):
    """
    One all-or-nothing database transaction.

    Yields the session; every repository call inside the block must use it.
    Commits on normal exit, rolls back and re-raises on any exception.
    With immediate=True, SQLite serialises writers from the first statement
    so two checkouts cannot both read the same pre-decrement quantity.
    """
    session = db.session
    if immediate:
        _begin_immediate(session)
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, lock timeouts) and StaleDataError
    (optimistic locking conflicts). Business errors propagate immediately.
    """
    last_exc = None
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError) as exc:
            db.session.rollback()
            last_exc = exc
            if attempt >= attempts - 1:
                raise
            time.sleep(backoff_base * (2 ** attempt))
    if last_exc:
        raise last_exc
