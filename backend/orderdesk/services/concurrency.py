# Overview: Service-layer operations for concurrency; transactional scope, row locks and retry.

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

    NOTE: SQLite ignores SELECT ... FOR UPDATE; transaction_scope takes the
    database write lock up front there instead.
    """
    return query.with_for_update()


@contextmanager
def transaction_scope():
    """
    One exclusive transactional scope on the shared session.

    - SQLite: BEGIN IMMEDIATE, so concurrent writers queue here instead of
      failing half way through
    - Commit when the block finishes, rollback on any exception
      (including interruption), then re-raise the original
    - The session is always closed, releasing its connection
    """
    session = db.session
    try:
        if db.engine.dialect.name == "sqlite":
            session.execute(text("BEGIN IMMEDIATE"))
        yield session
        session.commit()
    except BaseException:
        session.rollback()
        raise
    finally:
        session.close()


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, locks) and StaleDataError
    (optimistic locking conflicts). `func` must be safe to replay from the
    start; each attempt runs in a fresh transaction.
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
