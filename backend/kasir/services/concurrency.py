# Overview: Locking and retry helpers shared by every service that writes tenant data.

from __future__ import annotations

import time

from sqlalchemy import text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db
from ..models import Vendor


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


def _begin_immediate_if_sqlite() -> None:
    """
    Take SQLite's database write lock up front.

    Only issued when the DBAPI connection is not already inside a
    transaction; pending writes in the session keep their own transaction.
    """
    if db.engine.dialect.name != "sqlite":
        return
    dbapi_conn = db.session.connection().connection.dbapi_connection
    if not dbapi_conn.in_transaction:
        db.session.execute(text("BEGIN IMMEDIATE"))


def acquire_vendor_lock(vendor_id: int) -> Vendor | None:
    """
    Serialize writers of one vendor's catalog and history.

    Every check-then-act sequence on tenant data (stock check + decrement,
    category in-use check + delete, saved order read + delete) runs after
    this call and before the session commits.
    """
    _begin_immediate_if_sqlite()
    return lock_for_update(db.session.query(Vendor).filter_by(id=vendor_id)).first()


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, locks) and StaleDataError
    (optimistic locking conflicts). Any other exception rolls the session
    back and propagates unchanged.
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
        except Exception:
            db.session.rollback()
            raise
    if last_exc:
        raise last_exc
