# Overview: Service-layer operations for concurrency; encapsulates business logic and database work.

from __future__ import annotations

import time

from sqlalchemy import text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db


# Namespace for pg_advisory_xact_lock(int, int) so session keys never collide
# with other advisory lock users of the same database.
SESSION_LOCK_NAMESPACE = 7301


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


def acquire_session_lock(session_id: int) -> None:
    """
    Serialize work on one session's cart for the rest of the transaction.

    PostgreSQL: transaction-scoped advisory lock, released on commit/rollback.
    SQLite: writers are already serialized by the database lock; a second
    checkout that read the same cart fails its writes with OperationalError
    or StaleDataError (ProductPrice version check) and is retried by
    run_with_retry against the cleared cart.
    """
    if db.engine.dialect.name == "postgresql":
        db.session.execute(
            text("SELECT pg_advisory_xact_lock(:ns, :key)"),
            {"ns": SESSION_LOCK_NAMESPACE, "key": int(session_id)},
        )


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, locks) and StaleDataError
    (optimistic locking conflicts). Any other failure rolls the session back
    before propagating, so no partial writes stay pending in the session.
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
