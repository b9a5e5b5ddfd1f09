# Overview: Service-layer operations for session; encapsulates business logic and database work.

"""
Session Identity Service

A session is the logical actor (guest, kiosk, cashier, ...) that owns a cart
and a financial history. It is identified by the natural key
(type, custom_code, origin), and clients call POST /sessions on every visit:
the first call creates the row, later calls only touch updated_at.

CONCURRENCY: the upsert is a single INSERT ... ON CONFLICT DO UPDATE on
PostgreSQL and SQLite, so two clients racing on the same key both get the
same row and neither sees a unique-constraint error.
"""

from __future__ import annotations

from sqlalchemy import func
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Session
from ..time_utils import utcnow
from ..validation import ValidationError, NotFoundError
from .concurrency import run_with_retry


# Dialects with native INSERT ... ON CONFLICT support
_UPSERT_INSERTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}

_IDENTITY_FIELDS = ("type", "custom_code", "origin")


def _clean_identity(type, custom_code, origin) -> dict:
    identity = {}
    for name, value in zip(_IDENTITY_FIELDS, (type, custom_code, origin)):
        if value is None or not str(value).strip():
            raise ValidationError(f"{name} is required")
        identity[name] = str(value).strip()
    return identity


def _upsert_native(insert, identity: dict) -> None:
    stmt = insert(Session.__table__).values(**identity)
    stmt = stmt.on_conflict_do_update(
        index_elements=list(_IDENTITY_FIELDS),
        set_={"updated_at": func.now()},
    )
    db.session.execute(stmt)


def _upsert_portable(identity: dict) -> None:
    existing = db.session.query(Session).filter_by(**identity).first()
    if existing is not None:
        existing.updated_at = utcnow()
        return

    # Another writer may insert the same key between our SELECT and INSERT;
    # the savepoint lets us absorb that and keep the outer transaction.
    try:
        with db.session.begin_nested():
            db.session.add(Session(**identity))
    except IntegrityError:
        existing = db.session.query(Session).filter_by(**identity).one()
        existing.updated_at = utcnow()


def upsert_session(*, type: str, custom_code: str, origin: str) -> Session:
    """
    Create the session for (type, custom_code, origin) or refresh its updated_at.

    Idempotent: repeated calls with the same key return the same id and never
    create a second row.
    """
    identity = _clean_identity(type, custom_code, origin)

    def _op():
        insert = _UPSERT_INSERTS.get(db.session.get_bind().dialect.name)
        if insert is not None:
            _upsert_native(insert, identity)
        else:
            _upsert_portable(identity)
        db.session.commit()
        return db.session.query(Session).filter_by(**identity).one()

    return run_with_retry(_op)


def get_session(session_id: int) -> Session:
    session = db.session.get(Session, session_id)
    if session is None:
        raise NotFoundError(f"Session {session_id} not found")
    return session
