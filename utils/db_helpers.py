"""
Database query helpers shared by the services.

Usage
-----
In any service function::

    from utils.db_helpers import get_or_raise, lock_for_update, utc_now

    # Fetch a row or raise NotFoundError (mapped to 404 by the façade)
    expense = get_or_raise(Expense, expense_id)

    # Same, but take a row-level lock for the rest of the transaction
    startup = lock_for_update(Startup, startup_id)
"""
from datetime import datetime, timezone

from extensions import db
from services.exceptions import NotFoundError


def utc_now():
    """Naive UTC timestamp, matching the column defaults on every model."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def get_or_none(model, record_id):
    """Fetch a single record by primary key, or ``None``."""
    if record_id is None:
        return None
    return db.session.get(model, record_id)


def get_or_raise(model, record_id, entity=None):
    """Like ``get_or_none`` but raises ``NotFoundError`` if nothing is found."""
    obj = get_or_none(model, record_id)
    if obj is None:
        raise NotFoundError(entity or model.__name__, record_id)
    return obj


def lock_query(model, record_id):
    return (
        db.session.query(model)
        .filter(model.id == record_id)
        .with_for_update()
        .populate_existing()
    )


def lock_for_update(model, record_id, entity=None):
    """Fetch *record_id* with ``SELECT ... FOR UPDATE``.

    The lock is held until the surrounding transaction commits or rolls back.
    SQLite ignores the clause; PostgreSQL and MySQL serialise concurrent
    writers on the row.
    """
    obj = lock_query(model, record_id).first()
    if obj is None:
        raise NotFoundError(entity or model.__name__, record_id)
    return obj
