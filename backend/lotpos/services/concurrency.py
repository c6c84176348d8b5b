# Overview: Transaction, locking and retry primitives shared by every mutating service.

from __future__ import annotations

import time
import zlib

from flask import current_app
from sqlalchemy import text
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE; there the write transaction
    is serialized by begin_write_transaction instead.
    """
    return query.with_for_update()


def begin_write_transaction() -> None:
    """
    Take the database write lock up front on SQLite.

    WHY: SQLite has no row locks. BEGIN IMMEDIATE makes the whole unit of
    work the single writer, which gives the same serialization that FOR
    UPDATE and advisory locks give on PostgreSQL.

    Call at the start of a unit of work. A transaction the session already
    opened (the token lookup in require_auth, a caller's reads) is committed
    first: pysqlite opens no real transaction for plain SELECTs, so without
    this the BEGIN would be skipped and concurrent writers would read the
    same invoice sequence.
    """
    if db.engine.dialect.name != "sqlite":
        return
    session = db.session()
    if session.in_transaction():
        session.commit()
    session.execute(text("BEGIN IMMEDIATE"))


def advisory_lock_key(name: str) -> int:
    """Stable signed 32-bit key for a named lock."""
    key = zlib.crc32(name.encode("utf-8"))
    return key - (1 << 32) if key >= (1 << 31) else key


def acquire_advisory_lock(name: str) -> None:
    """
    Acquire a transaction-scoped named lock.

    PostgreSQL: pg_advisory_xact_lock, released at commit/rollback.
    Other backends rely on begin_write_transaction plus row locks.
    """
    if db.engine.dialect.name == "postgresql":
        db.session.execute(
            text("SELECT pg_advisory_xact_lock(:key)"),
            {"key": advisory_lock_key(name)},
        )


def safe_rollback() -> None:
    """Roll back, tolerating a transaction that has already finished."""
    try:
        db.session.rollback()
    except SQLAlchemyError:
        current_app.logger.warning("Rollback failed; transaction already closed", exc_info=True)


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, busy database) and
    StaleDataError. Each retry starts from a rolled-back session.
    """
    last_exc = None
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError) as exc:
            safe_rollback()
            last_exc = exc
            if attempt >= attempts - 1:
                raise
            current_app.logger.warning(
                "Concurrency conflict, retrying (attempt %s of %s): %s",
                attempt + 1, attempts, exc,
            )
            time.sleep(backoff_base * (2 ** attempt))
    if last_exc:
        raise last_exc


def run_in_transaction(func, *, attempts: int | None = None, backoff_base: float = 0.1):
    """
    Run func as one unit of work and commit it.

    Concurrency failures are retried by run_with_retry. Any other exception
    rolls the session back before it propagates, so callers never observe
    partial effects.
    """
    if attempts is None:
        attempts = current_app.config.get("DB_RETRY_ATTEMPTS", 3)

    def _op():
        try:
            begin_write_transaction()
            result = func()
            db.session.commit()
            return result
        except (OperationalError, StaleDataError):
            raise
        except Exception:
            safe_rollback()
            raise

    return run_with_retry(_op, attempts=attempts, backoff_base=backoff_base)

