# Overview: Transaction scoping, row locking and retry for ledger writes.

from __future__ import annotations

import logging
import time
from contextlib import contextmanager

from flask import current_app
from sqlalchemy.exc import OperationalError

from ..errors import InfrastructureError
from ..extensions import db

logger = logging.getLogger(__name__)


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    Stock decrements carry their own guard in the UPDATE, so correctness
    never depends on the lock being honored.
    """
    return query.with_for_update()


@contextmanager
def ledger_transaction():
    """
    Single commit/abort boundary for a multi-row ledger mutation.

    Yields the session every sub-step must use. Commits when the block exits
    normally; rolls back and re-raises on any exception, so no partial write
    survives a failed operation.
    """
    session = db.session
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise


def _default_attempts() -> int:
    try:
        return int(current_app.config.get("LEDGER_RETRY_ATTEMPTS", 3))
    except RuntimeError:
        return 3


def run_with_retry(func, *, attempts: int | None = None, backoff_base: float = 0.1):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, lock timeouts, dropped connections).
    Business errors raised by func propagate on the first attempt. When the
    retry budget is spent the last OperationalError is re-raised as
    InfrastructureError.
    """
    if attempts is None:
        attempts = _default_attempts()
    for attempt in range(attempts):
        try:
            return func()
        except OperationalError as exc:
            db.session.rollback()
            if attempt >= attempts - 1:
                raise InfrastructureError(
                    "ledger store unavailable",
                    details={"attempts": attempts, "cause": exc.__class__.__name__},
                ) from exc
            logger.warning(
                "Retrying ledger operation after %s (attempt %d/%d)",
                exc.__class__.__name__, attempt + 1, attempts,
            )
            time.sleep(backoff_base * (2 ** attempt))
    raise InfrastructureError("ledger operation was not attempted", details={"attempts": attempts})
