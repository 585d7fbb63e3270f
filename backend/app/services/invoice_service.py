# Overview: Service-layer operations for invoice numbering; atomic counter allocation.

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import insert, select, update
from sqlalchemy.exc import IntegrityError

from ..errors import InfrastructureError
from ..extensions import db
from ..models import Setting
from ..models.settings import INVOICE_SEQUENCE_KEY
from app.time_utils import utcnow
from .concurrency import run_with_retry

logger = logging.getLogger(__name__)

INVOICE_PREFIX = "INV"
INVOICE_PAD = 5


def format_invoice_number(counter: int, year: int) -> str:
    """INV-{year}-{counter zero-padded to 5 digits}, e.g. INV-2025-00042."""
    return f"{INVOICE_PREFIX}-{year}-{counter:0{INVOICE_PAD}d}"


def _increment_sequence(conn) -> int | None:
    settings = Setting.__table__
    stmt = (
        update(settings)
        .where(settings.c.key == INVOICE_SEQUENCE_KEY)
        .values(value=settings.c.value + 1, updated_at=utcnow())
    )
    if conn.dialect.update_returning:
        row = conn.execute(stmt.returning(settings.c.value)).first()
        return int(row[0]) if row is not None else None

    # No RETURNING: the UPDATE holds the row lock until this connection
    # commits, so the follow-up read sees our own increment.
    result = conn.execute(stmt)
    if not result.rowcount:
        return None
    value = conn.execute(
        select(settings.c.value).where(settings.c.key == INVOICE_SEQUENCE_KEY)
    ).scalar_one()
    return int(value)


def allocate_invoice_sequence() -> int:
    """
    Atomically increment invoiceSequence and return the new value.

    Runs on its own connection and commits immediately, independent of any
    ledger transaction in progress: a number handed out here is consumed even
    if the sale that asked for it later aborts. Gaps are expected; duplicates
    are impossible because the increment is a single UPDATE on one row.
    """
    def _op() -> int:
        settings = Setting.__table__
        for _ in range(2):
            try:
                with db.engine.begin() as conn:
                    value = _increment_sequence(conn)
                    if value is not None:
                        return value
                    conn.execute(
                        insert(settings).values(
                            key=INVOICE_SEQUENCE_KEY, value=1, updated_at=utcnow()
                        )
                    )
                    return 1
            except IntegrityError:
                # Another caller created the row between our UPDATE and INSERT;
                # the next pass increments it.
                logger.info("Invoice sequence row created concurrently, retrying increment")
        raise InfrastructureError(
            "invoice sequence could not be allocated",
            details={"key": INVOICE_SEQUENCE_KEY},
        )

    return run_with_retry(_op)


def next_invoice_number(*, now: datetime | None = None) -> str:
    """
    Allocate the next invoice number.

    The year is the wall-clock year at call time; the counter itself never
    resets, so the first invoice of a new year continues the old sequence.
    """
    counter = allocate_invoice_sequence()
    year = (now or utcnow()).year
    return format_invoice_number(counter, year)
