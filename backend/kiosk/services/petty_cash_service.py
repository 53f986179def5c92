# Overview: Service-layer operations for the petty cash journal.

from __future__ import annotations

import logging

from sqlalchemy import func

from ..errors import ValidationError
from ..extensions import db
from ..models import PettyCashEntry
from ..models.petty_cash import (
    MANUAL_PETTY_CASH_TYPES,
    PETTY_CASH_EXPENSE,
    PETTY_CASH_INCOME,
    PETTY_CASH_PENDING_INCOME,
    VALID_PETTY_CASH_TYPES,
)
from ..validation import coerce_amount_cents, require_text
from kiosk.time_utils import end_of_range, parse_iso_datetime, utcnow

logger = logging.getLogger(__name__)

"""
Petty Cash Journal Invariants

- Append-only: entries are never updated or deleted (enforced on the model).
- Ledger-driven entries are written inside the same DB transaction as the
  ledger operation they record; append_entry() only flushes.
- Net balance is INCOME minus EXPENSE. PENDING_INCOME is money owed to the
  till, reported on its own and never netted in until it is collected
  (collection writes a separate INCOME entry).
"""


def append_entry(
    *,
    amount_cents: int,
    description: str,
    type: str,
    related_order_id: int | None = None,
    related_user_id: int | None = None,
    created_by_user_id: int | None = None,
) -> PettyCashEntry:
    """Append one journal row to the current transaction (no commit)."""
    if type not in VALID_PETTY_CASH_TYPES:
        raise ValidationError(f"type must be one of: {', '.join(VALID_PETTY_CASH_TYPES)}")
    if amount_cents <= 0:
        raise ValidationError("Petty cash amount must be positive")

    entry = PettyCashEntry(
        amount_cents=amount_cents,
        description=description[:255],
        type=type,
        related_order_id=related_order_id,
        related_user_id=related_user_id,
        created_by_user_id=created_by_user_id,
        created_at=utcnow(),
    )
    db.session.add(entry)
    db.session.flush()
    return entry


def record_manual_entry(*, payload: dict, actor_user_id: int) -> PettyCashEntry:
    """Administrator-entered movement. Only INCOME and EXPENSE can be recorded by hand."""
    amount_cents = coerce_amount_cents(payload.get("amount_cents"))
    description = require_text(payload, "description", max_length=255)
    entry_type = payload.get("type")
    if entry_type not in MANUAL_PETTY_CASH_TYPES:
        raise ValidationError("type must be either INCOME or EXPENSE")

    entry = append_entry(
        amount_cents=amount_cents,
        description=description,
        type=entry_type,
        created_by_user_id=actor_user_id,
    )
    db.session.commit()

    logger.info("Manual petty cash %s of %s cents by user %s", entry_type, amount_cents, actor_user_id)
    return entry


def summarize(entries) -> dict:
    totals = {t: 0 for t in VALID_PETTY_CASH_TYPES}
    for entry in entries:
        totals[entry.type] += entry.amount_cents
    return {
        "total_income_cents": totals[PETTY_CASH_INCOME],
        "total_expense_cents": totals[PETTY_CASH_EXPENSE],
        "pending_income_cents": totals[PETTY_CASH_PENDING_INCOME],
        "net_balance_cents": totals[PETTY_CASH_INCOME] - totals[PETTY_CASH_EXPENSE],
        "transaction_count": len(entries),
    }


def list_entries() -> dict:
    entries = (
        db.session.query(PettyCashEntry)
        .order_by(PettyCashEntry.created_at.desc(), PettyCashEntry.id.desc())
        .all()
    )
    summary = summarize(entries)
    return {
        "transactions": [e.to_dict() for e in entries],
        "total_cents": summary["net_balance_cents"],
        "summary": summary,
    }


def history(
    *,
    start_date: str | None = None,
    end_date: str | None = None,
    entry_type: str | None = None,
    search: str | None = None,
) -> dict:
    """
    Filtered journal view.

    - start_date / end_date: ISO dates or datetimes; a bare end date
      includes that whole day
    - entry_type: one of the journal types, or ALL / empty for no filter
    - search: case-insensitive substring match on description
    """
    try:
        start_dt = parse_iso_datetime(start_date)
        end_bound = end_of_range(end_date)
    except ValueError:
        raise ValidationError("start_date and end_date must be ISO-8601 dates")

    query = db.session.query(PettyCashEntry)

    if start_dt is not None:
        query = query.filter(PettyCashEntry.created_at >= start_dt)
    if end_bound is not None:
        query = query.filter(PettyCashEntry.created_at < end_bound)

    if entry_type and entry_type != "ALL":
        if entry_type not in VALID_PETTY_CASH_TYPES:
            raise ValidationError(f"type must be ALL or one of: {', '.join(VALID_PETTY_CASH_TYPES)}")
        query = query.filter(PettyCashEntry.type == entry_type)

    if search:
        query = query.filter(func.lower(PettyCashEntry.description).contains(search.strip().lower()))

    entries = query.order_by(PettyCashEntry.created_at.desc(), PettyCashEntry.id.desc()).all()

    return {
        "transactions": [e.to_dict() for e in entries],
        "summary": summarize(entries),
    }
