from __future__ import annotations

from sqlalchemy import event

from ..extensions import db
from kiosk.time_utils import to_utc_z, utcnow

PETTY_CASH_INCOME = "INCOME"
PETTY_CASH_EXPENSE = "EXPENSE"
PETTY_CASH_PENDING_INCOME = "PENDING_INCOME"

VALID_PETTY_CASH_TYPES = (PETTY_CASH_INCOME, PETTY_CASH_EXPENSE, PETTY_CASH_PENDING_INCOME)

# Types an administrator may record by hand; PENDING_INCOME only comes from checkout.
MANUAL_PETTY_CASH_TYPES = (PETTY_CASH_INCOME, PETTY_CASH_EXPENSE)


class PettyCashEntry(db.Model):
    """
    Petty cash journal row.

    Append-only audit trail: rows are never updated or deleted. Written in the
    same transaction as the ledger operation they record.
    """
    __tablename__ = "petty_cash_entries"
    __table_args__ = (
        db.CheckConstraint("amount_cents > 0", name="ck_petty_cash_amount_positive"),
        db.Index("ix_petty_cash_type_created", "type", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    amount_cents = db.Column(db.Integer, nullable=False)
    description = db.Column(db.String(255), nullable=False)
    type = db.Column(db.String(24), nullable=False, index=True)

    related_order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=True, index=True)
    related_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)
    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "amount_cents": self.amount_cents,
            "description": self.description,
            "type": self.type,
            "related_order_id": self.related_order_id,
            "related_user_id": self.related_user_id,
            "created_by_user_id": self.created_by_user_id,
            "created_at": to_utc_z(self.created_at),
        }


@event.listens_for(PettyCashEntry, "before_update")
def _reject_update(mapper, connection, target):
    raise ValueError("Petty cash entries are append-only and cannot be updated")


@event.listens_for(PettyCashEntry, "before_delete")
def _reject_delete(mapper, connection, target):
    raise ValueError("Petty cash entries are append-only and cannot be deleted")
