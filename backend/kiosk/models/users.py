from __future__ import annotations

from ..extensions import db
from kiosk.time_utils import to_utc_z

ROLE_USER = "USER"
ROLE_ADMIN = "ADMIN"
VALID_ROLES = (ROLE_USER, ROLE_ADMIN)

COUNTRY_IRAQ = "Iraq"
COUNTRY_SYRIA = "Syria"
VALID_COUNTRIES = (COUNTRY_IRAQ, COUNTRY_SYRIA)


class User(db.Model):
    """
    Customer or administrator account, and the head of that account's ledger.

    Phone number is the identity key. Balance and debt are integer cents and
    are only written by ledger_service, inside a locked transaction.

    INVARIANTS:
    - balance_cents >= 0 (a purchase may drive it to exactly 0, never below)
    - outstanding_debt_cents >= 0 (shortfall beyond the balance lands here)
    """
    __tablename__ = "users"
    __table_args__ = (
        db.CheckConstraint("balance_cents >= 0", name="ck_users_balance_non_negative"),
        db.CheckConstraint("outstanding_debt_cents >= 0", name="ck_users_debt_non_negative"),
        db.Index("ix_users_country_role", "country", "role"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    phone = db.Column(db.String(16), nullable=False, unique=True, index=True)
    name = db.Column(db.String(128), nullable=False)

    # Bcrypt hashed password
    password_hash = db.Column(db.String(255), nullable=False)

    country = db.Column(db.String(16), nullable=False)
    role = db.Column(db.String(16), nullable=False, default=ROLE_USER, index=True)

    balance_cents = db.Column(db.Integer, nullable=False, default=0)
    outstanding_debt_cents = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    last_login_at = db.Column(db.DateTime(timezone=True), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    __mapper_args__ = {"version_id_col": version_id}

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "phone": self.phone,
            "name": self.name,
            "country": self.country,
            "role": self.role,
            "balance_cents": self.balance_cents,
            "outstanding_debt_cents": self.outstanding_debt_cents,
            "created_at": to_utc_z(self.created_at),
            "last_login_at": to_utc_z(self.last_login_at) if self.last_login_at else None,
        }


class SessionToken(db.Model):
    """
    Bearer session token.

    Tokens stored hashed (SHA-256); the plaintext only ever leaves the
    server once, in the login response.
    """
    __tablename__ = "session_tokens"
    __table_args__ = (
        db.Index("ix_session_tokens_user_active", "user_id", "is_revoked"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    # Token hash (never store plaintext tokens!)
    token_hash = db.Column(db.String(255), nullable=False, unique=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    last_used_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    expires_at = db.Column(db.DateTime(timezone=True), nullable=False, index=True)

    is_revoked = db.Column(db.Boolean, nullable=False, default=False, index=True)
    revoked_at = db.Column(db.DateTime(timezone=True), nullable=True)

    user_agent = db.Column(db.String(255), nullable=True)
    ip_address = db.Column(db.String(64), nullable=True)

    user = db.relationship("User", backref=db.backref("sessions", lazy=True, cascade="all, delete-orphan"))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "created_at": to_utc_z(self.created_at),
            "last_used_at": to_utc_z(self.last_used_at),
            "expires_at": to_utc_z(self.expires_at),
            "is_revoked": self.is_revoked,
        }
