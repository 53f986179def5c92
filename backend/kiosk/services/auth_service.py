# Overview: Service-layer operations for auth; encapsulates business logic and database work.

"""
Authentication Service

Accounts are keyed by phone number and protected by a bcrypt password.
Customers and administrators authenticate the same way: the phone number
alone never grants a session, for either role.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor 12)
- Minimum 8 characters, at least one letter and one digit
- At most 72 bytes once UTF-8 encoded (bcrypt input limit)
- Session tokens managed separately (see session_service.py)
- Failed logins do not reveal whether the phone number exists
"""

import logging
import re

import bcrypt
from sqlalchemy.exc import IntegrityError

from ..errors import AuthenticationError, ConflictError, ValidationError
from ..extensions import db
from ..models import User
from ..models.users import ROLE_ADMIN, ROLE_USER
from ..validation import normalize_phone, validate_country
from kiosk.time_utils import utcnow

logger = logging.getLogger(__name__)

BCRYPT_MAX_PASSWORD_BYTES = 72


class PasswordValidationError(ValidationError):
    """Raised when password doesn't meet strength requirements."""


def validate_password_strength(password: str) -> None:
    """
    Validate password meets strength requirements.

    Requirements:
    - Minimum 8 characters
    - At least one letter
    - At least one digit
    - No more than 72 bytes in UTF-8

    Raises PasswordValidationError if requirements not met.
    """
    if not isinstance(password, str) or len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")

    if len(password.encode("utf-8")) > BCRYPT_MAX_PASSWORD_BYTES:
        raise PasswordValidationError(f"Password cannot be longer than {BCRYPT_MAX_PASSWORD_BYTES} bytes")

    if not re.search(r'[A-Za-z]', password):
        raise PasswordValidationError("Password must contain at least one letter")

    if not re.search(r'\d', password):
        raise PasswordValidationError("Password must contain at least one digit")


def hash_password(password: str) -> str:
    """
    Hash password using bcrypt with cost factor 12.

    Password is validated for strength before hashing.
    """
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=12)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')  # Store as string in database


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify password against bcrypt hash.

    bcrypt.checkpw() is timing-safe. A malformed stored hash counts as a
    mismatch rather than an error.
    """
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def create_user(
    *,
    name: str,
    phone: str,
    password: str,
    country: str,
    role: str = ROLE_USER,
) -> User:
    """
    Create new account with bcrypt password hashing.

    Raises:
        ValidationError: bad phone, country, name, or weak password
        ConflictError: phone already registered
    """
    phone = normalize_phone(phone)
    validate_country(country)
    if name is not None and not isinstance(name, str):
        raise ValidationError("name must be a string")
    name = (name or "").strip()
    if not name:
        raise ValidationError("name is required")
    if role not in (ROLE_USER, ROLE_ADMIN):
        raise ValidationError("role must be USER or ADMIN")

    if db.session.query(User).filter_by(phone=phone).first():
        raise ConflictError("User with this phone number already exists")

    user = User(
        name=name[:128],
        phone=phone,
        password_hash=hash_password(password),
        country=country,
        role=role,
        balance_cents=0,
        outstanding_debt_cents=0,
    )

    db.session.add(user)
    try:
        db.session.commit()
    except IntegrityError:
        # Lost a race against a concurrent registration for the same phone
        db.session.rollback()
        raise ConflictError("User with this phone number already exists")

    logger.info("Created %s account %s", role, user.id)
    return user


def authenticate(phone: str, password: str, *, require_role: str | None = None) -> User:
    """
    Authenticate by phone and password.

    require_role=ROLE_ADMIN restricts the login to administrators; the
    password is still verified.

    Raises AuthenticationError on any failure, with the same message whether
    the account is missing, the password is wrong, or the role does not match.
    """
    if not phone or not password:
        raise ValidationError("phone and password are required")
    if not isinstance(password, str):
        raise ValidationError("password must be a string")

    try:
        phone = normalize_phone(phone)
    except ValidationError:
        raise AuthenticationError("Invalid credentials")

    user = db.session.query(User).filter_by(phone=phone).first()

    if not user or not verify_password(password, user.password_hash):
        raise AuthenticationError("Invalid credentials")

    if require_role is not None and user.role != require_role:
        logger.warning("Rejected %s login for account %s with role %s", require_role, user.id, user.role)
        raise AuthenticationError("Invalid credentials")

    user.last_login_at = utcnow()
    db.session.commit()
    return user
