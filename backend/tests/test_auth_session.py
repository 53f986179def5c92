"""
Authentication and session tests.

Verifies:
- Password rules and bcrypt verification
- Phone-keyed accounts reject duplicates
- Admin login verifies the password, not just the phone number
- Tokens expire and can be revoked
"""

from datetime import timedelta

import pytest

from kiosk.errors import AuthenticationError, ConflictError, ValidationError
from kiosk.extensions import db
from kiosk.models import SessionToken
from kiosk.models.users import ROLE_ADMIN, ROLE_USER
from kiosk.services import auth_service, session_service
from kiosk.services.auth_service import PasswordValidationError
from kiosk.time_utils import utcnow

TEST_PASSWORD = "Password123"


class TestPasswords:

    @pytest.mark.parametrize("password", ["short1", "allletters", "12345678", None])
    def test_weak_passwords_rejected(self, password):
        with pytest.raises(PasswordValidationError):
            auth_service.validate_password_strength(password)

    @pytest.mark.parametrize("password", ["a1" + "x" * 80, "a1" + "\u00e9" * 36])
    def test_passwords_over_bcrypt_limit_rejected(self, password):
        with pytest.raises(PasswordValidationError) as exc_info:
            auth_service.validate_password_strength(password)
        assert "72 bytes" in str(exc_info.value)

    def test_password_at_bcrypt_limit_accepted(self):
        auth_service.validate_password_strength("a1" + "x" * 70)

    def test_hash_round_trip(self):
        hashed = auth_service.hash_password("Password123")
        assert hashed != "Password123"
        assert auth_service.verify_password("Password123", hashed)
        assert not auth_service.verify_password("Password124", hashed)

    def test_malformed_hash_is_a_mismatch(self):
        assert auth_service.verify_password("Password123", "not-a-bcrypt-hash") is False


class TestCreateUser:

    def test_creates_customer(self, db_session):
        user = auth_service.create_user(name="Layla", phone="+964 770-123-4567", password="Password123", country="Iraq")

        assert user.phone == "+9647701234567"
        assert user.role == ROLE_USER
        assert user.balance_cents == 0
        assert user.outstanding_debt_cents == 0

    def test_duplicate_phone(self, db_session):
        auth_service.create_user(name="Layla", phone="07701234567", password="Password123", country="Iraq")
        with pytest.raises(ConflictError):
            auth_service.create_user(name="Other", phone="0770 123 4567", password="Password123", country="Syria")

    @pytest.mark.parametrize("kwargs", [
        {"name": "X", "phone": "123", "password": "Password123", "country": "Iraq"},
        {"name": "X", "phone": "07701234567", "password": "Password123", "country": "Egypt"},
        {"name": " ", "phone": "07701234567", "password": "Password123", "country": "Iraq"},
        {"name": "X", "phone": "07701234567", "password": "weak", "country": "Iraq"},
        {"name": 42, "phone": "07701234567", "password": "Password123", "country": "Iraq"},
        {"name": "X", "phone": "07701234567", "password": "a1" + "x" * 80, "country": "Iraq"},
    ])
    def test_invalid_input(self, db_session, kwargs):
        with pytest.raises(ValidationError):
            auth_service.create_user(**kwargs)


class TestAuthenticate:

    def test_valid_credentials(self, db_session, customer):
        user = auth_service.authenticate(customer.phone, TEST_PASSWORD)
        assert user.id == customer.id
        assert user.last_login_at is not None

    def test_wrong_password(self, db_session, customer):
        with pytest.raises(AuthenticationError) as exc_info:
            auth_service.authenticate(customer.phone, "Wrong12345")
        assert str(exc_info.value) == "Invalid credentials"

    def test_unknown_phone_has_same_message(self, db_session):
        with pytest.raises(AuthenticationError) as exc_info:
            auth_service.authenticate("07709999999", TEST_PASSWORD)
        assert str(exc_info.value) == "Invalid credentials"

    @pytest.mark.parametrize("password", [12345678, ["Password123"]])
    def test_non_string_password(self, db_session, customer, password):
        with pytest.raises(ValidationError):
            auth_service.authenticate(customer.phone, password)

    def test_admin_login_rejects_customers(self, db_session, customer):
        with pytest.raises(AuthenticationError):
            auth_service.authenticate(customer.phone, TEST_PASSWORD, require_role=ROLE_ADMIN)

    def test_admin_login_still_checks_password(self, db_session, admin):
        with pytest.raises(AuthenticationError):
            auth_service.authenticate(admin.phone, "Wrong12345", require_role=ROLE_ADMIN)

        assert auth_service.authenticate(admin.phone, TEST_PASSWORD, require_role=ROLE_ADMIN).id == admin.id


class TestSessions:

    def test_token_is_stored_hashed(self, db_session, customer):
        session, token = session_service.create_session(user_id=customer.id)
        assert session.token_hash == session_service.hash_token(token)
        assert token not in session.token_hash

    def test_validate_returns_current_user(self, db_session, customer):
        _, token = session_service.create_session(user_id=customer.id)

        context = session_service.validate_session(token)

        assert context.current_user.id == customer.id
        assert context.current_user.country == "Iraq"
        assert context.current_user.is_admin is False

    def test_unknown_token(self, db_session):
        assert session_service.validate_session("deadbeef") is None

    def test_expired_token(self, db_session, customer):
        session, token = session_service.create_session(user_id=customer.id)
        session.expires_at = utcnow() - timedelta(minutes=1)
        db.session.commit()

        assert session_service.validate_session(token) is None

    def test_default_lifetime_is_seven_days(self, db_session, customer):
        session, _ = session_service.create_session(user_id=customer.id)
        lifetime = session.expires_at - session.created_at
        assert lifetime == timedelta(days=7)

    def test_revoke(self, db_session, customer):
        _, token = session_service.create_session(user_id=customer.id)

        assert session_service.revoke_session(token) is True
        assert session_service.validate_session(token) is None
        assert session_service.revoke_session(token) is False

    def test_cleanup_removes_old_expired_sessions(self, db_session, customer):
        old, _ = session_service.create_session(user_id=customer.id)
        old.created_at = utcnow() - timedelta(days=60)
        old.expires_at = utcnow() - timedelta(days=53)
        session_service.create_session(user_id=customer.id)
        db.session.commit()

        assert session_service.cleanup_expired_sessions() == 1
        assert db.session.query(SessionToken).count() == 1

    def test_cleanup_command(self, app, db_session, customer):
        old, _ = session_service.create_session(user_id=customer.id)
        old.created_at = utcnow() - timedelta(days=45)
        old.is_revoked = True
        session_service.create_session(user_id=customer.id)
        db.session.commit()

        result = app.test_cli_runner().invoke(args=["system", "cleanup-sessions"])

        assert result.exit_code == 0
        assert "Removed 1 stale sessions" in result.output
        assert db.session.query(SessionToken).count() == 1
