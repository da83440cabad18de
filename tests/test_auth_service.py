import unittest
from datetime import datetime, timedelta, timezone

from jose import jwt
from sqlmodel import Session

from signalcast.auth.service import (
    authenticate_user,
    create_access_token,
    register_user,
    verify_token,
)
from signalcast.core.database import engine
from signalcast.core.errors import AuthError, ConflictError, ValidationError
from signalcast.core.settings import settings
from signalcast.models.User import RegisterRequest

from .helpers import reset_database


class TestIdentityService(unittest.TestCase):

    def setUp(self):
        reset_database()
        self.session = Session(engine)

    def tearDown(self):
        self.session.close()

    def _register(self, email="u@x.com", password="password1"):
        return register_user(self.session, RegisterRequest(identifier=email, secret=password))

    def test_register_login_verify_round_trip(self):
        self._register()
        user = authenticate_user(self.session, "u@x.com", "password1")
        identity = verify_token(create_access_token(user))
        self.assertEqual(identity.email, "u@x.com")
        self.assertEqual(identity.user_id, user.id)

    def test_password_is_stored_hashed(self):
        user = self._register()
        self.assertNotEqual(user.password_hash, "password1")
        self.assertTrue(user.password_hash.startswith("$argon2"))

    def test_register_requires_both_fields(self):
        with self.assertRaises(ValidationError):
            register_user(self.session, RegisterRequest(identifier="u@x.com"))
        with self.assertRaises(ValidationError):
            register_user(self.session, RegisterRequest(secret="password1"))

    def test_register_rejects_short_password(self):
        with self.assertRaises(ValidationError) as ctx:
            self._register(password="short")
        self.assertIn("too short", ctx.exception.detail)

    def test_register_rejects_duplicate(self):
        self._register()
        with self.assertRaises(ConflictError):
            self._register()

    def test_mixed_case_email_logs_in_as_registered(self):
        user = self._register(email="u@X.com")
        self.assertEqual(user.email, "u@x.com")
        self.assertEqual(authenticate_user(self.session, "u@X.com", "password1").id, user.id)
        self.assertEqual(authenticate_user(self.session, "U@x.com", "password1").id, user.id)
        with self.assertRaises(ConflictError):
            self._register(email="U@X.COM")

    def test_login_unknown_account(self):
        with self.assertRaises(AuthError) as ctx:
            authenticate_user(self.session, "nobody@x.com", "password1")
        self.assertEqual(ctx.exception.status_code, 401)
        self.assertIn("does not exist", ctx.exception.detail)

    def test_login_bad_credentials(self):
        self._register()
        with self.assertRaises(AuthError) as ctx:
            authenticate_user(self.session, "u@x.com", "wrong-password")
        self.assertEqual(ctx.exception.detail, "Invalid credentials.")

    def test_token_expires_after_seven_days(self):
        user = self._register()
        issued = datetime.now(timezone.utc) - timedelta(days=7, minutes=1)
        with self.assertRaises(AuthError) as ctx:
            verify_token(create_access_token(user, issued_at=issued))
        self.assertEqual(ctx.exception.detail, "Token has expired")

    def test_token_still_valid_before_expiry(self):
        user = self._register()
        issued = datetime.now(timezone.utc) - timedelta(days=6, hours=23)
        self.assertEqual(verify_token(create_access_token(user, issued_at=issued)).email, "u@x.com")

    def test_token_carries_seven_day_expiry(self):
        user = self._register()
        claims = jwt.get_unverified_claims(create_access_token(user))
        self.assertEqual(claims["exp"] - claims["iat"], 7 * 24 * 3600)

    def test_verify_rejects_missing_malformed_and_forged(self):
        for token in (None, "", "not-a-jwt"):
            with self.assertRaises(AuthError):
                verify_token(token)

        now = int(datetime.now(timezone.utc).timestamp())
        forged = jwt.encode(
            {"sub": "u@x.com", "iat": now, "exp": now + 3600},
            "some-other-secret",
            algorithm=settings.ALGORITHM,
        )
        with self.assertRaises(AuthError) as ctx:
            verify_token(forged)
        self.assertEqual(ctx.exception.detail, "Invalid token")

    def test_verify_rejects_token_without_subject(self):
        now = int(datetime.now(timezone.utc).timestamp())
        token = jwt.encode({"iat": now, "exp": now + 3600}, settings.JWT_SECRET, algorithm=settings.ALGORITHM)
        with self.assertRaises(AuthError):
            verify_token(token)


if __name__ == "__main__":
    unittest.main()
