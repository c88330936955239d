"""
Feedline Backend - Auth Gate Unit Tests
=========================================

The gate must tag, never block: every bad credential becomes the anonymous
identity instead of an exception.
"""

from datetime import datetime, timedelta, timezone

import jwt
import pytest

from feedline.schemas.pipeline import ANONYMOUS
from feedline.services.auth_service import AuthGate, create_access_token

SECRET = "auth-gate-test-secret-0123456789abcdef"


@pytest.fixture
def gate():
    return AuthGate(SECRET)


def bearer(claims, secret=SECRET, algorithm="HS256"):
    return f"Bearer {create_access_token(claims, secret, algorithm)}"


class TestAuthGate:
    def test_valid_token_authenticates(self, gate):
        identity = gate.identify(bearer({"userId": "u-42", "email": "a@example.com"}))

        assert identity.authenticated is True
        assert identity.user_id == "u-42"
        assert identity.claims["email"] == "a@example.com"

    def test_sub_claim_used_when_user_id_missing(self, gate):
        identity = gate.identify(bearer({"sub": "u-7"}))
        assert identity.user_id == "u-7"

    def test_claims_are_strings(self, gate):
        identity = gate.identify(bearer({"userId": 12, "admin": True}))
        assert identity.user_id == "12"
        assert identity.claims == {"userId": "12", "admin": "True"}

    def test_scheme_is_case_insensitive(self, gate):
        header = bearer({"userId": "u-1"}).replace("Bearer", "bearer")
        assert gate.identify(header).authenticated is True

    @pytest.mark.parametrize(
        "header",
        [
            None,
            "",
            "Bearer",
            "Bearer ",
            "Basic dXNlcjpwYXNz",
            "Bearer not.a.jwt",
            "Token abc",
        ],
    )
    def test_missing_or_malformed_credentials_are_anonymous(self, gate, header):
        assert gate.identify(header) == ANONYMOUS

    def test_wrong_signature_is_anonymous(self, gate):
        header = bearer({"userId": "u-1"}, secret="another-secret-0123456789abcdefgh")
        assert gate.identify(header).authenticated is False

    def test_expired_token_is_anonymous(self, gate):
        expired = datetime.now(timezone.utc) - timedelta(minutes=5)
        assert gate.identify(bearer({"userId": "u-1", "exp": expired})).authenticated is False

    def test_token_without_user_claim_is_anonymous(self, gate):
        assert gate.identify(bearer({"role": "admin"})).authenticated is False

    def test_unexpected_algorithm_is_anonymous(self, gate):
        header = bearer({"userId": "u-1"}, algorithm="HS512")
        assert gate.identify(header).authenticated is False

    def test_unsigned_token_is_anonymous(self, gate):
        token = jwt.encode({"userId": "u-1"}, None, algorithm="none")
        assert gate.identify(f"Bearer {token}").authenticated is False

    def test_empty_secret_never_authenticates(self):
        header = bearer({"userId": "u-1"})
        assert AuthGate("").identify(header).authenticated is False
