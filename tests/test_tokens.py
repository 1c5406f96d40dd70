"""Tests for the token service."""

from datetime import UTC, datetime, timedelta

import pytest
from jose import jwt

from src.exceptions import InvalidTokenError, TokenExpiredError, UnauthenticatedError
from src.services.auth import TokenService, get_password_hash, verify_password

SECRET = "test-secret"  # noqa: S105


@pytest.fixture
def tokens():
    return TokenService(secret=SECRET, algorithm="HS256", lifetime=timedelta(days=5))


class TestTokenService:
    """Tests for issuing and validating tokens."""

    def test_round_trip(self, tokens):
        assert tokens.validate(tokens.issue(42)) == 42

    def test_claims(self, tokens):
        now = datetime.now(UTC).replace(microsecond=0)
        payload = jwt.decode(tokens.issue(7, now=now), SECRET, algorithms=["HS256"])
        assert payload["sub"] == "7"
        assert payload["iat"] == int(now.timestamp())
        assert payload["exp"] == int((now + timedelta(days=5)).timestamp())

    def test_expired_token(self, tokens):
        issued = datetime.now(UTC) - timedelta(days=5, seconds=1)
        with pytest.raises(TokenExpiredError):
            tokens.validate(tokens.issue(42, now=issued))

    def test_token_just_before_expiry(self, tokens):
        issued = datetime.now(UTC) - timedelta(days=5) + timedelta(minutes=1)
        assert tokens.validate(tokens.issue(42, now=issued)) == 42

    def test_wrong_secret(self, tokens):
        other = TokenService(secret="other", algorithm="HS256", lifetime=timedelta(days=5))
        with pytest.raises(InvalidTokenError):
            tokens.validate(other.issue(42))

    def test_tampered_token(self, tokens):
        token = tokens.issue(42)
        header, payload, signature = token.split(".")
        forged = jwt.encode({"sub": "1"}, "guess", algorithm="HS256").split(".")[1]
        with pytest.raises(InvalidTokenError):
            tokens.validate(f"{header}.{forged}.{signature}")

    @pytest.mark.parametrize("token", ["", "garbage", "a.b.c"])
    def test_malformed_token(self, tokens, token):
        with pytest.raises(UnauthenticatedError):
            tokens.validate(token)

    def test_non_numeric_subject(self, tokens):
        token = jwt.encode(
            {"sub": "alice", "exp": datetime.now(UTC) + timedelta(minutes=5)},
            SECRET,
            algorithm="HS256",
        )
        with pytest.raises(InvalidTokenError):
            tokens.validate(token)


class TestPasswordHashing:
    """Tests for password helpers."""

    def test_hash_is_salted(self):
        first = get_password_hash("pw123456")
        second = get_password_hash("pw123456")
        assert first != second
        assert verify_password("pw123456", first)
        assert verify_password("pw123456", second)

    def test_work_factor(self):
        assert get_password_hash("pw123456").startswith("$2b$12$")

    def test_verify_rejects_wrong_and_empty(self):
        hashed = get_password_hash("pw123456")
        assert not verify_password("wrong", hashed)
        assert not verify_password("", hashed)
        assert not verify_password("pw123456", None)
