"""One-time numeric challenges for account verification and password reset."""

import secrets
from datetime import UTC, datetime, timedelta

from src.exceptions import ChallengeExpiredError, ChallengeMismatchError
from src.models.state import Challenge

RESET_CHALLENGE_LIFETIME = timedelta(minutes=10)

# Codes are drawn from [0, CODE_SPACE) and rendered without zero padding
CODE_SPACE = 1_000_000


def normalize_code(code: str | int | None) -> str:
    """Normalize a submitted code so "0123", " 123" and 123 compare equal."""
    if code is None:
        return ""
    text = str(code).strip()
    # isdigit() alone admits digits like "²" that int() rejects
    if text.isascii() and text.isdigit():
        return str(int(text))
    return text


class ChallengeGenerator:
    """Issues and checks single-use challenges with a fixed lifetime."""

    def __init__(self, lifetime: timedelta) -> None:
        self.lifetime = lifetime

    def generate(self, now: datetime | None = None) -> Challenge:
        """Create a fresh challenge expiring ``lifetime`` after ``now``."""
        now = now or datetime.now(UTC)
        code = str(secrets.randbelow(CODE_SPACE))
        return Challenge(code=code, expires_at=now + self.lifetime)

    def validate(
        self,
        stored: Challenge | None,
        submitted: str | int | None,
        now: datetime | None = None,
    ) -> None:
        """Raise unless ``submitted`` matches a live ``stored`` challenge.

        Expiry is checked before the code, so an expired challenge is rejected
        even when the code is right. Clearing the challenge on success is the
        caller's job.
        """
        now = now or datetime.now(UTC)
        if stored is None or stored.is_expired(now):
            raise ChallengeExpiredError()
        submitted_code = normalize_code(submitted)
        if not submitted_code or not secrets.compare_digest(
            submitted_code.encode(), normalize_code(stored.code).encode()
        ):
            raise ChallengeMismatchError()
