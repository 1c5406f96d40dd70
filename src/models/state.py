"""Value types describing account state."""

from dataclasses import dataclass
from datetime import UTC, datetime


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes (SQLite drops tzinfo on read)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


@dataclass(frozen=True)
class Challenge:
    """A one-time code and the instant it stops being accepted."""

    code: str
    expires_at: datetime

    def is_expired(self, now: datetime) -> bool:
        return as_utc(now) >= as_utc(self.expires_at)


@dataclass(frozen=True)
class Avatar:
    """Reference to an image stored on the image host."""

    public_id: str
    url: str


@dataclass(frozen=True)
class Unverified:
    """Registered but not yet verified; challenge is None once it was purged."""

    challenge: Challenge | None


@dataclass(frozen=True)
class Verified:
    """Email ownership has been confirmed."""


VerificationState = Unverified | Verified
