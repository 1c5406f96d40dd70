"""Persistence for user accounts and their tasks."""

import logging
from datetime import UTC, datetime

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, undefer

from src.exceptions import DuplicateAccountError
from src.models import User
from src.models.state import Avatar, Challenge
from src.services.challenges import normalize_code

logger = logging.getLogger(__name__)


class AccountStore:
    """Lookup, creation and persistence of ``User`` records.

    Writes are flushed but not committed by ``create``; the caller decides
    when a state transition is complete and calls ``save`` (or ``rollback``).
    """

    def __init__(self, db: Session) -> None:
        self.db = db

    def _query(self, with_password: bool):
        query = self.db.query(User)
        if with_password:
            query = query.options(undefer(User.password))
        return query

    def get_by_email(self, email: str, with_password: bool = False) -> User | None:
        """Get a user by email."""
        return self._query(with_password).filter(User.email == email).first()

    def get_by_id(self, user_id: int) -> User | None:
        """Get a user by primary key."""
        return self.db.query(User).filter(User.id == user_id).first()

    def create(
        self,
        name: str | None,
        email: str,
        password: str,
        avatar: Avatar | None = None,
        challenge: Challenge | None = None,
    ) -> User:
        """Add a new user; the password is hashed on flush."""
        if self.get_by_email(email):
            raise DuplicateAccountError()

        user = User(name=name, email=email, password=password, verified=False)
        user.avatar = avatar
        if challenge:
            user.begin_verification(challenge)

        self.db.add(user)
        try:
            self.db.flush()
        except IntegrityError as e:
            # Lost a race with a concurrent registration for the same email
            self.db.rollback()
            raise DuplicateAccountError() from e
        return user

    def find_by_reset_code(
        self, code: str | int | None, now: datetime | None = None
    ) -> User | None:
        """Find the user holding a live reset challenge with this code."""
        normalized = normalize_code(code)
        if not normalized:
            return None
        now = now or datetime.now(UTC)
        return (
            self.db.query(User)
            .filter(
                User.reset_password_otp == normalized,
                User.reset_password_otp_expire > now,
            )
            .first()
        )

    def save(self, user: User) -> User:
        """Commit pending changes and reload the user."""
        self.db.add(user)
        self.db.commit()
        self.db.refresh(user)
        return user

    def rollback(self) -> None:
        """Discard uncommitted changes."""
        self.db.rollback()

    def purge_expired_unverified(self, now: datetime | None = None) -> int:
        """Delete unverified users whose registration challenge has expired.

        Returns the number of users removed.
        """
        now = now or datetime.now(UTC)
        stale = (
            self.db.query(User)
            .filter(
                User.verified.is_(False),
                User.otp_expiry.is_not(None),
                User.otp_expiry <= now,
            )
            .all()
        )
        for user in stale:
            self.db.delete(user)
        self.db.commit()
        if stale:
            logger.info(f"Purged {len(stale)} unverified accounts with expired challenges")
        return len(stale)
