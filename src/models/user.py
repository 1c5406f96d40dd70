"""User model."""

from sqlalchemy import Boolean, Column, DateTime, Integer, String, event, inspect
from sqlalchemy.orm import deferred, relationship

from src.database import Base
from src.models.mixins import TimestampMixin
from src.models.state import (
    Avatar,
    Challenge,
    Unverified,
    VerificationState,
    Verified,
    as_utc,
)
from src.services.auth import get_password_hash


class User(Base, TimestampMixin):
    """User model for authentication, profile and task ownership.

    The password column is deferred so ordinary loads never fetch the hash;
    use ``undefer(User.password)`` when a comparison is needed. Assign a
    plaintext password and it is hashed on flush.
    """

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    name = Column(String(255), nullable=True)
    password = deferred(Column("password_hash", String(255), nullable=False))

    avatar_public_id = Column(String(255), nullable=True)
    avatar_url = Column(String(1024), nullable=True)

    verified = Column(Boolean, default=False, nullable=False)
    otp = Column(String(16), nullable=True)
    otp_expiry = Column(DateTime(timezone=True), nullable=True, index=True)

    reset_password_otp = Column(String(16), nullable=True, index=True)
    reset_password_otp_expire = Column(DateTime(timezone=True), nullable=True)

    # Relationships
    tasks = relationship(
        "Task",
        back_populates="user",
        cascade="all, delete-orphan",
        order_by="Task.id",
        # Loaded with the user so serialization never hits the database
        lazy="selectin",
    )

    @property
    def avatar(self) -> Avatar | None:
        """Hosted avatar reference, or None when unset."""
        if self.avatar_public_id and self.avatar_url:
            return Avatar(public_id=self.avatar_public_id, url=self.avatar_url)
        return None

    @avatar.setter
    def avatar(self, value: Avatar | None) -> None:
        # Both halves are written together; never a partial reference
        self.avatar_public_id = value.public_id if value else None
        self.avatar_url = value.url if value else None

    @property
    def verification_state(self) -> VerificationState:
        """Current verification state derived from the stored columns."""
        if self.verified:
            return Verified()
        if self.otp is None or self.otp_expiry is None:
            return Unverified(challenge=None)
        return Unverified(challenge=Challenge(code=self.otp, expires_at=as_utc(self.otp_expiry)))

    def begin_verification(self, challenge: Challenge) -> None:
        """Enter (or re-enter) PendingVerification with a fresh challenge."""
        self.verified = False
        self.otp = challenge.code
        self.otp_expiry = challenge.expires_at

    def mark_verified(self) -> None:
        """Move to Verified and drop the consumed challenge."""
        self.verified = True
        self.otp = None
        self.otp_expiry = None

    @property
    def reset_challenge(self) -> Challenge | None:
        """The pending reset challenge, if any."""
        if self.reset_password_otp is None or self.reset_password_otp_expire is None:
            return None
        return Challenge(
            code=self.reset_password_otp,
            expires_at=as_utc(self.reset_password_otp_expire),
        )

    def begin_password_reset(self, challenge: Challenge) -> None:
        """Enter ResetPending with a fresh challenge."""
        self.reset_password_otp = challenge.code
        self.reset_password_otp_expire = challenge.expires_at

    def clear_password_reset(self) -> None:
        """Return to Normal by dropping the reset challenge."""
        self.reset_password_otp = None
        self.reset_password_otp_expire = None


@event.listens_for(User, "before_insert")
def hash_password_on_insert(mapper, connection, target: User) -> None:
    """Hash the plaintext password of a new user."""
    target.password = get_password_hash(target.password)


@event.listens_for(User, "before_update")
def hash_password_on_change(mapper, connection, target: User) -> None:
    """Re-hash only when the password attribute was actually assigned."""
    history = inspect(target).attrs.password.history
    if history.has_changes() and target.password is not None:
        target.password = get_password_hash(target.password)
