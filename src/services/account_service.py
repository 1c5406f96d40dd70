"""Account lifecycle: registration, verification, login and password flows."""

import logging

from starlette.concurrency import run_in_threadpool

from src.exceptions import (
    AccountNotFoundError,
    AlreadyVerifiedError,
    DuplicateAccountError,
    IncorrectOldPasswordError,
    InvalidChallengeError,
    InvalidCredentialsError,
    MissingFieldsError,
    TaskNotFoundError,
    UpstreamServiceError,
    WeakPasswordError,
)
from src.models import Task, User
from src.models.state import Avatar, Unverified, Verified
from src.services.account_store import AccountStore
from src.services.auth import TokenService, verify_password
from src.services.challenges import ChallengeGenerator
from src.services.image_host import ImageHostService, ImageUpload
from src.services.mail_service import MailService

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8

VERIFY_SUBJECT = "Verify your account"
RESET_SUBJECT = "Request for Reseting Password"


def _check_password(password: str) -> None:
    """Reject passwords shorter than the minimum length."""
    if len(password) < MIN_PASSWORD_LENGTH:
        raise WeakPasswordError()


def _password_matches(user: User, plain_password: str) -> bool:
    # Touches the deferred column, so it must run off the event loop
    return verify_password(plain_password, user.password)


class AccountService:
    """Coordinates the account state machine.

    Verification: PendingVerification -> Verified.
    Password reset: Normal -> ResetPending -> Normal.

    Each operation either commits its whole transition or rolls the session
    back, so a failed email or upload leaves no visible change. The one
    exception is avatar replacement (see ``update_profile``).

    The async operations hand every store call to the threadpool: flushes run
    the bcrypt hashing events and queries block on the database.
    """

    def __init__(
        self,
        store: AccountStore,
        mail: MailService,
        images: ImageHostService,
        tokens: TokenService,
        verification_challenges: ChallengeGenerator,
        reset_challenges: ChallengeGenerator,
    ) -> None:
        self.store = store
        self.mail = mail
        self.images = images
        self.tokens = tokens
        self.verification_challenges = verification_challenges
        self.reset_challenges = reset_challenges

    async def _send(self, recipient: str, subject: str, body: str) -> None:
        await run_in_threadpool(self.mail.send, recipient, subject, body)

    async def _save(self, user: User) -> User:
        return await run_in_threadpool(self.store.save, user)

    async def _rollback(self) -> None:
        await run_in_threadpool(self.store.rollback)

    async def _discard_upload(self, avatar: Avatar) -> None:
        """Best-effort removal of an image whose account was never created."""
        try:
            await self.images.destroy(avatar.public_id)
        except UpstreamServiceError:
            logger.warning(f"Could not remove orphaned image {avatar.public_id}")

    async def register(
        self,
        name: str | None,
        email: str | None,
        password: str | None,
        avatar: ImageUpload | None = None,
    ) -> tuple[User, str]:
        """Create an unverified account, email its OTP and issue a token."""
        if not email or not password:
            raise MissingFieldsError("Please provide name, email and password")
        _check_password(password)

        # Check before uploading so a duplicate never costs an upload
        if await run_in_threadpool(self.store.get_by_email, email):
            raise DuplicateAccountError()

        uploaded = await self.images.upload(avatar) if avatar else None
        challenge = self.verification_challenges.generate()

        try:
            user = await run_in_threadpool(
                self.store.create,
                name=name,
                email=email,
                password=password,
                avatar=uploaded,
                challenge=challenge,
            )
            await self._send(email, VERIFY_SUBJECT, f"Your OTP is {challenge.code}")
            await self._save(user)
        except Exception:
            await self._rollback()
            if uploaded:
                await self._discard_upload(uploaded)
            raise

        logger.info(f"Registered user {user.id}, verification pending")
        return user, self.tokens.issue(user.id)

    async def verify(self, user: User, otp: str | int | None) -> tuple[User, str]:
        """Consume the verification challenge and mark the user verified."""
        state = user.verification_state
        challenge = state.challenge if isinstance(state, Unverified) else None
        self.verification_challenges.validate(challenge, otp)

        user.mark_verified()
        await self._save(user)
        logger.info(f"User {user.id} verified")
        return user, self.tokens.issue(user.id)

    async def resend_verification(self, user: User) -> None:
        """Replace the verification challenge with a fresh one and email it."""
        if isinstance(user.verification_state, Verified):
            raise AlreadyVerifiedError()

        challenge = self.verification_challenges.generate()
        user.begin_verification(challenge)
        try:
            await self._send(user.email, VERIFY_SUBJECT, f"Your OTP is {challenge.code}")
            await self._save(user)
        except Exception:
            await self._rollback()
            raise
        logger.info(f"Reissued verification challenge for user {user.id}")

    async def login(self, email: str | None, password: str | None) -> tuple[User, str]:
        """Authenticate by email and password; verification is not required."""
        if not email or not password:
            raise MissingFieldsError("Please provide email and password")

        user = await run_in_threadpool(self.store.get_by_email, email, with_password=True)
        # Same error for unknown email and wrong password
        if not user or not await run_in_threadpool(_password_matches, user, password):
            logger.warning("Failed login attempt")
            raise InvalidCredentialsError()

        return user, self.tokens.issue(user.id)

    async def change_password(
        self, user: User, old_password: str | None, new_password: str | None
    ) -> None:
        """Replace the password after checking the current one."""
        if not old_password or not new_password:
            raise MissingFieldsError("Please old and new password field is required")
        if not await run_in_threadpool(_password_matches, user, old_password):
            raise IncorrectOldPasswordError()
        _check_password(new_password)

        user.password = new_password
        await self._save(user)
        logger.info(f"Password changed for user {user.id}")

    async def forgot_password(self, email: str | None) -> None:
        """Start a password reset and email the reset code."""
        if not email:
            raise MissingFieldsError("Please provide email")

        user = await run_in_threadpool(self.store.get_by_email, email)
        if not user:
            raise AccountNotFoundError()

        challenge = self.reset_challenges.generate()
        user.begin_password_reset(challenge)
        message = (
            f"Your OTP for reseting the passord is {challenge.code}. "
            "If you didn't request this, please ignore it."
        )
        try:
            await self._send(email, RESET_SUBJECT, message)
            await self._save(user)
        except Exception:
            await self._rollback()
            raise
        logger.info(f"Password reset requested for user {user.id}")

    async def reset_password(self, otp: str | int | None, password: str | None) -> None:
        """Consume a reset challenge and set the new password."""
        user = await run_in_threadpool(self.store.find_by_reset_code, otp)
        if not user:
            raise InvalidChallengeError("Invalid otp or has been Expired")
        self.reset_challenges.validate(user.reset_challenge, otp)

        if not password:
            raise MissingFieldsError("Password is required")
        _check_password(password)

        user.password = password
        user.clear_password_reset()
        await self._save(user)
        logger.info(f"Password reset completed for user {user.id}")

    async def update_profile(
        self, user: User, name: str | None = None, avatar: ImageUpload | None = None
    ) -> User:
        """Update the display name and/or replace the avatar.

        Replacement destroys the old image before uploading the new one and is
        not transactional: if the upload fails the user is left without an
        avatar, which is committed rather than pointing at a deleted image.
        """
        if name:
            user.name = name

        if avatar:
            previous = user.avatar
            if previous:
                await self.images.destroy(previous.public_id)
                user.avatar = None
                await self._save(user)
            user.avatar = await self.images.upload(avatar)

        return await self._save(user)

    def add_task(self, user: User, title: str | None, description: str | None) -> Task:
        """Append a new, incomplete task to the user's list."""
        if not title:
            raise MissingFieldsError("Please provide title")
        task = Task(title=title, description=description, completed=False)
        user.tasks.append(task)
        self.store.save(user)
        return task

    def _get_task(self, user: User, task_id: int) -> Task:
        for task in user.tasks:
            if task.id == task_id:
                return task
        raise TaskNotFoundError()

    def toggle_task(self, user: User, task_id: int) -> Task:
        """Flip the completed flag of one of the user's tasks."""
        task = self._get_task(user, task_id)
        task.toggle()
        self.store.save(user)
        return task

    def remove_task(self, user: User, task_id: int) -> None:
        """Delete one of the user's tasks."""
        task = self._get_task(user, task_id)
        user.tasks.remove(task)
        self.store.save(user)
