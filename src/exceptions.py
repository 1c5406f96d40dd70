"""Domain errors raised by the account services.

Every error carries the client-facing message and HTTP status. The handlers
registered in ``src.main`` turn them into ``{"success": false, "message": ...}``
responses.
"""

from fastapi import status


class AccountError(Exception):
    """Base class for errors that map to a client response."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    default_message: str = "Bad request"

    def __init__(self, message: str | None = None, status_code: int | None = None) -> None:
        self.message = message or self.default_message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)


class DuplicateAccountError(AccountError):
    """An account with this email already exists."""

    default_message = "User already exists"


class InvalidCredentialsError(AccountError):
    """Unknown email or wrong password; the two are indistinguishable."""

    default_message = "Invalid Email or Password"


class MissingFieldsError(AccountError):
    """A required request field is absent or empty."""

    default_message = "Please provide all required fields"


class AccountNotFoundError(AccountError):
    """No account matches the submitted email."""

    default_message = "Invalid Email address"


class TaskNotFoundError(AccountError):
    """The task id does not belong to the current user."""

    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Task not found"


class IncorrectOldPasswordError(AccountError):
    """The current password supplied for a change is wrong."""

    default_message = "Old password is incorrect"


class WeakPasswordError(AccountError):
    """The new password is too short."""

    default_message = "Password should be at least 8 characters"


class AlreadyVerifiedError(AccountError):
    """Verification was requested for a verified account."""

    default_message = "Account is already verified"


class AvatarTooLargeError(AccountError):
    """The uploaded avatar exceeds the size limit."""

    status_code = status.HTTP_413_REQUEST_ENTITY_TOO_LARGE
    default_message = "Avatar file is too large"


# Challenges


class InvalidChallengeError(AccountError):
    """A submitted OTP was rejected."""

    default_message = "Invalid OTP or has been Expired"


class ChallengeExpiredError(InvalidChallengeError):
    """The challenge is missing or past its expiry."""


class ChallengeMismatchError(InvalidChallengeError):
    """The code does not match the live challenge."""


# Authentication


class UnauthenticatedError(AccountError):
    """The request carries no usable session."""

    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Please login to access this resource"


class MissingTokenError(UnauthenticatedError):
    """No token cookie was sent."""


class InvalidTokenError(UnauthenticatedError):
    """The token is malformed or its signature does not verify."""

    default_message = "Invalid authentication token"


class TokenExpiredError(UnauthenticatedError):
    """The token is past its expiry."""

    default_message = "Authentication token has expired"


class AccountGoneError(UnauthenticatedError):
    """The token names an account that no longer exists."""

    default_message = "User not found"


# Infrastructure


class UpstreamServiceError(AccountError):
    """A store, mail or image-host call failed; never retried."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Internal server error"
