"""Authentication and account schemas.

Request fields are optional at the schema level; presence is checked by the
account service so a missing field yields its domain message. Emails that are
only looked up are plain strings: a malformed address is just an unknown one.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from src.schemas.task import TaskResponse


class UserLogin(BaseModel):
    """User login request."""

    email: str | None = None
    password: str | None = None


class VerifyRequest(BaseModel):
    """Verification OTP submission."""

    otp: str | int | None = None


class PasswordUpdate(BaseModel):
    """Change password request."""

    model_config = ConfigDict(populate_by_name=True)

    old_password: str | None = Field(None, alias="oldPassword", max_length=128)
    new_password: str | None = Field(None, alias="newPassword", max_length=128)


class ForgotPasswordRequest(BaseModel):
    """Start a password reset."""

    email: str | None = None


class ResetPasswordRequest(BaseModel):
    """Complete a password reset."""

    otp: str | int | None = None
    password: str | None = Field(None, max_length=128)


class AvatarResponse(BaseModel):
    """Hosted avatar reference."""

    model_config = ConfigDict(from_attributes=True)

    public_id: str
    url: str


class UserResponse(BaseModel):
    """User information response (never includes the password)."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str | None
    email: str
    avatar: AvatarResponse | None = None
    verified: bool
    tasks: list[TaskResponse] = []
    created_at: datetime


class MessageResponse(BaseModel):
    """Plain success envelope."""

    success: bool = True
    message: str


class UserEnvelope(MessageResponse):
    """Success envelope carrying the account."""

    user: UserResponse
