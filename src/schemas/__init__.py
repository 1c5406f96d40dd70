"""Pydantic schemas for API requests and responses."""

from src.schemas.auth import (
    AvatarResponse,
    ForgotPasswordRequest,
    MessageResponse,
    PasswordUpdate,
    ResetPasswordRequest,
    UserEnvelope,
    UserLogin,
    UserResponse,
    VerifyRequest,
)
from src.schemas.task import TaskCreate, TaskEnvelope, TaskResponse

__all__ = [
    "UserLogin",
    "VerifyRequest",
    "PasswordUpdate",
    "ForgotPasswordRequest",
    "ResetPasswordRequest",
    "AvatarResponse",
    "UserResponse",
    "MessageResponse",
    "UserEnvelope",
    "TaskCreate",
    "TaskResponse",
    "TaskEnvelope",
]
