"""Account, profile and task API endpoints."""

from datetime import timedelta
from typing import Annotated

from fastapi import APIRouter, Depends, File, Form, Response, UploadFile, status
from pydantic import EmailStr

from src.api.dependencies import get_account_service, get_current_user
from src.config import get_settings
from src.exceptions import AvatarTooLargeError
from src.models.user import User
from src.schemas.auth import (
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
from src.services.account_service import AccountService
from src.services.image_host import ImageUpload

settings = get_settings()

router = APIRouter(prefix="/api/v1", tags=["users"])


def set_token_cookie(response: Response, token: str, lifetime: timedelta) -> None:
    response.set_cookie(
        key=settings.token_cookie_name,
        value=token,
        max_age=int(lifetime.total_seconds()),
        httponly=True,
        secure=settings.cookie_secure,
        samesite="lax",
        path="/",
    )


async def read_avatar(upload: UploadFile | None) -> ImageUpload | None:
    """Read an uploaded avatar into memory, enforcing the size limit."""
    if upload is None or not upload.filename:
        return None
    content = await upload.read()
    if len(content) > settings.max_avatar_bytes:
        raise AvatarTooLargeError()
    return ImageUpload(
        filename=upload.filename,
        content=content,
        content_type=upload.content_type,
    )


@router.post("/register", response_model=UserEnvelope, status_code=status.HTTP_201_CREATED)
async def register(
    response: Response,
    service: Annotated[AccountService, Depends(get_account_service)],
    name: Annotated[str | None, Form()] = None,
    email: Annotated[EmailStr | None, Form()] = None,
    password: Annotated[str | None, Form()] = None,
    avatar: Annotated[UploadFile | None, File()] = None,
):
    """Register a new user and email the verification OTP."""
    user, token = await service.register(name, email, password, await read_avatar(avatar))
    set_token_cookie(response, token, service.tokens.lifetime)
    return UserEnvelope(
        message="OTP sent to your email, please verify your account",
        user=UserResponse.model_validate(user),
    )


@router.post("/verify", response_model=UserEnvelope)
async def verify(
    payload: VerifyRequest,
    response: Response,
    current_user: Annotated[User, Depends(get_current_user)],
    service: Annotated[AccountService, Depends(get_account_service)],
):
    """Verify the account with the emailed OTP."""
    user, token = await service.verify(current_user, payload.otp)
    set_token_cookie(response, token, service.tokens.lifetime)
    return UserEnvelope(
        message="Account verified successfully",
        user=UserResponse.model_validate(user),
    )


@router.post("/resendOtp", response_model=MessageResponse)
async def resend_otp(
    current_user: Annotated[User, Depends(get_current_user)],
    service: Annotated[AccountService, Depends(get_account_service)],
):
    """Send a fresh verification OTP."""
    await service.resend_verification(current_user)
    return MessageResponse(message="OTP sent to your email, please verify your account")


@router.post("/login", response_model=UserEnvelope)
async def login(
    credentials: UserLogin,
    response: Response,
    service: Annotated[AccountService, Depends(get_account_service)],
):
    """Login with email and password."""
    user, token = await service.login(credentials.email, credentials.password)
    set_token_cookie(response, token, service.tokens.lifetime)
    return UserEnvelope(message="Login successfully", user=UserResponse.model_validate(user))


@router.get("/logout", response_model=MessageResponse)
async def logout(response: Response):
    """Logout by expiring the token cookie."""
    response.delete_cookie(
        key=settings.token_cookie_name,
        path="/",
        httponly=True,
        secure=settings.cookie_secure,
        samesite="lax",
    )
    return MessageResponse(message="Logged out successfully")


@router.get("/profile", response_model=UserEnvelope)
async def get_profile(
    current_user: Annotated[User, Depends(get_current_user)],
):
    """Get current user information."""
    return UserEnvelope(
        message="Profile fetched successfully",
        user=UserResponse.model_validate(current_user),
    )


@router.put("/updateProfile", response_model=MessageResponse)
async def update_profile(
    current_user: Annotated[User, Depends(get_current_user)],
    service: Annotated[AccountService, Depends(get_account_service)],
    name: Annotated[str | None, Form()] = None,
    avatar: Annotated[UploadFile | None, File()] = None,
):
    """Update display name and/or avatar."""
    await service.update_profile(current_user, name=name, avatar=await read_avatar(avatar))
    return MessageResponse(message="Profile updated successfully")


@router.put("/updatePassword", response_model=MessageResponse)
async def update_password(
    payload: PasswordUpdate,
    current_user: Annotated[User, Depends(get_current_user)],
    service: Annotated[AccountService, Depends(get_account_service)],
):
    """Change password, given the current one."""
    await service.change_password(current_user, payload.old_password, payload.new_password)
    return MessageResponse(message="Password updated successfully")


@router.post("/forgetPassword", response_model=MessageResponse)
async def forget_password(
    payload: ForgotPasswordRequest,
    service: Annotated[AccountService, Depends(get_account_service)],
):
    """Email a password reset OTP."""
    await service.forgot_password(payload.email)
    return MessageResponse(message=f"OTP sent to {payload.email}")


@router.put("/resetPassword", response_model=MessageResponse)
async def reset_password(
    payload: ResetPasswordRequest,
    service: Annotated[AccountService, Depends(get_account_service)],
):
    """Set a new password using the reset OTP."""
    await service.reset_password(payload.otp, payload.password)
    return MessageResponse(message="Password changed successfully")


@router.post("/addTask", response_model=MessageResponse)
def add_task(
    task_data: TaskCreate,
    current_user: Annotated[User, Depends(get_current_user)],
    service: Annotated[AccountService, Depends(get_account_service)],
):
    """Add a task to the current user's list."""
    service.add_task(current_user, task_data.title, task_data.description)
    return MessageResponse(message="Task added successfully")


@router.put("/task/{task_id}", response_model=TaskEnvelope)
def toggle_task(
    task_id: int,
    current_user: Annotated[User, Depends(get_current_user)],
    service: Annotated[AccountService, Depends(get_account_service)],
):
    """Toggle a task's completed flag."""
    task = service.toggle_task(current_user, task_id)
    return TaskEnvelope(
        message="Task updated successfully",
        data=TaskResponse.model_validate(task),
    )


@router.delete("/task/{task_id}", response_model=MessageResponse)
def remove_task(
    task_id: int,
    current_user: Annotated[User, Depends(get_current_user)],
    service: Annotated[AccountService, Depends(get_account_service)],
):
    """Remove a task from the current user's list."""
    service.remove_task(current_user, task_id)
    return MessageResponse(message="Task removed successfully")
