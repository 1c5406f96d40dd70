"""FastAPI dependencies for authentication and database."""

from datetime import timedelta
from typing import Annotated

from fastapi import Depends
from fastapi.security import APIKeyCookie
from sqlalchemy.orm import Session

from src.config import get_settings
from src.database import get_db
from src.exceptions import AccountGoneError, MissingTokenError
from src.models.user import User
from src.services.account_service import AccountService
from src.services.account_store import AccountStore
from src.services.auth import TokenService, get_token_service
from src.services.challenges import RESET_CHALLENGE_LIFETIME, ChallengeGenerator
from src.services.image_host import ImageHostService, get_image_host
from src.services.mail_service import MailService, get_mail_service

settings = get_settings()

token_cookie = APIKeyCookie(name=settings.token_cookie_name, auto_error=False)


def get_account_store(
    db: Annotated[Session, Depends(get_db)],
) -> AccountStore:
    """Get the account store bound to the request's session."""
    return AccountStore(db)


def get_current_user(
    token: Annotated[str | None, Depends(token_cookie)],
    store: Annotated[AccountStore, Depends(get_account_store)],
    tokens: Annotated[TokenService, Depends(get_token_service)],
) -> User:
    """Get the current authenticated user from the token cookie."""
    if not token:
        raise MissingTokenError()

    user_id = tokens.validate(token)

    user = store.get_by_id(user_id)
    if user is None:
        raise AccountGoneError()

    return user


def get_account_service(
    store: Annotated[AccountStore, Depends(get_account_store)],
    mail: Annotated[MailService, Depends(get_mail_service)],
    images: Annotated[ImageHostService, Depends(get_image_host)],
    tokens: Annotated[TokenService, Depends(get_token_service)],
) -> AccountService:
    """Get account service with dependencies."""
    return AccountService(
        store=store,
        mail=mail,
        images=images,
        tokens=tokens,
        verification_challenges=ChallengeGenerator(
            timedelta(minutes=settings.otp_expire_minutes)
        ),
        reset_challenges=ChallengeGenerator(RESET_CHALLENGE_LIFETIME),
    )
