"""Authentication service for JWT and password handling."""

from datetime import UTC, datetime, timedelta
from functools import lru_cache

from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext

from src.config import get_settings
from src.exceptions import InvalidTokenError, TokenExpiredError

# Password hashing context; bcrypt generates a random salt per hash
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=12)


def verify_password(plain_password: str, hashed_password: str | None) -> bool:
    """Verify a password against its hash."""
    if not plain_password or not hashed_password:
        return False
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """Hash a password."""
    return pwd_context.hash(password)


class TokenService:
    """Issues and validates signed, time-limited bearer tokens."""

    def __init__(self, secret: str, algorithm: str, lifetime: timedelta) -> None:
        self._secret = secret
        self._algorithm = algorithm
        self.lifetime = lifetime

    def issue(self, user_id: int, now: datetime | None = None) -> str:
        """Create a JWT access token for ``user_id``."""
        issued_at = now or datetime.now(UTC)
        to_encode = {
            "sub": str(user_id),
            "iat": issued_at,
            "exp": issued_at + self.lifetime,
        }
        return jwt.encode(to_encode, self._secret, algorithm=self._algorithm)

    def validate(self, token: str) -> int:
        """Verify signature and expiry; return the account id.

        Raises:
            TokenExpiredError: the token is past its ``exp`` claim.
            InvalidTokenError: anything else is wrong with the token.
        """
        try:
            payload = jwt.decode(token, self._secret, algorithms=[self._algorithm])
        except ExpiredSignatureError as e:
            raise TokenExpiredError() from e
        except JWTError as e:
            raise InvalidTokenError() from e

        subject = payload.get("sub")
        try:
            return int(subject)
        except (TypeError, ValueError) as e:
            raise InvalidTokenError() from e


@lru_cache
def get_token_service() -> TokenService:
    """Build the process-wide token service from settings."""
    settings = get_settings()
    return TokenService(
        secret=settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
        lifetime=timedelta(days=settings.jwt_expiration_days),
    )
