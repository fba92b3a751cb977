"""
Credential helpers for CoastWatch.

Password hashing with bcrypt and JWT access tokens carrying the
``(subject_id, role)`` identity the core consumes.
"""

from datetime import UTC, datetime, timedelta
from uuid import UUID

from jose import JWTError, jwt
from passlib.context import CryptContext

from coastwatch.config import get_logger, get_settings
from coastwatch.db.models import UserRole
from coastwatch.exceptions import AuthenticationError
from coastwatch.services.policy import Identity

logger = get_logger(__name__)

# Bcrypt password hashing context
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a plaintext password against a bcrypt hash."""
    return pwd_context.verify(plain_password, hashed_password)


def hash_password(password: str) -> str:
    """Hash a password using bcrypt."""
    return pwd_context.hash(password)


def access_token_ttl() -> int:
    """Access token lifetime in seconds."""
    return get_settings().jwt_expiry_hours * 3600


def create_access_token(user_id: str | UUID, role: UserRole | str) -> str:
    """
    Create a JWT access token.

    Args:
        user_id: User UUID (converted to string).
        role: User role for authorization checks.

    Returns:
        Encoded JWT string.
    """
    settings = get_settings()
    now = datetime.now(UTC)
    payload = {
        "sub": str(user_id),
        "role": role.value if isinstance(role, UserRole) else role,
        "type": "access",
        "exp": now + timedelta(seconds=access_token_ttl()),
        "iat": now,
    }
    return jwt.encode(
        payload,
        settings.jwt_secret.get_secret_value(),
        algorithm=settings.jwt_algorithm,
    )


def verify_token(token: str) -> dict:
    """
    Decode and verify a JWT token.

    Raises:
        ExpiredSignatureError: If the token has expired.
        JWTError: If the token is invalid or malformed.
    """
    settings = get_settings()
    return jwt.decode(
        token,
        settings.jwt_secret.get_secret_value(),
        algorithms=[settings.jwt_algorithm],
    )


def identity_from_token(token: str) -> Identity:
    """
    Resolve a bearer token into an Identity.

    Raises:
        AuthenticationError: If the token is invalid, expired, or has an
            unusable payload.
    """
    try:
        payload = verify_token(token)
    except JWTError:
        raise AuthenticationError("Invalid or expired token") from None

    if payload.get("type") != "access":
        raise AuthenticationError("Invalid token type")

    try:
        subject_id = UUID(payload["sub"])
        role = UserRole(payload["role"])
    except (KeyError, ValueError, TypeError):
        raise AuthenticationError("Invalid token payload") from None

    return Identity(subject_id=subject_id, role=role)
