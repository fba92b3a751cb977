"""
User directory: registration and credential checks.

Hashing is an explicit step here; the User model has no save hooks.
"""

from collections.abc import Mapping
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from coastwatch.config import get_logger
from coastwatch.db.models import User, UserRole, UserStatus
from coastwatch.db.queries import create_user, get_user_by_email
from coastwatch.exceptions import AuthenticationError, ConflictError, ValidationError
from coastwatch.schemas.users import UserRegistration
from coastwatch.schemas.validation import validate_model
from coastwatch.services.auth import hash_password, verify_password

logger = get_logger(__name__)

# Roles an anonymous caller may pick for themselves.
SELF_SERVICE_ROLES = frozenset({UserRole.citizen, UserRole.verifier, UserRole.analyst})


async def register_user(
    session: AsyncSession,
    registration: UserRegistration | Mapping[str, Any],
) -> User:
    """
    Create an account from a registration request.

    Raises:
        ValidationError: If a field is invalid or ``admin`` is requested.
        ConflictError: If the e-mail address is already registered.
    """
    registration = validate_model(
        UserRegistration, registration, message="Invalid registration"
    )
    if registration.role not in SELF_SERVICE_ROLES:
        raise ValidationError.for_field(
            "role", f"Role '{registration.role.value}' cannot be self-assigned"
        )

    existing = await get_user_by_email(session, registration.email)
    if existing is not None:
        raise ConflictError(
            "User with this email already exists",
            details={"field": "email"},
        )

    try:
        user = await create_user(
            session,
            first_name=registration.first_name,
            last_name=registration.last_name,
            email=registration.email,
            password_hash=hash_password(registration.password),
            role=registration.role,
            status=UserStatus.active,
        )
    except IntegrityError as e:
        # Lost a race with a concurrent registration for the same address
        raise ConflictError(
            "User with this email already exists",
            details={"field": "email"},
        ) from e
    logger.info("User registered", user_id=str(user.id), role=user.role.value)
    return user


async def authenticate(session: AsyncSession, email: str, password: str) -> User:
    """
    Check credentials and return the matching active user.

    Unknown address and wrong password produce the same error.

    Raises:
        AuthenticationError: On bad credentials or a non-active account.
    """
    user = await get_user_by_email(session, email)
    if user is None or not verify_password(password, user.password_hash):
        logger.warning("Login failed")
        raise AuthenticationError("Invalid email or password")

    if not user.is_active:
        logger.warning(
            "Login refused for inactive account",
            user_id=str(user.id),
            status=user.status.value,
        )
        raise AuthenticationError(
            "Account is not active",
            details={"status": user.status.value},
        )

    return user
