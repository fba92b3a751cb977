"""
Pydantic schemas for user accounts and authentication.
"""

from datetime import datetime

from pydantic import EmailStr, Field

from coastwatch.db.models import User, UserRole, UserStatus
from coastwatch.schemas.base import CamelCaseModel, IDMixin, PaginatedResponse


class UserRegistration(CamelCaseModel):
    """Self-service registration request."""

    first_name: str = Field(..., min_length=1, max_length=50)
    last_name: str = Field(..., min_length=1, max_length=50)
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=72)
    role: UserRole = UserRole.citizen

    model_config = CamelCaseModel.model_config | {"str_strip_whitespace": True}


class LoginRequest(CamelCaseModel):
    """Login request with email and password."""

    email: EmailStr
    password: str = Field(..., min_length=1)


class UserResponse(IDMixin):
    """User profile; never includes the password hash."""

    first_name: str
    last_name: str
    email: str
    role: UserRole
    status: UserStatus
    created_at: datetime

    @classmethod
    def from_model(cls, user: User) -> "UserResponse":
        return cls(
            id=user.id,
            first_name=user.first_name,
            last_name=user.last_name,
            email=user.email,
            role=user.role,
            status=user.status,
            created_at=user.created_at,
        )


class TokenResponse(CamelCaseModel):
    """JWT token plus the authenticated profile."""

    access_token: str
    token_type: str = "bearer"
    expires_in: int  # seconds
    user: UserResponse


class UserPage(PaginatedResponse[UserResponse]):
    """Paginated list of users."""

    pass
