"""
Authentication API endpoints.

Registration, login and the current profile. Tokens are JWT access tokens
carrying the user id and role.
"""

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

from coastwatch.api.deps import DB, CurrentIdentity
from coastwatch.api.responses import envelope_response
from coastwatch.config import get_logger
from coastwatch.db.models import User
from coastwatch.db.session import translate_storage_errors
from coastwatch.schemas.base import OperationResult
from coastwatch.schemas.users import (
    LoginRequest,
    TokenResponse,
    UserRegistration,
    UserResponse,
)
from coastwatch.services import operations
from coastwatch.services.auth import access_token_ttl, create_access_token
from coastwatch.services.users import authenticate, register_user

router = APIRouter()
logger = get_logger(__name__)


def _token_result(user: User) -> OperationResult[TokenResponse]:
    return OperationResult(
        success=True,
        data=TokenResponse(
            access_token=create_access_token(user.id, user.role),
            token_type="bearer",
            expires_in=access_token_ttl(),
            user=UserResponse.from_model(user),
        ),
    )


@router.post("/register")
async def register(request: UserRegistration, db: DB) -> JSONResponse:
    """
    Create an account and return an access token for it.

    Raises:
        ValidationError: 400 if a field is invalid or ``admin`` is requested.
        ConflictError: 409 if the e-mail address is taken.
    """
    with translate_storage_errors():
        user = await register_user(db, request)
        await db.commit()
    return envelope_response(_token_result(user), status.HTTP_201_CREATED)


@router.post("/login")
async def login(request: LoginRequest, db: DB) -> JSONResponse:
    """
    Authenticate with e-mail and password.

    Raises:
        AuthenticationError: 401 on bad credentials or an inactive account.
    """
    with translate_storage_errors():
        user = await authenticate(db, request.email, request.password)
    logger.info("User logged in", user_id=str(user.id))
    return envelope_response(_token_result(user))


@router.get("/me")
async def me(identity: CurrentIdentity, db: DB) -> JSONResponse:
    """Get the current user's profile."""
    result = await operations.get_user(db, identity, identity.subject_id)
    return envelope_response(result)
