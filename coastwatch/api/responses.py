"""
Result envelope rendering for HTTP responses.

Maps error codes to status codes and serializes OperationResult payloads.
"""

from typing import Any

from fastapi import status
from fastapi.responses import JSONResponse

from coastwatch.exceptions import CoastwatchError
from coastwatch.schemas.base import OperationResult
from coastwatch.services.operations import failure

ERROR_STATUS: dict[str, int] = {
    "validation_error": status.HTTP_400_BAD_REQUEST,
    "unauthenticated": status.HTTP_401_UNAUTHORIZED,
    "forbidden": status.HTTP_403_FORBIDDEN,
    "not_found": status.HTTP_404_NOT_FOUND,
    "invalid_state": status.HTTP_409_CONFLICT,
    "conflict": status.HTTP_409_CONFLICT,
    "rate_limited": status.HTTP_429_TOO_MANY_REQUESTS,
    "storage_unavailable": status.HTTP_503_SERVICE_UNAVAILABLE,
}


def status_for_code(code: str) -> int:
    return ERROR_STATUS.get(code, status.HTTP_500_INTERNAL_SERVER_ERROR)


def _headers_for(code: str, details: dict[str, Any] | None) -> dict[str, str] | None:
    if code == "unauthenticated":
        return {"WWW-Authenticate": "Bearer"}
    if code == "rate_limited" and details and "retry_after" in details:
        return {"Retry-After": str(details["retry_after"])}
    return None


def envelope_response(
    result: OperationResult[Any],
    success_status: int = status.HTTP_200_OK,
) -> JSONResponse:
    """Render an OperationResult with the status code its outcome maps to."""
    if result.success:
        return JSONResponse(status_code=success_status, content=result.to_payload())

    first = result.errors[0] if result.errors else None
    code = first.code if first else "error"
    return JSONResponse(
        status_code=status_for_code(code),
        content=result.to_payload(),
        headers=_headers_for(code, first.details if first else None),
    )


def error_response(exc: CoastwatchError) -> JSONResponse:
    """Render an exception raised outside the operations facade."""
    return envelope_response(failure(exc))
