"""
Error kinds raised by the CoastWatch core.

Every operation either returns its result or raises one of these. The
operations facade turns them into ``{success: false, errors: [...]}``
envelopes, and the HTTP layer maps ``code`` to a status code.
"""

from collections.abc import Iterable
from typing import Any


class CoastwatchError(Exception):
    """Base exception for all core errors."""

    code = "error"

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_errors(self) -> list[dict[str, Any]]:
        """Render as the list of error entries used in result envelopes."""
        entry: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details:
            entry["details"] = self.details
        return [entry]


class ValidationError(CoastwatchError):
    """
    Raised when input is malformed or out of range.

    Attributes:
        field_errors: One ``{"field": ..., "message": ...}`` entry per problem
    """

    code = "validation_error"

    def __init__(
        self,
        message: str,
        field_errors: Iterable[dict[str, str]] | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.field_errors = list(field_errors or [])

    @classmethod
    def for_field(cls, field: str, message: str) -> "ValidationError":
        return cls(message, [{"field": field, "message": message}])

    def to_errors(self) -> list[dict[str, Any]]:
        if not self.field_errors:
            return super().to_errors()
        return [
            {"code": self.code, "field": e["field"], "message": e["message"]}
            for e in self.field_errors
        ]


class NotFoundError(CoastwatchError):
    """Raised when no entity exists at the given id."""

    code = "not_found"

    def __init__(self, entity: str, entity_id: Any) -> None:
        super().__init__(
            f"{entity} not found",
            details={"entity": entity, "id": str(entity_id)},
        )
        self.entity = entity
        self.entity_id = entity_id


class InvalidStateError(CoastwatchError):
    """
    Raised when a transition is attempted from a non-pending state.

    Also raised for the loser of two concurrent transitions on one report.
    """

    code = "invalid_state"

    def __init__(
        self,
        message: str,
        current_status: str | None = None,
        target_status: str | None = None,
    ) -> None:
        details: dict[str, Any] = {}
        if current_status is not None:
            details["current_status"] = current_status
        if target_status is not None:
            details["target_status"] = target_status
        super().__init__(message, details)
        self.current_status = current_status
        self.target_status = target_status


class AuthorizationError(CoastwatchError):
    """
    Raised when the acting role is insufficient for an action.

    Attributes:
        required_roles: Roles that would have been allowed
    """

    code = "forbidden"

    def __init__(
        self,
        action: str,
        role: str,
        required_roles: Iterable[str] = (),
    ) -> None:
        self.action = action
        self.role = role
        self.required_roles = sorted(required_roles)
        super().__init__(
            "Access denied. Insufficient permissions.",
            details={
                "action": action,
                "role": role,
                "required_roles": self.required_roles,
            },
        )


class AuthenticationError(CoastwatchError):
    """Raised when credentials are missing, wrong, or belong to an inactive user."""

    code = "unauthenticated"


class ConflictError(CoastwatchError):
    """Raised when a unique value (e.g. an e-mail address) is already taken."""

    code = "conflict"


class StorageUnavailableError(CoastwatchError):
    """
    Raised when the persistence layer cannot be reached.

    Callers should retry with backoff; the core never retries on its own.
    """

    code = "storage_unavailable"
