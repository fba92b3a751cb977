"""
Role-based access policy.

A pure mapping from (role, action, ownership) to allow/deny. Nothing here
touches storage or logs; callers decide how a denial is surfaced.
"""

from dataclasses import dataclass
from enum import Enum
from uuid import UUID

from coastwatch.db.models import UserRole
from coastwatch.exceptions import AuthorizationError


class Action(str, Enum):
    """Actions gated by the policy engine."""

    create_report = "create-report"
    view_reports = "view-reports"
    verify_report = "verify-report"
    list_users = "list-users"
    get_user = "get-user"
    view_analytics = "view-analytics"
    access_own_resource = "access-own-resource"


ALL_ROLES: frozenset[UserRole] = frozenset(UserRole)

# Roles allowed per action. ``access_own_resource`` additionally admits the
# resource owner regardless of role.
ACTION_ROLES: dict[Action, frozenset[UserRole]] = {
    Action.create_report: ALL_ROLES,
    Action.view_reports: ALL_ROLES,
    Action.verify_report: frozenset(
        {UserRole.verifier, UserRole.analyst, UserRole.admin}
    ),
    Action.list_users: frozenset({UserRole.admin}),
    Action.get_user: frozenset({UserRole.admin}),
    Action.view_analytics: frozenset({UserRole.analyst, UserRole.admin}),
    Action.access_own_resource: frozenset({UserRole.admin}),
}


@dataclass(frozen=True)
class Identity:
    """An already-authenticated caller."""

    subject_id: UUID
    role: UserRole


@dataclass(frozen=True)
class Decision:
    """Outcome of a policy check, with the roles that would have passed."""

    allowed: bool
    required_roles: frozenset[UserRole]

    def __bool__(self) -> bool:
        return self.allowed


def _coerce_role(role: UserRole | str) -> UserRole | None:
    if isinstance(role, UserRole):
        return role
    try:
        return UserRole(role)
    except ValueError:
        return None


def authorize(
    role: UserRole | str,
    action: Action,
    owner_id: UUID | None = None,
    subject_id: UUID | None = None,
) -> Decision:
    """
    Decide whether ``role`` may perform ``action``.

    Args:
        role: Role of the acting subject. Unknown roles are always denied.
        action: The action being attempted.
        owner_id: Owner of the targeted resource, for ownership checks.
        subject_id: Acting subject, compared against ``owner_id``.

    Returns:
        Decision carrying the allow flag and the required-role set.
    """
    required = ACTION_ROLES[action]
    resolved = _coerce_role(role)
    if resolved is None:
        return Decision(False, required)

    if resolved in required:
        return Decision(True, required)

    if action is Action.access_own_resource:
        is_owner = (
            owner_id is not None and subject_id is not None and owner_id == subject_id
        )
        return Decision(is_owner, required)

    return Decision(False, required)


def require(
    identity: Identity,
    action: Action,
    owner_id: UUID | None = None,
) -> None:
    """
    Raise AuthorizationError unless ``identity`` may perform ``action``.
    """
    decision = authorize(identity.role, action, owner_id, identity.subject_id)
    if not decision.allowed:
        role = getattr(identity.role, "value", str(identity.role))
        raise AuthorizationError(
            action.value,
            role,
            (r.value for r in decision.required_roles),
        )
