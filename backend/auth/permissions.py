"""
Workspace-level permission checking utilities.

This module holds the static role -> permission table and the two checks every
workspace-scoped operation runs before touching data:

1. resolve_role: which role does the user hold in the workspace?
2. authorize: does that role grant every permission the operation needs?
"""

import enum
import logging
from types import MappingProxyType
from typing import Iterable, Mapping

from sqlalchemy.orm import Session

from errors import ErrorCode, ForbiddenError, NotFoundError, UnauthorizedError
from models import Member, RoleName, Workspace

logger = logging.getLogger(__name__)


class Permission(str, enum.Enum):
    CREATE_WORKSPACE = "CREATE_WORKSPACE"
    EDIT_WORKSPACE = "EDIT_WORKSPACE"
    DELETE_WORKSPACE = "DELETE_WORKSPACE"
    MANAGE_WORKSPACE_SETTINGS = "MANAGE_WORKSPACE_SETTINGS"
    ADD_MEMBER = "ADD_MEMBER"
    CHANGE_MEMBER_ROLE = "CHANGE_MEMBER_ROLE"
    REMOVE_MEMBER = "REMOVE_MEMBER"
    CREATE_PROJECT = "CREATE_PROJECT"
    EDIT_PROJECT = "EDIT_PROJECT"
    DELETE_PROJECT = "DELETE_PROJECT"
    CREATE_TASK = "CREATE_TASK"
    EDIT_TASK = "EDIT_TASK"
    DELETE_TASK = "DELETE_TASK"
    VIEW_ONLY = "VIEW_ONLY"


# Loaded once, never mutated
ROLE_PERMISSIONS: Mapping[RoleName, frozenset] = MappingProxyType({
    RoleName.OWNER: frozenset(Permission),
    RoleName.ADMIN: frozenset({
        Permission.ADD_MEMBER,
        Permission.CREATE_PROJECT,
        Permission.EDIT_PROJECT,
        Permission.DELETE_PROJECT,
        Permission.CREATE_TASK,
        Permission.EDIT_TASK,
        Permission.DELETE_TASK,
        Permission.MANAGE_WORKSPACE_SETTINGS,
        Permission.VIEW_ONLY,
    }),
    RoleName.MEMBER: frozenset({
        Permission.VIEW_ONLY,
        Permission.CREATE_TASK,
        Permission.EDIT_TASK,
    }),
})


def permissions_of(role: RoleName) -> frozenset:
    """Return the permission set granted to a role (empty for unknown roles)."""
    try:
        role = RoleName(role)
    except ValueError:
        logger.warning(f"Unknown role '{role}' grants no permissions")
        return frozenset()
    return ROLE_PERMISSIONS.get(role, frozenset())


def has_permissions(role: RoleName, required: Iterable[Permission]) -> bool:
    """True iff every permission in ``required`` is granted to ``role``."""
    return set(required) <= permissions_of(role)


def authorize(role: RoleName, required: Iterable[Permission]) -> None:
    """
    Require a role to hold every permission in ``required``, or raise.

    Pure check: no I/O, no side effects.

    Args:
        role: Role name held by the caller in the workspace
        required: Permissions the operation needs

    Raises:
        ForbiddenError: if any required permission is missing

    Example:
        >>> authorize(RoleName.MEMBER, {Permission.CREATE_TASK})
        >>> authorize(RoleName.MEMBER, {Permission.DELETE_WORKSPACE})
        Traceback (most recent call last):
        ...
        errors.ForbiddenError: You do not have the necessary permission to perform this action
    """
    required = set(required)
    if not has_permissions(role, required):
        missing = sorted(p.value for p in required - permissions_of(role))
        logger.info(f"Role '{getattr(role, 'value', role)}' lacks permissions: {missing}")
        raise ForbiddenError(
            "You do not have the necessary permission to perform this action",
            ErrorCode.ACCESS_UNAUTHORIZED,
        )


def resolve_role(user_id: int, workspace_id: int, db: Session) -> RoleName:
    """
    Determine the role a user holds in a workspace.

    This is the tenant-isolation choke point: every workspace-scoped operation
    calls it before reading or mutating workspace data.

    Args:
        user_id: ID of the user
        workspace_id: ID of the workspace
        db: Database session

    Returns:
        The member's role name

    Raises:
        NotFoundError: if the workspace does not exist (checked first)
        UnauthorizedError: if the user is not a member of the workspace
    """
    logger.debug(f"Resolving role for user {user_id} in workspace {workspace_id}")

    workspace = db.query(Workspace).filter(Workspace.id == workspace_id).first()
    if workspace is None:
        logger.info(f"Workspace {workspace_id} not found")
        raise NotFoundError("Workspace not found")

    member = (
        db.query(Member)
        .filter(Member.user_id == user_id, Member.workspace_id == workspace_id)
        .first()
    )
    if member is None:
        logger.info(f"User {user_id} is not a member of workspace {workspace_id}")
        raise UnauthorizedError(
            "You are not a member of this workspace",
            ErrorCode.AUTH_UNAUTHORIZED_ACCESS,
        )

    role = RoleName(member.role.name)
    logger.debug(f"User {user_id} has role '{role.value}' in workspace {workspace_id}")
    return role


def require_workspace_permission(
    user_id: int, workspace_id: int, required: Iterable[Permission], db: Session
) -> RoleName:
    """
    Resolve the caller's role and authorize it in one step.

    Returns:
        The resolved role name, so callers can branch on it if needed
    """
    role = resolve_role(user_id, workspace_id, db)
    authorize(role, required)
    return role
