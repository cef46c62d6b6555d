"""Workspace membership: joining through an invite code."""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from database import atomic
from errors import ConflictError, NotFoundError
from models import Member, RoleName, Workspace
from services.role_service import get_role_by_name
from time_utils import utc_now

logger = logging.getLogger(__name__)


def find_membership(user_id: int, workspace_id: int, db: Session) -> Optional[Member]:
    return (
        db.query(Member)
        .filter(Member.user_id == user_id, Member.workspace_id == workspace_id)
        .first()
    )


def join_workspace_by_invite(user_id: int, invite_code: str, db: Session) -> Member:
    """
    Add the user to the workspace behind ``invite_code`` with the MEMBER role.

    A concurrent join that slips past the membership check is stopped by the
    (user, workspace) unique constraint and also surfaces as ConflictError.

    Raises:
        NotFoundError: unknown invite code
        ConflictError: the user already belongs to the workspace
        InternalError: the MEMBER role is not seeded
    """
    workspace = db.query(Workspace).filter(Workspace.invite_code == invite_code).first()
    if workspace is None:
        logger.info(f"Join failed: invalid invite code {invite_code}")
        raise NotFoundError("Invalid invite code or workspace not found")

    with atomic(db):
        if find_membership(user_id, workspace.id, db) is not None:
            logger.info(f"User {user_id} is already a member of workspace {workspace.id}")
            raise ConflictError("You are already a member of this workspace")

        role = get_role_by_name(RoleName.MEMBER, db)
        member = Member(
            user_id=user_id,
            workspace_id=workspace.id,
            role_id=role.id,
            joined_at=utc_now(),
        )
        db.add(member)

    db.refresh(member)
    logger.info(f"User {user_id} joined workspace {workspace.id} as {role.name.value}")
    return member
