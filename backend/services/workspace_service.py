"""
Workspace lifecycle: creation with an owner membership, reads, updates, role
changes and the cascading delete.

Creation and deletion touch several tables and run inside one transaction each
(see database.atomic); a failure at any step leaves no partial state behind.
"""

import logging
from typing import List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.orm import Session, joinedload

from database import atomic
from errors import ForbiddenError, NotFoundError
from models import Comment, Member, Project, Role, RoleName, Task, User, Workspace
from services.role_service import get_role_by_id, get_role_by_name, list_roles
from time_utils import utc_now

logger = logging.getLogger(__name__)

DEFAULT_WORKSPACE_NAME = "My Workspace"


def get_workspace_or_404(workspace_id: int, db: Session) -> Workspace:
    workspace = db.query(Workspace).filter(Workspace.id == workspace_id).first()
    if workspace is None:
        raise NotFoundError("Workspace not found")
    return workspace


def create_owned_workspace(
    owner: User, name: str, description: Optional[str], db: Session
) -> Workspace:
    """
    Add a workspace owned by ``owner``, its OWNER membership, and point the
    owner's current workspace at it.

    Does not commit: callers run it inside their own transaction.

    Raises:
        InternalError: if the OWNER role is not seeded
    """
    owner_role = get_role_by_name(RoleName.OWNER, db)

    workspace = Workspace(name=name, description=description, owner_id=owner.id)
    db.add(workspace)
    db.flush()

    db.add(Member(
        user_id=owner.id,
        workspace_id=workspace.id,
        role_id=owner_role.id,
        joined_at=utc_now(),
    ))
    owner.current_workspace_id = workspace.id
    db.flush()

    logger.debug(f"Workspace {workspace.id} provisioned for owner {owner.id}")
    return workspace


def create_workspace(
    owner_user_id: int, name: str, description: Optional[str], db: Session
) -> Workspace:
    """
    Create a workspace with the caller as OWNER, atomically.

    Raises:
        NotFoundError: if the owner does not exist
        InternalError: if the OWNER role is not seeded
    """
    logger.info(f"User {owner_user_id} creating workspace: {name}")

    with atomic(db):
        owner = db.query(User).filter(User.id == owner_user_id).first()
        if owner is None:
            raise NotFoundError("User not found")
        workspace = create_owned_workspace(owner, name, description, db)

    db.refresh(workspace)
    logger.info(f"Workspace created: {workspace.name} (ID: {workspace.id})")
    return workspace


def list_user_workspaces(user_id: int, db: Session) -> List[Workspace]:
    """All workspaces the user is a member of."""
    return (
        db.query(Workspace)
        .join(Member, Member.workspace_id == Workspace.id)
        .filter(Member.user_id == user_id)
        .order_by(Workspace.created_at.desc(), Workspace.id.desc())
        .all()
    )


def get_workspace_members(workspace_id: int, db: Session) -> Tuple[List[Member], List[Role]]:
    """Members of a workspace (with user and role loaded) and the role catalog."""
    members = (
        db.query(Member)
        .options(joinedload(Member.user), joinedload(Member.role))
        .filter(Member.workspace_id == workspace_id)
        .order_by(Member.joined_at, Member.id)
        .all()
    )
    return members, list_roles(db)


def update_workspace(
    workspace_id: int, name: Optional[str], description: Optional[str], db: Session
) -> Workspace:
    """Update name and/or description; fields left empty keep their value."""
    workspace = get_workspace_or_404(workspace_id, db)

    if name:
        workspace.name = name
    if description:
        workspace.description = description

    db.commit()
    db.refresh(workspace)
    logger.info(f"Workspace updated: {workspace.name} (ID: {workspace_id})")
    return workspace


def change_member_role(
    workspace_id: int, member_user_id: int, role_id: int, db: Session
) -> Member:
    """
    Reassign a member's role.

    Nothing prevents demoting the last OWNER; callers holding
    CHANGE_MEMBER_ROLE are trusted with that.
    """
    get_workspace_or_404(workspace_id, db)
    role = get_role_by_id(role_id, db)

    member = (
        db.query(Member)
        .filter(Member.workspace_id == workspace_id, Member.user_id == member_user_id)
        .first()
    )
    if member is None:
        raise NotFoundError("Member not found in the workspace")

    member.role_id = role.id
    db.commit()
    db.refresh(member)
    logger.info(
        f"Member {member_user_id} of workspace {workspace_id} now has role {role.name.value}"
    )
    return member


def delete_workspace(workspace_id: int, requesting_user_id: int, db: Session) -> Optional[int]:
    """
    Delete a workspace and everything scoped to it, atomically.

    Steps: verify the workspace and requester exist and the requester owns it;
    delete comments, tasks, projects and memberships of the workspace; repoint
    the current workspace of every user that was on it to another workspace they
    still belong to (or None); delete the workspace row.

    Returns:
        The requester's current workspace id after the delete

    Raises:
        NotFoundError: workspace or user missing
        ForbiddenError: requester is not the owner
    """
    logger.info(f"User {requesting_user_id} deleting workspace {workspace_id}")

    with atomic(db):
        workspace = get_workspace_or_404(workspace_id, db)

        user = db.query(User).filter(User.id == requesting_user_id).first()
        if user is None:
            raise NotFoundError("User not found")

        if workspace.owner_id != user.id:
            logger.info(f"User {user.id} is not the owner of workspace {workspace_id}")
            raise ForbiddenError("You are not the owner of this workspace")

        workspace_task_ids = select(Task.id).where(Task.workspace_id == workspace.id)
        comments = (
            db.query(Comment)
            .filter(Comment.task_id.in_(workspace_task_ids))
            .delete(synchronize_session="fetch")
        )
        tasks = db.query(Task).filter(Task.workspace_id == workspace.id).delete(synchronize_session="fetch")
        projects = db.query(Project).filter(Project.workspace_id == workspace.id).delete(synchronize_session="fetch")
        members = db.query(Member).filter(Member.workspace_id == workspace.id).delete(synchronize_session="fetch")
        logger.debug(
            f"Workspace {workspace_id} cascade: {projects} projects, {tasks} tasks, "
            f"{comments} comments, {members} memberships"
        )

        displaced = db.query(User).filter(User.current_workspace_id == workspace.id).all()
        for displaced_user in displaced:
            fallback = (
                db.query(Member)
                .filter(Member.user_id == displaced_user.id)
                .order_by(Member.joined_at, Member.id)
                .first()
            )
            displaced_user.current_workspace_id = fallback.workspace_id if fallback else None
            logger.debug(
                f"User {displaced_user.id} current workspace -> {displaced_user.current_workspace_id}"
            )
        db.flush()

        db.delete(workspace)

    db.refresh(user)
    logger.info(f"Workspace {workspace_id} deleted by user {requesting_user_id}")
    return user.current_workspace_id
