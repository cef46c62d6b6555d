"""Workspace endpoints: lifecycle, membership and workspace analytics."""

import logging
from datetime import datetime
from typing import Callable, List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

import models
import schemas
from auth.dependencies import get_current_user, require_permissions
from auth.permissions import Permission
from database import get_db
from services import analytics_service, member_service, workspace_service
from time_utils import get_clock

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/workspaces", tags=["workspaces"])


@router.post("", response_model=schemas.Workspace, status_code=status.HTTP_201_CREATED)
def create_workspace(
    workspace: schemas.WorkspaceCreate,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Create a workspace owned by the caller; it becomes their current workspace."""
    return workspace_service.create_workspace(
        current_user.id, workspace.name, workspace.description, db
    )


@router.get("", response_model=List[schemas.Workspace])
def list_workspaces(
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Workspaces the caller is a member of."""
    workspaces = workspace_service.list_user_workspaces(current_user.id, db)
    logger.debug(f"User {current_user.id} retrieved {len(workspaces)} workspaces")
    return workspaces


@router.post("/join/{invite_code}", response_model=schemas.WorkspaceJoined)
def join_workspace(
    invite_code: str,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    member = member_service.join_workspace_by_invite(current_user.id, invite_code, db)
    return {"workspace_id": member.workspace_id, "role": member.role.name}


@router.get("/{workspace_id}", response_model=schemas.WorkspaceWithMembers)
def get_workspace(
    workspace_id: int,
    role: models.RoleName = Depends(require_permissions()),
    db: Session = Depends(get_db),
):
    """Workspace with its members (any member may read it)."""
    workspace = workspace_service.get_workspace_or_404(workspace_id, db)
    members, _ = workspace_service.get_workspace_members(workspace_id, db)
    return {**schemas.Workspace.model_validate(workspace).model_dump(), "members": members}


@router.get("/{workspace_id}/members", response_model=schemas.WorkspaceMembers)
def get_workspace_members(
    workspace_id: int,
    role: models.RoleName = Depends(require_permissions(Permission.VIEW_ONLY)),
    db: Session = Depends(get_db),
):
    members, roles = workspace_service.get_workspace_members(workspace_id, db)
    return {"members": members, "roles": roles}


@router.get("/{workspace_id}/analytics", response_model=schemas.TaskAnalytics)
def get_workspace_analytics(
    workspace_id: int,
    role: models.RoleName = Depends(require_permissions(Permission.VIEW_ONLY)),
    clock: Callable[[], datetime] = Depends(get_clock),
    db: Session = Depends(get_db),
):
    return analytics_service.get_workspace_analytics(workspace_id, db, now=clock())


@router.put("/{workspace_id}", response_model=schemas.Workspace)
def update_workspace(
    workspace_id: int,
    workspace: schemas.WorkspaceUpdate,
    role: models.RoleName = Depends(require_permissions(Permission.EDIT_WORKSPACE)),
    db: Session = Depends(get_db),
):
    return workspace_service.update_workspace(
        workspace_id, workspace.name, workspace.description, db
    )


@router.put("/{workspace_id}/members/{user_id}/role", response_model=schemas.Member)
def change_member_role(
    workspace_id: int,
    user_id: int,
    payload: schemas.ChangeMemberRole,
    role: models.RoleName = Depends(require_permissions(Permission.CHANGE_MEMBER_ROLE)),
    db: Session = Depends(get_db),
):
    return workspace_service.change_member_role(workspace_id, user_id, payload.role_id, db)


@router.delete("/{workspace_id}", response_model=schemas.WorkspaceDeleted)
def delete_workspace(
    workspace_id: int,
    current_user: models.User = Depends(get_current_user),
    role: models.RoleName = Depends(require_permissions(Permission.DELETE_WORKSPACE)),
    db: Session = Depends(get_db),
):
    """Delete the workspace and everything in it (owner only)."""
    current_workspace = workspace_service.delete_workspace(workspace_id, current_user.id, db)
    return {"current_workspace": current_workspace}
