"""Project endpoints, scoped to a workspace."""

import logging
from datetime import datetime
from typing import Callable

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

import models
import schemas
from auth.dependencies import get_current_user, require_permissions
from auth.permissions import Permission
from database import get_db
from services import analytics_service, project_service
from time_utils import get_clock

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/workspaces/{workspace_id}/projects", tags=["projects"])


@router.post("", response_model=schemas.Project, status_code=status.HTTP_201_CREATED)
def create_project(
    workspace_id: int,
    project: schemas.ProjectCreate,
    current_user: models.User = Depends(get_current_user),
    role: models.RoleName = Depends(require_permissions(Permission.CREATE_PROJECT)),
    db: Session = Depends(get_db),
):
    return project_service.create_project(
        current_user.id,
        workspace_id,
        project.name,
        db,
        emoji=project.emoji,
        description=project.description,
    )


@router.get("", response_model=schemas.ProjectList)
def list_projects(
    workspace_id: int,
    page_size: int = Query(10, ge=1, le=100),
    page_number: int = Query(1, ge=1),
    role: models.RoleName = Depends(require_permissions(Permission.VIEW_ONLY)),
    db: Session = Depends(get_db),
):
    """Projects of the workspace, newest first."""
    return project_service.list_projects(workspace_id, page_size, page_number, db)


@router.get("/{project_id}", response_model=schemas.Project)
def get_project(
    workspace_id: int,
    project_id: int,
    role: models.RoleName = Depends(require_permissions(Permission.VIEW_ONLY)),
    db: Session = Depends(get_db),
):
    return project_service.get_project_in_workspace(project_id, workspace_id, db)


@router.get("/{project_id}/analytics", response_model=schemas.TaskAnalytics)
def get_project_analytics(
    workspace_id: int,
    project_id: int,
    role: models.RoleName = Depends(require_permissions(Permission.VIEW_ONLY)),
    clock: Callable[[], datetime] = Depends(get_clock),
    db: Session = Depends(get_db),
):
    return analytics_service.get_project_analytics(project_id, workspace_id, db, now=clock())


@router.put("/{project_id}", response_model=schemas.Project)
def update_project(
    workspace_id: int,
    project_id: int,
    project: schemas.ProjectUpdate,
    role: models.RoleName = Depends(require_permissions(Permission.EDIT_PROJECT)),
    db: Session = Depends(get_db),
):
    return project_service.update_project(
        project_id,
        workspace_id,
        db,
        name=project.name,
        emoji=project.emoji,
        description=project.description,
    )


@router.delete("/{project_id}")
def delete_project(
    workspace_id: int,
    project_id: int,
    role: models.RoleName = Depends(require_permissions(Permission.DELETE_PROJECT)),
    db: Session = Depends(get_db),
):
    """Delete a project together with its tasks."""
    project_service.delete_project(project_id, workspace_id, db)
    return {"message": "Project deleted"}
