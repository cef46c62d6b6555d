"""Task endpoints, scoped to a workspace (and a project for writes)."""

import logging
from datetime import date, datetime
from typing import Callable, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

import models
import schemas
from auth.dependencies import get_current_user, require_permissions
from auth.permissions import Permission
from database import get_db
from errors import BadRequestError
from services import task_service
from time_utils import get_clock

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/workspaces/{workspace_id}", tags=["tasks"])


def _split(value: Optional[str], parse: Callable, name: str) -> list:
    """Comma separated query value -> list of parsed items."""
    if not value:
        return []
    try:
        return [parse(item.strip()) for item in value.split(",") if item.strip()]
    except ValueError:
        raise BadRequestError(f"Invalid {name} filter: {value}")


@router.post(
    "/projects/{project_id}/tasks",
    response_model=schemas.Task,
    status_code=status.HTTP_201_CREATED,
)
def create_task(
    workspace_id: int,
    project_id: int,
    task: schemas.TaskCreate,
    current_user: models.User = Depends(get_current_user),
    role: models.RoleName = Depends(require_permissions(Permission.CREATE_TASK)),
    clock: Callable[[], datetime] = Depends(get_clock),
    db: Session = Depends(get_db),
):
    return task_service.create_task(
        workspace_id,
        project_id,
        current_user.id,
        task.title,
        db,
        description=task.description,
        priority=task.priority,
        status=task.status,
        assigned_to=task.assigned_to,
        due_date=task.due_date,
        now=clock(),
    )


@router.put("/projects/{project_id}/tasks/{task_id}", response_model=schemas.Task)
def update_task(
    workspace_id: int,
    project_id: int,
    task_id: int,
    task: schemas.TaskUpdate,
    role: models.RoleName = Depends(require_permissions(Permission.EDIT_TASK)),
    clock: Callable[[], datetime] = Depends(get_clock),
    db: Session = Depends(get_db),
):
    return task_service.update_task(
        workspace_id, project_id, task_id, task.changes(), db, now=clock()
    )


@router.get("/tasks", response_model=schemas.TaskList)
def list_tasks(
    workspace_id: int,
    project_id: Optional[int] = None,
    status: Optional[str] = Query(None, description="Comma separated statuses"),
    priority: Optional[str] = Query(None, description="Comma separated priorities"),
    assigned_to: Optional[str] = Query(None, description="Comma separated user ids"),
    keyword: Optional[str] = None,
    due_date: Optional[date] = None,
    page_size: int = Query(10, ge=1, le=100),
    page_number: int = Query(1, ge=1),
    role: models.RoleName = Depends(require_permissions(Permission.VIEW_ONLY)),
    db: Session = Depends(get_db),
):
    """
    Tasks of the workspace, newest first.

    Filters combine with AND; list filters take comma separated values.
    """
    return task_service.list_tasks(
        workspace_id,
        db,
        page_size=page_size,
        page_number=page_number,
        project_id=project_id,
        statuses=_split(status, models.TaskStatus, "status"),
        priorities=_split(priority, models.TaskPriority, "priority"),
        assigned_to=_split(assigned_to, int, "assigned_to"),
        keyword=keyword,
        due_date=due_date,
    )


@router.get("/projects/{project_id}/tasks/{task_id}", response_model=schemas.Task)
def get_task(
    workspace_id: int,
    project_id: int,
    task_id: int,
    role: models.RoleName = Depends(require_permissions(Permission.VIEW_ONLY)),
    db: Session = Depends(get_db),
):
    return task_service.get_task(workspace_id, project_id, task_id, db)


@router.delete("/tasks/{task_id}")
def delete_task(
    workspace_id: int,
    task_id: int,
    role: models.RoleName = Depends(require_permissions(Permission.DELETE_TASK)),
    db: Session = Depends(get_db),
):
    task_service.delete_task(workspace_id, task_id, db)
    return {"message": "Task deleted"}
