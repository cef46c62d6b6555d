"""
Tasks inside a project.

A task's workspace is always its project's workspace, and an assignee must be a
member of that workspace.
"""

import logging
import math
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session, joinedload

from errors import NotFoundError
from models import Member, Task, TaskPriority, TaskStatus
from services.project_service import get_project_in_workspace
from time_utils import day_bounds, utc_now

logger = logging.getLogger(__name__)


def ensure_assignee_is_member(user_id: int, workspace_id: int, db: Session) -> None:
    """
    Raises:
        NotFoundError: if the user is not a member of the workspace
    """
    is_member = (
        db.query(Member.id)
        .filter(Member.user_id == user_id, Member.workspace_id == workspace_id)
        .first()
    )
    if is_member is None:
        logger.info(f"User {user_id} is not a member of workspace {workspace_id}, cannot assign")
        raise NotFoundError("Assigned user is not a member of the workspace")


def _track_completion(task: Task, now: datetime) -> None:
    if task.status == TaskStatus.DONE:
        if task.completed_at is None:
            task.completed_at = now
    else:
        task.completed_at = None


def create_task(
    workspace_id: int,
    project_id: int,
    user_id: int,
    title: str,
    db: Session,
    description: Optional[str] = None,
    priority: Optional[TaskPriority] = None,
    status: Optional[TaskStatus] = None,
    assigned_to: Optional[int] = None,
    due_date: Optional[datetime] = None,
    now: Optional[datetime] = None,
) -> Task:
    """
    Raises:
        NotFoundError: project not in this workspace, or assignee not a member
    """
    logger.info(f"User {user_id} creating task: {title} in project {project_id}")

    project = get_project_in_workspace(project_id, workspace_id, db)
    if assigned_to is not None:
        ensure_assignee_is_member(assigned_to, workspace_id, db)

    task = Task(
        title=title,
        description=description,
        priority=priority or TaskPriority.MEDIUM,
        status=status or TaskStatus.TODO,
        assigned_to=assigned_to,
        due_date=due_date,
        workspace_id=project.workspace_id,
        project_id=project.id,
        created_by=user_id,
    )
    _track_completion(task, now or utc_now())

    db.add(task)
    db.commit()
    db.refresh(task)
    logger.info(f"Task created successfully: id={task.id} code={task.task_code}")
    return task


def update_task(
    workspace_id: int,
    project_id: int,
    task_id: int,
    changes: Dict[str, Any],
    db: Session,
    now: Optional[datetime] = None,
) -> Task:
    """
    Apply ``changes`` (only the fields the client sent) to a task.

    Raises:
        NotFoundError: project not in this workspace, task not in this project,
            or new assignee not a member
    """
    get_project_in_workspace(project_id, workspace_id, db)

    task = db.query(Task).filter(Task.id == task_id).first()
    if task is None or task.project_id != project_id:
        raise NotFoundError("Task not found or task is not part of this project")

    if changes.get("assigned_to") is not None:
        ensure_assignee_is_member(changes["assigned_to"], workspace_id, db)

    for key, value in changes.items():
        setattr(task, key, value)
    if "status" in changes:
        _track_completion(task, now or utc_now())

    db.commit()
    db.refresh(task)
    logger.info(f"Task updated: id={task.id} fields={sorted(changes)}")
    return task


def list_tasks(
    workspace_id: int,
    db: Session,
    page_size: int = 10,
    page_number: int = 1,
    project_id: Optional[int] = None,
    statuses: Optional[List[TaskStatus]] = None,
    priorities: Optional[List[TaskPriority]] = None,
    assigned_to: Optional[List[int]] = None,
    keyword: Optional[str] = None,
    due_date: Optional[date] = None,
) -> Dict[str, Any]:
    """Filtered, paginated task list of a workspace, newest first."""
    query = db.query(Task).filter(Task.workspace_id == workspace_id)

    if project_id is not None:
        query = query.filter(Task.project_id == project_id)
    if statuses:
        query = query.filter(Task.status.in_(statuses))
    if priorities:
        query = query.filter(Task.priority.in_(priorities))
    if assigned_to:
        query = query.filter(Task.assigned_to.in_(assigned_to))
    if keyword:
        query = query.filter(Task.title.ilike(f"%{keyword}%"))
    if due_date is not None:
        start, end = day_bounds(datetime.combine(due_date, datetime.min.time()))
        query = query.filter(Task.due_date >= start, Task.due_date < end)

    total_count = query.count()
    skip = (page_number - 1) * page_size
    tasks = (
        query.options(joinedload(Task.assignee), joinedload(Task.project))
        .order_by(Task.created_at.desc(), Task.id.desc())
        .offset(skip)
        .limit(page_size)
        .all()
    )
    return {
        "tasks": tasks,
        "pagination": {
            "page_size": page_size,
            "page_number": page_number,
            "total_count": total_count,
            "total_pages": math.ceil(total_count / page_size),
            "skip": skip,
        },
    }


def get_task(workspace_id: int, project_id: int, task_id: int, db: Session) -> Task:
    get_project_in_workspace(project_id, workspace_id, db)

    task = (
        db.query(Task)
        .options(joinedload(Task.assignee))
        .filter(Task.id == task_id, Task.project_id == project_id, Task.workspace_id == workspace_id)
        .first()
    )
    if task is None:
        raise NotFoundError("Task not found")
    return task


def delete_task(workspace_id: int, task_id: int, db: Session) -> None:
    task = (
        db.query(Task)
        .filter(Task.id == task_id, Task.workspace_id == workspace_id)
        .first()
    )
    if task is None:
        raise NotFoundError("Task not found or does not belong to this workspace")

    db.delete(task)
    db.commit()
    logger.info(f"Task deleted: {task_id} from workspace {workspace_id}")
