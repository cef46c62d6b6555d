"""
Task analytics for a project or a workspace.

Counts and groupings run as SQL aggregates; the completion histogram and the mean
completion time are computed from the DONE rows in Python so they behave the same
on every database backend. Everything is relative to ``now``, which callers can
pin for reproducible results.
"""

import logging
from collections import Counter
from datetime import datetime, timedelta
from statistics import mean
from typing import Any, Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from errors import NotFoundError
from models import Project, Task, TaskStatus
from time_utils import as_utc, day_bounds, utc_now

logger = logging.getLogger(__name__)

COMPLETION_WINDOW_DAYS = 30


def _count(db: Session, criteria: list, *extra) -> int:
    return db.query(func.count(Task.id)).filter(*criteria, *extra).scalar() or 0


def _grouped(db: Session, column, criteria: list) -> List[tuple]:
    return (
        db.query(column, func.count(Task.id))
        .filter(*criteria)
        .group_by(column)
        .all()
    )


def summarize_tasks(criteria: list, db: Session, now: Optional[datetime] = None) -> Dict[str, Any]:
    """
    Compute the analytics block for the tasks matching ``criteria``.

    overdue: due before now and not DONE
    pending: status neither DONE nor BACKLOG
    due_today: due within the current UTC day and not DONE
    completed_over_time: DONE tasks per day over the last 30 days
    average_completion_seconds: mean of completed_at - created_at over DONE tasks
    """
    now = as_utc(now or utc_now())
    today_start, tomorrow_start = day_bounds(now)
    window_start = now - timedelta(days=COMPLETION_WINDOW_DAYS)
    not_done = Task.status != TaskStatus.DONE

    by_priority = [
        {"priority": priority.value, "count": count}
        for priority, count in _grouped(db, Task.priority, criteria)
    ]
    by_status = [
        {"status": status.value, "count": count}
        for status, count in _grouped(db, Task.status, criteria)
    ]
    by_user = [
        {"user_id": user_id, "count": count}
        for user_id, count in _grouped(db, Task.assigned_to, criteria)
    ]

    done_rows = (
        db.query(Task.created_at, Task.completed_at)
        .filter(*criteria, Task.status == TaskStatus.DONE)
        .all()
    )
    per_day = Counter()
    durations = []
    for created_at, completed_at in done_rows:
        completed_at = as_utc(completed_at)
        if completed_at is None:
            continue
        if completed_at >= window_start:
            per_day[completed_at.date().isoformat()] += 1
        if created_at is not None:
            durations.append((completed_at - as_utc(created_at)).total_seconds())

    return {
        "total_tasks": _count(db, criteria),
        "overdue_tasks": _count(db, criteria, Task.due_date < now, not_done),
        "completed_tasks": _count(db, criteria, Task.status == TaskStatus.DONE),
        "pending_tasks": _count(
            db, criteria, Task.status.notin_([TaskStatus.DONE, TaskStatus.BACKLOG])
        ),
        "tasks_by_priority": by_priority,
        "tasks_by_status": by_status,
        "tasks_by_user": by_user,
        "tasks_due_today": _count(
            db, criteria, Task.due_date >= today_start, Task.due_date < tomorrow_start, not_done
        ),
        "completed_over_time": [
            {"date": day, "count": per_day[day]} for day in sorted(per_day)
        ],
        "average_completion_seconds": mean(durations) if durations else 0.0,
    }


def get_project_analytics(
    project_id: int, workspace_id: int, db: Session, now: Optional[datetime] = None
) -> Dict[str, Any]:
    project = db.query(Project).filter(Project.id == project_id).first()
    if project is None or project.workspace_id != workspace_id:
        raise NotFoundError("Project not found or does not belong to this workspace")

    logger.debug(f"Computing analytics for project {project_id}")
    return summarize_tasks([Task.project_id == project_id], db, now)


def get_workspace_analytics(
    workspace_id: int, db: Session, now: Optional[datetime] = None
) -> Dict[str, Any]:
    logger.debug(f"Computing analytics for workspace {workspace_id}")
    return summarize_tasks([Task.workspace_id == workspace_id], db, now)
