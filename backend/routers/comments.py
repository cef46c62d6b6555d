"""Comments on a task; any member of the task's workspace may read and write them."""

import logging
from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

import models
import schemas
from auth.dependencies import get_current_user
from auth.permissions import Permission, require_workspace_permission
from database import get_db
from services import comment_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/tasks/{task_id}/comments", tags=["comments"])


def _authorize_task_member(task_id: int, user: models.User, db: Session) -> None:
    task = comment_service.get_task_or_404(task_id, db)
    require_workspace_permission(user.id, task.workspace_id, {Permission.VIEW_ONLY}, db)


@router.post("", response_model=schemas.Comment, status_code=status.HTTP_201_CREATED)
def add_comment(
    task_id: int,
    comment: schemas.CommentCreate,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    _authorize_task_member(task_id, current_user, db)
    return comment_service.create_comment(
        task_id, current_user.id, comment.message, db, attachments=comment.attachments
    )


@router.get("", response_model=List[schemas.Comment])
def list_comments(
    task_id: int,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Comments of the task, oldest first."""
    _authorize_task_member(task_id, current_user, db)
    return comment_service.list_comments(task_id, db)
