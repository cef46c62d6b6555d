"""Comments on tasks."""

import logging
from typing import List, Optional

from sqlalchemy.orm import Session, joinedload

from errors import NotFoundError
from models import Comment, Task

logger = logging.getLogger(__name__)


def get_task_or_404(task_id: int, db: Session) -> Task:
    task = db.query(Task).filter(Task.id == task_id).first()
    if task is None:
        raise NotFoundError("Task not found")
    return task


def create_comment(
    task_id: int,
    user_id: int,
    message: str,
    db: Session,
    attachments: Optional[List[str]] = None,
) -> Comment:
    get_task_or_404(task_id, db)

    comment = Comment(
        task_id=task_id,
        user_id=user_id,
        message=message,
        attachments=list(attachments or []),
    )
    db.add(comment)
    db.commit()
    db.refresh(comment)
    logger.info(f"Comment {comment.id} added to task {task_id} by user {user_id}")
    return comment


def list_comments(task_id: int, db: Session) -> List[Comment]:
    """Comments of a task, oldest first, with their authors."""
    return (
        db.query(Comment)
        .options(joinedload(Comment.author))
        .filter(Comment.task_id == task_id)
        .order_by(Comment.created_at.asc(), Comment.id.asc())
        .all()
    )
