"""Reads about the authenticated user."""

import logging

from sqlalchemy.orm import Session, joinedload

from errors import ErrorCode, NotFoundError
from models import User

logger = logging.getLogger(__name__)


def get_user_with_current_workspace(user_id: int, db: Session) -> User:
    user = (
        db.query(User)
        .options(joinedload(User.current_workspace))
        .filter(User.id == user_id)
        .first()
    )
    if user is None:
        logger.info(f"User not found: {user_id}")
        raise NotFoundError("User not found", ErrorCode.AUTH_USER_NOT_FOUND)
    return user
