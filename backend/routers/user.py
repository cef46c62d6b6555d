from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

import models
import schemas
from auth.dependencies import get_current_user
from database import get_db
from services.user_service import get_user_with_current_workspace

router = APIRouter(prefix="/api/user", tags=["user"])


@router.get("/current", response_model=schemas.User)
def get_current_user_profile(
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """The authenticated user with their current workspace."""
    return get_user_with_current_workspace(current_user.id, db)
