"""
FastAPI dependencies for authentication and authorization.

This module provides dependency functions that can be used in route handlers to:
- Extract and validate the current user from a JWT bearer token
- Enforce workspace role permissions on workspace-scoped routes
"""

import logging
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from database import get_db
from models import RoleName, User
from auth.permissions import Permission, require_workspace_permission
from auth.security import verify_token

logger = logging.getLogger(__name__)

# HTTP Bearer token scheme for JWT authentication
security = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    """
    Extract and validate the current user from a JWT bearer token.

    Raises:
        HTTPException: 401 if the token is missing, invalid, expired or
            points to a user that no longer exists

    Example:
        @router.get("/api/protected")
        async def protected_route(user: User = Depends(get_current_user)):
            return {"user_id": user.id}
    """
    if not credentials or not credentials.credentials:
        logger.info("No authentication credentials provided")
        raise _unauthorized("Not authenticated")

    payload = verify_token(credentials.credentials)
    if payload is None:
        raise _unauthorized("Invalid or expired token")

    if payload.get("type") != "access":
        logger.info(f"Invalid token type: {payload.get('type')}")
        raise _unauthorized("Invalid token type. Use access token for API requests.")

    # Malformed tokens should return 401, not 500
    try:
        user_id = int(payload.get("sub"))
    except (TypeError, ValueError):
        logger.info(f"Invalid user_id format in token: {payload.get('sub')}")
        raise _unauthorized("Invalid token format")

    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        logger.info(f"User not found for id: {user_id}")
        raise _unauthorized("User not found")

    logger.debug(f"User authenticated via JWT: {user.id}")
    return user


def require_permissions(*required: Permission):
    """
    Create a dependency that requires permissions in the path's workspace.

    The route must declare a ``workspace_id`` path parameter. The dependency
    resolves the caller's role there and checks it grants every permission.

    Example:
        @router.delete("/api/workspaces/{workspace_id}/projects/{project_id}")
        def delete_project(
            workspace_id: int,
            project_id: int,
            role: RoleName = Depends(require_permissions(Permission.DELETE_PROJECT)),
        ):
            ...
    """

    def permission_checker(
        workspace_id: int,
        current_user: User = Depends(get_current_user),
        db: Session = Depends(get_db),
    ) -> RoleName:
        return require_workspace_permission(current_user.id, workspace_id, required, db)

    return permission_checker
