"""
Authentication API endpoints.

This module provides REST API endpoints for:
- Password registration (bootstraps the default workspace)
- Login/logout
- Google sign-in (redirect and callback)
"""

import logging
from typing import Optional

from authlib.integrations.starlette_client import OAuthError
from fastapi import APIRouter, Depends, HTTPException, status, Request
from fastapi.responses import RedirectResponse
from pydantic import BaseModel, EmailStr, Field
from sqlalchemy.orm import Session

import schemas
from database import get_db
from errors import AppError
from models import ProviderType
from auth.oauth import GOOGLE_CALLBACK_URL, frontend_redirect_url, google_client
from auth.security import issue_token_for_user
from services.auth_service import login_or_create_account, register_user, verify_credentials
from time_utils import utc_now

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


# Request/Response schemas
class RegisterRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    password: str = Field(..., min_length=4, max_length=255)


class RegisterResponse(BaseModel):
    user_id: int
    workspace_id: int


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1, max_length=255)


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: schemas.User


@router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
async def register(request: RegisterRequest, db: Session = Depends(get_db)):
    """
    Register a new user account.

    Creates the user, its EMAIL identity, a default workspace and the owner
    membership in one transaction.

    Raises:
        ConflictError: 400 if email already registered
    """
    user_id, workspace_id = register_user(
        email=request.email, name=request.name, password=request.password, db=db
    )
    return {"user_id": user_id, "workspace_id": workspace_id}


@router.post("/login", response_model=TokenResponse)
async def login(request: LoginRequest, db: Session = Depends(get_db)):
    """
    Login with email and password.

    Returns:
        Bearer access token and the user

    Raises:
        UnauthorizedError: 401 if credentials invalid
    """
    logger.info(f"Login attempt for email: {request.email}")
    user = verify_credentials(request.email, request.password, db)

    user.last_login_at = utc_now()
    db.commit()
    db.refresh(user)

    access_token = issue_token_for_user(user.id)
    logger.info(f"User logged in successfully: {user.email} (ID: {user.id})")
    return {"access_token": access_token, "token_type": "bearer", "user": user}


@router.post("/logout")
async def logout(request: Request):
    """
    Logout the current client.

    Access tokens are stateless; logging out drops the OAuth session cookie and
    the client discards its token.
    """
    request.session.clear()
    logger.info("User logged out")
    return {"message": "Logged out successfully"}


def _require_google():
    client = google_client()
    if client is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Google login is not configured",
        )
    return client


@router.get("/google")
async def google_login(request: Request):
    """Redirect to Google's consent screen."""
    client = _require_google()
    redirect_uri = GOOGLE_CALLBACK_URL or str(request.url_for("google_callback"))
    return await client.authorize_redirect(request, redirect_uri)


@router.get("/google/callback", name="google_callback")
async def google_callback(request: Request, db: Session = Depends(get_db)):
    """
    Finish Google sign-in and hand the result to the frontend.

    First-time users get an account, a default workspace and owner membership.
    """
    client = _require_google()

    try:
        token = await client.authorize_access_token(request)
    except OAuthError as e:
        logger.info(f"Google callback rejected: {e.error}")
        return RedirectResponse(frontend_redirect_url(success=False))

    userinfo: Optional[dict] = token.get("userinfo")
    if not userinfo or not userinfo.get("sub"):
        logger.info("Google callback without identity claims")
        return RedirectResponse(frontend_redirect_url(success=False))

    # Unverified addresses must not match an existing account by email
    email = userinfo.get("email") if userinfo.get("email_verified") else None

    try:
        user = login_or_create_account(
            provider=ProviderType.GOOGLE,
            display_name=userinfo.get("name") or email or "Google user",
            provider_id=str(userinfo["sub"]),
            db=db,
            picture=userinfo.get("picture"),
            email=email,
        )
    except AppError as e:
        logger.warning(f"⚠️  Google login failed: {e.message}")
        return RedirectResponse(frontend_redirect_url(success=False))

    return RedirectResponse(
        frontend_redirect_url(
            success=True,
            access_token=issue_token_for_user(user.id),
            current_workspace=user.current_workspace_id,
        )
    )
