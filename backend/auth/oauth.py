"""
Google sign-in through Authlib's Starlette client.

The OAuth state travels in the Starlette session cookie, so the application
must install ``SessionMiddleware``. Google login is disabled (routes answer 404)
until ``GOOGLE_CLIENT_ID`` and ``GOOGLE_CLIENT_SECRET`` are set.
"""

import logging
import os
from typing import Optional

from authlib.integrations.starlette_client import OAuth

logger = logging.getLogger(__name__)

GOOGLE_CLIENT_ID = os.environ.get("GOOGLE_CLIENT_ID", "")
GOOGLE_CLIENT_SECRET = os.environ.get("GOOGLE_CLIENT_SECRET", "")
GOOGLE_CALLBACK_URL = os.environ.get("GOOGLE_CALLBACK_URL", "")
GOOGLE_METADATA_URL = "https://accounts.google.com/.well-known/openid-configuration"

FRONTEND_GOOGLE_CALLBACK_URL = os.environ.get(
    "FRONTEND_GOOGLE_CALLBACK_URL", "http://localhost:5173/google/oauth/callback"
)

oauth = OAuth()

if GOOGLE_CLIENT_ID and GOOGLE_CLIENT_SECRET:
    oauth.register(
        name="google",
        client_id=GOOGLE_CLIENT_ID,
        client_secret=GOOGLE_CLIENT_SECRET,
        server_metadata_url=GOOGLE_METADATA_URL,
        client_kwargs={"scope": "openid email profile"},
    )
    logger.info("✓ Google OAuth client registered")
else:
    logger.info("Google OAuth not configured; /api/auth/google is disabled")


def google_client():
    """The registered Google client, or None when Google login is disabled."""
    if not (GOOGLE_CLIENT_ID and GOOGLE_CLIENT_SECRET):
        return None
    return oauth.create_client("google")


def frontend_redirect_url(
    success: bool,
    access_token: Optional[str] = None,
    current_workspace: Optional[int] = None,
) -> str:
    if not success:
        return f"{FRONTEND_GOOGLE_CALLBACK_URL}?status=failure"
    return (
        f"{FRONTEND_GOOGLE_CALLBACK_URL}?status=success"
        f"&access_token={access_token}&current_workspace={current_workspace}"
    )
