from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.sessions import SessionMiddleware
import logging
import os
import secrets

from database import Base, SessionLocal, engine
from errors import AppError, ErrorCode
from auth.routes import router as auth_router
from auth.security import is_production_like
from routers.comments import router as comments_router
from routers.projects import router as projects_router
from routers.tasks import router as tasks_router
from routers.user import router as user_router
from routers.workspaces import router as workspaces_router
from services.role_service import seed_roles

# Configure logging
logging.basicConfig(level=logging.DEBUG if os.environ.get("DEBUG") else logging.INFO)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Taskflow API",
    description="Multi-tenant project and task management with workspaces, roles and analytics",
    version="1.0.0"
)

# CORS middleware for frontend
CORS_ORIGINS = [
    origin.strip()
    for origin in os.environ.get("CORS_ORIGINS", "http://localhost:5173,http://localhost:3000").split(",")
    if origin.strip()
]
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Session cookie carries the OAuth state between /google and /google/callback
SESSION_SECRET = os.environ.get("SESSION_SECRET")
if not SESSION_SECRET:
    if is_production_like():
        raise ValueError("SESSION_SECRET environment variable is required in production.")
    SESSION_SECRET = "dev-insecure-session-" + secrets.token_urlsafe(32)
    logger.warning("⚠️  SESSION_SECRET not set! Using temporary development key.")
app.add_middleware(SessionMiddleware, secret_key=SESSION_SECRET, https_only=is_production_like())

app.include_router(auth_router)
app.include_router(user_router)
app.include_router(workspaces_router)
app.include_router(projects_router)
app.include_router(tasks_router)
app.include_router(comments_router)


# ============== Error handlers ==============

@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = [
        {
            "field": ".".join(str(part) for part in error["loc"] if part != "body"),
            "message": error["msg"],
        }
        for error in exc.errors()
    ]
    logger.info(f"Validation failed for {request.method} {request.url.path}: {errors}")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "detail": "Validation failed",
            "error_code": ErrorCode.VALIDATION_ERROR.value,
            "errors": errors,
        },
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "detail": "Internal server error",
            "error_code": ErrorCode.INTERNAL_SERVER_ERROR.value,
        },
    )


# ============== Startup: Schema and Role Catalog ==============

@app.on_event("startup")
def seed_role_catalog():
    """Create missing tables and make sure OWNER, ADMIN and MEMBER exist."""
    if os.environ.get("SEED_ROLES_ON_STARTUP", "true").lower() not in ("1", "true", "yes"):
        logger.info("Role seeding on startup disabled")
        return

    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        created = seed_roles(db)
        logger.info(f"✓ Role catalog ready ({created} roles created)")
    finally:
        db.close()


# Health check
@app.get("/health")
def health_check():
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=int(os.environ.get("PORT", "8000")))
