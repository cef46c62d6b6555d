"""
Account bootstrap and credential verification.

Both bootstrap entry points (password registration and federated first login)
create the user, the linked external identity, a default workspace and the owner
membership, and set the user's current workspace, as one transaction.
"""

import logging
from typing import Optional, Tuple

from sqlalchemy.orm import Session

from auth.security import hash_password, verify_password
from database import atomic
from errors import ConflictError, ErrorCode, NotFoundError, UnauthorizedError
from models import Account, ProviderType, User
from services.workspace_service import DEFAULT_WORKSPACE_NAME, create_owned_workspace

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS_MESSAGE = "Invalid email or password"


def _provision_account(
    db: Session,
    *,
    provider: ProviderType,
    provider_id: str,
    name: str,
    email: Optional[str],
    password_hash: Optional[str] = None,
    picture: Optional[str] = None,
) -> Tuple[User, int]:
    """Add user, identity, default workspace and owner membership (no commit)."""
    user = User(
        name=name,
        email=email,
        password_hash=password_hash,
        profile_picture=picture,
    )
    db.add(user)
    db.flush()

    db.add(Account(user_id=user.id, provider=provider, provider_id=provider_id))
    db.flush()

    workspace = create_owned_workspace(
        user, DEFAULT_WORKSPACE_NAME, f"Workspace created for {user.name}", db
    )
    return user, workspace.id


def login_or_create_account(
    provider: ProviderType,
    display_name: str,
    provider_id: str,
    db: Session,
    picture: Optional[str] = None,
    email: Optional[str] = None,
) -> User:
    """
    Return the user for a federated login, bootstrapping one on first sight.

    The user is matched by email, so the first provider used for an email wins:
    later logins through another provider return the same user and create
    nothing. When the provider gives no email the match falls back to the
    (provider, provider_id) identity.

    Raises:
        InternalError: if the OWNER role is not seeded (nothing is persisted)
        ConflictError: if a concurrent bootstrap claimed the same email first
    """
    logger.info(f"Federated login via {provider.value} for provider id {provider_id}")

    with atomic(db):
        if email:
            user = db.query(User).filter(User.email == email).first()
        else:
            user = (
                db.query(User)
                .join(Account, Account.user_id == User.id)
                .filter(Account.provider == provider, Account.provider_id == provider_id)
                .first()
            )

        if user is not None:
            logger.debug(f"Existing user {user.id} matched for {provider.value} login")
            return user

        user, workspace_id = _provision_account(
            db,
            provider=provider,
            provider_id=provider_id,
            name=display_name,
            email=email,
            picture=picture,
        )

    db.refresh(user)
    logger.info(f"Account bootstrapped via {provider.value}: user {user.id}, workspace {workspace_id}")
    return user


def register_user(email: str, name: str, password: str, db: Session) -> Tuple[int, int]:
    """
    Register a password user and bootstrap their default workspace.

    Returns:
        (user_id, workspace_id)

    Raises:
        ConflictError: if the email is already registered
        InternalError: if the OWNER role is not seeded (nothing is persisted)
    """
    logger.info(f"Registration attempt for email: {email}")

    # Hash before opening the transaction; it is the slow step
    password_hash = hash_password(password)

    with atomic(db):
        existing_user = db.query(User).filter(User.email == email).first()
        if existing_user is not None:
            logger.info(f"Registration failed: email already exists: {email}")
            raise ConflictError("User already exists", ErrorCode.AUTH_EMAIL_ALREADY_EXISTS)

        user, workspace_id = _provision_account(
            db,
            provider=ProviderType.EMAIL,
            provider_id=email,
            name=name,
            email=email,
            password_hash=password_hash,
        )
        user_id = user.id

    logger.info(f"User registered successfully: {email} (ID: {user_id})")
    return user_id, workspace_id


def verify_credentials(email: str, password: str, db: Session) -> User:
    """
    Check an email/password pair.

    An unknown email, a user without a password and a wrong password all fail
    with the same message so responses do not reveal which accounts exist.

    Raises:
        UnauthorizedError: invalid credentials
        NotFoundError: the identity points at a user that no longer exists
    """
    account = (
        db.query(Account)
        .filter(Account.provider == ProviderType.EMAIL, Account.provider_id == email)
        .first()
    )
    if account is None:
        logger.info(f"Login failed: no email identity for {email}")
        raise UnauthorizedError(INVALID_CREDENTIALS_MESSAGE, ErrorCode.AUTH_INVALID_CREDENTIALS)

    user = db.query(User).filter(User.id == account.user_id).first()
    if user is None:
        logger.error(f"Identity {account.id} references missing user {account.user_id}")
        raise NotFoundError("User not found", ErrorCode.AUTH_USER_NOT_FOUND)

    if not user.password_hash or not verify_password(password, user.password_hash):
        logger.info(f"Login failed: invalid password: {email}")
        raise UnauthorizedError(INVALID_CREDENTIALS_MESSAGE, ErrorCode.AUTH_INVALID_CREDENTIALS)

    logger.info(f"Credentials verified for user {user.id}")
    return user
