"""Role catalog access and seeding."""

import logging
from typing import List

from sqlalchemy.orm import Session

from auth.permissions import ROLE_PERMISSIONS
from errors import InternalError, NotFoundError
from models import Role, RoleName

logger = logging.getLogger(__name__)


def seed_roles(db: Session) -> int:
    """
    Insert any missing role of the catalog and sync permission lists.

    Safe to run repeatedly. Returns the number of roles created.
    """
    created = 0
    for name, permissions in ROLE_PERMISSIONS.items():
        permission_list = sorted(p.value for p in permissions)
        role = db.query(Role).filter(Role.name == name).first()
        if role is None:
            db.add(Role(name=name, permissions=permission_list))
            created += 1
            logger.info(f"Seeded role {name.value} with {len(permission_list)} permissions")
        elif sorted(role.permissions or []) != permission_list:
            role.permissions = permission_list
            logger.info(f"Updated permissions of role {name.value}")
    db.commit()
    return created


def get_role_by_name(name: RoleName, db: Session) -> Role:
    """
    Look up a seeded role.

    Raises:
        InternalError: if the catalog was never seeded
    """
    role = db.query(Role).filter(Role.name == name).first()
    if role is None:
        logger.error(f"Role {RoleName(name).value} not found; role catalog is not seeded")
        raise InternalError(f"{RoleName(name).value.capitalize()} role not found")
    return role


def get_role_by_id(role_id: int, db: Session) -> Role:
    role = db.query(Role).filter(Role.id == role_id).first()
    if role is None:
        raise NotFoundError("Role not found")
    return role


def list_roles(db: Session) -> List[Role]:
    return db.query(Role).order_by(Role.id).all()
