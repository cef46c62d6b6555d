"""
Tests for the role catalog seeding.
"""

import pytest
from sqlalchemy.orm import Session

import models
from auth.permissions import ROLE_PERMISSIONS
from errors import InternalError
from services.role_service import get_role_by_name, seed_roles


@pytest.mark.no_seed_roles
def test_seed_roles_is_idempotent(test_db: Session):
    assert seed_roles(test_db) == 3
    assert seed_roles(test_db) == 0
    assert test_db.query(models.Role).count() == 3


def test_seeded_permissions_match_role_table(test_db: Session):
    for name, permissions in ROLE_PERMISSIONS.items():
        role = get_role_by_name(name, test_db)
        assert role.permissions == sorted(p.value for p in permissions)


def test_seed_roles_repairs_drifted_permissions(test_db: Session):
    member = get_role_by_name(models.RoleName.MEMBER, test_db)
    member.permissions = ["VIEW_ONLY"]
    test_db.commit()

    assert seed_roles(test_db) == 0
    test_db.refresh(member)
    assert member.permissions == ["CREATE_TASK", "EDIT_TASK", "VIEW_ONLY"]


@pytest.mark.no_seed_roles
def test_missing_role_is_an_internal_error(test_db: Session):
    with pytest.raises(InternalError) as exc_info:
        get_role_by_name(models.RoleName.MEMBER, test_db)
    assert exc_info.value.message == "Member role not found"
    assert exc_info.value.status_code == 500
