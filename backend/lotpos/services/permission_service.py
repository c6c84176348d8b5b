# Overview: Role and permission seeding and maintenance.

from __future__ import annotations

from ..extensions import db
from ..models import Role, RolePermission
from ..permissions import DEFAULT_ROLE_PERMISSIONS, validate_permission_code


class RoleConfigError(Exception):
    """Raised for unknown roles or permission codes."""
    pass


def ensure_default_roles() -> tuple[int, int]:
    """
    Create the default roles and their permission grants (idempotent).

    Returns (roles_created, grants_created).
    """
    roles_created = 0
    grants_created = 0
    for role_name, permissions in DEFAULT_ROLE_PERMISSIONS.items():
        role = db.session.query(Role).filter_by(name=role_name).first()
        if not role:
            role = Role(name=role_name)
            db.session.add(role)
            db.session.flush()
            roles_created += 1
        existing = {rp.permission_code for rp in role.role_permissions}
        for permission in permissions:
            if permission.value not in existing:
                db.session.add(RolePermission(role_id=role.id, permission_code=permission.value))
                grants_created += 1
    db.session.commit()
    return roles_created, grants_created


def _get_role(role_name: str) -> Role:
    role = db.session.query(Role).filter_by(name=role_name).first()
    if not role:
        raise RoleConfigError(f"Role '{role_name}' not found")
    return role


def grant_permission(role_name: str, permission_code: str) -> bool:
    """Returns False when the role already had it."""
    if not validate_permission_code(permission_code):
        raise RoleConfigError(f"Unknown permission code '{permission_code}'")
    role = _get_role(role_name)
    exists = db.session.query(RolePermission).filter_by(role_id=role.id, permission_code=permission_code).first()
    if exists:
        return False
    db.session.add(RolePermission(role_id=role.id, permission_code=permission_code))
    db.session.commit()
    return True


def revoke_permission(role_name: str, permission_code: str) -> bool:
    role = _get_role(role_name)
    deleted = (
        db.session.query(RolePermission)
        .filter_by(role_id=role.id, permission_code=permission_code)
        .delete(synchronize_session=False)
    )
    db.session.commit()
    return bool(deleted)
