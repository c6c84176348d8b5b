# Overview: Permission system package.
# Re-exports all public APIs.

from .categories import PermissionCategory
from .codes import Permission
from .definitions import (
    PERMISSION_DEFINITIONS,
    SALES_PERMISSIONS,
    PRODUCTION_PERMISSIONS,
    ACCOUNTING_PERMISSIONS,
    SYSTEM_PERMISSIONS,
)
from .roles import DEFAULT_ROLE_PERMISSIONS, SUPER_ADMIN_ROLE
from .helpers import (
    get_all_permission_codes,
    get_permissions_by_category,
    get_permission_definition,
    validate_permission_code,
)

__all__ = [
    "Permission",
    "PermissionCategory",
    "PERMISSION_DEFINITIONS",
    "SALES_PERMISSIONS",
    "PRODUCTION_PERMISSIONS",
    "ACCOUNTING_PERMISSIONS",
    "SYSTEM_PERMISSIONS",
    "DEFAULT_ROLE_PERMISSIONS",
    "SUPER_ADMIN_ROLE",
    "get_all_permission_codes",
    "get_permissions_by_category",
    "get_permission_definition",
    "validate_permission_code",
]
