# Overview: Explicit caller context and the injectable authorization policy.

"""
Authorization for the sales engine.

WHY: Services never read request globals. Every operation receives a
CallerContext (who is acting, from which branch, with which capabilities)
and asks an AuthorizationPolicy whether the action is allowed. Tests and
embedding code can pass their own policy.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol

from ..extensions import db
from ..errors import AuthorizationError, ValidationError
from ..models import User
from ..permissions import Permission, SUPER_ADMIN_ROLE


@dataclass(frozen=True)
class CallerContext:
    """Identity and capabilities of whoever is invoking a service."""
    user_id: int | None
    branch_id: int | None
    permissions: frozenset = field(default_factory=frozenset)
    is_super_admin: bool = False

    @classmethod
    def for_user(cls, user: User) -> "CallerContext":
        """Build the context from a user's role and assigned branch."""
        role = user.role
        codes = role.permission_codes() if role else []
        permissions = frozenset(p for p in (Permission.parse(c) for c in codes) if p is not None)
        return cls(
            user_id=user.id,
            branch_id=user.branch_id,
            permissions=permissions,
            is_super_admin=bool(role and role.name == SUPER_ADMIN_ROLE),
        )


class AuthorizationPolicy(Protocol):
    """
    What a policy must answer. The require_*/resolve_branch helpers below
    are built on these three questions, so a custom policy needs nothing else.
    """

    def has_permission(self, caller: CallerContext, permission: Permission) -> bool: ...

    def has_unrestricted_branch_access(self, caller: CallerContext) -> bool: ...

    def can_access_branch(self, caller: CallerContext, branch_id: int | None) -> bool: ...


class RoleAuthorizationPolicy:
    """
    Default policy: permissions come from the caller's role.

    - Super Admin holds every permission and sees every branch
    - BRANCH_ACCESS_ALL lifts branch isolation
    - everyone else acts only on their assigned branch
    """

    def has_permission(self, caller: CallerContext, permission: Permission) -> bool:
        return caller.is_super_admin or permission in caller.permissions

    def has_unrestricted_branch_access(self, caller: CallerContext) -> bool:
        return self.has_permission(caller, Permission.BRANCH_ACCESS_ALL)

    def can_access_branch(self, caller: CallerContext, branch_id: int | None) -> bool:
        if self.has_unrestricted_branch_access(caller):
            return True
        return branch_id is not None and caller.branch_id == branch_id


default_policy = RoleAuthorizationPolicy()


def get_policy(policy=None):
    return policy or default_policy


def require_permission(
    policy: AuthorizationPolicy,
    caller: CallerContext,
    permission: Permission,
    message: str | None = None,
) -> None:
    if not policy.has_permission(caller, permission):
        raise AuthorizationError(
            message or "Permission denied",
            {"required_permission": permission.value},
        )


def require_branch_access(policy: AuthorizationPolicy, caller: CallerContext, branch_id: int | None) -> None:
    if not policy.can_access_branch(caller, branch_id):
        raise AuthorizationError(
            "Access denied for this branch",
            {"branch_id": branch_id},
        )


def resolve_branch(policy: AuthorizationPolicy, caller: CallerContext, requested_branch_id: int | None) -> int:
    """Requested branch, else the caller's own; must be accessible."""
    branch_id = requested_branch_id or caller.branch_id
    if not branch_id:
        raise ValidationError("branch_id is required")
    require_branch_access(policy, caller, branch_id)
    return branch_id


def load_caller(user_id: int) -> CallerContext | None:
    """CallerContext for an active user id, or None."""
    user = db.session.get(User, user_id)
    if not user or not user.is_active:
        return None
    return CallerContext.for_user(user)
