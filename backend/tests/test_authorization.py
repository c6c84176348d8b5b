"""
Authorization tests.

Verifies:
- role permissions flow into CallerContext
- branch isolation, with Super Admin and BRANCH_ACCESS_ALL exempt
- session tokens validate, expire and revoke
- default role seeding is idempotent
"""

from datetime import timedelta

import pytest

from lotpos.errors import AuthorizationError, ValidationError
from lotpos.models import Role, RolePermission, SessionToken
from lotpos.permissions import Permission
from lotpos.services import permission_service, sales_service, session_service
from lotpos.services.authorization import (
    CallerContext,
    default_policy,
    load_caller,
    require_branch_access,
    require_permission,
    resolve_branch,
)
from lotpos.services.permission_service import RoleConfigError
from lotpos.time_utils import utcnow


# =============================================================================
# CALLER CONTEXT
# =============================================================================


class TestCallerContext:

    def test_cashier_permissions(self, cashier):
        caller = CallerContext.for_user(cashier)
        assert Permission.POS_ACCESS in caller.permissions
        assert Permission.SALE_CANCEL not in caller.permissions
        assert caller.branch_id == cashier.branch_id
        assert not caller.is_super_admin

    def test_super_admin_flag(self, admin):
        caller = CallerContext.for_user(admin)
        assert caller.is_super_admin
        assert caller.branch_id is None

    def test_inactive_user_has_no_context(self, cashier, db_session):
        cashier.is_active = False
        db_session.commit()
        assert load_caller(cashier.id) is None


# =============================================================================
# POLICY
# =============================================================================


class TestPolicy:

    def test_branch_isolation(self, cashier_caller, branch, other_branch):
        assert default_policy.can_access_branch(cashier_caller, branch.id)
        assert not default_policy.can_access_branch(cashier_caller, other_branch.id)
        with pytest.raises(AuthorizationError) as exc:
            require_branch_access(default_policy, cashier_caller, other_branch.id)
        assert exc.value.status_code == 403

    def test_super_admin_sees_every_branch(self, admin_caller, other_branch):
        assert default_policy.can_access_branch(admin_caller, other_branch.id)
        assert default_policy.has_permission(admin_caller, Permission.SALE_CANCEL)

    def test_branch_access_all_lifts_isolation(self, other_branch):
        auditor = CallerContext(user_id=1, branch_id=None, permissions=frozenset({Permission.BRANCH_ACCESS_ALL}))
        assert default_policy.can_access_branch(auditor, other_branch.id)

    def test_require_permission_reports_code(self, cashier_caller):
        with pytest.raises(AuthorizationError) as exc:
            require_permission(default_policy, cashier_caller, Permission.LEDGER_VIEW)
        assert exc.value.details["required_permission"] == "ledger_view"

    def test_resolve_branch_defaults_to_callers(self, cashier_caller, branch):
        assert resolve_branch(default_policy, cashier_caller, None) == branch.id

    def test_resolve_branch_needs_a_branch(self, admin_caller):
        with pytest.raises(ValidationError):
            resolve_branch(default_policy, admin_caller, None)


class BranchOnlyPolicy:
    """Minimal policy: any permission, own branch only."""

    def has_permission(self, caller, permission):
        return True

    def has_unrestricted_branch_access(self, caller):
        return False

    def can_access_branch(self, caller, branch_id):
        return branch_id == caller.branch_id


class DenyAllPolicy(BranchOnlyPolicy):
    def has_permission(self, caller, permission):
        return False


class TestCustomPolicy:

    def test_three_method_policy_drives_a_sale(self, branch, make_product):
        fee = make_product(name="Delivery fee", price="15.00", manage_stock=False)
        caller = CallerContext(user_id=None, branch_id=branch.id)

        order = sales_service.create_sale(
            caller,
            items=[{"product_id": fee.id, "quantity": 1, "unit_price": "15.00"}],
            order_type="draft",
            policy=BranchOnlyPolicy(),
        )

        assert order.branch_id == branch.id

    def test_three_method_policy_denies(self, branch, other_branch, make_product):
        fee = make_product(name="Delivery fee", price="15.00", manage_stock=False)
        caller = CallerContext(user_id=None, branch_id=branch.id)
        items = [{"product_id": fee.id, "quantity": 1, "unit_price": "15.00"}]

        with pytest.raises(AuthorizationError) as exc:
            sales_service.create_sale(caller, items=items, policy=DenyAllPolicy())
        assert exc.value.details["required_permission"] == "pos_access"

        with pytest.raises(AuthorizationError):
            sales_service.create_sale(caller, items=items, branch_id=other_branch.id, policy=BranchOnlyPolicy())


# =============================================================================
# SESSION TOKENS
# =============================================================================


class TestSessionTokens:

    def test_issue_and_validate(self, cashier, db_session):
        record, token = session_service.issue_token(cashier.id)
        assert record.token_hash != token
        assert session_service.validate_token(token).id == cashier.id

    def test_unknown_token(self, db_session):
        assert session_service.validate_token("nope") is None
        assert session_service.validate_token("") is None

    def test_expired_token(self, cashier, db_session):
        record, token = session_service.issue_token(cashier.id)
        record.expires_at = utcnow() - timedelta(minutes=1)
        db_session.commit()
        assert session_service.validate_token(token) is None

    def test_revoked_token(self, cashier, db_session):
        _, token = session_service.issue_token(cashier.id)
        assert session_service.revoke_token(token) is True
        assert session_service.validate_token(token) is None
        assert session_service.revoke_token(token) is False

    def test_inactive_user_cannot_get_token(self, cashier, db_session):
        cashier.is_active = False
        db_session.commit()
        with pytest.raises(ValueError):
            session_service.issue_token(cashier.id)
        assert db_session.query(SessionToken).count() == 0


# =============================================================================
# ROLE SEEDING
# =============================================================================


class TestRoleSeeding:

    def test_ensure_default_roles_is_idempotent(self, setup_roles, db_session):
        grants = db_session.query(RolePermission).count()
        assert permission_service.ensure_default_roles() == (0, 0)
        assert db_session.query(RolePermission).count() == grants

    def test_grant_and_revoke(self, setup_roles, db_session):
        assert permission_service.grant_permission("Cashier", "sale_cancel") is True
        assert permission_service.grant_permission("Cashier", "sale_cancel") is False

        cashier_role = db_session.query(Role).filter_by(name="Cashier").one()
        assert "sale_cancel" in cashier_role.permission_codes()

        assert permission_service.revoke_permission("Cashier", "sale_cancel") is True
        assert permission_service.revoke_permission("Cashier", "sale_cancel") is False

    def test_unknown_code_or_role(self, setup_roles):
        with pytest.raises(RoleConfigError):
            permission_service.grant_permission("Cashier", "fly")
        with pytest.raises(RoleConfigError):
            permission_service.grant_permission("Janitor", "pos_access")
