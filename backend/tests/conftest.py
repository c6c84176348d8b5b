"""
Pytest fixtures for lotpos backend tests.

Provides the in-memory database app, per-test data wipe, catalog/stock
factories, caller contexts and HTTP auth helpers.
"""

from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from lotpos import create_app
from lotpos.extensions import db
from lotpos.models import (
    Agent,
    Branch,
    Customer,
    Product,
    ProductBranch,
    Recipe,
    Role,
    User,
)
from lotpos.permissions import DEFAULT_ROLE_PERMISSIONS, Permission, SUPER_ADMIN_ROLE
from lotpos.services import batch_ledger, permission_service, session_service
from lotpos.services.authorization import CallerContext


BASE_TIME = datetime(2026, 1, 1, 8, 0, 0)


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'DB_RETRY_ATTEMPTS': 1,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function', autouse=True)
def db_session(app):
    """Fresh data for each test (schema kept)."""
    with app.app_context():
        db.session.rollback()
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        db.session.rollback()


# =============================================================================
# Branches and parties
# =============================================================================

@pytest.fixture
def branch(db_session):
    b = Branch(name="Main Branch", code="MAIN")
    db_session.add(b)
    db_session.commit()
    return b


@pytest.fixture
def other_branch(db_session):
    b = Branch(name="North Branch", code="NORTH")
    db_session.add(b)
    db_session.commit()
    return b


@pytest.fixture
def make_customer(db_session, branch):
    def _make(name="Acme Builders", balance="0", branch_id=None):
        customer = Customer(name=name, branch_id=branch_id or branch.id, ledger_balance=Decimal(balance))
        db_session.add(customer)
        db_session.commit()
        return customer
    return _make


@pytest.fixture
def customer(make_customer):
    return make_customer()


@pytest.fixture
def make_agent(db_session, branch):
    def _make(name="Sam Agent", rate="5", branch_id=None, is_active=True):
        agent = Agent(name=name, commission_rate=Decimal(rate), branch_id=branch_id or branch.id, is_active=is_active)
        db_session.add(agent)
        db_session.commit()
        return agent
    return _make


# =============================================================================
# Catalog and stock
# =============================================================================

@pytest.fixture
def make_product(db_session):
    counter = {"n": 0}

    def _make(name=None, price="100.00", type="standard", manage_stock=True, branches=None):
        counter["n"] += 1
        product = Product(
            name=name or f"Product {counter['n']}",
            sku=f"SKU-{counter['n']:04d}",
            type=type,
            manage_stock=manage_stock,
            sale_price=Decimal(price),
        )
        db_session.add(product)
        db_session.flush()
        for b in branches or []:
            db_session.add(ProductBranch(product_id=product.id, branch_id=b.id))
        db_session.commit()
        return product
    return _make


@pytest.fixture
def make_batch(db_session, branch):
    """Receive a batch; minutes orders batches for FIFO (lower = older)."""
    def _make(product, qty, minutes=0, branch_id=None, identifier=None):
        return batch_ledger.receive_batch(
            product_id=product.id,
            branch_id=branch_id or branch.id,
            quantity_received=qty,
            batch_identifier=identifier,
            created_at=BASE_TIME + timedelta(minutes=minutes),
        )
    return _make


@pytest.fixture
def make_recipe(db_session, make_product):
    """Manufactured virtual product backed by a raw product."""
    def _make(raw_product, factor="1", price="50.00", name=None):
        virtual = make_product(name=name, price=price, type="manufactured_virtual")
        recipe = Recipe(virtual_product_id=virtual.id, raw_product_id=raw_product.id, conversion_factor=Decimal(factor))
        db_session.add(recipe)
        db_session.commit()
        return virtual
    return _make


# =============================================================================
# Caller contexts
# =============================================================================

def caller_for(role_name, user_id, branch_id):
    """CallerContext with a default role's permission set."""
    return CallerContext(
        user_id=user_id,
        branch_id=branch_id,
        permissions=frozenset(DEFAULT_ROLE_PERMISSIONS[role_name]),
        is_super_admin=role_name == SUPER_ADMIN_ROLE,
    )


@pytest.fixture
def setup_roles(db_session):
    """Default roles and permission grants."""
    permission_service.ensure_default_roles()


@pytest.fixture
def make_user(db_session, branch, setup_roles):
    def _make(username, role_name, branch_id=None, head_office=False):
        role = db_session.query(Role).filter_by(name=role_name).first()
        user = User(
            username=username,
            full_name=username.title(),
            role_id=role.id,
            branch_id=None if head_office else (branch_id or branch.id),
        )
        db_session.add(user)
        db_session.commit()
        return user
    return _make


@pytest.fixture
def cashier(make_user):
    return make_user("cashier", "Cashier")


@pytest.fixture
def manager(make_user):
    return make_user("manager", "Branch Manager")


@pytest.fixture
def admin(make_user):
    return make_user("admin", SUPER_ADMIN_ROLE, head_office=True)


@pytest.fixture
def cashier_caller(cashier):
    return caller_for("Cashier", cashier.id, cashier.branch_id)


@pytest.fixture
def manager_caller(manager):
    return caller_for("Branch Manager", manager.id, manager.branch_id)


@pytest.fixture
def admin_caller(admin):
    return caller_for(SUPER_ADMIN_ROLE, admin.id, None)


@pytest.fixture
def production_caller(make_user):
    user = make_user("floor", "Production")
    return caller_for("Production", user.id, user.branch_id)


@pytest.fixture
def list_price_caller(make_user):
    """POS user who may not change prices."""
    user = make_user("trainee", "Cashier")
    return CallerContext(
        user_id=user.id,
        branch_id=user.branch_id,
        permissions=frozenset({Permission.POS_ACCESS}),
    )


# =============================================================================
# HTTP helpers
# =============================================================================

def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture
def headers_for(db_session):
    def _headers(user):
        _, token = session_service.issue_token(user.id)
        return auth_headers(token)
    return _headers


@pytest.fixture
def cashier_headers(cashier, headers_for):
    return headers_for(cashier)


@pytest.fixture
def manager_headers(manager, headers_for):
    return headers_for(manager)
