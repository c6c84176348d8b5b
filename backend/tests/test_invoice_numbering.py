"""Invoice number allocation (INV-YYYYMMDD-NNNN, daily sequence)."""

import threading
from datetime import date
from decimal import Decimal

import pytest

from lotpos import create_app
from lotpos.extensions import db
from lotpos.models import Branch, Product, Role, SalesOrder, User
from lotpos.services import permission_service, sales_service, session_service
from lotpos.services.authorization import CallerContext
from lotpos.services.document_service import invoice_stem, next_invoice_number
from lotpos.time_utils import today


def _store(number, branch, db_session):
    db_session.add(SalesOrder(
        invoice_number=number,
        order_type="draft",
        branch_id=branch.id,
        total_amount=Decimal("0"),
    ))
    db_session.commit()


class TestNextInvoiceNumber:

    def test_first_of_the_day(self, db_session):
        assert next_invoice_number(day=date(2026, 3, 9)) == "INV-20260309-0001"

    def test_increments_per_day(self, branch, db_session):
        _store("INV-20260309-0007", branch, db_session)
        _store("INV-20260308-0042", branch, db_session)
        assert next_invoice_number(day=date(2026, 3, 9)) == "INV-20260309-0008"
        assert next_invoice_number(day=date(2026, 3, 10)) == "INV-20260310-0001"

    def test_continues_past_9999(self, branch, db_session):
        _store("INV-20260309-9999", branch, db_session)
        assert next_invoice_number(day=date(2026, 3, 9)) == "INV-20260309-10000"

        _store("INV-20260309-10000", branch, db_session)
        assert next_invoice_number(day=date(2026, 3, 9)) == "INV-20260309-10001"

    def test_custom_prefix(self, db_session):
        assert invoice_stem(date(2026, 3, 9), "QT") == "QT-20260309-"


class TestSalesGetSequentialNumbers:

    def test_every_order_type_draws_from_the_sequence(self, cashier_caller, make_product):
        product = make_product(price="10.00", manage_stock=False)
        items = [{"product_id": product.id, "quantity": 1, "unit_price": "10.00"}]

        first = sales_service.create_sale(cashier_caller, items=items)
        second = sales_service.create_sale(cashier_caller, items=items, order_type="draft")
        third = sales_service.create_sale(cashier_caller, items=items, order_type="quotation")

        stem = invoice_stem(today())
        assert [first.invoice_number, second.invoice_number, third.invoice_number] == [
            f"{stem}0001", f"{stem}0002", f"{stem}0003",
        ]


# =============================================================================
# CONCURRENT SALES
# =============================================================================

WORKERS = 8


@pytest.fixture
def file_app(tmp_path):
    """App on a file database: each thread gets its own connection."""
    file_app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': f"sqlite:///{tmp_path / 'concurrency.sqlite3'}",
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'DB_RETRY_ATTEMPTS': 5,
    })
    with file_app.app_context():
        db.create_all()

    yield file_app

    with file_app.app_context():
        db.session.remove()
        db.engine.dispose()


@pytest.fixture
def storefront(file_app):
    """Cashier, token and an unmanaged product in the file database."""
    with file_app.app_context():
        permission_service.ensure_default_roles()
        branch = Branch(name="Main Branch", code="MAIN")
        db.session.add(branch)
        db.session.flush()

        role = db.session.query(Role).filter_by(name="Cashier").one()
        user = User(username="cashier", full_name="Cashier", role_id=role.id, branch_id=branch.id)
        product = Product(
            name="Delivery fee", sku="SKU-0001", type="standard", manage_stock=False, sale_price=Decimal("15.00")
        )
        db.session.add_all([user, product])
        db.session.commit()

        caller = CallerContext.for_user(user)
        _, token = session_service.issue_token(user.id)
        items = [{"product_id": product.id, "quantity": 1, "unit_price": "15.00"}]
    return caller, token, items


def _run_together(work):
    """Start WORKERS threads at once; collect results and exceptions."""
    barrier = threading.Barrier(WORKERS)
    results, errors = [], []

    def _worker():
        barrier.wait()
        try:
            results.append(work())
        except Exception as exc:
            errors.append(exc)

    threads = [threading.Thread(target=_worker) for _ in range(WORKERS)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=60)
    return results, errors


def _expected_numbers():
    stem = invoice_stem(today())
    return [f"{stem}{n:04d}" for n in range(1, WORKERS + 1)]


class TestConcurrentSales:

    def test_service_calls_never_share_a_number(self, file_app, storefront):
        caller, _, items = storefront

        def _sell():
            with file_app.app_context():
                return sales_service.create_sale(caller, items=items).invoice_number

        numbers, errors = _run_together(_sell)

        assert errors == []
        assert sorted(numbers) == _expected_numbers()

    def test_http_sales_never_share_a_number(self, file_app, storefront):
        _, token, items = storefront
        headers = {'Authorization': f'Bearer {token}'}

        def _post():
            resp = file_app.test_client().post("/api/sales/", json={"items": items}, headers=headers)
            return resp.status_code, resp.get_json()

        responses, errors = _run_together(_post)

        assert errors == []
        assert [status for status, _ in responses] == [201] * WORKERS
        assert sorted(body["order"]["invoice_number"] for _, body in responses) == _expected_numbers()
