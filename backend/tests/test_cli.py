"""Operator CLI commands (flask system/users/perms/ledger/batches)."""

from decimal import Decimal

import pytest

from lotpos.models import Branch, InventoryBatch, LedgerEntry, User
from lotpos.services import ledger_service, session_service


@pytest.fixture
def runner(app):
    return app.test_cli_runner()


class TestSystemInit:

    def test_init_is_idempotent(self, runner, db_session):
        first = runner.invoke(args=["system", "init"])
        assert first.exit_code == 0
        assert "PASS Created user: admin" in first.output

        second = runner.invoke(args=["system", "init"])
        assert second.exit_code == 0
        assert "already exists" in second.output

        assert db_session.query(Branch).count() == 1
        assert db_session.query(User).filter_by(username="admin").count() == 1

    def test_issued_token_authenticates(self, runner, db_session):
        runner.invoke(args=["system", "init"])
        result = runner.invoke(args=["users", "issue-token", "admin"])

        token = result.output.strip().splitlines()[-1]
        assert session_service.validate_token(token).username == "admin"

    def test_issue_token_for_unknown_user(self, runner, db_session):
        result = runner.invoke(args=["users", "issue-token", "ghost"])
        assert "FAIL" in result.output


class TestPerms:

    def test_grant_unknown_code(self, runner, setup_roles):
        result = runner.invoke(args=["perms", "grant", "Cashier", "fly"])
        assert "FAIL" in result.output

    def test_list_by_category(self, runner, db_session):
        result = runner.invoke(args=["perms", "list", "--category", "PRODUCTION"])
        assert result.exit_code == 0
        assert "production_update_status" in result.output


class TestBatches:

    def test_receive(self, runner, make_product, branch, db_session):
        product = make_product(name="Cement 50kg")
        result = runner.invoke(args=[
            "batches", "receive",
            "--product-id", str(product.id),
            "--branch-id", str(branch.id),
            "--quantity", "12.5",
            "--identifier", "LOT-9",
            "--received-at", "2026-01-02T09:00:00Z",
        ])

        assert result.exit_code == 0
        assert "PASS Received batch" in result.output
        batch = db_session.query(InventoryBatch).one()
        assert batch.remaining_quantity == Decimal("12.5")

    def test_receive_rejects_bad_quantity(self, runner, make_product, branch, db_session):
        product = make_product()
        result = runner.invoke(args=[
            "batches", "receive", "--product-id", str(product.id), "--branch-id", str(branch.id), "--quantity", "0",
        ])
        assert "FAIL" in result.output
        assert db_session.query(InventoryBatch).count() == 0


class TestLedgerRepair:

    def test_repairs_cached_balance(self, runner, customer, db_session):
        ledger_service.post_entry(party_type="customer", party_id=customer.id, transaction_type="INVOICE", debit="75")
        db_session.commit()
        customer.ledger_balance = Decimal("1")
        db_session.commit()

        result = runner.invoke(args=["ledger", "repair", "--party-type", "customer", "--party-id", str(customer.id)])

        assert "DONE Recalculated 1 ledger(s)" in result.output
        assert customer.ledger_balance == Decimal("75.00")
        assert db_session.query(LedgerEntry).count() == 1

    def test_party_id_needs_type(self, runner, db_session):
        result = runner.invoke(args=["ledger", "repair", "--party-id", "3"])
        assert "FAIL" in result.output
