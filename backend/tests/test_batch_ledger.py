"""
Batch ledger tests.

Verifies:
- deduct/restore keep 0 <= remaining <= initial
- status flips between in_stock and depleted with the quantity
- receipt rejects manufactured products and non-positive quantities
- FIFO candidates come back oldest first
"""

from decimal import Decimal

import pytest

from lotpos.errors import NotFoundError, ValidationError
from lotpos.services import batch_ledger
from lotpos.services.batch_ledger import BatchError, DEPLETED, IN_STOCK


@pytest.fixture
def product(make_product):
    return make_product(name="Cement 50kg")


class TestReceive:

    def test_receive_creates_in_stock_batch(self, product, branch):
        batch = batch_ledger.receive_batch(
            product_id=product.id,
            branch_id=branch.id,
            quantity_received="12.5",
            batch_identifier="LOT-1",
        )
        assert batch.status == IN_STOCK
        assert batch.initial_quantity == Decimal("12.5")
        assert batch.remaining_quantity == Decimal("12.5")

    def test_rejects_manufactured_product(self, make_product, make_recipe, branch):
        raw = make_product(name="Steel coil")
        virtual = make_recipe(raw, factor="2")
        with pytest.raises(ValidationError):
            batch_ledger.receive_batch(product_id=virtual.id, branch_id=branch.id, quantity_received=5)

    @pytest.mark.parametrize("qty", [0, "-1"])
    def test_rejects_non_positive_quantity(self, product, branch, qty):
        with pytest.raises(ValidationError):
            batch_ledger.receive_batch(product_id=product.id, branch_id=branch.id, quantity_received=qty)

    def test_unknown_branch(self, product):
        with pytest.raises(NotFoundError):
            batch_ledger.receive_batch(product_id=product.id, branch_id=999, quantity_received=1)


class TestDeductRestore:

    def test_deduct_to_zero_depletes(self, product, make_batch, db_session):
        batch = make_batch(product, 5)
        batch_ledger.deduct(batch, 5)
        assert batch.remaining_quantity == Decimal("0")
        assert batch.status == DEPLETED

    def test_cannot_deduct_more_than_remaining(self, product, make_batch):
        batch = make_batch(product, 5)
        with pytest.raises(BatchError):
            batch_ledger.deduct(batch, "5.001")
        assert batch.remaining_quantity == Decimal("5")

    def test_cannot_deduct_from_depleted(self, product, make_batch):
        batch = make_batch(product, 1)
        batch_ledger.deduct(batch, 1)
        with pytest.raises(BatchError):
            batch_ledger.deduct(batch, "0.5")

    def test_restore_reopens_depleted_batch(self, product, make_batch):
        batch = make_batch(product, 2)
        batch_ledger.deduct(batch, 2)
        batch_ledger.restore(batch, "0.5")
        assert batch.status == IN_STOCK
        assert batch.remaining_quantity == Decimal("0.5")

    def test_restore_cannot_exceed_initial(self, product, make_batch):
        batch = make_batch(product, 2)
        batch_ledger.deduct(batch, 1)
        with pytest.raises(BatchError):
            batch_ledger.restore(batch, "1.001")

    def test_non_positive_amounts_rejected(self, product, make_batch):
        batch = make_batch(product, 2)
        with pytest.raises(ValidationError):
            batch_ledger.deduct(batch, 0)
        with pytest.raises(ValidationError):
            batch_ledger.restore(batch, 0)


class TestQueries:

    def test_fifo_candidates_oldest_first(self, product, make_batch, branch, other_branch):
        newer = make_batch(product, 3, minutes=30)
        older = make_batch(product, 3, minutes=10)
        make_batch(product, 3, minutes=0, branch_id=other_branch.id)
        empty = make_batch(product, 1, minutes=5)
        batch_ledger.deduct(empty, 1)

        ids = [b.id for b in batch_ledger.lock_fifo_candidates(product.id, branch.id)]
        assert ids == [older.id, newer.id]

    def test_available_quantity_sums_in_stock_batches(self, product, make_batch, branch):
        make_batch(product, "2.5")
        make_batch(product, "1.25", minutes=1)
        assert batch_ledger.available_quantity(product.id, branch.id) == Decimal("3.75")

    def test_lock_batches_reports_missing(self, product, make_batch):
        batch = make_batch(product, 1)
        with pytest.raises(NotFoundError) as exc:
            batch_ledger.lock_batches([batch.id, 4242])
        assert exc.value.details["missing_batch_ids"] == [4242]
