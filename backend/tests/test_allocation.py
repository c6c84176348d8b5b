"""
Allocation strategy tests (FIFO and explicit operator assignment).
"""

from decimal import Decimal

import pytest

from lotpos.errors import NotFoundError, ValidationError
from lotpos.models import ItemAssignment, SalesItem, SalesOrder
from lotpos.services import allocation_service
from lotpos.services.allocation_service import AssignmentMismatchError, InsufficientStockError


@pytest.fixture
def product(make_product):
    return make_product(name="Rebar 12mm", price="10.00")


@pytest.fixture
def make_item(db_session, branch):
    counter = {"n": 0}

    def _make(product, qty):
        counter["n"] += 1
        order = SalesOrder(
            invoice_number=f"TEST-{counter['n']:04d}",
            order_type="invoice",
            branch_id=branch.id,
            total_amount=Decimal("0"),
        )
        item = SalesItem(
            order=order,
            product=product,
            quantity=Decimal(str(qty)),
            unit_price=product.sale_price,
            subtotal=Decimal("0"),
        )
        db_session.add(item)
        db_session.flush()
        return item
    return _make


class TestFifo:

    def test_consumes_oldest_batches_first(self, product, make_batch, make_item, branch):
        old = make_batch(product, 4, minutes=0)
        mid = make_batch(product, 4, minutes=10)
        new = make_batch(product, 4, minutes=20)
        item = make_item(product, 6)

        assignments = allocation_service.allocate_fifo(
            sales_item=item, stock_product=product, branch_id=branch.id, required_quantity=6
        )

        assert [(a.batch.id, a.quantity_deducted) for a in assignments] == [
            (old.id, Decimal("4")),
            (mid.id, Decimal("2")),
        ]
        assert old.status == "depleted"
        assert mid.remaining_quantity == Decimal("2")
        assert new.remaining_quantity == Decimal("4")

    def test_insufficient_stock_deducts_nothing(self, product, make_batch, make_item, branch):
        batch = make_batch(product, 3)
        item = make_item(product, 5)

        with pytest.raises(InsufficientStockError) as exc:
            allocation_service.allocate_fifo(
                sales_item=item, stock_product=product, branch_id=branch.id, required_quantity=5
            )

        assert exc.value.details["required"] == "5.000"
        assert exc.value.details["available"] == "3.000"
        assert batch.remaining_quantity == Decimal("3")

    def test_ignores_other_branches(self, product, make_batch, make_item, branch, other_branch):
        make_batch(product, 10, branch_id=other_branch.id)
        item = make_item(product, 1)
        with pytest.raises(InsufficientStockError):
            allocation_service.allocate_fifo(
                sales_item=item, stock_product=product, branch_id=branch.id, required_quantity=1
            )

    def test_fractional_quantities(self, product, make_batch, make_item, branch):
        a = make_batch(product, "0.75", minutes=0)
        b = make_batch(product, "1.5", minutes=1)
        item = make_item(product, "1.25")

        allocation_service.allocate_fifo(
            sales_item=item, stock_product=product, branch_id=branch.id, required_quantity="1.25"
        )
        assert a.remaining_quantity == Decimal("0")
        assert b.remaining_quantity == Decimal("1")


class TestManual:

    def test_uses_exactly_the_chosen_batches(self, product, make_batch, make_item, branch):
        old = make_batch(product, 5, minutes=0)
        new = make_batch(product, 5, minutes=10)
        item = make_item(product, 3)

        allocation_service.allocate_manual(
            sales_item=item,
            stock_product=product,
            branch_id=branch.id,
            required_quantity=3,
            raw_assignments=[{"inventory_batch_id": new.id, "quantity_deducted": "3"}],
        )
        assert old.remaining_quantity == Decimal("5")
        assert new.remaining_quantity == Decimal("2")

    def test_total_must_match_exactly(self, product, make_batch, make_item, branch):
        batch = make_batch(product, 10)
        item = make_item(product, 6)

        with pytest.raises(AssignmentMismatchError):
            allocation_service.allocate_manual(
                sales_item=item,
                stock_product=product,
                branch_id=branch.id,
                required_quantity=6,
                raw_assignments=[{"inventory_batch_id": batch.id, "quantity_deducted": "5.999"}],
            )
        assert batch.remaining_quantity == Decimal("10")

    def test_repeated_batch_is_aggregated(self, product, make_batch, make_item, branch, db_session):
        batch = make_batch(product, 4)
        item = make_item(product, 4)

        assignments = allocation_service.allocate_manual(
            sales_item=item,
            stock_product=product,
            branch_id=branch.id,
            required_quantity=4,
            raw_assignments=[
                {"inventory_batch_id": batch.id, "quantity_deducted": 1},
                {"batch_id": batch.id, "quantity_deducted": 3},
            ],
        )
        assert len(assignments) == 1
        assert batch.status == "depleted"

    def test_aggregate_over_remaining_is_insufficient(self, product, make_batch, make_item, branch):
        small = make_batch(product, 2)
        item = make_item(product, 3)
        with pytest.raises(InsufficientStockError):
            allocation_service.allocate_manual(
                sales_item=item,
                stock_product=product,
                branch_id=branch.id,
                required_quantity=3,
                raw_assignments=[
                    {"inventory_batch_id": small.id, "quantity_deducted": 2},
                    {"inventory_batch_id": small.id, "quantity_deducted": 1},
                ],
            )

    def test_batch_of_another_product(self, product, make_product, make_batch, make_item, branch):
        other = make_product(name="Sand")
        wrong = make_batch(other, 10)
        item = make_item(product, 1)
        with pytest.raises(AssignmentMismatchError):
            allocation_service.allocate_manual(
                sales_item=item,
                stock_product=product,
                branch_id=branch.id,
                required_quantity=1,
                raw_assignments=[{"inventory_batch_id": wrong.id, "quantity_deducted": 1}],
            )

    def test_batch_at_another_branch(self, product, make_batch, make_item, branch, other_branch):
        remote = make_batch(product, 10, branch_id=other_branch.id)
        item = make_item(product, 1)
        with pytest.raises(AssignmentMismatchError):
            allocation_service.allocate_manual(
                sales_item=item,
                stock_product=product,
                branch_id=branch.id,
                required_quantity=1,
                raw_assignments=[{"inventory_batch_id": remote.id, "quantity_deducted": 1}],
            )

    def test_unknown_batch(self, product, make_item, branch):
        item = make_item(product, 1)
        with pytest.raises(NotFoundError):
            allocation_service.allocate_manual(
                sales_item=item,
                stock_product=product,
                branch_id=branch.id,
                required_quantity=1,
                raw_assignments=[{"inventory_batch_id": 999, "quantity_deducted": 1}],
            )

    @pytest.mark.parametrize("raw", [
        [],
        [{"quantity_deducted": 1}],
        [{"inventory_batch_id": 1, "quantity_deducted": "x"}],
        [{"inventory_batch_id": 1, "quantity_deducted": 0}],
        ["not-an-object"],
    ])
    def test_malformed_assignments(self, product, make_item, branch, raw):
        item = make_item(product, 1)
        with pytest.raises(ValidationError):
            allocation_service.allocate_manual(
                sales_item=item,
                stock_product=product,
                branch_id=branch.id,
                required_quantity=1,
                raw_assignments=raw,
            )


class TestDispatch:

    def test_records_assignment_rows(self, product, make_batch, make_item, branch, db_session):
        make_batch(product, 5)
        item = make_item(product, 2)
        allocation_service.allocate(
            sales_item=item, stock_product=product, branch_id=branch.id, required_quantity=2
        )
        db_session.flush()
        rows = db_session.query(ItemAssignment).filter_by(sales_item_id=item.id).all()
        assert len(rows) == 1
        assert rows[0].quantity_deducted == Decimal("2")
