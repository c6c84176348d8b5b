"""Fixed-precision arithmetic used for every money and quantity value."""

from decimal import Decimal

import pytest

from lotpos import money


class TestConversion:

    def test_float_goes_through_repr(self):
        assert money.to_decimal(0.1) == Decimal("0.1")

    def test_none_is_zero(self):
        assert money.to_decimal(None) == Decimal("0")

    @pytest.mark.parametrize("bad", ["abc", "", "NaN", "Infinity", True])
    def test_rejects_non_numbers(self, bad):
        with pytest.raises(ValueError):
            money.to_decimal(bad)


class TestRounding:

    def test_money_rounds_half_up(self):
        assert money.money("2.005") == Decimal("2.01")
        assert money.money("2.004") == Decimal("2.00")

    def test_quantity_keeps_three_places(self):
        assert money.quantity("1.2345") == Decimal("1.235")

    def test_line_subtotal(self):
        assert money.multiply(3, "33.33") == Decimal("99.99")

    def test_no_float_drift_in_totals(self):
        assert money.total([0.1, 0.2]) == Decimal("0.30")

    def test_recipe_conversion(self):
        assert money.multiply_quantity("2.5", "1.333") == Decimal("3.333")

    def test_percentage(self):
        assert money.percentage("200.00", "5") == Decimal("10.00")
        assert money.percentage("99.99", "2.5") == Decimal("2.50")


class TestComparisons:

    def test_quantities_equal_is_exact_at_three_places(self):
        assert money.quantities_equal("6.0", 6)
        assert money.quantities_equal("6.0004", "6")
        assert not money.quantities_equal("5.999", "6")

    def test_is_positive(self):
        assert money.is_positive("0.01")
        assert not money.is_positive(0)
        assert not money.is_positive(None)

    def test_format_amount_keeps_trailing_zeros(self):
        assert money.format_amount(Decimal("12.50")) == "12.50"
