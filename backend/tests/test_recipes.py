"""Recipe resolution for manufactured virtual products."""

from decimal import Decimal

import pytest

from lotpos.services import recipe_service
from lotpos.services.recipe_service import RecipeNotFoundError


class TestResolve:

    def test_scales_by_conversion_factor(self, make_product, make_recipe):
        raw = make_product(name="Steel coil")
        virtual = make_recipe(raw, factor="2")

        requirement = recipe_service.resolve(virtual, 3)

        assert requirement.raw_product_id == raw.id
        assert requirement.raw_quantity == Decimal("6.000")

    def test_fractional_factor_rounds_to_quantity_scale(self, make_product, make_recipe):
        raw = make_product(name="Glass sheet")
        virtual = make_recipe(raw, factor="0.333")
        assert recipe_service.resolve(virtual, "2.5").raw_quantity == Decimal("0.833")

    def test_uses_prefetched_map(self, make_product, make_recipe):
        raw = make_product(name="Timber")
        virtual = make_recipe(raw, factor="1.5")
        recipes = recipe_service.load_recipes([virtual.id])
        assert recipe_service.resolve(virtual, 2, recipes).raw_quantity == Decimal("3")

    def test_missing_recipe(self, make_product):
        orphan = make_product(name="Custom gate", type="manufactured_virtual")
        with pytest.raises(RecipeNotFoundError) as exc:
            recipe_service.resolve(orphan, 1)
        assert exc.value.status_code == 404

    def test_missing_from_prefetched_map(self, make_product):
        orphan = make_product(name="Custom door", type="manufactured_virtual")
        with pytest.raises(RecipeNotFoundError):
            recipe_service.resolve(orphan, 1, {})
