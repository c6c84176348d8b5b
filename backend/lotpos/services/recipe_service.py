# Overview: Resolves manufactured virtual products to their raw material requirement.

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from ..extensions import db
from ..errors import NotFoundError
from ..models import Product, Recipe
from lotpos.money import multiply_quantity


class RecipeNotFoundError(NotFoundError):
    """A manufactured product was sold without a recipe."""
    pass


@dataclass(frozen=True)
class RawRequirement:
    recipe: Recipe
    raw_product_id: int
    raw_quantity: Decimal


def load_recipes(virtual_product_ids) -> dict[int, Recipe]:
    """Fetch recipes for many products in one query, keyed by virtual product id."""
    ids = set(virtual_product_ids)
    if not ids:
        return {}
    rows = db.session.query(Recipe).filter(Recipe.virtual_product_id.in_(ids)).all()
    return {r.virtual_product_id: r for r in rows}


def required_raw_quantity(recipe: Recipe, sold_quantity) -> Decimal:
    """sold quantity * conversion_factor, at quantity scale."""
    return multiply_quantity(sold_quantity, recipe.conversion_factor)


def resolve(product: Product, sold_quantity, recipes: dict[int, Recipe] | None = None) -> RawRequirement:
    """
    Raw product and quantity consumed by selling sold_quantity of product.

    recipes is the prefetched map from load_recipes; without it the recipe
    is looked up directly.
    """
    if recipes is not None:
        recipe = recipes.get(product.id)
    else:
        recipe = db.session.query(Recipe).filter_by(virtual_product_id=product.id).first()
    if recipe is None:
        raise RecipeNotFoundError(
            f"No recipe found for manufactured product '{product.name}'",
            {"product_id": product.id},
        )
    return RawRequirement(
        recipe=recipe,
        raw_product_id=recipe.raw_product_id,
        raw_quantity=required_raw_quantity(recipe, sold_quantity),
    )
