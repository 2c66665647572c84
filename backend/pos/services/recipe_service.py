# Overview: Service-layer operations for recipes; encapsulates business logic and database work.

"""
Recipe Resolver

WHY: An FnB main product holds no stock of its own. Selling one consumes its
components according to recipe edges (main, component, quantity-per-unit).

DESIGN:
- Main must be fnb_main_product, component must be fnb_component; components
  are leaves by type, so cycles cannot be built
- resolve() is read-only and used inside the order transaction
- Edges are returned in ascending component id so reservations built from them
  lock rows in a stable order
"""

from __future__ import annotations

from decimal import Decimal

from ..extensions import db
from ..errors import InvalidInput, Conflict, RecipeNotFound
from ..models import Product, Recipe, WriteContext
from ..models.catalog import PRODUCT_FNB_MAIN, PRODUCT_FNB_COMPONENT
from ..validation import as_decimal
from .tenant_service import scoped, require_product


def resolve(owner_id: int, main_product: Product) -> list[tuple[Product, Decimal]]:
    """Component consumption per one unit of `main_product`."""
    edges = (
        scoped(Recipe, owner_id)
        .join(Product, Product.id == Recipe.component_id)
        .filter(
            Recipe.main_product_id == main_product.id,
            Product.deleted_at.is_(None),
        )
        .order_by(Recipe.component_id)
        .all()
    )
    return [(edge.component, Decimal(edge.quantity)) for edge in edges]


def create_recipe(
    ctx: WriteContext,
    owner_id: int,
    *,
    main_product_uuid: str,
    component_uuid: str,
    quantity,
) -> Recipe:
    main = require_product(owner_id, main_product_uuid)
    component = require_product(owner_id, component_uuid)

    if main.type != PRODUCT_FNB_MAIN:
        raise InvalidInput(detail="recipe main product must be fnb_main_product")
    if component.type != PRODUCT_FNB_COMPONENT:
        raise InvalidInput(detail="recipe component must be fnb_component")

    qty = as_decimal(quantity, "quantity", minimum=Decimal("0"), allow_equal=False)

    duplicate = scoped(Recipe, owner_id).filter_by(
        main_product_id=main.id, component_id=component.id
    ).first()
    if duplicate:
        raise Conflict(detail="component already in recipe")

    recipe = ctx.add(Recipe(
        owner_id=owner_id,
        main_product_id=main.id,
        component_id=component.id,
        quantity=qty,
    ))
    db.session.commit()
    return recipe


def list_recipes(owner_id: int, main_product_uuid: str) -> list[Recipe]:
    main = require_product(owner_id, main_product_uuid)
    return (
        scoped(Recipe, owner_id)
        .filter_by(main_product_id=main.id)
        .order_by(Recipe.component_id)
        .all()
    )


def get_recipe(owner_id: int, recipe_uuid: str) -> Recipe:
    recipe = scoped(Recipe, owner_id).filter_by(uuid=recipe_uuid).first()
    if not recipe:
        raise RecipeNotFound()
    return recipe


def update_recipe_quantity(ctx: WriteContext, owner_id: int, recipe_uuid: str, quantity) -> Recipe:
    recipe = get_recipe(owner_id, recipe_uuid)
    recipe.quantity = as_decimal(quantity, "quantity", minimum=Decimal("0"), allow_equal=False)
    ctx.touch(recipe)
    db.session.commit()
    return recipe


def delete_recipe(ctx: WriteContext, owner_id: int, recipe_uuid: str) -> None:
    recipe = get_recipe(owner_id, recipe_uuid)
    ctx.soft_delete(recipe)
    db.session.commit()
