# Overview: Flask API routes for recipe edges between fnb main products and their components.

from flask import Blueprint, request, jsonify, g

from ..decorators import require_auth, require_policy
from ..errors import InvalidInput
from ..services import recipe_service
from ..validation import as_uuid, require_fields


recipes_bp = Blueprint("recipes", __name__, url_prefix="/api/recipes")


@recipes_bp.get("")
@require_auth
@require_policy("recipes", "read")
def list_recipes_route():
    """
    List the components of one fnb_main_product.

    Query parameters:
    - main_product_uuid: required
    """
    main_product_uuid = request.args.get("main_product_uuid")
    if not main_product_uuid:
        raise InvalidInput(detail="main_product_uuid is required")
    recipes = recipe_service.list_recipes(g.owner_id, main_product_uuid)
    return jsonify({"items": [r.to_dict() for r in recipes], "count": len(recipes)})


@recipes_bp.post("")
@require_auth
@require_policy("recipes", "write")
def create_recipe_route():
    """Request body: {main_product_uuid, component_uuid, quantity}"""
    data = require_fields(request.get_json(silent=True), "main_product_uuid", "component_uuid", "quantity")
    recipe = recipe_service.create_recipe(
        g.write_ctx,
        g.owner_id,
        main_product_uuid=as_uuid(data["main_product_uuid"], "main_product_uuid"),
        component_uuid=as_uuid(data["component_uuid"], "component_uuid"),
        quantity=data["quantity"],
    )
    return jsonify(recipe.to_dict()), 201


@recipes_bp.put("/<recipe_uuid>")
@require_auth
@require_policy("recipes", "write")
def update_recipe_route(recipe_uuid):
    """Request body: {quantity}"""
    data = require_fields(request.get_json(silent=True), "quantity")
    recipe = recipe_service.update_recipe_quantity(g.write_ctx, g.owner_id, recipe_uuid, data["quantity"])
    return jsonify(recipe.to_dict())


@recipes_bp.delete("/<recipe_uuid>")
@require_auth
@require_policy("recipes", "write")
def delete_recipe_route(recipe_uuid):
    recipe_service.delete_recipe(g.write_ctx, g.owner_id, recipe_uuid)
    return "", 204
