# Overview: Flask API routes for products, variants and add-on bindings.

"""
Product Routes

Product types: retail_item, fnb_main_product, fnb_component, add_on.
Variants carry their own price and optional SKU. Add-on bindings attach an
add_on product to another product with an optional override price.
"""

from flask import Blueprint, request, jsonify, g

from ..decorators import require_auth, require_policy
from ..services import catalog_service
from ..services.tenant_service import require_product


products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
@require_auth
@require_policy("products", "read")
def list_products_route():
    """
    Query parameters:
    - type: restrict to one product type
    """
    products = catalog_service.list_products(g.owner_id, request.args.get("type"))
    return jsonify({"items": [p.to_dict() for p in products], "count": len(products)})


@products_bp.post("")
@require_auth
@require_policy("products", "write")
def create_product_route():
    """Request body: {name, type, price?, sku?, description?}"""
    product = catalog_service.create_product(g.write_ctx, g.owner_id, request.get_json(silent=True))
    return jsonify(product.to_dict(include_children=True)), 201


@products_bp.get("/<product_uuid>")
@require_auth
@require_policy("products", "read")
def get_product_route(product_uuid):
    return jsonify(require_product(g.owner_id, product_uuid).to_dict(include_children=True))


@products_bp.put("/<product_uuid>")
@require_auth
@require_policy("products", "write")
def update_product_route(product_uuid):
    product = catalog_service.update_product(
        g.write_ctx, g.owner_id, product_uuid, request.get_json(silent=True) or {},
    )
    return jsonify(product.to_dict(include_children=True))


@products_bp.delete("/<product_uuid>")
@require_auth
@require_policy("products", "write")
def delete_product_route(product_uuid):
    catalog_service.delete_product(g.write_ctx, g.owner_id, product_uuid)
    return "", 204


# =============================================================================
# VARIANTS
# =============================================================================

@products_bp.post("/<product_uuid>/variants")
@require_auth
@require_policy("products", "write")
def add_variant_route(product_uuid):
    """Request body: {name, price, sku?}"""
    variant = catalog_service.add_variant(
        g.write_ctx, g.owner_id, product_uuid, request.get_json(silent=True),
    )
    return jsonify(variant.to_dict()), 201


@products_bp.delete("/<product_uuid>/variants/<variant_uuid>")
@require_auth
@require_policy("products", "write")
def delete_variant_route(product_uuid, variant_uuid):
    catalog_service.delete_variant(g.write_ctx, g.owner_id, product_uuid, variant_uuid)
    return "", 204


# =============================================================================
# ADD-ONS
# =============================================================================

@products_bp.get("/<product_uuid>/add-ons")
@require_auth
@require_policy("products", "read")
def list_add_ons_route(product_uuid):
    bindings = catalog_service.list_add_ons(g.owner_id, product_uuid)
    return jsonify({"items": [b.to_dict() for b in bindings], "count": len(bindings)})


@products_bp.post("/<product_uuid>/add-ons")
@require_auth
@require_policy("products", "write")
def bind_add_on_route(product_uuid):
    """Request body: {add_on_product_uuid, price?}"""
    binding = catalog_service.bind_add_on(
        g.write_ctx, g.owner_id, product_uuid, request.get_json(silent=True),
    )
    return jsonify(binding.to_dict()), 201


@products_bp.delete("/<product_uuid>/add-ons/<binding_uuid>")
@require_auth
@require_policy("products", "write")
def unbind_add_on_route(product_uuid, binding_uuid):
    catalog_service.unbind_add_on(g.write_ctx, g.owner_id, product_uuid, binding_uuid)
    return "", 204
