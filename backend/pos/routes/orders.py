# Overview: Flask API routes for orders; parses input and returns JSON responses.

"""
Order Routes

Creating an order prices its lines and deducts stock in one transaction; an
InsufficientStock (409) leaves nothing behind. Lines can be added to or removed
from a pending order; cancel returns all stock the order still holds.
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth, require_policy
from ..services import order_service
from ..validation import as_uuid, require_fields


orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")


@orders_bp.post("")
@require_auth
@require_policy("orders", "write")
def create_order_route():
    """
    Create an order.

    Request body:
    {
        "outlet_uuid": "...",
        "items": [
            {
                "product_uuid": "..." | "variant_uuid": "...",
                "quantity": 2,
                "add_ons": [{"product_add_on_uuid": "...", "quantity": 1}]
            }
        ]
    }
    """
    data = require_fields(request.get_json(silent=True), "outlet_uuid", "items")
    order = order_service.create_order(
        g.write_ctx,
        g.owner_id,
        as_uuid(data["outlet_uuid"], "outlet_uuid"),
        data["items"],
    )
    current_app.logger.info("Order %s created by %s", order.uuid, g.current_user.uuid)
    return jsonify(order.to_dict()), 201


@orders_bp.get("/<order_uuid>")
@require_auth
@require_policy("orders", "read")
def get_order_route(order_uuid):
    return jsonify(order_service.get_order(g.owner_id, order_uuid).to_dict())


@orders_bp.post("/<order_uuid>/cancel")
@require_auth
@require_policy("orders", "write")
def cancel_order_route(order_uuid):
    order = order_service.cancel_order(g.write_ctx, g.owner_id, order_uuid)
    return jsonify(order.to_dict())


@orders_bp.post("/<order_uuid>/items")
@require_auth
@require_policy("orders", "write")
def add_order_item_route(order_uuid):
    """Request body: one line, same shape as an entry of `items` on create."""
    order = order_service.add_order_item(
        g.write_ctx, g.owner_id, order_uuid, request.get_json(silent=True),
    )
    return jsonify(order.to_dict()), 201


@orders_bp.delete("/<order_uuid>/items/<item_uuid>")
@require_auth
@require_policy("orders", "write")
def delete_order_item_route(order_uuid, item_uuid):
    order = order_service.delete_order_item(g.write_ctx, g.owner_id, order_uuid, item_uuid)
    return jsonify(order.to_dict())
