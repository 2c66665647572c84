# Overview: Flask API routes for purchase orders; receiving books stock into the outlet ledger.

"""
Purchase Order Routes

Receiving is a one-way transition pending -> completed. Every line becomes a
PurchaseOrder stock movement at the PO's outlet; receiving twice answers 409.
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth, require_policy
from ..services import purchase_order_service
from ..validation import require_fields


purchase_orders_bp = Blueprint("purchase_orders", __name__, url_prefix="/api/purchase-orders")


@purchase_orders_bp.get("")
@require_auth
@require_policy("purchase_orders", "read")
def list_purchase_orders_route():
    """
    Query parameters:
    - outlet_uuid: restrict to one outlet
    """
    pos = purchase_order_service.list_purchase_orders(g.owner_id, request.args.get("outlet_uuid"))
    return jsonify({"items": [po.to_dict() for po in pos], "count": len(pos)})


@purchase_orders_bp.post("")
@require_auth
@require_policy("purchase_orders", "write")
def create_purchase_order_route():
    """
    Request body:
    {
        "supplier_uuid": "...",
        "outlet_uuid": "...",
        "items": [{"product_uuid" | "product_variant_uuid": "...", "quantity": 10, "price": 5000}]
    }
    """
    data = require_fields(request.get_json(silent=True), "supplier_uuid", "outlet_uuid", "items")
    po = purchase_order_service.create_purchase_order(
        g.write_ctx, g.owner_id, data["supplier_uuid"], data["outlet_uuid"], data["items"],
    )
    return jsonify(po.to_dict()), 201


@purchase_orders_bp.get("/<po_uuid>")
@require_auth
@require_policy("purchase_orders", "read")
def get_purchase_order_route(po_uuid):
    return jsonify(purchase_order_service.get_purchase_order(g.owner_id, po_uuid).to_dict())


@purchase_orders_bp.put("/<po_uuid>/receive")
@require_auth
@require_policy("purchase_orders", "write")
def receive_purchase_order_route(po_uuid):
    po = purchase_order_service.receive_purchase_order(g.write_ctx, g.owner_id, po_uuid)
    current_app.logger.info("Purchase order %s received by %s", po_uuid, g.current_user.uuid)
    return jsonify(po.to_dict())


@purchase_orders_bp.post("/<po_uuid>/cancel")
@require_auth
@require_policy("purchase_orders", "write")
def cancel_purchase_order_route(po_uuid):
    po = purchase_order_service.cancel_purchase_order(g.write_ctx, g.owner_id, po_uuid)
    return jsonify(po.to_dict())
