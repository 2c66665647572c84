# Overview: Flask API routes for outlets and their stock ledger; parses input and returns JSON responses.

"""
Outlet Routes

Outlets belong to the current owner. Stock is read and written per outlet:
- GET  /stocks            current quantities
- PUT  /stocks            absolute set (records the delta as an Adjustment)
- POST /stocks/adjust     signed adjustment
- GET  /stock-movements   append-only journal, newest first
"""

from flask import Blueprint, request, jsonify, g

from ..decorators import require_auth, require_policy
from ..services import catalog_service, order_service, stock_service
from ..services.tenant_service import require_outlet
from ..validation import as_uuid, require_fields


outlets_bp = Blueprint("outlets", __name__, url_prefix="/api/outlets")


@outlets_bp.get("")
@require_auth
@require_policy("outlets", "read")
def list_outlets_route():
    outlets = catalog_service.list_outlets(g.owner_id)
    return jsonify({"items": [o.to_dict() for o in outlets], "count": len(outlets)})


@outlets_bp.post("")
@require_auth
@require_policy("outlets", "write")
def create_outlet_route():
    """Request body: {name, type: retail|fnb, address?, phone?}"""
    outlet = catalog_service.create_outlet(g.write_ctx, g.owner_id, request.get_json(silent=True))
    return jsonify(outlet.to_dict()), 201


@outlets_bp.get("/<outlet_uuid>")
@require_auth
@require_policy("outlets", "read")
def get_outlet_route(outlet_uuid):
    return jsonify(require_outlet(g.owner_id, outlet_uuid).to_dict())


@outlets_bp.put("/<outlet_uuid>")
@require_auth
@require_policy("outlets", "write")
def update_outlet_route(outlet_uuid):
    outlet = catalog_service.update_outlet(
        g.write_ctx, g.owner_id, outlet_uuid, request.get_json(silent=True) or {},
    )
    return jsonify(outlet.to_dict())


@outlets_bp.delete("/<outlet_uuid>")
@require_auth
@require_policy("outlets", "write")
def delete_outlet_route(outlet_uuid):
    catalog_service.delete_outlet(g.write_ctx, g.owner_id, outlet_uuid)
    return "", 204


# =============================================================================
# STOCK
# =============================================================================

@outlets_bp.get("/<outlet_uuid>/stocks")
@require_auth
@require_policy("stocks", "read")
def list_stocks_route(outlet_uuid):
    stocks = stock_service.list_stocks(g.owner_id, outlet_uuid)
    return jsonify({"items": [s.to_dict() for s in stocks], "count": len(stocks)})


@outlets_bp.put("/<outlet_uuid>/stocks")
@require_auth
@require_policy("stocks", "write")
def set_stock_route(outlet_uuid):
    """Request body: {product_uuid, quantity, description?}"""
    data = require_fields(request.get_json(silent=True), "product_uuid", "quantity")
    stock = stock_service.set_stock(
        g.write_ctx,
        g.owner_id,
        outlet_uuid,
        as_uuid(data["product_uuid"], "product_uuid"),
        data["quantity"],
        description=data.get("description"),
    )
    return jsonify(stock.to_dict())


@outlets_bp.post("/<outlet_uuid>/stocks/adjust")
@require_auth
@require_policy("stocks", "write")
def adjust_stock_route(outlet_uuid):
    """Request body: {product_uuid, quantity_change, description?}"""
    data = require_fields(request.get_json(silent=True), "product_uuid", "quantity_change")
    stock = stock_service.adjust_stock(
        g.write_ctx,
        g.owner_id,
        outlet_uuid,
        as_uuid(data["product_uuid"], "product_uuid"),
        data["quantity_change"],
        description=data.get("description"),
    )
    return jsonify(stock.to_dict())


@outlets_bp.get("/<outlet_uuid>/stock-movements")
@require_auth
@require_policy("stocks", "read")
def list_movements_route(outlet_uuid):
    """
    Query parameters:
    - product_uuid: restrict to one product
    - limit: maximum rows (default 200, max 1000)
    """
    movements = stock_service.list_movements(
        g.owner_id,
        outlet_uuid,
        product_uuid=request.args.get("product_uuid"),
        limit=request.args.get("limit", 200, type=int),
    )
    return jsonify({"items": [m.to_dict() for m in movements], "count": len(movements)})


# =============================================================================
# ORDERS
# =============================================================================

@outlets_bp.get("/<outlet_uuid>/orders")
@require_auth
@require_policy("orders", "read")
def list_outlet_orders_route(outlet_uuid):
    orders = order_service.list_orders_by_outlet(
        g.owner_id, outlet_uuid, status=request.args.get("status"),
    )
    return jsonify({
        "items": [o.to_dict(include_payments=False) for o in orders],
        "count": len(orders),
    })
