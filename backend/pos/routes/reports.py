# Overview: Flask API routes for sales and stock reports; read-only.

"""
Report Routes

Date parameters are YYYY-MM-DD and inclusive; the window is
[start_date 00:00, end_date + 24h) in UTC.
"""

from flask import Blueprint, request, jsonify, g

from ..decorators import require_auth, require_policy
from ..services import reporting_service


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


@reports_bp.get("/outlets/<outlet_uuid>/sales")
@require_auth
@require_policy("reports", "read")
def sales_by_outlet_route(outlet_uuid):
    report = reporting_service.sales_by_outlet(
        g.owner_id,
        outlet_uuid,
        request.args.get("start_date"),
        request.args.get("end_date"),
    )
    return jsonify(report)


@reports_bp.get("/products/<product_uuid>/sales")
@require_auth
@require_policy("reports", "read")
def sales_by_product_route(product_uuid):
    report = reporting_service.sales_by_product(
        g.owner_id,
        product_uuid,
        request.args.get("start_date"),
        request.args.get("end_date"),
    )
    return jsonify(report)


@reports_bp.get("/outlets/<outlet_uuid>/stocks")
@require_auth
@require_policy("reports", "read")
def stock_by_outlet_route(outlet_uuid):
    return jsonify(reporting_service.stock_by_outlet(g.owner_id, outlet_uuid))
