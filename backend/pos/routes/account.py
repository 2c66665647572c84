# Overview: Flask API routes for owner account settings, payment method activation and issuer onboarding.

"""
Account Routes

Non-cash payment methods need two steps before they can take tenders:
1. Issuer registration (POST /api/account/ipaymu or /api/account/tsm)
2. Activation (POST /api/account/payment-methods/<id>/activate)

Activating before registering answers 428 with the onboarding route in `next`.
"""

from flask import Blueprint, request, jsonify, g

from ..decorators import require_auth, require_policy
from ..services import catalog_service, payment_service
from ..validation import require_fields


account_bp = Blueprint("account", __name__, url_prefix="/api/account")


@account_bp.get("/payment-methods")
@require_auth
@require_policy("payment_methods", "read")
def list_payment_methods_route():
    methods = payment_service.list_payment_methods(g.owner_id)
    return jsonify({"items": methods, "count": len(methods)})


@account_bp.post("/payment-methods/<int:method_id>/activate")
@require_auth
@require_policy("payment_methods", "write")
def activate_payment_method_route(method_id):
    return jsonify(payment_service.activate_payment_method(g.write_ctx, g.owner_id, method_id))


@account_bp.post("/payment-methods/<int:method_id>/deactivate")
@require_auth
@require_policy("payment_methods", "write")
def deactivate_payment_method_route(method_id):
    return jsonify(payment_service.deactivate_payment_method(g.write_ctx, g.owner_id, method_id))


@account_bp.post("/ipaymu")
@require_auth
@require_policy("payment_methods", "write")
def register_ipaymu_route():
    """Request body: {va}"""
    data = require_fields(request.get_json(silent=True), "va")
    reg = payment_service.register_ipaymu(g.write_ctx, g.owner_id, data["va"])
    return jsonify(reg.to_dict()), 201


@account_bp.post("/tsm")
@require_auth
@require_policy("payment_methods", "write")
def register_tsm_route():
    """Request body: {app_code, merchant_code, terminal_code, mid, serial_number?, va?}"""
    data = require_fields(request.get_json(silent=True))
    reg = payment_service.register_tsm(g.write_ctx, g.owner_id, data)
    return jsonify(reg.to_dict()), 201


@account_bp.get("/settings")
@require_auth
@require_policy("settings", "read")
def get_settings_route():
    return jsonify(catalog_service.get_owner_settings(g.owner_id))


@account_bp.put("/settings")
@require_auth
@require_policy("settings", "write")
def update_settings_route():
    """Request body: {inventory_add_ons: bool}"""
    settings = catalog_service.update_owner_settings(
        g.write_ctx, g.owner_id, request.get_json(silent=True),
    )
    return jsonify(settings)
