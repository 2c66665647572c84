# Overview: Flask API routes for supplier operations; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g

from ..decorators import require_auth, require_policy
from ..services import catalog_service
from ..services.tenant_service import require_supplier


suppliers_bp = Blueprint("suppliers", __name__, url_prefix="/api/suppliers")


@suppliers_bp.get("")
@require_auth
@require_policy("suppliers", "read")
def list_suppliers_route():
    suppliers = catalog_service.list_suppliers(g.owner_id)
    return jsonify({"items": [s.to_dict() for s in suppliers], "count": len(suppliers)})


@suppliers_bp.post("")
@require_auth
@require_policy("suppliers", "write")
def create_supplier_route():
    """Request body: {name, contact?, phone?, email?, address?}"""
    supplier = catalog_service.create_supplier(g.write_ctx, g.owner_id, request.get_json(silent=True))
    return jsonify(supplier.to_dict()), 201


@suppliers_bp.get("/<supplier_uuid>")
@require_auth
@require_policy("suppliers", "read")
def get_supplier_route(supplier_uuid):
    return jsonify(require_supplier(g.owner_id, supplier_uuid).to_dict())


@suppliers_bp.put("/<supplier_uuid>")
@require_auth
@require_policy("suppliers", "write")
def update_supplier_route(supplier_uuid):
    supplier = catalog_service.update_supplier(
        g.write_ctx, g.owner_id, supplier_uuid, request.get_json(silent=True) or {},
    )
    return jsonify(supplier.to_dict())


@suppliers_bp.delete("/<supplier_uuid>")
@require_auth
@require_policy("suppliers", "write")
def delete_supplier_route(supplier_uuid):
    catalog_service.delete_supplier(g.write_ctx, g.owner_id, supplier_uuid)
    return "", 204
