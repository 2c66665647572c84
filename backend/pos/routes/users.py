# Overview: Flask API routes for staff accounts under the current owner.

from flask import Blueprint, request, jsonify, g

from ..decorators import require_auth, require_policy
from ..services import auth_service


users_bp = Blueprint("users", __name__, url_prefix="/api/users")


@users_bp.get("")
@require_auth
@require_policy("users", "read")
def list_users_route():
    staff = auth_service.list_staff(g.owner_id)
    return jsonify({"items": [u.to_dict() for u in staff], "count": len(staff)})


@users_bp.post("")
@require_auth
@require_policy("users", "write")
def create_user_route():
    """
    Create a manager or cashier belonging to the current owner.

    Request body: {name, email, password, role: manager|cashier, phone?}
    """
    user = auth_service.create_staff(g.write_ctx, g.owner_id, request.get_json(silent=True))
    return jsonify(user.to_dict()), 201
