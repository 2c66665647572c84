# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

"""
Authentication API routes

- Owners self-register and receive a JWT
- Login exchanges email/password for a JWT
- Email verification goes through a 6-digit OTP delivered by the email queue
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth
from ..i18n import select_language
from ..services import auth_service


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


def _token_response(user, status=200):
    return jsonify({
        "token": auth_service.issue_token(user),
        "token_type": "Bearer",
        "user": auth_service.describe(user),
    }), status


@auth_bp.post("/register")
def register_route():
    """
    Register a new owner.

    Request body: {name, email, password, phone?}
    """
    user = auth_service.register_owner(request.get_json(silent=True))
    current_app.logger.info("Owner registered uuid=%s", user.uuid)
    return _token_response(user, 201)


@auth_bp.post("/login")
def login_route():
    data = request.get_json(silent=True) or {}
    user = auth_service.authenticate(data.get("email"), data.get("password"))
    return _token_response(user)


@auth_bp.get("/me")
@require_auth
def me_route():
    return jsonify(auth_service.describe(g.current_user))


@auth_bp.post("/otp")
@require_auth
def request_otp_route():
    """Queue a verification code to the current user's email."""
    lang = select_language(request.headers.get("Accept-Language"))
    auth_service.request_email_otp(g.current_user, lang)
    return jsonify({"message": "OTP sent"}), 202


@auth_bp.post("/otp/verify")
@require_auth
def verify_otp_route():
    data = request.get_json(silent=True) or {}
    user = auth_service.verify_email_otp(g.current_user, data.get("code"))
    return jsonify(auth_service.describe(user))
