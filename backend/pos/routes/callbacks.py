# Overview: Unauthenticated gateway callback endpoints; the signature is the authentication.

"""
Gateway Callbacks

The raw request body is passed through untouched; signatures are computed
over the exact bytes the gateway sent. iPaymu may post form-encoded
notifications, so form fields are handed over alongside the raw bytes.
Repeated deliveries are safe.
"""

from flask import Blueprint, request, jsonify

from ..models.payments import ISSUER_IPAYMU, ISSUER_TSM
from ..services import callback_service


callbacks_bp = Blueprint("callbacks", __name__, url_prefix="/api/payment")

FORM_MIMETYPE = "application/x-www-form-urlencoded"


def _handle(issuer: str):
    # read the bytes first; the form is then parsed from the cached body
    raw_body = request.get_data(cache=True)
    form = request.form.to_dict() if request.mimetype == FORM_MIMETYPE else None
    result = callback_service.handle_callback(raw_body, request.headers, issuer, form=form)
    return jsonify(result)


@callbacks_bp.post("/ipaymu/notify")
def ipaymu_notify_route():
    return _handle(ISSUER_IPAYMU)


@callbacks_bp.post("/tsm/callback")
def tsm_callback_route():
    return _handle(ISSUER_TSM)
