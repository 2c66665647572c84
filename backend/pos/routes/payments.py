# Overview: Flask API routes for order payments; parses input and returns JSON responses.

"""
Payment Routes

- Cash tenders are paid immediately; over-tender comes back as change_amount
- Gateway tenders (iPaymu, TSM) are created pending and settle on callback
- The response always carries the order's payment summary
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth, require_policy
from ..services import payment_service
from ..services.order_service import get_order
from ..validation import as_uuid, require_fields


payments_bp = Blueprint("payments", __name__, url_prefix="/api")


@payments_bp.post("/order-payments")
@require_auth
@require_policy("order_payments", "write")
def create_payment_route():
    """
    Record a tender against an order.

    Request body:
    {
        "order_uuid": "...",              // required
        "payment_method_id": 1,           // required
        "amount": 20000,                  // required, > 0
        "customer": {"name": "...", "email": "...", "phone": "..."},
        "items": [{"order_item_uuid": "...", "quantity": 1}]
    }

    Returns:
        {payment: OrderPayment, summary: {total_amount, paid_amount, remaining_amount, status}}
    """
    data = require_fields(request.get_json(silent=True), "order_uuid", "payment_method_id", "amount")
    order_uuid = as_uuid(data["order_uuid"], "order_uuid")
    payment = payment_service.create_payment(
        g.write_ctx,
        g.owner_id,
        order_uuid=order_uuid,
        payment_method_id=data["payment_method_id"],
        amount=data["amount"],
        customer=data.get("customer"),
        items=data.get("items"),
    )
    current_app.logger.info("Payment %s recorded on order %s", payment.uuid, order_uuid)
    order = get_order(g.owner_id, order_uuid)
    return jsonify({
        "payment": payment.to_dict(),
        "summary": payment_service.get_payment_summary(order),
    }), 201


@payments_bp.get("/orders/<order_uuid>/payments")
@require_auth
@require_policy("order_payments", "read")
def list_order_payments_route(order_uuid):
    order, payments = payment_service.list_order_payments(g.owner_id, order_uuid)
    return jsonify({
        "items": [p.to_dict() for p in payments],
        "count": len(payments),
        "summary": payment_service.get_payment_summary(order),
    })
