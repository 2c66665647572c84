# Overview: Service-layer operations for payment; encapsulates business logic and database work.

"""
Payment Engine

WHY: Orders are settled by one or more tenders. Cash settles immediately;
gateway tenders (iPaymu, TSM) stay pending until the gateway calls back.

DESIGN PRINCIPLES:
- The order row is locked (SELECT ... FOR UPDATE) for every change to
  paid_amount, so cash payments and gateway callbacks serialize per order
- Over-tender is returned as change: amount_paid never exceeds what is due
- Only paid tenders count toward Order.paid_amount
- A gateway failure aborts the whole transaction; no orphan pending tender
- Tenders may be allocated to specific order lines (OrderPaymentItem); a line
  is paid once paid allocations cover its quantity

INVARIANTS:
- order.paid_amount == sum(amount_paid of paid tenders) <= order.total_amount
- order.status == completed  <=>  order.paid_amount >= order.total_amount
"""

from __future__ import annotations

import logging
from decimal import Decimal

from ..extensions import db
from ..errors import (
    Conflict,
    InvalidInput,
    IpaymuRegistrationRequired,
    OrderAlreadyCompleted,
    OrderItemNotFound,
    OrderNotFound,
    OrderNotPending,
    PaymentMethodInactive,
    PaymentMethodNotFound,
    TsmRegistrationRequired,
)
from ..models import (
    IpaymuLog,
    Order,
    OrderPayment,
    OrderPaymentItem,
    PaymentMethod,
    TsmLog,
    UserIpaymu,
    UserPayment,
    UserTsm,
    WriteContext,
)
from ..models.orders import (
    ORDER_STATUS_COMPLETED,
    ORDER_STATUS_PENDING,
    PAYMENT_STATUS_PAID,
    PAYMENT_STATUS_PENDING,
)
from ..models.payments import ISSUER_IPAYMU, ISSUER_TSM
from ..time_utils import utcnow
from ..validation import as_decimal, as_positive_int, as_uuid, as_text
from .concurrency import lock_for_update, run_with_retry
from .gateways import GatewayItem, GatewayRequest, GatewayTransaction, get_adapters
from .tenant_service import scoped

logger = logging.getLogger(__name__)

IPAYMU_SERVICE_NAME = "ORDER_PAYMENT"


# =============================================================================
# ORDER APPLICATION
# =============================================================================

def lock_order(owner_id: int, order_id: int) -> Order:
    order = lock_for_update(
        scoped(Order, owner_id).filter(Order.id == order_id)
    ).populate_existing().first()
    if order is None:
        raise OrderNotFound()
    return order


def apply_to_order(ctx: WriteContext, order: Order, amount: Decimal) -> None:
    """Add a settled amount to a locked order and complete it when covered."""
    order.paid_amount = Decimal(order.paid_amount) + amount
    if Decimal(order.paid_amount) >= Decimal(order.total_amount):
        order.status = ORDER_STATUS_COMPLETED
    ctx.touch(order)


def split_tender(order: Order, amount: Decimal) -> tuple[Decimal, Decimal]:
    """(effective, change) for tendering `amount` against what is still due."""
    remaining = max(order.remaining_amount, Decimal("0"))
    if amount > remaining:
        return remaining, amount - remaining
    return amount, Decimal("0")


def get_payment_summary(order: Order) -> dict:
    total = Decimal(order.total_amount)
    paid = Decimal(order.paid_amount)
    return {
        "total_amount": float(total),
        "paid_amount": float(paid),
        "remaining_amount": float(max(total - paid, Decimal("0"))),
        "status": order.status,
    }


# =============================================================================
# METHOD AVAILABILITY
# =============================================================================

def _get_method(method_id) -> PaymentMethod:
    if isinstance(method_id, bool) or not isinstance(method_id, int):
        raise InvalidInput(detail="payment_method_id must be an integer")
    method = db.session.query(PaymentMethod).filter(
        PaymentMethod.id == method_id,
        PaymentMethod.deleted_at.is_(None),
    ).first()
    if method is None:
        raise PaymentMethodNotFound()
    return method


def issuer_credentials(owner_id: int, method: PaymentMethod) -> dict:
    """
    Credentials for the method's issuer.

    Raises IpaymuRegistrationRequired / TsmRegistrationRequired when the owner
    has not onboarded with that issuer yet.
    """
    if method.issuer == ISSUER_IPAYMU:
        reg = scoped(UserIpaymu, owner_id).first()
        if reg is None:
            raise IpaymuRegistrationRequired()
        return {"va": reg.va}
    if method.issuer == ISSUER_TSM:
        reg = scoped(UserTsm, owner_id).first()
        if reg is None:
            raise TsmRegistrationRequired()
        return {
            "va": reg.va,
            "app_code": reg.app_code,
            "merchant_code": reg.merchant_code,
            "terminal_code": reg.terminal_code,
            "serial_number": reg.serial_number,
            "mid": reg.mid,
        }
    return {}


def _is_activated(owner_id: int, method: PaymentMethod) -> bool:
    if method.is_cash:
        return True
    activation = scoped(UserPayment, owner_id).filter_by(payment_method_id=method.id).first()
    return bool(activation and activation.is_active)


def require_usable_method(owner_id: int, method_id) -> tuple[PaymentMethod, dict]:
    method = _get_method(method_id)
    if not method.is_active:
        raise PaymentMethodInactive(method=method.name)
    credentials = {} if method.is_cash else issuer_credentials(owner_id, method)
    if not _is_activated(owner_id, method):
        raise PaymentMethodInactive(method=method.name)
    return method, credentials


# =============================================================================
# PAYMENT CREATION
# =============================================================================

def _allocate_items(ctx: WriteContext, order: Order, payment: OrderPayment, items) -> None:
    if not items:
        return
    if not isinstance(items, list):
        raise InvalidInput(detail="items must be a list")

    live = {item.uuid: item for item in order.live_items}
    for raw in items:
        if not isinstance(raw, dict):
            raise InvalidInput(detail="items entries must be objects")
        item_uuid = as_uuid(raw.get("order_item_uuid"), "order_item_uuid")
        quantity = as_positive_int(raw.get("quantity"), "items quantity")
        item = live.get(item_uuid)
        if item is None:
            raise OrderItemNotFound()
        if item.allocated_quantity + quantity > item.quantity:
            raise Conflict(detail=f"order item {item_uuid} is already paid")
        ctx.add(OrderPaymentItem(payment=payment, order_item=item, quantity=quantity))
        db.session.flush()


def _record_gateway_audit(
    ctx: WriteContext,
    method: PaymentMethod,
    payment: OrderPayment,
    txn: GatewayTransaction,
) -> None:
    if method.issuer == ISSUER_IPAYMU:
        ctx.add(IpaymuLog(
            service_name=IPAYMU_SERVICE_NAME,
            service_ref_id=payment.uuid,
            reference_ipaymu=txn.reference_id,
            amount=payment.amount_paid,
            status=PAYMENT_STATUS_PENDING,
            payment_method=method.payment_method,
            payment_channel=method.payment_channel,
            request_at=txn.request_at,
        ))
    elif method.issuer == ISSUER_TSM:
        ctx.add(TsmLog(
            service_ref_id=payment.uuid,
            endpoint=txn.endpoint,
            request_payload=txn.request_payload,
            response_payload=txn.response_payload,
            status=PAYMENT_STATUS_PENDING,
            request_time=txn.request_at,
            response_time=txn.response_at,
        ))


def create_payment(
    ctx: WriteContext,
    owner_id: int,
    *,
    order_uuid: str,
    payment_method_id,
    amount,
    customer: dict | None = None,
    items: list | None = None,
    adapters: dict | None = None,
) -> OrderPayment:
    """
    Record a tender against an order.

    Cash: paid immediately, applied to the order, change returned.
    Gateway: inserted pending, external transaction created, reference stored;
    the order is only updated when the callback confirms. Gateway tenders are
    attempted once; lock conflicts are only retried for cash.

    Raises:
        OrderNotFound, OrderAlreadyCompleted, OrderNotPending,
        PaymentMethodNotFound, PaymentMethodInactive,
        IpaymuRegistrationRequired, TsmRegistrationRequired,
        GatewayFailure (transaction rolled back)
    """
    tendered = as_decimal(amount, "amount", minimum=Decimal("0"), allow_equal=False)
    customer = customer or {}
    customer_name = as_text(customer.get("name"), "customer.name", required=False)
    customer_email = as_text(customer.get("email"), "customer.email", required=False)
    customer_phone = as_text(customer.get("phone"), "customer.phone", max_length=32, required=False)

    order = scoped(Order, owner_id).filter(Order.uuid == order_uuid).first()
    if order is None:
        raise OrderNotFound()
    order_id = order.id

    method, credentials = require_usable_method(owner_id, payment_method_id)

    def _op():
        locked = lock_order(owner_id, order_id)
        if locked.status == ORDER_STATUS_COMPLETED:
            raise OrderAlreadyCompleted()
        if locked.status != ORDER_STATUS_PENDING:
            raise OrderNotPending(status=locked.status)

        effective, change = split_tender(locked, tendered)

        payment = ctx.add(OrderPayment(
            order=locked,
            payment_method_id=method.id,
            amount_paid=effective,
            change_amount=change,
            customer_name=customer_name,
            customer_email=customer_email,
            customer_phone=customer_phone,
        ))

        if method.is_cash:
            payment.is_paid = True
            payment.paid_at = utcnow()
            payment.status = PAYMENT_STATUS_PAID
            db.session.flush()
            _allocate_items(ctx, locked, payment, items)
            apply_to_order(ctx, locked, effective)
        else:
            if effective <= 0:
                raise InvalidInput(detail="nothing left to pay on this order")
            payment.is_paid = False
            payment.status = PAYMENT_STATUS_PENDING
            db.session.flush()
            payment.reference_id = f"pending-{payment.uuid}"
            _allocate_items(ctx, locked, payment, items)

            adapter = (adapters or get_adapters())[method.issuer]
            txn = adapter.create_transaction(GatewayRequest(
                reference=payment.uuid,
                amount=effective,
                payment_method=method.payment_method,
                payment_channel=method.payment_channel,
                customer_name=customer_name,
                customer_email=customer_email,
                customer_phone=customer_phone,
                credentials=credentials,
                items=(GatewayItem(name=f"Order {locked.uuid[:8]}", quantity=1, price=effective),),
            ))
            payment.reference_id = txn.reference_id
            payment.extra = txn.extra
            _record_gateway_audit(ctx, method, payment, txn)

        db.session.commit()
        return payment.id

    # a retry would open a second gateway transaction for the same tender
    payment_id = run_with_retry(_op, attempts=3 if method.is_cash else 1)
    payment = db.session.get(OrderPayment, payment_id)
    logger.info(
        "Payment recorded order=%s method=%s amount=%s paid=%s",
        order_uuid, method.name, payment.amount_paid, payment.is_paid,
    )
    return payment


def list_order_payments(owner_id: int, order_uuid: str) -> tuple[Order, list[OrderPayment]]:
    order = scoped(Order, owner_id).filter(Order.uuid == order_uuid).first()
    if order is None:
        raise OrderNotFound()
    payments = (
        db.session.query(OrderPayment)
        .filter(OrderPayment.order_id == order.id, OrderPayment.deleted_at.is_(None))
        .order_by(OrderPayment.id)
        .all()
    )
    return order, payments


# =============================================================================
# METHOD ACTIVATION AND ISSUER ONBOARDING
# =============================================================================

def list_payment_methods(owner_id: int) -> list[dict]:
    methods = (
        db.session.query(PaymentMethod)
        .filter(PaymentMethod.deleted_at.is_(None))
        .order_by(PaymentMethod.id)
        .all()
    )
    return [
        {**method.to_dict(), "activated": method.is_active and _is_activated(owner_id, method)}
        for method in methods
    ]


def activate_payment_method(ctx: WriteContext, owner_id: int, method_id) -> dict:
    method = _get_method(method_id)
    if not method.is_active:
        raise PaymentMethodInactive(method=method.name)
    issuer_credentials(owner_id, method)

    activation = db.session.query(UserPayment).filter_by(
        owner_id=owner_id, payment_method_id=method.id
    ).first()
    if activation is None:
        ctx.add(UserPayment(owner_id=owner_id, payment_method_id=method.id, is_active=True))
    elif not activation.is_active or activation.is_deleted:
        activation.is_active = True
        activation.deleted_at = None
        activation.deleted_by = None
        ctx.touch(activation)
    db.session.commit()
    logger.info("Payment method %s activated for owner %s", method.name, owner_id)
    return {**method.to_dict(), "activated": True}


def deactivate_payment_method(ctx: WriteContext, owner_id: int, method_id) -> dict:
    method = _get_method(method_id)
    activation = scoped(UserPayment, owner_id).filter_by(payment_method_id=method.id).first()
    if activation is not None and activation.is_active:
        activation.is_active = False
        ctx.touch(activation)
        db.session.commit()
    return {**method.to_dict(), "activated": method.is_cash and method.is_active}


def register_ipaymu(ctx: WriteContext, owner_id: int, va) -> UserIpaymu:
    va = as_text(va, "va", max_length=64)
    reg = scoped(UserIpaymu, owner_id).first()
    if reg is None:
        reg = ctx.add(UserIpaymu(owner_id=owner_id, va=va))
    else:
        reg.va = va
        ctx.touch(reg)
    db.session.commit()
    return reg


def register_tsm(ctx: WriteContext, owner_id: int, payload: dict) -> UserTsm:
    fields = {
        "app_code": as_text(payload.get("app_code"), "app_code", max_length=64),
        "merchant_code": as_text(payload.get("merchant_code"), "merchant_code", max_length=64),
        "terminal_code": as_text(payload.get("terminal_code"), "terminal_code", max_length=64),
        "mid": as_text(payload.get("mid"), "mid", max_length=64),
        "serial_number": as_text(payload.get("serial_number"), "serial_number", max_length=64, required=False),
        "va": as_text(payload.get("va"), "va", max_length=64, required=False),
    }
    if fields["va"] is None:
        # fall back to the owner's iPaymu virtual account
        ipaymu = scoped(UserIpaymu, owner_id).first()
        if ipaymu is None:
            raise InvalidInput(detail="va is required when no iPaymu account is registered")
        fields["va"] = ipaymu.va

    reg = scoped(UserTsm, owner_id).first()
    if reg is None:
        reg = ctx.add(UserTsm(owner_id=owner_id, **fields))
    else:
        for key, value in fields.items():
            setattr(reg, key, value)
        ctx.touch(reg)
    db.session.commit()
    return reg
