# Overview: Inbound gateway settlement; verifies the signature and drives the payment state machine.

"""
Gateway Callback Handler

WHY: Gateways confirm tenders asynchronously and may deliver the same
notification more than once. Each delivery must settle a payment at most once.

STATE MACHINE (payment.status x callback status):
    paid     + *        -> no change
    failed   + *        -> no change
    pending  + paid     -> paid; order row-locked and credited
    pending  + pending  -> no change
    pending  + failed   -> failed; order untouched

If the order no longer needs the money (another tender completed it first),
the settled amount is recorded as change so paid totals stay consistent.
"""

from __future__ import annotations

import json
import logging
from decimal import Decimal
from typing import Mapping

from ..extensions import db
from ..errors import InvalidInput, SignatureMismatch, UnknownReference
from ..models import IpaymuLog, OrderPayment, TsmLog, UserIpaymu, UserTsm, WriteContext
from ..models.orders import (
    ORDER_STATUS_PENDING,
    PAYMENT_STATUS_FAILED,
    PAYMENT_STATUS_PAID,
    PAYMENT_STATUS_PENDING,
)
from ..models.payments import ISSUER_IPAYMU, ISSUER_TSM
from ..time_utils import utcnow
from .concurrency import lock_for_update, run_with_retry
from .gateways import get_adapters
from .payment_service import apply_to_order, lock_order, split_tender
from .tenant_service import scoped

logger = logging.getLogger(__name__)

# iPaymu reports Indonesian status words, TSM upper-case English
STATUS_ALIASES = {
    "paid": PAYMENT_STATUS_PAID,
    "berhasil": PAYMENT_STATUS_PAID,
    "success": PAYMENT_STATUS_PAID,
    "pending": PAYMENT_STATUS_PENDING,
    "failed": PAYMENT_STATUS_FAILED,
    "gagal": PAYMENT_STATUS_FAILED,
    "expired": PAYMENT_STATUS_FAILED,
}

REFERENCE_FIELDS = ("reference_id", "trx_id", "partner_trx_id")

SETTLED = "settled"


def parse_callback(
    raw_body: bytes | str,
    form: Mapping[str, str] | None = None,
) -> tuple[list[str], str, str | None]:
    """
    (reference candidates, normalized status, settlement_status).

    `form` carries the fields of a form-encoded notification; otherwise the
    body is read as JSON. Status words outside STATUS_ALIASES are treated as
    pending, so the payment is left as it is.
    """
    if form is not None:
        payload = dict(form)
    else:
        try:
            payload = json.loads(raw_body or b"")
        except ValueError:
            raise InvalidInput(detail="callback body must be JSON or form encoded")
        if not isinstance(payload, dict):
            raise InvalidInput(detail="callback body must be a JSON object")

    references = [
        str(payload[name]) for name in REFERENCE_FIELDS
        if payload.get(name) not in (None, "")
    ]
    if not references:
        raise InvalidInput(detail="reference_id is required")

    raw_status = payload.get("status")
    if not isinstance(raw_status, str) or not raw_status.strip():
        raise InvalidInput(detail="status is required")
    status = STATUS_ALIASES.get(raw_status.strip().lower())
    if status is None:
        logger.info("Unrecognized callback status %r treated as pending", raw_status)
        status = PAYMENT_STATUS_PENDING

    settlement = payload.get("settlement_status")
    if settlement is not None and not isinstance(settlement, str):
        raise InvalidInput(detail="settlement_status must be a string")
    return references, status, settlement.strip().lower() if settlement else None


def _callback_va(owner_id: int, issuer: str) -> str | None:
    if issuer == ISSUER_IPAYMU:
        reg = scoped(UserIpaymu, owner_id).first()
    else:
        reg = scoped(UserTsm, owner_id).first()
    return reg.va if reg else None


def _settle(ctx: WriteContext, payment: OrderPayment) -> None:
    order = lock_order(payment.order.owner_id, payment.order_id)
    tendered = Decimal(payment.amount_paid) + Decimal(payment.change_amount)

    if order.status == ORDER_STATUS_PENDING:
        effective, change = split_tender(order, Decimal(payment.amount_paid))
        change += Decimal(payment.change_amount)
    else:
        logger.warning(
            "Paid callback for payment %s but order %s is %s; recording as change",
            payment.uuid, order.uuid, order.status,
        )
        effective, change = Decimal("0"), tendered

    payment.amount_paid = effective
    payment.change_amount = change
    payment.is_paid = True
    payment.paid_at = utcnow()
    payment.status = PAYMENT_STATUS_PAID
    ctx.touch(payment)

    if effective > 0:
        apply_to_order(ctx, order, effective)


def _update_audit(ctx: WriteContext, payment: OrderPayment, issuer: str, status: str, settlement: str | None) -> None:
    now = utcnow()
    if issuer == ISSUER_IPAYMU:
        entry = db.session.query(IpaymuLog).filter(IpaymuLog.service_ref_id == payment.uuid).first()
        if entry is None:
            return
        entry.status = status
        if status == PAYMENT_STATUS_PAID and entry.success_at is None:
            entry.success_at = now
        if settlement:
            entry.settlement_status = settlement
            if settlement == SETTLED and entry.settlement_at is None:
                entry.settlement_at = now
        ctx.touch(entry)
    elif issuer == ISSUER_TSM:
        entry = db.session.query(TsmLog).filter(TsmLog.service_ref_id == payment.uuid).first()
        if entry is None:
            return
        entry.status = status
        entry.response_time = now
        ctx.touch(entry)


def handle_callback(
    raw_body: bytes,
    headers: Mapping[str, str],
    issuer: str,
    adapters: dict | None = None,
    form: Mapping[str, str] | None = None,
) -> dict:
    """
    Apply one gateway notification.

    Raises:
        InvalidInput: malformed body
        UnknownReference: no payment of this issuer carries the reference
        SignatureMismatch: signature does not verify with the owner's VA
    """
    references, status, settlement = parse_callback(raw_body, form)
    adapter = (adapters or get_adapters())[issuer]
    ctx = WriteContext.system()

    def _op():
        payment = lock_for_update(
            db.session.query(OrderPayment).filter(
                OrderPayment.reference_id.in_(references),
                OrderPayment.deleted_at.is_(None),
            )
        ).populate_existing().first()
        if payment is None or payment.payment_method.issuer != issuer:
            raise UnknownReference()

        va = _callback_va(payment.order.owner_id, issuer)
        if not va or not adapter.verify_callback(raw_body, headers, va):
            logger.warning("Callback signature mismatch issuer=%s reference=%s", issuer, payment.reference_id)
            raise SignatureMismatch()

        previous = payment.status
        if previous == PAYMENT_STATUS_PENDING:
            if status == PAYMENT_STATUS_PAID:
                _settle(ctx, payment)
            elif status == PAYMENT_STATUS_FAILED:
                payment.status = PAYMENT_STATUS_FAILED
                ctx.touch(payment)
        elif previous != status:
            logger.info(
                "Ignoring %s callback for payment %s already %s", status, payment.uuid, previous
            )

        _update_audit(ctx, payment, issuer, payment.status, settlement)
        db.session.commit()
        return payment.uuid, previous, payment.status

    payment_uuid, previous, current = run_with_retry(_op)
    logger.info(
        "Callback applied issuer=%s payment=%s %s -> %s", issuer, payment_uuid, previous, current
    )
    return {"message": "Success"}
