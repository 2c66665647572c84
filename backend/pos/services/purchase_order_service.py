# Overview: Service-layer operations for purchase orders; receiving credits the stock ledger.

"""
Purchase-Order Receiver

A purchase order is drafted as pending and credits stock exactly once, when it
is received. Receiving locks the PO row, so two concurrent receives serialize
and the second one sees status=completed and fails with AlreadyReceived.
"""

from __future__ import annotations

import logging
from decimal import Decimal

from ..extensions import db
from ..errors import AlreadyReceived, Conflict, InvalidInput, PurchaseOrderNotFound
from ..models import PurchaseOrder, PurchaseOrderItem, WriteContext
from ..models.catalog import PRODUCT_FNB_MAIN
from ..models.inventory import (
    MOVEMENT_PURCHASE_ORDER,
    PO_STATUS_CANCELLED,
    PO_STATUS_COMPLETED,
    PO_STATUS_PENDING,
)
from ..time_utils import utcnow
from ..validation import as_decimal, as_optional_uuid, as_uuid
from .concurrency import lock_for_update, run_with_retry
from .stock_service import StockLedger, ledger as default_ledger
from .tenant_service import require_outlet, require_product, require_supplier, require_variant, scoped

logger = logging.getLogger(__name__)


def _build_items(owner_id: int, items) -> list[dict]:
    if not isinstance(items, list) or not items:
        raise InvalidInput(detail="items must be a non-empty list")

    built = []
    for raw in items:
        if not isinstance(raw, dict):
            raise InvalidInput(detail="items entries must be objects")
        variant_uuid = as_optional_uuid(raw.get("product_variant_uuid"), "product_variant_uuid")
        product_uuid = as_optional_uuid(raw.get("product_uuid"), "product_uuid")

        variant = None
        if variant_uuid:
            variant = require_variant(owner_id, variant_uuid)
            product = variant.product
            if product_uuid and product_uuid != product.uuid:
                raise InvalidInput(detail="product_variant_uuid does not belong to product_uuid")
        elif product_uuid:
            product = require_product(owner_id, product_uuid)
        else:
            raise InvalidInput(detail="each item needs product_uuid or product_variant_uuid")

        if product.type == PRODUCT_FNB_MAIN:
            raise InvalidInput(detail=f"{product.name} is an fnb_main_product and holds no stock")

        built.append({
            "product": product,
            "variant": variant,
            "quantity": as_decimal(raw.get("quantity"), "quantity", minimum=Decimal("0"), allow_equal=False),
            "price": as_decimal(raw.get("price"), "price", minimum=Decimal("0")),
        })
    return built


def create_purchase_order(
    ctx: WriteContext,
    owner_id: int,
    supplier_uuid: str,
    outlet_uuid: str,
    items,
) -> PurchaseOrder:
    supplier = require_supplier(owner_id, as_uuid(supplier_uuid, "supplier_uuid"))
    outlet = require_outlet(owner_id, as_uuid(outlet_uuid, "outlet_uuid"))
    lines = _build_items(owner_id, items)

    def _op():
        po = ctx.add(PurchaseOrder(
            owner_id=owner_id,
            supplier_id=supplier.id,
            outlet_id=outlet.id,
            order_date=utcnow(),
            status=PO_STATUS_PENDING,
            total_amount=sum((line["price"] * line["quantity"] for line in lines), Decimal("0")),
        ))
        db.session.flush()
        for line in lines:
            ctx.add(PurchaseOrderItem(
                purchase_order=po,
                product_id=line["product"].id,
                product_variant_id=line["variant"].id if line["variant"] else None,
                quantity=line["quantity"],
                price=line["price"],
            ))
        db.session.commit()
        return po.uuid

    po_uuid = run_with_retry(_op)
    logger.info("Purchase order %s created for outlet %s", po_uuid, outlet.uuid)
    return get_purchase_order(owner_id, po_uuid)


def get_purchase_order(owner_id: int, po_uuid: str) -> PurchaseOrder:
    po = scoped(PurchaseOrder, owner_id).filter(PurchaseOrder.uuid == po_uuid).first()
    if po is None:
        raise PurchaseOrderNotFound()
    return po


def list_purchase_orders(owner_id: int, outlet_uuid: str | None = None) -> list[PurchaseOrder]:
    query = scoped(PurchaseOrder, owner_id)
    if outlet_uuid:
        outlet = require_outlet(owner_id, outlet_uuid)
        query = query.filter(PurchaseOrder.outlet_id == outlet.id)
    return query.order_by(PurchaseOrder.id.desc()).all()


def _lock_purchase_order(owner_id: int, po_uuid: str) -> PurchaseOrder:
    po = lock_for_update(
        scoped(PurchaseOrder, owner_id).filter(PurchaseOrder.uuid == po_uuid)
    ).populate_existing().first()
    if po is None:
        raise PurchaseOrderNotFound()
    return po


def receive_purchase_order(
    ctx: WriteContext,
    owner_id: int,
    po_uuid: str,
    *,
    ledger: StockLedger | None = None,
) -> PurchaseOrder:
    """
    Credit every line into the outlet's stock and mark the PO completed.

    Raises:
        PurchaseOrderNotFound
        AlreadyReceived: PO is already completed
        Conflict: PO was cancelled
    """
    ledger = ledger or default_ledger

    def _op():
        po = _lock_purchase_order(owner_id, po_uuid)
        if po.status == PO_STATUS_COMPLETED:
            raise AlreadyReceived()
        if po.status != PO_STATUS_PENDING:
            raise Conflict(detail=f"purchase order is {po.status}")

        live_items = sorted(
            (item for item in po.items if not item.is_deleted),
            key=lambda item: (item.product_id, item.id),
        )
        for item in live_items:
            ledger.adjust(
                ctx, owner_id, po.outlet, item.product, Decimal(item.quantity),
                reason=MOVEMENT_PURCHASE_ORDER,
                reference_id=po.uuid,
                description=f"Received from {po.supplier.name}",
            )

        po.status = PO_STATUS_COMPLETED
        po.received_at = utcnow()
        ctx.touch(po)
        db.session.commit()
        return po.uuid

    run_with_retry(_op)
    logger.info("Purchase order %s received", po_uuid)
    return get_purchase_order(owner_id, po_uuid)


def cancel_purchase_order(ctx: WriteContext, owner_id: int, po_uuid: str) -> PurchaseOrder:
    def _op():
        po = _lock_purchase_order(owner_id, po_uuid)
        if po.status == PO_STATUS_COMPLETED:
            raise AlreadyReceived()
        if po.status != PO_STATUS_PENDING:
            raise Conflict(detail=f"purchase order is {po.status}")
        po.status = PO_STATUS_CANCELLED
        ctx.touch(po)
        db.session.commit()

    run_with_retry(_op)
    return get_purchase_order(owner_id, po_uuid)
