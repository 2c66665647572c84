# Overview: Service-layer operations for orders; encapsulates business logic and database work.

"""
Order Engine

WHY: An order is priced, persisted and its stock deducted all-or-nothing, so a
sale can never exist without its stock movements (or the reverse).

DESIGN PRINCIPLES:
- Validation and pricing happen before the transaction starts: bad quantities,
  unknown products/variants, unbound add-ons and missing recipes never open one
- Prices (product, variant, add-on binding) are snapshotted on the line, later
  catalog edits do not touch existing orders
- Stock is deducted immediately at creation; payments only move the order
  between pending and completed
- All stock demands of an order are reserved in one ascending-product-id pass
- Add-ons deduct stock only when the owner's inventory_add_ons setting is on
- Each line records the stock it took; removing the line returns exactly that

LIFECYCLE:
    pending --(paid_amount reaches total)--> completed
    pending --(cancel)---------------------> cancelled
No transitions leave a terminal state.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal

from sqlalchemy import func
from sqlalchemy.orm import selectinload

from ..extensions import db
from ..errors import (
    AddOnNotBound,
    Conflict,
    InvalidInput,
    OrderNotFound,
    OrderItemNotFound,
    OrderNotPending,
    OrderAlreadyCompleted,
)
from ..models import (
    Order,
    OrderItem,
    OrderItemAddOn,
    OrderItemConsumption,
    OrderPayment,
    OwnerSetting,
    Product,
    ProductAddOn,
    ProductVariant,
    StockMovement,
    WriteContext,
)
from ..models.orders import (
    ORDER_STATUS_PENDING,
    ORDER_STATUS_COMPLETED,
    ORDER_STATUS_CANCELLED,
    PAYMENT_STATUS_FAILED,
)
from ..validation import as_optional_uuid, as_positive_int, as_choice
from .concurrency import lock_for_update, run_with_retry
from .stock_service import Demand, StockLedger, ledger as default_ledger
from .tenant_service import require_outlet, require_product, require_variant, scoped

logger = logging.getLogger(__name__)

VALID_STATUSES = (ORDER_STATUS_PENDING, ORDER_STATUS_COMPLETED, ORDER_STATUS_CANCELLED)


@dataclass
class PricedLine:
    product: Product
    variant: ProductVariant | None
    quantity: int
    unit_price: Decimal
    add_ons: list[tuple[ProductAddOn, int]] = field(default_factory=list)
    demands: list[Demand] = field(default_factory=list)

    @property
    def total(self) -> Decimal:
        add_on_total = sum((Decimal(b.price) * qty for b, qty in self.add_ons), Decimal("0"))
        return self.unit_price * self.quantity + add_on_total


# =============================================================================
# PRICING (read-only, before any transaction)
# =============================================================================

def _inventory_add_ons(owner_id: int) -> bool:
    setting = db.session.query(OwnerSetting).filter_by(owner_id=owner_id).first()
    return bool(setting and setting.inventory_add_ons)


def _resolve_add_on(product: Product, raw: dict) -> tuple[ProductAddOn, int]:
    if not isinstance(raw, dict):
        raise InvalidInput(detail="add_ons entries must be objects")
    binding_uuid = as_optional_uuid(raw.get("product_add_on_uuid"), "product_add_on_uuid")
    if binding_uuid is None:
        raise InvalidInput(detail="product_add_on_uuid is required for each add-on")
    quantity = as_positive_int(raw.get("quantity", 1), "add-on quantity")

    binding = db.session.query(ProductAddOn).filter(
        ProductAddOn.uuid == binding_uuid,
        ProductAddOn.deleted_at.is_(None),
    ).first()
    if (
        binding is None
        or binding.product_id != product.id
        or binding.add_on_product is None
        or binding.add_on_product.is_deleted
    ):
        raise AddOnNotBound(add_on=binding_uuid, product=product.name)
    return binding, quantity


def price_line(owner_id: int, raw: dict, ledger: StockLedger, inventory_add_ons: bool) -> PricedLine:
    """Validate one requested line and capture its prices and stock demands."""
    if not isinstance(raw, dict):
        raise InvalidInput(detail="each line must be an object")

    product_uuid = as_optional_uuid(raw.get("product_uuid"), "product_uuid")
    variant_uuid = as_optional_uuid(raw.get("variant_uuid"), "variant_uuid")
    if product_uuid and variant_uuid:
        raise InvalidInput(detail="a line takes either product_uuid or variant_uuid, not both")
    if not product_uuid and not variant_uuid:
        raise InvalidInput(detail="a line requires product_uuid or variant_uuid")

    quantity = as_positive_int(raw.get("quantity"), "quantity")

    if variant_uuid:
        variant = require_variant(owner_id, variant_uuid)
        product = variant.product
        unit_price = Decimal(variant.price)
    else:
        variant = None
        product = require_product(owner_id, product_uuid)
        unit_price = Decimal(product.price)

    raw_add_ons = raw.get("add_ons") or []
    if not isinstance(raw_add_ons, list):
        raise InvalidInput(detail="add_ons must be a list")
    add_ons = [_resolve_add_on(product, item) for item in raw_add_ons]

    demands = list(ledger.expand(owner_id, product, quantity))
    if inventory_add_ons:
        for binding, add_on_qty in add_ons:
            demands.extend(ledger.expand(owner_id, binding.add_on_product, add_on_qty * quantity))

    return PricedLine(
        product=product,
        variant=variant,
        quantity=quantity,
        unit_price=unit_price,
        add_ons=add_ons,
        demands=demands,
    )


def price_lines(owner_id: int, lines, ledger: StockLedger) -> list[PricedLine]:
    if not isinstance(lines, list) or not lines:
        raise InvalidInput(detail="an order requires at least one line")
    inventory_add_ons = _inventory_add_ons(owner_id)
    return [price_line(owner_id, raw, ledger, inventory_add_ons) for raw in lines]


def _insert_line(ctx: WriteContext, order: Order, line: PricedLine) -> OrderItem:
    item = ctx.add(OrderItem(
        order=order,
        product_id=line.product.id,
        product_variant_id=line.variant.id if line.variant else None,
        product_name=line.variant.name if line.variant else line.product.name,
        price=line.unit_price,
        quantity=line.quantity,
        total=line.total,
    ))
    for binding, qty in line.add_ons:
        ctx.add(OrderItemAddOn(
            order_item=item,
            product_add_on_id=binding.id,
            add_on_product_id=binding.add_on_product_id,
            name=binding.add_on_product.name,
            price=Decimal(binding.price),
            quantity=qty,
        ))
    for demand in StockLedger.aggregate(line.demands):
        ctx.add(OrderItemConsumption(
            order_item=item,
            product_id=demand.product.id,
            quantity=demand.quantity,
        ))
    return item


def _recalculate_total(ctx: WriteContext, order: Order) -> None:
    total = sum((Decimal(item.total) for item in order.live_items), Decimal("0"))
    if total < Decimal(order.paid_amount):
        raise Conflict(detail="order total cannot drop below the amount already paid")
    order.total_amount = total
    if Decimal(order.paid_amount) >= total and Decimal(order.paid_amount) > 0:
        order.status = ORDER_STATUS_COMPLETED
    ctx.touch(order)


# =============================================================================
# ORDER CREATION
# =============================================================================

def create_order(
    ctx: WriteContext,
    owner_id: int,
    outlet_uuid: str,
    lines: list[dict],
    *,
    ledger: StockLedger | None = None,
) -> Order:
    """
    Create an order, price its lines and deduct stock in one transaction.

    Raises:
        OutletNotFound, ProductNotFound, VariantNotFound, AddOnNotBound,
        RecipeMissing, InvalidInput: before any write
        StockNotFound, InsufficientStock: aborts the transaction
    """
    ledger = ledger or default_ledger
    outlet = require_outlet(owner_id, outlet_uuid)
    priced = price_lines(owner_id, lines, ledger)

    def _op():
        order = ctx.add(Order(
            owner_id=owner_id,
            outlet_id=outlet.id,
            user_id=ctx.actor_id,
            total_amount=Decimal("0"),
            paid_amount=Decimal("0"),
            status=ORDER_STATUS_PENDING,
        ))
        db.session.flush()

        demands: list[Demand] = []
        for line in priced:
            _insert_line(ctx, order, line)
            demands.extend(line.demands)

        ledger.reserve_many(
            ctx, owner_id, outlet, demands,
            reference_id=order.uuid,
            description=f"Order {order.uuid}",
        )

        order.total_amount = sum((line.total for line in priced), Decimal("0"))
        db.session.commit()
        return order.uuid

    order_uuid = run_with_retry(_op)
    logger.info("Order created uuid=%s outlet=%s lines=%d", order_uuid, outlet.uuid, len(priced))
    return get_order(owner_id, order_uuid)


# =============================================================================
# QUERIES
# =============================================================================

def _hydrated(query):
    return query.options(
        selectinload(Order.items).selectinload(OrderItem.add_ons),
        selectinload(Order.items).selectinload(OrderItem.payment_items),
        selectinload(Order.payments),
    )


def get_order(owner_id: int, order_uuid: str) -> Order:
    order = _hydrated(scoped(Order, owner_id).filter(Order.uuid == order_uuid)).first()
    if order is None:
        raise OrderNotFound()
    return order


def list_orders_by_outlet(owner_id: int, outlet_uuid: str, status: str | None = None) -> list[Order]:
    outlet = require_outlet(owner_id, outlet_uuid)
    query = scoped(Order, owner_id).filter(Order.outlet_id == outlet.id)
    if status:
        query = query.filter(Order.status == as_choice(status, "status", VALID_STATUSES))
    return _hydrated(query).order_by(Order.created_at.desc(), Order.id.desc()).all()


# =============================================================================
# MUTATIONS ON PENDING ORDERS
# =============================================================================

def _lock_pending_order(owner_id: int, order_uuid: str) -> Order:
    order = lock_for_update(
        scoped(Order, owner_id).filter(Order.uuid == order_uuid)
    ).populate_existing().first()
    if order is None:
        raise OrderNotFound()
    if order.status == ORDER_STATUS_COMPLETED:
        raise OrderAlreadyCompleted()
    if order.status != ORDER_STATUS_PENDING:
        raise OrderNotPending(status=order.status)
    return order


def _reserved_by_order(order: Order) -> list[tuple[int, Decimal]]:
    """Net stock currently held by an order, per product, from its journal."""
    rows = (
        db.session.query(StockMovement.product_id, func.sum(StockMovement.quantity_change))
        .filter(
            StockMovement.owner_id == order.owner_id,
            StockMovement.outlet_id == order.outlet_id,
            StockMovement.reference_id == order.uuid,
        )
        .group_by(StockMovement.product_id)
        .all()
    )
    held = []
    for product_id, total in rows:
        net = Decimal(str(total))
        if net < 0:
            held.append((product_id, -net))
    return held


def cancel_order(ctx: WriteContext, owner_id: int, order_uuid: str, *, ledger: StockLedger | None = None) -> Order:
    """
    Cancel a pending order and return its stock.

    Rejected once any tender is paid or still awaiting gateway settlement.
    """
    ledger = ledger or default_ledger

    def _op():
        order = _lock_pending_order(owner_id, order_uuid)
        open_payments = db.session.query(OrderPayment).filter(
            OrderPayment.order_id == order.id,
            OrderPayment.status != PAYMENT_STATUS_FAILED,
        ).count()
        if open_payments:
            raise Conflict(detail="order has payments and cannot be cancelled")

        held = _reserved_by_order(order)
        products = {}
        if held:
            rows = db.session.query(Product).filter(Product.id.in_([pid for pid, _ in held])).all()
            products = {p.id: p for p in rows}
        ledger.release(
            ctx, owner_id, order.outlet,
            [Demand(products[pid], qty) for pid, qty in held],
            reference_id=order.uuid,
            description=f"Order {order.uuid} cancelled",
        )

        order.status = ORDER_STATUS_CANCELLED
        ctx.touch(order)
        db.session.commit()
        return order.uuid

    uuid = run_with_retry(_op)
    logger.info("Order cancelled uuid=%s", uuid)
    return get_order(owner_id, uuid)


def add_order_item(
    ctx: WriteContext,
    owner_id: int,
    order_uuid: str,
    line: dict,
    *,
    ledger: StockLedger | None = None,
) -> Order:
    ledger = ledger or default_ledger
    priced = price_line(owner_id, line, ledger, _inventory_add_ons(owner_id))

    def _op():
        order = _lock_pending_order(owner_id, order_uuid)
        _insert_line(ctx, order, priced)
        ledger.reserve_many(
            ctx, owner_id, order.outlet, priced.demands,
            reference_id=order.uuid,
            description=f"Order {order.uuid}",
        )
        db.session.flush()
        _recalculate_total(ctx, order)
        db.session.commit()
        return order.uuid

    return get_order(owner_id, run_with_retry(_op))


def delete_order_item(
    ctx: WriteContext,
    owner_id: int,
    order_uuid: str,
    item_uuid: str,
    *,
    ledger: StockLedger | None = None,
) -> Order:
    """
    Remove an unpaid line from a pending order and return its stock.

    Stock is returned from the line's consumption rows, so recipe edits and
    add-on setting changes made after the line was taken do not matter.
    """
    ledger = ledger or default_ledger

    def _op():
        order = _lock_pending_order(owner_id, order_uuid)
        item = next((i for i in order.live_items if i.uuid == item_uuid), None)
        if item is None:
            raise OrderItemNotFound()
        if item.allocated_quantity > 0:
            raise Conflict(detail="order item already has payments")
        if len(order.live_items) == 1:
            raise Conflict(detail="an order must keep at least one line")

        demands = [Demand(row.product, Decimal(row.quantity)) for row in item.consumptions]
        ledger.release(
            ctx, owner_id, order.outlet, demands,
            reference_id=order.uuid,
            description=f"Order {order.uuid} item removed",
        )

        ctx.soft_delete(item)
        db.session.flush()
        _recalculate_total(ctx, order)
        db.session.commit()
        return order.uuid

    return get_order(owner_id, run_with_retry(_op))
