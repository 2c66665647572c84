# Overview: Service-layer operations for reporting; read-only, owner-scoped, soft-delete aware.

from __future__ import annotations

from decimal import Decimal

from sqlalchemy.orm import selectinload

from ..extensions import db
from ..errors import InvalidInput
from ..models import Order, OrderItem, ProductVariant, Stock
from ..models.catalog import money
from ..models.orders import ORDER_STATUS_CANCELLED
from ..time_utils import day_window, parse_report_date, to_utc_z
from .tenant_service import require_outlet, require_product, scoped


class ReportError(InvalidInput):
    """Raised when report parameters are invalid."""


def _window(start: str | None, end: str | None):
    try:
        start_date = parse_report_date(start, "start_date")
        end_date = parse_report_date(end, "end_date")
    except ValueError as exc:
        raise ReportError(detail=str(exc))
    if end_date < start_date:
        raise ReportError(detail="end_date must not be before start_date")
    return start_date, end_date, day_window(start_date, end_date)


def sales_by_outlet(owner_id: int, outlet_uuid: str, start: str | None, end: str | None) -> dict:
    start_date, end_date, (start_dt, end_dt) = _window(start, end)
    outlet = require_outlet(owner_id, outlet_uuid)

    orders = (
        scoped(Order, owner_id)
        .filter(
            Order.outlet_id == outlet.id,
            Order.created_at >= start_dt,
            Order.created_at < end_dt,
        )
        .options(
            selectinload(Order.items).selectinload(OrderItem.add_ons),
            selectinload(Order.payments),
        )
        .order_by(Order.created_at, Order.id)
        .all()
    )

    counted = [o for o in orders if o.status != ORDER_STATUS_CANCELLED]
    gross = sum((Decimal(o.total_amount) for o in counted), Decimal("0"))
    paid = sum((Decimal(o.paid_amount) for o in counted), Decimal("0"))

    return {
        "outlet_uuid": outlet.uuid,
        "outlet_name": outlet.name,
        "start_date": start_date.isoformat(),
        "end_date": end_date.isoformat(),
        "orders": [o.to_dict(include_payments=False) for o in orders],
        "totals": {
            "order_count": len(counted),
            "cancelled_count": len(orders) - len(counted),
            "gross_total": money(gross),
            "paid_total": money(paid),
        },
    }


def sales_by_product(owner_id: int, product_uuid: str, start: str | None, end: str | None) -> dict:
    start_date, end_date, (start_dt, end_dt) = _window(start, end)
    product = require_product(owner_id, product_uuid)

    rows = (
        db.session.query(OrderItem, Order)
        .join(Order, Order.id == OrderItem.order_id)
        .filter(
            Order.owner_id == owner_id,
            Order.deleted_at.is_(None),
            OrderItem.deleted_at.is_(None),
            OrderItem.product_id == product.id,
            OrderItem.created_at >= start_dt,
            OrderItem.created_at < end_dt,
        )
        .order_by(OrderItem.created_at, OrderItem.id)
        .all()
    )

    lines = []
    quantity = 0
    revenue = Decimal("0")
    for item, order in rows:
        lines.append({
            **item.to_dict(),
            "order_uuid": order.uuid,
            "order_status": order.status,
            "outlet_uuid": order.outlet.uuid,
            "outlet_name": order.outlet.name,
            "cashier": order.user.name,
            "created_at": to_utc_z(item.created_at),
        })
        if order.status != ORDER_STATUS_CANCELLED:
            quantity += item.quantity
            revenue += Decimal(item.total)

    return {
        "product_uuid": product.uuid,
        "product_name": product.name,
        "start_date": start_date.isoformat(),
        "end_date": end_date.isoformat(),
        "items": lines,
        "totals": {"quantity": quantity, "revenue": money(revenue)},
    }


def stock_by_outlet(owner_id: int, outlet_uuid: str) -> dict:
    outlet = require_outlet(owner_id, outlet_uuid)
    stocks = (
        scoped(Stock, owner_id)
        .filter(Stock.outlet_id == outlet.id)
        .order_by(Stock.product_id)
        .all()
    )

    product_ids = [s.product_id for s in stocks]
    variants: dict[int, list[ProductVariant]] = {}
    if product_ids:
        for variant in (
            db.session.query(ProductVariant)
            .filter(ProductVariant.product_id.in_(product_ids), ProductVariant.deleted_at.is_(None))
            .order_by(ProductVariant.id)
        ):
            variants.setdefault(variant.product_id, []).append(variant)

    rows = []
    for stock in stocks:
        if stock.product.is_deleted:
            continue
        rows.append({
            "product_uuid": stock.product.uuid,
            "product_name": stock.product.name,
            "product_sku": stock.product.sku,
            "product_type": stock.product.type,
            "quantity": float(stock.quantity),
            "variants": [
                {"uuid": v.uuid, "variant_name": v.name, "variant_sku": v.sku}
                for v in variants.get(stock.product_id, [])
            ],
        })
    return {"outlet_uuid": outlet.uuid, "outlet_name": outlet.name, "stocks": rows}
