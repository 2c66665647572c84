# Overview: Service-layer operations for stock; encapsulates business logic and database work.

"""
Stock Ledger

WHY: One authoritative quantity per (outlet, product) plus an immutable
journal. Every quantity change appends a StockMovement carrying the same signed
delta, in the same transaction as the change.

DESIGN PRINCIPLES:
- Ledger methods never commit; the caller owns the transaction
- Decrements are a single conditional UPDATE (... WHERE quantity >= :q), so the
  sufficiency check and the write cannot be interleaved by another request
- Multi-product reservations aggregate per product and run in ascending
  product id order, so overlapping orders take row locks in the same order
- fnb_main_product never holds stock; it is expanded through its recipe

FAILURE MODES:
- StockNotFound: no row to decrement
- InsufficientStock: row exists but holds less than requested
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy import update

from ..extensions import db
from ..errors import InsufficientStock, InvalidInput, RecipeMissing, StockNotFound
from ..models import Outlet, Product, Stock, StockMovement, WriteContext
from ..models.catalog import PRODUCT_FNB_MAIN
from ..models.inventory import MOVEMENT_ADJUSTMENT, MOVEMENT_ORDER, MOVEMENT_TYPES
from ..time_utils import utcnow
from ..validation import as_decimal
from . import recipe_service
from .concurrency import lock_for_update, run_with_retry
from .tenant_service import require_outlet, require_product, scoped

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Demand:
    """Quantity of one stocked product needed by an order."""
    product: Product
    quantity: Decimal


def _fmt(value) -> str:
    return f"{Decimal(value).normalize():f}"


class StockLedger:
    """SQL-backed ledger. Methods run inside the caller's session transaction."""

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def read(self, owner_id: int, outlet: Outlet, product: Product) -> Stock:
        stock = (
            scoped(Stock, owner_id)
            .filter_by(outlet_id=outlet.id, product_id=product.id)
            .populate_existing()
            .first()
        )
        if stock is None:
            raise StockNotFound(product=product.name)
        return stock

    def read_all(self, owner_id: int, outlet: Outlet) -> list[Stock]:
        return (
            scoped(Stock, owner_id)
            .filter_by(outlet_id=outlet.id)
            .order_by(Stock.product_id)
            .populate_existing()
            .all()
        )

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    def _journal(
        self,
        ctx: WriteContext,
        owner_id: int,
        outlet: Outlet,
        product: Product,
        delta: Decimal,
        reason: str,
        reference_id: str | None,
        description: str | None,
    ) -> StockMovement:
        if reason not in MOVEMENT_TYPES:
            raise InvalidInput(detail=f"movement type must be one of {', '.join(MOVEMENT_TYPES)}")
        movement = ctx.add(StockMovement(
            owner_id=owner_id,
            outlet_id=outlet.id,
            product_id=product.id,
            quantity_change=delta,
            movement_type=reason,
            reference_id=reference_id,
            description=description,
        ))
        db.session.flush()
        return movement

    def _require_stockable(self, product: Product) -> None:
        if product.type == PRODUCT_FNB_MAIN:
            raise InvalidInput(detail=f"{product.name} is an fnb_main_product and holds no stock")

    def set_quantity(
        self,
        ctx: WriteContext,
        owner_id: int,
        outlet: Outlet,
        product: Product,
        quantity: Decimal,
        *,
        reason: str = MOVEMENT_ADJUSTMENT,
        reference_id: str | None = None,
        description: str | None = None,
    ) -> Stock:
        """Absolute set; journals the difference from the previous quantity."""
        self._require_stockable(product)
        if quantity < 0:
            raise InvalidInput(detail="quantity must be >= 0")

        stock = lock_for_update(
            scoped(Stock, owner_id).filter_by(outlet_id=outlet.id, product_id=product.id)
        ).populate_existing().first()

        if stock is None:
            stock = ctx.add(Stock(
                owner_id=owner_id,
                outlet_id=outlet.id,
                product_id=product.id,
                quantity=quantity,
            ))
            delta = quantity
        else:
            delta = quantity - Decimal(stock.quantity)
            stock.quantity = quantity
            ctx.touch(stock)

        db.session.flush()
        if delta != 0:
            self._journal(ctx, owner_id, outlet, product, delta, reason, reference_id, description)
        return stock

    def adjust(
        self,
        ctx: WriteContext,
        owner_id: int,
        outlet: Outlet,
        product: Product,
        delta: Decimal,
        *,
        reason: str,
        reference_id: str | None = None,
        description: str | None = None,
    ) -> Stock:
        """Signed add. Creates the row when missing and delta >= 0."""
        self._require_stockable(product)
        if delta < 0:
            self._decrement(ctx, owner_id, outlet, product, -delta)
            self._journal(ctx, owner_id, outlet, product, delta, reason, reference_id, description)
            return self.read(owner_id, outlet, product)

        stock = (
            scoped(Stock, owner_id)
            .filter_by(outlet_id=outlet.id, product_id=product.id)
            .first()
        )
        if stock is None:
            ctx.add(Stock(
                owner_id=owner_id,
                outlet_id=outlet.id,
                product_id=product.id,
                quantity=delta,
            ))
            db.session.flush()
        elif delta != 0:
            db.session.execute(
                update(Stock)
                .where(Stock.id == stock.id)
                .values(
                    quantity=Stock.quantity + delta,
                    updated_by=ctx.actor_id,
                    updated_at=utcnow(),
                )
                .execution_options(synchronize_session=False)
            )

        if delta != 0:
            self._journal(ctx, owner_id, outlet, product, delta, reason, reference_id, description)
        return self.read(owner_id, outlet, product)

    def _decrement(
        self,
        ctx: WriteContext,
        owner_id: int,
        outlet: Outlet,
        product: Product,
        quantity: Decimal,
    ) -> None:
        result = db.session.execute(
            update(Stock)
            .where(
                Stock.owner_id == owner_id,
                Stock.outlet_id == outlet.id,
                Stock.product_id == product.id,
                Stock.deleted_at.is_(None),
                Stock.quantity >= quantity,
            )
            .values(
                quantity=Stock.quantity - quantity,
                updated_by=ctx.actor_id,
                updated_at=utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 1:
            return

        current = (
            scoped(Stock, owner_id)
            .filter_by(outlet_id=outlet.id, product_id=product.id)
            .populate_existing()
            .first()
        )
        if current is None:
            raise StockNotFound(product=product.name)
        raise InsufficientStock(
            product=product.name,
            requested=_fmt(quantity),
            available=_fmt(current.quantity),
        )

    def reserve(
        self,
        ctx: WriteContext,
        owner_id: int,
        outlet: Outlet,
        product: Product,
        quantity: Decimal,
        *,
        reference_id: str | None = None,
        description: str | None = None,
    ) -> None:
        """Decrement inside the caller's transaction; fails when current < quantity."""
        self._require_stockable(product)
        if quantity <= 0:
            raise InvalidInput(detail="reservation quantity must be > 0")
        self._decrement(ctx, owner_id, outlet, product, quantity)
        self._journal(ctx, owner_id, outlet, product, -quantity, MOVEMENT_ORDER, reference_id, description)

    # -------------------------------------------------------------------------
    # Recipe-aware reservations
    # -------------------------------------------------------------------------

    def expand(self, owner_id: int, product: Product, quantity) -> list[Demand]:
        """Stock demands for selling `quantity` of `product`."""
        quantity = Decimal(quantity)
        if product.type != PRODUCT_FNB_MAIN:
            return [Demand(product, quantity)]

        edges = recipe_service.resolve(owner_id, product)
        if not edges:
            raise RecipeMissing(product=product.name)
        return [Demand(component, per_unit * quantity) for component, per_unit in edges]

    def expand_and_reserve(
        self,
        ctx: WriteContext,
        owner_id: int,
        outlet: Outlet,
        product: Product,
        quantity,
        *,
        reference_id: str | None = None,
    ) -> None:
        self.reserve_many(ctx, owner_id, outlet, self.expand(owner_id, product, quantity), reference_id=reference_id)

    @staticmethod
    def aggregate(demands: list[Demand]) -> list[Demand]:
        totals: dict[int, Demand] = {}
        for demand in demands:
            prev = totals.get(demand.product.id)
            qty = demand.quantity + (prev.quantity if prev else 0)
            totals[demand.product.id] = Demand(demand.product, qty)
        return [totals[pid] for pid in sorted(totals)]

    def reserve_many(
        self,
        ctx: WriteContext,
        owner_id: int,
        outlet: Outlet,
        demands: list[Demand],
        *,
        reference_id: str | None = None,
        description: str | None = None,
    ) -> None:
        """Reserve all demands, one movement per product, ascending product id."""
        for demand in self.aggregate(demands):
            self.reserve(
                ctx, owner_id, outlet, demand.product, demand.quantity,
                reference_id=reference_id, description=description,
            )

    def release(
        self,
        ctx: WriteContext,
        owner_id: int,
        outlet: Outlet,
        demands: list[Demand],
        *,
        reference_id: str | None = None,
        description: str | None = None,
    ) -> None:
        """Return previously reserved stock (cancelled orders, removed lines)."""
        for demand in self.aggregate(demands):
            self.adjust(
                ctx, owner_id, outlet, demand.product, demand.quantity,
                reason=MOVEMENT_ORDER, reference_id=reference_id, description=description,
            )


ledger = StockLedger()


# =============================================================================
# API-FACING OPERATIONS (own their transaction)
# =============================================================================

def list_stocks(owner_id: int, outlet_uuid: str) -> list[Stock]:
    outlet = require_outlet(owner_id, outlet_uuid)
    return ledger.read_all(owner_id, outlet)


def get_stock(owner_id: int, outlet_uuid: str, product_uuid: str) -> Stock:
    outlet = require_outlet(owner_id, outlet_uuid)
    product = require_product(owner_id, product_uuid)
    return ledger.read(owner_id, outlet, product)


def set_stock(
    ctx: WriteContext,
    owner_id: int,
    outlet_uuid: str,
    product_uuid: str,
    quantity,
    description: str | None = None,
) -> Stock:
    outlet = require_outlet(owner_id, outlet_uuid)
    product = require_product(owner_id, product_uuid)
    qty = as_decimal(quantity, "quantity", minimum=Decimal("0"))

    def _op():
        stock = ledger.set_quantity(
            ctx, owner_id, outlet, product, qty,
            reason=MOVEMENT_ADJUSTMENT,
            reference_id=outlet.uuid,
            description=description or "Stock set",
        )
        db.session.commit()
        return stock

    stock = run_with_retry(_op)
    logger.info("Stock set outlet=%s product=%s quantity=%s", outlet.uuid, product.uuid, qty)
    return stock


def adjust_stock(
    ctx: WriteContext,
    owner_id: int,
    outlet_uuid: str,
    product_uuid: str,
    delta,
    description: str | None = None,
) -> Stock:
    outlet = require_outlet(owner_id, outlet_uuid)
    product = require_product(owner_id, product_uuid)
    change = as_decimal(delta, "quantity_change")
    if change == 0:
        raise InvalidInput(detail="quantity_change must be non-zero")

    def _op():
        stock = ledger.adjust(
            ctx, owner_id, outlet, product, change,
            reason=MOVEMENT_ADJUSTMENT,
            reference_id=outlet.uuid,
            description=description or "Stock adjustment",
        )
        db.session.commit()
        return stock

    return run_with_retry(_op)


def list_movements(
    owner_id: int,
    outlet_uuid: str,
    product_uuid: str | None = None,
    limit: int = 200,
) -> list[StockMovement]:
    outlet = require_outlet(owner_id, outlet_uuid)
    query = scoped(StockMovement, owner_id).filter_by(outlet_id=outlet.id)
    if product_uuid:
        product = require_product(owner_id, product_uuid)
        query = query.filter_by(product_id=product.id)
    return query.order_by(StockMovement.id.desc()).limit(min(max(limit, 1), 1000)).all()
