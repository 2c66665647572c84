from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z
from .base import OwnedMixin, AuditMixin
from .catalog import money

MOVEMENT_ORDER = "Order"
MOVEMENT_PURCHASE_ORDER = "PurchaseOrder"
MOVEMENT_ADJUSTMENT = "Adjustment"
MOVEMENT_TYPES = (MOVEMENT_ORDER, MOVEMENT_PURCHASE_ORDER, MOVEMENT_ADJUSTMENT)

PO_STATUS_PENDING = "pending"
PO_STATUS_COMPLETED = "completed"
PO_STATUS_CANCELLED = "cancelled"


class Stock(OwnedMixin, db.Model):
    """
    Authoritative on-hand quantity for one product at one outlet.

    Mutated only through services.stock_service, which appends a StockMovement
    with the same signed delta in the same transaction.
    """
    __tablename__ = "stocks"
    __table_args__ = (
        db.UniqueConstraint("outlet_id", "product_id", name="uq_stocks_outlet_product"),
        db.CheckConstraint("quantity >= 0", name="ck_stocks_quantity_non_negative"),
        {"sqlite_autoincrement": True},
    )

    outlet_id = db.Column(db.Integer, db.ForeignKey("outlets.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    quantity = db.Column(db.Numeric(15, 3), nullable=False, default=0)

    outlet = db.relationship("Outlet")
    product = db.relationship("Product")

    def __repr__(self) -> str:
        return f"<Stock outlet_id={self.outlet_id} product_id={self.product_id} qty={self.quantity}>"

    def to_dict(self) -> dict:
        return {
            **self.envelope_dict(),
            "outlet_uuid": self.outlet.uuid,
            "product_uuid": self.product.uuid,
            "product_name": self.product.name,
            "sku": self.product.sku,
            "quantity": float(self.quantity),
        }


class StockMovement(OwnedMixin, db.Model):
    """Immutable journal row; one per stock change."""
    __tablename__ = "stock_movements"
    __table_args__ = (
        db.Index("ix_stock_movements_outlet_product", "outlet_id", "product_id", "created_at"),
        db.Index("ix_stock_movements_reference", "reference_id"),
        {"sqlite_autoincrement": True},
    )

    outlet_id = db.Column(db.Integer, db.ForeignKey("outlets.id"), nullable=False)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)
    quantity_change = db.Column(db.Numeric(15, 3), nullable=False)
    movement_type = db.Column(db.String(32), nullable=False)
    reference_id = db.Column(db.String(36), nullable=True)
    description = db.Column(db.String(512), nullable=True)

    product = db.relationship("Product")
    outlet = db.relationship("Outlet")

    def to_dict(self) -> dict:
        return {
            "uuid": self.uuid,
            "outlet_uuid": self.outlet.uuid,
            "product_uuid": self.product.uuid,
            "product_name": self.product.name,
            "quantity_change": float(self.quantity_change),
            "movement_type": self.movement_type,
            "reference_id": self.reference_id,
            "description": self.description,
            "created_at": to_utc_z(self.created_at),
        }


class PurchaseOrder(OwnedMixin, db.Model):
    __tablename__ = "purchase_orders"
    __table_args__ = (
        db.Index("ix_purchase_orders_outlet_status", "outlet_id", "status"),
        {"sqlite_autoincrement": True},
    )

    supplier_id = db.Column(db.Integer, db.ForeignKey("suppliers.id"), nullable=False)
    outlet_id = db.Column(db.Integer, db.ForeignKey("outlets.id"), nullable=False)
    order_date = db.Column(db.DateTime(timezone=True), nullable=False)
    total_amount = db.Column(db.Numeric(15, 2), nullable=False, default=0)
    status = db.Column(db.String(16), nullable=False, default=PO_STATUS_PENDING)
    received_at = db.Column(db.DateTime(timezone=True), nullable=True)

    supplier = db.relationship("Supplier")
    outlet = db.relationship("Outlet")
    items = db.relationship(
        "PurchaseOrderItem",
        back_populates="purchase_order",
        order_by="PurchaseOrderItem.id",
        lazy=True,
    )

    def to_dict(self) -> dict:
        return {
            **self.envelope_dict(),
            "supplier_uuid": self.supplier.uuid,
            "supplier_name": self.supplier.name,
            "outlet_uuid": self.outlet.uuid,
            "order_date": to_utc_z(self.order_date),
            "total_amount": money(self.total_amount),
            "status": self.status,
            "received_at": to_utc_z(self.received_at),
            "items": [item.to_dict() for item in self.items if not item.is_deleted],
        }


class PurchaseOrderItem(AuditMixin, db.Model):
    __tablename__ = "purchase_order_items"
    __table_args__ = (
        db.Index("ix_purchase_order_items_po", "purchase_order_id"),
        {"sqlite_autoincrement": True},
    )

    purchase_order_id = db.Column(db.Integer, db.ForeignKey("purchase_orders.id"), nullable=False)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)
    product_variant_id = db.Column(db.Integer, db.ForeignKey("product_variants.id"), nullable=True)
    quantity = db.Column(db.Numeric(15, 3), nullable=False)
    price = db.Column(db.Numeric(15, 2), nullable=False)

    purchase_order = db.relationship("PurchaseOrder", back_populates="items")
    product = db.relationship("Product")
    variant = db.relationship("ProductVariant")

    def to_dict(self) -> dict:
        return {
            "uuid": self.uuid,
            "product_uuid": self.product.uuid,
            "product_name": self.product.name,
            "variant_uuid": self.variant.uuid if self.variant else None,
            "quantity": float(self.quantity),
            "price": money(self.price),
        }
