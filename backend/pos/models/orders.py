from __future__ import annotations

from decimal import Decimal

from ..extensions import db
from ..time_utils import to_utc_z
from .base import OwnedMixin, AuditMixin
from .catalog import money

ORDER_STATUS_PENDING = "pending"
ORDER_STATUS_COMPLETED = "completed"
ORDER_STATUS_CANCELLED = "cancelled"

PAYMENT_STATUS_PENDING = "pending"
PAYMENT_STATUS_PAID = "paid"
PAYMENT_STATUS_FAILED = "failed"


class Order(OwnedMixin, db.Model):
    """
    Customer sale at an outlet.

    INVARIANTS (maintained by order_service / payment_service):
    - total_amount == sum(live item.total)
    - paid_amount == sum(amount_paid of payments with is_paid)
    - paid_amount <= total_amount
    - status == completed  <=>  paid_amount >= total_amount
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.Index("ix_orders_outlet_created", "outlet_id", "created_at"),
        db.Index("ix_orders_owner_status", "owner_id", "status"),
        {"sqlite_autoincrement": True},
    )

    outlet_id = db.Column(db.Integer, db.ForeignKey("outlets.id"), nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    total_amount = db.Column(db.Numeric(15, 2), nullable=False, default=0)
    paid_amount = db.Column(db.Numeric(15, 2), nullable=False, default=0)
    status = db.Column(db.String(16), nullable=False, default=ORDER_STATUS_PENDING)

    outlet = db.relationship("Outlet")
    user = db.relationship("User", foreign_keys=[user_id])
    items = db.relationship("OrderItem", back_populates="order", order_by="OrderItem.id", lazy=True)
    payments = db.relationship("OrderPayment", back_populates="order", order_by="OrderPayment.id", lazy=True)

    @property
    def live_items(self) -> list["OrderItem"]:
        return [item for item in self.items if not item.is_deleted]

    @property
    def remaining_amount(self) -> Decimal:
        return Decimal(self.total_amount) - Decimal(self.paid_amount)

    def to_dict(self, include_payments: bool = True) -> dict:
        data = {
            **self.envelope_dict(),
            "outlet": {"uuid": self.outlet.uuid, "name": self.outlet.name},
            "user": {"uuid": self.user.uuid, "name": self.user.name},
            "total_amount": money(self.total_amount),
            "paid_amount": money(self.paid_amount),
            "status": self.status,
            "items": [item.to_dict() for item in self.live_items],
        }
        if include_payments:
            data["payments"] = [p.to_dict() for p in self.payments]
        return data


class OrderItem(AuditMixin, db.Model):
    """Order line; product_name and price are snapshots taken at order time."""
    __tablename__ = "order_items"
    __table_args__ = (
        db.Index("ix_order_items_order", "order_id"),
        db.Index("ix_order_items_product", "product_id"),
        {"sqlite_autoincrement": True},
    )

    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)
    product_variant_id = db.Column(db.Integer, db.ForeignKey("product_variants.id"), nullable=True)
    product_name = db.Column(db.String(255), nullable=False)
    price = db.Column(db.Numeric(15, 2), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    total = db.Column(db.Numeric(15, 2), nullable=False)

    order = db.relationship("Order", back_populates="items")
    product = db.relationship("Product")
    variant = db.relationship("ProductVariant")
    add_ons = db.relationship("OrderItemAddOn", back_populates="order_item", order_by="OrderItemAddOn.id", lazy=True)
    consumptions = db.relationship(
        "OrderItemConsumption",
        back_populates="order_item",
        order_by="OrderItemConsumption.product_id",
        lazy=True,
    )
    payment_items = db.relationship("OrderPaymentItem", back_populates="order_item", lazy=True)

    @property
    def paid_quantity(self) -> int:
        return sum(pi.quantity for pi in self.payment_items if pi.payment.is_paid)

    @property
    def allocated_quantity(self) -> int:
        # pending gateway tenders hold their allocation until they fail
        return sum(
            pi.quantity for pi in self.payment_items
            if pi.payment.status != PAYMENT_STATUS_FAILED
        )

    @property
    def is_paid(self) -> bool:
        return self.paid_quantity >= self.quantity

    def to_dict(self) -> dict:
        return {
            "uuid": self.uuid,
            "product_uuid": self.product.uuid,
            "product_name": self.product_name,
            "variant_uuid": self.variant.uuid if self.variant else None,
            "variant_name": self.variant.name if self.variant else None,
            "price": money(self.price),
            "quantity": self.quantity,
            "total": money(self.total),
            "is_paid": self.is_paid,
            "add_ons": [a.to_dict() for a in self.add_ons],
        }


class OrderItemAddOn(AuditMixin, db.Model):
    __tablename__ = "order_item_add_ons"
    __table_args__ = (
        db.Index("ix_order_item_add_ons_item", "order_item_id"),
        {"sqlite_autoincrement": True},
    )

    order_item_id = db.Column(db.Integer, db.ForeignKey("order_items.id"), nullable=False)
    product_add_on_id = db.Column(db.Integer, db.ForeignKey("product_add_ons.id"), nullable=False)
    add_on_product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)
    name = db.Column(db.String(255), nullable=False)
    price = db.Column(db.Numeric(15, 2), nullable=False)
    quantity = db.Column(db.Integer, nullable=False, default=1)

    order_item = db.relationship("OrderItem", back_populates="add_ons")
    add_on_product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "uuid": self.uuid,
            "add_on_product_uuid": self.add_on_product.uuid,
            "name": self.name,
            "price": money(self.price),
            "quantity": self.quantity,
        }


class OrderItemConsumption(AuditMixin, db.Model):
    """
    Stock one order line took at reservation time, per stocked product.

    Written once with the line and never updated. Removing the line releases
    exactly these quantities, whatever the recipe or add-on setting says by then.
    """
    __tablename__ = "order_item_consumptions"
    __table_args__ = (
        db.UniqueConstraint("order_item_id", "product_id", name="uq_order_item_consumptions_item_product"),
        {"sqlite_autoincrement": True},
    )

    order_item_id = db.Column(db.Integer, db.ForeignKey("order_items.id"), nullable=False)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)
    quantity = db.Column(db.Numeric(15, 3), nullable=False)

    order_item = db.relationship("OrderItem", back_populates="consumptions")
    product = db.relationship("Product")


class OrderPayment(AuditMixin, db.Model):
    """
    A tender applied to an order.

    Cash tenders are paid at creation. Gateway tenders stay pending
    (is_paid=False) until the callback confirms them; only paid tenders count
    toward Order.paid_amount. Paid rows are never modified afterwards.
    """
    __tablename__ = "order_payments"
    __table_args__ = (
        db.UniqueConstraint("reference_id", name="uq_order_payments_reference"),
        db.Index("ix_order_payments_order", "order_id"),
        {"sqlite_autoincrement": True},
    )

    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False)
    payment_method_id = db.Column(db.Integer, db.ForeignKey("payment_methods.id"), nullable=False)
    amount_paid = db.Column(db.Numeric(15, 2), nullable=False)
    change_amount = db.Column(db.Numeric(15, 2), nullable=False, default=0)
    customer_name = db.Column(db.String(255), nullable=True)
    customer_email = db.Column(db.String(255), nullable=True)
    customer_phone = db.Column(db.String(32), nullable=True)
    status = db.Column(db.String(16), nullable=False, default=PAYMENT_STATUS_PENDING)
    is_paid = db.Column(db.Boolean, nullable=False, default=False)
    paid_at = db.Column(db.DateTime(timezone=True), nullable=True)
    reference_id = db.Column(db.String(128), nullable=True)
    extra = db.Column(db.JSON, nullable=True)

    order = db.relationship("Order", back_populates="payments")
    payment_method = db.relationship("PaymentMethod")
    items = db.relationship("OrderPaymentItem", back_populates="payment", lazy=True)

    def to_dict(self) -> dict:
        return {
            "uuid": self.uuid,
            "order_uuid": self.order.uuid,
            "payment_method_id": self.payment_method_id,
            "payment_name": self.payment_method.name if self.payment_method else None,
            "amount_paid": money(self.amount_paid),
            "change_amount": money(self.change_amount),
            "customer_name": self.customer_name,
            "customer_email": self.customer_email,
            "customer_phone": self.customer_phone,
            "status": self.status,
            "is_paid": self.is_paid,
            "paid_at": to_utc_z(self.paid_at),
            "reference_id": self.reference_id,
            "extra": self.extra,
            "items": [
                {"order_item_uuid": pi.order_item.uuid, "quantity": pi.quantity}
                for pi in self.items
            ],
            "created_at": to_utc_z(self.created_at),
        }


class OrderPaymentItem(AuditMixin, db.Model):
    """Allocation of a tender to a quantity of one order line."""
    __tablename__ = "order_payment_items"
    __table_args__ = (
        db.Index("ix_order_payment_items_payment", "order_payment_id"),
        db.Index("ix_order_payment_items_item", "order_item_id"),
        {"sqlite_autoincrement": True},
    )

    order_payment_id = db.Column(db.Integer, db.ForeignKey("order_payments.id"), nullable=False)
    order_item_id = db.Column(db.Integer, db.ForeignKey("order_items.id"), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)

    payment = db.relationship("OrderPayment", back_populates="items")
    order_item = db.relationship("OrderItem", back_populates="payment_items")
