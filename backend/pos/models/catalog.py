from __future__ import annotations

from ..extensions import db
from .base import OwnedMixin, AuditMixin

OUTLET_RETAIL = "retail"
OUTLET_FNB = "fnb"
OUTLET_TYPES = (OUTLET_RETAIL, OUTLET_FNB)

PRODUCT_RETAIL_ITEM = "retail_item"
PRODUCT_FNB_MAIN = "fnb_main_product"
PRODUCT_FNB_COMPONENT = "fnb_component"
PRODUCT_ADD_ON = "add_on"
PRODUCT_TYPES = (PRODUCT_RETAIL_ITEM, PRODUCT_FNB_MAIN, PRODUCT_FNB_COMPONENT, PRODUCT_ADD_ON)


def money(value) -> float | None:
    return float(value) if value is not None else None


class Outlet(OwnedMixin, db.Model):
    __tablename__ = "outlets"
    __table_args__ = (
        db.Index("ix_outlets_owner_name", "owner_id", "name"),
        {"sqlite_autoincrement": True},
    )

    name = db.Column(db.String(255), nullable=False)
    type = db.Column(db.String(16), nullable=False, default=OUTLET_RETAIL)
    address = db.Column(db.String(512), nullable=True)
    phone = db.Column(db.String(32), nullable=True)

    def __repr__(self) -> str:
        return f"<Outlet id={self.id} name={self.name!r} owner_id={self.owner_id}>"

    def to_dict(self) -> dict:
        return {
            **self.envelope_dict(),
            "name": self.name,
            "type": self.type,
            "address": self.address,
            "phone": self.phone,
        }


class Product(OwnedMixin, db.Model):
    """
    Catalog entry.

    SKU is unique per owner among live (not soft-deleted) products; the service
    layer enforces it so a deleted SKU can be reused.
    fnb_main_product rows never carry stock; their availability comes from the
    components in their recipe.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.Index("ix_products_owner_sku", "owner_id", "sku"),
        db.Index("ix_products_owner_type", "owner_id", "type"),
        {"sqlite_autoincrement": True},
    )

    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    sku = db.Column(db.String(64), nullable=True)
    type = db.Column(db.String(32), nullable=False)
    price = db.Column(db.Numeric(15, 2), nullable=False, default=0)

    variants = db.relationship("ProductVariant", back_populates="product", lazy=True)
    add_ons = db.relationship(
        "ProductAddOn",
        foreign_keys="ProductAddOn.product_id",
        back_populates="product",
        lazy=True,
    )

    def __repr__(self) -> str:
        return f"<Product id={self.id} sku={self.sku!r} type={self.type}>"

    def to_dict(self, include_children: bool = False) -> dict:
        data = {
            **self.envelope_dict(),
            "name": self.name,
            "description": self.description,
            "sku": self.sku,
            "type": self.type,
            "price": money(self.price),
        }
        if include_children:
            data["variants"] = [v.to_dict() for v in self.variants if not v.is_deleted]
            data["add_ons"] = [a.to_dict() for a in self.add_ons if not a.is_deleted]
        return data


class ProductVariant(AuditMixin, db.Model):
    __tablename__ = "product_variants"
    __table_args__ = (
        db.Index("ix_product_variants_product", "product_id"),
        {"sqlite_autoincrement": True},
    )

    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)
    name = db.Column(db.String(255), nullable=False)
    sku = db.Column(db.String(64), nullable=True)
    price = db.Column(db.Numeric(15, 2), nullable=False)

    product = db.relationship("Product", back_populates="variants")

    def to_dict(self) -> dict:
        return {
            **self.envelope_dict(),
            "product_uuid": self.product.uuid if self.product else None,
            "name": self.name,
            "sku": self.sku,
            "price": money(self.price),
        }


class ProductAddOn(AuditMixin, db.Model):
    """Binds an add_on product to a product with a per-binding price."""
    __tablename__ = "product_add_ons"
    __table_args__ = (
        db.Index("ix_product_add_ons_pair", "product_id", "add_on_product_id"),
        {"sqlite_autoincrement": True},
    )

    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)
    add_on_product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)
    price = db.Column(db.Numeric(15, 2), nullable=False)

    product = db.relationship("Product", foreign_keys=[product_id], back_populates="add_ons")
    add_on_product = db.relationship("Product", foreign_keys=[add_on_product_id])

    def to_dict(self) -> dict:
        return {
            **self.envelope_dict(),
            "product_uuid": self.product.uuid if self.product else None,
            "add_on_product_uuid": self.add_on_product.uuid if self.add_on_product else None,
            "name": self.add_on_product.name if self.add_on_product else None,
            "price": money(self.price),
        }


class Recipe(OwnedMixin, db.Model):
    """Recipe edge: one unit of main_product consumes `quantity` of component."""
    __tablename__ = "recipes"
    __table_args__ = (
        db.Index("ix_recipes_main_component", "main_product_id", "component_id"),
        {"sqlite_autoincrement": True},
    )

    main_product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)
    component_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)
    quantity = db.Column(db.Numeric(15, 3), nullable=False)

    main_product = db.relationship("Product", foreign_keys=[main_product_id])
    component = db.relationship("Product", foreign_keys=[component_id])

    def to_dict(self) -> dict:
        return {
            **self.envelope_dict(),
            "main_product_uuid": self.main_product.uuid,
            "component_uuid": self.component.uuid,
            "component_name": self.component.name,
            "quantity": float(self.quantity),
        }


class Supplier(OwnedMixin, db.Model):
    __tablename__ = "suppliers"
    __table_args__ = (
        db.Index("ix_suppliers_owner_name", "owner_id", "name"),
        {"sqlite_autoincrement": True},
    )

    name = db.Column(db.String(255), nullable=False)
    contact = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(32), nullable=True)
    email = db.Column(db.String(255), nullable=True)
    address = db.Column(db.String(512), nullable=True)

    def to_dict(self) -> dict:
        return {
            **self.envelope_dict(),
            "name": self.name,
            "contact": self.contact,
            "phone": self.phone,
            "email": self.email,
            "address": self.address,
        }
