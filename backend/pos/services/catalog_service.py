# Overview: Service-layer operations for the catalog; outlets, products, variants, add-ons, suppliers.

"""
Catalog Service

MULTI-TENANT: every row is created under the caller's owner id and looked up
through tenant_service, so another owner's uuid behaves as not found.

- Product SKUs are unique per owner among live products
- Add-on bindings require the bound product to be of type add_on and are
  unique per (product, add-on product) among live bindings
- Deletes are soft; a deleted SKU may be reused
"""

from __future__ import annotations

from decimal import Decimal

from ..extensions import db
from ..errors import Conflict, InvalidInput, NotFound, VariantNotFound
from ..models import OwnerSetting, Outlet, Product, ProductAddOn, ProductVariant, Supplier, WriteContext
from ..models.catalog import OUTLET_RETAIL, OUTLET_TYPES, PRODUCT_ADD_ON, PRODUCT_TYPES
from ..validation import as_choice, as_decimal, as_text, as_uuid, require_fields
from .tenant_service import require_outlet, require_product, require_supplier, scoped

OUTLET_MUTABLE_FIELDS = {"name", "type", "address", "phone"}
PRODUCT_MUTABLE_FIELDS = {"name", "description", "sku", "price"}
SUPPLIER_MUTABLE_FIELDS = {"name", "contact", "phone", "email", "address"}


def _clean(field: str, value):
    if field == "name":
        return as_text(value, "name")
    if field == "type":
        return as_choice(value, "type", OUTLET_TYPES)
    if field == "price":
        return as_decimal(value, "price", minimum=Decimal("0"))
    if field == "description":
        return as_text(value, "description", max_length=4000, required=False)
    if field == "phone":
        return as_text(value, "phone", max_length=32, required=False)
    if field == "sku":
        return as_text(value, "sku", max_length=64, required=False)
    return as_text(value, field, max_length=512, required=False)


def apply_patch(row, patch: dict, mutable: set[str]) -> None:
    if not isinstance(patch, dict):
        raise InvalidInput(detail="JSON object expected")
    for key, value in patch.items():
        if key not in mutable:
            continue
        setattr(row, key, _clean(key, value))


# =============================================================================
# OUTLETS
# =============================================================================

def create_outlet(ctx: WriteContext, owner_id: int, payload: dict) -> Outlet:
    payload = require_fields(payload, "name")
    outlet = Outlet(owner_id=owner_id, type=OUTLET_RETAIL)
    apply_patch(outlet, payload, OUTLET_MUTABLE_FIELDS)
    ctx.add(outlet)
    db.session.commit()
    return outlet


def list_outlets(owner_id: int) -> list[Outlet]:
    return scoped(Outlet, owner_id).order_by(Outlet.name.asc(), Outlet.id.asc()).all()


def update_outlet(ctx: WriteContext, owner_id: int, outlet_uuid: str, patch: dict) -> Outlet:
    outlet = require_outlet(owner_id, outlet_uuid)
    apply_patch(outlet, patch, OUTLET_MUTABLE_FIELDS)
    ctx.touch(outlet)
    db.session.commit()
    return outlet


def delete_outlet(ctx: WriteContext, owner_id: int, outlet_uuid: str) -> None:
    outlet = require_outlet(owner_id, outlet_uuid)
    ctx.soft_delete(outlet)
    db.session.commit()


# =============================================================================
# PRODUCTS
# =============================================================================

def _ensure_sku_available(owner_id: int, sku: str | None, exclude_id: int | None = None) -> None:
    if not sku:
        return
    query = scoped(Product, owner_id).filter(Product.sku == sku)
    if exclude_id is not None:
        query = query.filter(Product.id != exclude_id)
    if query.first() is not None:
        raise Conflict(detail=f"SKU {sku} already exists")


def create_product(ctx: WriteContext, owner_id: int, payload: dict) -> Product:
    payload = require_fields(payload, "name", "type")
    product = Product(
        owner_id=owner_id,
        type=as_choice(payload.get("type"), "type", PRODUCT_TYPES),
        price=Decimal("0"),
    )
    apply_patch(product, payload, PRODUCT_MUTABLE_FIELDS)
    _ensure_sku_available(owner_id, product.sku)
    ctx.add(product)
    db.session.commit()
    return product


def list_products(owner_id: int, product_type: str | None = None) -> list[Product]:
    query = scoped(Product, owner_id)
    if product_type:
        query = query.filter(Product.type == as_choice(product_type, "type", PRODUCT_TYPES))
    return query.order_by(Product.name.asc(), Product.id.asc()).all()


def update_product(ctx: WriteContext, owner_id: int, product_uuid: str, patch: dict) -> Product:
    product = require_product(owner_id, product_uuid)
    ctx.touch(product)
    apply_patch(product, patch, PRODUCT_MUTABLE_FIELDS)
    _ensure_sku_available(owner_id, product.sku, exclude_id=product.id)
    db.session.commit()
    return product


def delete_product(ctx: WriteContext, owner_id: int, product_uuid: str) -> None:
    product = require_product(owner_id, product_uuid)
    ctx.soft_delete(product)
    db.session.commit()


# =============================================================================
# VARIANTS
# =============================================================================

def add_variant(ctx: WriteContext, owner_id: int, product_uuid: str, payload: dict) -> ProductVariant:
    product = require_product(owner_id, product_uuid)
    payload = require_fields(payload, "name", "price")
    variant = ctx.add(ProductVariant(
        product_id=product.id,
        name=as_text(payload.get("name"), "name"),
        sku=as_text(payload.get("sku"), "sku", max_length=64, required=False),
        price=as_decimal(payload.get("price"), "price", minimum=Decimal("0")),
    ))
    db.session.commit()
    return variant


def delete_variant(ctx: WriteContext, owner_id: int, product_uuid: str, variant_uuid: str) -> None:
    product = require_product(owner_id, product_uuid)
    variant = db.session.query(ProductVariant).filter(
        ProductVariant.uuid == variant_uuid,
        ProductVariant.product_id == product.id,
        ProductVariant.deleted_at.is_(None),
    ).first()
    if variant is None:
        raise VariantNotFound()
    ctx.soft_delete(variant)
    db.session.commit()


# =============================================================================
# ADD-ON BINDINGS
# =============================================================================

def bind_add_on(ctx: WriteContext, owner_id: int, product_uuid: str, payload: dict) -> ProductAddOn:
    product = require_product(owner_id, product_uuid)
    payload = require_fields(payload, "add_on_product_uuid")
    add_on = require_product(owner_id, as_uuid(payload.get("add_on_product_uuid"), "add_on_product_uuid"))
    if add_on.type != PRODUCT_ADD_ON:
        raise InvalidInput(detail=f"{add_on.name} is not an add_on product")
    if add_on.id == product.id:
        raise InvalidInput(detail="a product cannot be its own add-on")

    existing = db.session.query(ProductAddOn).filter(
        ProductAddOn.product_id == product.id,
        ProductAddOn.add_on_product_id == add_on.id,
        ProductAddOn.deleted_at.is_(None),
    ).first()
    if existing is not None:
        raise Conflict(detail=f"{add_on.name} is already bound to {product.name}")

    price = payload.get("price")
    binding = ctx.add(ProductAddOn(
        product_id=product.id,
        add_on_product_id=add_on.id,
        price=add_on.price if price is None else as_decimal(price, "price", minimum=Decimal("0")),
    ))
    db.session.commit()
    return binding


def list_add_ons(owner_id: int, product_uuid: str) -> list[ProductAddOn]:
    product = require_product(owner_id, product_uuid)
    return [b for b in product.add_ons if not b.is_deleted]


def unbind_add_on(ctx: WriteContext, owner_id: int, product_uuid: str, binding_uuid: str) -> None:
    product = require_product(owner_id, product_uuid)
    binding = db.session.query(ProductAddOn).filter(
        ProductAddOn.uuid == binding_uuid,
        ProductAddOn.product_id == product.id,
        ProductAddOn.deleted_at.is_(None),
    ).first()
    if binding is None:
        raise NotFound()
    ctx.soft_delete(binding)
    db.session.commit()


# =============================================================================
# SUPPLIERS
# =============================================================================

def create_supplier(ctx: WriteContext, owner_id: int, payload: dict) -> Supplier:
    payload = require_fields(payload, "name")
    supplier = Supplier(owner_id=owner_id)
    apply_patch(supplier, payload, SUPPLIER_MUTABLE_FIELDS)
    ctx.add(supplier)
    db.session.commit()
    return supplier


def list_suppliers(owner_id: int) -> list[Supplier]:
    return scoped(Supplier, owner_id).order_by(Supplier.name.asc(), Supplier.id.asc()).all()


def update_supplier(ctx: WriteContext, owner_id: int, supplier_uuid: str, patch: dict) -> Supplier:
    supplier = require_supplier(owner_id, supplier_uuid)
    apply_patch(supplier, patch, SUPPLIER_MUTABLE_FIELDS)
    ctx.touch(supplier)
    db.session.commit()
    return supplier


def delete_supplier(ctx: WriteContext, owner_id: int, supplier_uuid: str) -> None:
    supplier = require_supplier(owner_id, supplier_uuid)
    ctx.soft_delete(supplier)
    db.session.commit()


# =============================================================================
# OWNER SETTINGS
# =============================================================================

def get_owner_settings(owner_id: int) -> dict:
    setting = db.session.query(OwnerSetting).filter_by(owner_id=owner_id).first()
    return {"inventory_add_ons": bool(setting and setting.inventory_add_ons)}


def update_owner_settings(ctx: WriteContext, owner_id: int, payload: dict) -> dict:
    payload = require_fields(payload, "inventory_add_ons")
    value = payload.get("inventory_add_ons")
    if not isinstance(value, bool):
        raise InvalidInput(detail="inventory_add_ons must be a boolean")

    setting = db.session.query(OwnerSetting).filter_by(owner_id=owner_id).first()
    if setting is None:
        ctx.add(OwnerSetting(owner_id=owner_id, inventory_add_ons=value))
    else:
        setting.inventory_add_ons = value
        ctx.touch(setting)
    db.session.commit()
    return {"inventory_add_ons": value}
