"""
Tenancy Resolver: owner scope and scoped lookups

WHY: Every business row belongs to an owner. Staff (managers, cashiers) act
inside their creator's scope, so every read and write is filtered by the
resolved owner id, which services receive as an explicit parameter.

SECURITY INVARIANTS:
1. resolve_owner_id() is the only place a user is mapped to a tenant
2. Lookups by external uuid always include owner_id and deleted_at IS NULL
3. A row owned by another tenant is reported as not found, never as forbidden,
   so its existence is not revealed; the attempt is logged

USAGE:
    from pos.services.tenant_service import resolve_owner_id, require_outlet

    owner_id = resolve_owner_id(user)
    outlet = require_outlet(owner_id, outlet_uuid)
"""

import logging

from ..extensions import db
from ..errors import OutletNotFound, ProductNotFound, SupplierNotFound, VariantNotFound, TenancyViolation
from ..models import User, Outlet, Product, ProductVariant, Supplier
from ..models.auth import STAFF_ROLES

logger = logging.getLogger(__name__)


def resolve_owner_id(user: User) -> int:
    """
    Map an authenticated user to the owner id used for scoping.

    Managers and cashiers with a creator act for that creator; everyone else
    (owners, or staff rows missing a creator) is their own scope.
    """
    if user.role in STAFF_ROLES and user.creator_id is not None:
        return user.creator_id
    return user.id


def scoped(model, owner_id: int):
    """Query over live rows of `model` belonging to `owner_id`."""
    return db.session.query(model).filter(
        model.owner_id == owner_id,
        model.deleted_at.is_(None),
    )


def _log_cross_tenant_attempt(model_name: str, ref: str, owner_id: int, actual_owner_id: int) -> None:
    logger.warning(
        "Cross-tenant access denied: %s %s belongs to owner %s, requested by owner %s",
        model_name, ref, actual_owner_id, owner_id,
    )


def _require_owned(model, owner_id: int, ref: str, not_found_exc):
    row = db.session.query(model).filter(
        model.uuid == ref,
        model.deleted_at.is_(None),
    ).first()
    if row is None:
        raise not_found_exc()
    if row.owner_id != owner_id:
        _log_cross_tenant_attempt(model.__name__, ref, owner_id, row.owner_id)
        raise not_found_exc()
    return row


def require_outlet(owner_id: int, outlet_uuid: str) -> Outlet:
    return _require_owned(Outlet, owner_id, outlet_uuid, OutletNotFound)


def require_product(owner_id: int, product_uuid: str) -> Product:
    return _require_owned(Product, owner_id, product_uuid, ProductNotFound)


def require_variant(owner_id: int, variant_uuid: str) -> ProductVariant:
    """
    Load a live variant whose parent product is live and owned by `owner_id`.

    A variant under a soft-deleted product is treated as missing.
    """
    variant = db.session.query(ProductVariant).filter(
        ProductVariant.uuid == variant_uuid,
        ProductVariant.deleted_at.is_(None),
    ).first()
    if variant is None or variant.product is None or variant.product.is_deleted:
        raise VariantNotFound()
    if variant.product.owner_id != owner_id:
        _log_cross_tenant_attempt("ProductVariant", variant_uuid, owner_id, variant.product.owner_id)
        raise VariantNotFound()
    return variant


def require_staff_of(owner_id: int, user_uuid: str) -> User:
    """Load a staff user that belongs to `owner_id`."""
    user = db.session.query(User).filter(
        User.uuid == user_uuid,
        User.deleted_at.is_(None),
    ).first()
    if user is None or resolve_owner_id(user) != owner_id:
        raise TenancyViolation()
    return user


def require_supplier(owner_id: int, supplier_uuid: str) -> Supplier:
    return _require_owned(Supplier, owner_id, supplier_uuid, SupplierNotFound)
