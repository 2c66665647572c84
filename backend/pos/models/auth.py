from __future__ import annotations

from ..extensions import db
from .base import AuditMixin

ROLE_OWNER = "owner"
ROLE_MANAGER = "manager"
ROLE_CASHIER = "cashier"

STAFF_ROLES = (ROLE_MANAGER, ROLE_CASHIER)
VALID_ROLES = (ROLE_OWNER,) + STAFF_ROLES


class User(AuditMixin, db.Model):
    """
    User accounts for authentication and attribution.

    MULTI-TENANT: an owner is the tenant root. Staff (manager, cashier) point
    at their owner through creator_id and act inside the owner's scope.
    """
    __tablename__ = "users"
    __table_args__ = (
        db.Index("ix_users_creator_role", "creator_id", "role"),
        {"sqlite_autoincrement": True},
    )

    name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), nullable=False, unique=True)
    phone = db.Column(db.String(32), nullable=True)

    # Bcrypt hashed password
    password_hash = db.Column(db.String(255), nullable=False)

    role = db.Column(db.String(16), nullable=False, default=ROLE_OWNER)
    creator_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)
    email_verified_at = db.Column(db.DateTime(timezone=True), nullable=True)

    creator = db.relationship("User", remote_side="User.id", backref=db.backref("staff", lazy=True))

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email!r} role={self.role}>"

    def to_dict(self) -> dict:
        return {
            **self.envelope_dict(),
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "role": self.role,
            "creator_uuid": self.creator.uuid if self.creator else None,
            "is_active": self.is_active,
            "email_verified": self.email_verified_at is not None,
        }


class OwnerSetting(AuditMixin, db.Model):
    """
    Per-owner configuration.

    inventory_add_ons: when true, add-ons sold on an order line deduct stock of
    the add-on product at the order's outlet.
    """
    __tablename__ = "owner_settings"
    __table_args__ = (
        db.UniqueConstraint("owner_id", name="uq_owner_settings_owner"),
        {"sqlite_autoincrement": True},
    )

    owner_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    inventory_add_ons = db.Column(db.Boolean, nullable=False, default=False)

    def to_dict(self) -> dict:
        return {
            **self.envelope_dict(),
            "inventory_add_ons": self.inventory_add_ons,
        }


class UserOtp(AuditMixin, db.Model):
    """One-time verification code; only the bcrypt hash is stored."""
    __tablename__ = "user_otps"
    __table_args__ = (
        db.Index("ix_user_otps_user_purpose", "user_id", "purpose"),
        {"sqlite_autoincrement": True},
    )

    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    code_hash = db.Column(db.String(255), nullable=False)
    purpose = db.Column(db.String(50), nullable=False)
    target = db.Column(db.String(255), nullable=False)
    expires_at = db.Column(db.DateTime(timezone=True), nullable=False)
