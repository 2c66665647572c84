from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z
from .base import OwnedMixin, AuditMixin
from .catalog import money

ISSUER_DEFAULT = "default"
ISSUER_IPAYMU = "iPaymu"
ISSUER_TSM = "TSM"

TYPE_CASH = "cash"


class PaymentMethod(AuditMixin, db.Model):
    """Globally defined tender (cash, bank_transfer, credit_card, qris, ...)."""
    __tablename__ = "payment_methods"
    __table_args__ = (
        db.UniqueConstraint("name", name="uq_payment_methods_name"),
        {"sqlite_autoincrement": True},
    )

    name = db.Column(db.String(64), nullable=False)
    type = db.Column(db.String(32), nullable=False)
    payment_method = db.Column(db.String(32), nullable=False)
    payment_channel = db.Column(db.String(32), nullable=False)
    issuer = db.Column(db.String(32), nullable=False, default=ISSUER_DEFAULT)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    @property
    def is_cash(self) -> bool:
        return self.type == TYPE_CASH

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "payment_method": self.payment_method,
            "payment_channel": self.payment_channel,
            "issuer": self.issuer,
            "is_active": self.is_active,
        }


class UserPayment(OwnedMixin, db.Model):
    """Per-owner activation of a payment method."""
    __tablename__ = "user_payments"
    __table_args__ = (
        db.UniqueConstraint("owner_id", "payment_method_id", name="uq_user_payments_owner_method"),
        {"sqlite_autoincrement": True},
    )

    payment_method_id = db.Column(db.Integer, db.ForeignKey("payment_methods.id"), nullable=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    payment_method = db.relationship("PaymentMethod")


class UserIpaymu(OwnedMixin, db.Model):
    """Owner's iPaymu registration (virtual account)."""
    __tablename__ = "user_ipaymus"
    __table_args__ = (
        db.UniqueConstraint("owner_id", name="uq_user_ipaymus_owner"),
        {"sqlite_autoincrement": True},
    )

    va = db.Column(db.String(64), nullable=False)

    def to_dict(self) -> dict:
        return {**self.envelope_dict(), "va": self.va}


class UserTsm(OwnedMixin, db.Model):
    """Owner's TSM terminal registration."""
    __tablename__ = "user_tsms"
    __table_args__ = (
        db.UniqueConstraint("owner_id", name="uq_user_tsms_owner"),
        {"sqlite_autoincrement": True},
    )

    app_code = db.Column(db.String(64), nullable=False)
    merchant_code = db.Column(db.String(64), nullable=False)
    terminal_code = db.Column(db.String(64), nullable=False)
    serial_number = db.Column(db.String(64), nullable=True)
    mid = db.Column(db.String(64), nullable=False)
    va = db.Column(db.String(64), nullable=True)

    def to_dict(self) -> dict:
        return {
            **self.envelope_dict(),
            "app_code": self.app_code,
            "merchant_code": self.merchant_code,
            "terminal_code": self.terminal_code,
            "serial_number": self.serial_number,
            "mid": self.mid,
            "va": self.va,
        }


class IpaymuLog(AuditMixin, db.Model):
    """Audit row per outbound iPaymu transaction; settlement fields filled by the callback."""
    __tablename__ = "ipaymu_logs"
    __table_args__ = (
        db.Index("ix_ipaymu_logs_reference", "reference_ipaymu"),
        db.Index("ix_ipaymu_logs_service_ref", "service_ref_id"),
        {"sqlite_autoincrement": True},
    )

    service_name = db.Column(db.String(64), nullable=False)
    service_ref_id = db.Column(db.String(36), nullable=False)
    reference_ipaymu = db.Column(db.String(128), nullable=True)
    amount = db.Column(db.Numeric(15, 2), nullable=False)
    status = db.Column(db.String(32), nullable=False)
    settlement_status = db.Column(db.String(32), nullable=True)
    payment_method = db.Column(db.String(32), nullable=True)
    payment_channel = db.Column(db.String(32), nullable=True)
    request_at = db.Column(db.DateTime(timezone=True), nullable=False)
    success_at = db.Column(db.DateTime(timezone=True), nullable=True)
    settlement_at = db.Column(db.DateTime(timezone=True), nullable=True)

    def to_dict(self) -> dict:
        return {
            "service_name": self.service_name,
            "service_ref_id": self.service_ref_id,
            "reference_ipaymu": self.reference_ipaymu,
            "amount": money(self.amount),
            "status": self.status,
            "settlement_status": self.settlement_status,
            "payment_method": self.payment_method,
            "payment_channel": self.payment_channel,
            "request_at": to_utc_z(self.request_at),
            "success_at": to_utc_z(self.success_at),
            "settlement_at": to_utc_z(self.settlement_at),
        }


class TsmLog(AuditMixin, db.Model):
    __tablename__ = "tsm_logs"
    __table_args__ = (
        db.Index("ix_tsm_logs_service_ref", "service_ref_id"),
        {"sqlite_autoincrement": True},
    )

    service_ref_id = db.Column(db.String(36), nullable=False)
    endpoint = db.Column(db.String(512), nullable=False)
    request_payload = db.Column(db.JSON, nullable=True)
    response_payload = db.Column(db.JSON, nullable=True)
    status = db.Column(db.String(32), nullable=False)
    request_time = db.Column(db.DateTime(timezone=True), nullable=False)
    response_time = db.Column(db.DateTime(timezone=True), nullable=True)
