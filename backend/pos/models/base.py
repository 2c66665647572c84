"""
Common row envelope and write attribution.

Every business table carries:
- id: internal integer key (never exposed in URLs)
- uuid: external identifier
- created/updated/deleted timestamps (soft delete via deleted_at)
- created_by/updated_by/deleted_by actor ids

Writes are attributed through an explicit WriteContext passed into services.
A before_flush hook rejects audited rows that reach the database without an
actor in the current transaction, so a forgotten ctx is a hard failure instead
of silent NULLs or a stale updated_by.
"""

from __future__ import annotations

import uuid as uuid_lib
from dataclasses import dataclass

from sqlalchemy import event
from sqlalchemy.orm import Session, declared_attr

from ..errors import ImmutableRowError, MissingActorError
from ..extensions import db
from ..time_utils import utcnow, to_utc_z

# Actor id used for bootstrap writes (CLI seeding, self-registration)
SYSTEM_ACTOR_ID = 0

# session.info key: rows attributed by a WriteContext in the current transaction
ATTRIBUTED_KEY = "pos_attributed"


def new_uuid() -> str:
    return str(uuid_lib.uuid4())


class AuditMixin:
    id = db.Column(db.Integer, primary_key=True)
    uuid = db.Column(db.String(36), nullable=False, unique=True, default=new_uuid)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)
    deleted_at = db.Column(db.DateTime(timezone=True), nullable=True, index=True)

    created_by = db.Column(db.Integer, nullable=True)
    updated_by = db.Column(db.Integer, nullable=True)
    deleted_by = db.Column(db.Integer, nullable=True)

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def envelope_dict(self) -> dict:
        return {
            "uuid": self.uuid,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class OwnedMixin(AuditMixin):
    """Rows attributed to a tenant owner; every read filters on owner_id."""

    @declared_attr
    def owner_id(cls):
        return db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)


@dataclass(frozen=True)
class WriteContext:
    """Actor attribution threaded into every service write."""

    actor_id: int | None

    @classmethod
    def system(cls) -> "WriteContext":
        return cls(actor_id=SYSTEM_ACTOR_ID)

    def _require_actor(self) -> int:
        if self.actor_id is None:
            raise MissingActorError("write attempted without an actor")
        return self.actor_id

    @staticmethod
    def _mark(obj) -> None:
        db.session.info.setdefault(ATTRIBUTED_KEY, set()).add(obj)

    def add(self, obj):
        actor = self._require_actor()
        obj.created_by = actor
        obj.updated_by = actor
        db.session.add(obj)
        self._mark(obj)
        return obj

    def touch(self, obj):
        obj.updated_by = self._require_actor()
        self._mark(obj)
        return obj

    def soft_delete(self, obj):
        actor = self._require_actor()
        obj.deleted_at = utcnow()
        obj.deleted_by = actor
        obj.updated_by = actor
        self._mark(obj)
        return obj


@event.listens_for(Session, "before_flush")
def _enforce_write_attribution(session, flush_context, instances):
    from .inventory import StockMovement

    for obj in session.new:
        if isinstance(obj, AuditMixin) and obj.created_by is None:
            raise MissingActorError(f"{type(obj).__name__} created without an actor")

    attributed = session.info.get(ATTRIBUTED_KEY, ())
    for obj in session.dirty:
        if not isinstance(obj, AuditMixin):
            continue
        if not session.is_modified(obj, include_collections=False):
            continue
        if isinstance(obj, StockMovement):
            raise ImmutableRowError("stock movements are append-only")
        # updated_by left over from an earlier write does not count
        if obj not in attributed:
            raise MissingActorError(f"{type(obj).__name__} updated without an actor")


@event.listens_for(Session, "after_commit")
@event.listens_for(Session, "after_rollback")
def _forget_attributed(session):
    session.info.pop(ATTRIBUTED_KEY, None)
