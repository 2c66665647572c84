# Overview: Service-layer operations for auth; registration, staff, bcrypt passwords and JWTs.

"""
Authentication Service

WHY: Every write is attributed to a user, and every user resolves to exactly
one owner (tenant root). Owners self-register; staff are created by their owner.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost from BCRYPT_ROUNDS, default 12)
- Minimum 8 characters with upper, lower, digit and special character
- Tokens are HS256 JWTs carrying the user uuid (sub) and role
- Deactivated users cannot log in and their tokens stop working
"""

import re
from datetime import datetime, timedelta, timezone

import bcrypt
import jwt
from flask import current_app

from ..extensions import db
from ..errors import Conflict, InvalidCredentials, InvalidInput, InvalidToken
from ..i18n import DEFAULT_LANGUAGE
from ..models import User, UserOtp, WriteContext
from ..models.auth import ROLE_OWNER, STAFF_ROLES
from ..time_utils import utcnow
from ..validation import as_choice, as_text, require_fields
from .email_service import OTP_TTL_MINUTES, generate_otp, get_email_queue, render_otp_email
from .tenant_service import resolve_owner_id

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
JWT_ALGORITHM = "HS256"
OTP_PURPOSE_EMAIL = "email_verification"


def validate_password_strength(password) -> None:
    """
    Validate password meets strength requirements.

    Raises InvalidInput describing the first unmet rule.
    """
    if not isinstance(password, str) or len(password) < 8:
        raise InvalidInput(detail="password must be at least 8 characters long")

    if not re.search(r'[A-Z]', password):
        raise InvalidInput(detail="password must contain at least one uppercase letter")

    if not re.search(r'[a-z]', password):
        raise InvalidInput(detail="password must contain at least one lowercase letter")

    if not re.search(r'\d', password):
        raise InvalidInput(detail="password must contain at least one digit")

    if not re.search(r"[!@#$%^&*(),.'\":{}|<>_\-]", password):
        raise InvalidInput(detail="password must contain at least one special character")


def _bcrypt_hash(secret: str) -> str:
    salt = bcrypt.gensalt(rounds=current_app.config.get("BCRYPT_ROUNDS", 12))
    return bcrypt.hashpw(secret.encode('utf-8'), salt).decode('utf-8')


def hash_password(password: str) -> str:
    validate_password_strength(password)
    return _bcrypt_hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    """bcrypt.checkpw is constant-time; malformed hashes never match."""
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def _normalize_email(value) -> str:
    email = as_text(value, "email").lower()
    if not EMAIL_PATTERN.match(email):
        raise InvalidInput(detail="email is not valid")
    return email


def _ensure_email_free(email: str) -> None:
    if db.session.query(User).filter(User.email == email).first() is not None:
        raise Conflict(detail="email is already registered")


def register_owner(payload: dict) -> User:
    """Self-registration; the new owner is attributed to the system actor."""
    payload = require_fields(payload, "name", "email", "password")
    email = _normalize_email(payload.get("email"))
    _ensure_email_free(email)

    ctx = WriteContext.system()
    user = ctx.add(User(
        name=as_text(payload.get("name"), "name"),
        email=email,
        phone=as_text(payload.get("phone"), "phone", max_length=32, required=False),
        password_hash=hash_password(payload.get("password")),
        role=ROLE_OWNER,
        is_active=True,
    ))
    db.session.commit()
    return user


def create_staff(ctx: WriteContext, owner_id: int, payload: dict) -> User:
    payload = require_fields(payload, "name", "email", "password", "role")
    email = _normalize_email(payload.get("email"))
    _ensure_email_free(email)

    user = ctx.add(User(
        name=as_text(payload.get("name"), "name"),
        email=email,
        phone=as_text(payload.get("phone"), "phone", max_length=32, required=False),
        password_hash=hash_password(payload.get("password")),
        role=as_choice(payload.get("role"), "role", STAFF_ROLES),
        creator_id=owner_id,
        is_active=True,
    ))
    db.session.commit()
    return user


def list_staff(owner_id: int) -> list[User]:
    return (
        db.session.query(User)
        .filter(User.creator_id == owner_id, User.deleted_at.is_(None))
        .order_by(User.name.asc(), User.id.asc())
        .all()
    )


def authenticate(email, password) -> User:
    """
    Return the active user for these credentials.

    Raises InvalidCredentials for unknown email, wrong password or an inactive
    account without saying which.
    """
    if not isinstance(email, str) or not isinstance(password, str):
        raise InvalidCredentials()
    user = db.session.query(User).filter(
        User.email == email.strip().lower(),
        User.deleted_at.is_(None),
    ).first()
    if user is None or not user.is_active or not verify_password(password, user.password_hash):
        raise InvalidCredentials()
    return user


def issue_token(user: User) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": user.uuid,
        "role": user.role,
        "iat": now,
        "exp": now + timedelta(hours=current_app.config["JWT_EXPIRES_HOURS"]),
    }
    return jwt.encode(payload, current_app.config["JWT_SECRET"], algorithm=JWT_ALGORITHM)


def decode_token(token: str) -> dict:
    try:
        return jwt.decode(token, current_app.config["JWT_SECRET"], algorithms=[JWT_ALGORITHM])
    except jwt.InvalidTokenError:
        raise InvalidToken()


def user_for_token(token: str) -> User:
    claims = decode_token(token)
    user = db.session.query(User).filter(
        User.uuid == claims.get("sub"),
        User.deleted_at.is_(None),
    ).first()
    if user is None or not user.is_active:
        raise InvalidToken()
    return user


def describe(user: User) -> dict:
    """Current user plus the owner whose scope they act in."""
    owner = db.session.get(User, resolve_owner_id(user))
    return {**user.to_dict(), "owner": {"uuid": owner.uuid, "name": owner.name}}


# =============================================================================
# EMAIL VERIFICATION (OTP)
# =============================================================================

def request_email_otp(user: User, lang: str = DEFAULT_LANGUAGE) -> None:
    """
    Issue a fresh verification code and queue it for delivery.

    Earlier unused codes for the same purpose are retired. Raises EmailQueueFull
    when the outbound queue cannot take the message.
    """
    ctx = WriteContext(actor_id=user.id)
    for previous in db.session.query(UserOtp).filter(
        UserOtp.user_id == user.id,
        UserOtp.purpose == OTP_PURPOSE_EMAIL,
        UserOtp.deleted_at.is_(None),
    ).all():
        ctx.soft_delete(previous)

    code = generate_otp()
    ctx.add(UserOtp(
        user_id=user.id,
        code_hash=_bcrypt_hash(code),
        purpose=OTP_PURPOSE_EMAIL,
        target=user.email,
        expires_at=utcnow() + timedelta(minutes=OTP_TTL_MINUTES),
    ))
    db.session.commit()

    subject, html = render_otp_email(user.name, code, lang)
    get_email_queue().enqueue(user.email, subject, html)


def verify_email_otp(user: User, code) -> User:
    if not isinstance(code, str) or not code.isdigit():
        raise InvalidInput(detail="code must be numeric")

    otp = (
        db.session.query(UserOtp)
        .filter(
            UserOtp.user_id == user.id,
            UserOtp.purpose == OTP_PURPOSE_EMAIL,
            UserOtp.target == user.email,
            UserOtp.deleted_at.is_(None),
        )
        .order_by(UserOtp.id.desc())
        .first()
    )
    if otp is None:
        raise InvalidInput(detail="no pending verification code")
    if otp.expires_at <= utcnow():
        raise InvalidInput(detail="verification code expired")
    if not verify_password(code, otp.code_hash):
        raise InvalidInput(detail="invalid verification code")

    ctx = WriteContext(actor_id=user.id)
    ctx.soft_delete(otp)
    user.email_verified_at = utcnow()
    ctx.touch(user)
    db.session.commit()
    return user
