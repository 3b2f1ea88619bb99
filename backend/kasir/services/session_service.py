# Overview: Service-layer operations for session; bearer tokens and the tenant a session acts in.

"""
Session Token Management Service with Multi-Tenant Support

Tokens are random, stored only as a SHA-256 hash, and expire after
SESSION_TTL_HOURS.

MULTI-TENANT: A session carries the tenant it acts in.
- vendor_admin / cashier: the user's own vendor, fixed at login
- super_admin: none until enter_vendor, cleared again by exit_vendor

validate_session turns a token into a SessionContext whose ActorContext is
passed explicitly into every service call.
"""

from __future__ import annotations

import hashlib
import secrets
from dataclasses import dataclass
from datetime import timedelta

from flask import current_app

from ..extensions import db
from ..models import SessionToken, User, Vendor
from ..validation import NotFoundError
from kasir.time_utils import utcnow
from .tenant_service import ActorContext, PermissionDeniedError

DEFAULT_SESSION_TTL_HOURS = 12


@dataclass
class SessionContext:
    """Everything a request needs about its caller."""
    user: User
    session: SessionToken
    actor: ActorContext


def generate_token() -> str:
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def actor_for(user: User, session: SessionToken | None = None) -> ActorContext:
    return ActorContext(
        user_id=user.id,
        role=user.role,
        vendor_id=user.vendor_id,
        active_vendor_id=session.active_vendor_id if (session is not None and user.is_super_admin) else None,
        username=user.username,
    )


def create_session(user: User) -> tuple[SessionToken, str]:
    """
    Open a session for an authenticated user.

    Returns (session_record, plaintext_token); only the hash is stored.
    """
    ttl_hours = int(current_app.config.get("SESSION_TTL_HOURS", DEFAULT_SESSION_TTL_HOURS))
    plaintext_token = generate_token()
    now = utcnow()

    session = SessionToken(
        user_id=user.id,
        token_hash=hash_token(plaintext_token),
        active_vendor_id=None if user.is_super_admin else user.vendor_id,
        created_at=now,
        last_used_at=now,
        expires_at=now + timedelta(hours=ttl_hours),
    )
    db.session.add(session)
    user.last_login_at = now
    db.session.commit()
    return session, plaintext_token


def validate_session(token: str) -> SessionContext | None:
    """
    Resolve a bearer token.

    Returns None if the token is unknown, revoked or expired, or if the user
    has been deactivated. Whether a tenant user's vendor is still usable is
    decided later by tenant_service.resolve_active_tenant.
    """
    if not token:
        return None
    now = utcnow()

    session = (
        db.session.query(SessionToken)
        .filter(SessionToken.token_hash == hash_token(token), SessionToken.revoked_at.is_(None))
        .first()
    )
    if session is None:
        return None

    if session.expires_at < now:
        return None

    user = session.user
    if user is None or not user.is_active:
        session.revoked_at = now
        session.revoked_reason = "User account deactivated"
        db.session.commit()
        return None

    session.last_used_at = now
    db.session.commit()
    return SessionContext(user=user, session=session, actor=actor_for(user, session))


def revoke_session(token: str, reason: str = "User logout") -> bool:
    """Returns True if an active session was revoked."""
    session = (
        db.session.query(SessionToken)
        .filter(SessionToken.token_hash == hash_token(token), SessionToken.revoked_at.is_(None))
        .first()
    )
    if session is None:
        return False

    session.revoked_at = utcnow()
    session.revoked_reason = reason
    db.session.commit()
    return True


def revoke_all_user_sessions(user_id: int, reason: str) -> int:
    """Revoke every active session of a user; returns the count. Does not commit."""
    now = utcnow()
    sessions = (
        db.session.query(SessionToken)
        .filter(SessionToken.user_id == user_id, SessionToken.revoked_at.is_(None))
        .all()
    )
    for session in sessions:
        session.revoked_at = now
        session.revoked_reason = reason
    return len(sessions)


def enter_vendor(ctx: SessionContext, vendor_id: int) -> ActorContext:
    """
    Bind a super admin's session to one vendor.

    Raises PermissionDeniedError for other roles and NotFoundError for an
    unknown vendor.
    """
    if not ctx.actor.is_super_admin:
        raise PermissionDeniedError("Only a super admin can switch vendors")
    vendor = db.session.get(Vendor, vendor_id)
    if vendor is None:
        raise NotFoundError("Vendor not found")

    ctx.session.active_vendor_id = vendor.id
    db.session.commit()
    current_app.logger.info("Super admin %s entered vendor %s", ctx.user.id, vendor.id)
    ctx.actor = ctx.actor.entering(vendor.id)
    return ctx.actor


def exit_vendor(ctx: SessionContext) -> ActorContext:
    """Return a super admin to the global view."""
    if not ctx.actor.is_super_admin:
        raise PermissionDeniedError("Only a super admin can switch vendors")
    ctx.session.active_vendor_id = None
    db.session.commit()
    ctx.actor = ctx.actor.entering(None)
    return ctx.actor
