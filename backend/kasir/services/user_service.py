# Overview: Service-layer operations for user accounts; bcrypt credentials and role/vendor rules.

"""
User Service with Multi-Tenant Support

MULTI-TENANT: vendor_admin and cashier users belong to exactly one vendor;
super_admin users belong to none. Usernames are unique system-wide so a
login never has to ask which vendor it is for.

Who may manage whom:
- super_admin: any user; tenant users go to the given or entered vendor
- vendor_admin: vendor_admin and cashier users of their own vendor
- cashier: nobody

Passwords are hashed with bcrypt. No strength policy is enforced.
"""

from __future__ import annotations

import bcrypt
from flask import current_app

from ..extensions import db
from ..models import SessionToken, User, Vendor
from ..models.auth import ROLE_CASHIER, ROLE_SUPER_ADMIN, ROLE_VENDOR_ADMIN, ROLES
from ..validation import ConflictError, NotFoundError, ValidationError, coerce_int
from .concurrency import run_with_retry
from .session_service import revoke_all_user_sessions
from .tenant_service import ActorContext, PermissionDeniedError, get_scoped_or_404, require_role, scoped_query

BCRYPT_ROUNDS = 12
MANAGER_ROLES = (ROLE_SUPER_ADMIN, ROLE_VENDOR_ADMIN)


def hash_password(password: str, rounds: int = BCRYPT_ROUNDS) -> str:
    if not password:
        raise ValidationError("password is required")
    salt = bcrypt.gensalt(rounds=rounds)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    if not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Malformed hash
        return False


def _rounds() -> int:
    return int(current_app.config.get("BCRYPT_ROUNDS", BCRYPT_ROUNDS))


def authenticate(username: str, password: str) -> User | None:
    """Active user matching the credentials, or None."""
    username = (username or "").strip()
    if not username or not password:
        return None
    user = db.session.query(User).filter_by(username=username).first()
    if user is None or not user.is_active:
        return None
    if not verify_password(password, user.password_hash):
        return None
    return user


def list_users(actor: ActorContext) -> list[User]:
    """
    Super admin in the global view sees everyone; everyone else, including
    a super admin inside a vendor, sees only that vendor's users.
    """
    require_role(actor, *MANAGER_ROLES)
    return (
        scoped_query(User, actor, tenant_independent=True)
        .order_by(User.vendor_id.asc(), User.username.asc())
        .all()
    )


def get_user(actor: ActorContext, user_id: int) -> User:
    require_role(actor, *MANAGER_ROLES)
    return get_scoped_or_404(User, user_id, actor, tenant_independent=True)


def _check_username_unique(username: str, exclude_id: int | None = None) -> None:
    q = db.session.query(User.id).filter(User.username == username)
    if exclude_id is not None:
        q = q.filter(User.id != exclude_id)
    if q.first() is not None:
        raise ConflictError(f"Username {username} is already taken")


def _target_vendor_id(actor: ActorContext, role: str, requested: int | None) -> int | None:
    if role == ROLE_SUPER_ADMIN:
        if not actor.is_super_admin:
            raise PermissionDeniedError("Only a super admin can create super admins")
        return None

    if not actor.is_super_admin:
        return actor.vendor_id

    vendor_id = requested if requested is not None else actor.active_vendor_id
    if vendor_id is None:
        raise ValidationError("vendor_id is required for vendor users")
    if db.session.get(Vendor, vendor_id) is None:
        raise NotFoundError("Vendor not found")
    return vendor_id


def create_user(actor: ActorContext, data: dict) -> User:
    """
    Create a user account.

    Raises ValidationError for missing fields or an unknown role,
    ConflictError for a taken username, PermissionDeniedError when the
    actor may not create that role.
    """
    require_role(actor, *MANAGER_ROLES)

    username = (data.get("username") or "").strip()
    name = (data.get("name") or "").strip()
    password = data.get("password") or ""
    role = (data.get("role") or ROLE_CASHIER).strip()
    if not username or not name:
        raise ValidationError("username and name are required")
    if role not in ROLES:
        raise ValidationError(f"role must be one of {', '.join(ROLES)}")
    requested_vendor = data.get("vendor_id")
    if requested_vendor is not None:
        requested_vendor = coerce_int("vendor_id", requested_vendor)
        if not actor.is_super_admin and requested_vendor != actor.vendor_id:
            raise PermissionDeniedError("Cannot create users for another vendor")

    vendor_id = _target_vendor_id(actor, role, requested_vendor)
    password_hash = hash_password(password, _rounds())

    def _op() -> User:
        _check_username_unique(username)
        user = User(
            username=username,
            name=name,
            role=role,
            vendor_id=vendor_id,
            password_hash=password_hash,
            is_active=bool(data.get("is_active", True)),
        )
        db.session.add(user)
        db.session.commit()
        return user

    user = run_with_retry(_op)
    current_app.logger.info("User created: id=%s role=%s vendor=%s by=%s", user.id, role, vendor_id, actor.user_id)
    return user


def update_user(actor: ActorContext, user_id: int, data: dict) -> User:
    """
    Update name, username, password, role or active flag.

    Deactivating a user revokes all their sessions.
    """
    require_role(actor, *MANAGER_ROLES)

    def _op() -> User:
        user = get_scoped_or_404(User, user_id, actor, tenant_independent=True)

        if "role" in data:
            role = data["role"]
            if role not in ROLES:
                raise ValidationError(f"role must be one of {', '.join(ROLES)}")
            if (role == ROLE_SUPER_ADMIN) != user.is_super_admin:
                raise ValidationError("Cannot move a user between super admin and vendor roles")
            user.role = role
        if "username" in data:
            username = (data["username"] or "").strip()
            if not username:
                raise ValidationError("username is required")
            _check_username_unique(username, exclude_id=user.id)
            user.username = username
        if "name" in data:
            name = (data["name"] or "").strip()
            if not name:
                raise ValidationError("name is required")
            user.name = name
        if data.get("password"):
            user.password_hash = hash_password(data["password"], _rounds())
        if "is_active" in data:
            if user.id == actor.user_id and not data["is_active"]:
                raise ValidationError("You cannot deactivate yourself")
            user.is_active = bool(data["is_active"])
            if not user.is_active:
                revoke_all_user_sessions(user.id, "User account deactivated")

        db.session.commit()
        return user

    return run_with_retry(_op)


def delete_user(actor: ActorContext, user_id: int) -> None:
    require_role(actor, *MANAGER_ROLES)
    if user_id == actor.user_id:
        raise ValidationError("You cannot delete yourself")

    def _op() -> None:
        user = get_scoped_or_404(User, user_id, actor, tenant_independent=True)
        db.session.query(SessionToken).filter_by(user_id=user.id).delete(synchronize_session=False)
        db.session.delete(user)
        db.session.commit()

    run_with_retry(_op)
    current_app.logger.info("User deleted: id=%s by=%s", user_id, actor.user_id)
