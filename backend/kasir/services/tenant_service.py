"""
Multi-Tenant Service: Active Tenant Resolution and Scoping Helpers

WHY: Centralize tenant validation logic for reuse across services and routes.
Every core operation receives an explicit ActorContext, and every read of
tenant data is filtered through this module before any handler runs.

SECURITY INVARIANTS:
1. A cashier or vendor admin is always bound to exactly one vendor
2. A super admin is bound to a vendor only after explicitly entering it
3. Queries touching tenant data filter by the bound vendor_id
4. Cross-tenant ids resolve to NotFoundError (existence is not revealed)

USAGE:
    from kasir.services.tenant_service import scoped_query, get_scoped_or_404

    products = scoped_query(Product, actor).all()
    product = get_scoped_or_404(Product, product_id, actor)
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Iterable, TypeVar

from flask import current_app

from ..extensions import db
from ..models import Vendor
from ..models.auth import ROLE_SUPER_ADMIN
from ..validation import NotFoundError

T = TypeVar("T")


class TenantAccessError(Exception):
    """Raised when cross-tenant access is attempted."""
    pass


class UnboundActorError(TenantAccessError):
    """
    A non-super-admin actor has no resolvable (existing, active) vendor.

    Fatal to the session: callers must log the actor out.
    """


class TenantContextRequiredError(TenantAccessError):
    """A super admin touched tenant data without entering a vendor first."""


class PermissionDeniedError(Exception):
    """The actor's role does not allow the operation."""


def require_role(actor: "ActorContext", *roles: str) -> None:
    if actor.role not in roles:
        raise PermissionDeniedError(f"Requires role: {', '.join(roles)}")


@dataclass(frozen=True)
class ActorContext:
    """
    Who is acting, and in which tenant.

    vendor_id is the user's own vendor (None for super admins).
    active_vendor_id is the vendor a super admin has explicitly entered.
    """
    user_id: int | None
    role: str
    vendor_id: int | None = None
    active_vendor_id: int | None = None
    username: str | None = None

    @property
    def is_super_admin(self) -> bool:
        return self.role == ROLE_SUPER_ADMIN

    @property
    def bound_vendor_id(self) -> int | None:
        if self.is_super_admin:
            return self.active_vendor_id
        return self.vendor_id

    def entering(self, vendor_id: int | None) -> "ActorContext":
        return replace(self, active_vendor_id=vendor_id)


def resolve_active_tenant(actor: ActorContext, explicit_vendor_id: int | None = None) -> Vendor | None:
    """
    Resolve the vendor an actor is operating in.

    super_admin: the explicitly entered vendor, or None (global view).
    others: the vendor matching actor.vendor_id; UnboundActorError when it
    does not exist or has been deactivated.
    """
    if actor.is_super_admin:
        vendor_id = explicit_vendor_id if explicit_vendor_id is not None else actor.active_vendor_id
        if vendor_id is None:
            return None
        vendor = db.session.get(Vendor, vendor_id)
        if vendor is None:
            raise NotFoundError("Vendor not found")
        return vendor

    if actor.vendor_id is None:
        raise UnboundActorError("User is not linked to a vendor")

    vendor = db.session.get(Vendor, actor.vendor_id)
    if vendor is None or not vendor.is_active:
        current_app.logger.warning(
            "Actor %s bound to missing or inactive vendor %s", actor.user_id, actor.vendor_id
        )
        raise UnboundActorError("User is not linked to an active vendor")
    return vendor


def require_tenant_id(actor: ActorContext) -> int:
    """
    Bound vendor id for tenant-scoped work.

    Raises TenantContextRequiredError for a super admin in the global view.
    """
    vendor_id = actor.bound_vendor_id
    if vendor_id is None:
        if actor.is_super_admin:
            raise TenantContextRequiredError("Enter a vendor before working with its data")
        raise UnboundActorError("User is not linked to a vendor")
    return vendor_id


def scoped_query(model, actor: ActorContext, *, tenant_independent: bool = False):
    """
    Base query for `model` restricted to the actor's tenant.

    tenant_independent=True marks admin data (users) that a super admin may
    list globally while no vendor is entered. Everyone else, and a super
    admin inside a vendor, sees only rows with vendor_id == bound vendor.
    """
    query = db.session.query(model)
    vendor_id = actor.bound_vendor_id
    if vendor_id is None:
        if tenant_independent and actor.is_super_admin:
            return query
        require_tenant_id(actor)
    return query.filter(model.vendor_id == vendor_id)


def scope_collection(items: Iterable[T], actor: ActorContext, *, tenant_independent: bool = False) -> list[T]:
    """Same rule as scoped_query, applied to an in-memory collection."""
    vendor_id = actor.bound_vendor_id
    if vendor_id is None:
        if tenant_independent and actor.is_super_admin:
            return list(items)
        require_tenant_id(actor)
    return [item for item in items if getattr(item, "vendor_id", None) == vendor_id]


def get_scoped_or_404(model, record_id: int, actor: ActorContext, *, for_update: bool = False,
                      tenant_independent: bool = False):
    """
    Fetch one record inside the actor's tenant.

    A record that exists in another tenant is reported exactly like a missing
    one, and the attempt is logged.
    """
    query = scoped_query(model, actor, tenant_independent=tenant_independent).filter(model.id == record_id)
    if for_update:
        query = query.with_for_update()
    record = query.first()
    if record is not None:
        return record

    other = db.session.get(model, record_id)
    if other is not None:
        current_app.logger.warning(
            "Cross-tenant access denied: user=%s vendor=%s requested %s id=%s of vendor=%s",
            actor.user_id,
            actor.bound_vendor_id,
            model.__name__,
            record_id,
            getattr(other, "vendor_id", None),
        )
    raise NotFoundError(f"{model.__name__} not found")
