# backend/kasir/services/catalog_service.py
"""
Catalog Service with Multi-Tenant Support

MULTI-TENANT: All product and category operations are tenant-scoped.
- list_products / list_categories read through tenant_service.scoped_query
- create_product forces vendor_id to the actor's bound vendor
- update/delete resolve the product inside the actor's vendor first

Category assignment and category removal both run under the per-vendor
write lock, so a product can never be moved into a category between the
"in use" check and its deletion.
"""
from __future__ import annotations

from sqlalchemy import func

from ..extensions import db
from ..models import Product, VendorCategory
from ..validation import ValidationError
from .concurrency import acquire_vendor_lock, run_with_retry
from .tenant_service import ActorContext, get_scoped_or_404, require_tenant_id, scoped_query

DEFAULT_CATEGORY = "Umum"

PRODUCT_MUTABLE_FIELDS = {"name", "category", "price", "stock", "description", "image_url", "color"}


class CategoryInUseError(Exception):
    """Raised when deleting a category that products still reference."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


def _category_names(vendor_id: int) -> list[str]:
    rows = (
        db.session.query(VendorCategory.name)
        .filter_by(vendor_id=vendor_id)
        .order_by(VendorCategory.id.asc())
        .all()
    )
    return [r.name for r in rows]


def _ensure_category(vendor_id: int, category: str | None) -> str:
    category = (category or "").strip()
    if not category:
        raise ValidationError("category is required")
    known = _category_names(vendor_id) or [DEFAULT_CATEGORY]
    if category not in known:
        raise ValidationError(f"Unknown category: {category}")
    return category


def apply_product_patch(p: Product, patch: dict) -> None:
    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        setattr(p, k, v)


def list_products(
    actor: ActorContext,
    *,
    category: str | None = None,
    search: str | None = None,
) -> list[Product]:
    """
    Products of the actor's vendor, ordered by name.

    Optional filters: exact category, case-insensitive name substring.
    """
    query = scoped_query(Product, actor)
    if category:
        query = query.filter(Product.category == category)
    if search:
        query = query.filter(func.lower(Product.name).like(f"%{search.strip().lower()}%"))
    return query.order_by(Product.name.asc(), Product.id.asc()).all()


def get_product(actor: ActorContext, product_id: int) -> Product:
    return get_scoped_or_404(Product, product_id, actor)


def create_product(actor: ActorContext, patch: dict) -> Product:
    """
    Create a product in the actor's vendor.

    Any vendor_id in the patch is ignored; the bound vendor always wins.
    """
    vendor_id = require_tenant_id(actor)

    name = (patch.get("name") or "").strip()
    if not name:
        raise ValidationError("name is required")

    def _op() -> Product:
        acquire_vendor_lock(vendor_id)
        product = Product(vendor_id=vendor_id, price=0, stock=0)
        apply_product_patch(product, patch)
        product.vendor_id = vendor_id
        product.name = name
        product.category = _ensure_category(vendor_id, patch.get("category"))
        db.session.add(product)
        db.session.commit()
        return product

    return run_with_retry(_op)


def update_product(actor: ActorContext, product_id: int, patch: dict) -> Product:
    """
    Update a product (inventory CRUD may set stock directly).
    """
    vendor_id = require_tenant_id(actor)

    def _op() -> Product:
        acquire_vendor_lock(vendor_id)
        product = get_scoped_or_404(Product, product_id, actor)
        if "category" in patch:
            patch["category"] = _ensure_category(vendor_id, patch["category"])
        apply_product_patch(product, patch)
        if not (product.name or "").strip():
            raise ValidationError("name is required")
        db.session.commit()
        return product

    return run_with_retry(_op)


def delete_product(actor: ActorContext, product_id: int) -> None:
    """
    Remove a product. Carts still holding it go stale and are rejected at
    checkout; transaction history keeps its line snapshots.
    """
    def _op() -> None:
        product = get_scoped_or_404(Product, product_id, actor)
        db.session.delete(product)
        db.session.commit()

    run_with_retry(_op)


def list_categories(actor: ActorContext) -> list[str]:
    """Vendor's categories in creation order, or ['Umum'] when none exist."""
    vendor_id = require_tenant_id(actor)
    return _category_names(vendor_id) or [DEFAULT_CATEGORY]


def add_category(actor: ActorContext, name: str) -> list[str]:
    """Add a category; a name that already exists is a no-op."""
    vendor_id = require_tenant_id(actor)
    name = (name or "").strip()
    if not name:
        raise ValidationError("Category name is required")
    if len(name) > 64:
        raise ValidationError("Category name exceeds max length 64")

    def _op() -> list[str]:
        acquire_vendor_lock(vendor_id)
        if name not in _category_names(vendor_id):
            db.session.add(VendorCategory(vendor_id=vendor_id, name=name))
        db.session.commit()
        return _category_names(vendor_id)

    return run_with_retry(_op)


def remove_category(actor: ActorContext, name: str) -> list[str]:
    """
    Delete a category.

    Raises CategoryInUseError, before any mutation, while a product of this
    vendor still uses the category.
    """
    vendor_id = require_tenant_id(actor)

    def _op() -> list[str]:
        acquire_vendor_lock(vendor_id)
        in_use = (
            db.session.query(func.count(Product.id))
            .filter(Product.vendor_id == vendor_id, Product.category == name)
            .scalar()
        )
        if in_use:
            raise CategoryInUseError(
                "Category is used by products",
                details={"category": name, "product_count": int(in_use)},
            )
        db.session.query(VendorCategory).filter_by(vendor_id=vendor_id, name=name).delete(
            synchronize_session=False
        )
        db.session.commit()
        return _category_names(vendor_id) or [DEFAULT_CATEGORY]

    return run_with_retry(_op)
