# Overview: Pytest coverage for tenant isolation behavior.

"""
Multi-Tenant Isolation Tests

SECURITY TESTS: Prove that cross-tenant access is denied for core resources.

Two vendors with their own users, products, customers and promotions:
1. Listing returns only the caller's rows
2. Foreign ids resolve like missing ones (404, existence not revealed)
3. Cashiers and vendor admins whose vendor goes away are logged out
4. Super admins only see tenant data after entering a vendor
"""

import pytest

from kasir.extensions import db
from kasir.models import Vendor
from kasir.services import customer_service, promotion_service, reporting_service
from kasir.services.tenant_service import (
    ActorContext,
    TenantContextRequiredError,
    UnboundActorError,
    get_scoped_or_404,
    resolve_active_tenant,
    scope_collection,
)
from kasir.models import Product
from kasir.validation import NotFoundError

from conftest import auth_headers, get_auth_token


class TestTenantServiceHelpers:
    """Test tenant_service helper functions."""

    def test_resolve_own_vendor(self, db_session, actor_a, vendor_a):
        assert resolve_active_tenant(actor_a).id == vendor_a.id

    def test_inactive_vendor_unbinds_actor(self, db_session, actor_a, vendor_a):
        vendor_a.status = "inactive"
        db_session.commit()
        with pytest.raises(UnboundActorError):
            resolve_active_tenant(actor_a)

    def test_missing_vendor_unbinds_actor(self, db_session):
        actor = ActorContext(user_id=1, role="cashier", vendor_id=424242)
        with pytest.raises(UnboundActorError):
            resolve_active_tenant(actor)

    def test_super_admin_global_view_has_no_tenant(self, db_session, super_actor):
        assert resolve_active_tenant(super_actor) is None

    def test_get_scoped_cross_tenant_is_not_found(self, db_session, actor_a, burger):
        with pytest.raises(NotFoundError):
            get_scoped_or_404(Product, burger.id, actor_a)

    def test_scope_collection(self, db_session, actor_a, kopi_susu, burger):
        assert scope_collection([kopi_susu, burger], actor_a) == [kopi_susu]

    def test_scope_collection_requires_tenant(self, db_session, super_actor, kopi_susu):
        with pytest.raises(TenantContextRequiredError):
            scope_collection([kopi_susu], super_actor)


class TestServiceIsolation:

    def test_customers_are_per_vendor(self, db_session, actor_a, actor_b, customer_a):
        assert customer_service.list_customers(actor_b) == []
        with pytest.raises(NotFoundError):
            customer_service.update_customer(actor_b, customer_a.id, {"name": "Hacked"})
        assert customer_service.get_customer(actor_a, customer_a.id).name == "Budi Santoso"

    def test_promotions_are_per_vendor(self, db_session, actor_b, hemat10):
        assert promotion_service.list_promotions(actor_b) == []
        with pytest.raises(NotFoundError):
            promotion_service.delete_promotion(actor_b, hemat10.id)

    def test_reports_are_per_vendor(self, db_session, actor_b, kopi_susu):
        assert reporting_service.sales_summary(actor_b)["transaction_count"] == 0


class TestApiIsolation:

    def test_product_listing_only_own(self, client, admin_headers, kopi_susu, burger):
        resp = client.get("/api/products", headers=admin_headers)
        assert resp.status_code == 200
        assert [p["id"] for p in resp.json["products"]] == [kopi_susu.id]

    def test_foreign_product_is_404(self, client, admin_headers, burger):
        resp = client.get(f"/api/products/{burger.id}", headers=admin_headers)
        assert resp.status_code == 404
        assert resp.json["code"] == "NOT_FOUND"

    def test_foreign_product_update_is_404(self, client, admin_headers, burger):
        resp = client.put(f"/api/products/{burger.id}", json={"stock": 0}, headers=admin_headers)
        assert resp.status_code == 404
        assert db.session.get(Product, burger.id).stock == 20

    def test_vendor_id_in_payload_rejected(self, client, admin_headers, vendor_b):
        resp = client.post("/api/products", json={
            "name": "Es Teh", "category": "Kopi", "price": 8000, "stock": 1, "vendor_id": vendor_b.id,
        }, headers=admin_headers)
        assert resp.status_code == 400

    def test_foreign_product_in_cart_is_stale(self, client, cashier_headers, burger):
        resp = client.post("/api/cart/quote", json={
            "cart": {"items": [{"product_id": burger.id, "quantity": 1}]},
        }, headers=cashier_headers)
        assert resp.status_code == 409
        assert resp.json["code"] == "STALE_CART"

    def test_deactivated_vendor_logs_cashier_out(self, client, cashier_headers, vendor_a):
        vendor = db.session.get(Vendor, vendor_a.id)
        vendor.status = "inactive"
        db.session.commit()

        resp = client.get("/api/products", headers=cashier_headers)
        assert resp.status_code == 401
        assert resp.json["logout"] is True
        assert resp.json["code"] == "UNBOUND_ACTOR"

        # Session was revoked: reactivating the vendor does not revive the token
        vendor.status = "active"
        db.session.commit()
        resp = client.get("/api/products", headers=cashier_headers)
        assert resp.status_code == 401
        assert resp.json["code"] == "UNAUTHENTICATED"

    def test_inactive_vendor_user_cannot_log_in(self, client, cashier_a, vendor_a):
        vendor_a.status = "inactive"
        db.session.commit()
        resp = client.post("/api/auth/login", json={"username": cashier_a.username, "password": "rahasia123"})
        assert resp.status_code == 401
        assert resp.json["logout"] is True
        assert get_auth_token(client, cashier_a.username) is None

    def test_super_admin_needs_vendor_for_tenant_data(self, client, super_headers, vendor_a, kopi_susu):
        resp = client.get("/api/products", headers=super_headers)
        assert resp.status_code == 409
        assert resp.json["code"] == "TENANT_CONTEXT_REQUIRED"

        resp = client.post(f"/api/auth/enter-vendor/{vendor_a.id}", headers=super_headers)
        assert resp.status_code == 200
        resp = client.get("/api/products", headers=super_headers)
        assert [p["id"] for p in resp.json["products"]] == [kopi_susu.id]

        client.post("/api/auth/exit-vendor", headers=super_headers)
        assert client.get("/api/products", headers=super_headers).status_code == 409

    def test_other_vendor_admin_token_sees_own_data(self, client, admin_b_headers, kopi_susu, burger):
        resp = client.get("/api/products", headers=admin_b_headers)
        assert [p["id"] for p in resp.json["products"]] == [burger.id]

    def test_garbage_token(self, client, db_session):
        resp = client.get("/api/products", headers=auth_headers("not-a-token"))
        assert resp.status_code == 401
