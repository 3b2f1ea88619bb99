# Overview: Pytest coverage for user management, credentials and session lifecycle.

from datetime import timedelta

import pytest

from kasir.extensions import db
from kasir.models import SessionToken, User
from kasir.models.auth import ROLE_CASHIER, ROLE_SUPER_ADMIN, ROLE_VENDOR_ADMIN
from kasir.services import session_service, user_service
from kasir.services.tenant_service import PermissionDeniedError
from kasir.time_utils import utcnow
from kasir.validation import ConflictError, NotFoundError, ValidationError

from conftest import PASSWORD


class TestPasswords:

    def test_hash_and_verify(self):
        hashed = user_service.hash_password("kopi", rounds=4)
        assert hashed != "kopi"
        assert user_service.verify_password("kopi", hashed)
        assert not user_service.verify_password("teh", hashed)

    def test_malformed_hash_does_not_verify(self):
        assert not user_service.verify_password("kopi", "not-a-bcrypt-hash")

    def test_empty_password_rejected(self):
        with pytest.raises(ValidationError):
            user_service.hash_password("")

    def test_authenticate(self, db_session, cashier_a):
        assert user_service.authenticate("kasir_a", PASSWORD).id == cashier_a.id
        assert user_service.authenticate("kasir_a", "wrong") is None
        assert user_service.authenticate("nobody", PASSWORD) is None

    def test_inactive_user_cannot_authenticate(self, db_session, cashier_a):
        cashier_a.is_active = False
        db_session.commit()
        assert user_service.authenticate("kasir_a", PASSWORD) is None


class TestUserManagement:

    def test_vendor_admin_creates_cashier_in_own_vendor(self, db_session, actor_a):
        user = user_service.create_user(actor_a, {"username": "kasir2", "name": "Kasir 2", "password": "x"})
        assert user.role == ROLE_CASHIER
        assert user.vendor_id == actor_a.vendor_id

    def test_vendor_admin_cannot_target_other_vendor(self, db_session, actor_a, vendor_b):
        with pytest.raises(PermissionDeniedError):
            user_service.create_user(
                actor_a, {"username": "spy", "name": "Spy", "password": "x", "vendor_id": vendor_b.id}
            )

    def test_vendor_admin_cannot_create_super_admin(self, db_session, actor_a):
        with pytest.raises(PermissionDeniedError):
            user_service.create_user(
                actor_a, {"username": "root2", "name": "Root", "password": "x", "role": ROLE_SUPER_ADMIN}
            )

    def test_cashier_cannot_manage_users(self, db_session, cashier_actor_a):
        with pytest.raises(PermissionDeniedError):
            user_service.list_users(cashier_actor_a)

    def test_usernames_are_globally_unique(self, db_session, actor_b, cashier_a):
        with pytest.raises(ConflictError):
            user_service.create_user(actor_b, {"username": "kasir_a", "name": "Dup", "password": "x"})

    def test_super_admin_needs_vendor_for_tenant_user(self, db_session, super_actor):
        with pytest.raises(ValidationError):
            user_service.create_user(
                super_actor, {"username": "owner9", "name": "Owner", "password": "x", "role": ROLE_VENDOR_ADMIN}
            )

    def test_super_admin_unknown_vendor(self, db_session, super_actor):
        with pytest.raises(NotFoundError):
            user_service.create_user(
                super_actor,
                {"username": "owner9", "name": "Owner", "password": "x", "role": ROLE_VENDOR_ADMIN, "vendor_id": 999},
            )

    def test_super_admin_lists_globally_or_per_vendor(self, db_session, super_actor, admin_a, admin_b):
        assert len(user_service.list_users(super_actor)) == 3
        inside = user_service.list_users(super_actor.entering(admin_a.vendor_id))
        assert [u.username for u in inside] == ["owner_a"]

    def test_vendor_admin_lists_own_vendor(self, db_session, actor_a, cashier_a, admin_b):
        assert {u.username for u in user_service.list_users(actor_a)} == {"owner_a", "kasir_a"}

    def test_role_cannot_cross_super_boundary(self, db_session, actor_a, cashier_a):
        with pytest.raises(ValidationError):
            user_service.update_user(actor_a, cashier_a.id, {"role": ROLE_SUPER_ADMIN})

    def test_promote_cashier(self, db_session, actor_a, cashier_a):
        user = user_service.update_user(actor_a, cashier_a.id, {"role": ROLE_VENDOR_ADMIN})
        assert user.role == ROLE_VENDOR_ADMIN

    def test_cannot_deactivate_or_delete_self(self, db_session, actor_a):
        with pytest.raises(ValidationError):
            user_service.update_user(actor_a, actor_a.user_id, {"is_active": False})
        with pytest.raises(ValidationError):
            user_service.delete_user(actor_a, actor_a.user_id)

    def test_deactivation_revokes_sessions(self, db_session, actor_a, cashier_a):
        _, token = session_service.create_session(cashier_a)
        user_service.update_user(actor_a, cashier_a.id, {"is_active": False})
        assert session_service.validate_session(token) is None
        assert db_session.query(SessionToken).filter(SessionToken.revoked_at.is_(None)).count() == 0

    def test_delete_other_vendor_user_not_found(self, db_session, actor_a, admin_b):
        with pytest.raises(NotFoundError):
            user_service.delete_user(actor_a, admin_b.id)

    def test_delete_user_removes_sessions(self, db_session, actor_a, cashier_a):
        session_service.create_session(cashier_a)
        user_id = cashier_a.id
        user_service.delete_user(actor_a, user_id)
        assert db.session.get(User, user_id) is None
        assert db_session.query(SessionToken).count() == 0


class TestSessions:

    def test_token_stored_hashed(self, db_session, cashier_a):
        session, token = session_service.create_session(cashier_a)
        assert session.token_hash == session_service.hash_token(token)
        assert session.token_hash != token

    def test_tenant_user_session_bound_to_vendor(self, db_session, cashier_a):
        session, token = session_service.create_session(cashier_a)
        ctx = session_service.validate_session(token)
        assert session.active_vendor_id == cashier_a.vendor_id
        assert ctx.actor.bound_vendor_id == cashier_a.vendor_id

    def test_expired_session_rejected(self, db_session, cashier_a):
        session, token = session_service.create_session(cashier_a)
        session.expires_at = utcnow() - timedelta(minutes=1)
        db_session.commit()
        assert session_service.validate_session(token) is None

    def test_revoke(self, db_session, cashier_a):
        _, token = session_service.create_session(cashier_a)
        assert session_service.revoke_session(token) is True
        assert session_service.revoke_session(token) is False
        assert session_service.validate_session(token) is None

    def test_enter_and_exit_vendor(self, db_session, super_admin, vendor_a):
        _, token = session_service.create_session(super_admin)
        ctx = session_service.validate_session(token)
        assert ctx.actor.bound_vendor_id is None

        actor = session_service.enter_vendor(ctx, vendor_a.id)
        assert actor.bound_vendor_id == vendor_a.id
        assert session_service.validate_session(token).actor.bound_vendor_id == vendor_a.id

        session_service.exit_vendor(ctx)
        assert session_service.validate_session(token).actor.bound_vendor_id is None

    def test_enter_unknown_vendor(self, db_session, super_admin):
        _, token = session_service.create_session(super_admin)
        with pytest.raises(NotFoundError):
            session_service.enter_vendor(session_service.validate_session(token), 999)

    def test_only_super_admin_switches_vendor(self, db_session, cashier_a, vendor_b):
        _, token = session_service.create_session(cashier_a)
        with pytest.raises(PermissionDeniedError):
            session_service.enter_vendor(session_service.validate_session(token), vendor_b.id)

    def test_vendor_user_ignores_session_vendor(self, db_session, cashier_a, vendor_b):
        session, token = session_service.create_session(cashier_a)
        session.active_vendor_id = vendor_b.id
        db_session.commit()
        assert session_service.validate_session(token).actor.bound_vendor_id == cashier_a.vendor_id
