from __future__ import annotations

from ..extensions import db
from kasir.time_utils import to_utc_z

ROLE_SUPER_ADMIN = "super_admin"
ROLE_VENDOR_ADMIN = "vendor_admin"
ROLE_CASHIER = "cashier"
ROLES = (ROLE_SUPER_ADMIN, ROLE_VENDOR_ADMIN, ROLE_CASHIER)


class User(db.Model):
    """
    User accounts for authentication and attribution.

    MULTI-TENANT: vendor_admin and cashier users belong to exactly one vendor.
    super_admin users carry no vendor and pick one explicitly per session.
    Usernames are unique across the whole deployment.
    """
    __tablename__ = "users"
    __table_args__ = (
        db.CheckConstraint(
            "(role = 'super_admin' AND vendor_id IS NULL) OR (role != 'super_admin' AND vendor_id IS NOT NULL)",
            name="ck_users_role_vendor",
        ),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    vendor_id = db.Column(db.Integer, db.ForeignKey("vendors.id"), nullable=True, index=True)

    username = db.Column(db.String(64), nullable=False, unique=True, index=True)
    name = db.Column(db.String(128), nullable=False)
    role = db.Column(db.String(16), nullable=False, default=ROLE_CASHIER)

    # Bcrypt hashed password
    password_hash = db.Column(db.String(255), nullable=False)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    last_login_at = db.Column(db.DateTime(timezone=True), nullable=True)

    vendor = db.relationship("Vendor", backref=db.backref("users", lazy=True))

    @property
    def is_super_admin(self) -> bool:
        return self.role == ROLE_SUPER_ADMIN

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "vendor_id": self.vendor_id,
            "username": self.username,
            "name": self.name,
            "role": self.role,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "last_login_at": to_utc_z(self.last_login_at) if self.last_login_at else None,
        }


class SessionToken(db.Model):
    """
    Login session. Only the SHA-256 hash of the bearer token is stored.

    active_vendor_id is the tenant a super admin has explicitly entered;
    for other roles it mirrors the user's vendor at login time.
    """
    __tablename__ = "session_tokens"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    token_hash = db.Column(db.String(64), nullable=False, unique=True, index=True)

    active_vendor_id = db.Column(db.Integer, db.ForeignKey("vendors.id", ondelete="SET NULL"), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False)
    last_used_at = db.Column(db.DateTime(timezone=True), nullable=False)
    expires_at = db.Column(db.DateTime(timezone=True), nullable=False)
    revoked_at = db.Column(db.DateTime(timezone=True), nullable=True)
    revoked_reason = db.Column(db.String(64), nullable=True)

    user = db.relationship("User", backref=db.backref("sessions", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "active_vendor_id": self.active_vendor_id,
            "created_at": to_utc_z(self.created_at),
            "expires_at": to_utc_z(self.expires_at),
        }
