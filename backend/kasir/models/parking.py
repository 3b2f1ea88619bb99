from __future__ import annotations

from ..extensions import db
from kasir.time_utils import to_utc_z


class SavedOrder(db.Model):
    """
    Parked cart ("save for later").

    `items` is a JSON snapshot of cart lines. A saved order is consumed
    exactly once: parking_service.load_order deletes the row in the same
    transaction that returns it.
    """
    __tablename__ = "saved_orders"
    __table_args__ = (
        db.Index("ix_saved_orders_vendor_created", "vendor_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    vendor_id = db.Column(db.Integer, db.ForeignKey("vendors.id"), nullable=False, index=True)
    reference = db.Column(db.String(32), nullable=False)

    customer_name = db.Column(db.String(255), nullable=False)  # customer name or table label
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id", ondelete="SET NULL"), nullable=True)
    items = db.Column(db.JSON, nullable=False)
    order_type = db.Column(db.String(16), nullable=False, default="DINE_IN")

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        items = list(self.items or [])
        return {
            "id": self.id,
            "vendor_id": self.vendor_id,
            "reference": self.reference,
            "customer_name": self.customer_name,
            "customer_id": self.customer_id,
            "items": items,
            "item_count": sum(int(i.get("quantity", 0)) for i in items),
            "order_type": self.order_type,
            "created_by_user_id": self.created_by_user_id,
            "created_at": to_utc_z(self.created_at),
        }
