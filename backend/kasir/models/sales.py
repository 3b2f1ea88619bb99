from __future__ import annotations

from sqlalchemy import event

from ..extensions import db
from kasir.time_utils import to_utc_z


class Transaction(db.Model):
    """
    Completed checkout (immutable once written).

    Created exactly once by checkout_service.commit_checkout and never
    updated. Money columns satisfy the pricing identity:
        total == subtotal - discount + service_charge + tax

    Payment fields form a tagged union keyed by payment_method:
    - cash: cash_received, change_given
    - card: card_type, bank_name
    - qr:   (no extra fields)
    """
    __tablename__ = "transactions"
    __table_args__ = (
        db.UniqueConstraint("vendor_id", "reference", name="uq_transactions_vendor_reference"),
        db.Index("ix_transactions_vendor_created", "vendor_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    vendor_id = db.Column(db.Integer, db.ForeignKey("vendors.id"), nullable=False, index=True)

    # Human-readable reference (e.g., "TXN-000042")
    reference = db.Column(db.String(32), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False)

    # Amounts (smallest currency unit)
    subtotal = db.Column(db.Integer, nullable=False)
    discount = db.Column(db.Integer, nullable=False, default=0)
    service_charge = db.Column(db.Integer, nullable=False)
    tax = db.Column(db.Integer, nullable=False)
    total = db.Column(db.Integer, nullable=False)

    promotion_code = db.Column(db.String(32), nullable=True)

    payment_method = db.Column(db.String(8), nullable=False)  # cash, card, qr
    cash_received = db.Column(db.Integer, nullable=True)
    change_given = db.Column(db.Integer, nullable=True)
    card_type = db.Column(db.String(8), nullable=True)  # DEBIT, CREDIT
    bank_name = db.Column(db.String(64), nullable=True)

    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id", ondelete="SET NULL"), nullable=True, index=True)
    customer_name = db.Column(db.String(255), nullable=False)
    order_type = db.Column(db.String(16), nullable=False, default="DINE_IN")

    cashier_user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    lines = db.relationship(
        "TransactionLine",
        backref="transaction",
        lazy=True,
        cascade="all, delete-orphan",
        order_by="TransactionLine.id",
    )

    def payment_dict(self) -> dict:
        payment = {"method": self.payment_method}
        if self.payment_method == "cash":
            payment["cash_received"] = self.cash_received
            payment["change"] = self.change_given
        elif self.payment_method == "card":
            payment["card_type"] = self.card_type
            payment["bank_name"] = self.bank_name
        return payment

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "vendor_id": self.vendor_id,
            "reference": self.reference,
            "created_at": to_utc_z(self.created_at),
            "items": [line.to_dict() for line in self.lines],
            "subtotal": self.subtotal,
            "discount": self.discount,
            "service_charge": self.service_charge,
            "tax": self.tax,
            "total": self.total,
            "promotion_code": self.promotion_code,
            "payment": self.payment_dict(),
            "customer_id": self.customer_id,
            "customer_name": self.customer_name,
            "order_type": self.order_type,
            "cashier_user_id": self.cashier_user_id,
        }


class TransactionLine(db.Model):
    """Snapshot of a cart line at checkout time."""
    __tablename__ = "transaction_lines"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    transaction_id = db.Column(db.Integer, db.ForeignKey("transactions.id"), nullable=False, index=True)

    # Not a FK: products may be deleted while history is kept
    product_id = db.Column(db.Integer, nullable=False, index=True)
    name = db.Column(db.String(255), nullable=False)
    category = db.Column(db.String(64), nullable=False)
    unit_price = db.Column(db.Integer, nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    line_total = db.Column(db.Integer, nullable=False)

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "name": self.name,
            "category": self.category,
            "unit_price": self.unit_price,
            "quantity": self.quantity,
            "line_total": self.line_total,
        }


@event.listens_for(Transaction, "before_update")
@event.listens_for(TransactionLine, "before_update")
def _reject_history_update(mapper, connection, target):
    raise ValueError(f"{type(target).__name__} records are immutable")
