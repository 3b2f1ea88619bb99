# Overview: Pytest coverage for saved orders; parking a cart and resuming it exactly once.

import pytest

from kasir.extensions import db
from kasir.models import Product, SavedOrder
from kasir.services import cart_service, parking_service
from kasir.services.parking_service import MissingIdentifierError
from kasir.validation import NotFoundError


def _cart_with(actor, product, quantity=1, **fields):
    return cart_service.cart_from_payload(
        actor, {"items": [{"product_id": product.id, "quantity": quantity}], **fields}
    )


class TestSaveOrder:

    def test_save_clears_cart(self, db_session, cashier_actor_a, kopi_susu):
        cart = _cart_with(cashier_actor_a, kopi_susu, 2)
        order = parking_service.save_order(cashier_actor_a, cart, customer_label="Meja 4")

        assert order.reference == "ORD-000001"
        assert order.customer_name == "Meja 4"
        assert order.items[0]["quantity"] == 2
        assert order.created_by_user_id == cashier_actor_a.user_id
        assert cart.is_empty

    def test_label_required(self, db_session, cashier_actor_a, kopi_susu):
        cart = _cart_with(cashier_actor_a, kopi_susu)
        with pytest.raises(MissingIdentifierError):
            parking_service.save_order(cashier_actor_a, cart, customer_label="  ")
        assert not cart.is_empty
        assert db_session.query(SavedOrder).count() == 0

    def test_attached_customer_is_the_label(self, db_session, cashier_actor_a, kopi_susu, customer_a):
        cart = _cart_with(cashier_actor_a, kopi_susu, customer_id=customer_a.id)
        order = parking_service.save_order(cashier_actor_a, cart)
        assert order.customer_name == "Budi Santoso"
        assert order.customer_id == customer_a.id

    def test_empty_cart_cannot_be_saved(self, db_session, cashier_actor_a):
        cart = cart_service.new_cart(cashier_actor_a)
        with pytest.raises(MissingIdentifierError):
            parking_service.save_order(cashier_actor_a, cart, customer_label="Meja 1")

    def test_saving_does_not_touch_stock(self, db_session, cashier_actor_a, kopi_susu):
        parking_service.save_order(cashier_actor_a, _cart_with(cashier_actor_a, kopi_susu, 5), customer_label="A")
        assert db.session.get(Product, kopi_susu.id).stock == 50


class TestLoadOrder:

    def test_load_consumes_order(self, db_session, cashier_actor_a, kopi_susu):
        order = parking_service.save_order(
            cashier_actor_a, _cart_with(cashier_actor_a, kopi_susu, 2), customer_label="Meja 4",
            order_type="TAKE_AWAY",
        )
        order_id = order.id

        snapshot, cart = parking_service.load_order(cashier_actor_a, order_id)
        assert snapshot["reference"] == "ORD-000001"
        assert cart.lines[0].quantity == 2
        assert cart.customer_name == "Meja 4"
        assert cart.order_type == "TAKE_AWAY"

        with pytest.raises(NotFoundError):
            parking_service.load_order(cashier_actor_a, order_id)
        assert parking_service.list_saved_orders(cashier_actor_a) == []

    def test_load_reprices_from_catalog(self, db_session, cashier_actor_a, kopi_susu):
        order = parking_service.save_order(
            cashier_actor_a, _cart_with(cashier_actor_a, kopi_susu), customer_label="Meja 2"
        )
        kopi_susu.price = 30000
        db_session.commit()

        _, cart = parking_service.load_order(cashier_actor_a, order.id)
        assert cart.lines[0].unit_price == 30000

    def test_load_matches_customer_by_name(self, db_session, cashier_actor_a, kopi_susu, customer_a):
        order = parking_service.save_order(
            cashier_actor_a, _cart_with(cashier_actor_a, kopi_susu), customer_label="Budi Santoso"
        )
        _, cart = parking_service.load_order(cashier_actor_a, order.id)
        assert cart.customer_id == customer_a.id

    def test_deleted_product_keeps_snapshot_line(self, db_session, cashier_actor_a, kopi_susu):
        order = parking_service.save_order(
            cashier_actor_a, _cart_with(cashier_actor_a, kopi_susu), customer_label="Meja 9"
        )
        db_session.delete(db.session.get(Product, kopi_susu.id))
        db_session.commit()

        _, cart = parking_service.load_order(cashier_actor_a, order.id)
        assert cart.lines[0].name == "Kopi Susu Gula Aren"
        assert cart.lines[0].unit_price == 28000

    def test_surviving_lines_reprice_when_another_product_is_gone(
        self, db_session, cashier_actor_a, kopi_susu, matcha
    ):
        cart = cart_service.cart_from_payload(cashier_actor_a, {"items": [
            {"product_id": kopi_susu.id, "quantity": 1},
            {"product_id": matcha.id, "quantity": 2},
        ]})
        order = parking_service.save_order(cashier_actor_a, cart, customer_label="Meja 3")
        kopi_susu.price = 30000
        db_session.delete(db.session.get(Product, matcha.id))
        db_session.commit()

        _, cart = parking_service.load_order(cashier_actor_a, order.id)
        lines = {line.product_id: line for line in cart.lines}
        assert lines[kopi_susu.id].unit_price == 30000
        assert lines[matcha.id].unit_price == 32000
        assert lines[matcha.id].quantity == 2
        assert cart.subtotal == 30000 + 2 * 32000

    def test_other_vendor_cannot_load(self, db_session, cashier_actor_a, actor_b, kopi_susu):
        order = parking_service.save_order(
            cashier_actor_a, _cart_with(cashier_actor_a, kopi_susu), customer_label="Meja 1"
        )
        with pytest.raises(NotFoundError):
            parking_service.load_order(actor_b, order.id)
        assert db_session.query(SavedOrder).count() == 1
