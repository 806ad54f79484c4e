"""Checkout flow tests: payment, order creation and cart clearing."""

from decimal import Decimal

import pytest
from redis.exceptions import RedisError
from sqlalchemy.exc import OperationalError

from storefront.data.models import CartModel, OrderModel, ProductModel
from storefront.domain.errors import PaymentGatewayError
from storefront.repos.order_repo import OrderRepo
from storefront.services.checkout_service import CheckoutService

from .conftest import CHECKOUT_FORM, auth, make_coupon, make_product, make_user


@pytest.fixture
def user(db):
    return make_user(db)


@pytest.fixture
def filled_cart(client, db, user):
    """Jacket x2 at 100 and a scarf at 50 with 10% off, SAVE10 applied: total 220.50."""
    jacket = make_product(db, "Denim Jacket", price="100", stock=5)
    scarf = make_product(db, "Wool Scarf", price="50", discount="10", stock=5)
    make_coupon(db, "SAVE10")
    client.post("/cart/items", json={"product_id": jacket.id, "quantity": 2}, headers=auth(user))
    client.post("/cart/items", json={"product_id": scarf.id}, headers=auth(user))
    client.post("/cart/coupon", json={"code": "SAVE10"}, headers=auth(user))
    return jacket, scarf


def orders(db):
    db.expire_all()
    return db.query(OrderModel).all()


def cart_of(db, user):
    db.expire_all()
    return db.query(CartModel).filter_by(user_id=user.id).one()


def stock_of(db, product):
    db.expire_all()
    return db.get(ProductModel, product.id).stock


class TestCheckoutSuccess:
    def test_places_paid_order(self, client, db, user, filled_cart, payment_processor):
        r = client.post("/checkout", json=CHECKOUT_FORM, headers=auth(user))

        assert r.status_code == 200
        body = r.json()
        assert body["success"] is True
        assert body["total_amount"] == 220.5

        (order,) = orders(db)
        assert order.id == body["order_id"]
        assert order.payment_status == "Paid"
        assert order.order_status == "Processing"
        assert order.transaction_id == "TX1"
        assert order.total_amount == Decimal("220.50")
        assert [(i.name, i.quantity) for i in order.items] == [("Denim Jacket", 2), ("Wool Scarf", 1)]

        amount, method, credentials = payment_processor.calls[0]
        assert amount == Decimal("220.50")
        assert method == "Credit Card"
        assert credentials["nonce"] == "fake-valid-nonce"

    def test_clears_cart_and_takes_stock(self, client, db, user, filled_cart):
        jacket, scarf = filled_cart
        client.post("/checkout", json=CHECKOUT_FORM, headers=auth(user))

        cart = cart_of(db, user)
        assert cart.items == []
        assert cart.discount == 0
        assert (stock_of(db, jacket), stock_of(db, scarf)) == (3, 4)

    def test_sends_confirmation(self, client, user, filled_cart, notifier):
        r = client.post("/checkout", json=CHECKOUT_FORM, headers=auth(user))
        to, subject, body = notifier.sent[0]
        assert to == "jane@example.com"
        assert subject == "Order Confirmation"
        assert str(r.json()["order_id"]) in body

    def test_notification_failure_does_not_fail_order(self, client, db, user, filled_cart, notifier):
        def broken(to, subject, body):
            raise RuntimeError("broker down")

        notifier.send = broken
        r = client.post("/checkout", json=CHECKOUT_FORM, headers=auth(user))
        assert r.status_code == 200
        assert len(orders(db)) == 1

    def test_lock_released(self, client, user, filled_cart, lock_service):
        client.post("/checkout", json=CHECKOUT_FORM, headers=auth(user))
        assert lock_service.locks == {}
        assert [h[0] for h in lock_service.history] == ["acquire", "release"]
        assert lock_service.history[0][1] == f"checkout:{user.id}:lock"

    def test_second_checkout_sees_empty_cart(self, client, user, filled_cart, payment_processor):
        client.post("/checkout", json=CHECKOUT_FORM, headers=auth(user))
        r = client.post("/checkout", json=CHECKOUT_FORM, headers=auth(user))
        assert r.status_code == 400
        assert len(payment_processor.calls) == 1


class TestCheckoutFailures:
    def test_empty_cart(self, client, db, user, payment_processor):
        r = client.post("/checkout", json=CHECKOUT_FORM, headers=auth(user))

        assert r.status_code == 400
        assert r.json()["success"] is False
        assert r.json()["message"] == "Cart is empty"
        assert payment_processor.calls == []
        assert orders(db) == []

    def test_declined_payment_persists_nothing(self, client, db, user, filled_cart, payment_processor):
        jacket, scarf = filled_cart
        payment_processor.success = False
        payment_processor.message = "Card declined"

        r = client.post("/checkout", json=CHECKOUT_FORM, headers=auth(user))

        assert r.status_code == 402
        body = r.json()
        assert (body["success"], body["message"], body["code"]) == (False, "Card declined", "PAYMENT_FAILED")
        assert "reference" in body["details"]
        assert orders(db) == []
        cart = cart_of(db, user)
        assert [i.quantity for i in cart.items] == [2, 1]
        assert cart.discount == Decimal("0.1")
        assert (stock_of(db, jacket), stock_of(db, scarf)) == (5, 5)

    def test_gateway_unreachable(self, client, db, user, filled_cart, payment_processor):
        payment_processor.error = PaymentGatewayError("Payment gateway unreachable")

        r = client.post("/checkout", json=CHECKOUT_FORM, headers=auth(user))

        assert r.status_code == 502
        assert r.json()["success"] is False
        assert orders(db) == []
        assert len(cart_of(db, user).items) == 2
        assert (stock_of(db, filled_cart[0]), stock_of(db, filled_cart[1])) == (5, 5)

    def test_invalid_shipping(self, client, db, user, filled_cart, payment_processor):
        form = dict(CHECKOUT_FORM, zip="abc", full_name="")

        r = client.post("/checkout", json=form, headers=auth(user))

        assert r.status_code == 400
        assert set(r.json()["details"]["fields"]) == {"zip", "full_name"}
        assert payment_processor.calls == []

    def test_unsupported_payment_method(self, client, user, filled_cart):
        r = client.post("/checkout", json=dict(CHECKOUT_FORM, payment_method="Gold"), headers=auth(user))
        assert r.status_code == 400
        assert "payment_method" in r.json()["details"]["fields"]

    def test_checkout_in_progress(self, client, user, filled_cart, lock_service, payment_processor):
        lock_service.locks[f"checkout:{user.id}:lock"] = "someone-else"

        r = client.post("/checkout", json=CHECKOUT_FORM, headers=auth(user))

        assert r.status_code == 409
        assert r.json()["message"] == "Checkout already in progress"
        assert payment_processor.calls == []
        assert lock_service.locks[f"checkout:{user.id}:lock"] == "someone-else"

    def test_stock_sold_out_after_adding(self, client, db, user, filled_cart, payment_processor):
        jacket, _ = filled_cart
        db.get(ProductModel, jacket.id).stock = 1
        db.commit()

        r = client.post("/checkout", json=CHECKOUT_FORM, headers=auth(user))

        assert r.status_code == 409
        assert r.json()["code"] == "OUT_OF_STOCK"
        assert payment_processor.calls == []

    def test_product_removed_after_adding(self, client, db, user, filled_cart, payment_processor):
        _, scarf = filled_cart
        db.get(ProductModel, scarf.id).deleted = True
        db.commit()

        r = client.post("/checkout", json=CHECKOUT_FORM, headers=auth(user))

        assert r.status_code == 409
        assert r.json()["details"] == {"product_id": scarf.id}
        assert payment_processor.calls == []

    def test_lock_release_failure_is_tolerated(self, client, user, filled_cart, lock_service):
        def broken(key, owner):
            raise RedisError("connection lost")

        lock_service.release = broken
        r = client.post("/checkout", json=CHECKOUT_FORM, headers=auth(user))
        assert r.status_code == 200


class TestStockReservation:
    def test_stock_reserved_before_charge(self, client, db, user, filled_cart, payment_processor):
        jacket, scarf = filled_cart
        seen = []
        payment_processor.on_charge = lambda: seen.append((stock_of(db, jacket), stock_of(db, scarf)))

        client.post("/checkout", json=CHECKOUT_FORM, headers=auth(user))

        assert seen == [(3, 4)]

    def test_stock_sold_elsewhere_after_check(
        self, client, db, user, filled_cart, payment_processor, session_factory, monkeypatch
    ):
        jacket, scarf = filled_cart
        check = CheckoutService._check_availability

        def check_then_sell_out(svc, cart):
            check(svc, cart)
            # another buyer takes all but one jacket
            other = session_factory()
            other.get(ProductModel, jacket.id).stock = 1
            other.commit()
            other.close()

        monkeypatch.setattr(CheckoutService, "_check_availability", check_then_sell_out)

        r = client.post("/checkout", json=CHECKOUT_FORM, headers=auth(user))

        assert r.status_code == 409
        assert r.json()["code"] == "OUT_OF_STOCK"
        assert r.json()["details"] == {"product_id": jacket.id, "requested": 2, "available": 1}
        assert payment_processor.calls == []
        assert orders(db) == []
        assert (stock_of(db, jacket), stock_of(db, scarf)) == (1, 5)
        assert len(cart_of(db, user).items) == 2


class TestOrderWriteFailure:
    @pytest.fixture
    def broken_commit(self, monkeypatch):
        def commit(repo):
            raise OperationalError("COMMIT", {}, Exception("disk I/O error"))

        monkeypatch.setattr(OrderRepo, "commit", commit)

    def test_charge_refunded(self, client, db, user, filled_cart, payment_processor, broken_commit):
        jacket, scarf = filled_cart

        r = client.post("/checkout", json=CHECKOUT_FORM, headers=auth(user))

        assert r.status_code == 500
        body = r.json()
        assert (body["success"], body["code"]) == (False, "INTERNAL_ERROR")
        assert body["details"]["refunded"] is True
        assert payment_processor.refunds == [("TX1", Decimal("220.50"))]
        assert orders(db) == []
        assert (stock_of(db, jacket), stock_of(db, scarf)) == (5, 5)
        assert len(cart_of(db, user).items) == 2

    def test_failed_refund_reported(self, client, user, filled_cart, payment_processor, broken_commit):
        payment_processor.refund_error = PaymentGatewayError("Payment gateway unreachable")

        r = client.post("/checkout", json=CHECKOUT_FORM, headers=auth(user))

        assert r.status_code == 500
        assert r.json()["details"]["refunded"] is False
        assert len(payment_processor.refunds) == 1
