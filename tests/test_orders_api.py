"""HTTP tests for order queries and admin order management."""

import pytest

from .conftest import auth, make_order, make_user


@pytest.fixture
def customer(db):
    return make_user(db, 1)


@pytest.fixture
def admin(db):
    return make_user(db, 99, role="admin")


@pytest.fixture
def order(db, customer):
    return make_order(db, customer)


class TestOrderQueries:
    def test_owner_reads_order(self, client, customer, order):
        r = client.get(f"/orders/{order.id}", headers=auth(customer))
        assert r.status_code == 200
        body = r.json()
        assert body["order_status"] == "Processing"
        assert body["items"][0]["name"] == "Denim Jacket"

    def test_other_user_forbidden(self, client, db, order):
        stranger = make_user(db, 2)
        r = client.get(f"/orders/{order.id}", headers=auth(stranger))
        assert r.status_code == 403
        assert r.json()["code"] == "FORBIDDEN"

    def test_admin_reads_any_order(self, client, admin, order):
        assert client.get(f"/orders/{order.id}", headers=auth(admin)).status_code == 200

    def test_missing_order(self, client, customer):
        assert client.get("/orders/12345", headers=auth(customer)).status_code == 404

    def test_list_own_orders(self, client, db, customer, order):
        other = make_user(db, 2)
        make_order(db, other)

        r = client.get("/orders", headers=auth(customer))

        assert [o["id"] for o in r.json()] == [order.id]

    def test_deleted_listing_needs_admin(self, client, customer):
        r = client.get("/orders", params={"include_deleted": True}, headers=auth(customer))
        assert r.status_code == 403


class TestStatusChanges:
    def test_ship_assigns_tracking(self, client, admin, order):
        r = client.patch(f"/orders/{order.id}/status", json={"status": "Shipped"}, headers=auth(admin))
        assert r.status_code == 200
        assert r.json()["order_status"] == "Shipped"
        assert len(r.json()["tracking_number"]) == 20

    def test_deliver_after_ship(self, client, admin, order):
        client.patch(f"/orders/{order.id}/status", json={"status": "Shipped"}, headers=auth(admin))
        r = client.patch(f"/orders/{order.id}/status", json={"status": "Delivered"}, headers=auth(admin))
        assert r.json()["order_status"] == "Delivered"
        assert r.json()["delivery_date"] is not None

    def test_invalid_transition(self, client, db, admin, customer):
        delivered = make_order(db, customer, status="Delivered")
        r = client.patch(f"/orders/{delivered.id}/status", json={"status": "Processing"}, headers=auth(admin))
        assert r.status_code == 409
        assert r.json()["code"] == "INVALID_TRANSITION"
        assert r.json()["details"] == {"from": "Delivered", "to": "Processing"}

    def test_unknown_status(self, client, admin, order):
        r = client.patch(f"/orders/{order.id}/status", json={"status": "Teleported"}, headers=auth(admin))
        assert r.status_code == 400

    def test_customer_cannot_change_status(self, client, customer, order):
        r = client.patch(f"/orders/{order.id}/status", json={"status": "Cancelled"}, headers=auth(customer))
        assert r.status_code == 403


class TestNotesAndDeletion:
    def test_add_note(self, client, admin, order):
        r = client.post(f"/orders/{order.id}/notes", json={"note": "Gift wrap"}, headers=auth(admin))
        assert r.status_code == 200
        assert r.json()["order_notes"].endswith(": Gift wrap\n")

    def test_soft_delete_hides_from_owner(self, client, admin, customer, order):
        r = client.delete(f"/orders/{order.id}", headers=auth(admin))
        assert r.status_code == 200

        assert client.get(f"/orders/{order.id}", headers=auth(customer)).status_code == 404
        assert client.get("/orders", headers=auth(customer)).json() == []
        assert client.get(f"/orders/{order.id}", headers=auth(admin)).status_code == 200

    def test_customer_cannot_delete(self, client, customer, order):
        assert client.delete(f"/orders/{order.id}", headers=auth(customer)).status_code == 403
