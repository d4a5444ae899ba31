from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from cartsync.main import create_storefront
from cartsync.store_service.main import app
from cartsync.store_service.state import store

AUTH = {"Authorization": "Bearer u1"}


@pytest.fixture
def client():
    store.reset()
    return TestClient(app)


def test_product_and_inventory(client):
    assert client.get("/api/products/p1").json()["name"] == "Classic Tee"
    assert client.get("/api/products/nope").status_code == 404

    inventory = client.get("/api/products/p2/inventory", params={"size": "M", "quantity": 5}).json()
    assert inventory == {"available": True, "availableQuantity": 3, "message": "Only 3 units available"}


def test_cart_requires_auth(client):
    assert client.get("/api/cart").status_code == 401


def test_cart_merges_and_updates(client):
    client.post("/api/cart", json={"productId": "p1", "quantity": 1, "size": "M"}, headers=AUTH)
    items = client.post("/api/cart", json={"productId": "p1", "quantity": 2, "size": "M"}, headers=AUTH).json()["items"]

    assert len(items) == 1 and items[0]["quantity"] == 3

    item_id = items[0]["_id"]
    items = client.put(f"/api/cart/{item_id}", json={"quantity": 1}, headers=AUTH).json()["items"]
    assert items[0]["quantity"] == 1

    assert client.delete(f"/api/cart/{item_id}", headers=AUTH).json()["items"] == []
    assert client.delete(f"/api/cart/{item_id}", headers=AUTH).status_code == 404


def test_save_for_later_roundtrip(client):
    item_id = client.post("/api/cart", json={"productId": "p1"}, headers=AUTH).json()["items"][0]["_id"]

    client.post(f"/api/cart/save-for-later/{item_id}", headers=AUTH)
    assert client.get("/api/cart/saved", headers=AUTH).json()["items"][0]["_id"] == item_id

    client.post(f"/api/cart/move-to-cart/{item_id}", json={}, headers=AUTH)
    assert client.get("/api/cart/saved", headers=AUTH).json()["items"] == []
    assert len(client.get("/api/cart", headers=AUTH).json()["items"]) == 1


def test_coupon_usage_rules(client):
    client.post("/api/cart", json={"productId": "p2", "quantity": 1}, headers=AUTH)

    assert client.post("/api/coupons/validate", json={"code": "welcome15"}, headers=AUTH).json()["valid"] is True
    applied = client.post("/api/coupons/apply", json={"code": "WELCOME15"}, headers=AUTH).json()
    assert applied["discountAmount"] == pytest.approx(13.425)

    again = client.post("/api/coupons/validate", json={"code": "WELCOME15"}, headers=AUTH)
    assert again.status_code == 400
    assert again.json()["alreadyUsed"] is True

    details = client.get("/api/cart/details", headers=AUTH).json()
    assert details["appliedCoupon"]["code"] == "WELCOME15"


def test_coupon_min_purchase(client):
    client.post("/api/cart", json={"productId": "p1", "quantity": 1}, headers=AUTH)

    resp = client.post("/api/coupons/validate", json={"code": "SAVE20"}, headers=AUTH)

    assert resp.status_code == 400
    assert resp.json()["minPurchaseNotMet"] is True


def test_public_coupon_hides_usage(client):
    coupon = client.get("/api/coupons/public/SAVE20").json()["coupon"]

    assert coupon["minPurchase"] == 80
    assert "usageLimit" not in coupon
    assert client.get("/api/coupons/public/NOPE").status_code == 404


def test_wishlist_endpoints(client):
    entry = client.post("/api/wishlist", json={"productId": "p1"}, headers=AUTH).json()

    assert client.post("/api/wishlist", json={"productId": "p1"}, headers=AUTH).status_code == 409
    assert len(client.get("/api/wishlist", headers=AUTH).json()) == 1

    client.delete(f"/api/wishlist/{entry['_id']}", headers=AUTH)
    assert client.get("/api/wishlist", headers=AUTH).json() == []


def test_guest_cart_moves_to_server_after_login(client, storage):
    storefront = create_storefront(storage=storage, base_url="http://testserver/api", session=client)
    cart = storefront.cart

    assert cart.add_to_cart("p1", 2, "M", "black").ok
    assert cart.add_to_cart("p3", 1).error is not None
    storefront.wishlist.add("p2")
    assert cart.state.items[0].is_local_only
    assert cart.cart.subtotal == Decimal("39.98")

    storefront.auth.login("u1", "u1")

    assert not cart.state.items[0].is_local_only
    assert cart.state.items[0].quantity == 2
    assert storefront.wishlist.is_in_wishlist("p2")
    assert cart.cart.tax == Decimal("39.98") * Decimal("7.5") / Decimal("100")

    coupon = cart.apply_coupon("WELCOME15")
    assert coupon.valid and coupon.applied.server_applied

    storefront.auth.logout()
    assert cart.state.items == []
    assert client.get("/api/cart", headers=AUTH).json()["items"][0]["quantity"] == 2
