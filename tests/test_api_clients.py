from decimal import Decimal

import pytest
import requests
from conftest import make_response

from cartsync.domain.errors import ItemNotFound, MalformedResponse, NetworkFailure, ServiceError
from cartsync.domain.schemas import AppliedCoupon
from cartsync.services.api_client import StoreApiClient
from cartsync.services.auth_session import AuthSession
from cartsync.services.cart_backends import ServerCartBackend
from cartsync.services.product_client import ProductClient
from cartsync.services.settings_client import SettingsClient

BASE = "http://store.test/api"

LINE = {
    "_id": "ci1",
    "productId": "p1",
    "quantity": 2,
    "size": "M",
    "color": None,
    "product": {"id": "p1", "name": "Tee", "price": 25.0, "discountedPrice": 19.99},
}


def test_bearer_token_sent_when_logged_in(http_session):
    auth = AuthSession()
    auth.login("tok-1", "u1")
    http_session.request.return_value = make_response(200, {"ok": True})

    StoreApiClient(BASE, session=http_session, auth=auth).get("/cart")

    _, kwargs = http_session.request.call_args
    assert kwargs["headers"] == {"Authorization": "Bearer tok-1"}


def test_connection_errors_are_retried_then_wrapped(http_session):
    http_session.request.side_effect = requests.ConnectionError("refused")

    with pytest.raises(NetworkFailure):
        StoreApiClient(BASE, session=http_session).get("/cart")

    assert http_session.request.call_count == 2


def test_http_errors_are_not_retried(http_session):
    http_session.request.return_value = make_response(500, {"message": "boom"})

    with pytest.raises(ServiceError) as exc:
        StoreApiClient(BASE, session=http_session).get("/cart")

    assert exc.value.status_code == 500
    assert exc.value.message == "boom"
    assert http_session.request.call_count == 1


def test_inventory_from_product_details(http_session):
    http_session.request.return_value = make_response(
        200, {"_id": "p1", "price": 10, "inventory": 3, "sizes": ["M"], "inStock": True}
    )
    client = ProductClient(BASE, session=http_session)

    partial = client.check_inventory("p1", "M", None, 5)
    wrong_size = client.check_inventory("p1", "XL", None, 1)

    assert partial.available is True
    assert partial.available_quantity == 3
    assert wrong_size.available is False


def test_inventory_zero_is_unavailable(http_session):
    http_session.request.return_value = make_response(200, {"_id": "p1", "price": 10, "inventory": 0})

    check = ProductClient(BASE, session=http_session).check_inventory("p1", None, None, 1)

    assert check.available is False
    assert check.available_quantity == 0


def test_inventory_falls_back_to_inventory_endpoint(http_session):
    http_session.request.side_effect = [
        make_response(503, {"message": "down"}),
        make_response(200, {"available": True, "availableQuantity": 4}),
    ]

    check = ProductClient(BASE, session=http_session).check_inventory("p1", "M", "red", 2)

    assert check.available_quantity == 4
    args, kwargs = http_session.request.call_args
    assert args == ("GET", f"{BASE}/products/p1/inventory")
    assert kwargs["params"] == {"size": "M", "color": "red", "quantity": 2}


def test_snapshot_requires_price(http_session):
    http_session.request.return_value = make_response(200, {"_id": "p1", "name": "Tee"})

    with pytest.raises(ServiceError):
        ProductClient(BASE, session=http_session).fetch_snapshot("p1")


def test_tax_rate_default_on_failure(http_session):
    http_session.request.side_effect = requests.Timeout()

    assert SettingsClient(BASE, session=http_session).get_tax_rate() == Decimal("7.5")


def test_tax_rate_from_store_settings(http_session):
    http_session.request.return_value = make_response(200, {"taxRate": 8.25})

    assert SettingsClient(BASE, session=http_session).get_tax_rate() == Decimal("8.25")


def test_server_backend_parses_items(http_session):
    http_session.request.return_value = make_response(200, {"items": [LINE]})

    items = ServerCartBackend(StoreApiClient(BASE, session=http_session)).get_items()

    assert items[0].id == "ci1"
    assert items[0].line_total == Decimal("39.98")


def test_server_backend_missing_item_is_item_not_found(http_session):
    http_session.request.return_value = make_response(404, {"detail": "Cart item not found"})

    with pytest.raises(ItemNotFound):
        ServerCartBackend(StoreApiClient(BASE, session=http_session)).remove_item("nope")


def test_server_backend_rejects_garbage_payload(http_session):
    http_session.request.return_value = make_response(200, {"items": [{"foo": "bar"}]})

    with pytest.raises(NetworkFailure):
        ServerCartBackend(StoreApiClient(BASE, session=http_session)).get_items()


def test_server_backend_drops_coupon_removed_on_server(http_session):
    http_session.request.return_value = make_response(200, {"items": [], "appliedCoupon": None})
    backend = ServerCartBackend(StoreApiClient(BASE, session=http_session))

    coupon = AppliedCoupon(code="WELCOME15", amount=Decimal("5"), server_applied=True)

    assert backend.refresh_coupon(coupon) is None


def test_server_backend_keeps_local_coupon_untouched(http_session):
    backend = ServerCartBackend(StoreApiClient(BASE, session=http_session))
    coupon = AppliedCoupon(code="DISCOUNT10", amount=Decimal("5"))

    assert backend.refresh_coupon(coupon) is coupon
    http_session.request.assert_not_called()


def test_unreadable_inventory_value(http_session):
    http_session.request.return_value = make_response(200, {"_id": "p1", "price": 10, "inventory": "n/a"})

    with pytest.raises(MalformedResponse):
        ProductClient(BASE, session=http_session).check_inventory("p1", None, None, 1)


def test_unreadable_inventory_endpoint_payload(http_session):
    http_session.request.side_effect = [
        make_response(503, {"message": "down"}),
        make_response(200, {"available": True, "availableQuantity": "lots"}),
    ]

    with pytest.raises(MalformedResponse):
        ProductClient(BASE, session=http_session).check_inventory("p1", None, None, 1)


def test_snapshot_with_unreadable_price(http_session):
    http_session.request.return_value = make_response(200, {"_id": "p1", "price": "free"})

    with pytest.raises(MalformedResponse) as exc:
        ProductClient(BASE, session=http_session).fetch_snapshot("p1")

    assert exc.value.status_code == 502


def test_unreadable_tax_rate_uses_default(http_session):
    http_session.request.return_value = make_response(200, {"taxRate": "abc"})

    assert SettingsClient(BASE, session=http_session).get_tax_rate() == Decimal("7.5")


def test_server_backend_unreadable_coupon_details(http_session):
    http_session.request.return_value = make_response(200, {"items": [], "appliedCoupon": "WELCOME15"})
    backend = ServerCartBackend(StoreApiClient(BASE, session=http_session))

    with pytest.raises(MalformedResponse):
        backend.refresh_coupon(AppliedCoupon(code="WELCOME15", server_applied=True))
