from unittest.mock import MagicMock

import pytest
from conftest import make_item

from cartsync.domain.errors import ServiceError
from cartsync.domain.schemas import WishlistItem
from cartsync.repos.local_wishlist_repo import LocalWishlistStore
from cartsync.services.auth_session import AuthSession
from cartsync.services.cart_backends import ServerCartBackend
from cartsync.services.sync_service import CartSyncBridge, SyncBridge, WishlistSyncBridge
from cartsync.services.wishlist_service import ServerWishlistBackend


def fill_local_cart(local_store, count=3):
    for n in range(count):
        local_store.add_item(make_item(f"local_{n}", f"p{n}", quantity=n + 1, size="M"))


def test_sync_runs_once_per_login(local_store):
    auth = AuthSession()
    server = MagicMock(spec=ServerCartBackend)
    CartSyncBridge(auth, local_store, server).attach()
    fill_local_cart(local_store)

    auth.login("tok", "u1")
    auth.login("tok", "u1")
    auth.login("tok", "u1")

    assert server.push_item.call_count == 3
    server.push_item.assert_any_call("p2", 3, "M", None)
    assert local_store.get_items() == []


def test_failed_items_are_dropped(local_store):
    auth = AuthSession()
    server = MagicMock(spec=ServerCartBackend)
    server.push_item.side_effect = [None, ServiceError(400, {"message": "Product is out of stock"}), None]
    bridge = CartSyncBridge(auth, local_store, server)
    fill_local_cart(local_store)
    auth.token = "tok"

    report = bridge.sync()

    assert report.pushed == 2
    assert report.dropped == ["p1"]
    assert local_store.get_items() == []


def test_sync_skipped_when_anonymous(local_store):
    server = MagicMock(spec=ServerCartBackend)
    bridge = CartSyncBridge(AuthSession(), local_store, server)
    fill_local_cart(local_store, 1)

    report = bridge.sync()

    assert report.pushed == 0
    assert len(local_store.get_items()) == 1
    server.push_item.assert_not_called()


def test_flag_resets_on_logout(local_store):
    auth = AuthSession()
    server = MagicMock(spec=ServerCartBackend)
    CartSyncBridge(auth, local_store, server).attach()

    fill_local_cart(local_store, 1)
    auth.login("tok", "u1")
    auth.logout()
    fill_local_cart(local_store, 2)
    auth.login("tok", "u1")

    assert server.push_item.call_count == 3


def test_logout_before_sync_keeps_local_items(local_store):
    auth = AuthSession()
    bridge = CartSyncBridge(auth, local_store, MagicMock(spec=ServerCartBackend)).attach()
    fill_local_cart(local_store, 2)

    bridge.on_auth_change(False)

    assert len(local_store.get_items()) == 2


def test_wishlist_sync(storage):
    auth = AuthSession()
    store = LocalWishlistStore(storage)
    store.add_item(WishlistItem(id="w1", product_id="p1"))
    store.add_item(WishlistItem(id="w2", product_id="p2"))
    server = MagicMock(spec=ServerWishlistBackend)
    WishlistSyncBridge(auth, store, server).attach()

    auth.login("tok", "u1")
    auth.login("tok", "u1")

    assert [c.args for c in server.add.call_args_list] == [("p1",), ("p2",)]
    assert store.get_items() == []


def test_token_refresh_does_not_resync(local_store):
    auth = AuthSession()
    server = MagicMock(spec=ServerCartBackend)
    bridge = CartSyncBridge(auth, local_store, server).attach()
    auth.login("tok", "u1")
    fill_local_cart(local_store, count=1)

    auth.refresh_token("tok-2")

    assert auth.token == "tok-2"
    assert bridge.synced is True
    server.push_item.assert_not_called()


def test_bridge_requires_storage_hooks():
    with pytest.raises(TypeError):
        SyncBridge(AuthSession())
