# cartsync/main.py
from dataclasses import dataclass
from typing import Optional

import requests

from cartsync.repos.local_cart_repo import LocalCartStore
from cartsync.repos.local_wishlist_repo import LocalWishlistStore
from cartsync.repos.storage_repo import KeyValueStorage, build_storage
from cartsync.services.api_client import StoreApiClient
from cartsync.services.auth_session import AuthSession
from cartsync.services.cart_backends import LocalCartBackend, ServerCartBackend
from cartsync.services.cart_service import CartService
from cartsync.services.coupon_service import CouponResolver
from cartsync.services.notification_service import NotificationService
from cartsync.services.product_client import ProductClient
from cartsync.services.settings_client import SettingsClient
from cartsync.services.sync_service import CartSyncBridge, WishlistSyncBridge
from cartsync.services.wishlist_service import LocalWishlistBackend, ServerWishlistBackend, WishlistService
from cartsync.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class Storefront:
    auth: AuthSession
    cart: CartService
    wishlist: WishlistService
    cart_sync: CartSyncBridge
    wishlist_sync: WishlistSyncBridge


def create_storefront(
    storage: Optional[KeyValueStorage] = None,
    base_url: Optional[str] = None,
    session: Optional[requests.Session] = None,
    notification_service=None,
) -> Storefront:
    """
    Sklada koszyk, liste zyczen i sync bridge nad wspolnym AuthSession.
    Kolejnosc subskrypcji ma znaczenie: bridge przenosi dane goscia
    zanim serwisy przeladuja stan z serwera.
    """
    auth = AuthSession()
    storage = storage or build_storage()
    session = session or requests.Session()

    def client(cls):
        return cls(base_url=base_url, session=session, auth=auth)

    api = client(StoreApiClient)
    products = client(ProductClient)

    cart_store = LocalCartStore(storage)
    wishlist_store = LocalWishlistStore(storage)
    server_cart = ServerCartBackend(api)
    server_wishlist = ServerWishlistBackend(api)

    cart_sync = CartSyncBridge(auth, cart_store, server_cart).attach()
    wishlist_sync = WishlistSyncBridge(auth, wishlist_store, server_wishlist).attach()

    cart = CartService(
        auth=auth,
        local_backend=LocalCartBackend(cart_store, products),
        server_backend=server_cart,
        product_client=products,
        coupon_resolver=CouponResolver(api),
        activity_store=storage,
        settings_client=client(SettingsClient),
        notification_service=notification_service or NotificationService(),
    )
    auth.subscribe(cart.on_auth_change)

    wishlist = WishlistService(auth, LocalWishlistBackend(wishlist_store, products), server_wishlist)
    auth.subscribe(wishlist.on_auth_change)

    logger.info("Storefront initialized")
    return Storefront(auth=auth, cart=cart, wishlist=wishlist, cart_sync=cart_sync, wishlist_sync=wishlist_sync)


if __name__ == "__main__":
    storefront = create_storefront()
    result = storefront.cart.load()
    logger.info(f"Cart loaded: ok={result.ok} items={len(storefront.cart.state.items)} total={storefront.cart.cart.total}")
