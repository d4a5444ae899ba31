# cartsync/services/wishlist_service.py
import time
import uuid
from typing import List

from pydantic import TypeAdapter, ValidationError

from cartsync.domain.errors import CartError, MalformedResponse, NetworkFailure, ServiceError
from cartsync.domain.schemas import CartResult, WishlistItem
from cartsync.repos.local_wishlist_repo import LocalWishlistStore
from cartsync.services.api_client import StoreApiClient
from cartsync.services.auth_session import AuthSession
from cartsync.services.product_client import ProductClient
from cartsync.utils.logging import get_logger

logger = get_logger(__name__)

_items_adapter = TypeAdapter(List[WishlistItem])


class LocalWishlistBackend:
    def __init__(self, store: LocalWishlistStore, product_client: ProductClient):
        self.store = store
        self.product_client = product_client

    def get_items(self) -> List[WishlistItem]:
        return self.store.get_items()

    def add(self, product_id: str) -> None:
        try:
            snapshot = self.product_client.fetch_snapshot(product_id)
        except NetworkFailure as e:
            # wishlista dziala bez migawki, cena dociagana przy wyswietlaniu
            logger.warning(f"Saving {product_id} to wishlist without product details: {e.message}")
            snapshot = None

        self.store.add_item(
            WishlistItem(
                id=f"local_{int(time.time() * 1000)}_{uuid.uuid4().hex[:6]}",
                product_id=product_id,
                product=snapshot,
                is_local_only=True,
            )
        )

    def remove(self, product_id: str) -> None:
        self.store.remove_item(product_id)

    def clear(self) -> None:
        self.store.clear()


class ServerWishlistBackend:
    def __init__(self, api: StoreApiClient):
        self.api = api

    def get_items(self) -> List[WishlistItem]:
        payload = self.api.get("/wishlist") or []
        if isinstance(payload, dict):
            payload = payload.get("items", [])
        try:
            return _items_adapter.validate_python(payload)
        except ValidationError as e:
            raise MalformedResponse(f"Unexpected wishlist payload from store service: {e.error_count()} errors", payload) from e

    def add(self, product_id: str) -> None:
        try:
            self.api.post("/wishlist", json={"productId": product_id})
        except ServiceError as e:
            # 409: juz na liscie
            if e.status_code != 409:
                raise

    def remove(self, product_id: str) -> None:
        entry = next((i for i in self.get_items() if i.product_id == product_id), None)
        if entry is None:
            return
        try:
            self.api.delete(f"/wishlist/{entry.id}")
        except ServiceError as e:
            if e.status_code != 404:
                raise

    def clear(self) -> None:
        self.api.delete("/wishlist")


class WishlistService:
    """Lista zyczen w tym samym dwutrybowym ukladzie co koszyk."""

    def __init__(self, auth: AuthSession, local_backend: LocalWishlistBackend, server_backend: ServerWishlistBackend):
        self.auth = auth
        self.local_backend = local_backend
        self.server_backend = server_backend
        self.items: List[WishlistItem] = []
        self.error = None

    @property
    def backend(self):
        return self.server_backend if self.auth.is_authenticated else self.local_backend

    def is_in_wishlist(self, product_id: str) -> bool:
        return any(i.product_id == product_id for i in self.items)

    def load(self) -> CartResult:
        return self._run("load_wishlist", lambda: None, "")

    def add(self, product_id: str) -> CartResult:
        if self.is_in_wishlist(product_id):
            return CartResult(ok=True, message="Already in wishlist")
        return self._run("add_to_wishlist", lambda: self.backend.add(product_id), "Added to wishlist!")

    def remove(self, product_id: str) -> CartResult:
        return self._run("remove_from_wishlist", lambda: self.backend.remove(product_id), "Removed from wishlist")

    def toggle(self, product_id: str) -> CartResult:
        if self.is_in_wishlist(product_id):
            return self.remove(product_id)
        return self.add(product_id)

    def clear(self) -> CartResult:
        return self._run("clear_wishlist", lambda: self.backend.clear(), "Wishlist cleared")

    def on_auth_change(self, authenticated: bool) -> None:
        self.items = []
        self.load()

    def _run(self, action: str, mutation, message: str) -> CartResult:
        backend = self.backend
        try:
            mutation()
            self.items = backend.get_items()
        except CartError as e:
            logger.error(f"{action} failed: {e.message}")
            self.error = e.message
            return CartResult(ok=False, error=e.code, message=e.message)

        self.error = None
        return CartResult(ok=True, message=message)
