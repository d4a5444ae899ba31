# cartsync/services/cart_backends.py
import time
import uuid
from abc import ABC, abstractmethod
from typing import List, Optional

from pydantic import TypeAdapter, ValidationError

from cartsync.domain.errors import ItemNotFound, MalformedResponse, ServiceError
from cartsync.domain.schemas import AppliedCoupon, CartLineItem
from cartsync.repos.local_cart_repo import LocalCartStore
from cartsync.services.api_client import StoreApiClient
from cartsync.services.product_client import ProductClient
from cartsync.utils.logging import get_logger

logger = get_logger(__name__)

_items_adapter = TypeAdapter(List[CartLineItem])


def new_local_id() -> str:
    return f"local_{int(time.time() * 1000)}_{uuid.uuid4().hex[:6]}"


class CartBackend(ABC):
    """
    Miejsce przechowywania koszyka dla danego trybu sesji.
    Metody mutujace zwracaja kanoniczna liste pozycji po zmianie.
    Brakujace id -> ItemNotFound.
    """

    @abstractmethod
    def get_items(self) -> List[CartLineItem]: ...

    @abstractmethod
    def get_saved_items(self) -> List[CartLineItem]: ...

    @abstractmethod
    def add_item(self, product_id: str, quantity: int, size: Optional[str], color: Optional[str]) -> List[CartLineItem]: ...

    @abstractmethod
    def update_item(
        self, item_id: str, quantity: int, size: Optional[str] = None, color: Optional[str] = None
    ) -> List[CartLineItem]: ...

    @abstractmethod
    def remove_item(self, item_id: str) -> List[CartLineItem]: ...

    @abstractmethod
    def clear(self) -> None: ...

    @abstractmethod
    def save_for_later(self, item_id: str) -> None: ...

    @abstractmethod
    def move_to_cart(self, item_id: str, quantity: int) -> None: ...

    def refresh_coupon(self, current: Optional[AppliedCoupon]) -> Optional[AppliedCoupon]:
        return current


class LocalCartBackend(CartBackend):
    """Koszyk goscia w lokalnym magazynie; cena z product-service w chwili dodania."""

    def __init__(self, store: LocalCartStore, product_client: ProductClient):
        self.store = store
        self.product_client = product_client

    def get_items(self) -> List[CartLineItem]:
        return self.store.get_items()

    def get_saved_items(self) -> List[CartLineItem]:
        return self.store.get_saved_items()

    def add_item(self, product_id, quantity, size, color):
        snapshot = self.product_client.fetch_snapshot(product_id)
        self.store.add_item(
            CartLineItem(
                id=new_local_id(),
                product_id=product_id,
                quantity=quantity,
                size=size,
                color=color,
                product=snapshot,
                is_local_only=True,
            )
        )
        return self.store.get_items()

    def update_item(self, item_id, quantity, size=None, color=None):
        if not self.store.update_item(item_id, quantity, size, color):
            raise ItemNotFound(f"Cart item {item_id} not found")
        return self.store.get_items()

    def remove_item(self, item_id):
        if not self.store.remove_item(item_id):
            raise ItemNotFound(f"Cart item {item_id} not found")
        return self.store.get_items()

    def clear(self) -> None:
        self.store.clear()

    def save_for_later(self, item_id):
        if not self.store.save_for_later(item_id):
            raise ItemNotFound(f"Cart item {item_id} not found")

    def move_to_cart(self, item_id, quantity):
        if not self.store.move_to_cart(item_id):
            raise ItemNotFound(f"Saved item {item_id} not found")


class ServerCartBackend(CartBackend):
    """Koszyk zalogowanego uzytkownika; serwer jest zrodlem prawdy i sam scala pozycje."""

    def __init__(self, api: StoreApiClient):
        self.api = api

    def _parse(self, payload) -> List[CartLineItem]:
        if isinstance(payload, dict):
            payload = payload.get("items", [])
        try:
            return _items_adapter.validate_python(payload or [])
        except ValidationError as e:
            raise MalformedResponse(f"Unexpected cart payload from store service: {e.error_count()} errors", payload) from e

    def _call(self, method: str, path: str, item_id: str, **kwargs):
        try:
            return self.api.request(method, path, **kwargs)
        except ServiceError as e:
            if e.status_code == 404:
                raise ItemNotFound(f"Cart item {item_id} not found") from e
            raise

    def get_items(self):
        return self._parse(self.api.get("/cart"))

    def get_saved_items(self):
        try:
            return self._parse(self.api.get("/cart/saved"))
        except ServiceError as e:
            if e.status_code == 404:
                return []
            raise

    def push_item(self, product_id, quantity, size, color) -> None:
        """Samo POST, bez odswiezania listy (uzywane przez sync bridge)."""
        self.api.post(
            "/cart",
            json={"productId": product_id, "quantity": quantity, "size": size, "color": color},
        )

    def add_item(self, product_id, quantity, size, color):
        self.push_item(product_id, quantity, size, color)
        return self.get_items()

    def update_item(self, item_id, quantity, size=None, color=None):
        body = {"quantity": quantity}
        if size:
            body["size"] = size
        if color:
            body["color"] = color
        self._call("PUT", f"/cart/{item_id}", item_id, json=body)
        return self.get_items()

    def remove_item(self, item_id):
        self._call("DELETE", f"/cart/{item_id}", item_id)
        return self.get_items()

    def clear(self) -> None:
        self.api.delete("/cart")

    def save_for_later(self, item_id):
        self._call("POST", f"/cart/save-for-later/{item_id}", item_id)

    def move_to_cart(self, item_id, quantity):
        self._call("POST", f"/cart/move-to-cart/{item_id}", item_id, json={"quantity": quantity})

    def refresh_coupon(self, current):
        if current is None or not current.server_applied:
            return current

        details = self.api.get("/cart/details") or {}
        applied = details.get("appliedCoupon") if isinstance(details, dict) else details
        if applied is not None and not isinstance(applied, dict):
            raise MalformedResponse("Unexpected appliedCoupon in cart details", details)
        if not applied or str(applied.get("code", "")).upper() != current.code:
            logger.info(f"Coupon {current.code} no longer applied on server")
            return None

        amount = applied.get("discountAmount", applied.get("discount", current.amount)) or 0
        try:
            return AppliedCoupon(code=current.code, amount=str(amount), server_applied=True)
        except ValidationError as e:
            raise MalformedResponse(f"Unreadable discount for coupon {current.code}", applied) from e
