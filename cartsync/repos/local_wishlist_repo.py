# cartsync/repos/local_wishlist_repo.py
from typing import List

from pydantic import TypeAdapter, ValidationError

from cartsync.domain.schemas import WishlistItem
from cartsync.repos.storage_repo import KeyValueStorage
from cartsync.utils.logging import get_logger

logger = get_logger(__name__)

WISHLIST_STORAGE_KEY = "wishlist_items"

_items_adapter = TypeAdapter(List[WishlistItem])


class LocalWishlistStore:
    def __init__(self, storage: KeyValueStorage):
        self.storage = storage

    def get_items(self) -> List[WishlistItem]:
        raw = self.storage.get(WISHLIST_STORAGE_KEY)
        if not raw:
            return []
        try:
            return _items_adapter.validate_json(raw)
        except ValidationError as e:
            logger.warning(f"Discarding unreadable local wishlist: {e}")
            return []

    def set_items(self, items: List[WishlistItem]) -> None:
        self.storage.set(
            WISHLIST_STORAGE_KEY,
            _items_adapter.dump_json(items, by_alias=True).decode(),
        )

    def add_item(self, item: WishlistItem) -> None:
        items = self.get_items()
        # jeden wpis na produkt
        if any(i.product_id == item.product_id for i in items):
            return
        items.append(item)
        self.set_items(items)

    def remove_item(self, product_id: str) -> None:
        self.set_items([i for i in self.get_items() if i.product_id != product_id])

    def contains(self, product_id: str) -> bool:
        return any(i.product_id == product_id for i in self.get_items())

    def clear(self) -> None:
        self.storage.delete(WISHLIST_STORAGE_KEY)
