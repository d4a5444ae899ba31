# cartsync/repos/local_cart_repo.py
from typing import List, Optional

from pydantic import TypeAdapter, ValidationError

from cartsync.domain.schemas import CartLineItem
from cartsync.repos.storage_repo import KeyValueStorage
from cartsync.utils.logging import get_logger

logger = get_logger(__name__)

CART_STORAGE_KEY = "cart_items"
SAVED_ITEMS_STORAGE_KEY = "saved_cart_items"

_items_adapter = TypeAdapter(List[CartLineItem])


class LocalCartStore:
    """
    Lokalna kopia koszyka dla niezalogowanego uzytkownika.
    Dwie niezalezne listy pod stalymi kluczami: aktywne pozycje i "save for later".
    Jeden pisarz, ostatni zapis wygrywa.
    """

    def __init__(self, storage: KeyValueStorage):
        self.storage = storage

    def _read(self, key: str) -> List[CartLineItem]:
        raw = self.storage.get(key)
        if not raw:
            return []
        try:
            return _items_adapter.validate_json(raw)
        except ValidationError as e:
            logger.warning(f"Discarding unreadable local cart slot {key}: {e}")
            return []

    def _write(self, key: str, items: List[CartLineItem]) -> None:
        self.storage.set(key, _items_adapter.dump_json(items, by_alias=True).decode())

    # aktywne pozycje
    def get_items(self) -> List[CartLineItem]:
        return self._read(CART_STORAGE_KEY)

    def set_items(self, items: List[CartLineItem]) -> None:
        self._write(CART_STORAGE_KEY, items)

    def add_item(self, item: CartLineItem) -> CartLineItem:
        items = self.get_items()
        existing = next((i for i in items if i.identity == item.identity), None)

        if existing:
            # ten sam (produkt, rozmiar, kolor) -> zwiekszamy ilosc, bez limitu
            existing.quantity += item.quantity
            result = existing
        else:
            items.append(item)
            result = item

        self.set_items(items)
        return result

    def update_item(
        self,
        item_id: str,
        quantity: int,
        size: Optional[str] = None,
        color: Optional[str] = None,
    ) -> bool:
        items = self.get_items()
        item = next((i for i in items if i.id == item_id), None)
        if not item:
            return False

        item.quantity = quantity
        if size:
            item.size = size
        if color:
            item.color = color

        # zmiana wariantu moze trafic na istniejaca linie -> scalamy
        twin = next((i for i in items if i is not item and i.identity == item.identity), None)
        if twin:
            twin.quantity += item.quantity
            items = [i for i in items if i is not item]

        self.set_items(items)
        return True

    def remove_item(self, item_id: str) -> bool:
        items = self.get_items()
        remaining = [i for i in items if i.id != item_id]
        self.set_items(remaining)
        return len(remaining) != len(items)

    def clear(self) -> None:
        self.storage.delete(CART_STORAGE_KEY)

    # save for later
    def get_saved_items(self) -> List[CartLineItem]:
        return self._read(SAVED_ITEMS_STORAGE_KEY)

    def set_saved_items(self, items: List[CartLineItem]) -> None:
        self._write(SAVED_ITEMS_STORAGE_KEY, items)

    def save_for_later(self, item_id: str) -> bool:
        items = self.get_items()
        item = next((i for i in items if i.id == item_id), None)
        if not item:
            return False

        saved = self.get_saved_items()
        saved.append(item)
        self.set_items([i for i in items if i.id != item_id])
        self.set_saved_items(saved)
        return True

    def move_to_cart(self, item_id: str) -> bool:
        saved = self.get_saved_items()
        item = next((i for i in saved if i.id == item_id), None)
        if not item:
            return False

        self.set_saved_items([i for i in saved if i.id != item_id])
        self.add_item(item)
        return True
