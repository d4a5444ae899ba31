# cartsync/services/sync_service.py
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List

from cartsync.domain.errors import CartError
from cartsync.repos.local_cart_repo import LocalCartStore
from cartsync.repos.local_wishlist_repo import LocalWishlistStore
from cartsync.services.auth_session import AuthSession
from cartsync.services.cart_backends import ServerCartBackend
from cartsync.services.wishlist_service import ServerWishlistBackend
from cartsync.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class SyncReport:
    pushed: int = 0
    dropped: List[str] = field(default_factory=list)


class SyncBridge(ABC):
    """
    Jednorazowe przeniesienie lokalnych danych goscia na serwer po zalogowaniu.

    Flaga `synced` ustawiana jest PRZED wysylka, wiec powtorne zdarzenie
    logowania w tej samej sesji niczego nie duplikuje. Reset przy wylogowaniu.
    Bledy pojedynczych pozycji sa logowane, pozycja przepada.
    """

    name = "local data"

    def __init__(self, auth: AuthSession):
        self.auth = auth
        self.synced = False

    def attach(self) -> "SyncBridge":
        self.auth.subscribe(self.on_auth_change)
        return self

    def on_auth_change(self, authenticated: bool) -> None:
        if authenticated:
            self.sync()
            return

        if self.synced:
            # zawartosc jest juz na serwerze, lokalna kopia niepotrzebna
            self.clear_local()
        self.synced = False

    def sync(self) -> SyncReport:
        report = SyncReport()
        if self.synced or not self.auth.is_authenticated:
            return report
        self.synced = True

        entries = self.local_entries()
        if not entries:
            return report

        logger.info(f"Syncing {len(entries)} {self.name} entries to server")
        for entry in entries:
            try:
                self.push(entry)
                report.pushed += 1
            except CartError as e:
                logger.warning(f"Dropping {self.name} entry {entry.product_id} during sync: {e.message}")
                report.dropped.append(entry.product_id)

        self.clear_local()
        logger.info(f"{self.name} sync finished: pushed={report.pushed} dropped={len(report.dropped)}")
        return report

    @abstractmethod
    def local_entries(self) -> list: ...

    @abstractmethod
    def push(self, entry) -> None: ...

    @abstractmethod
    def clear_local(self) -> None: ...


class CartSyncBridge(SyncBridge):
    name = "cart"

    def __init__(self, auth: AuthSession, local_store: LocalCartStore, server_backend: ServerCartBackend):
        super().__init__(auth)
        self.local_store = local_store
        self.server_backend = server_backend

    def local_entries(self):
        return self.local_store.get_items()

    def push(self, entry) -> None:
        self.server_backend.push_item(entry.product_id, entry.quantity, entry.size, entry.color)

    def clear_local(self) -> None:
        self.local_store.clear()


class WishlistSyncBridge(SyncBridge):
    name = "wishlist"

    def __init__(self, auth: AuthSession, local_store: LocalWishlistStore, server_backend: ServerWishlistBackend):
        super().__init__(auth)
        self.local_store = local_store
        self.server_backend = server_backend

    def local_entries(self):
        return self.local_store.get_items()

    def push(self, entry) -> None:
        self.server_backend.add(entry.product_id)

    def clear_local(self) -> None:
        self.local_store.clear()
