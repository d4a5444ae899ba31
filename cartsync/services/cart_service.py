# cartsync/services/cart_service.py
import threading
from datetime import datetime, timezone
from decimal import Decimal
from typing import Callable, Dict, List, Optional

from pydantic import BaseModel, Field

from cartsync.domain.errors import (
    CartError,
    InvalidRequest,
    ItemNotFound,
    MalformedResponse,
    NetworkFailure,
    OutOfStock,
    PartialAvailability,
)
from cartsync.domain.schemas import (
    AppliedCoupon,
    CartLineItem,
    CartResult,
    CartView,
    CouponResult,
    StockInfo,
    StockStatus,
)
from cartsync.domain.totals import (
    ZERO,
    calculate_shipping,
    calculate_subtotal,
    calculate_totals,
    classify_stock,
)
from cartsync.repos.storage_repo import KeyValueStorage
from cartsync.services.auth_session import AuthSession
from cartsync.services.cart_backends import CartBackend
from cartsync.services.coupon_service import CouponResolver
from cartsync.services.product_client import ProductClient
from cartsync.services.settings_client import SettingsClient
from cartsync.utils.logging import get_logger
from cartsync.utils.settings import (
    ABANDONED_CART_SECONDS,
    DEFAULT_TAX_RATE,
    LOW_STOCK_THRESHOLD,
)

logger = get_logger(__name__)

LAST_ACTIVITY_KEY = "cartLastActivity"


def line_key(product_id: str, size: Optional[str], color: Optional[str]) -> str:
    return f"{product_id}|{size or ''}|{color or ''}"


class CartState(BaseModel):
    """Stan koszyka w pamieci; zmieniany wylacznie przez metody CartService."""

    items: List[CartLineItem] = Field(default_factory=list)
    saved_items: List[CartLineItem] = Field(default_factory=list)
    stock: Dict[str, StockInfo] = Field(default_factory=dict)
    applied_coupon: Optional[AppliedCoupon] = None
    tax_rate: Decimal = DEFAULT_TAX_RATE
    note: str = ""
    loading: bool = False
    error: Optional[str] = None
    last_activity: Optional[datetime] = None


class CartService:
    """
    Agregator koszyka: jedno zrodlo prawdy dla sum i wszystkich operacji.

    - backend wybierany po trybie sesji (gosc -> lokalny, zalogowany -> serwer)
    - kazda operacja zwraca CartResult, wyjatki nie wychodza poza serwis
    - przy bledzie poprzedni stan zostaje nietkniety
    - licznik generacji per pozycja odrzuca spoznione odpowiedzi
    """

    def __init__(
        self,
        auth: AuthSession,
        local_backend: CartBackend,
        server_backend: CartBackend,
        product_client: ProductClient,
        coupon_resolver: CouponResolver,
        activity_store: KeyValueStorage,
        settings_client: Optional[SettingsClient] = None,
        notification_service=None,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.auth = auth
        self.local_backend = local_backend
        self.server_backend = server_backend
        self.product_client = product_client
        self.coupon_resolver = coupon_resolver
        self.activity_store = activity_store
        self.settings_client = settings_client
        self.notification_service = notification_service
        self.clock = clock

        self.state = CartState()
        self._generations: Dict[str, int] = {}
        self._generation_lock = threading.Lock()

    @property
    def backend(self) -> CartBackend:
        return self.server_backend if self.auth.is_authenticated else self.local_backend

    # =====================================================
    # QUERY
    # =====================================================
    @property
    def cart(self) -> CartView:
        """Sumy liczone przy kazdym odczycie, nic nie jest cache'owane."""
        items = list(self.state.items)
        subtotal = calculate_subtotal(items)
        discount = self._current_discount(subtotal, calculate_shipping(subtotal))
        totals = calculate_totals(items, discount, self.state.tax_rate)

        coupon = self.state.applied_coupon
        return CartView(
            **totals.model_dump(),
            items=items,
            saved_items=list(self.state.saved_items),
            applied_coupon_code=coupon.code if coupon else None,
            note=self.state.note,
            last_activity=self.state.last_activity,
        )

    @property
    def coupon_code(self) -> str:
        return self.state.applied_coupon.code if self.state.applied_coupon else ""

    def get_stock_status(self, item_id: str) -> StockInfo:
        item = self._find(item_id)
        if item is None:
            return StockInfo()

        info = self.state.stock.get(line_key(*item.identity))
        if info is None:
            return StockInfo()
        return info

    def can_increase(self, item_id: str) -> bool:
        """Status magazynowy tylko blokuje zwiekszanie ilosci, nigdy odczyt."""
        item = self._find(item_id)
        if item is None:
            return False
        info = self.state.stock.get(line_key(*item.identity))
        if info is None:
            return True
        if info.status == StockStatus.OUT_OF_STOCK:
            return False
        return info.available <= 0 or item.quantity < info.available

    # =====================================================
    # COMMANDS
    # =====================================================
    def load(self) -> CartResult:
        return self._run("load", self._load)

    def refresh_cart(self) -> CartResult:
        return self._run("refresh", self._refresh)

    def add_to_cart(
        self,
        product_id: str,
        quantity: int = 1,
        size: Optional[str] = None,
        color: Optional[str] = None,
    ) -> CartResult:
        return self._run("add_to_cart", self._add_to_cart, product_id, quantity, size, color)

    def update_cart_item(
        self,
        item_id: str,
        quantity: int,
        size: Optional[str] = None,
        color: Optional[str] = None,
    ) -> CartResult:
        return self._run("update_cart_item", self._update_cart_item, item_id, quantity, size, color)

    def remove_from_cart(self, item_id: str) -> CartResult:
        return self._run("remove_from_cart", self._remove_from_cart, item_id)

    def clear_cart(self) -> CartResult:
        return self._run("clear_cart", self._clear_cart, "Cart cleared!")

    def complete_order(self) -> CartResult:
        """Po udanym zamowieniu koszyk jest czyszczony."""
        return self._run("complete_order", self._clear_cart, "Order placed, cart cleared.")

    def save_for_later(self, item_id: str) -> CartResult:
        return self._run("save_for_later", self._save_for_later, item_id)

    def move_to_cart_from_saved(self, item_id: str) -> CartResult:
        return self._run("move_to_cart_from_saved", self._move_to_cart_from_saved, item_id)

    def remove_coupon(self) -> CartResult:
        return self._run("remove_coupon", self._remove_coupon)

    def apply_coupon(self, code: str) -> CouponResult:
        subtotal = calculate_subtotal(self.state.items)
        shipping = calculate_shipping(subtotal)

        try:
            result = self.coupon_resolver.apply(code, subtotal, shipping, self.auth.is_authenticated)
        except CartError as e:
            logger.error(f"apply_coupon failed: {e.message}")
            self.state.error = e.message
            return CouponResult(valid=False, message=e.message)

        if result.valid:
            self.state.applied_coupon = result.applied
            logger.info(f"Coupon {self.coupon_code} applied, discount {self.cart.discount}")
        return result

    def set_note(self, note: str) -> None:
        self.state.note = note

    def abandoned_cart_recovery(self) -> bool:
        """
        True gdy koszyk ma pozycje, a ostatnia aktywnosc byla dawniej
        niz ABANDONED_CART_SECONDS. Dla znanego usera wysyla przypomnienie.
        """
        last_activity = self._read_last_activity()
        if last_activity is None or not self.state.items:
            return False

        idle = (self.clock() - last_activity).total_seconds()
        if idle <= ABANDONED_CART_SECONDS:
            return False

        logger.info(f"Cart abandoned for {int(idle)}s")
        if self.notification_service is not None and self.auth.user_id:
            try:
                self.notification_service.send_abandoned_cart_reminder(
                    self.auth.user_id,
                    len(self.state.items),
                    str(self.cart.total),
                )
            except Exception as e:
                logger.warning(f"Failed to dispatch abandoned cart reminder: {e}")
        return True

    def on_auth_change(self, authenticated: bool) -> None:
        # inny tryb -> inny backend; stan w pamieci budujemy od nowa
        logger.info(f"Session mode changed (authenticated={authenticated}), reloading cart")
        self._invalidate_all()
        self.state.items = []
        self.state.saved_items = []
        self.state.stock = {}
        self.state.applied_coupon = None
        self.load()

    # =====================================================
    # implementacje operacji
    # =====================================================
    def _run(self, action: str, operation, *args) -> CartResult:
        self.state.loading = True
        warnings: List[str] = []
        try:
            message = operation(warnings, *args)
        except CartError as e:
            logger.error(f"{action} failed: {e.message}")
            self.state.error = e.message
            return CartResult(ok=False, error=e.code, message=e.message, warnings=warnings)
        finally:
            self.state.loading = False

        self.state.error = None
        return CartResult(ok=True, message=message or "", warnings=warnings)

    def _load(self, warnings: List[str]) -> str:
        if self.settings_client is not None:
            self.state.tax_rate = self.settings_client.get_tax_rate()
        return self._refresh(warnings)

    def _refresh(self, warnings: List[str]) -> str:
        backend = self.backend
        items = backend.get_items()
        saved = backend.get_saved_items()

        coupon = self.state.applied_coupon
        if coupon is not None:
            try:
                coupon = backend.refresh_coupon(coupon)
            except NetworkFailure as e:
                # kupon zostaje, zeby nie psuc koszyka przez chwilowy blad
                logger.warning(f"Could not verify coupon {coupon.code}: {e.message}")

        self.state.items = items
        self.state.saved_items = saved
        self.state.applied_coupon = coupon
        self.state.last_activity = self._read_last_activity()

        for item in items:
            self._refresh_stock(item.product_id, item.size, item.color)
        return ""

    def _add_to_cart(self, warnings, product_id, quantity, size, color) -> str:
        self._require_quantity(quantity)
        quantity = self._checked_quantity(product_id, size, color, quantity, warnings)

        key = line_key(product_id, size, color)
        generation = self._next_generation(key)
        items = self.backend.add_item(product_id, quantity, size, color)
        self._commit_items(key, generation, items)

        self._refresh_stock(product_id, size, color)
        self._touch()
        return "Item added to cart!"

    def _update_cart_item(self, warnings, item_id, quantity, size, color) -> str:
        current = self._find(item_id)
        if current is None:
            logger.info(f"Item {item_id} not in cart, nothing to update")
            return "Cart updated!"

        self._require_quantity(quantity)
        new_size = size or current.size
        new_color = color or current.color
        variant_changed = new_size != current.size or new_color != current.color

        # zmiana wariantu na istniejaca pozycje scala linie, magazyn musi pokryc sume
        twin = None
        if variant_changed:
            twin = next(
                (i for i in self.state.items if i.id != item_id and i.identity == (current.product_id, new_size, new_color)),
                None,
            )
        merged = twin.quantity if twin else 0

        # zmniejszenie ilosci nie wymaga sprawdzania magazynu
        if quantity > current.quantity or variant_changed:
            allowed = self._checked_quantity(current.product_id, new_size, new_color, quantity + merged, warnings)
            if allowed <= merged:
                raise OutOfStock(f"Only {allowed} units available and {merged} are already in your cart.")
            quantity = allowed - merged

        key = line_key(*current.identity)
        generation = self._next_generation(key)
        try:
            items = self.backend.update_item(item_id, quantity, size, color)
        except ItemNotFound:
            logger.info(f"Item {item_id} vanished before update")
            items = [i for i in self.state.items if i.id != item_id]
        self._commit_items(key, generation, items)

        self._refresh_stock(current.product_id, new_size, new_color)
        self._touch()
        return "Cart updated!"

    def _remove_from_cart(self, warnings, item_id) -> str:
        current = self._find(item_id)
        key = line_key(*current.identity) if current else f"id:{item_id}"
        generation = self._next_generation(key)

        try:
            items = self.backend.remove_item(item_id)
        except ItemNotFound:
            logger.info(f"Item {item_id} already removed")
            items = [i for i in self.state.items if i.id != item_id]
        self._commit_items(key, generation, items)
        return "Item removed from cart!"

    def _clear_cart(self, warnings, message: str) -> str:
        self.backend.clear()

        self._invalidate_all()
        self.state.items = []
        self.state.stock = {}
        self.state.applied_coupon = None
        self.state.last_activity = None
        self.activity_store.delete(LAST_ACTIVITY_KEY)
        return message

    def _save_for_later(self, warnings, item_id) -> str:
        if self._find(item_id) is None:
            logger.info(f"Item {item_id} not in cart, nothing to save")
            return "Item saved for later!"

        backend = self.backend
        try:
            backend.save_for_later(item_id)
        except ItemNotFound:
            logger.info(f"Item {item_id} vanished before save for later")

        self._invalidate_all()
        self.state.items = backend.get_items()
        self.state.saved_items = backend.get_saved_items()
        return "Item saved for later!"

    def _move_to_cart_from_saved(self, warnings, item_id) -> str:
        saved = next((i for i in self.state.saved_items if i.id == item_id), None)
        if saved is None:
            logger.info(f"Item {item_id} not in saved items, nothing to move")
            return "Item moved to cart!"

        backend = self.backend
        try:
            backend.move_to_cart(item_id, saved.quantity)
        except ItemNotFound:
            logger.info(f"Saved item {item_id} vanished before move")

        self._invalidate_all()
        self.state.items = backend.get_items()
        self.state.saved_items = backend.get_saved_items()

        self._refresh_stock(saved.product_id, saved.size, saved.color)
        self._touch()
        return "Item moved to cart!"

    def _remove_coupon(self, warnings) -> str:
        coupon = self.state.applied_coupon
        if coupon is None:
            return ""
        if self.auth.is_authenticated:
            self.coupon_resolver.remove(coupon)
        self.state.applied_coupon = None
        return "Coupon removed"

    # =====================================================
    # helpers
    # =====================================================
    def _find(self, item_id: str) -> Optional[CartLineItem]:
        return next((i for i in self.state.items if i.id == item_id), None)

    @staticmethod
    def _require_quantity(quantity: int) -> None:
        if not isinstance(quantity, int) or quantity < 1:
            raise InvalidRequest("Quantity must be at least 1")

    def _checked_quantity(self, product_id, size, color, quantity, warnings: List[str]) -> int:
        """
        Dostepnosc jest tylko podpowiedzia: blad zapytania nie blokuje koszyka.
        Brak towaru -> OutOfStock, za malo -> przycinamy ilosc z ostrzezeniem.
        """
        try:
            check = self.product_client.check_inventory(product_id, size, color, quantity)
        except MalformedResponse:
            # nieczytelne dane to blad serwisu, nie brak informacji
            raise
        except NetworkFailure as e:
            logger.warning(f"Inventory unknown for {product_id}, proceeding optimistically: {e.message}")
            return quantity

        if not check.available:
            raise OutOfStock(check.message or "Sorry, this item is out of stock.")

        available = check.available_quantity
        if available is not None and available < quantity:
            if available <= 0:
                raise OutOfStock("Sorry, this item is out of stock.")
            warning = PartialAvailability(quantity, available)
            logger.info(f"Clamping {product_id} from {quantity} to {available}")
            warnings.append(warning.message)
            return available
        return quantity

    def _refresh_stock(self, product_id, size, color) -> None:
        try:
            check = self.product_client.check_inventory(product_id, size, color, 1)
        except NetworkFailure as e:
            logger.debug(f"Stock status refresh skipped for {product_id}: {e.message}")
            return

        if check.available_quantity is not None:
            available = check.available_quantity
            status = classify_stock(available, LOW_STOCK_THRESHOLD)
        else:
            available = 0
            status = StockStatus.IN_STOCK if check.available else StockStatus.OUT_OF_STOCK

        if status == StockStatus.OUT_OF_STOCK:
            message = "Currently out of stock"
        elif status == StockStatus.LOW_STOCK:
            message = f"Only {available} left in stock - order soon!"
        else:
            message = ""

        self.state.stock[line_key(product_id, size, color)] = StockInfo(
            status=status, available=available, message=message
        )

    def _next_generation(self, key: str) -> int:
        with self._generation_lock:
            generation = self._generations.get(key, 0) + 1
            self._generations[key] = generation
            return generation

    def _invalidate_all(self) -> None:
        with self._generation_lock:
            for key in self._generations:
                self._generations[key] += 1

    def _commit_items(self, key: str, generation: int, items: List[CartLineItem]) -> bool:
        if self._generations.get(key) != generation:
            logger.info(f"Discarding stale cart response for {key} (generation {generation})")
            return False
        self.state.items = items
        return True

    def _current_discount(self, subtotal: Decimal, shipping_cost: Decimal) -> Decimal:
        coupon = self.state.applied_coupon
        if coupon is None:
            return ZERO
        if coupon.rule is not None:
            if subtotal < coupon.rule.min_purchase:
                return ZERO
            return coupon.rule.discount_for(subtotal, shipping_cost)
        return min(coupon.amount, subtotal + shipping_cost)

    def _touch(self) -> None:
        if not self.state.items:
            return
        now = self.clock()
        self.state.last_activity = now
        self.activity_store.set(LAST_ACTIVITY_KEY, now.isoformat())

    def _read_last_activity(self) -> Optional[datetime]:
        raw = self.activity_store.get(LAST_ACTIVITY_KEY)
        if not raw:
            return None
        try:
            return datetime.fromisoformat(raw)
        except ValueError:
            logger.warning(f"Ignoring malformed {LAST_ACTIVITY_KEY} value: {raw!r}")
            return None
