# cartsync/services/product_client.py
from typing import Optional

from pydantic import ValidationError

from cartsync.domain.errors import MalformedResponse, NetworkFailure
from cartsync.domain.schemas import InventoryCheck, ProductSnapshot
from cartsync.services.api_client import StoreApiClient
from cartsync.utils.logging import get_logger

logger = get_logger(__name__)


class ProductClient(StoreApiClient):
    """Produkty i dostepnosc magazynowa z product-service."""

    def fetch_product(self, product_id: str) -> dict:
        return self.get(f"/products/{product_id}")

    def fetch_snapshot(self, product_id: str) -> ProductSnapshot:
        product = self.fetch_product(product_id) or {}
        if product.get("price") is None:
            raise MalformedResponse(f"Product {product_id} has no price", product)

        try:
            return ProductSnapshot(
                id=product.get("id") or product.get("_id") or product_id,
                name=product.get("name", ""),
                price=product["price"],
                discounted_price=product.get("discountedPrice"),
                images=product.get("images") or [],
            )
        except ValidationError as e:
            raise MalformedResponse(f"Unreadable product {product_id}: {e.error_count()} errors", product) from e

    def check_inventory(
        self,
        product_id: str,
        size: Optional[str],
        color: Optional[str],
        quantity: int,
    ) -> InventoryCheck:
        """
        Najpierw dane produktu (inStock, rozmiary, kolory, inventory),
        a gdy to sie nie uda - dedykowany endpoint inventory.
        Gdy oba zawioda leci NetworkFailure; wywolujacy decyduje co dalej.
        Nieczytelne dane -> MalformedResponse.
        """
        try:
            product = self.fetch_product(product_id)
        except NetworkFailure as e:
            logger.warning(f"Product lookup for {product_id} failed, trying inventory endpoint: {e}")
            data = self.get(
                f"/products/{product_id}/inventory",
                params={"size": size, "color": color, "quantity": quantity},
            ) or {}
            try:
                return InventoryCheck(
                    available=bool(data.get("available", False)),
                    available_quantity=data.get("availableQuantity"),
                    message=data.get("message") or "",
                )
            except ValidationError as err:
                raise MalformedResponse(f"Unreadable inventory for {product_id}", data) from err

        return self._evaluate(product or {}, size, color, quantity)

    @staticmethod
    def _evaluate(product: dict, size: Optional[str], color: Optional[str], quantity: int) -> InventoryCheck:
        inventory = product.get("inventory")

        if not product.get("inStock", True):
            return InventoryCheck(available=False, available_quantity=0, message="Product is out of stock")

        sizes = product.get("sizes") or []
        if size and sizes and size not in sizes:
            return InventoryCheck(available=False, message="Selected size is not available")

        colors = product.get("colors") or []
        if color and colors and color not in colors:
            return InventoryCheck(available=False, message="Selected color is not available")

        if inventory is None:
            return InventoryCheck(available=True, message="Product is available")

        try:
            inventory = int(inventory)
        except (TypeError, ValueError) as e:
            raise MalformedResponse(f"Unreadable inventory value {inventory!r}", product) from e

        if inventory <= 0:
            return InventoryCheck(available=False, available_quantity=0, message="Product is out of stock")

        if inventory < quantity:
            return InventoryCheck(
                available=True,
                available_quantity=inventory,
                message=f"Only {inventory} units available",
            )

        return InventoryCheck(available=True, available_quantity=inventory, message="Product is available")
