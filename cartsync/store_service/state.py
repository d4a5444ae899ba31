# cartsync/store_service/state.py
import copy
import itertools
from decimal import Decimal
from typing import Dict, List, Optional

from fastapi import Header, HTTPException

# dane startowe serwisu deweloperskiego
PRODUCTS = {
    "p1": {
        "_id": "p1",
        "name": "Classic Tee",
        "price": 25.0,
        "discountedPrice": 19.99,
        "images": ["/img/tee.jpg"],
        "sizes": ["S", "M", "L"],
        "colors": ["black", "white"],
        "inventory": 40,
        "inStock": True,
    },
    "p2": {
        "_id": "p2",
        "name": "Denim Jacket",
        "price": 89.5,
        "images": ["/img/jacket.jpg"],
        "sizes": ["M", "L"],
        "colors": ["blue"],
        "inventory": 3,
        "inStock": True,
    },
    "p3": {
        "_id": "p3",
        "name": "Canvas Sneakers",
        "price": 60.0,
        "images": ["/img/sneakers.jpg"],
        "sizes": ["42", "43", "44"],
        "inventory": 0,
        "inStock": False,
    },
}

COUPONS = {
    "WELCOME15": {
        "code": "WELCOME15",
        "type": "percentage",
        "value": 15,
        "maxDiscount": 50,
        "minPurchase": 0,
        "description": "15% off your order",
        "usageLimit": 100,
        "perUser": True,
    },
    "SAVE20": {
        "code": "SAVE20",
        "type": "fixed",
        "value": 20,
        "minPurchase": 80,
        "description": "$20 off orders over $80",
        "usageLimit": 1,
        "perUser": False,
    },
    "SHIPFREE": {
        "code": "SHIPFREE",
        "type": "free_shipping",
        "value": 0,
        "minPurchase": 0,
        "description": "Free shipping",
        "usageLimit": None,
        "perUser": False,
    },
}

PUBLIC_COUPON_FIELDS = ("code", "type", "value", "maxDiscount", "minPurchase", "description")


class StoreState:
    """Stan sklepu w pamieci procesu; reset() przywraca dane startowe."""

    def __init__(self):
        self.reset()

    def reset(self) -> None:
        self.products: Dict[str, dict] = copy.deepcopy(PRODUCTS)
        self.coupons: Dict[str, dict] = copy.deepcopy(COUPONS)
        self.coupon_usage: Dict[str, List[str]] = {code: [] for code in self.coupons}
        self.carts: Dict[str, List[dict]] = {}
        self.saved: Dict[str, List[dict]] = {}
        self.applied_coupons: Dict[str, dict] = {}
        self.wishlists: Dict[str, List[dict]] = {}
        self.tax_rate = Decimal("7.5")
        self._ids = itertools.count(1)

    def next_id(self, prefix: str) -> str:
        return f"{prefix}{next(self._ids)}"

    def product_or_404(self, product_id: str) -> dict:
        product = self.products.get(product_id)
        if product is None:
            raise HTTPException(status_code=404, detail="Product not found")
        return product

    def snapshot(self, product: dict) -> dict:
        return {
            "id": product["_id"],
            "name": product["name"],
            "price": product["price"],
            "discountedPrice": product.get("discountedPrice"),
            "images": product.get("images", []),
        }

    def cart(self, user_id: str) -> List[dict]:
        return self.carts.setdefault(user_id, [])

    def saved_items(self, user_id: str) -> List[dict]:
        return self.saved.setdefault(user_id, [])

    def wishlist(self, user_id: str) -> List[dict]:
        return self.wishlists.setdefault(user_id, [])


store = StoreState()


def get_store() -> StoreState:
    return store


def current_user(authorization: Optional[str] = Header(default=None)) -> str:
    # token deweloperski == id uzytkownika
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Not authenticated")
    return authorization[len("Bearer "):]
