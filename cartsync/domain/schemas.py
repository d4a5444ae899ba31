# cartsync/domain/schemas.py
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

from cartsync.domain.errors import CartErrorCode


def _to_decimal(value):
    # float z JSONa -> Decimal bez bledow reprezentacji
    if isinstance(value, float):
        return Decimal(str(value))
    return value


class WireModel(BaseModel):
    """Baza dla modeli serializowanych w formacie API sklepu (camelCase, `_id`)."""

    model_config = ConfigDict(populate_by_name=True, coerce_numbers_to_str=True)


class ProductSnapshot(WireModel):
    """Migawka produktu zapisana w momencie dodania do koszyka."""

    id: str
    name: str = ""
    price: Decimal
    discounted_price: Optional[Decimal] = Field(default=None, alias="discountedPrice")
    images: List[str] = Field(default_factory=list)

    @field_validator("price", "discounted_price", mode="before")
    @classmethod
    def coerce_decimals(cls, value):
        return _to_decimal(value)

    @property
    def effective_price(self) -> Decimal:
        # 0 / None traktowane jak brak promocji
        return self.discounted_price or self.price


class CartLineItem(WireModel):
    id: str = Field(alias="_id")
    product_id: str = Field(alias="productId")
    quantity: int = Field(ge=1)
    size: Optional[str] = None
    color: Optional[str] = None
    product: ProductSnapshot
    is_local_only: bool = Field(default=False, alias="isLocalOnly")

    @property
    def identity(self) -> Tuple[str, Optional[str], Optional[str]]:
        return (self.product_id, self.size, self.color)

    @property
    def unit_price(self) -> Decimal:
        return self.product.price

    @property
    def discounted_unit_price(self) -> Optional[Decimal]:
        return self.product.discounted_price

    @property
    def line_total(self) -> Decimal:
        return self.product.effective_price * self.quantity


class WishlistItem(WireModel):
    id: str = Field(alias="_id")
    product_id: str = Field(alias="productId")
    product: Optional[ProductSnapshot] = None
    is_local_only: bool = Field(default=False, alias="isLocalOnly")


class InventoryCheck(BaseModel):
    available: bool
    available_quantity: Optional[int] = None
    message: str = ""


class StockStatus(str, Enum):
    IN_STOCK = "in_stock"
    LOW_STOCK = "low_stock"
    OUT_OF_STOCK = "out_of_stock"


class StockInfo(BaseModel):
    status: StockStatus = StockStatus.IN_STOCK
    available: int = 0
    message: str = ""


class CouponType(str, Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"
    SHIPPING = "shipping"


class CouponRule(WireModel):
    """Reguly kuponu z publicznego endpointu (bez statystyk uzycia)."""

    code: str
    type: CouponType
    value: Decimal = Decimal("0")
    max_discount: Optional[Decimal] = Field(default=None, alias="maxDiscount")
    min_purchase: Decimal = Field(default=Decimal("0"), alias="minPurchase")
    description: str = ""

    @field_validator("value", "max_discount", mode="before")
    @classmethod
    def coerce_decimals(cls, value):
        return _to_decimal(value)

    @field_validator("min_purchase", mode="before")
    @classmethod
    def none_is_zero(cls, value):
        return Decimal("0") if value is None else _to_decimal(value)

    @field_validator("type", mode="before")
    @classmethod
    def normalize_type(cls, value):
        if value == "free_shipping":
            return CouponType.SHIPPING
        return value

    def discount_for(self, subtotal: Decimal, shipping_cost: Decimal) -> Decimal:
        if self.type == CouponType.PERCENTAGE:
            discount = subtotal * self.value / Decimal(100)
            if self.max_discount is not None and discount > self.max_discount:
                discount = self.max_discount
        elif self.type == CouponType.FIXED:
            discount = self.value
        else:
            discount = shipping_cost
        # rabat nigdy nie przekracza wartosci zamowienia przed podatkiem
        return max(Decimal("0"), min(discount, subtotal + shipping_cost))


class AppliedCoupon(BaseModel):
    """Zastosowany kupon. `rule` pozwala przeliczyc rabat po zmianie koszyka,
    kupony zaaplikowane po stronie serwera maja tylko `amount`."""

    code: str
    amount: Decimal = Decimal("0")
    rule: Optional[CouponRule] = None
    server_applied: bool = False


class CouponResult(BaseModel):
    valid: bool
    discount: Optional[Decimal] = None
    message: str = ""
    already_used: bool = False
    limit_reached: bool = False
    min_purchase_not_met: bool = False
    applied: Optional[AppliedCoupon] = None


class CartTotals(BaseModel):
    subtotal: Decimal
    shipping_cost: Decimal
    tax: Decimal
    discount: Decimal
    total: Decimal


class CartView(CartTotals):
    items: List[CartLineItem] = Field(default_factory=list)
    saved_items: List[CartLineItem] = Field(default_factory=list)
    applied_coupon_code: Optional[str] = None
    note: str = ""
    last_activity: Optional[datetime] = None


class CartResult(BaseModel):
    """Wynik operacji na koszyku zwracany do warstwy UI."""

    ok: bool
    error: Optional[CartErrorCode] = None
    message: str = ""
    warnings: List[str] = Field(default_factory=list)
