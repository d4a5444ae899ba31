# cartsync/store_service/schemas.py
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class _Body(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class CartItemIn(_Body):
    product_id: str = Field(alias="productId")
    quantity: int = Field(default=1, ge=1)
    size: Optional[str] = None
    color: Optional[str] = None


class CartItemUpdate(_Body):
    quantity: int = Field(ge=1)
    size: Optional[str] = None
    color: Optional[str] = None


class MoveToCartIn(_Body):
    quantity: Optional[int] = Field(default=None, ge=1)


class CouponCodeIn(_Body):
    code: str


class WishlistItemIn(_Body):
    product_id: str = Field(alias="productId")
