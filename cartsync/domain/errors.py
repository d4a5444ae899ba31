# cartsync/domain/errors.py
from enum import Enum
from typing import Any


class CartErrorCode(str, Enum):
    """Stabilne flagi bledow zwracane przez CartService."""

    OUT_OF_STOCK = "out_of_stock"
    PARTIAL_AVAILABILITY = "partial_availability"
    NETWORK_FAILURE = "network_failure"
    INVALID_COUPON = "invalid_coupon"
    ITEM_NOT_FOUND = "item_not_found"
    INVALID_REQUEST = "invalid_request"


class CartError(Exception):
    code = CartErrorCode.NETWORK_FAILURE

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class OutOfStock(CartError):
    code = CartErrorCode.OUT_OF_STOCK


class PartialAvailability(CartError):
    """Ostrzezenie, nie blad: operacja idzie dalej z przycieta iloscia."""

    code = CartErrorCode.PARTIAL_AVAILABILITY

    def __init__(self, requested: int, available: int):
        super().__init__(f"Only {available} units available. Adjusting quantity.")
        self.requested = requested
        self.available = available


class NetworkFailure(CartError):
    code = CartErrorCode.NETWORK_FAILURE


class ServiceError(NetworkFailure):
    """Odpowiedz HTTP 4xx/5xx z serwisu sklepu."""

    def __init__(self, status_code: int, payload: Any = None, message: str | None = None):
        detail = message
        if detail is None and isinstance(payload, dict):
            detail = payload.get("message") or payload.get("detail")
        super().__init__(detail or f"Store service responded with HTTP {status_code}")
        self.status_code = status_code
        self.payload = payload if payload is not None else {}


class InvalidCoupon(CartError):
    code = CartErrorCode.INVALID_COUPON

    def __init__(
        self,
        message: str,
        already_used: bool = False,
        limit_reached: bool = False,
        min_purchase_not_met: bool = False,
    ):
        super().__init__(message)
        self.already_used = already_used
        self.limit_reached = limit_reached
        self.min_purchase_not_met = min_purchase_not_met


class ItemNotFound(CartError):
    code = CartErrorCode.ITEM_NOT_FOUND


class InvalidRequest(CartError):
    code = CartErrorCode.INVALID_REQUEST


class MalformedResponse(ServiceError):
    """Serwis odpowiedzial, ale danych nie da sie zinterpretowac."""

    def __init__(self, message: str, payload: Any = None):
        super().__init__(502, payload, message)
