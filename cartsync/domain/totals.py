# cartsync/domain/totals.py
from decimal import Decimal
from typing import Iterable

from cartsync.domain.schemas import CartLineItem, CartTotals, StockStatus
from cartsync.utils.settings import (
    DEFAULT_TAX_RATE,
    FLAT_SHIPPING_COST,
    FREE_SHIPPING_THRESHOLD,
)

ZERO = Decimal("0")


def calculate_subtotal(items: Iterable[CartLineItem]) -> Decimal:
    return sum((i.line_total for i in items), ZERO)


def calculate_shipping(
    subtotal: Decimal,
    threshold: Decimal = FREE_SHIPPING_THRESHOLD,
    flat_cost: Decimal = FLAT_SHIPPING_COST,
) -> Decimal:
    # darmowa wysylka dopiero POWYZEJ progu
    return ZERO if subtotal > threshold else flat_cost


def calculate_totals(
    items: Iterable[CartLineItem],
    discount: Decimal = ZERO,
    tax_rate: Decimal = DEFAULT_TAX_RATE,
    threshold: Decimal = FREE_SHIPPING_THRESHOLD,
    flat_cost: Decimal = FLAT_SHIPPING_COST,
) -> CartTotals:
    """
    Sumy koszyka liczone zawsze od zera z aktywnych pozycji
    (saved items nie wchodza do sumy). `tax_rate` w procentach.
    """
    subtotal = calculate_subtotal(items)
    shipping_cost = calculate_shipping(subtotal, threshold, flat_cost)
    tax = subtotal * Decimal(tax_rate) / Decimal(100)
    discount = Decimal(discount or 0)
    total = max(ZERO, subtotal + shipping_cost + tax - discount)

    return CartTotals(
        subtotal=subtotal,
        shipping_cost=shipping_cost,
        tax=tax,
        discount=discount,
        total=total,
    )


def classify_stock(available: int, low_stock_threshold: int) -> StockStatus:
    if available <= 0:
        return StockStatus.OUT_OF_STOCK
    if available <= low_stock_threshold:
        return StockStatus.LOW_STOCK
    return StockStatus.IN_STOCK
