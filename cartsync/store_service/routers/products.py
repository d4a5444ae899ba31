# cartsync/store_service/routers/products.py
from typing import Optional

from fastapi import APIRouter, Depends

from cartsync.services.product_client import ProductClient
from cartsync.store_service.state import StoreState, get_store

router = APIRouter(prefix="/products", tags=["products"])


@router.get("/{product_id}")
def get_product(product_id: str, store: StoreState = Depends(get_store)):
    return store.product_or_404(product_id)


@router.get("/{product_id}/inventory")
def get_inventory(
    product_id: str,
    size: Optional[str] = None,
    color: Optional[str] = None,
    quantity: int = 1,
    store: StoreState = Depends(get_store),
):
    product = store.product_or_404(product_id)
    # ta sama ocena dostepnosci co po stronie klienta
    check = ProductClient._evaluate(product, size, color, quantity)
    return {
        "available": check.available,
        "availableQuantity": check.available_quantity,
        "message": check.message,
    }
