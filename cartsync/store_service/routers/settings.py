# cartsync/store_service/routers/settings.py
from fastapi import APIRouter, Depends

from cartsync.store_service.state import StoreState, get_store

router = APIRouter(prefix="/settings", tags=["settings"])


@router.get("/public/store")
def public_store_settings(store: StoreState = Depends(get_store)):
    return {"storeName": "CartSync Dev Store", "currency": "USD", "taxRate": float(store.tax_rate)}
