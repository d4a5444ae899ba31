# cartsync/store_service/routers/wishlist.py
from fastapi import APIRouter, Depends, HTTPException

from cartsync.store_service.schemas import WishlistItemIn
from cartsync.store_service.state import StoreState, current_user, get_store

router = APIRouter(prefix="/wishlist", tags=["wishlist"])


@router.get("")
def get_wishlist(user_id: str = Depends(current_user), store: StoreState = Depends(get_store)):
    return store.wishlist(user_id)


@router.post("")
def add_to_wishlist(payload: WishlistItemIn, user_id: str = Depends(current_user), store: StoreState = Depends(get_store)):
    entries = store.wishlist(user_id)
    if any(e["productId"] == payload.product_id for e in entries):
        raise HTTPException(status_code=409, detail="Product already in wishlist")

    product = store.product_or_404(payload.product_id)
    entry = {"_id": store.next_id("w"), "productId": payload.product_id, "product": store.snapshot(product)}
    entries.append(entry)
    return entry


@router.delete("/{entry_id}")
def remove_from_wishlist(entry_id: str, user_id: str = Depends(current_user), store: StoreState = Depends(get_store)):
    entries = store.wishlist(user_id)
    entry = next((e for e in entries if e["_id"] == entry_id), None)
    if entry is None:
        raise HTTPException(status_code=404, detail="Wishlist entry not found")
    entries.remove(entry)
    return {"message": "Removed from wishlist"}


@router.delete("")
def clear_wishlist(user_id: str = Depends(current_user), store: StoreState = Depends(get_store)):
    store.wishlists[user_id] = []
    return {"message": "Wishlist cleared"}
