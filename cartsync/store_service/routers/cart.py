# cartsync/store_service/routers/cart.py
from fastapi import APIRouter, Depends, HTTPException

from cartsync.store_service.schemas import CartItemIn, CartItemUpdate, MoveToCartIn
from cartsync.store_service.state import StoreState, current_user, get_store

router = APIRouter(prefix="/cart", tags=["cart"])


def _find(lines, item_id: str) -> dict:
    line = next((line for line in lines if line["_id"] == item_id), None)
    if line is None:
        raise HTTPException(status_code=404, detail="Cart item not found")
    return line


def _merge_into(store: StoreState, lines, product_id, quantity, size, color) -> None:
    for line in lines:
        if (line["productId"], line["size"], line["color"]) == (product_id, size, color):
            line["quantity"] += quantity
            return

    product = store.product_or_404(product_id)
    lines.append(
        {
            "_id": store.next_id("ci"),
            "productId": product_id,
            "quantity": quantity,
            "size": size,
            "color": color,
            "product": store.snapshot(product),
        }
    )


@router.get("")
def get_cart(user_id: str = Depends(current_user), store: StoreState = Depends(get_store)):
    return {"items": store.cart(user_id)}


@router.get("/details")
def get_cart_details(user_id: str = Depends(current_user), store: StoreState = Depends(get_store)):
    return {
        "items": store.cart(user_id),
        "appliedCoupon": store.applied_coupons.get(user_id),
    }


@router.get("/saved")
def get_saved(user_id: str = Depends(current_user), store: StoreState = Depends(get_store)):
    return {"items": store.saved_items(user_id)}


@router.post("")
def add_item(payload: CartItemIn, user_id: str = Depends(current_user), store: StoreState = Depends(get_store)):
    product = store.product_or_404(payload.product_id)
    if not product.get("inStock", True):
        raise HTTPException(status_code=400, detail="Product is out of stock")

    lines = store.cart(user_id)
    _merge_into(store, lines, payload.product_id, payload.quantity, payload.size, payload.color)
    return {"items": lines}


@router.put("/{item_id}")
def update_item(
    item_id: str,
    payload: CartItemUpdate,
    user_id: str = Depends(current_user),
    store: StoreState = Depends(get_store),
):
    lines = store.cart(user_id)
    line = _find(lines, item_id)
    size = payload.size or line["size"]
    color = payload.color or line["color"]

    twin = next(
        (
            other
            for other in lines
            if other is not line and (other["productId"], other["size"], other["color"]) == (line["productId"], size, color)
        ),
        None,
    )
    if twin is not None:
        # zmiana wariantu na juz istniejacy -> jedna pozycja
        twin["quantity"] += payload.quantity
        lines.remove(line)
    else:
        line.update(quantity=payload.quantity, size=size, color=color)
    return {"items": lines}


@router.delete("/{item_id}")
def remove_item(item_id: str, user_id: str = Depends(current_user), store: StoreState = Depends(get_store)):
    lines = store.cart(user_id)
    lines.remove(_find(lines, item_id))
    return {"items": lines}


@router.delete("")
def clear_cart(user_id: str = Depends(current_user), store: StoreState = Depends(get_store)):
    store.carts[user_id] = []
    store.applied_coupons.pop(user_id, None)
    return {"items": []}


@router.post("/save-for-later/{item_id}")
def save_for_later(item_id: str, user_id: str = Depends(current_user), store: StoreState = Depends(get_store)):
    lines = store.cart(user_id)
    line = _find(lines, item_id)
    lines.remove(line)
    store.saved_items(user_id).append(line)
    return {"items": lines, "savedItems": store.saved_items(user_id)}


@router.post("/move-to-cart/{item_id}")
def move_to_cart(
    item_id: str,
    payload: MoveToCartIn,
    user_id: str = Depends(current_user),
    store: StoreState = Depends(get_store),
):
    saved = store.saved_items(user_id)
    line = _find(saved, item_id)
    saved.remove(line)

    lines = store.cart(user_id)
    quantity = payload.quantity or line["quantity"]
    _merge_into(store, lines, line["productId"], quantity, line["size"], line["color"])
    return {"items": lines, "savedItems": saved}
