# cartsync/store_service/routers/coupons.py
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from pydantic import TypeAdapter

from cartsync.domain.schemas import CartLineItem, CouponRule
from cartsync.domain.totals import calculate_shipping, calculate_subtotal
from cartsync.store_service.schemas import CouponCodeIn
from cartsync.store_service.state import PUBLIC_COUPON_FIELDS, StoreState, current_user, get_store

router = APIRouter(prefix="/coupons", tags=["coupons"])

_lines_adapter = TypeAdapter(List[CartLineItem])


def _rejection(message: str, **flags) -> JSONResponse:
    return JSONResponse(status_code=400, content={"valid": False, "message": message, **flags})


def _coupon_or_404(store: StoreState, code: str) -> dict:
    coupon = store.coupons.get(code.upper())
    if coupon is None:
        raise HTTPException(status_code=404, detail="Invalid coupon code")
    return coupon


def _rule(coupon: dict) -> CouponRule:
    return CouponRule.model_validate({k: coupon.get(k) for k in PUBLIC_COUPON_FIELDS})


def _check(store: StoreState, coupon: dict, user_id: str):
    """None gdy kupon mozna uzyc, inaczej gotowa odpowiedz 400."""
    used_by = store.coupon_usage[coupon["code"]]
    if coupon.get("perUser") and user_id in used_by:
        return _rejection("You have already used this coupon", alreadyUsed=True)

    limit = coupon.get("usageLimit")
    if limit is not None and len(used_by) >= limit:
        return _rejection("This coupon has reached its usage limit", limitReached=True)

    subtotal = calculate_subtotal(_lines_adapter.validate_python(store.cart(user_id)))
    rule = _rule(coupon)
    if subtotal < rule.min_purchase:
        return _rejection(
            f"This coupon requires a minimum purchase of ${rule.min_purchase:.2f}",
            minPurchaseNotMet=True,
        )
    return None


@router.post("/validate")
def validate_coupon(payload: CouponCodeIn, user_id: str = Depends(current_user), store: StoreState = Depends(get_store)):
    coupon = _coupon_or_404(store, payload.code)
    rejection = _check(store, coupon, user_id)
    if rejection is not None:
        return rejection
    return {"valid": True, "coupon": {k: coupon.get(k) for k in PUBLIC_COUPON_FIELDS}}


@router.post("/apply")
def apply_coupon(payload: CouponCodeIn, user_id: str = Depends(current_user), store: StoreState = Depends(get_store)):
    coupon = _coupon_or_404(store, payload.code)
    rejection = _check(store, coupon, user_id)
    if rejection is not None:
        return rejection

    subtotal = calculate_subtotal(_lines_adapter.validate_python(store.cart(user_id)))
    discount = _rule(coupon).discount_for(subtotal, calculate_shipping(subtotal))

    store.coupon_usage[coupon["code"]].append(user_id)
    store.applied_coupons[user_id] = {"code": coupon["code"], "discountAmount": float(discount)}
    return {
        "message": f"Coupon applied: {coupon['description']}",
        "discountAmount": float(discount),
    }


@router.get("/public/{code}")
def public_coupon(code: str, store: StoreState = Depends(get_store)):
    coupon = _coupon_or_404(store, code)
    return {"valid": True, "coupon": {k: coupon.get(k) for k in PUBLIC_COUPON_FIELDS}}


@router.delete("/remove")
def remove_coupon(user_id: str = Depends(current_user), store: StoreState = Depends(get_store)):
    store.applied_coupons.pop(user_id, None)
    return {"message": "Coupon removed"}
