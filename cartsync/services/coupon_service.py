# cartsync/services/coupon_service.py
from decimal import Decimal, InvalidOperation
from typing import Optional

from pydantic import ValidationError

from cartsync.domain.errors import InvalidCoupon, MalformedResponse, NetworkFailure, ServiceError
from cartsync.domain.schemas import AppliedCoupon, CouponResult, CouponRule, CouponType
from cartsync.services.api_client import StoreApiClient
from cartsync.utils.logging import get_logger
from cartsync.utils.settings import ALLOW_OFFLINE_COUPONS

logger = get_logger(__name__)

# Kody dzialajace gdy API kuponow jest niedostepne.
# Wylaczane przez ALLOW_OFFLINE_COUPONS=false.
OFFLINE_COUPONS = {
    "DISCOUNT10": CouponRule(
        code="DISCOUNT10",
        type=CouponType.PERCENTAGE,
        value=Decimal("10"),
        description="10% discount applied to your order!",
    ),
    "FREESHIP": CouponRule(
        code="FREESHIP",
        type=CouponType.SHIPPING,
        description="Free shipping applied to your order!",
    ),
    "FLASH25": CouponRule(
        code="FLASH25",
        type=CouponType.PERCENTAGE,
        value=Decimal("25"),
        max_discount=Decimal("200"),
        description="25% discount applied (max $200)!",
    ),
}

ALREADY_USED_MESSAGE = "You have already used this coupon"
LIMIT_REACHED_MESSAGE = "This coupon has reached its usage limit"
INVALID_CODE_MESSAGE = "Invalid coupon code. Please try another code."
UNSUPPORTED_COUPON_MESSAGE = "This coupon cannot be applied to your cart."


def _as_dict(payload, what: str) -> dict:
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise MalformedResponse(f"Unexpected {what} payload from coupon service", payload)
    return payload


def rejection_from_payload(payload, fallback: str) -> InvalidCoupon:
    """Odpowiedz 4xx serwisu kuponow -> InvalidCoupon z flaga powodu."""
    payload = payload if isinstance(payload, dict) else {}
    message = str(payload.get("message") or fallback)
    lowered = message.lower()

    already_used = bool(payload.get("alreadyUsed")) or "already used" in lowered
    limit_reached = bool(payload.get("limitReached")) or "usage limit" in lowered
    min_purchase = bool(payload.get("minPurchaseNotMet")) or "minimum purchase" in lowered

    if already_used and not payload.get("message"):
        message = ALREADY_USED_MESSAGE
    elif limit_reached and not payload.get("message"):
        message = LIMIT_REACHED_MESSAGE

    return InvalidCoupon(
        message,
        already_used=already_used,
        limit_reached=limit_reached,
        min_purchase_not_met=min_purchase,
    )


class CouponResolver:
    """
    Kod kuponu -> rabat.

    1. zalogowany: validate + apply na serwerze (serwer liczy uzycie)
    2. publiczny odczyt regul i rabat liczony lokalnie
    3. kody offline, gdy oba powyzsze zawioda
    """

    def __init__(self, api: StoreApiClient, allow_offline: bool = ALLOW_OFFLINE_COUPONS):
        self.api = api
        self.allow_offline = allow_offline

    def apply(
        self,
        code: str,
        subtotal: Decimal,
        shipping_cost: Decimal,
        authenticated: bool,
    ) -> CouponResult:
        code = (code or "").strip().upper()
        if not code:
            return CouponResult(valid=False, message="Coupon code is required")

        try:
            if authenticated:
                try:
                    return self._apply_on_server(code)
                except NetworkFailure as e:
                    logger.warning(f"Coupon API unavailable for {code}, using public validation: {e}")

            try:
                result = self._apply_public(code, subtotal, shipping_cost)
            except NetworkFailure as e:
                logger.warning(f"Public coupon lookup failed for {code}: {e}")
                result = None

            if result is None:
                result = self._apply_offline(code, subtotal, shipping_cost)
        except InvalidCoupon as e:
            logger.info(f"Coupon {code} rejected: {e.message}")
            return CouponResult(
                valid=False,
                message=e.message,
                already_used=e.already_used,
                limit_reached=e.limit_reached,
                min_purchase_not_met=e.min_purchase_not_met,
            )

        if result is None:
            return CouponResult(valid=False, message=INVALID_CODE_MESSAGE)
        return result

    def remove(self, applied: Optional[AppliedCoupon]) -> None:
        if applied is not None and applied.server_applied:
            self.api.delete("/coupons/remove")

    def _apply_on_server(self, code: str) -> CouponResult:
        try:
            validation = _as_dict(self.api.post("/coupons/validate", json={"code": code}), "validate")
        except ServiceError as e:
            if 400 <= e.status_code < 500:
                raise rejection_from_payload(e.payload, "Invalid coupon code") from e
            raise

        if not validation.get("valid"):
            raise rejection_from_payload(validation, "Invalid coupon code")

        try:
            applied = _as_dict(self.api.post("/coupons/apply", json={"code": code}), "apply")
        except ServiceError as e:
            if 400 <= e.status_code < 500:
                raise rejection_from_payload(e.payload, "Error applying coupon") from e
            raise

        amount = applied.get("discountAmount", applied.get("discount", 0)) or 0
        try:
            amount = Decimal(str(amount))
        except InvalidOperation as e:
            raise MalformedResponse(f"Unreadable discount amount {amount!r} for {code}", applied) from e
        logger.info(f"Coupon {code} applied on server, discount {amount}")

        return CouponResult(
            valid=True,
            discount=amount,
            message=applied.get("message") or "Coupon applied successfully",
            applied=AppliedCoupon(code=code, amount=amount, server_applied=True),
        )

    def _apply_public(self, code: str, subtotal: Decimal, shipping_cost: Decimal) -> Optional[CouponResult]:
        """None gdy serwer nie zna kodu (404) - wtedy probujemy kodow offline."""
        try:
            data = _as_dict(self.api.get(f"/coupons/public/{code}"), "public coupon")
        except ServiceError as e:
            if e.status_code == 404:
                return None
            if 400 <= e.status_code < 500:
                raise rejection_from_payload(e.payload, "Invalid coupon code") from e
            raise

        if not data.get("valid") or not data.get("coupon"):
            return None

        try:
            rule = CouponRule.model_validate(data["coupon"])
        except ValidationError as e:
            # np. typ kuponu, ktorego klient nie umie policzyc
            logger.warning(f"Unsupported coupon rules for {code}: {e.error_count()} errors")
            raise InvalidCoupon(UNSUPPORTED_COUPON_MESSAGE) from e
        return self._result_for_rule(rule, subtotal, shipping_cost, f"Coupon applied: {rule.description}")

    def _apply_offline(self, code: str, subtotal: Decimal, shipping_cost: Decimal) -> Optional[CouponResult]:
        if not self.allow_offline:
            return None
        rule = OFFLINE_COUPONS.get(code)
        if rule is None:
            return None
        logger.warning(f"Applying offline fallback coupon {code}")
        return self._result_for_rule(rule, subtotal, shipping_cost, rule.description)

    @staticmethod
    def _result_for_rule(rule: CouponRule, subtotal: Decimal, shipping_cost: Decimal, message: str) -> CouponResult:
        if subtotal < rule.min_purchase:
            raise InvalidCoupon(
                f"This coupon requires a minimum purchase of ${rule.min_purchase:.2f}",
                min_purchase_not_met=True,
            )

        discount = rule.discount_for(subtotal, shipping_cost)
        return CouponResult(
            valid=True,
            discount=discount,
            message=message,
            applied=AppliedCoupon(code=rule.code, amount=discount, rule=rule),
        )
