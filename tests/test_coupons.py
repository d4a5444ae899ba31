from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from cartsync.domain.errors import NetworkFailure, ServiceError
from cartsync.domain.schemas import AppliedCoupon
from cartsync.services.coupon_service import INVALID_CODE_MESSAGE, UNSUPPORTED_COUPON_MESSAGE, CouponResolver

SUBTOTAL = Decimal("80")
SHIPPING = Decimal("5.99")


@pytest.fixture
def api():
    return MagicMock()


def test_code_is_required(api):
    result = CouponResolver(api).apply("  ", SUBTOTAL, SHIPPING, authenticated=False)

    assert result.valid is False
    api.get.assert_not_called()


def test_server_validate_and_apply_when_authenticated(api):
    api.post.side_effect = [
        {"valid": True},
        {"discountAmount": 12, "message": "Coupon applied"},
    ]

    result = CouponResolver(api).apply("welcome15", SUBTOTAL, SHIPPING, authenticated=True)

    assert result.valid is True
    assert result.discount == Decimal("12")
    assert result.applied.server_applied is True
    assert result.applied.code == "WELCOME15"
    api.post.assert_any_call("/coupons/validate", json={"code": "WELCOME15"})


@pytest.mark.parametrize(
    "payload, flag",
    [
        ({"message": "You have already used this coupon", "alreadyUsed": True}, "already_used"),
        ({"message": "This coupon has reached its usage limit"}, "limit_reached"),
        ({"message": "This coupon requires a minimum purchase of $50.00", "minPurchaseNotMet": True}, "min_purchase_not_met"),
    ],
)
def test_server_rejection_reasons(api, payload, flag):
    api.post.side_effect = ServiceError(400, payload)

    result = CouponResolver(api).apply("X", SUBTOTAL, SHIPPING, authenticated=True)

    assert result.valid is False
    assert getattr(result, flag) is True
    assert result.message == payload["message"]


def test_public_rules_used_when_coupon_api_down(api):
    api.post.side_effect = NetworkFailure("down")
    api.get.return_value = {
        "valid": True,
        "coupon": {"code": "SAVE20", "type": "fixed", "value": 20, "minPurchase": 50, "description": "$20 off"},
    }

    result = CouponResolver(api).apply("SAVE20", SUBTOTAL, SHIPPING, authenticated=True)

    assert result.valid is True
    assert result.discount == Decimal("20")
    assert result.applied.rule.min_purchase == Decimal("50")
    assert result.applied.server_applied is False


def test_public_rules_min_purchase_not_met(api):
    api.get.return_value = {
        "valid": True,
        "coupon": {"code": "SAVE20", "type": "fixed", "value": 20, "minPurchase": 100},
    }

    result = CouponResolver(api).apply("SAVE20", SUBTOTAL, SHIPPING, authenticated=False)

    assert result.valid is False
    assert result.min_purchase_not_met is True


def test_offline_code_when_everything_is_down(api):
    api.get.side_effect = NetworkFailure("down")

    result = CouponResolver(api, allow_offline=True).apply("discount10", SUBTOTAL, SHIPPING, authenticated=False)

    assert result.valid is True
    assert result.discount == Decimal("8")


def test_offline_code_for_unknown_public_code(api):
    api.get.side_effect = ServiceError(404, {"detail": "Invalid coupon code"})

    result = CouponResolver(api, allow_offline=True).apply("FREESHIP", SUBTOTAL, SHIPPING, authenticated=False)

    assert result.valid is True
    assert result.discount == SHIPPING


def test_offline_codes_can_be_disabled(api):
    api.get.side_effect = NetworkFailure("down")

    result = CouponResolver(api, allow_offline=False).apply("DISCOUNT10", SUBTOTAL, SHIPPING, authenticated=False)

    assert result.valid is False
    assert result.message == INVALID_CODE_MESSAGE


def test_flash25_capped_at_200(api):
    api.get.side_effect = NetworkFailure("down")

    result = CouponResolver(api).apply("FLASH25", Decimal("1000"), Decimal("0"), authenticated=False)

    assert result.discount == Decimal("200")


def test_remove_only_calls_server_for_server_coupons(api):
    resolver = CouponResolver(api)

    resolver.remove(AppliedCoupon(code="DISCOUNT10"))
    api.delete.assert_not_called()

    resolver.remove(AppliedCoupon(code="WELCOME15", server_applied=True))
    api.delete.assert_called_once_with("/coupons/remove")


def test_unknown_coupon_type_is_invalid(api):
    api.get.return_value = {"valid": True, "coupon": {"code": "BOGO", "type": "bogo", "value": 1}}

    result = CouponResolver(api).apply("BOGO", SUBTOTAL, SHIPPING, authenticated=False)

    assert result.valid is False
    assert result.message == UNSUPPORTED_COUPON_MESSAGE


def test_unreadable_server_discount_falls_back_to_public_rules(api):
    api.post.side_effect = [{"valid": True}, {"discountAmount": "lots"}]
    api.get.return_value = {"valid": True, "coupon": {"code": "WELCOME15", "type": "percentage", "value": 15}}

    result = CouponResolver(api).apply("WELCOME15", SUBTOTAL, SHIPPING, authenticated=True)

    assert result.valid is True
    assert result.discount == Decimal("12")
    assert result.applied.server_applied is False


def test_unexpected_validate_payload_falls_back_to_public_rules(api):
    api.post.return_value = ["not", "a", "dict"]
    api.get.return_value = {"valid": True, "coupon": {"code": "SAVE20", "type": "fixed", "value": 20}}

    result = CouponResolver(api).apply("SAVE20", SUBTOTAL, SHIPPING, authenticated=True)

    assert result.valid is True
    assert result.discount == Decimal("20")
