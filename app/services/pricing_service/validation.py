from typing import Any, List, Mapping, Union

from pydantic import ValidationError

from app.enums.offer_types import BogoGetType, DiscountNature, OfferType, VariantOfferType
from app.schemas.pricing import Coupon, Offer, OfferSpec, TimeWindow, ValidationIssue
from app.services.pricing_service.time_window import as_utc
from app.services.pricing_service.variant_pricer import HUNDRED, ZERO, to_decimal


def _window_issues(window: TimeWindow, field: str = "window") -> List[ValidationIssue]:
    if window.start is not None and window.end is not None and as_utc(window.start) > as_utc(window.end):
        return [ValidationIssue(field=field, message="Start must not be after end.")]
    return []


def _parse_errors(exc: ValidationError) -> List[ValidationIssue]:
    return [
        ValidationIssue(
            field=".".join(str(part) for part in err["loc"]) or "__root__",
            message=err["msg"],
        )
        for err in exc.errors()
    ]


def validate_offer_spec(offer_spec: Union[OfferSpec, Mapping[str, Any]]) -> List[ValidationIssue]:
    """
    Check an inline offer before an admin save. Accepts the raw form
    payload too; an empty list means the offer can be saved.
    """
    if not isinstance(offer_spec, OfferSpec):
        try:
            offer_spec = OfferSpec.model_validate(dict(offer_spec))
        except ValidationError as exc:
            return _parse_errors(exc)

    issues: List[ValidationIssue] = []
    value = to_decimal(offer_spec.offer_value)

    if value < ZERO:
        issues.append(ValidationIssue(field="offer_value", message="Offer value cannot be negative."))
    if offer_spec.offer_type == VariantOfferType.percentage and value > HUNDRED:
        issues.append(
            ValidationIssue(field="offer_value", message="Percentage offers cannot exceed 100.")
        )

    issues.extend(_window_issues(offer_spec.window))
    return issues


def validate_offer(offer: Offer) -> List[ValidationIssue]:
    """Rules of the admin offer form, per offer type."""
    issues: List[ValidationIssue] = []
    value = to_decimal(offer.discount_value)

    if not offer.title_en.strip() and not offer.title_ar.strip():
        issues.append(ValidationIssue(field="title_en", message="An offer needs a title."))

    if offer.window.start is None or offer.window.end is None:
        issues.append(ValidationIssue(field="window", message="Start and end dates are required."))
    issues.extend(_window_issues(offer.window))

    if value < ZERO:
        issues.append(ValidationIssue(field="discount_value", message="Discount cannot be negative."))

    if offer.type in (OfferType.percentage_discount, OfferType.fixed_discount):
        if value <= ZERO:
            issues.append(ValidationIssue(field="discount_value", message="Discount must be greater than zero."))
        if offer.type == OfferType.percentage_discount and value > HUNDRED:
            issues.append(ValidationIssue(field="discount_value", message="Percentage discounts cannot exceed 100."))
        if not offer.target_product_ids:
            issues.append(
                ValidationIssue(field="target_product_ids", message="Select at least one product.")
            )

    elif offer.type == OfferType.bogo:
        if not offer.bogo_buy_product_id:
            issues.append(ValidationIssue(field="bogo_buy_product_id", message="Buy product is required."))
        if not offer.bogo_get_product_id:
            issues.append(ValidationIssue(field="bogo_get_product_id", message="Get product is required."))
        if offer.bogo_buy_quantity <= 0:
            issues.append(ValidationIssue(field="bogo_buy_quantity", message="Buy quantity must be at least 1."))
        if offer.bogo_get_quantity <= 0:
            issues.append(ValidationIssue(field="bogo_get_quantity", message="Get quantity must be at least 1."))
        if offer.bogo_get_type != BogoGetType.free and value <= ZERO:
            issues.append(
                ValidationIssue(field="discount_value", message="Discounted BOGO rewards need a value.")
            )
        if offer.bogo_get_type == BogoGetType.percentage_discount and value > HUNDRED:
            issues.append(ValidationIssue(field="discount_value", message="Percentage discounts cannot exceed 100."))

    elif offer.type == OfferType.coupon:
        if not (offer.coupon_code or "").strip():
            issues.append(ValidationIssue(field="coupon_code", message="Coupon code is required."))
        if value <= ZERO:
            issues.append(ValidationIssue(field="discount_value", message="Discount must be greater than zero."))
        if offer.discount_nature == DiscountNature.percentage and value > HUNDRED:
            issues.append(ValidationIssue(field="discount_value", message="Percentage discounts cannot exceed 100."))

    return issues


def validate_coupon(coupon: Coupon) -> List[ValidationIssue]:
    issues: List[ValidationIssue] = []
    value = to_decimal(coupon.value)

    if not coupon.code.strip():
        issues.append(ValidationIssue(field="code", message="Coupon code cannot be empty."))
    if value <= ZERO:
        issues.append(ValidationIssue(field="value", message="Coupon value must be greater than zero."))
    if coupon.discount_type == DiscountNature.percentage and value > HUNDRED:
        issues.append(ValidationIssue(field="value", message="Percentage coupons cannot exceed 100."))

    issues.extend(_window_issues(coupon.window))
    return issues
