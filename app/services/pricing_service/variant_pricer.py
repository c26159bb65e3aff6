from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Optional

from app.enums.offer_types import VariantOfferType, WindowStatus
from app.schemas.pricing import VariantOption
from app.services.pricing_service.time_window import window_status

ZERO = Decimal("0")
HUNDRED = Decimal("100")
_CENT = Decimal("0.01")
_WHOLE = Decimal("1")


# ===================== MONEY HELPERS =====================


def to_decimal(value: Any) -> Decimal:
    """
    Best-effort Decimal conversion for stored numbers.
    Anything unreadable (None, "", NaN, garbage) counts as zero.
    """
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        amount = value
    else:
        try:
            amount = Decimal(str(value))
        except (InvalidOperation, ValueError):
            return ZERO
    if not amount.is_finite():
        return ZERO
    return amount


def round_money(value: Any) -> Decimal:
    """Clamp to >= 0 and round half-up to 2 places."""
    amount = to_decimal(value)
    if amount < ZERO:
        amount = ZERO
    return amount.quantize(_CENT, rounding=ROUND_HALF_UP)


def percentage_off(amount: Any, percentage: Any) -> Decimal:
    """
    price=100, percentage=20 -> 80.00
    Out-of-range percentages are clamped to [0, 100].
    """
    base = to_decimal(amount)
    pct = min(max(to_decimal(percentage), ZERO), HUNDRED)
    return round_money(base - base * (pct / HUNDRED))


def fixed_off(amount: Any, value: Any) -> Decimal:
    """price=5, value=10 -> 0.00"""
    return round_money(to_decimal(amount) - max(to_decimal(value), ZERO))


# ===================== VARIANT OPTION PRICING =====================


def original_price_of(option: VariantOption) -> Decimal:
    """
    The undiscounted price of an option.

    Legacy records either lack original_price or store 0 after an offer
    was removed; the persisted price is the best-known original then.
    """
    original = option.original_price
    if original is None or (to_decimal(original) == ZERO and to_decimal(option.price) > ZERO):
        return to_decimal(option.price)
    return to_decimal(original)


def option_offer_status(option: VariantOption, now: datetime) -> Optional[WindowStatus]:
    """None when the option carries no inline offer at all."""
    if option.offer_type == VariantOfferType.none:
        return None
    return window_status(option.offer_window, now)


def effective_price(option: VariantOption, now: datetime) -> Decimal:
    original = original_price_of(option)

    if option.offer_type == VariantOfferType.none:
        return round_money(original)

    status = window_status(option.offer_window, now)
    if status in (WindowStatus.scheduled, WindowStatus.expired):
        return round_money(original)

    if option.offer_type == VariantOfferType.percentage:
        return percentage_off(original, option.offer_value)
    return fixed_off(original, option.offer_value)


def is_discounted(option: VariantOption, now: datetime) -> bool:
    return effective_price(option, now) < round_money(original_price_of(option))


def offer_description_label(option: VariantOption, now: Optional[datetime] = None) -> str:
    """
    Badge text such as "20%".

    Without `now` the stored price is compared with the stored original
    price; with `now` the price in effect at that instant is used.
    """
    if option.original_price is None:
        return ""
    original = to_decimal(option.original_price)
    price = effective_price(option, now) if now is not None else to_decimal(option.price)

    if original <= ZERO or original <= price:
        return ""

    percent = ((original - price) / original * HUNDRED).quantize(_WHOLE, rounding=ROUND_HALF_UP)
    return f"{percent}%"


def reprice_option(option: VariantOption, now: datetime) -> VariantOption:
    """
    Copy of `option` whose persisted price matches what it costs at `now`.
    Options without an offer lose their stale offer fields.
    """
    original = round_money(original_price_of(option))

    if option.offer_type == VariantOfferType.none:
        return option.model_copy(
            update={
                "price": original,
                "original_price": original,
                "offer_value": ZERO,
                "offer_window": None,
            }
        )

    priced = option.model_copy(update={"original_price": original})
    return priced.model_copy(update={"price": effective_price(priced, now)})
