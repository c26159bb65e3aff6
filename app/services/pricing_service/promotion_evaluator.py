from datetime import datetime
from decimal import Decimal
from typing import Iterable, List, Optional, Sequence, Tuple

from app.enums.offer_types import BogoGetType, DiscountNature, OfferType
from app.schemas.pricing import (
    BogoLineDiscount,
    BogoResult,
    Cart,
    CartLine,
    Coupon,
    CouponLineDiscount,
    CouponResult,
    LineEvaluation,
    Offer,
    OfferRef,
)
from app.services.pricing_service.time_window import as_utc, is_live
from app.services.pricing_service.variant_pricer import (
    ZERO,
    effective_price,
    fixed_off,
    percentage_off,
    round_money,
    to_decimal,
)

# Per-line offers; bogo and coupon work on the whole cart.
LINE_OFFER_TYPES = (OfferType.percentage_discount, OfferType.fixed_discount)

# Tie-break between offers that land on the same unit price.
_TYPE_PRECEDENCE = {
    OfferType.percentage_discount: 0,
    OfferType.fixed_discount: 1,
}


# ===================== SINGLE LINE =====================


def offer_unit_price(baseline: Decimal, offer: Offer) -> Decimal:
    if offer.type == OfferType.percentage_discount:
        return percentage_off(baseline, offer.discount_value)
    return fixed_off(baseline, offer.discount_value)


def eligible_line_offers(
    offers: Iterable[Offer],
    product_id: str,
    now: datetime,
) -> List[Offer]:
    """
    Offers that may discount a single line right now. Callers usually
    pre-filter by product; the checks are repeated so a loose candidate
    list can never discount the wrong product.
    """
    return [
        offer
        for offer in offers
        if offer.type in LINE_OFFER_TYPES
        and offer.is_active
        and product_id in offer.target_product_ids
        and is_live(offer.window, now)
    ]


def _start_key(offer: Offer) -> Tuple[int, Optional[datetime]]:
    # An open start sorts before any dated start.
    if offer.window.start is None:
        return (0, None)
    return (1, as_utc(offer.window.start))


def evaluate(
    cart_line: CartLine,
    candidate_offers: Sequence[Offer],
    now: datetime,
) -> LineEvaluation:
    """
    Price one cart line.

    1. baseline = the option's effective price (inline offer included)
    2. keep standalone percentage/fixed offers that are live at `now`
    3. pick the lowest resulting unit price; ties go to percentage offers,
       then to the earliest start, then to the first candidate
    4. the chosen discount stacks on the baseline
    """
    option = cart_line.option
    baseline = effective_price(option, now)

    best = None
    for index, offer in enumerate(eligible_line_offers(candidate_offers, cart_line.product_id, now)):
        price = offer_unit_price(baseline, offer)
        key = (price, _TYPE_PRECEDENCE[offer.type], _start_key(offer), index)
        if best is None or key < best[0]:
            best = (key, offer, price)

    applied_offer = None
    unit_price = baseline
    if best is not None:
        _, offer, unit_price = best
        applied_offer = OfferRef(
            offer_id=offer.offer_id,
            title=offer.title,
            type=offer.type,
            discount_applied=round_money(baseline - unit_price),
        )

    if option.original_price is not None and to_decimal(option.original_price) > ZERO:
        reference = to_decimal(option.original_price)
    else:
        reference = baseline

    return LineEvaluation(
        product_id=cart_line.product_id,
        quantity=cart_line.quantity,
        baseline=baseline,
        unit_price=round_money(unit_price),
        line_total=round_money(unit_price * cart_line.quantity),
        savings=round_money(reference - unit_price),
        applied_offer=applied_offer,
    )


# ===================== CART LEVEL =====================


def _unit_prices(cart: Cart, now: datetime, unit_prices: Optional[Sequence[Decimal]]) -> List[Decimal]:
    if unit_prices is not None:
        if len(unit_prices) != len(cart.lines):
            raise ValueError("unit_prices must have one entry per cart line")
        return [round_money(p) for p in unit_prices]
    return [effective_price(line.option, now) for line in cart.lines]


def _claimed(cart: Cart, claimed_units: Optional[Sequence[int]]) -> List[int]:
    if claimed_units is None:
        return [0] * len(cart.lines)
    if len(claimed_units) != len(cart.lines):
        raise ValueError("claimed_units must have one entry per cart line")
    return [max(int(units), 0) for units in claimed_units]


def _bogo_get_price(unit_price: Decimal, offer: Offer) -> Decimal:
    if offer.bogo_get_type == BogoGetType.free:
        return ZERO
    if offer.bogo_get_type == BogoGetType.percentage_discount:
        return percentage_off(unit_price, offer.discount_value)
    return fixed_off(unit_price, offer.discount_value)


def apply_bogo(
    cart: Cart,
    offer: Offer,
    now: datetime,
    unit_prices: Optional[Sequence[Decimal]] = None,
    claimed_units: Optional[Sequence[int]] = None,
) -> BogoResult:
    """
    Buy X Get Y over the whole cart.

    Every complete multiple of `bogo_buy_quantity` units of the buy product
    unlocks `bogo_get_quantity` discounted units of the get product, capped
    by how many get-product units the cart holds. Unlocked units are
    handed out to get-product lines in cart order.

    `unit_prices` lets the caller price lines after standalone offers;
    by default each line's effective price is used. `claimed_units` holds,
    per line, units an earlier reward already discounted; those units are
    never handed out again.
    """
    result = BogoResult(offer_id=offer.offer_id)

    if offer.type != OfferType.bogo or not offer.is_active or not is_live(offer.window, now):
        return result
    if not offer.bogo_buy_product_id or not offer.bogo_get_product_id:
        return result
    if offer.bogo_buy_quantity <= 0 or offer.bogo_get_quantity <= 0:
        return result

    prices = _unit_prices(cart, now, unit_prices)
    claimed = _claimed(cart, claimed_units)
    open_units = [max(line.quantity - claimed[i], 0) for i, line in enumerate(cart.lines)]

    buy_units = sum(
        line.quantity for line in cart.lines if line.product_id == offer.bogo_buy_product_id
    )
    get_units = sum(
        open_units[i] for i, line in enumerate(cart.lines) if line.product_id == offer.bogo_get_product_id
    )
    applications = buy_units // offer.bogo_buy_quantity
    eligible = min(applications * offer.bogo_get_quantity, get_units)

    remaining = eligible
    line_discounts: List[BogoLineDiscount] = []
    total = ZERO
    for index, line in enumerate(cart.lines):
        if remaining <= 0:
            break
        if line.product_id != offer.bogo_get_product_id or open_units[index] <= 0:
            continue

        units = min(open_units[index], remaining)
        remaining -= units

        per_unit = prices[index] - _bogo_get_price(prices[index], offer)
        discount = round_money(per_unit * units)
        total += discount
        line_discounts.append(BogoLineDiscount(line_index=index, units=units, discount=discount))

    return result.model_copy(
        update={
            "buy_units": buy_units,
            "applications": applications,
            "eligible_units": eligible,
            "lines": line_discounts,
            "discount_total": round_money(total),
        }
    )


def coupon_applies(coupon: Coupon, now: datetime) -> bool:
    return coupon.active and is_live(coupon.window, now)


def apply_coupon(
    cart: Cart,
    coupon: Coupon,
    now: datetime,
    unit_prices: Optional[Sequence[Decimal]] = None,
    line_amounts: Optional[Sequence[Decimal]] = None,
) -> CouponResult:
    """
    Discount every eligible line by the coupon's percentage or fixed amount.

    A coupon without target products is site-wide. A fixed amount comes off
    each eligible line and never exceeds that line's total.

    `line_amounts` replaces `unit price × quantity` as the amount still
    payable on each line, e.g. after BOGO rewards took their share.
    """
    result = CouponResult(code=coupon.code)
    if not coupon_applies(coupon, now):
        return result

    prices = _unit_prices(cart, now, unit_prices)
    if line_amounts is not None and len(line_amounts) != len(cart.lines):
        raise ValueError("line_amounts must have one entry per cart line")
    targets = set(coupon.target_product_ids)

    eligible: List[int] = []
    line_discounts: List[CouponLineDiscount] = []
    total = ZERO
    for index, line in enumerate(cart.lines):
        if targets and line.product_id not in targets:
            continue
        eligible.append(index)

        if line_amounts is not None:
            line_total = round_money(line_amounts[index])
        else:
            line_total = round_money(prices[index] * line.quantity)
        if coupon.discount_type == DiscountNature.percentage:
            discount = line_total - percentage_off(line_total, coupon.value)
        else:
            discount = min(max(to_decimal(coupon.value), ZERO), line_total)
        discount = round_money(discount)

        total += discount
        line_discounts.append(CouponLineDiscount(line_index=index, discount=discount))

    return result.model_copy(
        update={
            "eligible_lines": eligible,
            "line_discounts": line_discounts,
            "discount_total": round_money(total),
        }
    )
