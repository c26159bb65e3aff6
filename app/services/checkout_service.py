import logging
from datetime import datetime
from typing import Dict, List, Mapping, Optional, Sequence

from fastapi import HTTPException
from sqlalchemy.orm import Session

from app.core.config import settings
from app.schemas.cart import CartQuoteRequest, CartQuoteResponse
from app.schemas.pricing import BogoResult, Cart, CartLine, CartQuote, Coupon, Offer
from app.services import coupon_service, offer_service
from app.services.pricing_service.bulk_offer import find_option
from app.services.pricing_service.promotion_evaluator import (
    apply_bogo,
    apply_coupon,
    coupon_applies,
    evaluate,
)
from app.services.pricing_service.variant_pricer import ZERO, round_money
from app.services.product_service import get_product, product_pricing

logger = logging.getLogger(__name__)


def price_cart(
    cart: Cart,
    line_offers: Mapping[str, Sequence[Offer]],
    bogo_offers: Sequence[Offer],
    coupon: Optional[Coupon],
    now: datetime,
) -> CartQuote:
    """
    One checkout pass, all at the same `now`:
    per-line standalone offers, then BOGO rewards, then the coupon.
    BOGO discounts are taken from the line prices the first step produced.
    A unit discounted by one BOGO offer is not available to the next, and
    the coupon only sees what is left to pay on each line.
    """
    evaluations = [
        evaluate(line, line_offers.get(line.product_id, []), now)
        for line in cart.lines
    ]
    unit_prices = [e.unit_price for e in evaluations]

    claimed = [0] * len(cart.lines)
    remaining = [e.line_total for e in evaluations]
    bogo_results: List[BogoResult] = []
    for offer in bogo_offers:
        result = apply_bogo(cart, offer, now, unit_prices, claimed_units=claimed)
        if result.discount_total <= ZERO:
            continue
        for line in result.lines:
            claimed[line.line_index] += line.units
            remaining[line.line_index] = round_money(remaining[line.line_index] - line.discount)
        bogo_results.append(result)

    coupon_result = (
        apply_coupon(cart, coupon, now, unit_prices, line_amounts=remaining) if coupon else None
    )

    subtotal = round_money(sum((e.line_total for e in evaluations), ZERO))
    discount_total = round_money(
        sum((r.discount_total for r in bogo_results), ZERO)
        + (coupon_result.discount_total if coupon_result else ZERO)
    )

    return CartQuote(
        priced_at=now,
        lines=evaluations,
        bogo=bogo_results,
        coupon=coupon_result,
        subtotal=subtotal,
        discount_total=discount_total,
        total=round_money(subtotal - discount_total),
    )


def build_cart(db: Session, request: CartQuoteRequest) -> Cart:
    lines: List[CartLine] = []
    for item in request.items:
        product = get_product(db, item.product_id)
        if not product:
            raise HTTPException(status_code=404, detail=f"Product {item.product_id} not found")

        pricing = product_pricing(product)
        option = find_option(pricing, item.group_index, item.option_index)
        if option is None:
            raise HTTPException(
                status_code=404,
                detail=f"Product {item.product_id} has no option {item.group_index}/{item.option_index}",
            )

        lines.append(
            CartLine(
                product_id=item.product_id,
                option=option,
                quantity=item.quantity,
                variant_name=pricing.variants[item.group_index].name_en,
                variant_value=option.value_en,
            )
        )
    return Cart(lines=lines)


def quote_cart(db: Session, request: CartQuoteRequest, now: datetime) -> CartQuoteResponse:
    cart = build_cart(db, request)

    line_offers: Dict[str, List[Offer]] = {}
    for line in cart.lines:
        if line.product_id not in line_offers:
            line_offers[line.product_id] = offer_service.candidate_offers_for_product(db, line.product_id)

    coupon = None
    rejected: Optional[str] = None
    if request.coupon_code:
        coupon = coupon_service.resolve_coupon(db, request.coupon_code)
        if coupon is None:
            rejected = "Coupon not found"
        elif not coupon_applies(coupon, now):
            rejected = "Coupon is not active"
            coupon = None

    quote = price_cart(cart, line_offers, offer_service.active_bogo_offers(db), coupon, now)

    if coupon is not None and not quote.coupon.eligible_lines:
        rejected = "Coupon does not apply to any item in the cart"

    if rejected:
        logger.info("Coupon %s rejected: %s", request.coupon_code, rejected)

    logger.debug(
        "Quoted cart of %d lines: subtotal=%s discount=%s total=%s",
        len(cart.lines), quote.subtotal, quote.discount_total, quote.total,
    )
    return CartQuoteResponse(
        **quote.model_dump(),
        currency=settings.CURRENCY,
        coupon_rejected_reason=rejected,
    )
