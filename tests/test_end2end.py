from datetime import datetime, timedelta
from decimal import Decimal
import uuid
import pytest
from fastapi import HTTPException
from app.enums.offer_types import OfferType, VariantOfferType, WindowStatus
from app.services.product_service import (
    create_product,
    get_product,
    get_price_history,
    get_product_pricing_view,
    sweep_expired_offers,
)
from app.services.offer_service import create_offer, offer_status
from app.services.coupon_service import create_coupon, list_coupons, toggle_coupon_status
from app.services.checkout_service import price_cart, quote_cart
from app.routes.products import bulk_offer, option_offer
from app.routes.pricing.calculate_price import calculate_price
from app.schemas.cart import CartItemRequest, CartQuoteRequest
from app.schemas.coupon import CouponCreate
from app.schemas.offer import OfferCreate
from app.schemas.pricing import Cart, CartLine, Coupon, Offer, OfferSpec, TimeWindow, VariantGroup, VariantOption
from app.schemas.product import OptionOfferRequest, ProductCreate
from app.models.product import Product
from app.models.price_history import PriceHistory

D = Decimal


class SimpleState:
    def __init__(self):
        self.metrics = {"requests": 0, "total_response_ms": 0.0, "price_evaluations": 0}


class SimpleApp:
    def __init__(self):
        self.state = SimpleState()


class SimpleReq:
    def __init__(self):
        self.app = SimpleApp()


def _create_test_product(db, prod_id=None, prices=("10", "25")):

    payload = ProductCreate(
        product_id=prod_id or f"PROD_E2E_{uuid.uuid4().hex[:6].upper()}",
        name_en="E2E Test Product",
        name_ar="منتج",
        category=["test"],
        variants=[
            VariantGroup(
                name_en="Size",
                options=[
                    VariantOption(value_en=f"Option {i}", price=D(p), original_price=D(p), quantity=10)
                    for i, p in enumerate(prices)
                ],
            )
        ],
    )
    return create_product(db, payload, now=datetime.utcnow())


def _window(days_before=1, days_after=1):
    now = datetime.utcnow()
    return TimeWindow(start=now - timedelta(days=days_before), end=now + timedelta(days=days_after))


@pytest.mark.order(1)
def test_create_product_service(db):

    created = _create_test_product(db)

    assert created is not None
    fetched = get_product(db, created.product_id)
    assert fetched is not None
    assert fetched.is_offer is False
    assert fetched.variants[0]["options"][1]["price"] == pytest.approx(25.0)

    with pytest.raises(HTTPException) as exc:
        _create_test_product(db, prod_id=created.product_id)
    assert exc.value.status_code == 400


@pytest.mark.order(2)
def test_bulk_offer_route_updates_prices_and_history(db):

    prod = _create_test_product(db)
    spec = OfferSpec(offer_type=VariantOfferType.percentage, offer_value=D("20"))

    updated = bulk_offer(prod.product_id, spec, db=db)
    assert updated.is_offer is True
    prices = [o["price"] for o in updated.variants[0]["options"]]
    assert prices == [pytest.approx(8.0), pytest.approx(20.0)]

    # same save again does not compound
    again = bulk_offer(prod.product_id, spec, db=db)
    assert [o["price"] for o in again.variants[0]["options"]] == prices

    items, total = get_price_history(db, prod.product_id)
    assert total == 2
    assert {item.reason for item in items} == {"bulk_offer"}

    view = get_product_pricing_view(db, prod.product_id, now=datetime.utcnow())
    assert [o.offer_label for o in view.options] == ["20%", "20%"]
    assert view.options[0].effective_price == D("8.00")


@pytest.mark.order(3)
def test_invalid_bulk_offer_rejected(db):

    prod = _create_test_product(db)
    spec = OfferSpec(offer_type=VariantOfferType.percentage, offer_value=D("150"))

    with pytest.raises(HTTPException) as exc:
        bulk_offer(prod.product_id, spec, db=db)
    assert exc.value.status_code == 422
    assert exc.value.detail["errors"][0]["field"] == "offer_value"

    with pytest.raises(HTTPException) as missing:
        bulk_offer("NO_SUCH_PRODUCT", OfferSpec(), db=db)
    assert missing.value.status_code == 404


@pytest.mark.order(4)
def test_single_option_offer_route(db):

    prod = _create_test_product(db)
    request = OptionOfferRequest(offer_type=VariantOfferType.fixed, offer_value=D("5"))

    updated = option_offer(prod.product_id, 0, 1, request, db=db)
    options = updated.variants[0]["options"]
    assert options[0]["price"] == pytest.approx(10.0)
    assert options[1]["price"] == pytest.approx(20.0)

    with pytest.raises(HTTPException) as exc:
        option_offer(prod.product_id, 0, 7, request, db=db)
    assert exc.value.status_code == 404


@pytest.mark.order(5)
def test_calculate_price_route_picks_best_offer(db):

    prod = _create_test_product(db, prices=("20",))
    for offer_type, value in ((OfferType.percentage_discount, "10"), (OfferType.fixed_discount, "2")):
        create_offer(
            db,
            OfferCreate(
                title_en=f"{offer_type.value} deal",
                type=offer_type,
                discount_value=D(value),
                target_product_ids=[prod.product_id],
                window=_window(),
            ),
        )

    req = SimpleReq()
    result = calculate_price(prod.product_id, req, group_index=0, option_index=0, quantity=3, db=db)

    assert result["unit_price"] == pytest.approx(18.0)
    assert result["line_total"] == pytest.approx(54.0)
    assert result["applied_offer"]["type"] == OfferType.percentage_discount.value
    assert req.app.state.metrics["price_evaluations"] == 1

    with pytest.raises(HTTPException) as exc:
        calculate_price(prod.product_id, req, quantity=0, db=db)
    assert exc.value.status_code == 400


@pytest.mark.order(6)
def test_offer_status_follows_window(db):

    row = create_offer(
        db,
        OfferCreate(
            title_en="Next week",
            type=OfferType.fixed_discount,
            discount_value=D("3"),
            target_product_ids=["ANY"],
            window=_window(days_before=-7, days_after=14),
        ),
    )
    now = datetime.utcnow()
    assert offer_status(row, now).window_status == WindowStatus.scheduled
    assert offer_status(row, now).live is False
    assert offer_status(row, now + timedelta(days=8)).live is True

    with pytest.raises(HTTPException) as exc:
        create_offer(db, OfferCreate(title_en="", type=OfferType.fixed_discount, window=_window()))
    assert exc.value.status_code == 422


@pytest.mark.order(7)
def test_cart_quote_with_bogo_and_coupon(db):

    tea = _create_test_product(db, prices=("10",))
    cup = _create_test_product(db, prices=("4",))

    create_offer(
        db,
        OfferCreate(
            title_en="Buy 2 tea get a cup",
            type=OfferType.bogo,
            bogo_buy_product_id=tea.product_id,
            bogo_buy_quantity=2,
            bogo_get_product_id=cup.product_id,
            bogo_get_quantity=1,
            window=_window(),
        ),
    )
    code = f"SAVE{uuid.uuid4().hex[:4].upper()}"
    create_coupon(
        db,
        CouponCreate(code=code.lower(), discount_type="percentage", value=D("10"), target_product_ids=[tea.product_id]),
    )

    request = CartQuoteRequest(
        items=[
            CartItemRequest(product_id=tea.product_id, quantity=4),
            CartItemRequest(product_id=cup.product_id, quantity=3),
        ],
        coupon_code=code,
    )
    quote = quote_cart(db, request, now=datetime.utcnow())

    assert quote.subtotal == D("52.00")
    assert quote.bogo[0].eligible_units == 2
    assert quote.bogo[0].discount_total == D("8.00")
    assert quote.coupon.eligible_lines == [0]
    assert quote.coupon.discount_total == D("4.00")
    assert quote.total == D("40.00")
    assert quote.coupon_rejected_reason is None


@pytest.mark.order(8)
def test_cart_quote_reports_rejected_coupon(db):

    prod = _create_test_product(db, prices=("10",))
    code = f"OFF{uuid.uuid4().hex[:4].upper()}"
    create_coupon(db, CouponCreate(code=code, discount_type="fixed", value=D("3")))
    toggle_coupon_status(db, code)

    request = CartQuoteRequest(items=[CartItemRequest(product_id=prod.product_id)], coupon_code=code)
    quote = quote_cart(db, request, now=datetime.utcnow())
    assert quote.coupon is None
    assert quote.coupon_rejected_reason == "Coupon is not active"
    assert quote.total == D("10.00")

    unknown = quote_cart(
        db, CartQuoteRequest(items=request.items, coupon_code="NOPE"), now=datetime.utcnow()
    )
    assert unknown.coupon_rejected_reason == "Coupon not found"
    assert code not in [row.code for row in list_coupons(db, datetime.utcnow())]

    with pytest.raises(HTTPException) as exc:
        create_coupon(db, CouponCreate(code=code, value=D("5")))
    assert exc.value.status_code == 400


@pytest.mark.order(9)
def test_sweep_clears_expired_inline_offers(db):

    prod = _create_test_product(db)
    spec = OfferSpec(
        offer_type=VariantOfferType.fixed,
        offer_value=D("1"),
        window=_window(days_before=1, days_after=1),
    )
    bulk_offer(prod.product_id, spec, db=db)
    assert get_product(db, prod.product_id).is_offer is True

    changed = sweep_expired_offers(db, now=datetime.utcnow() + timedelta(days=2))
    assert changed >= 1

    swept = db.query(Product).filter(Product.product_id == prod.product_id).first()
    assert swept.is_offer is False
    options = swept.variants[0]["options"]
    assert [o["offer_type"] for o in options] == ["none", "none"]
    assert [o["price"] for o in options] == [pytest.approx(10.0), pytest.approx(25.0)]


def _buy_a_get_b(offer_id):
    return Offer(
        offer_id=offer_id,
        title_en="Buy A get B",
        type=OfferType.bogo,
        bogo_buy_product_id="A",
        bogo_buy_quantity=1,
        bogo_get_product_id="B",
        bogo_get_quantity=1,
    )


def _a_and_b_cart():
    return Cart(
        lines=[
            CartLine(product_id=pid, option=VariantOption(value_en=pid, price=D("10"), original_price=D("10")))
            for pid in ("A", "B")
        ]
    )


@pytest.mark.order(10)
def test_coupon_only_discounts_what_bogo_left_to_pay():

    coupon = Coupon(code="HALF", discount_type="percentage", value=D("50"))
    quote = price_cart(_a_and_b_cart(), {}, [_buy_a_get_b("BOGO_1")], coupon, datetime.utcnow())

    assert quote.subtotal == D("20.00")
    assert quote.bogo[0].discount_total == D("10.00")
    assert quote.coupon.discount_total == D("5.00")
    assert quote.total == D("5.00")


@pytest.mark.order(11)
def test_overlapping_bogo_offers_share_the_reward_units():

    offers = [_buy_a_get_b("BOGO_1"), _buy_a_get_b("BOGO_2")]
    quote = price_cart(_a_and_b_cart(), {}, offers, None, datetime.utcnow())

    assert [r.offer_id for r in quote.bogo] == ["BOGO_1"]
    assert quote.discount_total == D("10.00")
    assert quote.total == D("10.00")


@pytest.mark.order(12)
def test_price_history_tracks_options_with_the_same_label(db):

    prod = create_product(
        db,
        ProductCreate(
            product_id=f"TWIN_{uuid.uuid4().hex[:6].upper()}",
            name_en="Twin labels",
            variants=[
                VariantGroup(
                    name_en="Size",
                    options=[
                        VariantOption(value_en="Pack", price=D("10"), original_price=D("10")),
                        VariantOption(value_en="Pack", price=D("20"), original_price=D("20")),
                    ],
                )
            ],
        ),
        now=datetime.utcnow(),
    )
    bulk_offer(prod.product_id, OfferSpec(offer_type=VariantOfferType.percentage, offer_value=D("50")), db=db)

    rows = db.query(PriceHistory).filter(PriceHistory.product_id == prod.product_id).all()
    assert sorted((r.old_price, r.new_price) for r in rows) == [(10.0, 5.0), (20.0, 10.0)]
