from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from app.enums.offer_types import VariantOfferType
from app.schemas.pricing import OfferSpec, ProductPricing, TimeWindow, VariantGroup, VariantOption
from app.services.pricing_service.bulk_offer import (
    apply_option_offer,
    apply_to_all_options,
    find_option,
    refresh_product_prices,
)

NOW = datetime(2024, 5, 10, 12, 0, 0)
D = Decimal


def _product():
    return ProductPricing(
        product_id="SPICE_001",
        variants=[
            VariantGroup(
                name_en="Weight",
                options=[
                    VariantOption(value_en="250g", price=D("5"), original_price=D("5")),
                    VariantOption(value_en="1kg", price=D("18"), original_price=D("18")),
                ],
            ),
            VariantGroup(
                name_en="Pack",
                options=[VariantOption(value_en="Jar", price=D("12"), original_price=None)],
            ),
        ],
    )


def _all_options(product):
    return [option for group in product.variants for option in group.options]


def test_bulk_percentage_offer_reaches_every_option():
    spec = OfferSpec(offer_type=VariantOfferType.percentage, offer_value=D("10"))
    updated = apply_to_all_options(_product(), spec, NOW)

    prices = [option.price for option in _all_options(updated)]
    assert prices == [D("4.50"), D("16.20"), D("10.80")]
    for option in _all_options(updated):
        assert option.offer_type == VariantOfferType.percentage
        assert option.offer_value == D("10")

    # legacy option without an original price gets one
    assert updated.variants[1].options[0].original_price == D("12.00")


def test_bulk_apply_is_idempotent():
    spec = OfferSpec(offer_type=VariantOfferType.fixed, offer_value=D("2"))
    once = apply_to_all_options(_product(), spec, NOW)
    twice = apply_to_all_options(once, spec, NOW)
    assert once == twice


def test_bulk_apply_leaves_input_untouched():
    product = _product()
    snapshot = product.model_copy(deep=True)
    apply_to_all_options(product, OfferSpec(offer_type=VariantOfferType.percentage, offer_value=D("50")), NOW)
    assert product == snapshot


def test_bulk_none_clears_offers():
    discounted = apply_to_all_options(
        _product(), OfferSpec(offer_type=VariantOfferType.percentage, offer_value=D("25")), NOW
    )
    cleared = apply_to_all_options(discounted, OfferSpec(offer_type=VariantOfferType.none), NOW)

    for option in _all_options(cleared):
        assert option.offer_type == VariantOfferType.none
        assert option.offer_value == D("0")
        assert option.offer_window is None
        assert option.price == option.original_price


def test_scheduled_bulk_offer_keeps_original_price_until_start():
    window = TimeWindow(start=NOW + timedelta(days=1), end=NOW + timedelta(days=3))
    spec = OfferSpec(offer_type=VariantOfferType.percentage, offer_value=D("20"), window=window)
    updated = apply_to_all_options(_product(), spec, NOW)

    assert updated.variants[0].options[1].price == D("18.00")
    assert updated.variants[0].options[1].offer_window == window

    started = refresh_product_prices(updated, NOW + timedelta(days=2))
    assert started.variants[0].options[1].price == D("14.40")


def test_refresh_clears_expired_offers():
    window = TimeWindow(end=NOW + timedelta(hours=1))
    spec = OfferSpec(offer_type=VariantOfferType.fixed, offer_value=D("1"), window=window)
    updated = apply_to_all_options(_product(), spec, NOW)

    later = NOW + timedelta(hours=2)
    kept = refresh_product_prices(updated, later, clear_expired=False)
    assert kept.variants[0].options[0].offer_type == VariantOfferType.fixed
    assert kept.variants[0].options[0].price == D("5.00")

    swept = refresh_product_prices(updated, later)
    assert swept.variants[0].options[0].offer_type == VariantOfferType.none
    assert swept.variants[0].options[0].price == D("5.00")


def test_single_option_offer_only_touches_that_option():
    spec = OfferSpec(offer_type=VariantOfferType.percentage, offer_value=D("50"))
    updated = apply_option_offer(_product(), 0, 1, spec, NOW)

    assert updated.variants[0].options[1].price == D("9.00")
    assert updated.variants[0].options[0] == _product().variants[0].options[0]
    assert updated.variants[1] == _product().variants[1]


def test_single_option_offer_can_correct_original_price():
    spec = OfferSpec(offer_type=VariantOfferType.fixed, offer_value=D("3"))
    updated = apply_option_offer(_product(), 1, 0, spec, NOW, original_price=D("15"))

    option = updated.variants[1].options[0]
    assert option.original_price == D("15.00")
    assert option.price == D("12.00")


def test_single_option_offer_out_of_range():
    spec = OfferSpec(offer_type=VariantOfferType.percentage, offer_value=D("5"))
    with pytest.raises(IndexError):
        apply_option_offer(_product(), 5, 0, spec, NOW)
    with pytest.raises(IndexError):
        apply_option_offer(_product(), 0, 9, spec, NOW)


def test_find_option():
    product = _product()
    assert find_option(product, 0, 1).value_en == "1kg"
    assert find_option(product, 2, 0) is None
    assert find_option(product, -1, 0) is None
