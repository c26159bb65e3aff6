from datetime import datetime
from typing import Callable, Optional

from app.enums.offer_types import VariantOfferType, WindowStatus
from app.schemas.pricing import OfferSpec, ProductPricing, VariantOption
from app.services.pricing_service.time_window import window_status
from app.services.pricing_service.variant_pricer import (
    ZERO,
    original_price_of,
    reprice_option,
    round_money,
)


def _map_options(
    product: ProductPricing,
    fn: Callable[[int, int, VariantOption], VariantOption],
) -> ProductPricing:
    variants = [
        group.model_copy(
            update={
                "options": [
                    fn(group_index, option_index, option)
                    for option_index, option in enumerate(group.options)
                ]
            }
        )
        for group_index, group in enumerate(product.variants)
    ]
    return product.model_copy(update={"variants": variants})


def _with_offer(option: VariantOption, spec: OfferSpec, now: datetime) -> VariantOption:
    # Always priced from the original, so repeated saves never compound.
    if spec.offer_type == VariantOfferType.none:
        return clear_offer(option)

    updated = option.model_copy(
        update={
            "original_price": round_money(original_price_of(option)),
            "offer_type": spec.offer_type,
            "offer_value": spec.offer_value,
            "offer_window": spec.window.model_copy(),
        }
    )
    return reprice_option(updated, now)


def clear_offer(option: VariantOption) -> VariantOption:
    original = round_money(original_price_of(option))
    return option.model_copy(
        update={
            "price": original,
            "original_price": original,
            "offer_type": VariantOfferType.none,
            "offer_value": ZERO,
            "offer_window": None,
        }
    )


def apply_to_all_options(
    product: ProductPricing,
    offer_spec: OfferSpec,
    now: datetime,
) -> ProductPricing:
    """
    Bulk edit: put one offer on every option of every variant group.

    Returns a new product; `product` is left untouched. An offer type of
    `none` clears every option's offer instead. Per-option overrides made
    earlier are overwritten.
    """
    return _map_options(product, lambda _g, _o, option: _with_offer(option, offer_spec, now))


def apply_option_offer(
    product: ProductPricing,
    group_index: int,
    option_index: int,
    offer_spec: OfferSpec,
    now: datetime,
    original_price=None,
) -> ProductPricing:
    """
    Per-option editor save. Only the addressed option changes; passing
    `original_price` also replaces that option's undiscounted price.
    """
    if not 0 <= group_index < len(product.variants):
        raise IndexError(f"No variant group at position {group_index}")
    if not 0 <= option_index < len(product.variants[group_index].options):
        raise IndexError(f"No option at position {option_index} in group {group_index}")

    def _edit(g: int, o: int, option: VariantOption) -> VariantOption:
        if (g, o) != (group_index, option_index):
            return option
        if original_price is not None:
            option = option.model_copy(update={"original_price": round_money(original_price)})
        return _with_offer(option, offer_spec, now)

    return _map_options(product, _edit)


def refresh_product_prices(
    product: ProductPricing,
    now: datetime,
    clear_expired: bool = True,
) -> ProductPricing:
    """
    Recompute every option's persisted price for `now`.
    Offers whose window has ended are removed when `clear_expired` is set.
    """

    def _refresh(_g: int, _o: int, option: VariantOption) -> VariantOption:
        if (
            clear_expired
            and option.offer_type != VariantOfferType.none
            and window_status(option.offer_window, now) == WindowStatus.expired
        ):
            return clear_offer(option)
        return reprice_option(option, now)

    return _map_options(product, _refresh)


def find_option(product: ProductPricing, group_index: int, option_index: int) -> Optional[VariantOption]:
    try:
        if group_index < 0 or option_index < 0:
            return None
        return product.variants[group_index].options[option_index]
    except IndexError:
        return None
