"""
Storage-side product shapes -> canonical pricing model.

Product documents have been written by several generations of the admin
screens:

- current: ``variants`` list of groups, each with ``options``
- legacy:  a flat ``types`` map (key -> option fields)
- bare:    no options at all, only a root ``price`` / ``quantity``

Keys show up both in camelCase (``originalPrice``, ``offerStartDate``)
and snake_case. Everything is folded into ``ProductPricing`` here so the
pricing engine only ever sees one shape.
"""
import logging
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

from app.enums.offer_types import VariantOfferType
from app.schemas.pricing import ProductPricing, TimeWindow, VariantGroup, VariantOption
from app.services.pricing_service.variant_pricer import round_money, to_decimal

logger = logging.getLogger(__name__)

DEFAULT_IMAGE_URL = "/placeholder-image.png"
DEFAULT_UNIT_EN = "piece"
DEFAULT_UNIT_AR = "قطعة"


def _pick(raw: Mapping[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        value = raw.get(key)
        if value is not None and value != "":
            return value
    return default


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    datetime, ISO string, epoch seconds or a {"seconds", "nanoseconds"}
    map. Returns None for anything else.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, Mapping):
        seconds = value.get("seconds", value.get("_seconds"))
        if seconds is None:
            return None
        nanos = value.get("nanoseconds", value.get("_nanoseconds")) or 0
        try:
            return datetime.fromtimestamp(float(seconds) + float(nanos) / 1e9, tz=timezone.utc)
        except (TypeError, ValueError, OverflowError, OSError):
            return None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            return datetime.fromtimestamp(float(value), tz=timezone.utc)
        except (ValueError, OverflowError, OSError):
            return None
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            return None
    return None


def _window_bound(value: Any) -> Any:
    # Bare dates go through as-is; TimeWindow widens them to whole days.
    if isinstance(value, str):
        try:
            date.fromisoformat(value.strip())
            return value.strip()
        except ValueError:
            pass
    return parse_timestamp(value)


def _offer_type(value: Any) -> VariantOfferType:
    try:
        return VariantOfferType(value) if value else VariantOfferType.none
    except ValueError:
        return VariantOfferType.none


def normalize_option(raw: Mapping[str, Any], fallback_value: str = "N/A") -> VariantOption:
    price = round_money(_pick(raw, "price", default=0))

    original_raw = _pick(raw, "original_price", "originalPrice")
    original = round_money(original_raw) if original_raw is not None else price

    offer_type = _offer_type(_pick(raw, "offer_type", "offerType"))
    stored_window = raw.get("offer_window")
    if isinstance(stored_window, Mapping):
        start = _window_bound(stored_window.get("start"))
        end = _window_bound(stored_window.get("end"))
    else:
        start = _window_bound(_pick(raw, "offer_start_date", "offerStartDate"))
        end = _window_bound(_pick(raw, "offer_end_date", "offerEndDate"))
    window = TimeWindow(start=start, end=end) if (start or end) else None

    try:
        quantity = int(to_decimal(_pick(raw, "quantity", default=0)))
    except (ValueError, ArithmeticError):
        quantity = 0

    return VariantOption(
        value_en=str(_pick(raw, "value_en", "value", default=fallback_value)),
        value_ar=str(_pick(raw, "value_ar", default="")),
        unit_label_en=str(_pick(raw, "unit_label_en", "unitLabel_en", "unitLabel", default=DEFAULT_UNIT_EN)),
        unit_label_ar=str(_pick(raw, "unit_label_ar", "unitLabel_ar", default=DEFAULT_UNIT_AR)),
        image_url=str(_pick(raw, "image_url", "imageUrl", default=DEFAULT_IMAGE_URL)),
        quantity=max(quantity, 0),
        price=price,
        original_price=original,
        offer_type=offer_type,
        offer_value=round_money(_pick(raw, "offer_value", "offerValue", default=0)),
        offer_window=window if offer_type != VariantOfferType.none else None,
    )


def _groups_from_variants(raw_variants: List[Any]) -> List[VariantGroup]:
    groups: List[VariantGroup] = []
    for raw_group in raw_variants:
        if not isinstance(raw_group, Mapping):
            continue
        raw_options = raw_group.get("options")
        options = [
            normalize_option(opt)
            for opt in (raw_options if isinstance(raw_options, list) else [])
            if isinstance(opt, Mapping)
        ]
        if not options:
            options = [normalize_option({"value_en": "Standard Option", "value_ar": "خيار قياسي"})]
        groups.append(
            VariantGroup(
                name_en=str(_pick(raw_group, "name_en", "name", default="Default Type")),
                name_ar=str(_pick(raw_group, "name_ar", default="")),
                options=options,
            )
        )
    return groups


def _groups_from_types(raw_types: Mapping[str, Any]) -> List[VariantGroup]:
    options = [
        normalize_option(type_value, fallback_value=str(key))
        for key, type_value in raw_types.items()
        if isinstance(type_value, Mapping)
    ]
    if not options:
        return []
    return [VariantGroup(name_en="Available Options", name_ar="الخيارات المتاحة", options=options)]


def normalize_product_document(product_id: str, raw: Optional[Mapping[str, Any]]) -> ProductPricing:
    raw = raw or {}
    groups: List[VariantGroup] = []

    raw_variants = raw.get("variants")
    raw_types = raw.get("types")
    if isinstance(raw_variants, list) and raw_variants:
        groups = _groups_from_variants(raw_variants)
    elif isinstance(raw_types, Mapping) and raw_types:
        logger.warning("Product %s: legacy 'types' map converted to variants", product_id)
        groups = _groups_from_types(raw_types)

    if not groups:
        groups = [
            VariantGroup(
                name_en="Standard",
                name_ar="قياسي",
                options=[
                    normalize_option(
                        {
                            "value_en": "Standard",
                            "value_ar": "قياسي",
                            "price": raw.get("price", 0),
                            "quantity": raw.get("quantity", 0),
                            "image_url": raw.get("image"),
                        }
                    )
                ],
            )
        ]

    return ProductPricing(product_id=product_id, variants=groups)


def dump_variants(product: ProductPricing) -> List[Dict[str, Any]]:
    """JSON-ready variants document for storage."""
    return [group.model_dump(mode="json") for group in product.variants]
