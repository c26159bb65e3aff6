import logging
from datetime import datetime
from typing import List, Optional, Tuple

from fastapi import HTTPException
from sqlalchemy import func
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import raise_for_issues
from app.models.price_history import PriceHistory
from app.models.product import Product
from app.schemas.pricing import OfferSpec, ProductPricing
from app.schemas.product import (
    OptionOfferRequest,
    OptionPricingView,
    ProductCreate,
    ProductPricingResponse,
    ProductUpdate,
)
from app.services.pricing_service.bulk_offer import (
    apply_option_offer,
    apply_to_all_options,
    refresh_product_prices,
)
from app.services.pricing_service.validation import validate_offer_spec
from app.services.pricing_service.variant_pricer import (
    effective_price,
    is_discounted,
    offer_description_label,
    option_offer_status,
    original_price_of,
    round_money,
)
from app.services.product_normalizer import dump_variants, normalize_product_document

logger = logging.getLogger(__name__)


def record_price_change(
    db: Session,
    product_id: str,
    variant_name: str,
    option_value: str,
    reason: str,
    old_price: float,
    new_price: float,
):
    history = PriceHistory(
        product_id=product_id,
        variant_name=variant_name,
        option_value=option_value,
        reason=reason,
        old_price=old_price,
        new_price=new_price,
    )
    db.add(history)


def product_pricing(product: Product) -> ProductPricing:
    return normalize_product_document(product.product_id, {"variants": product.variants or []})


def _store_pricing(
    db: Session,
    product: Product,
    before: Optional[ProductPricing],
    after: ProductPricing,
    reason: str,
    now: datetime,
) -> None:
    """Write `after` back to the row, logging every option whose price moved."""
    if before is not None:
        # by position: option labels are not unique within a group
        old_prices = {
            (group_index, option_index): option.price
            for group_index, group in enumerate(before.variants)
            for option_index, option in enumerate(group.options)
        }
        for group_index, group in enumerate(after.variants):
            for option_index, option in enumerate(group.options):
                old = old_prices.get((group_index, option_index))
                if old is not None and old != option.price:
                    record_price_change(
                        db, product.product_id,
                        variant_name=group.name_en,
                        option_value=option.value_en,
                        reason=reason,
                        old_price=float(old),
                        new_price=float(option.price),
                    )

    product.variants = dump_variants(after)
    product.is_offer = any(
        is_discounted(option, now)
        for group in after.variants
        for option in group.options
    )


# --------------------------
# CREATE PRODUCT
# --------------------------
def create_product(db: Session, data: ProductCreate, now: datetime):
    if get_product(db, data.product_id):
        raise HTTPException(status_code=400, detail=f"Product {data.product_id} already exists")

    product = Product(**data.model_dump(exclude={"variants"}))
    pricing = ProductPricing(product_id=data.product_id, variants=data.variants)
    # Never persist a price that disagrees with the option's offer.
    _store_pricing(db, product, None, refresh_product_prices(pricing, now, clear_expired=False), "create", now)

    db.add(product)
    db.commit()
    db.refresh(product)
    logger.info("Created product %s with %d variant groups", product.product_id, len(data.variants))
    return product

# --------------------------
# GET PRODUCT
# --------------------------
def get_product(db: Session, product_id: str):
    return db.query(Product).filter(Product.product_id == product_id).first()

# --------------------------
# LIST PRODUCTS
# --------------------------
def list_products(db: Session, on_offer: Optional[bool] = None):
    query = db.query(Product)
    if on_offer is not None:
        query = query.filter(Product.is_offer.is_(on_offer))
    return query.order_by(Product.name_en).all()

# --------------------------
# UPDATE PRODUCT
# --------------------------
def update_product(db: Session, product_id: str, data: ProductUpdate, now: datetime):
    product = get_product(db, product_id)
    if not product:
        return None

    before = product_pricing(product)
    for key, value in data.model_dump(exclude={"variants"}).items():
        if hasattr(product, key):
            setattr(product, key, value)

    after = refresh_product_prices(
        ProductPricing(product_id=product_id, variants=data.variants), now, clear_expired=False
    )
    _store_pricing(db, product, before, after, "product_update", now)

    db.commit()
    db.refresh(product)
    return product


# --------------------------
# DELETE PRODUCT
# --------------------------
def delete_product(db: Session, product_id: str):
    product = get_product(db, product_id)
    if not product:
        return False

    db.delete(product)
    db.commit()
    return True

# --------------------------
# PRICING VIEW
# --------------------------
def get_product_pricing_view(db: Session, product_id: str, now: datetime) -> Optional[ProductPricingResponse]:
    product = get_product(db, product_id)
    if not product:
        return None

    pricing = product_pricing(product)
    options: List[OptionPricingView] = []
    for group_index, group in enumerate(pricing.variants):
        for option_index, option in enumerate(group.options):
            status = option_offer_status(option, now)
            options.append(
                OptionPricingView(
                    group_index=group_index,
                    option_index=option_index,
                    variant_name=group.name_en,
                    option_value=option.value_en,
                    original_price=round_money(original_price_of(option)),
                    effective_price=effective_price(option, now),
                    stored_price=option.price,
                    offer_status=status,
                    offer_label=offer_description_label(option, now),
                    offer_ends_at=option.offer_window.end if status and option.offer_window else None,
                )
            )

    return ProductPricingResponse(
        product_id=product.product_id,
        currency=settings.CURRENCY,
        priced_at=now,
        is_offer=any(is_discounted(o, now) for g in pricing.variants for o in g.options),
        options=options,
    )

# --------------------------
# INLINE OFFERS
# --------------------------
def apply_bulk_offer(db: Session, product_id: str, spec: OfferSpec, now: datetime):
    raise_for_issues(validate_offer_spec(spec), "Invalid offer configuration")

    product = get_product(db, product_id)
    if not product:
        return None

    before = product_pricing(product)
    after = apply_to_all_options(before, spec, now)
    _store_pricing(db, product, before, after, "bulk_offer", now)

    db.commit()
    db.refresh(product)
    logger.info(
        "Applied %s offer (%s) to all options of %s",
        spec.offer_type.value, spec.offer_value, product_id,
    )
    return product


def apply_single_option_offer(
    db: Session,
    product_id: str,
    group_index: int,
    option_index: int,
    request: OptionOfferRequest,
    now: datetime,
):
    raise_for_issues(validate_offer_spec(request), "Invalid offer configuration")

    product = get_product(db, product_id)
    if not product:
        return None

    before = product_pricing(product)
    spec = OfferSpec(offer_type=request.offer_type, offer_value=request.offer_value, window=request.window)
    try:
        after = apply_option_offer(
            before, group_index, option_index, spec, now,
            original_price=request.original_price,
        )
    except IndexError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e

    _store_pricing(db, product, before, after, "option_offer", now)
    db.commit()
    db.refresh(product)
    return product


# --------------------------
# EXPIRY SWEEP
# --------------------------
def sweep_expired_offers(db: Session, now: datetime) -> int:
    """
    Clears ended inline offers and re-syncs stored prices with the offers
    still in place. Returns the number of products rewritten.
    """
    changed = 0
    for product in db.query(Product).all():
        before = product_pricing(product)
        after = refresh_product_prices(before, now)
        was_on_offer = bool(product.is_offer)
        _store_pricing(db, product, before, after, "expiry_sweep", now)
        if after != before or was_on_offer != product.is_offer:
            changed += 1

    db.commit()
    if changed:
        logger.info("Expiry sweep updated %d products", changed)
    return changed

# --------------------------
# GET PRICE HISTORY
# --------------------------
def get_price_history(
    db: Session,
    product_id: str,
    page: int = 1,
    page_size: int = 50,
) -> Tuple[List[PriceHistory], int]:
    """
    Returns (items, total_count)
    page is 1-based.
    """
    if page < 1:
        page = 1
    MAX_PAGE_SIZE = 200
    if page_size < 1:
        page_size = 1
    if page_size > MAX_PAGE_SIZE:
        page_size = MAX_PAGE_SIZE

    query = db.query(PriceHistory).filter(PriceHistory.product_id == product_id)

    total = query.with_entities(func.count()).scalar() or 0

    offset = (page - 1) * page_size
    items = (
        query
        .order_by(PriceHistory.changed_at.desc(), PriceHistory.id.desc())
        .offset(offset)
        .limit(page_size)
        .all()
    )

    return items, total
