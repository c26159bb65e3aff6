import logging
from datetime import datetime
from time import perf_counter
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from app.core.config import settings
from app.database.connection import get_db
from app.schemas.pricing import CartLine
from app.services.offer_service import candidate_offers_for_product
from app.services.pricing_service.bulk_offer import find_option
from app.services.pricing_service.promotion_evaluator import evaluate
from app.services.pricing_service.variant_pricer import offer_description_label
from app.services.product_service import get_product, product_pricing

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Pricing & Calculation"])


@router.get("/products/{product_id}/calculate-price")
def calculate_price(
    product_id: str,
    request: Request,
    group_index: int = 0,
    option_index: int = 0,
    quantity: int = 1,
    at: Optional[datetime] = None,
    db: Session = Depends(get_db),
):
    """
    Price one option of a product:

    1. Inline option offer (baseline)
    2. Best live standalone offer targeting the product
    3. Base price
    """

    if quantity <= 0:
        raise HTTPException(status_code=400, detail="Quantity must be positive")

    product = get_product(db, product_id)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")

    pricing = product_pricing(product)
    option = find_option(pricing, group_index, option_index)
    if option is None:
        raise HTTPException(status_code=404, detail="Variant option not found")

    now = at or datetime.utcnow()
    line = CartLine(
        product_id=product_id,
        option=option,
        quantity=quantity,
        variant_name=pricing.variants[group_index].name_en,
        variant_value=option.value_en,
    )

    # ---- measure calculation time ----
    start = perf_counter()
    result = evaluate(line, candidate_offers_for_product(db, product_id), now)
    duration_ms = (perf_counter() - start) * 1000.0

    if duration_ms > settings.PRICE_CALC_WARN_MS:
        logger.warning(
            "Price calculation for product %s took %.2f ms (quantity=%d)",
            product_id, duration_ms, quantity,
        )

    metrics = getattr(request.app.state, "metrics", None)
    if metrics is not None:
        metrics["price_evaluations"] = metrics.get("price_evaluations", 0) + 1

    label = offer_description_label(option, now)
    if result.applied_offer:
        message = f"Offer '{result.applied_offer.title}' applied."
    elif label:
        message = "Variant offer applied."
    else:
        message = "Base price applied. No live offer."

    return {
        "message": message,
        "product_id": product.product_id,
        "name_en": product.name_en,
        "name_ar": product.name_ar,
        "currency": settings.CURRENCY,
        "variant_name": line.variant_name,
        "variant_value": line.variant_value,
        "quantity": quantity,
        "priced_at": now,
        "offer_label": label,
        **result.model_dump(mode="json"),
    }
