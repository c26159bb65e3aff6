from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from app.database.connection import get_db
from app.schemas.pricing import OfferSpec
from app.schemas.product import (
    OptionOfferRequest,
    ProductCreate,
    ProductPricingResponse,
    ProductResponse,
    ProductUpdate,
)
from app.schemas.price_history import PriceHistoryPageMeta, PriceHistoryPageResponse
from app.services.product_service import (
    create_product, get_product, list_products,
    update_product, delete_product, get_product_pricing_view,
    apply_bulk_offer, apply_single_option_offer, get_price_history,
)
from app.dependencies.auth import require_admin

router = APIRouter(prefix="/products", tags=["Products & Inline Offers"])

# CREATE
@router.post("/", response_model=ProductResponse, dependencies=[Depends(require_admin)])
def create(data: ProductCreate, db: Session = Depends(get_db)):
    return create_product(db, data, now=datetime.utcnow())

# LIST
@router.get("/", response_model=list[ProductResponse])
def list_all(on_offer: Optional[bool] = None, db: Session = Depends(get_db)):
    return list_products(db, on_offer=on_offer)

# GET BY ID
@router.get("/{product_id}", response_model=ProductResponse)
def get(product_id: str, db: Session = Depends(get_db)):
    product = get_product(db, product_id)
    if not product:
        raise HTTPException(404, "Product not found")
    return product

# UPDATE
@router.put("/{product_id}", response_model=ProductResponse, dependencies=[Depends(require_admin)])
def update(product_id: str, data: ProductUpdate, db: Session = Depends(get_db)):
    product = update_product(db, product_id, data, now=datetime.utcnow())
    if not product:
        raise HTTPException(404, "Product not found")
    return product

# DELETE
@router.delete("/{product_id}", dependencies=[Depends(require_admin)])
def delete(product_id: str, db: Session = Depends(get_db)):
    success = delete_product(db, product_id)
    if not success:
        raise HTTPException(404, "Product not found")
    return {"message": "Product deleted"}

# PRICES IN EFFECT (badges, countdowns)
@router.get("/{product_id}/pricing", response_model=ProductPricingResponse)
def pricing(product_id: str, at: Optional[datetime] = None, db: Session = Depends(get_db)):
    view = get_product_pricing_view(db, product_id, now=at or datetime.utcnow())
    if not view:
        raise HTTPException(404, "Product not found")
    return view

# BULK OFFER ON EVERY OPTION
@router.post("/{product_id}/offers/bulk", response_model=ProductResponse, dependencies=[Depends(require_admin)])
def bulk_offer(product_id: str, spec: OfferSpec, db: Session = Depends(get_db)):
    product = apply_bulk_offer(db, product_id, spec, now=datetime.utcnow())
    if not product:
        raise HTTPException(404, "Product not found")
    return product

# SINGLE OPTION OFFER
@router.put(
    "/{product_id}/variants/{group_index}/options/{option_index}/offer",
    response_model=ProductResponse,
    dependencies=[Depends(require_admin)],
)
def option_offer(
    product_id: str,
    group_index: int,
    option_index: int,
    request: OptionOfferRequest,
    db: Session = Depends(get_db),
):
    product = apply_single_option_offer(
        db, product_id, group_index, option_index, request, now=datetime.utcnow()
    )
    if not product:
        raise HTTPException(404, "Product not found")
    return product


# PRICE HISTORY
@router.get("/{product_id}/price-history", response_model=PriceHistoryPageResponse, dependencies=[Depends(require_admin)])
def view_history(product_id: str, page: int = 1, page_size: int = 50, db: Session = Depends(get_db)):
    items, total = get_price_history(db, product_id, page=page, page_size=page_size)
    page = max(page, 1)
    page_size = min(max(page_size, 1), 200)
    return PriceHistoryPageResponse(
        items=items,
        meta=PriceHistoryPageMeta(
            total=total,
            page=page,
            page_size=page_size,
            total_pages=(total + page_size - 1) // page_size,
        ),
    )
