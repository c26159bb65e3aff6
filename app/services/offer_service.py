import logging
import uuid
from datetime import datetime
from typing import List, Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from app.core.errors import raise_for_issues
from app.enums.offer_types import OfferType
from app.models.coupon import Coupon as CouponRow
from app.models.offer import Offer as OfferRow
from app.schemas.offer import OfferCreate, OfferResponse, OfferStatusResponse, OfferUpdate
from app.schemas.pricing import Offer, TimeWindow
from app.services.pricing_service.promotion_evaluator import LINE_OFFER_TYPES
from app.services.pricing_service.time_window import as_naive_utc, is_live, window_status
from app.services.pricing_service.validation import validate_offer

logger = logging.getLogger(__name__)


def _generate_offer_id() -> str:
    return f"OFFER_{uuid.uuid4().hex[:8].upper()}"


def offer_from_row(row: OfferRow) -> Offer:
    return Offer(
        offer_id=row.offer_id,
        title_en=row.title_en or "",
        title_ar=row.title_ar or "",
        description_en=row.description_en,
        description_ar=row.description_ar,
        type=row.type,
        discount_value=row.discount_value or 0,
        target_product_ids=list(row.target_product_ids or []),
        window=TimeWindow(start=row.start_time, end=row.end_time),
        is_active=bool(row.is_active),
        bogo_buy_product_id=row.bogo_buy_product_id,
        bogo_buy_quantity=row.bogo_buy_quantity or 0,
        bogo_get_product_id=row.bogo_get_product_id,
        bogo_get_quantity=row.bogo_get_quantity or 0,
        bogo_get_type=row.bogo_get_type or "free",
        coupon_code=row.coupon_code,
        discount_nature=row.discount_nature or "fixed",
    )


def offer_response(row: OfferRow, now: datetime) -> OfferResponse:
    offer = offer_from_row(row)
    return OfferResponse(
        **offer.model_dump(),
        status=window_status(offer.window, now),
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _clean(offer: Offer) -> Offer:
    code = (offer.coupon_code or "").strip().upper() or None
    return offer.model_copy(
        update={
            "coupon_code": code if offer.type == OfferType.coupon else None,
            "target_product_ids": list(dict.fromkeys(offer.target_product_ids)),
        }
    )


def _copy_to_row(offer: Offer, row: OfferRow) -> None:
    row.title_en = offer.title_en
    row.title_ar = offer.title_ar
    row.description_en = offer.description_en
    row.description_ar = offer.description_ar
    row.type = offer.type.value
    row.discount_value = float(offer.discount_value)
    row.target_product_ids = list(offer.target_product_ids)
    row.start_time = as_naive_utc(offer.window.start)
    row.end_time = as_naive_utc(offer.window.end)
    row.is_active = offer.is_active
    row.bogo_buy_product_id = offer.bogo_buy_product_id
    row.bogo_buy_quantity = offer.bogo_buy_quantity
    row.bogo_get_product_id = offer.bogo_get_product_id
    row.bogo_get_quantity = offer.bogo_get_quantity
    row.bogo_get_type = offer.bogo_get_type.value
    row.coupon_code = offer.coupon_code
    row.discount_nature = offer.discount_nature.value


def _ensure_code_free(db: Session, code: Optional[str], own_offer_id: Optional[str] = None) -> None:
    if not code:
        return
    taken = db.query(OfferRow).filter(OfferRow.coupon_code == code)
    if own_offer_id:
        taken = taken.filter(OfferRow.offer_id != own_offer_id)
    if taken.first() or db.query(CouponRow).filter(CouponRow.code == code).first():
        raise HTTPException(status_code=400, detail=f"Coupon code {code} already exists")


# ---------- CREATE ----------

def create_offer(db: Session, data: OfferCreate) -> OfferRow:
    payload = data.model_dump(exclude={"offer_id"})
    offer = _clean(Offer(offer_id=data.offer_id or _generate_offer_id(), **payload))

    raise_for_issues(validate_offer(offer), "Invalid offer configuration")

    if db.query(OfferRow).filter(OfferRow.offer_id == offer.offer_id).first():
        raise HTTPException(status_code=400, detail=f"Offer {offer.offer_id} already exists")
    _ensure_code_free(db, offer.coupon_code)

    row = OfferRow(offer_id=offer.offer_id)
    _copy_to_row(offer, row)
    db.add(row)
    db.commit()
    db.refresh(row)

    logger.info("Created %s offer %s targeting %d products", row.type, row.offer_id, len(row.target_product_ids or []))
    return row


# ---------- GET / LIST ----------

def get_offer(db: Session, offer_id: str) -> Optional[OfferRow]:
    return db.query(OfferRow).filter(OfferRow.offer_id == offer_id).first()


def list_offers(
    db: Session,
    offer_type: Optional[OfferType] = None,
    active_only: bool = False,
) -> List[OfferRow]:
    query = db.query(OfferRow)
    if offer_type:
        query = query.filter(OfferRow.type == offer_type.value)
    if active_only:
        query = query.filter(OfferRow.is_active.is_(True))
    return query.order_by(OfferRow.start_time.desc()).all()


# ---------- UPDATE / DELETE ----------

def update_offer(db: Session, offer_id: str, data: OfferUpdate) -> Optional[OfferRow]:
    row = get_offer(db, offer_id)
    if not row:
        return None

    offer = _clean(Offer(offer_id=offer_id, **data.model_dump(exclude={"offer_id"})))
    raise_for_issues(validate_offer(offer), "Invalid offer configuration")
    _ensure_code_free(db, offer.coupon_code, own_offer_id=offer_id)

    _copy_to_row(offer, row)
    db.commit()
    db.refresh(row)
    logger.info("Updated offer %s", offer_id)
    return row


def set_offer_active(db: Session, offer_id: str, is_active: bool) -> Optional[OfferRow]:
    row = get_offer(db, offer_id)
    if not row:
        return None
    row.is_active = is_active
    db.commit()
    db.refresh(row)
    logger.info("Offer %s %s", offer_id, "activated" if is_active else "deactivated")
    return row


def delete_offer(db: Session, offer_id: str) -> bool:
    row = get_offer(db, offer_id)
    if not row:
        return False
    db.delete(row)
    db.commit()
    logger.info("Deleted offer %s", offer_id)
    return True


def offer_status(row: OfferRow, now: datetime) -> OfferStatusResponse:
    offer = offer_from_row(row)
    return OfferStatusResponse(
        offer_id=offer.offer_id,
        is_active=offer.is_active,
        window_status=window_status(offer.window, now),
        live=offer.is_active and is_live(offer.window, now),
        checked_at=now,
    )


# ---------- CHECKOUT LOOKUPS ----------

def candidate_offers_for_product(db: Session, product_id: str) -> List[Offer]:
    """Switched-on percentage/fixed offers that target `product_id`."""
    rows = (
        db.query(OfferRow)
        .filter(
            OfferRow.is_active.is_(True),
            OfferRow.type.in_([t.value for t in LINE_OFFER_TYPES]),
        )
        .all()
    )
    return [
        offer_from_row(row)
        for row in rows
        if product_id in (row.target_product_ids or [])
    ]


def active_bogo_offers(db: Session) -> List[Offer]:
    rows = (
        db.query(OfferRow)
        .filter(OfferRow.is_active.is_(True), OfferRow.type == OfferType.bogo.value)
        .all()
    )
    return [offer_from_row(row) for row in rows]


def find_coupon_offer(db: Session, code: str) -> Optional[Offer]:
    row = (
        db.query(OfferRow)
        .filter(
            OfferRow.type == OfferType.coupon.value,
            OfferRow.coupon_code == code.strip().upper(),
        )
        .first()
    )
    return offer_from_row(row) if row else None
