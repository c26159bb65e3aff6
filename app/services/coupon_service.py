import logging
from datetime import datetime
from typing import List, Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from app.core.errors import raise_for_issues
from app.models.coupon import Coupon as CouponRow
from app.models.offer import Offer as OfferRow
from app.schemas.coupon import CouponCreate, CouponResponse
from app.schemas.pricing import Coupon, TimeWindow, coupon_from_offer
from app.services.offer_service import find_coupon_offer
from app.services.pricing_service.time_window import as_naive_utc, as_utc, window_status
from app.services.pricing_service.validation import validate_coupon

logger = logging.getLogger(__name__)


def coupon_from_row(row: CouponRow) -> Coupon:
    return Coupon(
        code=row.code,
        discount_type=row.discount_type,
        value=row.value or 0,
        active=bool(row.active),
        window=TimeWindow(start=row.start_time, end=row.end_time),
        target_product_ids=list(row.target_product_ids or []),
    )


def coupon_response(row: CouponRow, now: datetime) -> CouponResponse:
    coupon = coupon_from_row(row)
    return CouponResponse(
        **coupon.model_dump(),
        status=window_status(coupon.window, now),
        created_at=row.created_at,
    )


def get_coupon(db: Session, code: str) -> Optional[CouponRow]:
    return db.query(CouponRow).filter(CouponRow.code == code.strip().upper()).first()


def create_coupon(db: Session, data: CouponCreate) -> CouponRow:
    coupon = data.model_copy(update={"code": data.code.strip().upper()})
    raise_for_issues(validate_coupon(coupon), "Invalid coupon")

    taken_by_offer = (
        db.query(OfferRow).filter(OfferRow.coupon_code == coupon.code).first()
    )
    if get_coupon(db, coupon.code) or taken_by_offer:
        raise HTTPException(
            status_code=400,
            detail="Could not create coupon. It might already exist.",
        )

    row = CouponRow(
        code=coupon.code,
        discount_type=coupon.discount_type.value,
        value=float(coupon.value),
        active=coupon.active,
        start_time=as_naive_utc(coupon.window.start),
        end_time=as_naive_utc(coupon.window.end),
        target_product_ids=list(coupon.target_product_ids),
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    logger.info("Created coupon %s (%s %s)", row.code, row.discount_type, row.value)
    return row


def list_coupons(db: Session, now: datetime, only_active: bool = True) -> List[CouponRow]:
    """
    `only_active` hides switched-off coupons and coupons whose end date
    has passed; scheduled ones stay visible.
    """
    query = db.query(CouponRow)
    if only_active:
        query = query.filter(CouponRow.active.is_(True))
    rows = query.order_by(CouponRow.code).all()

    if only_active:
        current = as_utc(now)
        rows = [row for row in rows if row.end_time is None or as_utc(row.end_time) >= current]
    return rows


def toggle_coupon_status(db: Session, code: str) -> Optional[CouponRow]:
    row = get_coupon(db, code)
    if not row:
        return None
    row.active = not row.active
    db.commit()
    db.refresh(row)
    logger.info("Coupon %s %s", row.code, "enabled" if row.active else "disabled")
    return row


def delete_coupon(db: Session, code: str) -> bool:
    row = get_coupon(db, code)
    if not row:
        return False
    db.delete(row)
    db.commit()
    logger.info("Deleted coupon %s", row.code)
    return True


def resolve_coupon(db: Session, code: str) -> Optional[Coupon]:
    """A code typed at checkout: standalone coupons first, then coupon-type offers."""
    row = get_coupon(db, code)
    if row:
        return coupon_from_row(row)
    offer = find_coupon_offer(db, code)
    return coupon_from_offer(offer) if offer else None
