from datetime import datetime
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.database.connection import get_db
from app.dependencies.auth import require_admin
from app.schemas.coupon import CouponCreate, CouponResponse
from app.services.coupon_service import (
    coupon_response,
    create_coupon,
    delete_coupon,
    list_coupons,
    toggle_coupon_status,
)

router = APIRouter(prefix="/coupons", tags=["Coupons"], dependencies=[Depends(require_admin)])


@router.post("/", response_model=CouponResponse)
def create_coupon_route(data: CouponCreate, db: Session = Depends(get_db)):
    return coupon_response(create_coupon(db, data), datetime.utcnow())


@router.get("/", response_model=List[CouponResponse])
def list_coupons_route(only_active: bool = True, db: Session = Depends(get_db)):
    now = datetime.utcnow()
    return [coupon_response(row, now) for row in list_coupons(db, now, only_active=only_active)]


@router.post("/{code}/toggle", response_model=CouponResponse)
def toggle_coupon_route(code: str, db: Session = Depends(get_db)):
    row = toggle_coupon_status(db, code)
    if not row:
        raise HTTPException(status_code=404, detail="Coupon not found")
    return coupon_response(row, datetime.utcnow())


@router.delete("/{code}")
def delete_coupon_route(code: str, db: Session = Depends(get_db)):
    if not delete_coupon(db, code):
        raise HTTPException(status_code=404, detail="Coupon not found")
    return {"message": "Coupon deleted"}
