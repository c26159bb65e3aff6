from datetime import datetime
from typing import Optional

from app.enums.offer_types import WindowStatus
from app.schemas.pricing import Coupon


class CouponCreate(Coupon):
    pass


class CouponResponse(Coupon):
    status: WindowStatus
    created_at: Optional[datetime] = None
