from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from app.enums.offer_types import WindowStatus
from app.schemas.pricing import Offer


class OfferCreate(Offer):
    # Generated when omitted.
    offer_id: Optional[str] = None


class OfferUpdate(Offer):
    offer_id: Optional[str] = None


class OfferResponse(Offer):
    status: WindowStatus
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class OfferStatusResponse(BaseModel):
    offer_id: str
    is_active: bool
    window_status: WindowStatus
    live: bool
    checked_at: datetime
