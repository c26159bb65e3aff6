from typing import List, Optional

from pydantic import BaseModel, Field

from app.schemas.pricing import CartQuote


class CartItemRequest(BaseModel):
    product_id: str
    group_index: int = Field(default=0, ge=0)
    option_index: int = Field(default=0, ge=0)
    quantity: int = Field(default=1, gt=0)


class CartQuoteRequest(BaseModel):
    items: List[CartItemRequest]
    coupon_code: Optional[str] = None


class CartQuoteResponse(CartQuote):
    currency: str
    coupon_rejected_reason: Optional[str] = None
