from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

from app.enums.offer_types import WindowStatus
from app.schemas.pricing import Money, OfferSpec, VariantGroup


class ProductBase(BaseModel):
    name_en: str
    name_ar: str = ""
    category: List[str] = []
    short_description_en: Optional[str] = None
    short_description_ar: Optional[str] = None
    image: Optional[str] = None
    variants: List[VariantGroup] = []
    optional_add_on_ids: List[str] = []

class ProductCreate(ProductBase):
    product_id: str

class ProductUpdate(ProductBase):
    pass

class ProductResponse(ProductBase):
    product_id: str
    is_offer: bool = False
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


# ---------- Offer editing ----------

class OptionOfferRequest(OfferSpec):
    # Per-option editor may also correct the undiscounted price.
    original_price: Optional[Decimal] = Field(default=None, ge=0)


# ---------- Pricing view ----------

class OptionPricingView(BaseModel):
    group_index: int
    option_index: int
    variant_name: str
    option_value: str
    original_price: Money
    effective_price: Money
    stored_price: Money
    offer_status: Optional[WindowStatus] = None
    offer_label: str = ""
    offer_ends_at: Optional[datetime] = None


class ProductPricingResponse(BaseModel):
    product_id: str
    currency: str
    priced_at: datetime
    is_offer: bool
    options: List[OptionPricingView]
