import re
from datetime import date, datetime, time
from decimal import Decimal
from typing import Annotated, List, Optional

from pydantic import AliasChoices, BaseModel, Field, PlainSerializer, field_validator

from app.enums.offer_types import (
    BogoGetType,
    DiscountNature,
    OfferType,
    VariantOfferType,
)

# Stored and displayed as a plain JSON number, computed as Decimal.
Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]

_DATE_ONLY = re.compile(r"^\d{4}-\d{2}-\d{2}$")

START_OF_DAY = time(0, 0, 0)
END_OF_DAY = time(23, 59, 59)


# ---------- Time window ----------

class TimeWindow(BaseModel):
    start: Optional[datetime] = None
    end: Optional[datetime] = None

    @field_validator("start", "end", mode="before")
    @classmethod
    def _expand_dates(cls, value, info):
        """
        Date-only bounds cover whole days: a bare start means midnight,
        a bare end means 23:59:59 of that day.
        """
        if value is None or value == "":
            return None
        day_time = END_OF_DAY if info.field_name == "end" else START_OF_DAY
        if isinstance(value, date) and not isinstance(value, datetime):
            return datetime.combine(value, day_time)
        if isinstance(value, str) and _DATE_ONLY.match(value.strip()):
            return datetime.combine(date.fromisoformat(value.strip()), day_time)
        return value


# ---------- Variants ----------

class VariantOption(BaseModel):
    value_en: str = ""
    value_ar: str = ""
    unit_label_en: Optional[str] = None
    unit_label_ar: Optional[str] = None
    image_url: str = ""
    quantity: int = 0

    price: Money = Decimal("0")
    original_price: Optional[Money] = None
    offer_type: VariantOfferType = VariantOfferType.none
    offer_value: Money = Decimal("0")
    offer_window: Optional[TimeWindow] = None

    @field_validator("offer_type", mode="before")
    @classmethod
    def _missing_offer_type(cls, value):
        return value or VariantOfferType.none


class VariantGroup(BaseModel):
    name_en: str = "Type"
    name_ar: str = ""
    options: List[VariantOption] = []


class ProductPricing(BaseModel):
    product_id: str
    variants: List[VariantGroup] = []


class OfferSpec(BaseModel):
    offer_type: VariantOfferType = Field(
        default=VariantOfferType.none,
        validation_alias=AliasChoices("offer_type", "offerType"),
    )
    offer_value: Money = Field(
        default=Decimal("0"),
        validation_alias=AliasChoices("offer_value", "offerValue"),
    )
    window: TimeWindow = Field(default_factory=TimeWindow)

    @field_validator("offer_type", mode="before")
    @classmethod
    def _missing_offer_type(cls, value):
        return value or VariantOfferType.none


# ---------- Standalone offers & coupons ----------

class Offer(BaseModel):
    offer_id: str
    title_en: str = ""
    title_ar: str = ""
    description_en: Optional[str] = None
    description_ar: Optional[str] = None
    type: OfferType = OfferType.percentage_discount
    discount_value: Money = Decimal("0")
    target_product_ids: List[str] = []
    window: TimeWindow = Field(default_factory=TimeWindow)
    is_active: bool = True

    # BOGO
    bogo_buy_product_id: Optional[str] = None
    bogo_buy_quantity: int = 1
    bogo_get_product_id: Optional[str] = None
    bogo_get_quantity: int = 1
    bogo_get_type: BogoGetType = BogoGetType.free

    # Coupon
    coupon_code: Optional[str] = None
    discount_nature: DiscountNature = DiscountNature.fixed

    @property
    def title(self) -> str:
        return self.title_en or self.title_ar


class Coupon(BaseModel):
    code: str
    discount_type: DiscountNature = DiscountNature.percentage
    value: Money = Decimal("0")
    active: bool = True
    window: TimeWindow = Field(default_factory=TimeWindow)
    target_product_ids: List[str] = []

    @field_validator("discount_type", mode="before")
    @classmethod
    def _lowercase_type(cls, value):
        # Older coupon documents store "PERCENTAGE" / "FIXED".
        return value.lower() if isinstance(value, str) else value


def coupon_from_offer(offer: Offer) -> Coupon:
    """A coupon-type Offer priced through the same path as a standalone Coupon."""
    return Coupon(
        code=(offer.coupon_code or offer.offer_id).strip().upper(),
        discount_type=offer.discount_nature,
        value=offer.discount_value,
        active=offer.is_active,
        window=offer.window,
        target_product_ids=list(offer.target_product_ids),
    )


# ---------- Cart ----------

class CartLine(BaseModel):
    product_id: str
    option: VariantOption
    quantity: int = Field(default=1, ge=0)
    variant_name: Optional[str] = None
    variant_value: Optional[str] = None


class Cart(BaseModel):
    lines: List[CartLine] = []


# ---------- Results ----------

class OfferRef(BaseModel):
    offer_id: str
    title: str = ""
    type: OfferType
    discount_applied: Money = Decimal("0")


class LineEvaluation(BaseModel):
    product_id: str
    quantity: int
    baseline: Money
    unit_price: Money
    line_total: Money
    savings: Money
    applied_offer: Optional[OfferRef] = None


class BogoLineDiscount(BaseModel):
    line_index: int
    units: int
    discount: Money


class BogoResult(BaseModel):
    offer_id: str
    buy_units: int = 0
    applications: int = 0
    eligible_units: int = 0
    lines: List[BogoLineDiscount] = []
    discount_total: Money = Decimal("0")


class CouponLineDiscount(BaseModel):
    line_index: int
    discount: Money


class CouponResult(BaseModel):
    code: str
    eligible_lines: List[int] = []
    line_discounts: List[CouponLineDiscount] = []
    discount_total: Money = Decimal("0")


class CartQuote(BaseModel):
    priced_at: datetime
    lines: List[LineEvaluation] = []
    bogo: List[BogoResult] = []
    coupon: Optional[CouponResult] = None
    subtotal: Money = Decimal("0")
    discount_total: Money = Decimal("0")
    total: Money = Decimal("0")


class ValidationIssue(BaseModel):
    field: str
    message: str
