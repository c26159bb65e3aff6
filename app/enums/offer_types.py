from enum import Enum


class VariantOfferType(str, Enum):
    none = "none"
    percentage = "percentage"
    fixed = "fixed"


class OfferType(str, Enum):
    percentage_discount = "percentage_discount"
    fixed_discount = "fixed_discount"
    bogo = "bogo"
    coupon = "coupon"


class BogoGetType(str, Enum):
    free = "free"
    percentage_discount = "percentage_discount"
    fixed_discount = "fixed_discount"


class DiscountNature(str, Enum):
    percentage = "percentage"
    fixed = "fixed"


class WindowStatus(str, Enum):
    no_window = "no_window"
    scheduled = "scheduled"
    active = "active"
    expired = "expired"
