from datetime import datetime
from sqlalchemy import Boolean, Column, DateTime, Float, Integer, JSON, String

from app.database.connection import Base


class Offer(Base):
    __tablename__ = "offers"

    id = Column(Integer, primary_key=True, index=True)
    offer_id = Column(String, unique=True, index=True)  # e.g. OFFER_1A2B3C4D
    title_en = Column(String, default="")
    title_ar = Column(String, default="")
    description_en = Column(String, nullable=True)
    description_ar = Column(String, nullable=True)

    type = Column(String, nullable=False, index=True)  # percentage_discount / fixed_discount / bogo / coupon
    discount_value = Column(Float, nullable=False, default=0.0)
    target_product_ids = Column(JSON, default=list)
    start_time = Column(DateTime, nullable=True)
    end_time = Column(DateTime, nullable=True)
    is_active = Column(Boolean, default=True, index=True)

    bogo_buy_product_id = Column(String, nullable=True)
    bogo_buy_quantity = Column(Integer, default=1)
    bogo_get_product_id = Column(String, nullable=True)
    bogo_get_quantity = Column(Integer, default=1)
    bogo_get_type = Column(String, default="free")  # free / percentage_discount / fixed_discount

    coupon_code = Column(String, nullable=True, unique=True, index=True)
    discount_nature = Column(String, default="fixed")  # percentage / fixed

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
