from datetime import datetime
from sqlalchemy import Boolean, Column, DateTime, Float, JSON, String

from app.database.connection import Base


class Coupon(Base):
    __tablename__ = "coupons"

    code = Column(String, primary_key=True, index=True)  # upper-cased on create
    discount_type = Column(String, nullable=False, default="percentage")  # percentage / fixed
    value = Column(Float, nullable=False)
    active = Column(Boolean, default=True, index=True)
    start_time = Column(DateTime, nullable=True)
    end_time = Column(DateTime, nullable=True)
    target_product_ids = Column(JSON, default=list)  # empty = site-wide

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
