from sqlalchemy import Boolean, Column, String, DateTime, JSON
from datetime import datetime
from app.database.connection import Base

class Product(Base):
    __tablename__ = "products"

    product_id = Column(String, primary_key=True, index=True)
    name_en = Column(String, nullable=False)
    name_ar = Column(String, default="")
    category = Column(JSON, default=list)  # category ids

    short_description_en = Column(String, nullable=True)
    short_description_ar = Column(String, nullable=True)
    image = Column(String, nullable=True)

    # Stored document: [{name_en, name_ar, options: [...]}, ...]
    variants = Column(JSON, default=list)
    optional_add_on_ids = Column(JSON, default=list)
    # True while any option is sold below its original price
    is_offer = Column(Boolean, default=False, index=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
