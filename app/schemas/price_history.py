from pydantic import BaseModel
from datetime import datetime
from typing import List

class PriceHistoryResponse(BaseModel):
    id: int
    product_id: str
    variant_name: str
    option_value: str
    reason: str
    old_price: float
    new_price: float
    changed_at: datetime

    class Config:
        from_attributes = True

class PriceHistoryPageMeta(BaseModel):
    total: int
    page: int
    page_size: int
    total_pages: int

class PriceHistoryPageResponse(BaseModel):
    items: List[PriceHistoryResponse]
    meta: PriceHistoryPageMeta
