from pydantic import BaseModel
from typing import Optional, Dict, Any
from datetime import datetime


class HealthCheckResponse(BaseModel):
    status: str
    now: datetime
    uptime_seconds: float
    db_ok: bool
    extra: Optional[Dict[str, Any]] = None


class SystemMetricsResponse(BaseModel):
    uptime_seconds: float
    now: datetime

    # middleware counters
    requests_count: int
    avg_response_ms: Optional[float] = None
    price_evaluations: int = 0

    # catalog / promotion counts
    products_total: int
    products_on_offer: int
    live_offers: int
    active_coupons: int

    extra: Optional[Dict[str, Any]] = None
