from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session
from sqlalchemy import func, text
from datetime import datetime

from app.database.connection import get_db
from app.dependencies.auth import require_admin
from app.schemas.system import HealthCheckResponse, SystemMetricsResponse
from app.models.coupon import Coupon
from app.models.offer import Offer
from app.models.product import Product
from app.services.offer_service import offer_from_row
from app.services.pricing_service.time_window import as_utc, is_live

router = APIRouter(tags=["System"])


@router.get("/health", response_model=HealthCheckResponse)
def health_check(request: Request, db: Session = Depends(get_db)):
    """
    Lightweight public health check.
    Returns ok + DB connectivity check (SELECT 1).
    """
    now = datetime.utcnow()
    start_time = getattr(request.app.state, "start_time", now)
    uptime_seconds = (now - start_time).total_seconds()

    db_ok = True
    extra = {}
    try:
        db.execute(text("SELECT 1"))
    except Exception as e:
        db_ok = False
        extra["db_error"] = str(e)

    status = "ok" if db_ok else "degraded"

    return HealthCheckResponse(
        status=status,
        now=now,
        uptime_seconds=uptime_seconds,
        db_ok=db_ok,
        extra=extra or None,
    )


@router.get("/metrics", response_model=SystemMetricsResponse, dependencies=[Depends(require_admin)])
def system_metrics(request: Request, db: Session = Depends(get_db)):
    """
    Admin-only system metrics in JSON form.
    Uses in-process counters stored on app.state.metrics and DB-derived metrics.
    """
    now = datetime.utcnow()
    start_time = getattr(request.app.state, "start_time", now)
    uptime_seconds = (now - start_time).total_seconds()

    metrics = getattr(request.app.state, "metrics", None) or {}
    requests_count = int(metrics.get("requests", 0))
    total_response_ms = float(metrics.get("total_response_ms", 0.0))
    avg_response_ms = (total_response_ms / requests_count) if requests_count > 0 else None

    products_total = db.query(func.count()).select_from(Product).scalar() or 0
    products_on_offer = (
        db.query(func.count())
        .select_from(Product)
        .filter(Product.is_offer.is_(True))
        .scalar()
    ) or 0

    # window checks run in python so naive and aware timestamps compare alike
    live_offers = sum(
        1
        for row in db.query(Offer).filter(Offer.is_active.is_(True)).all()
        if is_live(offer_from_row(row).window, now)
    )
    active_coupons = sum(
        1
        for row in db.query(Coupon).filter(Coupon.active.is_(True)).all()
        if (row.start_time is None or as_utc(row.start_time) <= as_utc(now))
        and (row.end_time is None or as_utc(row.end_time) >= as_utc(now))
    )

    return SystemMetricsResponse(
        uptime_seconds=uptime_seconds,
        now=now,
        requests_count=requests_count,
        avg_response_ms=avg_response_ms,
        price_evaluations=int(metrics.get("price_evaluations", 0)),
        products_total=int(products_total),
        products_on_offer=int(products_on_offer),
        live_offers=live_offers,
        active_coupons=active_coupons,
        extra=None,
    )
