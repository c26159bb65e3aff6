import asyncio
from datetime import datetime, timedelta
from decimal import Decimal

from starlette.responses import Response

from app.enums.offer_types import OfferType, VariantOfferType
from app.middleware.metrics import MetricsMiddleware, empty_metrics
from app.routes.system import health_check, system_metrics
from app.schemas.coupon import CouponCreate
from app.schemas.offer import OfferCreate
from app.schemas.pricing import OfferSpec, TimeWindow, VariantGroup, VariantOption
from app.schemas.product import ProductCreate
from app.services.coupon_service import create_coupon
from app.services.offer_service import create_offer
from app.services.product_service import apply_bulk_offer, create_product

D = Decimal


class SimpleState:
    pass


class SimpleApp:
    def __init__(self):
        self.state = SimpleState()


class SimpleReq:
    def __init__(self):
        self.app = SimpleApp()


def test_health_check_reports_db_and_uptime(db):
    req = SimpleReq()
    req.app.state.start_time = datetime.utcnow() - timedelta(seconds=30)

    health = health_check(req, db=db)
    assert health.status == "ok"
    assert health.db_ok is True
    assert health.uptime_seconds >= 30


def test_metrics_counts_catalog_and_promotions(db):
    now = datetime.utcnow()
    for product_id in ("SYS_A", "SYS_B"):
        create_product(
            db,
            ProductCreate(
                product_id=product_id,
                name_en=product_id,
                variants=[VariantGroup(options=[VariantOption(price=D("10"), original_price=D("10"))])],
            ),
            now=now,
        )
    apply_bulk_offer(db, "SYS_A", OfferSpec(offer_type=VariantOfferType.fixed, offer_value=D("1")), now=now)

    window = TimeWindow(start=now - timedelta(days=1), end=now + timedelta(days=1))
    create_offer(
        db,
        OfferCreate(title_en="Live", type=OfferType.percentage_discount, discount_value=D("5"),
                    target_product_ids=["SYS_B"], window=window),
    )
    create_offer(
        db,
        OfferCreate(title_en="Later", type=OfferType.percentage_discount, discount_value=D("5"),
                    target_product_ids=["SYS_B"],
                    window=TimeWindow(start=now + timedelta(days=2), end=now + timedelta(days=3))),
    )
    create_coupon(db, CouponCreate(code="SYSLIVE", value=D("10")))
    create_coupon(db, CouponCreate(code="SYSOLD", value=D("10"), window=TimeWindow(end=now - timedelta(days=1))))

    req = SimpleReq()
    req.app.state.metrics = {"requests": 4, "total_response_ms": 10.0, "price_evaluations": 2}

    metrics = system_metrics(req, db=db)
    assert metrics.requests_count == 4
    assert metrics.avg_response_ms == 2.5
    assert metrics.price_evaluations == 2
    assert metrics.products_total == 2
    assert metrics.products_on_offer == 1
    assert metrics.live_offers == 1
    assert metrics.active_coupons == 1


def test_metrics_middleware_counts_requests():
    req = SimpleReq()
    middleware = MetricsMiddleware(app=None)

    async def call_next(request):
        return Response("ok")

    response = asyncio.run(middleware.dispatch(req, call_next))
    assert response.status_code == 200
    assert req.app.state.metrics["requests"] == 1
    assert req.app.state.metrics["total_response_ms"] >= 0.0

    req.app.state.metrics = empty_metrics()
    asyncio.run(middleware.dispatch(req, call_next))
    asyncio.run(middleware.dispatch(req, call_next))
    assert req.app.state.metrics["requests"] == 2
