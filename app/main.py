import asyncio
import logging
from fastapi import FastAPI
from datetime import datetime
from app.core.config import settings
from app.middleware.metrics import MetricsMiddleware, empty_metrics
from app.routes import system
from app.database.connection import Base, engine
from app.models import coupon, offer, price_history, product, user  # noqa: F401  (register tables)
from app.routes.products import router as product_router
from app.routes.offers import router as offers_router
from app.routes.coupons import router as coupons_router
from app.routes.cart import router as cart_router
from app.routes.pricing.calculate_price import router as calculate_price_router
from app.services.scheduler_service import offer_expiry_scheduler_loop
from app.routes.auth import router as auth_router

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

Base.metadata.create_all(bind=engine)

app = FastAPI(title="Storefront Offers & Promotions Pricing Service")

app.add_middleware(MetricsMiddleware)


app.include_router(auth_router)
app.include_router(product_router)
app.include_router(calculate_price_router)
app.include_router(offers_router)
app.include_router(coupons_router)
app.include_router(cart_router)
app.include_router(system.router)

@app.on_event("startup")
async def startup_event():
    asyncio.create_task(offer_expiry_scheduler_loop())
    app.state.start_time = datetime.utcnow()
    app.state.metrics = empty_metrics()
