import asyncio
import logging
from datetime import datetime

from sqlalchemy.orm import Session

from app.core.config import settings
from app.database.connection import SessionLocal
from app.services.product_service import sweep_expired_offers

logger = logging.getLogger(__name__)


def get_db_session() -> Session:
    return SessionLocal()


# ---------- OFFER EXPIRY SCHEDULER ----------

async def offer_expiry_scheduler_loop():
    """
    Loop that runs offer_expiry_sweep every OFFER_SWEEP_INTERVAL_SECONDS.
    """
    while True:
        try:
            await offer_expiry_sweep()
        except Exception:
            logger.exception("Offer expiry sweep failed")
        await asyncio.sleep(settings.OFFER_SWEEP_INTERVAL_SECONDS)


async def offer_expiry_sweep() -> int:
    """
    Clears ended inline offers and brings stored prices in line with
    scheduled offers that have started since the last run.
    """
    db = get_db_session()
    try:
        return sweep_expired_offers(db, datetime.utcnow())
    finally:
        db.close()
