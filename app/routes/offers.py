from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.database.connection import get_db
from app.dependencies.auth import require_admin
from app.enums.offer_types import OfferType
from app.schemas.offer import OfferCreate, OfferResponse, OfferStatusResponse, OfferUpdate
from app.services.offer_service import (
    create_offer,
    delete_offer,
    get_offer,
    list_offers,
    offer_response,
    offer_status,
    set_offer_active,
    update_offer,
)

router = APIRouter(prefix="/offers", tags=["Offers"])


# ---------- CREATE OFFER ----------

@router.post("/", response_model=OfferResponse, dependencies=[Depends(require_admin)])
def create_offer_route(data: OfferCreate, db: Session = Depends(get_db)):
    return offer_response(create_offer(db, data), datetime.utcnow())


# ---------- LIST OFFERS ----------

@router.get("/", response_model=List[OfferResponse])
def list_offers_route(
    type: Optional[OfferType] = None,
    active_only: bool = False,
    db: Session = Depends(get_db),
):
    now = datetime.utcnow()
    return [offer_response(row, now) for row in list_offers(db, offer_type=type, active_only=active_only)]


# ---------- GET SINGLE OFFER ----------

@router.get("/{offer_id}", response_model=OfferResponse)
def get_offer_route(offer_id: str, db: Session = Depends(get_db)):
    row = get_offer(db, offer_id)
    if not row:
        raise HTTPException(status_code=404, detail="Offer not found")
    return offer_response(row, datetime.utcnow())


@router.get("/{offer_id}/status", response_model=OfferStatusResponse)
def offer_status_route(offer_id: str, at: Optional[datetime] = None, db: Session = Depends(get_db)):
    row = get_offer(db, offer_id)
    if not row:
        raise HTTPException(status_code=404, detail="Offer not found")
    return offer_status(row, at or datetime.utcnow())


# ---------- UPDATE / TOGGLE / DELETE ----------

@router.put("/{offer_id}", response_model=OfferResponse, dependencies=[Depends(require_admin)])
def update_offer_route(offer_id: str, data: OfferUpdate, db: Session = Depends(get_db)):
    row = update_offer(db, offer_id, data)
    if not row:
        raise HTTPException(status_code=404, detail="Offer not found")
    return offer_response(row, datetime.utcnow())


@router.post("/{offer_id}/activate", response_model=OfferResponse, dependencies=[Depends(require_admin)])
def activate_offer_route(offer_id: str, db: Session = Depends(get_db)):
    row = set_offer_active(db, offer_id, True)
    if not row:
        raise HTTPException(status_code=404, detail="Offer not found")
    return offer_response(row, datetime.utcnow())


@router.post("/{offer_id}/deactivate", response_model=OfferResponse, dependencies=[Depends(require_admin)])
def deactivate_offer_route(offer_id: str, db: Session = Depends(get_db)):
    row = set_offer_active(db, offer_id, False)
    if not row:
        raise HTTPException(status_code=404, detail="Offer not found")
    return offer_response(row, datetime.utcnow())


@router.delete("/{offer_id}", dependencies=[Depends(require_admin)])
def delete_offer_route(offer_id: str, db: Session = Depends(get_db)):
    if not delete_offer(db, offer_id):
        raise HTTPException(status_code=404, detail="Offer not found")
    return {"message": "Offer deleted"}
