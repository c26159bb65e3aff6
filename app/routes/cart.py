from datetime import datetime

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.database.connection import get_db
from app.schemas.cart import CartQuoteRequest, CartQuoteResponse
from app.services.checkout_service import quote_cart

router = APIRouter(prefix="/cart", tags=["Cart & Checkout"])


@router.post("/quote", response_model=CartQuoteResponse)
def quote(request: CartQuoteRequest, db: Session = Depends(get_db)):
    return quote_cart(db, request, now=datetime.utcnow())
