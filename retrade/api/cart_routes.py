from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import Optional
import uuid

from retrade.infrastructure.db import get_db
from retrade.application.cart_service import CartService
from retrade.application.schemas import CartAddRequest, CartUpdateRequest, CartSummary
from retrade.application.session import SessionData
from .deps import get_session, ok

router = APIRouter(prefix="/api/cart", tags=["cart"])

@router.get("/", response_model=CartSummary)
def get_cart(session: Optional[SessionData] = Depends(get_session), db: Session = Depends(get_db)):
    return CartService(db).summary(session)

@router.get("/count")
def cart_count(session: Optional[SessionData] = Depends(get_session), db: Session = Depends(get_db)):
    return {"count": CartService(db).count(session)}

@router.post("/")
def add_to_cart(
    payload: CartAddRequest,
    session: Optional[SessionData] = Depends(get_session),
    db: Session = Depends(get_db),
):
    CartService(db).add(session, payload.product_id, payload.quantity)
    return ok("Item added to cart successfully")

@router.post("/validate")
def validate_cart_item(payload: CartAddRequest, db: Session = Depends(get_db)):
    return CartService(db).validate_item(payload.product_id, payload.quantity)

@router.patch("/{cart_item_id}")
def update_cart_item(
    cart_item_id: uuid.UUID,
    payload: CartUpdateRequest,
    session: Optional[SessionData] = Depends(get_session),
    db: Session = Depends(get_db),
):
    CartService(db).update(session, cart_item_id, payload.quantity)
    return ok("Cart updated successfully")

@router.delete("/{cart_item_id}")
def remove_from_cart(
    cart_item_id: uuid.UUID,
    session: Optional[SessionData] = Depends(get_session),
    db: Session = Depends(get_db),
):
    CartService(db).remove(session, cart_item_id)
    return ok("Item removed from cart")

@router.delete("/")
def clear_cart(session: Optional[SessionData] = Depends(get_session), db: Session = Depends(get_db)):
    CartService(db).clear(session)
    return ok("Cart cleared successfully")
