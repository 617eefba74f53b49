from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import Optional
import uuid

from retrade.infrastructure.db import get_db
from retrade.application.errors import NotFound
from retrade.application.order_service import OrderService
from retrade.application.schemas import (
    CheckoutRequest,
    OrderRead,
    OrdersPage,
    OrderStats,
    OrderSummary,
    PlacedOrder,
)
from retrade.application.session import SessionData
from .deps import get_session, ok

router = APIRouter(prefix="/api/orders", tags=["orders"])

@router.post("/", response_model=PlacedOrder, status_code=201)
def place_order(
    payload: CheckoutRequest,
    session: Optional[SessionData] = Depends(get_session),
    db: Session = Depends(get_db),
):
    return OrderService(db).create(session, payload)

@router.get("/", response_model=OrdersPage)
def list_orders(
    session: Optional[SessionData] = Depends(get_session),
    db: Session = Depends(get_db),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
):
    return OrderService(db).list_for_buyer(session, page=page, limit=limit)

@router.get("/stats", response_model=OrderStats)
def order_stats(session: Optional[SessionData] = Depends(get_session), db: Session = Depends(get_db)):
    return OrderService(db).stats(session)

@router.get("/{order_id}", response_model=OrderRead)
def get_order(
    order_id: uuid.UUID,
    session: Optional[SessionData] = Depends(get_session),
    db: Session = Depends(get_db),
):
    order = OrderService(db).get(session, order_id)
    if not order:
        raise NotFound("Order not found")
    return order

@router.get("/{order_id}/summary", response_model=OrderSummary)
def get_order_summary(
    order_id: uuid.UUID,
    session: Optional[SessionData] = Depends(get_session),
    db: Session = Depends(get_db),
):
    return OrderService(db).summary(session, order_id)

@router.post("/{order_id}/cancel")
def cancel_order(
    order_id: uuid.UUID,
    session: Optional[SessionData] = Depends(get_session),
    db: Session = Depends(get_db),
):
    return ok(OrderService(db).cancel(session, order_id))
