from sqlalchemy import func, case
from sqlalchemy.orm import Session, selectinload
from sqlalchemy.exc import SQLAlchemyError
from typing import Optional
import secrets
import string
import time
import uuid

from retrade.core.logging_config import get_logger
from retrade.domain.models import CartItem, Order, OrderItem, OrderStatus, Product, UserType
from .errors import ActionError, Forbidden, NotAuthenticated, NotFound
from .schemas import (
    CheckoutRequest,
    OrderRead,
    OrderListEntry,
    OrdersPage,
    OrderSummary,
    OrderTotals,
    OrderStats,
    PlacedOrder,
)
from .session import SessionData

logger = get_logger(__name__)

_ORDER_SUFFIX_ALPHABET = string.digits + string.ascii_uppercase

def generate_order_number() -> str:
    """RT- followed by the last six digits of the millisecond clock and four random characters."""
    timestamp = str(int(time.time() * 1000))
    suffix = "".join(secrets.choice(_ORDER_SUFFIX_ALPHABET) for _ in range(4))
    return f"RT-{timestamp[-6:]}{suffix}"

def _require_login(session: Optional[SessionData], message: str) -> SessionData:
    if not session or not session.is_logged_in:
        raise NotAuthenticated(message)
    return session

class OrderService:
    def __init__(self, db: Session):
        self.db = db

    def _unique_order_number(self) -> str:
        while True:
            number = generate_order_number()
            exists = self.db.query(Order.id).filter(Order.order_number == number).first()
            if not exists:
                return number

    def create(self, session: Optional[SessionData], checkout: CheckoutRequest) -> PlacedOrder:
        buyer = _require_login(session, "You must be logged in to place an order")
        if buyer.role != UserType.buyer:
            raise Forbidden("Only buyers can place orders")

        cart_rows = (
            self.db.query(CartItem, Product)
            .join(Product, CartItem.product_id == Product.id)
            .filter(CartItem.buyer_id == buyer.user_id)
            .all()
        )
        if not cart_rows:
            raise ActionError("Your cart is empty")
        if any(not product.is_active for _, product in cart_rows):
            raise ActionError("Some items in your cart are no longer available")

        total = sum(product.price * line.quantity for line, product in cart_rows)
        order = Order(
            order_number=self._unique_order_number(),
            buyer_id=buyer.user_id,
            total_amount=total,
            status=OrderStatus.pending,
            buyer_name=checkout.buyer_name,
            buyer_email=checkout.buyer_email,
            buyer_phone=checkout.buyer_phone,
            shipping_address=checkout.shipping_address,
            items=[
                OrderItem(
                    product_id=product.id,
                    quantity=line.quantity,
                    price=product.price,
                    product_name=product.name,
                )
                for line, product in cart_rows
            ],
        )
        # Order, its items and the cart clear-out commit together or not at all
        try:
            self.db.add(order)
            self.db.query(CartItem).filter(CartItem.buyer_id == buyer.user_id).delete(synchronize_session=False)
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.error("Error creating order", exc_info=True)
            raise ActionError("Failed to create order", status_code=500)

        logger.info(
            f"Order {order.order_number} placed",
            extra={'extra_fields': {'order_id': str(order.id), 'lines': len(cart_rows), 'total': str(total)}},
        )
        return PlacedOrder(order_id=order.id, order_number=order.order_number)

    def _own_order(self, buyer_id: uuid.UUID, order_id: uuid.UUID) -> Optional[Order]:
        return (
            self.db.query(Order)
            .options(selectinload(Order.items).selectinload(OrderItem.product))
            .filter(Order.id == order_id, Order.buyer_id == buyer_id)
            .first()
        )

    def get(self, session: Optional[SessionData], order_id: uuid.UUID) -> Optional[OrderRead]:
        buyer = _require_login(session, "You must be logged in to view orders")
        order = self._own_order(buyer.user_id, order_id)
        return OrderRead.model_validate(order) if order else None

    def list_for_buyer(self, session: Optional[SessionData], page: int = 1, limit: int = 10) -> OrdersPage:
        buyer = _require_login(session, "You must be logged in to view orders")
        page = max(page, 1)
        limit = max(limit, 1)
        query = self.db.query(Order).filter(Order.buyer_id == buyer.user_id)
        rows = (
            query.order_by(Order.created_at.desc())
            .limit(limit + 1)
            .offset((page - 1) * limit)
            .all()
        )
        has_more = len(rows) > limit
        return OrdersPage(
            orders=[OrderListEntry.model_validate(o) for o in rows[:limit]],
            total=query.count(),
            has_more=has_more,
        )

    def summary(self, session: Optional[SessionData], order_id: uuid.UUID) -> OrderSummary:
        _require_login(session, "You must be logged in to view order summary")
        order = self.get(session, order_id)
        if not order:
            raise NotFound("Order not found")
        subtotal = float(order.total_amount)
        return OrderSummary(
            order=order,
            summary=OrderTotals(
                total_items=sum(item.quantity for item in order.items),
                subtotal=subtotal,
                delivery_fee=0,
                total=subtotal,
            ),
        )

    def cancel(self, session: Optional[SessionData], order_id: uuid.UUID) -> str:
        buyer = _require_login(session, "You must be logged in to cancel orders")
        order = (
            self.db.query(Order)
            .filter(Order.id == order_id, Order.buyer_id == buyer.user_id)
            .first()
        )
        if not order:
            raise NotFound("Order not found")
        if order.status != OrderStatus.pending:
            raise ActionError("Only pending orders can be cancelled")
        order.status = OrderStatus.cancelled
        try:
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.error("Order cancel error", exc_info=True)
            raise ActionError("Failed to cancel order", status_code=500)
        logger.info(f"Order {order.order_number} cancelled")
        return "Order cancelled successfully"

    def stats(self, session: Optional[SessionData]) -> OrderStats:
        if not session or not session.is_logged_in:
            return OrderStats()
        total, spent, pending, confirmed = (
            self.db.query(
                func.count(Order.id),
                func.coalesce(func.sum(Order.total_amount), 0),
                func.coalesce(func.sum(case((Order.status == OrderStatus.pending, 1), else_=0)), 0),
                func.coalesce(func.sum(case((Order.status == OrderStatus.confirmed, 1), else_=0)), 0),
            )
            .filter(Order.buyer_id == session.user_id)
            .one()
        )
        return OrderStats(
            total_orders=total,
            total_spent=float(spent),
            pending_orders=int(pending),
            completed_orders=int(confirmed),
        )
