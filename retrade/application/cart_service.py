from sqlalchemy import func
from sqlalchemy.orm import Session, contains_eager
from sqlalchemy.exc import SQLAlchemyError
from datetime import datetime
from typing import Optional
import uuid

from retrade.core.logging_config import get_logger
from retrade.domain.models import CartItem, Product, UserType
from .errors import ActionError, Forbidden, NotAuthenticated, NotFound
from .schemas import CartLine, CartSummary
from .session import SessionData

logger = get_logger(__name__)

PRODUCT_UNAVAILABLE = "Product not found or unavailable"
BAD_QUANTITY = "Quantity must be greater than 0"

def _require_login(session: Optional[SessionData], message: str) -> SessionData:
    if not session or not session.is_logged_in:
        raise NotAuthenticated(message)
    return session

class CartService:
    def __init__(self, db: Session):
        self.db = db

    def _active_product(self, product_id: uuid.UUID) -> Optional[Product]:
        return (
            self.db.query(Product)
            .filter(Product.id == product_id, Product.is_active.is_(True))
            .first()
        )

    def _own_line(self, buyer_id: uuid.UUID, cart_item_id: uuid.UUID) -> CartItem:
        item = (
            self.db.query(CartItem)
            .filter(CartItem.id == cart_item_id, CartItem.buyer_id == buyer_id)
            .first()
        )
        if not item:
            raise NotFound("Cart item not found")
        return item

    def add(self, session: Optional[SessionData], product_id: uuid.UUID, quantity: int = 1) -> CartItem:
        buyer = _require_login(session, "You must be logged in to add items to cart")
        if buyer.role != UserType.buyer:
            raise Forbidden("Only buyers can add items to cart")
        if quantity <= 0:
            raise ActionError(BAD_QUANTITY)
        if not self._active_product(product_id):
            raise NotFound(PRODUCT_UNAVAILABLE)

        item = (
            self.db.query(CartItem)
            .filter(CartItem.buyer_id == buyer.user_id, CartItem.product_id == product_id)
            .first()
        )
        if item:
            item.quantity += quantity
            item.added_at = datetime.utcnow()
        else:
            item = CartItem(buyer_id=buyer.user_id, product_id=product_id, quantity=quantity)
            self.db.add(item)
        try:
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.error("Cart add error", exc_info=True)
            raise ActionError("Failed to add item to cart", status_code=500)
        self.db.refresh(item)
        return item

    def update(self, session: Optional[SessionData], cart_item_id: uuid.UUID, quantity: int) -> CartItem:
        buyer = _require_login(session, "You must be logged in to update cart")
        if quantity <= 0:
            raise ActionError(BAD_QUANTITY)
        item = self._own_line(buyer.user_id, cart_item_id)
        item.quantity = quantity
        try:
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.error("Cart update error", exc_info=True)
            raise ActionError("Failed to update cart item", status_code=500)
        self.db.refresh(item)
        return item

    def remove(self, session: Optional[SessionData], cart_item_id: uuid.UUID) -> None:
        buyer = _require_login(session, "You must be logged in to remove items from cart")
        item = self._own_line(buyer.user_id, cart_item_id)
        self.db.delete(item)
        try:
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.error("Cart remove error", exc_info=True)
            raise ActionError("Failed to remove item from cart", status_code=500)

    def clear(self, session: Optional[SessionData]) -> None:
        buyer = _require_login(session, "You must be logged in to clear cart")
        self.db.query(CartItem).filter(CartItem.buyer_id == buyer.user_id).delete(synchronize_session=False)
        try:
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.error("Cart clear error", exc_info=True)
            raise ActionError("Failed to clear cart", status_code=500)

    def summary(self, session: Optional[SessionData]) -> CartSummary:
        if not session or not session.is_logged_in:
            return CartSummary()
        rows = (
            self.db.query(CartItem)
            .join(CartItem.product)
            .join(Product.seller)
            .options(contains_eager(CartItem.product).contains_eager(Product.seller))
            .filter(CartItem.buyer_id == session.user_id, Product.is_active.is_(True))
            .order_by(CartItem.added_at.desc())
            .all()
        )
        items = [CartLine.model_validate(row) for row in rows]
        return CartSummary(
            items=items,
            total_items=sum(item.quantity for item in items),
            total_amount=float(sum(item.product.price * item.quantity for item in items)),
        )

    def count(self, session: Optional[SessionData]) -> int:
        if not session or not session.is_logged_in:
            return 0
        return (
            self.db.query(func.count(CartItem.id))
            .filter(CartItem.buyer_id == session.user_id)
            .scalar()
        ) or 0

    def validate_item(self, product_id: uuid.UUID, quantity: int) -> dict:
        if not self._active_product(product_id):
            return {"valid": False, "message": PRODUCT_UNAVAILABLE}
        if quantity <= 0:
            return {"valid": False, "message": BAD_QUANTITY}
        return {"valid": True}
