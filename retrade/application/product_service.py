from sqlalchemy import func, case, update, delete
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError
from decimal import Decimal
from typing import Optional
import math
import uuid

from retrade.core.logging_config import get_logger
from retrade.core_settings import get_settings
from retrade.domain.models import Product, CartItem, OrderItem, UserType
from retrade.infrastructure.blob_store import BlobStore
from .errors import ActionError, Forbidden, NotFound
from .images import ImageFile, validate_image, upload_images, delete_images
from .schemas import ProductInput, ProductRead, SellerProductsPage, Pagination, SellerStats
from .session import SessionData

logger = get_logger(__name__)
settings = get_settings()

SORT_COLUMNS = {
    "name": Product.name,
    "price": Product.price,
    "created_at": Product.created_at,
}

def require_seller(session: Optional[SessionData]) -> SessionData:
    if not session or not session.is_logged_in:
        raise ActionError("You must be logged in to manage products", status_code=401)
    if session.role != UserType.seller:
        raise Forbidden("Only sellers can manage products")
    return session

def _check_image_count(count: int) -> None:
    if count == 0:
        raise ActionError("At least one image is required")
    if count > settings.MAX_IMAGES_PER_PRODUCT:
        raise ActionError(f"Maximum {settings.MAX_IMAGES_PER_PRODUCT} images allowed")

def _check_image_files(images: list[ImageFile]) -> None:
    for image in images:
        valid, error = validate_image(image)
        if not valid:
            raise ActionError(error)

class ProductService:
    def __init__(self, db: Session, blob_store: BlobStore):
        self.db = db
        self.blob_store = blob_store

    def get(self, product_id: uuid.UUID) -> Optional[Product]:
        return self.db.get(Product, product_id)

    def _owned(self, session: SessionData, product_id: uuid.UUID) -> Product:
        product = self.get(product_id)
        if not product or product.seller_id != session.user_id:
            raise NotFound("Product not found")
        return product

    def _upload(self, images: list[ImageFile], failure_message: str) -> list[str]:
        results = upload_images(self.blob_store, images)
        urls = [r.url for r in results if r.success]
        if len(urls) != len(images):
            delete_images(self.blob_store, urls)
            raise ActionError(failure_message, status_code=502)
        return urls

    def create(self, session: Optional[SessionData], data: ProductInput, images: list[ImageFile]) -> Product:
        seller = require_seller(session)
        _check_image_count(len(images))
        _check_image_files(images)
        image_urls = self._upload(images, "Some images failed to upload")

        product = Product(
            seller_id=seller.user_id,
            name=data.name,
            description=data.description,
            category=data.category,
            product_type=data.product_type,
            condition=data.condition,
            price=Decimal(str(data.price)),
            images=image_urls,
            location=data.location,
            contact_number=data.contact_number,
            is_active=True,
        )
        try:
            self.db.add(product)
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            delete_images(self.blob_store, image_urls)
            logger.error("Product creation error", exc_info=True)
            raise ActionError("Failed to create product", status_code=500)
        self.db.refresh(product)
        logger.info(f"Seller {seller.user_id} created product {product.id}")
        return product

    def update(
        self,
        session: Optional[SessionData],
        product_id: uuid.UUID,
        data: ProductInput,
        new_images: list[ImageFile],
        removed_urls: list[str],
    ) -> Product:
        seller = require_seller(session)
        product = self._owned(seller, product_id)

        current = list(product.images or [])
        # Only URLs that belong to this product may be removed from storage
        removed = [url for url in current if url in set(removed_urls or [])]
        kept = [url for url in current if url not in removed]
        _check_image_count(len(kept) + len(new_images))
        _check_image_files(new_images)
        new_urls = self._upload(new_images, "Some new images failed to upload") if new_images else []

        product.name = data.name
        product.description = data.description
        product.category = data.category
        product.product_type = data.product_type
        product.condition = data.condition
        product.price = Decimal(str(data.price))
        product.images = kept + new_urls
        product.location = data.location
        product.contact_number = data.contact_number
        try:
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            delete_images(self.blob_store, new_urls)
            logger.error("Product update error", exc_info=True)
            raise ActionError("Failed to update product", status_code=500)

        if removed:
            delete_images(self.blob_store, removed)
        self.db.refresh(product)
        return product

    def delete(self, session: Optional[SessionData], product_id: uuid.UUID) -> None:
        seller = require_seller(session)
        product = self._owned(seller, product_id)
        images = list(product.images or [])
        try:
            self.db.execute(delete(CartItem).where(CartItem.product_id == product.id))
            # Order history keeps its name/price snapshot
            self.db.execute(
                update(OrderItem).where(OrderItem.product_id == product.id).values(product_id=None)
            )
            self.db.delete(product)
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.error("Product deletion error", exc_info=True)
            raise ActionError("Failed to delete product", status_code=500)
        if images:
            delete_images(self.blob_store, images)
        logger.info(f"Seller {seller.user_id} deleted product {product_id}")

    def toggle_status(self, session: Optional[SessionData], product_id: uuid.UUID) -> tuple[bool, str]:
        seller = require_seller(session)
        product = self._owned(seller, product_id)
        product.is_active = not product.is_active
        try:
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.error("Product status toggle error", exc_info=True)
            raise ActionError("Failed to update product status", status_code=500)
        state = "activated" if product.is_active else "deactivated"
        return product.is_active, f"Product {state} successfully"

    def list_for_seller(
        self,
        seller_id: uuid.UUID,
        page: int = 1,
        limit: int = 10,
        category: Optional[str] = None,
        condition: Optional[str] = None,
        status: Optional[bool] = None,
        search: Optional[str] = None,
        sort_by: str = "created_at",
        sort_order: str = "desc",
    ) -> SellerProductsPage:
        page = max(page, 1)
        limit = max(limit, 1)
        query = self.db.query(Product).filter(Product.seller_id == seller_id)
        if category:
            query = query.filter(Product.category == category)
        if condition:
            query = query.filter(Product.condition == condition)
        if status is not None:
            query = query.filter(Product.is_active == status)
        if search:
            query = query.filter(Product.name.ilike(f"%{search}%"))

        total = query.count()
        column = SORT_COLUMNS.get(sort_by, Product.created_at)
        ordering = column.asc() if sort_order == "asc" else column.desc()
        products = query.order_by(ordering).limit(limit).offset((page - 1) * limit).all()
        return SellerProductsPage(
            products=[ProductRead.model_validate(p) for p in products],
            pagination=Pagination(
                page=page,
                limit=limit,
                total=total,
                total_pages=math.ceil(total / limit),
            ),
        )

    def dashboard_stats(self, seller_id: uuid.UUID) -> SellerStats:
        total, active, value = self.db.query(
            func.count(Product.id),
            func.coalesce(func.sum(case((Product.is_active.is_(True), 1), else_=0)), 0),
            func.coalesce(func.sum(Product.price), 0),
        ).filter(Product.seller_id == seller_id).one()
        return SellerStats(total_products=total, active_products=int(active), total_value=float(value))
