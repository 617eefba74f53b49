from sqlalchemy import or_
from sqlalchemy.orm import Session, contains_eager
from typing import Optional
import uuid

from retrade.domain.models import Product
from .schemas import ProductFilters, ProductListing, ProductsPage

DEFAULT_PAGE_SIZE = 20

class DiscoveryService:
    """Read-only product browsing for buyers; only active listings are visible."""

    def __init__(self, db: Session):
        self.db = db

    def _active_with_seller(self):
        return (
            self.db.query(Product)
            .join(Product.seller)
            .options(contains_eager(Product.seller))
            .filter(Product.is_active.is_(True))
        )

    def _apply_filters(self, query, filters: ProductFilters):
        if filters.search:
            like = f"%{filters.search}%"
            query = query.filter(or_(
                Product.name.ilike(like),
                Product.description.ilike(like),
                Product.category.ilike(like),
            ))
        if filters.category:
            query = query.filter(Product.category.in_(filters.category))
        if filters.product_type:
            query = query.filter(Product.product_type == filters.product_type)
        if filters.condition:
            query = query.filter(Product.condition == filters.condition)
        # A zero bound means "no bound", as in the filter sidebar
        if filters.min_price:
            query = query.filter(Product.price >= filters.min_price)
        if filters.max_price:
            query = query.filter(Product.price <= filters.max_price)
        if filters.location:
            query = query.filter(Product.location.in_(filters.location))
        return query

    def get_products(
        self,
        filters: Optional[ProductFilters] = None,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
    ) -> ProductsPage:
        filters = filters or ProductFilters()
        page = max(page, 1)
        limit = max(limit, 1)
        query = self._apply_filters(self._active_with_seller(), filters)

        rows = (
            query.order_by(Product.created_at.desc(), Product.id)
            .limit(limit + 1)
            .offset((page - 1) * limit)
            .all()
        )
        has_more = len(rows) > limit
        rows = rows[:limit]
        total = query.count()
        return ProductsPage(
            products=[ProductListing.model_validate(p) for p in rows],
            total=total,
            has_more=has_more,
        )

    def search_products(self, query: str) -> ProductsPage:
        return self.get_products(ProductFilters(search=query))

    def get_product(self, product_id: uuid.UUID) -> Optional[ProductListing]:
        product = self._active_with_seller().filter(Product.id == product_id).first()
        return ProductListing.model_validate(product) if product else None

    def get_related_products(self, seller_id: uuid.UUID, product_id: uuid.UUID, limit: int = 4) -> list[ProductListing]:
        rows = (
            self._active_with_seller()
            .filter(Product.seller_id == seller_id, Product.id != product_id)
            .order_by(Product.created_at.desc())
            .limit(limit)
            .all()
        )
        return [ProductListing.model_validate(p) for p in rows]

    def get_categories(self) -> list[str]:
        rows = (
            self.db.query(Product.category)
            .filter(Product.is_active.is_(True))
            .distinct()
            .order_by(Product.category)
            .all()
        )
        return [r[0] for r in rows]

    def get_locations(self) -> list[str]:
        rows = (
            self.db.query(Product.location)
            .filter(Product.is_active.is_(True))
            .distinct()
            .order_by(Product.location)
            .all()
        )
        return [r[0] for r in rows]
