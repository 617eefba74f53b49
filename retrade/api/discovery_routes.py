from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import Optional
import uuid

from retrade.infrastructure.db import get_db
from retrade.application.discovery_service import DiscoveryService
from retrade.application.errors import NotFound
from retrade.application.schemas import (
    ProductFilters,
    ProductListing,
    ProductsPage,
    PRODUCT_CATEGORIES,
    PRODUCT_TYPES,
    PRODUCT_CONDITIONS,
    SRI_LANKAN_CITIES,
)

router = APIRouter(prefix="/api/products", tags=["products"])

@router.get("/", response_model=ProductsPage)
def list_products(
    db: Session = Depends(get_db),
    search: Optional[str] = Query(None, max_length=200),
    category: list[str] = Query([]),
    product_type: Optional[str] = None,
    condition: Optional[str] = None,
    min_price: Optional[float] = Query(None, ge=0),
    max_price: Optional[float] = Query(None, ge=0),
    location: list[str] = Query([]),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
):
    """Browse active listings with optional filtering and pagination"""
    filters = ProductFilters(
        search=search,
        category=category,
        product_type=product_type,
        condition=condition,
        min_price=min_price,
        max_price=max_price,
        location=location,
    )
    return DiscoveryService(db).get_products(filters, page=page, limit=limit)

@router.get("/search", response_model=ProductsPage)
def search_products(q: str = Query("", max_length=200), db: Session = Depends(get_db)):
    return DiscoveryService(db).search_products(q)

@router.get("/categories", response_model=list[str])
def list_categories(db: Session = Depends(get_db)):
    return DiscoveryService(db).get_categories()

@router.get("/locations", response_model=list[str])
def list_locations(db: Session = Depends(get_db)):
    return DiscoveryService(db).get_locations()

@router.get("/options")
def listing_options():
    """Fixed choices offered by the listing form and filter sidebar."""
    return {
        "categories": PRODUCT_CATEGORIES,
        "product_types": PRODUCT_TYPES,
        "conditions": PRODUCT_CONDITIONS,
        "locations": SRI_LANKAN_CITIES,
    }

@router.get("/{product_id}", response_model=ProductListing)
def get_product(product_id: uuid.UUID, db: Session = Depends(get_db)):
    product = DiscoveryService(db).get_product(product_id)
    if not product:
        raise NotFound("Product not found")
    return product

@router.get("/{product_id}/related", response_model=list[ProductListing])
def related_products(product_id: uuid.UUID, limit: int = Query(4, ge=1, le=20), db: Session = Depends(get_db)):
    service = DiscoveryService(db)
    product = service.get_product(product_id)
    if not product:
        raise NotFound("Product not found")
    return service.get_related_products(product.seller.id, product_id, limit=limit)
