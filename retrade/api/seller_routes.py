from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from sqlalchemy.orm import Session
from typing import Optional
import uuid

from retrade.infrastructure.db import get_db
from retrade.infrastructure.blob_store import BlobStore, get_blob_store
from retrade.application.errors import NotFound
from retrade.application.images import non_empty_images
from retrade.application.product_service import ProductService, require_seller
from retrade.application.schemas import ProductInput, ProductRead, SellerProductsPage, SellerStats
from retrade.application.session import SessionData
from .deps import get_session, parse_form, ok

router = APIRouter(prefix="/api/seller/products", tags=["seller"])

def _product_form(
    name: str = Form(""),
    description: str = Form(""),
    category: str = Form(""),
    product_type: str = Form(""),
    condition: str = Form(""),
    price: str = Form(""),
    location: str = Form(""),
    contact_number: str = Form(""),
) -> dict:
    return {
        "name": name,
        "description": description,
        "category": category,
        "product_type": product_type,
        "condition": condition,
        "price": price,
        "location": location,
        "contact_number": contact_number,
    }

@router.get("/", response_model=SellerProductsPage)
def list_my_products(
    session: Optional[SessionData] = Depends(get_session),
    db: Session = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    category: Optional[str] = None,
    condition: Optional[str] = None,
    status: Optional[bool] = None,
    search: Optional[str] = Query(None, max_length=100),
    sort_by: str = Query("created_at", pattern="^(name|price|created_at)$"),
    sort_order: str = Query("desc", pattern="^(asc|desc)$"),
):
    seller = require_seller(session)
    return ProductService(db, blob_store).list_for_seller(
        seller.user_id,
        page=page,
        limit=limit,
        category=category,
        condition=condition,
        status=status,
        search=search,
        sort_by=sort_by,
        sort_order=sort_order,
    )

@router.get("/stats", response_model=SellerStats)
def my_stats(
    session: Optional[SessionData] = Depends(get_session),
    db: Session = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store),
):
    seller = require_seller(session)
    return ProductService(db, blob_store).dashboard_stats(seller.user_id)

@router.post("/", status_code=201)
def create_product(
    fields: dict = Depends(_product_form),
    images: list[UploadFile] = File([]),
    session: Optional[SessionData] = Depends(get_session),
    db: Session = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store),
):
    require_seller(session)
    data = parse_form(ProductInput, fields)
    product = ProductService(db, blob_store).create(session, data, non_empty_images(images))
    return ok("Product created successfully", product=ProductRead.model_validate(product).model_dump(mode="json"))

@router.get("/{product_id}", response_model=ProductRead)
def get_my_product(
    product_id: uuid.UUID,
    session: Optional[SessionData] = Depends(get_session),
    db: Session = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store),
):
    seller = require_seller(session)
    product = ProductService(db, blob_store).get(product_id)
    if not product or product.seller_id != seller.user_id:
        raise NotFound("Product not found")
    return product

@router.put("/{product_id}")
def update_product(
    product_id: uuid.UUID,
    fields: dict = Depends(_product_form),
    images: list[UploadFile] = File([]),
    removed_images: list[str] = Form([]),
    session: Optional[SessionData] = Depends(get_session),
    db: Session = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store),
):
    require_seller(session)
    data = parse_form(ProductInput, fields)
    product = ProductService(db, blob_store).update(
        session, product_id, data, non_empty_images(images), removed_images
    )
    return ok("Product updated successfully", product=ProductRead.model_validate(product).model_dump(mode="json"))

@router.delete("/{product_id}")
def delete_product(
    product_id: uuid.UUID,
    session: Optional[SessionData] = Depends(get_session),
    db: Session = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store),
):
    ProductService(db, blob_store).delete(session, product_id)
    return ok("Product deleted successfully")

@router.post("/{product_id}/toggle")
def toggle_product_status(
    product_id: uuid.UUID,
    session: Optional[SessionData] = Depends(get_session),
    db: Session = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store),
):
    is_active, message = ProductService(db, blob_store).toggle_status(session, product_id)
    return ok(message, is_active=is_active)
