"""
Server-rendered pages.

Forms post back to these routes; failures re-render the form (or redirect)
with the message shown as a flash notice, successes redirect.
"""
from fastapi import APIRouter, Depends, Form, Query, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import RedirectResponse
from fastapi.templating import Jinja2Templates
from sqlalchemy.orm import Session
from pathlib import Path
from typing import Optional
from urllib.parse import urlencode
import uuid

from retrade.infrastructure.db import get_db
from retrade.infrastructure.blob_store import BlobStore, get_blob_store
from retrade.application.auth_service import AuthService
from retrade.application.cart_service import CartService
from retrade.application.discovery_service import DiscoveryService
from retrade.application.errors import ActionError
from retrade.application.images import non_empty_images, format_file_size
from retrade.application.order_service import OrderService
from retrade.application.product_service import ProductService
from retrade.application.schemas import (
    CheckoutRequest,
    LoginRequest,
    ProductFilters,
    ProductInput,
    RegisterRequest,
    PRODUCT_CATEGORIES,
    PRODUCT_TYPES,
    PRODUCT_CONDITIONS,
    SRI_LANKAN_CITIES,
)
from retrade.application.session import (
    read_session,
    redirect_path_for,
    set_session_cookie,
    clear_session_cookie,
)
from retrade.core_settings import get_settings
from retrade.domain.models import UserType
from .deps import parse_form

settings = get_settings()
TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "templates"
templates = Jinja2Templates(directory=str(TEMPLATES_DIR))
templates.env.filters["lkr"] = lambda value: f"LKR {float(value):,.2f}"

router = APIRouter(include_in_schema=False)

PRODUCT_FIELDS = (
    "name", "description", "category", "product_type",
    "condition", "price", "location", "contact_number",
)

# ---------- helpers ----------

def _render(request: Request, name: str, status_code: int = 200, **context):
    context.setdefault("session", read_session(request))
    context.setdefault("notice", request.query_params.get("notice"))
    context.setdefault("error", request.query_params.get("error"))
    return templates.TemplateResponse(request, name, context, status_code=status_code)

def _redirect(url: str, notice: Optional[str] = None, error: Optional[str] = None) -> RedirectResponse:
    params = {k: v for k, v in (("notice", notice), ("error", error)) if v}
    if params:
        url = f"{url}{'&' if '?' in url else '?'}{urlencode(params)}"
    return RedirectResponse(url, status_code=303)

def _require_role(request: Request, role: UserType):
    session = read_session(request)
    if not session or not session.has_role(role):
        return None, RedirectResponse(f"/login?{urlencode({'redirect': redirect_path_for(role)})}", status_code=303)
    return session, None

def _to_int(raw: Optional[str], default: int) -> Optional[int]:
    """Lenient integer parsing for query strings and form fields; None when malformed"""
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        return None

def _safe_redirect(target: Optional[str], fallback: str) -> str:
    # Only same-site paths
    if target and target.startswith("/") and not target.startswith("//"):
        return target
    return fallback

# ---------- public ----------

@router.get("/")
def home(request: Request):
    return _render(request, "index.html")

@router.get("/login")
def login_page(request: Request, redirect: Optional[str] = None):
    return _render(request, "login.html", redirect=redirect, form={})

@router.post("/login")
def login_action(
    request: Request,
    email: str = Form(""),
    password: str = Form(""),
    redirect: Optional[str] = Form(None),
    db: Session = Depends(get_db),
):
    try:
        data = parse_form(LoginRequest, {"email": email, "password": password})
        result = AuthService(db).login(data)
    except ActionError as e:
        return _render(request, "login.html", status_code=400, error=e.message,
                       redirect=redirect, form={"email": email})
    target = result.redirect_path
    if redirect and redirect.startswith(target):
        target = _safe_redirect(redirect, target)
    response = _redirect(target, notice="Login successful")
    set_session_cookie(response, result.session)
    return response

@router.get("/register")
def register_page(request: Request):
    return _render(request, "register.html", form={})

@router.post("/register")
def register_action(
    request: Request,
    name: str = Form(""),
    email: str = Form(""),
    password: str = Form(""),
    phone: str = Form(""),
    user_type: str = Form("buyer"),
    db: Session = Depends(get_db),
):
    fields = {"name": name, "email": email, "password": password, "phone": phone, "user_type": user_type or "buyer"}
    try:
        AuthService(db).register(parse_form(RegisterRequest, fields))
    except ActionError as e:
        fields.pop("password")
        return _render(request, "register.html", status_code=400, error=e.message, form=fields)
    return _redirect("/login", notice="User registered successfully")

@router.post("/logout")
def logout_action():
    response = _redirect("/login", notice="Logged out successfully")
    clear_session_cookie(response)
    return response

# ---------- buyer ----------

@router.get("/buyer/")
@router.get("/buyer/products")
def browse_products(
    request: Request,
    db: Session = Depends(get_db),
    search: Optional[str] = None,
    category: list[str] = Query([]),
    product_type: Optional[str] = None,
    condition: Optional[str] = None,
    min_price: Optional[str] = None,
    max_price: Optional[str] = None,
    location: list[str] = Query([]),
    page: Optional[str] = None,
):
    session, denied = _require_role(request, UserType.buyer)
    if denied:
        return denied

    def _price(raw: Optional[str]) -> Optional[float]:
        try:
            return float(raw) if raw else None
        except ValueError:
            return None

    page = max(_to_int(page, 1) or 1, 1)
    filters = ProductFilters(
        search=search or None,
        category=category,
        product_type=product_type or None,
        condition=condition or None,
        min_price=_price(min_price),
        max_price=_price(max_price),
        location=location,
    )
    result = DiscoveryService(db).get_products(filters, page=page)
    query_without_page = [(k, v) for k, v in request.query_params.multi_items() if k != "page"]
    return _render(
        request,
        "buyer/products.html",
        result=result,
        filters=filters,
        page=page,
        base_query=urlencode(query_without_page),
        categories=PRODUCT_CATEGORIES,
        product_types=PRODUCT_TYPES,
        conditions=PRODUCT_CONDITIONS,
        locations=SRI_LANKAN_CITIES,
        cart_count=CartService(db).count(session),
    )

@router.get("/buyer/products/{product_id}")
def product_detail(request: Request, product_id: uuid.UUID, db: Session = Depends(get_db)):
    session, denied = _require_role(request, UserType.buyer)
    if denied:
        return denied
    service = DiscoveryService(db)
    product = service.get_product(product_id)
    if not product:
        return _render(request, "not_found.html", status_code=404, what="Product")
    return _render(
        request,
        "buyer/product_detail.html",
        product=product,
        related=service.get_related_products(product.seller.id, product.id),
        cart_count=CartService(db).count(session),
    )

@router.post("/buyer/cart/add")
def add_to_cart_action(
    request: Request,
    product_id: uuid.UUID = Form(...),
    quantity: Optional[str] = Form(None),
    db: Session = Depends(get_db),
):
    session, denied = _require_role(request, UserType.buyer)
    if denied:
        return denied
    try:
        CartService(db).add(session, product_id, _to_int(quantity, 1) or 0)
    except ActionError as e:
        return _redirect(f"/buyer/products/{product_id}", error=e.message)
    return _redirect("/buyer/cart", notice="Item added to cart successfully")

@router.get("/buyer/cart")
def cart_page(request: Request, db: Session = Depends(get_db)):
    session, denied = _require_role(request, UserType.buyer)
    if denied:
        return denied
    cart = CartService(db).summary(session)
    return _render(request, "buyer/cart.html", cart=cart, cart_count=len(cart.items))

@router.post("/buyer/cart/clear")
def clear_cart_action(request: Request, db: Session = Depends(get_db)):
    session, denied = _require_role(request, UserType.buyer)
    if denied:
        return denied
    try:
        CartService(db).clear(session)
    except ActionError as e:
        return _redirect("/buyer/cart", error=e.message)
    return _redirect("/buyer/cart", notice="Cart cleared successfully")

@router.post("/buyer/cart/{cart_item_id}/update")
def update_cart_action(
    request: Request,
    cart_item_id: uuid.UUID,
    quantity: Optional[str] = Form(None),
    db: Session = Depends(get_db),
):
    session, denied = _require_role(request, UserType.buyer)
    if denied:
        return denied
    try:
        CartService(db).update(session, cart_item_id, _to_int(quantity, 0) or 0)
    except ActionError as e:
        return _redirect("/buyer/cart", error=e.message)
    return _redirect("/buyer/cart", notice="Cart updated successfully")

@router.post("/buyer/cart/{cart_item_id}/remove")
def remove_cart_action(request: Request, cart_item_id: uuid.UUID, db: Session = Depends(get_db)):
    session, denied = _require_role(request, UserType.buyer)
    if denied:
        return denied
    try:
        CartService(db).remove(session, cart_item_id)
    except ActionError as e:
        return _redirect("/buyer/cart", error=e.message)
    return _redirect("/buyer/cart", notice="Item removed from cart")

@router.get("/buyer/checkout")
def checkout_page(request: Request, db: Session = Depends(get_db)):
    session, denied = _require_role(request, UserType.buyer)
    if denied:
        return denied
    cart = CartService(db).summary(session)
    if not cart.items:
        return _redirect("/buyer/cart", error="Your cart is empty")
    user = AuthService(db).current_user(session)
    form = {
        "buyer_name": user.name if user else "",
        "buyer_email": user.email if user else "",
        "buyer_phone": user.phone if user else "",
        "shipping_address": "",
    }
    return _render(request, "buyer/checkout.html", cart=cart, form=form, cart_count=len(cart.items))

@router.post("/buyer/checkout")
def checkout_action(
    request: Request,
    buyer_name: str = Form(""),
    buyer_email: str = Form(""),
    buyer_phone: str = Form(""),
    shipping_address: str = Form(""),
    db: Session = Depends(get_db),
):
    session, denied = _require_role(request, UserType.buyer)
    if denied:
        return denied
    form = {
        "buyer_name": buyer_name,
        "buyer_email": buyer_email,
        "buyer_phone": buyer_phone,
        "shipping_address": shipping_address,
    }
    try:
        placed = OrderService(db).create(session, parse_form(CheckoutRequest, form))
    except ActionError as e:
        cart = CartService(db).summary(session)
        return _render(request, "buyer/checkout.html", status_code=e.status_code, error=e.message,
                       cart=cart, form=form, cart_count=len(cart.items))
    return _redirect(f"/buyer/orders/{placed.order_id}", notice=placed.message)

@router.get("/buyer/orders")
def orders_page(request: Request, page: Optional[str] = None, db: Session = Depends(get_db)):
    session, denied = _require_role(request, UserType.buyer)
    if denied:
        return denied
    page = max(_to_int(page, 1) or 1, 1)
    service = OrderService(db)
    return _render(
        request,
        "buyer/orders.html",
        result=service.list_for_buyer(session, page=page),
        stats=service.stats(session),
        page=page,
        cart_count=CartService(db).count(session),
    )

@router.get("/buyer/orders/{order_id}")
def order_detail_page(request: Request, order_id: uuid.UUID, db: Session = Depends(get_db)):
    session, denied = _require_role(request, UserType.buyer)
    if denied:
        return denied
    try:
        summary = OrderService(db).summary(session, order_id)
    except ActionError:
        return _render(request, "not_found.html", status_code=404, what="Order")
    return _render(request, "buyer/order_detail.html", order=summary.order, summary=summary.summary,
                   cart_count=CartService(db).count(session))

@router.post("/buyer/orders/{order_id}/cancel")
def cancel_order_action(request: Request, order_id: uuid.UUID, db: Session = Depends(get_db)):
    session, denied = _require_role(request, UserType.buyer)
    if denied:
        return denied
    try:
        message = OrderService(db).cancel(session, order_id)
    except ActionError as e:
        return _redirect(f"/buyer/orders/{order_id}", error=e.message)
    return _redirect(f"/buyer/orders/{order_id}", notice=message)

# ---------- seller ----------

@router.get("/seller/")
@router.get("/seller/dashboard")
def seller_dashboard(
    request: Request,
    db: Session = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store),
):
    session, denied = _require_role(request, UserType.seller)
    if denied:
        return denied
    service = ProductService(db, blob_store)
    return _render(
        request,
        "seller/dashboard.html",
        listing=service.list_for_seller(session.user_id, limit=100),
        stats=service.dashboard_stats(session.user_id),
    )

def _product_form_context(product=None, form=None) -> dict:
    return {
        "product": product,
        "form": form or {},
        "categories": PRODUCT_CATEGORIES,
        "product_types": PRODUCT_TYPES,
        "conditions": PRODUCT_CONDITIONS,
        "locations": SRI_LANKAN_CITIES,
        "max_images": settings.MAX_IMAGES_PER_PRODUCT,
        "max_image_size": format_file_size(settings.MAX_IMAGE_BYTES),
    }

@router.get("/seller/products/add")
def add_product_page(request: Request):
    session, denied = _require_role(request, UserType.seller)
    if denied:
        return denied
    return _render(request, "seller/product_form.html", **_product_form_context())

@router.post("/seller/products/add")
async def add_product_action(
    request: Request,
    db: Session = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store),
):
    session, denied = _require_role(request, UserType.seller)
    if denied:
        return denied
    submitted = await request.form()
    fields = {name: submitted.get(name, "") for name in PRODUCT_FIELDS}
    uploads = submitted.getlist("images")

    def _create():
        data = parse_form(ProductInput, fields)
        return ProductService(db, blob_store).create(session, data, non_empty_images(uploads))

    try:
        await run_in_threadpool(_create)
    except ActionError as e:
        return _render(request, "seller/product_form.html", status_code=e.status_code, error=e.message,
                       **_product_form_context(form=fields))
    return _redirect("/seller/", notice="Product created successfully")

@router.get("/seller/products/{product_id}/edit")
def edit_product_page(
    request: Request,
    product_id: uuid.UUID,
    db: Session = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store),
):
    session, denied = _require_role(request, UserType.seller)
    if denied:
        return denied
    product = ProductService(db, blob_store).get(product_id)
    if not product or product.seller_id != session.user_id:
        return _render(request, "not_found.html", status_code=404, what="Product")
    form = {name: getattr(product, name) for name in PRODUCT_FIELDS}
    return _render(request, "seller/product_form.html", **_product_form_context(product, form))

@router.post("/seller/products/{product_id}/edit")
async def edit_product_action(
    request: Request,
    product_id: uuid.UUID,
    db: Session = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store),
):
    session, denied = _require_role(request, UserType.seller)
    if denied:
        return denied
    submitted = await request.form()
    fields = {name: submitted.get(name, "") for name in PRODUCT_FIELDS}
    uploads = submitted.getlist("images")
    removed = [url for url in submitted.getlist("removed_images") if isinstance(url, str)]
    service = ProductService(db, blob_store)

    def _update():
        data = parse_form(ProductInput, fields)
        return service.update(session, product_id, data, non_empty_images(uploads), removed)

    try:
        await run_in_threadpool(_update)
    except ActionError as e:
        product = await run_in_threadpool(service.get, product_id)
        if not product or product.seller_id != session.user_id:
            return _render(request, "not_found.html", status_code=404, what="Product")
        return _render(request, "seller/product_form.html", status_code=e.status_code, error=e.message,
                       **_product_form_context(product, fields))
    return _redirect("/seller/", notice="Product updated successfully")

@router.post("/seller/products/{product_id}/delete")
def delete_product_action(
    request: Request,
    product_id: uuid.UUID,
    db: Session = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store),
):
    session, denied = _require_role(request, UserType.seller)
    if denied:
        return denied
    try:
        ProductService(db, blob_store).delete(session, product_id)
    except ActionError as e:
        return _redirect("/seller/", error=e.message)
    return _redirect("/seller/", notice="Product deleted successfully")

@router.post("/seller/products/{product_id}/toggle")
def toggle_product_action(
    request: Request,
    product_id: uuid.UUID,
    db: Session = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store),
):
    session, denied = _require_role(request, UserType.seller)
    if denied:
        return denied
    try:
        _, message = ProductService(db, blob_store).toggle_status(session, product_id)
    except ActionError as e:
        return _redirect("/seller/", error=e.message)
    return _redirect("/seller/", notice=message)
