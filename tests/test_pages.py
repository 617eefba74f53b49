from fastapi.testclient import TestClient

from conftest import PRODUCT_FIELDS, create_product, png, register
from retrade.main import app

def _page_login(email: str, role: str) -> TestClient:
    c = TestClient(app)
    register(c, email, role=role)
    resp = c.post("/login", data={"email": email, "password": "secret123"}, follow_redirects=False)
    assert resp.status_code == 303
    return c

def test_home_page(client):
    resp = client.get("/")
    assert resp.status_code == 200
    assert "ReTrade" in resp.text
    assert resp.headers["X-Frame-Options"] == "DENY"

def test_protected_pages_redirect_to_login(client):
    resp = client.get("/buyer/", follow_redirects=False)
    assert resp.status_code == 303
    assert resp.headers["location"] == "/login?redirect=%2Fbuyer%2F"

    resp = client.get("/seller/products/add", follow_redirects=False)
    assert resp.headers["location"] == "/login?redirect=%2Fseller%2F"

def test_wrong_role_is_sent_to_login(buyer):
    resp = buyer.get("/seller/", follow_redirects=False)
    assert resp.status_code == 303
    assert resp.headers["location"].startswith("/login")

def test_register_and_login_forms(client):
    resp = client.post("/register", data={
        "name": "Form User", "email": "form@mail.lk", "password": "secret123", "user_type": "seller",
    }, follow_redirects=False)
    assert resp.status_code == 303
    assert resp.headers["location"].startswith("/login?notice=")

    resp = client.post("/login", data={"email": "form@mail.lk", "password": "bad-password"})
    assert resp.status_code == 400
    assert "Invalid email or password" in resp.text

    resp = client.post("/login", data={"email": "form@mail.lk", "password": "secret123"}, follow_redirects=False)
    assert resp.headers["location"].startswith("/seller/")
    assert "retrade_session" in client.cookies

def test_login_honours_redirect_within_area(client):
    register(client, "back@mail.lk")
    resp = client.post("/login", data={
        "email": "back@mail.lk", "password": "secret123", "redirect": "/buyer/cart",
    }, follow_redirects=False)
    assert resp.headers["location"].startswith("/buyer/cart")

    client.post("/logout")
    resp = client.post("/login", data={
        "email": "back@mail.lk", "password": "secret123", "redirect": "//evil.example/buyer/",
    }, follow_redirects=False)
    assert resp.headers["location"].startswith("/buyer/?")

def test_register_form_shows_validation_error(client):
    resp = client.post("/register", data={"name": "X", "email": "x@mail.lk", "password": "short"})
    assert resp.status_code == 400
    assert "Password must be at least 8 characters" in resp.text

def test_logout_clears_session(buyer):
    resp = buyer.post("/logout", follow_redirects=False)
    assert resp.status_code == 303
    assert "retrade_session" not in buyer.cookies
    assert buyer.get("/buyer/", follow_redirects=False).status_code == 303

def test_buyer_shopping_flow(seller):
    product = create_product(seller, name="Vintage Radio")
    buyer = _page_login("shopper@mail.lk", "buyer")

    resp = buyer.get("/buyer/products", params={"search": "radio"})
    assert resp.status_code == 200
    assert "Vintage Radio" in resp.text

    resp = buyer.get(f"/buyer/products/{product['id']}")
    assert "Kamal Seller" in resp.text

    resp = buyer.post("/buyer/cart/add", data={"product_id": product["id"], "quantity": "2"}, follow_redirects=False)
    assert resp.headers["location"].startswith("/buyer/cart?notice=")

    resp = buyer.get("/buyer/cart")
    assert "Vintage Radio" in resp.text
    assert "LKR 9,000.00" in resp.text

    resp = buyer.get("/buyer/checkout")
    assert resp.status_code == 200
    assert 'value="shopper@mail.lk"' in resp.text

    resp = buyer.post("/buyer/checkout", data={
        "buyer_name": "Shopper",
        "buyer_email": "shopper@mail.lk",
        "buyer_phone": "0771234567",
        "shipping_address": "45 Lake Drive, Colombo 07",
    }, follow_redirects=False)
    assert resp.status_code == 303
    order_url = resp.headers["location"].split("?")[0]
    assert order_url.startswith("/buyer/orders/")

    resp = buyer.get(order_url)
    assert "Vintage Radio" in resp.text
    assert "Cancel order" in resp.text

    resp = buyer.post(f"{order_url}/cancel")
    assert "Order cancelled successfully" in resp.text
    assert "Cancel order" not in resp.text

    assert "RT-" in buyer.get("/buyer/orders").text

def test_checkout_with_empty_cart_redirects(buyer):
    resp = buyer.get("/buyer/checkout", follow_redirects=False)
    assert resp.status_code == 303
    assert resp.headers["location"].startswith("/buyer/cart?error=")

def test_checkout_errors_rerender_form(buyer, product):
    buyer.post("/api/cart/", json={"product_id": product["id"]})
    resp = buyer.post("/buyer/checkout", data={
        "buyer_name": "B",
        "buyer_email": "b@mail.lk",
        "buyer_phone": "0771234567",
        "shipping_address": "45 Lake Drive, Colombo",
    })
    assert resp.status_code == 400
    assert "Name must be at least 2 characters" in resp.text

def test_malformed_page_and_quantity_stay_in_html(seller):
    product = create_product(seller, name="Vintage Radio")
    buyer = _page_login("lenient@mail.lk", "buyer")

    for page in ("0", "-3", "two"):
        resp = buyer.get("/buyer/products", params={"page": page})
        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("text/html")
        assert "Vintage Radio" in resp.text
    assert buyer.get("/buyer/orders", params={"page": "0"}).status_code == 200

    resp = buyer.post("/buyer/cart/add", data={"product_id": product["id"], "quantity": "lots"}, follow_redirects=False)
    assert resp.status_code == 303
    assert "error=" in resp.headers["location"]

    buyer.post("/buyer/cart/add", data={"product_id": product["id"]}, follow_redirects=False)
    line_id = buyer.get("/api/cart/").json()["items"][0]["id"]
    resp = buyer.post(f"/buyer/cart/{line_id}/update", data={"quantity": "1.5"}, follow_redirects=False)
    assert resp.status_code == 303
    assert resp.headers["location"].startswith("/buyer/cart?error=")
    assert buyer.get("/api/cart/").json()["items"][0]["quantity"] == 1

def test_unknown_product_page(buyer):
    resp = buyer.get("/buyer/products/00000000-0000-0000-0000-000000000000")
    assert resp.status_code == 404
    assert "Product not found" in resp.text

def test_seller_pages():
    seller = _page_login("pages-seller@mail.lk", "seller")

    resp = seller.get("/seller/products/add")
    assert resp.status_code == 200
    assert "Add a new product" in resp.text

    resp = seller.post("/seller/products/add", data=PRODUCT_FIELDS, files=[png()], follow_redirects=False)
    assert resp.status_code == 303
    assert resp.headers["location"] == "/seller/?notice=Product+created+successfully"

    resp = seller.get("/seller/")
    assert "Used Office Chair" in resp.text
    product_id = seller.get("/api/seller/products/").json()["products"][0]["id"]

    resp = seller.get(f"/seller/products/{product_id}/edit")
    assert 'value="Used Office Chair"' in resp.text

    resp = seller.post(
        f"/seller/products/{product_id}/edit",
        data={**PRODUCT_FIELDS, "name": "Renamed Chair"},
        follow_redirects=False,
    )
    assert resp.headers["location"] == "/seller/?notice=Product+updated+successfully"

    resp = seller.post(f"/seller/products/{product_id}/toggle")
    assert "Product deactivated successfully" in resp.text

    resp = seller.post(f"/seller/products/{product_id}/delete")
    assert "Product deleted successfully" in resp.text
    assert "Renamed Chair" not in resp.text

def test_seller_form_errors_rerender(seller):
    resp = seller.post("/seller/products/add", data={**PRODUCT_FIELDS, "description": "short"}, files=[png()])
    assert resp.status_code == 400
    assert "Description must be at least 10 characters" in resp.text
    assert 'value="Used Office Chair"' in resp.text

    resp = seller.post("/seller/products/add", data=PRODUCT_FIELDS)
    assert resp.status_code == 400
    assert "At least one image is required" in resp.text
