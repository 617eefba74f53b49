import re

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from conftest import create_product, signed_in
from retrade.application.order_service import generate_order_number

CHECKOUT = {
    "buyer_name": "Nimal Perera",
    "buyer_email": "nimal@mail.lk",
    "buyer_phone": "0771234567",
    "shipping_address": "12 Temple Road, Kandy",
}

def _fill_cart(buyer, seller):
    chair = create_product(seller, name="Office Chair", price="4500")
    lamp = create_product(seller, name="Desk Lamp", price="1250.50")
    buyer.post("/api/cart/", json={"product_id": chair["id"], "quantity": 2})
    buyer.post("/api/cart/", json={"product_id": lamp["id"], "quantity": 1})
    return chair, lamp

def test_order_number_format():
    number = generate_order_number()
    assert re.fullmatch(r"RT-\d{6}[0-9A-Z]{4}", number)

def test_place_order_snapshots_cart_and_clears_it(buyer, seller):
    _fill_cart(buyer, seller)
    resp = buyer.post("/api/orders/", json=CHECKOUT)
    assert resp.status_code == 201, resp.text
    placed = resp.json()
    assert placed["success"] is True
    assert placed["message"] == "Order placed successfully"
    assert placed["order_number"].startswith("RT-")

    assert buyer.get("/api/cart/count").json() == {"count": 0}

    order = buyer.get(f"/api/orders/{placed['order_id']}").json()
    assert order["status"] == "pending"
    assert order["total_amount"] == "10250.50"
    assert order["shipping_address"] == CHECKOUT["shipping_address"]
    assert sorted((i["product_name"], i["quantity"], i["price"]) for i in order["items"]) == [
        ("Desk Lamp", 1, "1250.50"),
        ("Office Chair", 2, "4500.00"),
    ]

def test_empty_cart_cannot_checkout(buyer):
    resp = buyer.post("/api/orders/", json=CHECKOUT)
    assert resp.status_code == 400
    assert resp.json()["error"] == "Your cart is empty"

def test_unavailable_item_blocks_checkout(buyer, seller):
    chair, _ = _fill_cart(buyer, seller)
    seller.post(f"/api/seller/products/{chair['id']}/toggle")
    resp = buyer.post("/api/orders/", json=CHECKOUT)
    assert resp.status_code == 400
    assert resp.json()["error"] == "Some items in your cart are no longer available"
    # Nothing was written and the cart is untouched
    assert buyer.get("/api/orders/").json()["total"] == 0
    assert buyer.get("/api/cart/count").json() == {"count": 2}

def test_checkout_validation(buyer, seller):
    _fill_cart(buyer, seller)
    resp = buyer.post("/api/orders/", json={**CHECKOUT, "shipping_address": "Kandy"})
    assert resp.status_code == 400
    assert resp.json()["error"] == "Please enter a complete shipping address"

def test_sellers_cannot_order(seller):
    resp = seller.post("/api/orders/", json=CHECKOUT)
    assert resp.status_code == 403

def test_list_summary_and_stats(buyer, seller):
    _fill_cart(buyer, seller)
    placed = buyer.post("/api/orders/", json=CHECKOUT).json()

    orders = buyer.get("/api/orders/").json()
    assert orders["total"] == 1
    assert orders["has_more"] is False
    assert orders["orders"][0]["order_number"] == placed["order_number"]

    summary = buyer.get(f"/api/orders/{placed['order_id']}/summary").json()
    assert summary["summary"] == {"total_items": 3, "subtotal": 10250.5, "delivery_fee": 0, "total": 10250.5}

    stats = buyer.get("/api/orders/stats").json()
    assert stats == {"total_orders": 1, "total_spent": 10250.5, "pending_orders": 1, "completed_orders": 0}

def test_cancel_only_pending(buyer, seller):
    _fill_cart(buyer, seller)
    placed = buyer.post("/api/orders/", json=CHECKOUT).json()
    url = f"/api/orders/{placed['order_id']}/cancel"

    resp = buyer.post(url)
    assert resp.json() == {"success": True, "message": "Order cancelled successfully"}
    assert buyer.get(f"/api/orders/{placed['order_id']}").json()["status"] == "cancelled"

    resp = buyer.post(url)
    assert resp.status_code == 400
    assert resp.json()["error"] == "Only pending orders can be cancelled"

def test_cancel_failure_keeps_order_pending(buyer, seller, monkeypatch):
    _fill_cart(buyer, seller)
    placed = buyer.post("/api/orders/", json=CHECKOUT).json()

    def failing_commit(self):
        raise OperationalError("COMMIT", {}, Exception("database is locked"))

    monkeypatch.setattr(Session, "commit", failing_commit)
    resp = buyer.post(f"/api/orders/{placed['order_id']}/cancel")
    monkeypatch.undo()

    assert resp.status_code == 500
    assert resp.json() == {"success": False, "error": "Failed to cancel order"}
    assert buyer.get(f"/api/orders/{placed['order_id']}").json()["status"] == "pending"

def test_orders_are_private(buyer, seller):
    _fill_cart(buyer, seller)
    placed = buyer.post("/api/orders/", json=CHECKOUT).json()
    other = signed_in("other-buyer@mail.lk", "buyer")
    assert other.get(f"/api/orders/{placed['order_id']}").status_code == 404
    assert other.post(f"/api/orders/{placed['order_id']}/cancel").status_code == 404
    assert other.get("/api/orders/").json()["orders"] == []

def test_deleting_ordered_product_keeps_history(buyer, seller):
    chair, lamp = _fill_cart(buyer, seller)
    placed = buyer.post("/api/orders/", json=CHECKOUT).json()
    resp = seller.delete(f"/api/seller/products/{chair['id']}")
    assert resp.status_code == 200

    order = buyer.get(f"/api/orders/{placed['order_id']}").json()
    items = {i["product_name"]: i for i in order["items"]}
    assert items["Office Chair"]["product"] is None
    assert items["Desk Lamp"]["product"]["id"] == lamp["id"]
