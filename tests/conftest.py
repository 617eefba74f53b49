import os
import tempfile

# Settings are read once at import time, so configure before importing the app
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["RUN_MIGRATIONS"] = "false"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["BLOB_BACKEND"] = "local"
os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="retrade-uploads-")

import pytest
from fastapi.testclient import TestClient

from retrade.main import app
from retrade.domain.models import Base
from retrade.infrastructure.db import engine

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64

PRODUCT_FIELDS = {
    "name": "Used Office Chair",
    "description": "Ergonomic chair in good shape, barely used at home.",
    "category": "Furniture",
    "product_type": "household",
    "condition": "good",
    "price": "4500",
    "location": "Colombo",
    "contact_number": "0771234567",
}

@pytest.fixture(autouse=True)
def database():
    Base.metadata.create_all(engine)
    yield
    Base.metadata.drop_all(engine)

@pytest.fixture
def client():
    return TestClient(app)

def png(name: str = "photo.png"):
    return ("images", (name, PNG_BYTES, "image/png"))

def register(client: TestClient, email: str, role: str = "buyer", name: str = "Test User", password: str = "secret123"):
    resp = client.post("/api/auth/register", json={
        "name": name,
        "email": email,
        "password": password,
        "phone": "0771234567",
        "user_type": role,
    })
    assert resp.status_code == 201, resp.text
    return resp

def login(client: TestClient, email: str, password: str = "secret123"):
    resp = client.post("/api/auth/login", json={"email": email, "password": password})
    assert resp.status_code == 200, resp.text
    return resp

def signed_in(email: str, role: str, name: str = "Test User") -> TestClient:
    """Fresh client carrying the session cookie of a newly registered user."""
    c = TestClient(app)
    register(c, email, role=role, name=name)
    login(c, email)
    return c

def create_product(seller: TestClient, images: int = 1, **overrides) -> dict:
    fields = {**PRODUCT_FIELDS, **overrides}
    resp = seller.post(
        "/api/seller/products/",
        data=fields,
        files=[png(f"photo{i}.png") for i in range(images)],
    )
    assert resp.status_code == 201, resp.text
    return resp.json()["product"]

@pytest.fixture
def buyer():
    return signed_in("buyer@mail.lk", "buyer", name="Nimal Buyer")

@pytest.fixture
def seller():
    return signed_in("seller@mail.lk", "seller", name="Kamal Seller")

@pytest.fixture
def product(seller):
    return create_product(seller)
