import pytest

from retrade.application.errors import ActionError
from retrade.application.schemas import ProductInput, CheckoutRequest
from retrade.api.deps import parse_form
from conftest import PRODUCT_FIELDS

@pytest.mark.parametrize("field,value,message", [
    ("name", "Chair!", "Product name can only contain letters, numbers, spaces, and hyphens"),
    ("name", "x" * 101, "Product name must be less than 100 characters"),
    ("description", "y" * 1001, "Description must be less than 1000 characters"),
    ("category", "Toys", "Please select a valid category"),
    ("product_type", "commercial", "Please select a valid product type"),
    ("condition", "new", "Please select a valid condition"),
    ("price", "10000001", "Price cannot exceed 10,000,000 LKR"),
    ("price", "nan", "Price must be at least 1 LKR"),
    ("location", "", "Please select a location"),
    ("contact_number", "0071234567", "Please enter a valid Sri Lankan phone number"),
])
def test_product_rules(field, value, message):
    with pytest.raises(ActionError) as exc:
        parse_form(ProductInput, {**PRODUCT_FIELDS, field: value})
    assert exc.value.message == message
    assert exc.value.status_code == 400

@pytest.mark.parametrize("number", ["0771234567", "+94771234567", "0112345678"])
def test_accepted_contact_numbers(number):
    assert parse_form(ProductInput, {**PRODUCT_FIELDS, "contact_number": number}).contact_number == number

def test_non_numeric_price_names_the_field():
    with pytest.raises(ActionError) as exc:
        parse_form(ProductInput, {**PRODUCT_FIELDS, "price": "cheap"})
    assert exc.value.message.startswith("price: ")

def test_checkout_rules():
    good = {
        "buyer_name": "Nimal",
        "buyer_email": "nimal@mail.lk",
        "buyer_phone": "0771234567",
        "shipping_address": "12 Temple Road, Kandy",
    }
    assert parse_form(CheckoutRequest, good).buyer_name == "Nimal"
    with pytest.raises(ActionError) as exc:
        parse_form(CheckoutRequest, {**good, "buyer_email": "nope"})
    assert exc.value.message == "Please enter a valid email address"
    with pytest.raises(ActionError) as exc:
        parse_form(CheckoutRequest, {**good, "buyer_phone": "12345"})
    assert exc.value.message == "Please enter a valid phone number"
