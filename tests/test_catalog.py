from dataclasses import FrozenInstanceError
from decimal import Decimal

import pytest

from app.exceptions import ProductNotFound
from app.services import catalog
from app.version import API_PREFIX


def test_list_products_hides_out_of_stock_and_sorts_by_name(make_product):
    make_product("Milk", "1.20", category="dairy")
    make_product("Apple", "2.50")
    make_product("Basil", "1.00", category="herbs", in_stock=False)
    names = [p.name for p in catalog.list_products()]
    assert names == ["Apple", "Milk"]


def test_list_products_by_category(make_product):
    make_product("Milk", "1.20", category="dairy")
    make_product("Apple", "2.50")
    assert [p.name for p in catalog.list_products(category="dairy")] == ["Milk"]


def test_get_product_returns_frozen_money_values(make_product):
    apple = make_product("Apple", "2.5", original_price="3")
    product = catalog.get_product(apple.id)
    assert product.price == Decimal("2.50")
    assert product.savings == Decimal("0.50")
    with pytest.raises(FrozenInstanceError):
        product.price = Decimal("1.00")


def test_get_product_unknown_id(app):
    with pytest.raises(ProductNotFound):
        catalog.get_product("nope")


def test_savings_never_negative(make_product):
    product = make_product("Pear", "3.00", original_price="2.00")
    assert product.savings == Decimal("0.00")


def test_list_categories_distinct_and_sorted(make_product):
    make_product("Milk", "1.20", category="dairy")
    make_product("Apple", "2.50", category="fruits")
    make_product("Pear", "2.00", category="fruits")
    make_product("Basil", "1.00", category="herbs", in_stock=False)
    assert catalog.list_categories() == ["dairy", "fruits"]


def test_products_endpoint(client, make_product):
    apple = make_product("Apple", "2.50")
    resp = client.get(f"{API_PREFIX}/products")
    assert resp.status_code == 200
    products = resp.get_json()["data"]["products"]
    assert [p["id"] for p in products] == [apple.id]
    assert products[0]["price"] == 2.5

    resp = client.get(f"{API_PREFIX}/products/{apple.id}")
    assert resp.get_json()["data"]["product"]["name"] == "Apple"


def test_unknown_product_endpoint_404(client):
    resp = client.get(f"{API_PREFIX}/products/does-not-exist")
    assert resp.status_code == 404
    data = resp.get_json()
    assert data["status"] == "error"
    assert data["message"] == "Product not found"


def test_products_endpoint_filters_by_category(client, make_product):
    make_product("Milk", "1.20", category="dairy")
    make_product("Apple", "2.50")
    resp = client.get(f"{API_PREFIX}/products?category=dairy")
    assert [p["name"] for p in resp.get_json()["data"]["products"]] == ["Milk"]

    resp = client.get(f"{API_PREFIX}/categories")
    assert resp.get_json()["data"]["categories"] == ["dairy", "fruits"]
