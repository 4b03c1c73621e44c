import sys
import os

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))
import json
from datetime import datetime, timezone

import pytest
from shop_core.domain import Customer, Order, OrderItem, Product
from shop_core.errors import StorageError
from shop_core.storage import (
    InMemoryStore,
    JsonFileStore,
    UuidIdGenerator,
    load_orders,
    load_products,
    order_from_dict,
    order_to_dict,
    product_from_dict,
    save_orders,
    save_products,
    seed_products,
)


class FixedClock:
    def now(self):
        return datetime(2025, 10, 21, 12, 0, tzinfo=timezone.utc)


PRODUCTS = (
    Product(id="p2", name="Earbuds", price=129.0, stock=8, category="Electronics"),
    Product(id="p1", name="Mug", price=19.5, stock=0, active=False, created_at=5),
)


def test_catalog_round_trip_in_memory():
    store = InMemoryStore()
    save_products(store, PRODUCTS)
    assert load_products(store) == PRODUCTS


def test_catalog_round_trip_json_file(tmp_path):
    store = JsonFileStore(tmp_path / "data" / "products.json")
    save_products(store, PRODUCTS)
    assert load_products(store) == PRODUCTS
    raw = json.loads((tmp_path / "data" / "products.json").read_text(encoding="utf-8"))
    assert raw[0]["imageUrl"] == "" and raw[1]["createdAt"] == 5


def test_in_memory_store_returns_copies():
    store = InMemoryStore([{"id": "p1", "stock": 1}])
    records = store.list()
    records[0]["stock"] = 99
    assert store.list()[0]["stock"] == 1


def test_missing_file_is_empty(tmp_path):
    assert JsonFileStore(tmp_path / "nope.json").list() == []


def test_corrupt_file_raises_storage_error(tmp_path):
    path = tmp_path / "orders.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(StorageError):
        JsonFileStore(path).list()


def test_non_list_file_raises_storage_error(tmp_path):
    path = tmp_path / "orders.json"
    path.write_text('{"id": 1}', encoding="utf-8")
    with pytest.raises(StorageError):
        JsonFileStore(path).list()


def test_invalid_utf8_raises_storage_error(tmp_path):
    path = tmp_path / "products.json"
    path.write_bytes(b'[{"id":"p1","name":"\xff\xfe"}]')
    with pytest.raises(StorageError):
        JsonFileStore(path).list()


@pytest.mark.parametrize(
    "records",
    [
        [{"name": "no id"}],
        [{"id": "p1", "name": "Mug", "stock": "many"}],
        ["just a string"],
    ],
)
def test_malformed_product_record_raises_storage_error(records):
    """Битая запись каталога даёт StorageError, а не KeyError/ValueError"""
    with pytest.raises(StorageError):
        load_products(InMemoryStore(records))


def test_malformed_order_record_raises_storage_error(tmp_path):
    path = tmp_path / "orders.json"
    path.write_text(json.dumps([{"id": "o1", "items": [{"qty": 1}]}]), encoding="utf-8")
    with pytest.raises(StorageError):
        load_orders(JsonFileStore(path))


def test_order_round_trip(tmp_path):
    order = Order(
        id="order_1",
        date="2025-10-21T12:00:00+00:00",
        items=(OrderItem(id="p1", name="Mug", price=19.5, qty=2),),
        subtotal=39.0,
        delivery_fee=7.5,
        total=46.5,
        customer=Customer(
            full_name="Ahmed", phone="22123456", address="Rue 1", city="Sfax",
            governorate="Sfax", postal_code="3000", email="a@b.tn",
        ),
        status="Processing",
    )
    store = JsonFileStore(tmp_path / "orders.json")
    save_orders(store, (order,))
    assert load_orders(store) == (order,)
    assert order_to_dict(order)["deliveryFee"] == 7.5
    assert order_from_dict(order_to_dict(order)) == order


def test_product_from_dict_defaults():
    """active отсутствует, товар видим; отрицательный остаток обрезается"""
    p = product_from_dict({"id": "x", "name": "X", "price": "2.5", "stock": -3})
    assert p.active is True
    assert p.stock == 0
    assert p.price == 2.5


def test_seed_only_when_empty():
    store = InMemoryStore()
    assert seed_products(store, FixedClock()) is True
    products = load_products(store)
    assert [p.id for p in products] == ["prod_1", "prod_2", "prod_3", "prod_4"]
    assert all(p.created_at == 1761048000000 for p in products)
    assert seed_products(store, FixedClock()) is False


def test_uuid_ids_are_prefixed_and_unique():
    ids = UuidIdGenerator()
    a, b = ids.new_id("order"), ids.new_id("order")
    assert a.startswith("order_") and a != b
