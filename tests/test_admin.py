import sys
import os

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))
from datetime import datetime, timezone

import pytest
from Admin_Service.admin import AdminService, parse_product_form
from shop_core.auth import StaticSecretVerifier
from shop_core.checkout import validate_checkout
from shop_core.domain import Cart, CartEntry, Product
from shop_core.service import OrderService
from shop_core.storage import InMemoryStore, load_products, save_products

ADMIN = "admin123"
PROD = "prod123"


class FixedClock:
    def now(self):
        return datetime(2025, 10, 21, 12, 0, tzinfo=timezone.utc)


class SeqIds:
    def __init__(self):
        self.n = 0

    def new_id(self, prefix):
        self.n += 1
        return f"{prefix}_{self.n}"


@pytest.fixture
def products_store():
    store = InMemoryStore()
    save_products(
        store,
        (
            Product(id="p1", name="Mug", price=19.5, stock=5, created_at=1),
            Product(id="p2", name="Hidden", price=8.9, stock=2, active=False),
        ),
    )
    return store


@pytest.fixture
def admin(products_store):
    orders = OrderService(products_store, InMemoryStore(), clock=FixedClock(), ids=SeqIds())
    return AdminService(
        products_store, orders, StaticSecretVerifier(ADMIN), StaticSecretVerifier(PROD)
    )


def place_order(admin, name="Ahmed", phone="22123456", qty=1):
    form = {
        "fullName": name, "phone": phone, "address": "Rue 1", "city": "Tunis",
        "governorate": "Tunis", "postalCode": "1000",
    }
    cart = Cart(items=(CartEntry("p1", qty),))
    payload = validate_checkout(form, cart, load_products(admin.products_store)).value
    return admin.orders.place_order(payload).value[0]


def test_login(admin):
    assert admin.login(ADMIN)
    assert not admin.login("wrong")
    assert not admin.login("")


def test_wrong_secret_rejects_without_mutation(admin, products_store):
    before = load_products(products_store)
    result = admin.save_product("nope", {"name": "X", "price": 1, "stock": 1})
    assert result.value == {"error": "Unauthorized", "kind": "unauthorized"}
    assert load_products(products_store) == before


def test_create_product_prepends(admin, products_store):
    result = admin.save_product(ADMIN, {"name": "Cap", "price": "12.5", "stock": "4"})
    saved = result.value
    assert saved.id == "prod_1"
    assert saved.active is True
    assert saved.created_at == 1761048000000
    assert load_products(products_store)[0] == saved


def test_update_product_keeps_identity_fields(admin, products_store):
    result = admin.save_product(
        ADMIN, {"id": "p1", "name": "Big Mug", "price": 21, "stock": 9, "category": "Home"}
    )
    updated = result.value
    assert (updated.id, updated.name, updated.price, updated.stock) == ("p1", "Big Mug", 21.0, 9)
    assert updated.created_at == 1 and updated.active is True
    assert len(load_products(products_store)) == 2


def test_update_unknown_product_is_not_found(admin):
    result = admin.save_product(ADMIN, {"id": "zzz", "name": "X", "price": 1, "stock": 1})
    assert result.value["kind"] == "not_found"


@pytest.mark.parametrize(
    "data",
    [
        {"price": 1, "stock": 1},
        {"name": "X", "stock": 1},
        {"name": "X", "price": 1},
        {"name": "X", "price": "abc", "stock": 1},
        {"name": "X", "price": -1, "stock": 1},
        {"name": "X", "price": 1, "stock": -1},
        {"name": "X", "price": "nan", "stock": 1},
        {"name": "X", "price": "inf", "stock": 1},
        {"name": "X", "price": "-inf", "stock": 1},
    ],
)
def test_product_form_validation(data):
    assert parse_product_form(data).value["kind"] == "validation"


def test_zero_price_and_stock_are_allowed():
    assert parse_product_form({"name": "Free", "price": 0, "stock": 0}).is_right


def test_delete_requires_product_secret(admin, products_store):
    assert admin.delete_product(ADMIN, "p1", ADMIN).value["kind"] == "unauthorized"
    assert admin.delete_product("bad", "p1", PROD).value["kind"] == "unauthorized"
    assert len(load_products(products_store)) == 2

    assert admin.delete_product(ADMIN, "p1", PROD).value == "p1"
    assert [p.id for p in load_products(products_store)] == ["p2"]
    assert admin.delete_product(ADMIN, "p1", PROD).value["kind"] == "not_found"


def test_adjust_stock_clamps_at_zero(admin):
    assert admin.adjust_stock(ADMIN, "p2", 1).value.stock == 3
    assert admin.adjust_stock(ADMIN, "p2", -10).value.stock == 0


def test_toggle_visibility_and_listing(admin):
    visible = admin.list_products(ADMIN, only_visible=True).value
    assert [p.id for p in visible] == ["p1"]
    assert len(admin.list_products(ADMIN).value) == 2

    assert admin.toggle_visibility(ADMIN, "p2").value.active is True
    assert len(admin.list_products(ADMIN, only_visible=True).value) == 2


def test_list_orders_filters_by_status_and_text(admin):
    o1 = place_order(admin, name="Ahmed Ben Salah", phone="22 123 456")
    o2 = place_order(admin, name="Sana Trabelsi", phone="98765432")
    admin.update_order_status(ADMIN, o2.id, "Completed")

    assert [o.id for o in admin.list_orders(ADMIN, "Completed").value] == [o2.id]
    assert [o.id for o in admin.list_orders(ADMIN, query="ahmed").value] == [o1.id]
    assert [o.id for o in admin.list_orders(ADMIN, query="9876").value] == [o2.id]
    assert [o.id for o in admin.list_orders(ADMIN, query=o1.id).value] == [o1.id]
    assert len(admin.list_orders(ADMIN).value) == 2
    assert admin.list_orders("bad").is_left


def test_update_status_with_restock(admin, products_store):
    order = place_order(admin, qty=3)
    assert load_products(products_store)[0].stock == 2
    assert admin.update_order_status("bad", order.id, "Cancelled", True).is_left
    assert load_products(products_store)[0].stock == 2

    admin.update_order_status(ADMIN, order.id, "Cancelled", True)
    assert load_products(products_store)[0].stock == 5


def test_export_uses_current_filter(admin):
    place_order(admin, name="Ahmed")
    done = place_order(admin, name="Sana")
    admin.update_order_status(ADMIN, done.id, "Completed")

    csv_text = admin.export_orders(ADMIN, "Completed").value
    lines = csv_text.split("\n")
    assert len(lines) == 2
    assert '"Sana"' in lines[1]


def test_dashboard_counts_completed_only(admin):
    place_order(admin, qty=1)
    done = place_order(admin, qty=2)
    admin.update_order_status(ADMIN, done.id, "Completed")

    summary = admin.dashboard(ADMIN).value
    assert summary["total_orders"] == 2
    assert summary["items_sold"] == 2
    assert summary["total_revenue"] == pytest.approx(46.5)
    assert summary["bestsellers"] == [{"product_id": "p1", "name": "Mug", "quantity_sold": 2}]
    assert admin.dashboard("bad").is_left
