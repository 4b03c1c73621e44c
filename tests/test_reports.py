import sys
import os

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))
from datetime import datetime, timezone

from Admin_Service.export import (
    CSV_COLUMNS,
    export_filename,
    format_date,
    iter_csv_lines,
    orders_to_csv,
)
from Admin_Service.report import bestsellers_report, dashboard_summary, status_breakdown
from shop_core.domain import Customer, Order, OrderItem

CUSTOMER = Customer(
    full_name='Ali "The Boss" Haddad',
    phone="22 123 456",
    address="Rue 5",
    city="Sousse",
    governorate="Sousse",
    postal_code="4000",
)


def order(oid, status, items, total):
    return Order(
        id=oid,
        date="2025-10-21T12:30:00+00:00",
        items=items,
        subtotal=total,
        delivery_fee=0.0,
        total=total,
        customer=CUSTOMER,
        status=status,
    )


ORDERS = (
    order("o1", "Completed", (OrderItem("p1", "Mug", 19.5, 2), OrderItem("p2", "Cap", 10.0, 1)), 49.0),
    order("o2", "Completed", (OrderItem("p1", "Mug", 19.5, 3),), 58.5),
    order("o3", "Cancelled", (OrderItem("p2", "Cap", 10.0, 9),), 90.0),
    order("o4", "New", (OrderItem("p2", "Cap", 10.0, 1),), 10.0),
)


def test_csv_header_and_row():
    lines = orders_to_csv(ORDERS[:1]).split("\n")
    assert lines[0] == ",".join(CSV_COLUMNS)
    assert lines[1] == (
        '"o1","2025-10-21 12:30:00","Ali ""The Boss"" Haddad","22 123 456",'
        '"Rue 5, Sousse","Sousse","4000","Completed",'
        '"49.000 TND","0.000 TND","49.000 TND","Mug x2; Cap x1"'
    )


def test_csv_of_empty_list_is_header_only():
    assert orders_to_csv(()) == ",".join(CSV_COLUMNS)


def test_csv_lines_are_lazy():
    lines = iter_csv_lines(ORDERS)
    assert next(lines).startswith("id,date")
    assert next(lines).startswith('"o1"')


def test_format_date_falls_back_to_raw():
    assert format_date("yesterday") == "yesterday"


def test_export_filename():
    now = datetime(2025, 10, 21, 12, 0, tzinfo=timezone.utc)
    assert export_filename(now) == "orders_1761048000000.csv"


def test_dashboard_summary():
    summary = dashboard_summary(ORDERS)
    assert summary["total_orders"] == 4
    assert summary["completed_orders"] == 2
    assert summary["total_revenue"] == 107.5
    assert summary["items_sold"] == 6
    assert summary["average_order_value"] == 53.75


def test_status_breakdown_includes_all_statuses():
    assert status_breakdown(ORDERS) == {
        "New": 1,
        "Processing": 0,
        "Completed": 2,
        "Cancelled": 1,
    }


def test_bestsellers_from_completed_orders():
    report = bestsellers_report(ORDERS, k=1)
    assert report == [{"product_id": "p1", "name": "Mug", "quantity_sold": 5}]
