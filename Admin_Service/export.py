import csv
import io
from datetime import datetime
from typing import Iterable, Iterator, List

from shop_core.domain import Order
from shop_core.pricing import format_price

CSV_COLUMNS = (
    "id",
    "date",
    "customer",
    "phone",
    "address",
    "governorate",
    "postalCode",
    "status",
    "subtotal",
    "deliveryFee",
    "total",
    "items",
)


def format_date(value: str) -> str:
    """ISO -> 'YYYY-MM-DD HH:MM:SS'; нераспознанная строка остаётся как есть"""
    try:
        return datetime.fromisoformat(value).strftime("%Y-%m-%d %H:%M:%S")
    except (TypeError, ValueError):
        return str(value)


def order_row(o: Order) -> List[str]:
    items = "; ".join(f"{i.name} x{i.qty}" for i in o.items)
    return [
        o.id,
        format_date(o.date),
        o.customer.full_name,
        o.customer.phone,
        f"{o.customer.address}, {o.customer.city}",
        o.customer.governorate,
        o.customer.postal_code,
        o.status,
        format_price(o.subtotal or 0),
        format_price(o.delivery_fee or 0),
        format_price(o.total or 0),
        items,
    ]


## ленивый генератор строк: заголовок, затем по строке на заказ
def iter_csv_lines(orders: Iterable[Order]) -> Iterator[str]:
    yield ",".join(CSV_COLUMNS)
    for order in orders:
        buf = io.StringIO()
        # каждая ячейка в кавычках, кавычки внутри удваиваются
        csv.writer(buf, quoting=csv.QUOTE_ALL, lineterminator="").writerow(order_row(order))
        yield buf.getvalue()


def orders_to_csv(orders: Iterable[Order]) -> str:
    return "\n".join(iter_csv_lines(orders))


def export_filename(now: datetime) -> str:
    return f"orders_{int(now.timestamp() * 1000)}.csv"
