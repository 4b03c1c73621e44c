"""Хранилища коллекций и их JSON-формат.

Коллекция читается целиком и целиком же перезаписывается (read-modify-write).
Формат записей совпадает с REST-сервером: camelCase ключи.
"""

import copy
import json
import logging
import os
import tempfile
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional, Protocol, Tuple

from .domain import Customer, Order, OrderItem, Product
from .errors import StorageError

logger = logging.getLogger(__name__)


# ============ Контракты коллабораторов ============


class CollectionStore(Protocol):
    def list(self) -> List[dict]: ...

    def replace_all(self, records: List[dict]) -> None: ...


class Clock(Protocol):
    def now(self) -> datetime: ...


class IdGenerator(Protocol):
    def new_id(self, prefix: str) -> str: ...


class SystemClock:
    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class UuidIdGenerator:
    def new_id(self, prefix: str) -> str:
        return f"{prefix}_{uuid.uuid4().hex}"


# ============ Реализации хранилищ ============


class InMemoryStore:
    """Хранит глубокие копии, чтобы вызывающий не мог мутировать состояние"""

    def __init__(self, records: Optional[List[dict]] = None):
        self._records = copy.deepcopy(list(records or []))

    def list(self) -> List[dict]:
        return copy.deepcopy(self._records)

    def replace_all(self, records: List[dict]) -> None:
        self._records = copy.deepcopy(list(records))


class JsonFileStore:
    """Коллекция в одном JSON-файле; отсутствующий файл = пустая коллекция"""

    def __init__(self, path):
        self.path = Path(path)

    def list(self) -> List[dict]:
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return []
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.error("Failed to read %s: %s", self.path, e)
            raise StorageError(f"Failed to read {self.path}: {e}") from e

        if not isinstance(data, list):
            raise StorageError(f"{self.path} does not contain a JSON list")
        return data

    def replace_all(self, records: List[dict]) -> None:
        tmp_name = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self.path.parent, prefix=self.path.name, suffix=".tmp"
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(records, f, ensure_ascii=False, indent=2)
            # атомарная замена: читатель видит либо старый, либо новый файл
            os.replace(tmp_name, self.path)
        except (OSError, TypeError, ValueError) as e:
            logger.error("Failed to write %s: %s", self.path, e)
            if tmp_name and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise StorageError(f"Failed to write {self.path}: {e}") from e


# ============ Кодеки записей ============


def product_to_dict(p: Product) -> dict:
    return {
        "id": p.id,
        "name": p.name,
        "category": p.category,
        "price": p.price,
        "stock": p.stock,
        "description": p.description,
        "imageUrl": p.image_url,
        "active": p.active,
        "createdAt": p.created_at,
    }


def product_from_dict(d: Dict) -> Product:
    return Product(
        id=str(d["id"]),
        name=str(d.get("name", "")),
        price=float(d.get("price") or 0),
        stock=max(0, int(d.get("stock") or 0)),
        category=str(d.get("category") or ""),
        description=str(d.get("description") or ""),
        image_url=str(d.get("imageUrl") or ""),
        active=d.get("active") is not False,
        created_at=int(d.get("createdAt") or 0),
    )


def customer_to_dict(c: Customer) -> dict:
    return {
        "fullName": c.full_name,
        "phone": c.phone,
        "email": c.email,
        "address": c.address,
        "city": c.city,
        "governorate": c.governorate,
        "postalCode": c.postal_code,
        "notes": c.notes,
    }


def customer_from_dict(d: Dict) -> Customer:
    return Customer(
        full_name=str(d.get("fullName") or ""),
        phone=str(d.get("phone") or ""),
        address=str(d.get("address") or ""),
        city=str(d.get("city") or ""),
        governorate=str(d.get("governorate") or ""),
        postal_code=str(d.get("postalCode") or ""),
        email=str(d.get("email") or ""),
        notes=str(d.get("notes") or ""),
    )


def order_to_dict(o: Order) -> dict:
    return {
        "id": o.id,
        "date": o.date,
        "items": [
            {"id": i.id, "name": i.name, "price": i.price, "qty": i.qty}
            for i in o.items
        ],
        "subtotal": o.subtotal,
        "deliveryFee": o.delivery_fee,
        "total": o.total,
        "paymentMethod": o.payment_method,
        "status": o.status,
        "customer": customer_to_dict(o.customer),
    }


def order_from_dict(d: Dict) -> Order:
    items = tuple(
        OrderItem(
            id=str(i["id"]),
            name=str(i.get("name", "")),
            price=float(i.get("price") or 0),
            qty=int(i.get("qty") or 0),
        )
        for i in d.get("items", [])
    )
    return Order(
        id=str(d["id"]),
        date=str(d.get("date", "")),
        items=items,
        subtotal=float(d.get("subtotal") or 0),
        delivery_fee=float(d.get("deliveryFee") or 0),
        total=float(d.get("total") or 0),
        customer=customer_from_dict(d.get("customer") or {}),
        status=str(d.get("status", "New")),
        payment_method=str(d.get("paymentMethod", "Cash on Delivery")),
    )


def _decode_all(decode, records: List[dict], what: str) -> tuple:
    """Битая запись в коллекции считается повреждением хранилища"""
    try:
        return tuple(map(decode, records))
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        logger.error("Malformed %s record: %r", what, e)
        raise StorageError(f"Malformed {what} record: {e!r}") from e


def load_products(store: CollectionStore) -> Tuple[Product, ...]:
    return _decode_all(product_from_dict, store.list(), "product")


def save_products(store: CollectionStore, products: Tuple[Product, ...]) -> None:
    store.replace_all([product_to_dict(p) for p in products])


def load_orders(store: CollectionStore) -> Tuple[Order, ...]:
    return _decode_all(order_from_dict, store.list(), "order")


def save_orders(store: CollectionStore, orders: Tuple[Order, ...]) -> None:
    store.replace_all([order_to_dict(o) for o in orders])


# ============ Демо-каталог ============

SEED_PRODUCTS = (
    ("prod_1", "Classic T-Shirt", "Apparel", 39.9, 15, "100% cotton, unisex fit.", "T-Shirt"),
    ("prod_2", "Wireless Earbuds", "Electronics", 129.0, 8, "Bluetooth 5.1, 24h battery.", "Earbuds"),
    ("prod_3", "Ceramic Mug", "Home", 19.5, 24, "Dishwasher safe 350ml mug.", "Mug"),
    ("prod_4", "Notebook A5", "Stationery", 8.9, 50, "Soft cover, 120 pages.", "Notebook"),
)


def seed_products(store: CollectionStore, clock: Clock) -> bool:
    """Заполняет пустой каталог демо-товарами; True если что-то записали"""
    if store.list():
        return False

    created_at = int(clock.now().timestamp() * 1000)
    products = tuple(
        Product(
            id=pid,
            name=name,
            category=category,
            price=price,
            stock=stock,
            description=description,
            image_url=f"https://via.placeholder.com/300x200?text={label}",
            active=True,
            created_at=created_at,
        )
        for pid, name, category, price, stock, description, label in SEED_PRODUCTS
    )
    save_products(store, products)
    logger.info("Seeded %d demo products", len(products))
    return True
