from dataclasses import dataclass
from typing import Tuple

# Статусы заказа (регистр важен)
STATUS_NEW = "New"
STATUS_PROCESSING = "Processing"
STATUS_COMPLETED = "Completed"
STATUS_CANCELLED = "Cancelled"

ORDER_STATUSES = (STATUS_NEW, STATUS_PROCESSING, STATUS_COMPLETED, STATUS_CANCELLED)

PAYMENT_METHOD = "Cash on Delivery"


@dataclass(frozen=True)
class Product:
    id: str
    name: str
    price: float  # TND, 3 знака
    stock: int
    category: str = ""
    description: str = ""
    image_url: str = ""
    active: bool = True
    created_at: int = 0  # epoch ms


@dataclass(frozen=True)
class CartEntry:
    product_id: str
    quantity: int


@dataclass(frozen=True)
class Cart:
    items: Tuple[CartEntry, ...] = ()


@dataclass(frozen=True)
class CartLine:
    """Позиция корзины, сопоставленная с живым каталогом"""

    product: Product
    cart_qty: int

    @property
    def id(self) -> str:
        return self.product.id

    @property
    def name(self) -> str:
        return self.product.name

    @property
    def price(self) -> float:
        return self.product.price


@dataclass(frozen=True)
class Customer:
    full_name: str
    phone: str
    address: str
    city: str
    governorate: str
    postal_code: str
    email: str = ""
    notes: str = ""


@dataclass(frozen=True)
class OrderItem:
    id: str
    name: str
    price: float
    qty: int


@dataclass(frozen=True)
class Totals:
    subtotal: float
    delivery_fee: float
    total: float


@dataclass(frozen=True)
class CheckoutPayload:
    """Проверенный снимок корзины и данных покупателя"""

    customer: Customer
    lines: Tuple[CartLine, ...]
    totals: Totals


@dataclass(frozen=True)
class Order:
    id: str
    date: str  # ISO-8601
    items: Tuple[OrderItem, ...]
    subtotal: float
    delivery_fee: float
    total: float
    customer: Customer
    status: str = STATUS_NEW
    payment_method: str = PAYMENT_METHOD
