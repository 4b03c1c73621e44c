from typing import Iterable, Tuple

from .domain import (
    ORDER_STATUSES,
    STATUS_CANCELLED,
    STATUS_NEW,
    CheckoutPayload,
    Order,
    OrderItem,
    Product,
)


# ============ Граф статусов ============


def can_transition(current: str, new: str) -> bool:
    """
    Любой известный статус может перейти в любой другой, включая
    повторное открытие Completed/Cancelled. Более строгая политика
    подменяется здесь, без правок в местах вызова.
    """
    return current in ORDER_STATUSES and new in ORDER_STATUSES


def needs_restock(current: str, new: str, restock: bool) -> bool:
    """Возврат на склад только при входе в Cancelled из другого статуса"""
    return bool(restock) and new == STATUS_CANCELLED and current != STATUS_CANCELLED


# ============ Снимок заказа ============


def snapshot_items(payload: CheckoutPayload) -> Tuple[OrderItem, ...]:
    return tuple(
        OrderItem(id=line.id, name=line.name, price=line.price, qty=line.cart_qty)
        for line in payload.lines
    )


def build_order(payload: CheckoutPayload, order_id: str, date: str) -> Order:
    """Новый заказ: позиции и суммы фиксируются на момент оформления"""
    return Order(
        id=order_id,
        date=date,
        items=snapshot_items(payload),
        subtotal=payload.totals.subtotal,
        delivery_fee=payload.totals.delivery_fee,
        total=payload.totals.total,
        customer=payload.customer,
        status=STATUS_NEW,
    )


# ============ Движение остатков ============


def _quantities(items: Iterable[OrderItem]) -> dict:
    acc: dict = {}
    for item in items:
        acc[item.id] = acc.get(item.id, 0) + item.qty
    return acc


def with_stock(p: Product, stock: int) -> Product:
    return Product(
        id=p.id,
        name=p.name,
        price=p.price,
        stock=stock,
        category=p.category,
        description=p.description,
        image_url=p.image_url,
        active=p.active,
        created_at=p.created_at,
    )


def decrement_stock(
    products: Tuple[Product, ...], items: Iterable[OrderItem]
) -> Tuple[Product, ...]:
    """Списывает заказанное количество; остаток не уходит ниже 0"""
    qty = _quantities(items)
    return tuple(
        with_stock(p, max(0, p.stock - qty[p.id])) if p.id in qty else p
        for p in products
    )


def restock(
    products: Tuple[Product, ...], items: Iterable[OrderItem]
) -> Tuple[Product, ...]:
    """Возвращает количество на склад; верхней границы нет"""
    qty = _quantities(items)
    return tuple(
        with_stock(p, p.stock + qty[p.id]) if p.id in qty else p for p in products
    )


def with_status(order: Order, status: str) -> Order:
    return Order(
        id=order.id,
        date=order.date,
        items=order.items,
        subtotal=order.subtotal,
        delivery_fee=order.delivery_fee,
        total=order.total,
        customer=order.customer,
        status=status,
        payment_method=order.payment_method,
    )


def with_active(p: Product, active: bool) -> Product:
    return Product(
        id=p.id,
        name=p.name,
        price=p.price,
        stock=p.stock,
        category=p.category,
        description=p.description,
        image_url=p.image_url,
        active=active,
        created_at=p.created_at,
    )
