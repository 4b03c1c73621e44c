from functools import reduce
from typing import Dict, List, Tuple

from shop_core.domain import ORDER_STATUSES, STATUS_COMPLETED, Order


# ============ Сводка для админ-панели ============


def completed_orders(orders: Tuple[Order, ...]) -> Tuple[Order, ...]:
    return tuple(filter(lambda o: o.status == STATUS_COMPLETED, orders))


def items_sold(orders: Tuple[Order, ...]) -> int:
    """Штук продано (только Completed)"""
    return reduce(
        lambda acc, o: acc + sum(i.qty for i in o.items), completed_orders(orders), 0
    )


def status_breakdown(orders: Tuple[Order, ...]) -> Dict[str, int]:
    """Количество заказов по каждому статусу, включая нулевые"""

    def count(acc: dict, order: Order) -> dict:
        return {**acc, order.status: acc.get(order.status, 0) + 1}

    return reduce(count, orders, {s: 0 for s in ORDER_STATUSES})


def dashboard_summary(orders: Tuple[Order, ...]) -> dict:
    """Выручка и продажи считаются только по завершённым заказам"""
    done = completed_orders(orders)
    revenue = round(reduce(lambda acc, o: acc + o.total, done, 0.0), 3)

    return {
        "total_orders": len(orders),
        "completed_orders": len(done),
        "total_revenue": revenue,
        "items_sold": items_sold(orders),
        "average_order_value": round(revenue / len(done), 3) if done else 0.0,
        "by_status": status_breakdown(orders),
        "bestsellers": bestsellers_report(orders),
    }


def bestsellers_report(orders: Tuple[Order, ...], k: int = 5) -> List[dict]:
    """Топ-K позиций по количеству в завершённых заказах"""

    def accumulate(acc: dict, order: Order) -> dict:
        def add_item(inner: dict, item) -> dict:
            name, qty = inner.get(item.id, (item.name, 0))
            return {**inner, item.id: (name, qty + item.qty)}

        return reduce(add_item, order.items, acc)

    sold = reduce(accumulate, completed_orders(orders), {})
    ranked = sorted(sold.items(), key=lambda kv: kv[1][1], reverse=True)[:k]
    return [
        {"product_id": pid, "name": name, "quantity_sold": qty}
        for pid, (name, qty) in ranked
    ]
