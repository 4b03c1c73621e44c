from functools import reduce
from typing import Iterable, Optional

from .config import ShopSettings
from .domain import CartLine, Totals

_DEFAULTS = ShopSettings()


def _money(value: float) -> float:
    """TND считаются с точностью до миллима (3 знака)"""
    return round(float(value), 3)


def line_total(line: CartLine) -> float:
    return _money(line.price * line.cart_qty)


def subtotal(lines: Iterable[CartLine]) -> float:
    """Сумма позиций через reduce; пустая корзина даёт 0"""
    return _money(reduce(lambda acc, line: acc + line.price * line.cart_qty, lines, 0.0))


def delivery_fee(sub: float, settings: Optional[ShopSettings] = None) -> float:
    """
    Двухступенчатая доставка:
    0 для пустой корзины и от порога бесплатной доставки, иначе фикс.
    """
    s = settings or _DEFAULTS
    if sub == 0 or sub >= s.free_delivery_threshold:
        return 0.0
    return _money(s.delivery_fee)


def grand_total(sub: float, settings: Optional[ShopSettings] = None) -> float:
    return _money(sub + delivery_fee(sub, settings))


def compute_totals(
    lines: Iterable[CartLine], settings: Optional[ShopSettings] = None
) -> Totals:
    sub = subtotal(lines)
    fee = delivery_fee(sub, settings)
    return Totals(subtotal=sub, delivery_fee=fee, total=_money(sub + fee))


def format_price(amount: float) -> str:
    """12.5 -> '12.500 TND'"""
    return f"{float(amount or 0):.3f} TND"
