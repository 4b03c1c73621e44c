from functools import reduce
from typing import Iterable, Tuple

from .domain import Cart, CartEntry, CartLine, Product
from .errors import validation_error
from .ftypes import Either, Maybe


def safe_product(products: Iterable[Product], pid: str) -> Maybe[Product]:
    """Безопасный поиск продукта по ID"""
    return Maybe.from_optional(next((p for p in products if p.id == pid), None))


def _entry(cart: Cart, product_id: str) -> Maybe[CartEntry]:
    return Maybe.from_optional(
        next((e for e in cart.items if e.product_id == product_id), None)
    )


def _clamp(qty: int, stock: int) -> int:
    return min(max(0, int(stock)), max(0, int(qty)))


# ============ Операции с корзиной (чистые функции) ============


def add_to_cart(
    cart: Cart, products: Tuple[Product, ...], product_id: str, qty: int = 1
) -> Either[dict, Cart]:
    """
    Добавляет товар, не превышая остаток на складе.
    Left, если товар скрыт/удалён или закончился.
    """
    product = safe_product(products, product_id).get_or_else(None)
    if product is None or not product.active:
        return validation_error("Product unavailable")

    max_qty = max(0, product.stock)
    if max_qty <= 0:
        return validation_error("Out of stock")

    existing = _entry(cart, product_id)
    if existing.is_some():
        new_qty = min(max_qty, existing.get_or_else(None).quantity + int(qty))
        if new_qty <= 0:
            return Either.right(remove_from_cart(cart, product_id))
        updated_items = tuple(
            CartEntry(e.product_id, new_qty) if e.product_id == product_id else e
            for e in cart.items
        )
    else:
        new_entry = CartEntry(product_id, min(max_qty, max(1, int(qty))))
        updated_items = cart.items + (new_entry,)

    return Either.right(Cart(items=updated_items))


def set_quantity(
    cart: Cart, products: Tuple[Product, ...], product_id: str, qty: int
) -> Cart:
    """
    Ставит количество в пределах [0, stock]; 0 удаляет позицию.
    Товара нет в корзине: корзина не меняется.
    """
    if _entry(cart, product_id).is_none():
        return cart

    stock = safe_product(products, product_id).map(lambda p: p.stock).get_or_else(0)
    value = _clamp(qty, stock)
    if value <= 0:
        return remove_from_cart(cart, product_id)

    return Cart(
        items=tuple(
            CartEntry(e.product_id, value) if e.product_id == product_id else e
            for e in cart.items
        )
    )


def remove_from_cart(cart: Cart, product_id: str) -> Cart:
    return Cart(items=tuple(filter(lambda e: e.product_id != product_id, cart.items)))


def clear_cart(cart: Cart) -> Cart:
    return Cart()


def cart_count(cart: Cart) -> int:
    return reduce(lambda acc, e: acc + e.quantity, cart.items, 0)


# ============ Сопоставление с каталогом ============


def materialize(cart: Cart, products: Tuple[Product, ...]) -> Tuple[CartLine, ...]:
    """
    Превращает ссылки корзины в позиции с ценами.
    Порядок как в корзине; битые ссылки молча отбрасываются.
    """
    by_id = {p.id: p for p in products}
    return tuple(
        CartLine(product=by_id[e.product_id], cart_qty=e.quantity)
        for e in cart.items
        if e.product_id in by_id
    )
