import logging
import threading
from typing import Optional, Tuple

from .domain import Cart, CartLine, CheckoutPayload, Order, Product
from .errors import not_found, validation_error
from .filters import all_of, by_category, by_status, by_text, order_matches
from .ftypes import Either, Maybe
from .lifecycle import (
    build_order,
    can_transition,
    decrement_stock,
    needs_restock,
    restock,
    with_status,
)
from .storage import (
    Clock,
    CollectionStore,
    IdGenerator,
    SystemClock,
    UuidIdGenerator,
    load_orders,
    load_products,
    save_orders,
    save_products,
)
from .checkout import check_stock

logger = logging.getLogger(__name__)

SORT_OPTIONS = ("popular", "price-asc", "price-desc", "newest")


class CatalogService:
    """Фасад для витрины магазина"""

    def __init__(self, products_store: CollectionStore):
        self.products_store = products_store

    def all_products(self) -> Tuple[Product, ...]:
        return load_products(self.products_store)

    def public_products(self) -> Tuple[Product, ...]:
        """Только активные товары"""
        return tuple(filter(lambda p: p.active, self.all_products()))

    def categories(self) -> Tuple[str, ...]:
        return tuple(sorted({p.category for p in self.public_products() if p.category}))

    def browse(
        self, search: str = "", category: str = "", sort: str = "popular"
    ) -> Tuple[Product, ...]:
        """Поиск + категория + сортировка; popular сохраняет порядок каталога"""
        found = tuple(
            filter(all_of(by_text(search), by_category(category)), self.public_products())
        )
        if sort == "price-asc":
            return tuple(sorted(found, key=lambda p: p.price))
        if sort == "price-desc":
            return tuple(sorted(found, key=lambda p: p.price, reverse=True))
        if sort == "newest":
            return tuple(sorted(found, key=lambda p: p.created_at or 0, reverse=True))
        return found


class OrderService:
    """
    Жизненный цикл заказа: оформление со списанием остатков и смена статуса
    с возможным возвратом на склад. Все read-modify-write идут под одним lock.
    """

    def __init__(
        self,
        products_store: CollectionStore,
        orders_store: CollectionStore,
        clock: Optional[Clock] = None,
        ids: Optional[IdGenerator] = None,
        lock=None,
    ):
        self.products_store = products_store
        self.orders_store = orders_store
        self.clock = clock or SystemClock()
        self.ids = ids or UuidIdGenerator()
        self.lock = lock or threading.RLock()

    def orders(self) -> Tuple[Order, ...]:
        return load_orders(self.orders_store)

    def get_order(self, order_id: str) -> Maybe[Order]:
        return Maybe.from_optional(next((o for o in self.orders() if o.id == order_id), None))

    def filter_orders(self, status: Optional[str] = None, query: str = "") -> Tuple[Order, ...]:
        return tuple(filter(all_of(by_status(status), order_matches(query)), self.orders()))

    def place_order(self, payload: CheckoutPayload) -> Either[dict, Tuple[Order, Cart]]:
        """
        Оформляет заказ атомарно: снимок позиций, заказ в начало списка,
        списание остатков, пустая корзина. Остатки перепроверяются по
        живому каталогу; при нехватке ничего не записывается.
        """
        with self.lock:
            products = load_products(self.products_store)
            checked = self._recheck(payload, products)
            if checked.is_left:
                logger.warning("Order rejected: %s", checked.value["error"])
                return checked

            order = build_order(
                payload,
                order_id=self.ids.new_id("order"),
                date=self.clock.now().isoformat(),
            )
            orders = (order,) + load_orders(self.orders_store)
            self._write_both(orders, decrement_stock(products, order.items), products)

        logger.info(
            "Order %s placed: %d item(s), total %.3f", order.id, len(order.items), order.total
        )
        return Either.right((order, Cart()))

    def set_status(
        self, order_id: str, status: str, restock_items: bool = False
    ) -> Either[dict, Order]:
        """
        Меняет статус. Вход в Cancelled с restock_items=True возвращает
        позиции на склад; повторная отмена и прочие переходы остатки не трогают.
        """
        with self.lock:
            orders = load_orders(self.orders_store)
            current = next((o for o in orders if o.id == order_id), None)
            if current is None:
                logger.warning("Status change for unknown order %s", order_id)
                return not_found("Order", order_id)
            if not can_transition(current.status, status):
                return validation_error(f"Unknown order status: {status}")

            updated = with_status(current, status)
            new_orders = tuple(updated if o.id == order_id else o for o in orders)

            if needs_restock(current.status, status, restock_items):
                products = load_products(self.products_store)
                self._write_both(new_orders, restock(products, current.items), products)
                logger.info("Order %s cancelled, %d item(s) restocked", order_id, len(current.items))
            elif current.status != status:
                save_orders(self.orders_store, new_orders)

        logger.info("Order %s: %s -> %s", order_id, current.status, status)
        return Either.right(updated)

    def _write_both(
        self,
        orders: Tuple[Order, ...],
        products: Tuple[Product, ...],
        previous_products: Tuple[Product, ...],
    ) -> None:
        """Каталог, затем заказы; если заказы не записались, откатываем каталог"""
        save_products(self.products_store, products)
        try:
            save_orders(self.orders_store, orders)
        except Exception:
            logger.error("Orders write failed, rolling back catalog")
            save_products(self.products_store, previous_products)
            raise

    def _recheck(
        self, payload: CheckoutPayload, products: Tuple[Product, ...]
    ) -> Either[dict, Tuple[CartLine, ...]]:
        """Снимок оформления против текущего каталога"""
        by_id = {p.id: p for p in products}
        missing = next((l for l in payload.lines if l.id not in by_id), None)
        if missing is not None:
            return validation_error(f"Product unavailable: {missing.name}")
        return check_stock(
            tuple(CartLine(product=by_id[l.id], cart_qty=l.cart_qty) for l in payload.lines)
        )
