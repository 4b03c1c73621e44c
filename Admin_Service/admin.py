import logging
import math
from typing import Mapping, Optional, Tuple

from shop_core.auth import CredentialVerifier
from shop_core.domain import Order, Product
from shop_core.errors import not_found, unauthorized, validation_error
from shop_core.filters import by_visibility
from shop_core.ftypes import Either
from shop_core.lifecycle import with_active, with_stock
from shop_core.service import OrderService
from shop_core.storage import CollectionStore, load_products, save_products

from .export import orders_to_csv
from .report import dashboard_summary

logger = logging.getLogger(__name__)


def _text(data: Mapping, key: str) -> str:
    return str(data.get(key) or "").strip()


def _missing(value) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def parse_product_form(data: Mapping) -> Either[dict, dict]:
    """
    name, price, stock обязательны; price и stock неотрицательные.
    Right(нормализованные поля) или Left(ошибка валидации).
    """
    if _missing(data.get("name")) or _missing(data.get("price")) or _missing(data.get("stock")):
        return validation_error("Missing required fields")
    try:
        price = round(float(data["price"]), 3)
        stock = int(data["stock"])
    except (TypeError, ValueError):
        return validation_error("Price and stock must be numbers")
    if not math.isfinite(price):
        return validation_error("Price and stock must be numbers")
    if price < 0 or stock < 0:
        return validation_error("Price and stock must be non-negative")

    return Either.right(
        {
            "name": _text(data, "name"),
            "price": price,
            "stock": stock,
            "category": _text(data, "category"),
            "description": _text(data, "description"),
            "image_url": _text(data, "imageUrl"),
        }
    )


class AdminService:
    """
    Админские операции над каталогом и заказами.
    Каждый вызов проверяет секрет администратора; удаление товара
    дополнительно требует отдельный секрет действий с товарами.
    """

    def __init__(
        self,
        products_store: CollectionStore,
        orders: OrderService,
        admin_verifier: CredentialVerifier,
        product_action_verifier: CredentialVerifier,
    ):
        self.products_store = products_store
        self.orders = orders
        self.admin_verifier = admin_verifier
        self.product_action_verifier = product_action_verifier
        self.lock = orders.lock

    def login(self, secret: str) -> bool:
        ok = self.admin_verifier.verify(secret)
        if not ok:
            logger.warning("Admin login rejected")
        return ok

    def _authorized(self, secret: str) -> bool:
        if self.admin_verifier.verify(secret):
            return True
        logger.warning("Admin operation rejected: bad credential")
        return False

    # ============ Товары ============

    def list_products(self, secret: str, only_visible: bool = False) -> Either[dict, Tuple[Product, ...]]:
        if not self._authorized(secret):
            return unauthorized()
        products = load_products(self.products_store)
        return Either.right(tuple(filter(by_visibility(only_visible), products)))

    def save_product(self, secret: str, data: Mapping) -> Either[dict, Product]:
        """Upsert: с id обновляем существующий, без id добавляем новый товар в начало"""
        if not self._authorized(secret):
            return unauthorized()
        parsed = parse_product_form(data)
        if parsed.is_left:
            return parsed
        fields = parsed.value
        product_id = _text(data, "id")

        with self.lock:
            products = load_products(self.products_store)
            if product_id:
                current = next((p for p in products if p.id == product_id), None)
                if current is None:
                    return not_found("Product", product_id)
                saved = Product(
                    id=current.id,
                    active=current.active,
                    created_at=current.created_at,
                    **fields,
                )
                updated = tuple(saved if p.id == product_id else p for p in products)
            else:
                saved = Product(
                    id=self.orders.ids.new_id("prod"),
                    active=True,
                    created_at=int(self.orders.clock.now().timestamp() * 1000),
                    **fields,
                )
                updated = (saved,) + products
            save_products(self.products_store, updated)

        logger.info("Product %s saved", saved.id)
        return Either.right(saved)

    def delete_product(
        self, secret: str, product_id: str, product_secret: str
    ) -> Either[dict, str]:
        if not self._authorized(secret):
            return unauthorized()
        if not self.product_action_verifier.verify(product_secret):
            logger.warning("Product deletion rejected: bad product credential")
            return unauthorized()

        with self.lock:
            products = load_products(self.products_store)
            if not any(p.id == product_id for p in products):
                return not_found("Product", product_id)
            save_products(
                self.products_store, tuple(p for p in products if p.id != product_id)
            )

        logger.info("Product %s deleted", product_id)
        return Either.right(product_id)

    def adjust_stock(self, secret: str, product_id: str, delta: int) -> Either[dict, Product]:
        """Ручная правка остатка (+1/-1 в таблице); не ниже 0"""
        return self._update_product(
            secret, product_id, lambda p: with_stock(p, max(0, p.stock + int(delta)))
        )

    def toggle_visibility(self, secret: str, product_id: str) -> Either[dict, Product]:
        return self._update_product(secret, product_id, lambda p: with_active(p, not p.active))

    def _update_product(self, secret: str, product_id: str, change) -> Either[dict, Product]:
        if not self._authorized(secret):
            return unauthorized()
        with self.lock:
            products = load_products(self.products_store)
            current = next((p for p in products if p.id == product_id), None)
            if current is None:
                return not_found("Product", product_id)
            changed = change(current)
            save_products(
                self.products_store,
                tuple(changed if p.id == product_id else p for p in products),
            )
        logger.info("Product %s updated", product_id)
        return Either.right(changed)

    # ============ Заказы ============

    def list_orders(
        self, secret: str, status: Optional[str] = None, query: str = ""
    ) -> Either[dict, Tuple[Order, ...]]:
        if not self._authorized(secret):
            return unauthorized()
        return Either.right(self.orders.filter_orders(status, query))

    def update_order_status(
        self, secret: str, order_id: str, status: str, restock: bool = False
    ) -> Either[dict, Order]:
        if not self._authorized(secret):
            return unauthorized()
        return self.orders.set_status(order_id, status, restock)

    def export_orders(
        self, secret: str, status: Optional[str] = None, query: str = ""
    ) -> Either[dict, str]:
        """CSV по текущему фильтру"""
        return self.list_orders(secret, status, query).map(orders_to_csv)

    def dashboard(self, secret: str) -> Either[dict, dict]:
        if not self._authorized(secret):
            return unauthorized()
        return Either.right(dashboard_summary(self.orders.orders()))
