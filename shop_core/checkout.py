import re
from functools import reduce
from typing import Mapping, Optional, Tuple

from .cart import materialize
from .config import ShopSettings
from .domain import Cart, CartLine, CheckoutPayload, Customer, Product
from .errors import validation_error
from .ftypes import Either
from .pricing import compute_totals

REQUIRED_FIELDS = ("fullName", "phone", "address", "city", "postalCode", "governorate")

_NON_DIGITS = re.compile(r"[^0-9]")


def _field(form: Mapping[str, str], name: str) -> str:
    return str(form.get(name) or "").strip()


def customer_from_form(form: Mapping[str, str]) -> Customer:
    return Customer(
        full_name=_field(form, "fullName"),
        phone=_field(form, "phone"),
        address=_field(form, "address"),
        city=_field(form, "city"),
        governorate=_field(form, "governorate"),
        postal_code=_field(form, "postalCode"),
        email=_field(form, "email"),
        notes=_field(form, "notes"),
    )


# ============ Правила формы (порядок важен, первая ошибка побеждает) ============


def check_required(form: Mapping[str, str]) -> Either[dict, Mapping[str, str]]:
    if not all(_field(form, name) for name in REQUIRED_FIELDS):
        return validation_error("Please fill in all required fields.")
    return Either.right(form)


def check_phone(min_digits: int):
    def rule(form: Mapping[str, str]) -> Either[dict, Mapping[str, str]]:
        digits = _NON_DIGITS.sub("", _field(form, "phone"))
        if len(digits) < min_digits:
            return validation_error(
                f"Please provide a valid phone number (at least {min_digits} digits)."
            )
        return Either.right(form)

    return rule


def check_postal_code(length: int):
    pattern = re.compile(r"[0-9]{%d}" % length)

    def rule(form: Mapping[str, str]) -> Either[dict, Mapping[str, str]]:
        # без обрезки пробелов: " 1234 " не индекс
        if not pattern.fullmatch(str(form.get("postalCode") or "")):
            return validation_error(f"Postal code should be {length} digits.")
        return Either.right(form)

    return rule


def validate_form(
    form: Mapping[str, str], settings: Optional[ShopSettings] = None
) -> Either[dict, Customer]:
    s = settings or ShopSettings()
    rules = (
        check_required,
        check_phone(s.min_phone_digits),
        check_postal_code(s.postal_code_length),
    )
    checked = reduce(lambda acc, rule: acc.bind(rule), rules, Either.right(form))
    return checked.map(customer_from_form)


# ============ Правила корзины ============


def check_stock(lines: Tuple[CartLine, ...]) -> Either[dict, Tuple[CartLine, ...]]:
    """Первая же нехватка на складе даёт ошибку с названием товара"""
    if not lines:
        return validation_error("Your cart is empty.")
    shortfall = next((l for l in lines if l.product.stock < l.cart_qty), None)
    if shortfall is not None:
        return validation_error(f"Not enough stock for {shortfall.name}.")
    return Either.right(lines)


def validate_checkout(
    form: Mapping[str, str],
    cart: Cart,
    products: Tuple[Product, ...],
    settings: Optional[ShopSettings] = None,
) -> Either[dict, CheckoutPayload]:
    """
    Форма -> корзина -> остатки. Right(CheckoutPayload) со снимком позиций и сумм,
    либо Left с одним понятным сообщением.
    """
    return validate_form(form, settings).bind(
        lambda customer: check_stock(materialize(cart, products)).map(
            lambda lines: CheckoutPayload(
                customer=customer,
                lines=lines,
                totals=compute_totals(lines, settings),
            )
        )
    )
