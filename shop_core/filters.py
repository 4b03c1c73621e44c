from typing import Callable, Optional

from .domain import Order, Product

Predicate = Callable[[object], bool]


# ============ Замыкания-фильтры (HOF) ============


def by_category(category: Optional[str]) -> Callable[[Product], bool]:
    """Пустая категория пропускает всё"""
    return lambda p: not category or p.category == category


def by_text(term: Optional[str]) -> Callable[[Product], bool]:
    """Поиск по названию и описанию без учёта регистра"""
    needle = (term or "").strip().lower()
    return lambda p: not needle or needle in p.name.lower() or needle in p.description.lower()


def by_visibility(only_visible: bool) -> Callable[[Product], bool]:
    return lambda p: p.active or not only_visible


def by_status(status: Optional[str]) -> Callable[[Order], bool]:
    return lambda o: not status or o.status == status


def order_matches(term: Optional[str]) -> Callable[[Order], bool]:
    """Свободный поиск по id заказа, имени и телефону покупателя"""
    needle = (term or "").strip().lower()

    def predicate(o: Order) -> bool:
        if not needle:
            return True
        fields = (o.id, o.customer.full_name, o.customer.phone)
        return any(needle in f.lower() for f in fields)

    return predicate


def all_of(*predicates: Predicate) -> Predicate:
    """Композиция фильтров: элемент проходит, если прошёл все"""
    return lambda item: all(pred(item) for pred in predicates)
