"""Ошибки магазина.

Восстановимые ошибки (валидация, не найдено, нет доступа) возвращаются
как Either.left(dict), хранилище бросает исключения.
"""

from .ftypes import Either

KIND_VALIDATION = "validation"
KIND_NOT_FOUND = "not_found"
KIND_UNAUTHORIZED = "unauthorized"


class ShopError(Exception):
    """Базовое исключение магазина"""


class ConfigurationError(ShopError):
    """Некорректные настройки"""


class StorageError(ShopError):
    """Хранилище недоступно на чтение или запись"""


def validation_error(message: str) -> Either:
    return Either.left({"error": message, "kind": KIND_VALIDATION})


def not_found(what: str, key: str) -> Either:
    return Either.left({"error": f"{what} not found: {key}", "kind": KIND_NOT_FOUND})


def unauthorized() -> Either:
    # без подробностей, какая именно проверка не прошла
    return Either.left({"error": "Unauthorized", "kind": KIND_UNAUTHORIZED})
