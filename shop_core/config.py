"""Настройки магазина.

Приоритет: явные overrides > переменные окружения TNDSHOP_* > значения по умолчанию.
"""

import logging
import os
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

from .errors import ConfigurationError

ENV_PREFIX = "TNDSHOP_"


class ShopSettings(BaseModel):
    free_delivery_threshold: float = Field(default=200.0, ge=0)
    delivery_fee: float = Field(default=7.5, ge=0)
    postal_code_length: int = Field(default=4, ge=1)
    min_phone_digits: int = Field(default=8, ge=1)

    admin_secret: str = Field(default="admin123", min_length=1)
    product_action_secret: str = Field(default="prod123", min_length=1)

    data_dir: str = "data"
    log_level: str = "INFO"

    model_config = {"frozen": True}

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"unknown log level: {v}")
        return level


def load_from_env(environ: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
    """Собирает настройки из TNDSHOP_<FIELD> переменных"""
    env = os.environ if environ is None else environ
    config: Dict[str, Any] = {}
    for name in ShopSettings.model_fields:
        value = env.get(ENV_PREFIX + name.upper())
        if value is not None:
            config[name] = value
    return config


def load_settings(
    overrides: Optional[Dict[str, Any]] = None,
    environ: Optional[Dict[str, str]] = None,
) -> ShopSettings:
    merged = {**load_from_env(environ), **(overrides or {})}
    try:
        return ShopSettings(**merged)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid shop settings: {e}") from e


def configure_logging(level: str = "INFO") -> None:
    """Один stream-хэндлер для оболочки приложения"""
    root = logging.getLogger()
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
        )
        root.addHandler(handler)
    root.setLevel(level.upper())
