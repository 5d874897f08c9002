"""Loading of the services' YAML configuration."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Union

import yaml

DEFAULT_PATH = "config.yml"


class ConfigError(Exception):
    """Raised when the configuration cannot be read or parsed."""


@dataclass(frozen=True)
class CheckoutConfig:
    """Settings of the cart service."""

    token: str = ""
    loms: str = ""
    product_service: str = ""
    postgres_url: str = ""


@dataclass(frozen=True)
class LomsConfig:
    """Settings of the order service."""

    postgres_url: str = ""


def _read(path: Union[str, Path]) -> dict:
    try:
        raw = Path(path).read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"reading config file: {exc}") from exc
    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as exc:
        raise ConfigError(f"parsing yaml: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError("parsing yaml: top level must be a mapping")
    return data


def _section(data: dict, key: str) -> dict:
    value = data.get(key)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ConfigError(f"parsing yaml: {key!r} must be a mapping")
    return value


def _string(data: dict, key: str) -> str:
    value: Any = data.get(key)
    if value is None:
        return ""
    if isinstance(value, (dict, list)):
        raise ConfigError(f"parsing yaml: {key!r} must be a scalar")
    return str(value)


def load_checkout_config(path: Union[str, Path] = DEFAULT_PATH) -> CheckoutConfig:
    """Load the cart service settings from a YAML file."""
    data = _read(path)
    services = _section(data, "services")
    postgres = _section(data, "postgres")
    return CheckoutConfig(
        token=_string(data, "token"),
        loms=_string(services, "loms"),
        product_service=_string(services, "product_service"),
        postgres_url=_string(postgres, "url"),
    )


def load_loms_config(path: Union[str, Path] = DEFAULT_PATH) -> LomsConfig:
    """Load the order service settings from a YAML file."""
    data = _read(path)
    return LomsConfig(postgres_url=_string(_section(data, "postgres"), "url"))