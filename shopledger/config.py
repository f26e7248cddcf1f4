"""Configuration file management for shopledger."""

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import tomli_w

from shopledger.domain.models import Category
from shopledger.errors import ConfigurationError

DEFAULT_TIMEOUT = 30.0

# REST resource per category on the shop backend
DEFAULT_ENDPOINTS: dict[Category, str] = {
    Category.ORDER_INCOME: "/pago-orden",
    Category.DAILY_EXPENSE: "/egresos",
    Category.SUPPLY_PURCHASE: "/compra-insumos",
    Category.PAYROLL_PAYMENT: "/pagos-planillas",
    Category.PAYROLL_ADVANCE: "/anticipos",
    Category.PERSONNEL_PAYMENT: "/pagos-trabajos-asignados",
    Category.SUPPLIER_PAYMENT: "/pago-pedidos",
    Category.FIXED_EXPENSE: "/pagos-gastos-fijos",
}


@dataclass(frozen=True)
class Settings:
    """Typed view of the config file."""

    base_url: str
    timeout: float = DEFAULT_TIMEOUT
    endpoints: dict[Category, str] = field(default_factory=lambda: dict(DEFAULT_ENDPOINTS))
    partial: bool = False
    max_failed_sources: int | None = None
    report_timeout: float | None = None


def get_xdg_config_home() -> Path:
    """Get XDG config directory, with fallback to ~/.config."""
    xdg_config = os.environ.get("XDG_CONFIG_HOME")
    if xdg_config:
        return Path(xdg_config)
    return Path.home() / ".config"


def get_config_path() -> Path:
    """Get the config file path (XDG compliant).

    Returns:
        Path to the config file.
    """
    return get_xdg_config_home() / "shopledger" / "config.toml"


def create_default_config(config_path: Path | None = None, base_url: str = "http://localhost:3000/api") -> None:
    """Create default config file with secure permissions.

    Args:
        config_path: Path to config file. If None, uses default location.
        base_url: Backend API root to store.
    """
    if config_path is None:
        config_path = get_config_path()

    config_path.parent.mkdir(parents=True, exist_ok=True)

    default_config: dict[str, Any] = {
        "api": {
            "base_url": base_url,
            "timeout": DEFAULT_TIMEOUT,
        },
        "report": {
            "partial": False,
        },
    }

    save_config(default_config, config_path)


def load_config(config_path: Path | None = None) -> dict[str, Any]:
    """Load configuration from TOML file.

    Args:
        config_path: Path to config file. If None, uses default location.

    Returns:
        Configuration dictionary.

    Raises:
        FileNotFoundError: If config file doesn't exist.
        ConfigurationError: If the file is not valid TOML.
    """
    if config_path is None:
        config_path = get_config_path()

    with open(config_path, "rb") as f:
        try:
            return tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ConfigurationError(f"Invalid TOML in {config_path}: {e}") from e


def save_config(config: dict[str, Any], config_path: Path | None = None) -> None:
    """Save configuration to TOML file.

    Args:
        config: Configuration dictionary.
        config_path: Path to config file. If None, uses default location.
    """
    if config_path is None:
        config_path = get_config_path()

    with open(config_path, "wb") as f:
        tomli_w.dump(config, f)

    os.chmod(config_path, 0o600)


def _number(section: dict[str, Any], key: str, default: float | None) -> float | None:
    value = section.get(key, default)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
        raise ConfigurationError(f"'{key}' must be a positive number, got {value!r}")
    return float(value)


def parse_settings(config: dict[str, Any]) -> Settings:
    """Validate a configuration dictionary into Settings.

    Args:
        config: Configuration dictionary as loaded from TOML.

    Returns:
        Settings.

    Raises:
        ConfigurationError: If required keys are missing or values have the wrong type.
    """
    api = config.get("api", {})
    report = config.get("report", {})
    if not isinstance(api, dict) or not isinstance(report, dict):
        raise ConfigurationError("'api' and 'report' must be tables")

    base_url = api.get("base_url")
    if not isinstance(base_url, str) or not base_url:
        raise ConfigurationError("Missing required key 'api.base_url'")

    overrides = api.get("endpoints", {})
    if not isinstance(overrides, dict):
        raise ConfigurationError("'api.endpoints' must be a table")

    endpoints = dict(DEFAULT_ENDPOINTS)
    for key, path in overrides.items():
        try:
            category = Category.parse(key)
        except ValueError as e:
            raise ConfigurationError(str(e)) from e
        if not isinstance(path, str):
            raise ConfigurationError(f"Endpoint for '{key}' must be a string")
        endpoints[category] = path

    partial = report.get("partial", False)
    if not isinstance(partial, bool):
        raise ConfigurationError("'report.partial' must be true or false")

    max_failed = report.get("max_failed_sources")
    if max_failed is not None and (isinstance(max_failed, bool) or not isinstance(max_failed, int) or max_failed < 0):
        raise ConfigurationError("'report.max_failed_sources' must be a non-negative integer")

    return Settings(
        base_url=base_url.rstrip("/"),
        timeout=_number(api, "timeout", DEFAULT_TIMEOUT) or DEFAULT_TIMEOUT,
        endpoints=endpoints,
        partial=partial,
        max_failed_sources=max_failed,
        report_timeout=_number(report, "timeout", None),
    )


def load_settings(config_path: Path | None = None) -> Settings:
    """Load and validate settings from the config file.

    Raises:
        FileNotFoundError: If config file doesn't exist.
        ConfigurationError: If the file is invalid.
    """
    return parse_settings(load_config(config_path))


def get_token() -> str | None:
    """Get the backend API token from environment.

    Returns:
        Token string or None if not set.
    """
    return os.environ.get("SHOPLEDGER_TOKEN")
