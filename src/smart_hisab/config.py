# SmartHisab - Bookkeeping application for small businesses
# Copyright (c) 2025 SmartHisab contributors
# Licensed under the MIT License. See LICENSE file for details.

"""
Configuration helpers for SmartHisab.

This module is responsible for:
- loading the main application configuration from a TOML file,
- exposing typed dataclasses used by the rest of the application.

Every service function receives an `AppConfig` explicitly; nothing in the
application reads configuration from module-level state.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

try:
    import tomllib  # Python 3.11+
except ModuleNotFoundError:  # pragma: no cover - fallback for older Python
    import tomli as tomllib  # type: ignore[import]

from .db import DatabaseConfig

DEFAULT_CONFIG_FILENAME = "smart_hisab_config.toml"

SUPPORTED_GROUPINGS = {"indian", "western"}
SUPPORTED_DISPLAY_MODES = {"table", "csv", "both"}


@dataclass(frozen=True)
class BusinessConfig:
    """Presentation settings of the business: currency and digit grouping."""

    currency: str
    grouping: str


@dataclass(frozen=True)
class AppConfig:
    """
    Application-wide configuration for SmartHisab.

    This aggregates:
    - the business presentation settings (currency, grouping),
    - the database configuration (where owners, customers and entries live),
    - analytics options,
    - display options for the CLI.
    """

    business: BusinessConfig
    database: DatabaseConfig
    top_customers_limit: int
    display_mode: str
    output_dir: Path


def _load_toml(path: Path) -> dict[str, Any]:
    """
    Load a TOML file and return its content as a dictionary.

    Raises:
        FileNotFoundError: if the file does not exist.
        ValueError: if the TOML content cannot be parsed or is not a table.
    """
    if not path.is_file():
        raise FileNotFoundError(f"Config file not found: {path}")

    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as exc:
        raise ValueError(f"Failed to parse TOML config file: {path}") from exc

    if not isinstance(data, dict):
        raise ValueError(f"Invalid TOML root type in {path}, expected a table.")

    return data


def _section(raw: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    """Return a top-level table, or an empty mapping if absent or malformed."""
    section = raw.get(name) or {}
    if not isinstance(section, Mapping):
        return {}
    return section


def _parse_business(raw: Mapping[str, Any]) -> BusinessConfig:
    business_section = _section(raw, "business")

    currency = str(business_section.get("currency") or "INR").strip().upper()
    grouping = str(business_section.get("grouping") or "indian").strip().lower()
    if grouping not in SUPPORTED_GROUPINGS:
        raise ValueError(
            f"Invalid value for 'business.grouping': {grouping!r}. "
            f"Expected one of: {', '.join(sorted(SUPPORTED_GROUPINGS))}."
        )

    return BusinessConfig(currency=currency, grouping=grouping)


def load_app_config(config_path: Optional[str] = None) -> AppConfig:
    """
    Load the SmartHisab application configuration from a TOML file.

    Expected top-level sections in the TOML file
    --------------------------------------------
    [business]
        currency (default "INR") and grouping ("indian" or "western").

    [database]
        Database engine and SQLite file path.

    [analytics]
        top_customers_limit: size of the "top customers" lists (default 5).

    [display]
        mode ("table", "csv" or "both") and output_dir for CSV exports.

    All sections are optional. File paths are resolved relative to the
    directory of the TOML file itself.

    Parameters
    ----------
    config_path:
        Path to the TOML configuration file. Defaults to
        'smart_hisab_config.toml' in the current directory.

    Returns
    -------
    AppConfig
        Parsed and validated application configuration.
    """
    if config_path is None:
        config_file = Path(DEFAULT_CONFIG_FILENAME).resolve()
    else:
        config_file = Path(config_path).resolve()

    raw = _load_toml(config_file)
    base_dir = config_file.parent

    # 1) Business section
    business = _parse_business(raw)

    # 2) Database section
    database_section = _section(raw, "database")

    db_engine = str(database_section.get("engine") or "sqlite")
    db_path_raw = database_section.get("path") or "data/db/smart_hisab.sqlite"
    db_path = (base_dir / str(db_path_raw)).resolve()

    database_config = DatabaseConfig(engine=db_engine, path=db_path)

    # 3) Analytics options
    analytics_section = _section(raw, "analytics")
    raw_limit = analytics_section.get("top_customers_limit", 5)
    try:
        top_customers_limit = int(raw_limit)
    except (TypeError, ValueError) as exc:
        raise ValueError(
            "Invalid value for 'analytics.top_customers_limit' in the "
            "configuration. Expected an integer."
        ) from exc
    if top_customers_limit < 0:
        raise ValueError("'analytics.top_customers_limit' cannot be negative.")

    # 4) Display options
    display_section = _section(raw, "display")

    display_mode = str(display_section.get("mode", "table"))
    if display_mode not in SUPPORTED_DISPLAY_MODES:
        raise ValueError(
            f"Invalid value for 'display.mode': {display_mode!r}. "
            f"Expected one of: {', '.join(sorted(SUPPORTED_DISPLAY_MODES))}."
        )
    output_dir = (base_dir / str(display_section.get("output_dir", "data/output"))).resolve()

    return AppConfig(
        business=business,
        database=database_config,
        top_customers_limit=top_customers_limit,
        display_mode=display_mode,
        output_dir=output_dir,
    )
