"""Load parser and stabilizer settings from TOML.

Example ``config/struk.toml``::

    [parser]
    max_merchant_length = 60
    total_keywords = ["TOTAL", "JUMLAH", "TAGIHAN"]

    [stabilizer]
    throttle_ms = 500
    stability_threshold = 3
"""

from __future__ import annotations

import tomllib
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

from struk.receipt.ocr_parser.common import ParsingConfig
from struk.receipt.stabilizer import StabilizerConfig
from struk.runtime.logging import get_logger
from struk.runtime.paths import get_paths

logger = get_logger(__name__)


class SettingsError(ValueError):
    """Raised when a settings file has unknown keys or invalid values."""


@dataclass(frozen=True)
class Settings:
    parser: ParsingConfig = field(default_factory=ParsingConfig)
    stabilizer: StabilizerConfig = field(default_factory=StabilizerConfig)


_TUPLE_FIELDS = {"currency_symbols", "total_keywords"}


def _build(config_cls: type, table_name: str, table: Any) -> Any:
    if not isinstance(table, dict):
        raise SettingsError(f"[{table_name}] must be a table")

    # Annotations may be strings when the config module postpones them
    field_types = {f.name: f.type for f in fields(config_cls)}
    unknown = sorted(set(table) - set(field_types))
    if unknown:
        raise SettingsError(f"Unknown key(s) in [{table_name}]: {', '.join(unknown)}")

    values: dict[str, Any] = {}
    for key, value in table.items():
        if key in _TUPLE_FIELDS:
            if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
                raise SettingsError(f"[{table_name}] {key} must be a list of strings")
            values[key] = tuple(value)
        elif isinstance(value, bool) or not isinstance(value, (int, float)):
            raise SettingsError(f"[{table_name}] {key} must be a number")
        elif field_types[key] in (int, "int") and not isinstance(value, int):
            raise SettingsError(f"[{table_name}] {key} must be an integer")
        else:
            values[key] = value
    return config_cls(**values)


def _check_ranges(settings: Settings) -> None:
    parser = settings.parser
    stabilizer = settings.stabilizer
    for name, value in (
        ("parser.min_confidence", parser.min_confidence),
        ("parser.default_ocr_confidence", parser.default_ocr_confidence),
        ("stabilizer.min_confidence", stabilizer.min_confidence),
    ):
        if not 0 <= value <= 1:
            raise SettingsError(f"{name} must be between 0 and 1, got {value}")
    if parser.max_merchant_length < 1:
        raise SettingsError("parser.max_merchant_length must be at least 1")
    if stabilizer.throttle_ms < 0:
        raise SettingsError("stabilizer.throttle_ms must not be negative")
    if stabilizer.stability_threshold < 1:
        raise SettingsError("stabilizer.stability_threshold must be at least 1")


def parse_settings(data: dict[str, Any]) -> Settings:
    """Build Settings from an already-decoded TOML document."""
    unknown = sorted(set(data) - {"parser", "stabilizer"})
    if unknown:
        raise SettingsError(f"Unknown table(s): {', '.join(unknown)}")

    settings = Settings(
        parser=_build(ParsingConfig, "parser", data.get("parser", {})),
        stabilizer=_build(StabilizerConfig, "stabilizer", data.get("stabilizer", {})),
    )
    _check_ranges(settings)
    return settings


def load_settings(path: Path | None = None) -> Settings:
    """
    Load settings from TOML, falling back to defaults.

    Args:
        path: Settings file. If None, uses $STRUK_HOME/config/struk.toml.

    Returns:
        Settings; defaults when the file does not exist.

    Raises:
        SettingsError: If the file is not valid TOML or has unknown/invalid keys.
    """
    if path is None:
        path = get_paths().settings

    if not path.exists():
        logger.debug("Settings file not found, using defaults: %s", path)
        return Settings()

    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as exc:
        raise SettingsError(f"Invalid TOML in {path}: {exc}") from exc

    settings = parse_settings(data)
    logger.debug("Loaded settings from %s", path)
    return settings
