"""Runtime infrastructure for struk.

This package provides process/runtime services including:
- Logging setup via get_logger()
- Path resolution via get_paths(), ProjectPaths
- Rule engine construction via create_rule_engine(), get_rule_engine()

Settings, the OCR service client and the HTTP server depend on the
receipt package and are imported from their own modules.

Usage:
    from struk.runtime import get_logger, get_paths

    logger = get_logger(__name__)
    paths = get_paths()
    print(paths.root, paths.config)
"""

from struk.runtime.logging import (
    DEFAULT_LOG_LEVEL,
    LOG_FORMAT,
    LOG_FORMAT_DEBUG,
    configure_logging,
    get_logger,
    set_log_level,
)
from struk.runtime.paths import (
    ProjectPaths,
    get_paths,
    reset_paths,
)
from struk.runtime.rule_engine import (
    DEFAULT_CATEGORY,
    MerchantInfo,
    RuleEngine,
    create_rule_engine,
    get_rule_engine,
    reset_rule_engine,
)

__all__ = [
    # Logging
    "get_logger",
    "configure_logging",
    "set_log_level",
    "DEFAULT_LOG_LEVEL",
    "LOG_FORMAT",
    "LOG_FORMAT_DEBUG",
    # Rules
    "DEFAULT_CATEGORY",
    "MerchantInfo",
    "RuleEngine",
    "get_rule_engine",
    "reset_rule_engine",
    "create_rule_engine",
    # Paths
    "get_paths",
    "reset_paths",
    "ProjectPaths",
]
