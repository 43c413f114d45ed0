"""Rule engine for merchant categorization.

This module provides a data-driven approach to categorize merchants
using TOML rules for simple keyword matching and Python functions
for complex logic.
"""

from __future__ import annotations

import tomllib
from collections.abc import Callable
from dataclasses import dataclass
from decimal import Decimal
from pathlib import Path
from typing import Any, Protocol

from struk.runtime.logging import get_logger
from struk.runtime.paths import get_paths

logger = get_logger(__name__)

DEFAULT_CATEGORY = "other-expense"


class CategorizationInput(Protocol):
    """Minimal input contract required by the rules engine."""

    merchant_name: str
    total_amount: Decimal | None


@dataclass(frozen=True)
class MerchantInfo:
    """Plain categorization input for callers without a receipt at hand."""

    merchant_name: str
    total_amount: Decimal | None = None


CategoryRule = Callable[[CategorizationInput], str | None]


def convenience_store_rule(info: CategorizationInput) -> str | None:
    """Unlisted minimarkets and general stores (``... MART``, ``TOKO ...``) are shopping."""
    merchant_upper = info.merchant_name.upper()
    if "MART" in merchant_upper or "TOKO" in merchant_upper:
        return "shopping"
    return None


class RuleEngine:
    """Engine for categorizing merchants using TOML and Python rules.

    The engine processes rules in order:
    1. Python rules (for complex logic like amount-based decisions)
    2. TOML rules (simple keyword matching, first match wins)
    3. Fallback Python rules (broad catch-alls that must not shadow TOML rules)
    4. Default category if no match
    """

    def __init__(self, config_path: Path | None = None, default_category: str = DEFAULT_CATEGORY) -> None:
        """Initialize the rule engine.

        Args:
            config_path: Path to the TOML config file. If None, uses the project
                rules when present, else the packaged defaults.
            default_category: Category returned when no rule matches.
        """
        if config_path is None:
            config_path = resolve_merchant_rules_path()

        self.default_category = default_category
        self.toml_rules: list[dict[str, Any]] = self._load_toml(config_path)
        self.python_rules: list[CategoryRule] = []
        self.fallback_rules: list[CategoryRule] = []
        logger.debug("Loaded %d TOML rules from %s", len(self.toml_rules), config_path)

    def _load_toml(self, config_path: Path) -> list[dict[str, Any]]:
        """Load and parse TOML rules file.

        Args:
            config_path: Path to the TOML file.

        Returns:
            List of rule dictionaries with 'keywords' and 'category' keys.
        """
        if not config_path.exists():
            logger.warning("Config file not found: %s", config_path)
            return []

        with open(config_path, "rb") as f:
            data = tomllib.load(f)

        rules = data.get("rules", [])

        # Normalize keywords to uppercase for case-insensitive matching
        for rule in rules:
            rule["keywords"] = [kw.upper() for kw in rule.get("keywords", [])]

        return rules

    def register_rule(self, rule_func: CategoryRule) -> None:
        """Register a Python rule function.

        Python rules are executed before TOML rules and can implement
        complex logic like amount-based decisions or multi-condition checks.

        Args:
            rule_func: A function that takes a CategorizationInput and returns
                       a category string or None if no match.
        """
        self.python_rules.append(rule_func)
        logger.debug("Registered Python rule: %s", rule_func.__name__)

    def register_rules(self, rule_funcs: list[CategoryRule]) -> None:
        """Register multiple Python rule functions.

        Args:
            rule_funcs: List of rule functions to register.
        """
        for rule_func in rule_funcs:
            self.register_rule(rule_func)

    def register_fallback_rule(self, rule_func: CategoryRule) -> None:
        """Register a Python rule evaluated only after every TOML rule missed."""
        self.fallback_rules.append(rule_func)
        logger.debug("Registered fallback rule: %s", rule_func.__name__)

    def _run_python_rules(self, rules: list[CategoryRule], info: CategorizationInput) -> str | None:
        for rule in rules:
            result = rule(info)
            if result:
                logger.debug(
                    "Python rule %s matched for '%s': %s",
                    rule.__name__,
                    info.merchant_name,
                    result,
                )
                return result
        return None

    def categorize(self, info: CategorizationInput) -> str:
        """Categorize a merchant using registered rules.

        Args:
            info: The merchant (and optional amount) to categorize.

        Returns:
            The category id for the merchant.
        """
        # 1. Python rules first (complex logic, early exits)
        result = self._run_python_rules(self.python_rules, info)
        if result:
            return result

        # 2. TOML rules (simple keyword matching)
        merchant_upper = info.merchant_name.upper().strip()
        if merchant_upper:
            for toml_rule in self.toml_rules:
                matched = [kw for kw in toml_rule["keywords"] if kw in merchant_upper]
                if matched:
                    category = toml_rule["category"]
                    logger.debug(
                        "TOML rule matched for '%s': %s (keyword: %s)",
                        info.merchant_name,
                        category,
                        matched[0],
                    )
                    return category

        # 3. Broad fallbacks
        result = self._run_python_rules(self.fallback_rules, info)
        if result:
            return result

        # 4. Default
        logger.debug("No rule matched for '%s', using default", info.merchant_name)
        return self.default_category

    def categorize_merchant(self, merchant_name: str | None) -> str:
        """Categorize a bare merchant name."""
        return self.categorize(MerchantInfo(merchant_name=merchant_name or ""))


def resolve_merchant_rules_path() -> Path:
    """Project rules under $STRUK_HOME/config when present, else the packaged defaults."""
    paths = get_paths()
    if paths.merchant_rules.exists():
        return paths.merchant_rules
    return paths.default_merchant_rules


# Global singleton instance
_engine: RuleEngine | None = None


def get_rule_engine(config_path: Path | None = None) -> RuleEngine:
    """Get or create the global rule engine instance.

    On first call, creates a new RuleEngine instance with the bundled
    Python rules registered. Subsequent calls return the same instance
    (unless reset_rule_engine() is called).

    Args:
        config_path: Optional path to TOML config. Only used on first call.
                    Ignored if engine already exists.

    Returns:
        The singleton RuleEngine instance.
    """
    global _engine
    if _engine is None:
        _engine = create_rule_engine(config_path=config_path)
    return _engine


def reset_rule_engine() -> None:
    """Reset the global rule engine instance.

    This clears the singleton, so the next call to get_rule_engine()
    will create a fresh instance. Useful for testing.
    """
    global _engine
    _engine = None


def create_rule_engine(config_path: Path | None = None, register_python_rules: bool = True) -> RuleEngine:
    """Create a new RuleEngine instance (not the singleton).

    Use this when you need an isolated engine instance, e.g., for testing
    or when you want different configuration than the global instance.

    Args:
        config_path: Path to TOML config file. If None, uses default.
        register_python_rules: Register the bundled fallback rules.

    Returns:
        A new RuleEngine instance.
    """
    engine = RuleEngine(config_path=config_path)
    if register_python_rules:
        engine.register_fallback_rule(convenience_store_rule)
    return engine
