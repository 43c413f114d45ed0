"""Centralized path management for struk.

This module provides a single source of truth for all runtime paths,
eliminating scattered path definitions across modules.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path


def _get_project_root() -> Path:
    """Determine the data root directory: $STRUK_HOME, else the working directory."""
    home = os.environ.get("STRUK_HOME")
    return Path(home).expanduser() if home else Path.cwd()


@dataclass
class ProjectPaths:
    """Container for all runtime paths.

    All paths are computed relative to the data root, ensuring consistency
    across all modules regardless of where they are called from.
    """

    root: Path = field(default_factory=_get_project_root)

    def __post_init__(self) -> None:
        # Ensure root is resolved to absolute path
        self.root = self.root.resolve()

    # --- Package paths ---
    @property
    def src(self) -> Path:
        """Installed struk package directory."""
        return Path(__file__).resolve().parent.parent

    @property
    def default_merchant_rules(self) -> Path:
        """Packaged default merchant category rules TOML file."""
        return self.src / "receipt" / "rules" / "default_merchant_rules.toml"

    # --- Configuration paths ---
    @property
    def config(self) -> Path:
        """Configuration directory (config/)."""
        return self.root / "config"

    @property
    def settings(self) -> Path:
        """Parser and stabilizer settings TOML file."""
        return self.config / "struk.toml"

    @property
    def merchant_rules(self) -> Path:
        """Project-level merchant category rules TOML file."""
        return self.config / "merchant_rules.toml"

    # --- Receipt paths ---
    @property
    def receipts(self) -> Path:
        """Root receipts directory."""
        return self.root / "receipts"

    @property
    def receipts_ocr_json(self) -> Path:
        """Raw OCR results (JSON)."""
        return self.receipts / "ocr_json"

    def ensure_receipt_directories(self) -> None:
        """Create all receipt-related directories if they don't exist."""
        self.receipts_ocr_json.mkdir(parents=True, exist_ok=True)


# Module-level singleton
_paths: ProjectPaths | None = None


def get_paths() -> ProjectPaths:
    """Get the singleton ProjectPaths instance.

    Returns:
        The global ProjectPaths instance.
    """
    global _paths
    if _paths is None:
        _paths = ProjectPaths()
    return _paths


def reset_paths() -> None:
    """Drop the cached ProjectPaths so the next call re-reads STRUK_HOME."""
    global _paths
    _paths = None
