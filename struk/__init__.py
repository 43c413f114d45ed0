"""Indonesian receipt OCR parsing and live scan stabilization."""

__version__ = "0.1.0"
