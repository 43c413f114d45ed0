"""Unified command-line interface for struk.

Usage:
    struk parse [file|-] [--confidence 0.9] [--today YYYY-MM-DD]
    struk scan <image> [--ocr-url URL]
    struk serve [--host] [--port]
"""
