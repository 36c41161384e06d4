"""
Presentation — Display layer for twig CLI

Contains display and formatting:
- Symbols: Glyph sets (ascii/unicode), safe printing
- Smartlog: Commit graph rendering
- Formatters: Event-log entries as text
"""

from .symbols import (
    SymbolSet, get_symbols, ASCII, UNICODE,
    safe_print, sanitize_control_chars,
)
from .smartlog import SmartlogRenderer
from .formatters import format_event, format_timestamp

__all__ = [
    # Symbols
    "SymbolSet", "get_symbols", "ASCII", "UNICODE",
    "safe_print", "sanitize_control_chars",
    # Smartlog
    "SmartlogRenderer",
    # Formatters
    "format_event", "format_timestamp",
]
