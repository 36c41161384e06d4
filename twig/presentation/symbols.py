"""
Symbols — Glyphs for drawing the smartlog

ASCII by default; Unicode when configured (display.symbols: unicode) or
auto-detected (display.symbols: auto).

Also provides safe output utilities:
- safe_print(): Encoding-safe printing for commit messages and ref names
- sanitize_control_chars(): Strip terminal control sequences from them
"""

import os
import sys
from dataclasses import dataclass
from typing import Optional


# =============================================================================
# Safe Output Utilities
# =============================================================================

# Unicode glyphs and their ASCII stand-ins, for terminals that can't encode them
UNICODE_TO_ASCII = {
    '●': '@',
    '◆': 'O',
    '◯': 'o',
    '✕': 'x',
    '⊗': 'X',
    '┃': '|',
    '┣━┓': '|\\',
    '⋮': ':',
    '→': '->',
    '…': '...',
}


def sanitize_control_chars(text: str) -> str:
    """
    Remove control characters from commit text before display.

    Commit messages are arbitrary bytes from other people; ANSI escapes
    or NULs in them must not reach the terminal.

    Preserves: tabs (\\t), newlines (\\n), carriage returns (\\r)
    """
    if not text:
        return text

    result = []
    for char in text:
        code = ord(char)
        if code >= 32 or code in (9, 10, 13):
            result.append(char)
    return ''.join(result)


def safe_print(text: str, end: str = '\n', file=None) -> None:
    """
    Print with graceful encoding fallback.

    Replaces known glyphs with their ASCII equivalents on UnicodeEncodeError,
    then anything still unencodable with '?'.
    """
    if file is None:
        file = sys.stdout

    try:
        print(text, end=end, file=file)
    except UnicodeEncodeError:
        safe_text = text
        for unicode_char, ascii_equiv in UNICODE_TO_ASCII.items():
            safe_text = safe_text.replace(unicode_char, ascii_equiv)

        try:
            print(safe_text, end=end, file=file)
        except UnicodeEncodeError:
            encoding = getattr(file, 'encoding', 'utf-8') or 'utf-8'
            encoded = safe_text.encode(encoding, errors='replace')
            print(encoded.decode(encoding), end=end, file=file)


# =============================================================================
# Glyph Sets
# =============================================================================

@dataclass(frozen=True)
class SymbolSet:
    """One glyph per node kind, plus the connectors between rows."""
    # Nodes
    head: str            # the commit HEAD points at
    public: str          # commit on the main branch
    draft: str           # private, visible commit
    hidden: str          # private, hidden commit
    hidden_public: str   # main-branch commit hidden for a reason other than being public
    # Connectors
    line: str            # parent continues straight down to child
    fork: str            # parent has another child below this one
    elision: str         # history skipped between rows

    def node(self, is_head: bool, is_main: bool, hidden: bool) -> str:
        if is_head:
            return self.head
        if is_main:
            return self.hidden_public if hidden else self.public
        return self.hidden if hidden else self.draft


ASCII = SymbolSet(
    head='@',
    public='O',
    draft='o',
    hidden='x',
    hidden_public='X',
    line='|',
    fork='|\\',
    elision=':',
)

UNICODE = SymbolSet(
    head='●',
    public='◆',
    draft='◯',
    hidden='✕',
    hidden_public='⊗',
    line='┃',
    fork='┣━┓',
    elision='⋮',
)

SYMBOL_SETS = ('ascii', 'unicode', 'auto')


def supports_unicode() -> bool:
    """
    Check if the environment likely supports Unicode output.

    Conservative: defaults to ASCII if uncertain.
    """
    if os.environ.get('TWIG_ASCII_ONLY', '').lower() in ('1', 'true', 'yes'):
        return False

    stdout_encoding = getattr(sys.stdout, 'encoding', None)
    if stdout_encoding:
        encoding_lower = stdout_encoding.lower().replace('-', '').replace('_', '')
        if encoding_lower in ('utf8', 'utf16', 'utf16le', 'utf16be', 'utf32'):
            return True
        if encoding_lower.startswith('cp') or encoding_lower in ('ascii', 'latin1', 'iso88591'):
            return False

    lang = os.environ.get('LANG', '').lower()
    lc_all = os.environ.get('LC_ALL', '').lower()
    return any(marker in value for value in (lang, lc_all) for marker in ('utf-8', 'utf8'))


def get_symbols(preference: Optional[str] = None) -> SymbolSet:
    """
    Get the glyph set for a display.symbols setting.

    Args:
        preference: "unicode", "ascii", or "auto" (None = ascii)
    """
    if preference == 'unicode':
        return UNICODE
    if preference == 'auto':
        return UNICODE if supports_unicode() else ASCII
    return ASCII
