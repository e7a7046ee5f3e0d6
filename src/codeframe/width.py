"""Display width of characters as they appear in a monospace terminal."""

from __future__ import annotations

import threading
import unicodedata
from dataclasses import dataclass

DEFAULT_TAB_WIDTH = 4


@dataclass(frozen=True)
class _WidthTable:
    wide: frozenset[str]
    zero_categories: frozenset[str]


_table: _WidthTable | None = None
_table_lock = threading.Lock()


def _build_table() -> _WidthTable:
    return _WidthTable(
        # East Asian "Wide" and "Fullwidth" take two cells
        wide=frozenset({"W", "F"}),
        # combining marks, format and control characters take none
        zero_categories=frozenset({"Mn", "Me", "Cf", "Cc"}),
    )


def _width_table() -> _WidthTable:
    global _table
    if _table is None:
        with _table_lock:
            if _table is None:
                _table = _build_table()
    return _table


def char_width(ch: str) -> int:
    """Return the number of terminal cells taken by a single character.

    Tabs are not handled here; use :func:`advance` for tab stops.
    Line terminators count as one cell so that a range that includes
    the end of a line is still visible.
    """
    if ch in ("\n", "\r"):
        return 1
    table = _width_table()
    category = unicodedata.category(ch)
    if category in table.zero_categories:
        return 0
    if unicodedata.east_asian_width(ch) in table.wide:
        return 2
    return 1


def advance(width: int, ch: str, tab_width: int = DEFAULT_TAB_WIDTH) -> int:
    """Return the 0-based display width after drawing ``ch`` at ``width``."""
    if ch == "\t":
        return width + tab_width - (width % tab_width)
    return width + char_width(ch)


def text_width(text: str, tab_width: int = DEFAULT_TAB_WIDTH) -> int:
    """Display width of ``text`` when drawn from the start of a line."""
    width = 0
    for ch in text:
        width = advance(width, ch, tab_width)
    return width


def expand_tabs(text: str, tab_width: int = DEFAULT_TAB_WIDTH) -> str:
    """Replace tabs with spaces up to the next tab stop."""
    if "\t" not in text:
        return text
    parts: list[str] = []
    width = 0
    for ch in text:
        if ch == "\t":
            stop = advance(width, ch, tab_width)
            parts.append(" " * (stop - width))
            width = stop
        else:
            parts.append(ch)
            width = advance(width, ch, tab_width)
    return "".join(parts)
