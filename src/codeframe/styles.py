"""Style tags and the writers that turn styled segments into output."""

from __future__ import annotations

import html
from collections.abc import Mapping
from enum import Enum
from typing import Protocol, TextIO, runtime_checkable


class Style(Enum):
    """Logical style of a rendered segment. Writers decide what it looks like."""

    LEVEL_BUG = "level-bug"
    LEVEL_ERROR = "level-error"
    LEVEL_WARNING = "level-warning"
    LEVEL_NOTE = "level-note"
    LEVEL_HELP = "level-help"
    HEADER = "header"
    GUTTER = "gutter"
    SOURCE = "source"
    PRIMARY = "primary"
    PRIMARY_WARNING = "primary-warning"
    PRIMARY_NOTE = "primary-note"
    PRIMARY_HELP = "primary-help"
    SECONDARY = "secondary"
    NOTE = "note"
    PLAIN = "plain"


@runtime_checkable
class Writer(Protocol):
    """Accepts an ordered stream of ``(style, text)`` segments."""

    def write(self, style: Style, text: str) -> None: ...


class PlainWriter:
    """Writes text to a stream and drops all styling."""

    def __init__(self, stream: TextIO) -> None:
        self.stream = stream

    def write(self, style: Style, text: str) -> None:
        self.stream.write(text)


# ANSI color codes
_ANSI_PALETTE: dict[Style, str] = {
    Style.LEVEL_BUG: "\033[1;31m",      # bold red
    Style.LEVEL_ERROR: "\033[1;31m",    # bold red
    Style.LEVEL_WARNING: "\033[1;33m",  # bold yellow
    Style.LEVEL_NOTE: "\033[1;32m",     # bold green
    Style.LEVEL_HELP: "\033[1;36m",     # bold cyan
    Style.HEADER: "\033[1m",
    Style.GUTTER: "\033[1;34m",
    Style.PRIMARY: "\033[31m",
    Style.PRIMARY_WARNING: "\033[33m",
    Style.PRIMARY_NOTE: "\033[32m",
    Style.PRIMARY_HELP: "\033[36m",
    Style.SECONDARY: "\033[34m",
    Style.NOTE: "\033[36m",
}
_RESET = "\033[0m"


class AnsiWriter:
    """Wraps each styled segment in ANSI SGR escape codes."""

    def __init__(self, stream: TextIO, palette: Mapping[Style, str] | None = None) -> None:
        self.stream = stream
        self.palette = dict(_ANSI_PALETTE)
        if palette:
            self.palette.update(palette)

    def write(self, style: Style, text: str) -> None:
        code = self.palette.get(style, "")
        if code and text.strip():
            self.stream.write(f"{code}{text}{_RESET}")
        else:
            self.stream.write(text)


class HtmlWriter:
    """Emits ``<span class="cf-...">`` elements, one per styled segment."""

    def __init__(self, stream: TextIO, class_prefix: str = "cf-") -> None:
        self.stream = stream
        self.class_prefix = class_prefix

    def write(self, style: Style, text: str) -> None:
        escaped = html.escape(text, quote=False)
        if style is Style.PLAIN or not text.strip():
            self.stream.write(escaped)
        else:
            self.stream.write(f'<span class="{self.class_prefix}{style.value}">{escaped}</span>')


class BufferWriter:
    """Records segments in memory."""

    def __init__(self) -> None:
        self.segments: list[tuple[Style, str]] = []

    def write(self, style: Style, text: str) -> None:
        self.segments.append((style, text))

    def getvalue(self) -> str:
        return "".join(text for _, text in self.segments)

    def styled(self, style: Style) -> list[str]:
        """Texts written with ``style``, in order."""
        return [text for seg_style, text in self.segments if seg_style is style]
