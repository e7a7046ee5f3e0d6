"""Renders diagnostics as styled text segments."""

from __future__ import annotations

import logging
from collections.abc import Callable, Hashable, Sequence
from dataclasses import dataclass
from typing import TypeVar

from codeframe.config import Chars, Config, DisplayStyle
from codeframe.diagnostic import Diagnostic, LabelStyle, Severity
from codeframe.errors import FileNotFound, WriteError
from codeframe.layout import (
    AnnotationRow,
    FileBlock,
    FoldRow,
    Glyph,
    LineLayoutEngine,
    Margin,
    SourceRow,
)
from codeframe.source import Files, IndexedFiles, Location, PositionIndex
from codeframe.styles import BufferWriter, Style, Writer

logger = logging.getLogger(__name__)

Segment = tuple[Style, str]
T = TypeVar("T")


@dataclass(frozen=True)
class _ResolvedFile:
    name: str
    location: Location
    block: FileBlock
    is_primary: bool


class Renderer:
    """Writes one diagnostic at a time to a :class:`Writer`.

    All files are resolved and laid out before the first segment is
    written, so a missing file or a bad offset fails without output.
    """

    def __init__(self, writer: Writer, config: Config | None = None) -> None:
        self.writer = writer
        self.config = config or Config()
        self.chars: Chars = self.config.chars
        self.engine = LineLayoutEngine(self.config)

    def render(self, files: Files, diagnostic: Diagnostic) -> None:
        logger.debug(
            "rendering %s diagnostic with %d label(s)",
            diagnostic.severity.value, len(diagnostic.labels),
        )
        resolved = self._resolve(files, diagnostic)
        style = self.config.display_style
        if style is DisplayStyle.RICH:
            self._render_rich(diagnostic, resolved)
        else:
            self._render_condensed(diagnostic, resolved, with_notes=style is DisplayStyle.MEDIUM)

    # ── Resolution ────────────────────────────────────────────────

    def _resolve(self, files: Files, diagnostic: Diagnostic) -> list[_ResolvedFile]:
        primary = diagnostic.primary_label()
        resolved = []
        for file_id in diagnostic.file_ids():
            name = _lookup(files.name, file_id)
            index = self._index(files, file_id)
            block = self.engine.layout(index, diagnostic.labels_for(file_id))
            is_primary = primary is not None and file_id == primary.file_id
            if is_primary:
                offset = min(primary.start, index.source_length)
                location = index.location(offset, self.config.tab_width)
            else:
                location = block.first_location
            resolved.append(_ResolvedFile(name, location, block, is_primary))
        return resolved

    @staticmethod
    def _index(files: Files, file_id: Hashable) -> PositionIndex:
        if isinstance(files, IndexedFiles):
            return _lookup(files.index, file_id)
        return PositionIndex.build(_lookup(files.source, file_id))

    # ── Output ────────────────────────────────────────────────────

    def _write(self, style: Style, text: str) -> None:
        try:
            self.writer.write(style, text)
        except WriteError:
            raise
        except (OSError, ValueError) as e:
            raise WriteError(f"writer rejected output: {e}") from e

    def _write_line(self, segments: Sequence[Segment]) -> None:
        """Write one output line without trailing whitespace."""
        trimmed = list(segments)
        while trimmed:
            style, text = trimmed[-1]
            stripped = text.rstrip()
            if stripped:
                trimmed[-1] = (style, stripped)
                break
            trimmed.pop()
        for style, text in trimmed:
            if text:
                self._write(style, text)
        self._write(Style.PLAIN, "\n")

    def _header(self, diagnostic: Diagnostic) -> list[Segment]:
        level = diagnostic.severity.value
        if diagnostic.code:
            level = f"{level}[{diagnostic.code}]"
        segments = [(self.config.level_style(diagnostic.severity), level)]
        if diagnostic.message:
            segments.append((Style.HEADER, f": {diagnostic.message}"))
        return segments

    def _render_rich(self, diagnostic: Diagnostic, resolved: list[_ResolvedFile]) -> None:
        self._write_line(self._header(diagnostic))

        for item in resolved:
            width = item.block.gutter_width
            arrow = self.chars.snippet_start if item.is_primary else self.chars.snippet_other
            self._write_line([
                (Style.GUTTER, f"{' ' * width}{arrow} "),
                (Style.SECONDARY, f"{item.name}:{item.location}"),
            ])
            self._write_border(width)
            for row in item.block.rows:
                self._write_row(row, item.block, diagnostic.severity)

        gutter_width = max((item.block.gutter_width for item in resolved), default=1)
        if diagnostic.notes:
            if resolved:
                self._write_border(gutter_width)
            for note in diagnostic.notes:
                self._write_note(note, gutter_width + 1)
        self._write(Style.PLAIN, "\n")

    def _render_condensed(
        self, diagnostic: Diagnostic, resolved: list[_ResolvedFile], *, with_notes: bool
    ) -> None:
        segments: list[Segment] = []
        primary = next((item for item in resolved if item.is_primary), None)
        if primary is not None:
            segments.append((Style.SECONDARY, f"{primary.name}:{primary.location}"))
            segments.append((Style.PLAIN, ": "))
        segments.extend(self._header(diagnostic))
        self._write_line(segments)
        if with_notes:
            for note in diagnostic.notes:
                self._write_note(note, 1)

    def _write_border(self, gutter_width: int) -> None:
        self._write_line([(Style.GUTTER, f"{' ' * (gutter_width + 1)}{self.chars.border}")])

    def _write_note(self, note: str, indent: int) -> None:
        prefix = f"{self.chars.note_bullet} note: "
        lines = note.splitlines() or [""]
        self._write_line([
            (Style.PLAIN, " " * indent),
            (Style.GUTTER, self.chars.note_bullet),
            (Style.NOTE, " note:"),
            (Style.PLAIN, f" {lines[0]}"),
        ])
        for line in lines[1:]:
            self._write_line([(Style.PLAIN, " " * (indent + len(prefix)) + line)])

    def _write_row(
        self, row: SourceRow | AnnotationRow | FoldRow, block: FileBlock, severity: Severity
    ) -> None:
        width = block.gutter_width
        if isinstance(row, FoldRow):
            self._write_line([(Style.GUTTER, f"{self.chars.fold:>{width}} {self.chars.border_break}")])
            return

        if isinstance(row, SourceRow):
            gutter = f"{row.line:>{width}} {self.chars.border} "
        else:
            gutter = f"{' ' * width} {self.chars.border} "
        segments: list[Segment] = [(Style.GUTTER, gutter)]
        segments.extend(self._margin(row.margin, severity))

        if isinstance(row, SourceRow):
            segments.append((Style.SOURCE, row.text))
        else:
            segments.extend(self._annotation(row, severity))
        self._write_line(segments)

    def _margin(self, margin: Margin, severity: Severity) -> list[Segment]:
        segments: list[Segment] = []
        # style of the closing run once it has started, None before that
        run: Style | None = None
        for cell in margin:
            if cell is None:
                segments.append((Style.PLAIN, "  "))
                continue
            style = self.config.label_style(severity, cell.style)
            segments.append((style, self._glyph(cell.glyph, cell.style)))
            if cell.glyph is Glyph.HORIZONTAL and run is None:
                run = style
            if run is not None:
                segments.append((run, self.chars.multi_horizontal))
            else:
                segments.append((Style.PLAIN, " "))
        return segments

    def _annotation(self, row: AnnotationRow, severity: Severity) -> list[Segment]:
        segments: list[Segment] = []
        column = 1
        for mark in sorted(row.marks, key=lambda mark: mark.column):
            if mark.column > column:
                segments.append((Style.PLAIN, " " * (mark.column - column)))
            glyph = self._glyph(mark.glyph, mark.style)
            style = self.config.label_style(severity, mark.style)
            segments.append((style, glyph * mark.width))
            column = mark.column + mark.width
        if row.message is not None:
            if segments and row.message.column <= column:
                pad = 1
            else:
                pad = max(0, row.message.column - column)
            segments.append((Style.PLAIN, " " * pad))
            segments.append((Style.NOTE, row.message.text))
        return segments

    def _glyph(self, glyph: Glyph, style: LabelStyle) -> str:
        chars = self.chars
        if glyph is Glyph.UNDERLINE:
            return chars.primary_caret if style is LabelStyle.PRIMARY else chars.secondary_caret
        if glyph is Glyph.MULTI_CARET:
            if style is LabelStyle.PRIMARY:
                return chars.multi_primary_caret
            return chars.multi_secondary_caret
        return {
            Glyph.CARET: chars.insertion_caret,
            Glyph.HORIZONTAL: chars.multi_horizontal,
            Glyph.TOP_LEFT: chars.multi_top_left,
            Glyph.LEFT: chars.multi_left,
            Glyph.BOTTOM_LEFT: chars.multi_bottom_left,
        }[glyph]


def _lookup(getter: Callable[[Hashable], T], file_id: Hashable) -> T:
    try:
        return getter(file_id)
    except (KeyError, IndexError):
        raise FileNotFound(file_id) from None


def emit(writer: Writer, config: Config | None, files: Files, diagnostic: Diagnostic) -> None:
    """Render ``diagnostic`` to ``writer``."""
    Renderer(writer, config).render(files, diagnostic)


def render_to_string(files: Files, diagnostic: Diagnostic, config: Config | None = None) -> str:
    """Render ``diagnostic`` and return the text without styling."""
    buffer = BufferWriter()
    emit(buffer, config, files, diagnostic)
    return buffer.getvalue()
