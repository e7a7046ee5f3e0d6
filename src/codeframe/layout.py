"""Line layout: which source lines to show and where marks go under them.

The engine works on one file at a time. It resolves every label to line
and display-column coordinates, picks the lines to display (labeled lines,
context, folded gaps), stacks overlapping underlines on separate rows and
routes multi-line labels through connector slots in a left margin.

Everything built here is local to a single :meth:`LineLayoutEngine.layout`
call, so one engine can serve concurrent renders.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum

from codeframe.config import Config
from codeframe.diagnostic import Label, LabelStyle, sort_labels
from codeframe.source import Location, PositionIndex
from codeframe.width import expand_tabs, text_width

logger = logging.getLogger(__name__)


class Glyph(Enum):
    UNDERLINE = "underline"
    CARET = "caret"
    MULTI_CARET = "multi_caret"
    HORIZONTAL = "horizontal"
    TOP_LEFT = "top_left"
    LEFT = "left"
    BOTTOM_LEFT = "bottom_left"


@dataclass(frozen=True)
class MarginCell:
    glyph: Glyph
    style: LabelStyle


Margin = tuple[MarginCell | None, ...]


@dataclass(frozen=True)
class Mark:
    """A run of ``width`` glyphs starting at display ``column``."""

    column: int
    width: int
    glyph: Glyph
    style: LabelStyle


@dataclass(frozen=True)
class Message:
    column: int
    text: str


@dataclass(frozen=True)
class SourceRow:
    line: int
    text: str
    margin: Margin


@dataclass(frozen=True)
class AnnotationRow:
    margin: Margin
    marks: tuple[Mark, ...] = ()
    message: Message | None = None


@dataclass(frozen=True)
class FoldRow:
    """Stands in for a run of unlabeled lines that are not shown."""


Row = SourceRow | AnnotationRow | FoldRow


@dataclass(frozen=True)
class FileBlock:
    """Laid-out rows for one file of one diagnostic."""

    gutter_width: int
    margin_slots: int
    rows: tuple[Row, ...]
    first_location: Location

    @property
    def source_lines(self) -> list[int]:
        return [row.line for row in self.rows if isinstance(row, SourceRow)]


@dataclass(frozen=True)
class PlacedLabel:
    """A label resolved against its file's position index."""

    label: Label
    order: int
    start_line: int
    start_col: int
    end_line: int
    end_col: int

    @property
    def style(self) -> LabelStyle:
        return self.label.style

    @property
    def is_multiline(self) -> bool:
        return self.start_line != self.end_line

    @property
    def is_empty(self) -> bool:
        return self.label.start >= self.label.end


def place_label(index: PositionIndex, label: Label, order: int, tab_width: int) -> PlacedLabel:
    """Resolve a label to line/column coordinates, clamping it to the source."""
    length = index.source_length
    start = min(label.start, length)
    end = min(label.end, length)
    if (start, end) != (label.start, label.end):
        logger.debug(
            "clamped label %d..%d to %d..%d (source length %d)",
            label.start, label.end, start, end, length,
        )
    start_line = index.line_of(start)
    start_col = index.column_in_line(start_line, start, tab_width)
    if end > start:
        # the last byte decides the line, so a range ending right after a
        # newline stays on the line that newline terminates
        end_line = index.line_of(end - 1)
        end_col = index.column_in_line(end_line, end, tab_width)
    else:
        end_line, end_col = start_line, start_col
    return PlacedLabel(label, order, start_line, start_col, end_line, end_col)


def _first_text_column(text: str) -> int:
    stripped = text.lstrip()
    if not stripped:
        return 1
    return text_width(text[: len(text) - len(stripped)]) + 1


def _closing_margin(margin: Margin, slot: int, style: LabelStyle) -> Margin:
    """Margin for the row that closes the label in ``slot``.

    The closing run starts in the label's own slot and runs right through
    the free slots; labels that stay open keep their vertical bar.
    """
    cells = list(margin)
    cells[slot] = MarginCell(Glyph.HORIZONTAL, style)
    for i in range(slot + 1, len(cells)):
        if cells[i] is None:
            cells[i] = MarginCell(Glyph.HORIZONTAL, style)
    return tuple(cells)


class LineLayoutEngine:
    """Lays out the labels of one file into display rows."""

    def __init__(self, config: Config | None = None) -> None:
        self.config = config or Config()

    def layout(self, index: PositionIndex, labels: Sequence[Label]) -> FileBlock:
        tab_width = self.config.tab_width
        placed = [
            place_label(index, label, order, tab_width)
            for order, label in enumerate(sort_labels(labels))
        ]
        if not placed:
            raise ValueError("cannot lay out a file without labels")

        lines = self.display_lines(index, placed)
        slots = self._assign_slots(placed)
        margin_slots = max(slots.values(), default=-1) + 1

        singles: dict[int, list[PlacedLabel]] = defaultdict(list)
        starts: dict[int, list[PlacedLabel]] = defaultdict(list)
        ends: dict[int, list[PlacedLabel]] = defaultdict(list)
        for item in placed:
            if item.is_multiline:
                starts[item.start_line].append(item)
                ends[item.end_line].append(item)
            else:
                singles[item.start_line].append(item)

        multiline = [item for item in placed if item.is_multiline]

        def source_margin(line: int) -> Margin:
            cells: list[MarginCell | None] = [None] * margin_slots
            for item in multiline:
                if item.start_line <= line <= item.end_line:
                    if line == item.start_line:
                        glyph = Glyph.TOP_LEFT
                    elif line == item.end_line:
                        glyph = Glyph.BOTTOM_LEFT
                    else:
                        glyph = Glyph.LEFT
                    cells[slots[item.order]] = MarginCell(glyph, item.style)
            return tuple(cells)

        def annotation_margin(line: int) -> Margin:
            cells: list[MarginCell | None] = [None] * margin_slots
            for item in multiline:
                if item.start_line <= line < item.end_line:
                    cells[slots[item.order]] = MarginCell(Glyph.LEFT, item.style)
            return tuple(cells)

        rows: list[Row] = []
        for line in lines:
            if line is None:
                rows.append(FoldRow())
                continue
            text = expand_tabs(index.line_text(line), tab_width)
            rows.append(SourceRow(line, text, source_margin(line)))
            margin = annotation_margin(line)
            first_column = _first_text_column(text)
            for item in starts.get(line, ()):
                if item.start_col > first_column:
                    rows.append(AnnotationRow(margin, self._start_marks(item)))
            rows.extend(self._single_line_rows(singles.get(line, ()), margin))
            for item in ends.get(line, ()):
                closing = _closing_margin(margin, slots[item.order], item.style)
                rows.extend(self._end_rows(item, margin, closing, first_column))

        gutter_width = len(str(max(line for line in lines if line is not None)))
        first = placed[0]
        return FileBlock(
            gutter_width=gutter_width,
            margin_slots=margin_slots,
            rows=tuple(rows),
            first_location=Location(first.start_line, first.start_col),
        )

    def display_lines(self, index: PositionIndex, placed: Sequence[PlacedLabel]) -> list[int | None]:
        """Lines to show in order; ``None`` marks a folded gap."""
        labeled: set[int] = set()
        for item in placed:
            labeled.update(range(item.start_line, item.end_line + 1))

        last_line = index.last_content_line
        shown = set(labeled)
        for line in labeled:
            for delta in range(1, self.config.context_lines + 1):
                if line - delta >= 1:
                    shown.add(line - delta)
                if line + delta <= last_line:
                    shown.add(line + delta)

        ordered = sorted(shown)
        result: list[int | None] = [ordered[0]]
        for prev, line in zip(ordered, ordered[1:]):
            gap = line - prev - 1
            if gap > self.config.fold_threshold:
                logger.debug("folding lines %d..%d", prev + 1, line - 1)
                result.append(None)
            elif gap > 0:
                result.extend(range(prev + 1, line))
            result.append(line)
        return result

    @staticmethod
    def _assign_slots(placed: Sequence[PlacedLabel]) -> dict[int, int]:
        """Map each multi-line label's order to a margin slot."""
        slot_ends: list[int] = []
        slots: dict[int, int] = {}
        multiline = sorted(
            (item for item in placed if item.is_multiline),
            key=lambda item: (item.start_line, item.order),
        )
        for item in multiline:
            for slot, end_line in enumerate(slot_ends):
                if end_line < item.start_line:
                    slot_ends[slot] = item.end_line
                    slots[item.order] = slot
                    break
            else:
                slots[item.order] = len(slot_ends)
                slot_ends.append(item.end_line)
        return slots

    @staticmethod
    def _start_marks(item: PlacedLabel) -> tuple[Mark, ...]:
        marks = []
        if item.start_col > 1:
            marks.append(Mark(1, item.start_col - 1, Glyph.HORIZONTAL, item.style))
        marks.append(Mark(item.start_col, 1, Glyph.MULTI_CARET, item.style))
        return tuple(marks)

    @staticmethod
    def _single_line_rows(items: Sequence[PlacedLabel], margin: Margin) -> list[AnnotationRow]:
        ordered = sorted(items, key=lambda item: (item.start_col, item.order))

        underline_rows: list[list[Mark]] = []
        for item in ordered:
            if item.is_empty:
                mark = Mark(item.start_col, 1, Glyph.CARET, item.style)
            else:
                width = max(1, item.end_col - item.start_col)
                mark = Mark(item.start_col, width, Glyph.UNDERLINE, item.style)
            for row in underline_rows:
                if all(
                    mark.column >= other.column + other.width
                    or other.column >= mark.column + mark.width
                    for other in row
                ):
                    row.append(mark)
                    break
            else:
                underline_rows.append([mark])

        rows = [AnnotationRow(margin, tuple(marks)) for marks in underline_rows]
        for item in ordered:
            for text in item.label.message.splitlines():
                rows.append(AnnotationRow(margin, message=Message(item.start_col, text)))
        return rows

    @staticmethod
    def _end_rows(
        item: PlacedLabel, margin: Margin, closing: Margin, first_column: int
    ) -> list[AnnotationRow]:
        start = max(1, min(first_column, item.end_col - 1))
        width = max(1, item.end_col - start)
        marks = []
        if start > 1:
            marks.append(Mark(1, start - 1, Glyph.HORIZONTAL, item.style))
        marks.append(Mark(start, width, Glyph.MULTI_CARET, item.style))

        message_column = start + width + 1
        texts = item.label.message.splitlines() or [""]
        rows = [
            AnnotationRow(
                closing,
                tuple(marks),
                Message(message_column, texts[0]) if texts[0] else None,
            )
        ]
        for text in texts[1:]:
            rows.append(AnnotationRow(margin, message=Message(message_column, text)))
        return rows
