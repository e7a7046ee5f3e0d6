"""Diagnostics, labels and severities."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, replace
from enum import Enum
from functools import total_ordering
from typing import Hashable

from codeframe.errors import RangeError


@total_ordering
class Severity(Enum):
    """How serious a diagnostic is. Compares ``BUG > ERROR > WARNING > NOTE > HELP``."""

    BUG = "bug"
    ERROR = "error"
    WARNING = "warning"
    NOTE = "note"
    HELP = "help"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank < other.rank


_SEVERITY_RANK = {
    Severity.HELP: 0,
    Severity.NOTE: 1,
    Severity.WARNING: 2,
    Severity.ERROR: 3,
    Severity.BUG: 4,
}


class LabelStyle(Enum):
    PRIMARY = "primary"
    SECONDARY = "secondary"


@dataclass(frozen=True)
class Label:
    """A styled annotation over the half-open byte range ``[start, end)``."""

    style: LabelStyle
    file_id: Hashable
    start: int
    end: int
    message: str = ""

    def __post_init__(self) -> None:
        if not isinstance(self.start, int) or not isinstance(self.end, int):
            raise RangeError(f"label range must be integers, got {self.start!r}..{self.end!r}")
        if self.start < 0:
            raise RangeError(f"label starts at negative offset {self.start}", offset=self.start)
        if self.start > self.end:
            raise RangeError(
                f"label range {self.start}..{self.end} ends before it starts",
                offset=self.end,
            )

    @classmethod
    def primary(cls, file_id: Hashable, start: int, end: int, message: str = "") -> Label:
        return cls(LabelStyle.PRIMARY, file_id, start, end, message)

    @classmethod
    def secondary(cls, file_id: Hashable, start: int, end: int, message: str = "") -> Label:
        return cls(LabelStyle.SECONDARY, file_id, start, end, message)

    @property
    def is_primary(self) -> bool:
        return self.style is LabelStyle.PRIMARY

    @property
    def length(self) -> int:
        return self.end - self.start

    def with_message(self, message: str) -> Label:
        return replace(self, message=message)


def label_sort_key(label: Label) -> tuple[int, int, int]:
    """Start ascending, primary before secondary, longer ranges first."""
    return (label.start, 0 if label.is_primary else 1, -label.length)


def sort_labels(labels: Iterable[Label]) -> list[Label]:
    return sorted(labels, key=label_sort_key)


@dataclass(frozen=True)
class Diagnostic:
    """A message with optional code, labeled source ranges and notes."""

    severity: Severity
    message: str = ""
    code: str | None = None
    labels: tuple[Label, ...] = ()
    notes: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "labels", tuple(self.labels))
        object.__setattr__(self, "notes", tuple(self.notes))

    # ── Builders ──────────────────────────────────────────────────

    @classmethod
    def bug(cls, message: str = "", code: str | None = None) -> Diagnostic:
        return cls(Severity.BUG, message, code)

    @classmethod
    def error(cls, message: str = "", code: str | None = None) -> Diagnostic:
        return cls(Severity.ERROR, message, code)

    @classmethod
    def warning(cls, message: str = "", code: str | None = None) -> Diagnostic:
        return cls(Severity.WARNING, message, code)

    @classmethod
    def note(cls, message: str = "", code: str | None = None) -> Diagnostic:
        return cls(Severity.NOTE, message, code)

    @classmethod
    def help(cls, message: str = "", code: str | None = None) -> Diagnostic:
        return cls(Severity.HELP, message, code)

    def with_code(self, code: str | None) -> Diagnostic:
        return replace(self, code=code)

    def with_message(self, message: str) -> Diagnostic:
        return replace(self, message=message)

    def with_labels(self, *labels: Label) -> Diagnostic:
        return replace(self, labels=self.labels + labels)

    def with_notes(self, *notes: str) -> Diagnostic:
        return replace(self, notes=self.notes + notes)

    # ── Queries ───────────────────────────────────────────────────

    def primary_label(self) -> Label | None:
        """The label the header location points at."""
        for label in self.labels:
            if label.is_primary:
                return label
        return self.labels[0] if self.labels else None

    def file_ids(self) -> list[Hashable]:
        """Files touched by labels, the primary label's file first."""
        seen: list[Hashable] = []
        primary = self.primary_label()
        if primary is not None:
            seen.append(primary.file_id)
        for label in self.labels:
            if label.file_id not in seen:
                seen.append(label.file_id)
        return seen

    def labels_for(self, file_id: Hashable) -> list[Label]:
        return sort_labels(label for label in self.labels if label.file_id == file_id)
