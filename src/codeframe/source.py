"""Source files and byte-offset to line/column resolution."""

from __future__ import annotations

import bisect
import threading
from dataclasses import dataclass
from typing import Hashable, Protocol, runtime_checkable

from codeframe.errors import FileNotFound, RangeError
from codeframe.width import DEFAULT_TAB_WIDTH, text_width


@dataclass(frozen=True)
class Location:
    """A 1-based line and display column."""

    line: int
    column: int

    def __str__(self) -> str:
        return f"{self.line}:{self.column}"


class PositionIndex:
    """Line-start table for one source text.

    Offsets are byte offsets into the UTF-8 encoding of the source. The
    table is immutable once built and safe to share between threads.
    """

    __slots__ = ("_data", "_line_starts")

    def __init__(self, data: bytes, line_starts: tuple[int, ...]) -> None:
        self._data = data
        self._line_starts = line_starts

    @classmethod
    def build(cls, source: str | bytes) -> PositionIndex:
        data = source.encode("utf-8") if isinstance(source, str) else bytes(source)
        starts = [0]
        pos = data.find(b"\n")
        while pos != -1:
            starts.append(pos + 1)
            pos = data.find(b"\n", pos + 1)
        return cls(data, tuple(starts))

    @property
    def source_length(self) -> int:
        return len(self._data)

    @property
    def line_starts(self) -> tuple[int, ...]:
        return self._line_starts

    @property
    def line_count(self) -> int:
        return len(self._line_starts)

    @property
    def last_content_line(self) -> int:
        """The last line holding text; a final empty line after a newline is skipped."""
        count = len(self._line_starts)
        if count > 1 and self._line_starts[-1] == len(self._data):
            return count - 1
        return count

    def line_of(self, offset: int) -> int:
        """Return the 1-based line containing ``offset``."""
        if offset < 0 or offset > len(self._data):
            raise RangeError(
                f"offset {offset} is outside the source (length {len(self._data)})",
                offset=offset,
            )
        return bisect.bisect_right(self._line_starts, offset)

    def line_start(self, line: int) -> int:
        if not 1 <= line <= len(self._line_starts):
            raise RangeError(f"line {line} does not exist (line count {self.line_count})")
        return self._line_starts[line - 1]

    def line_range(self, line: int) -> tuple[int, int]:
        """Byte range of a line's content, without its terminator."""
        start = self.line_start(line)
        if line < len(self._line_starts):
            end = self._line_starts[line] - 1
            if end > start and self._data[end - 1 : end] == b"\r":
                end -= 1
        else:
            end = len(self._data)
        return start, end

    def line_text(self, line: int) -> str:
        """A line's content with any stray carriage return shown as a space."""
        start, end = self.line_range(line)
        return self._data[start:end].decode("utf-8", errors="replace").replace("\r", " ")

    def column_of(self, offset: int, tab_width: int = DEFAULT_TAB_WIDTH) -> int:
        """Return the 1-based display column of ``offset`` within its line."""
        return self.column_in_line(self.line_of(offset), offset, tab_width)

    def column_in_line(self, line: int, offset: int, tab_width: int = DEFAULT_TAB_WIDTH) -> int:
        """Display column of ``offset`` measured from the start of ``line``.

        ``offset`` may run past the line's content into its terminator,
        which counts as a single column.
        """
        start = self.line_start(line)
        if offset < start or offset > len(self._data):
            raise RangeError(f"offset {offset} is not on line {line}", offset=offset)
        try:
            prefix = self._data[start:offset].decode("utf-8")
        except UnicodeDecodeError:
            raise RangeError(
                f"offset {offset} is not on a character boundary", offset=offset
            ) from None
        if prefix.endswith("\r\n"):
            # a CRLF terminator is one column, like a bare newline
            prefix = prefix[:-1]
        return text_width(prefix, tab_width) + 1

    def location(self, offset: int, tab_width: int = DEFAULT_TAB_WIDTH) -> Location:
        line = self.line_of(offset)
        return Location(line, self.column_in_line(line, offset, tab_width))


# ── Files collaborators ───────────────────────────────────────────


@runtime_checkable
class Files(Protocol):
    """Anything that can name a file id and return its text."""

    def name(self, file_id: Hashable) -> str: ...

    def source(self, file_id: Hashable) -> str: ...


@runtime_checkable
class IndexedFiles(Files, Protocol):
    """Files that also cache a :class:`PositionIndex` per file id."""

    def index(self, file_id: Hashable) -> PositionIndex: ...


class SourceFile:
    """An in-memory source file with a lazily built position index."""

    def __init__(self, name: str, source: str) -> None:
        self.name = name
        self.source = source
        self._index: PositionIndex | None = None
        self._lock = threading.Lock()

    @property
    def index(self) -> PositionIndex:
        if self._index is None:
            with self._lock:
                if self._index is None:
                    self._index = PositionIndex.build(self.source)
        return self._index

    def __repr__(self) -> str:
        return f"SourceFile({self.name!r})"


class SimpleFiles:
    """A growable collection of in-memory files addressed by integer ids."""

    def __init__(self) -> None:
        self._files: list[SourceFile] = []

    def add(self, name: str, source: str) -> int:
        """Add a file and return its id."""
        self._files.append(SourceFile(name, source))
        return len(self._files) - 1

    def get(self, file_id: Hashable) -> SourceFile:
        if (
            isinstance(file_id, bool)
            or not isinstance(file_id, int)
            or not 0 <= file_id < len(self._files)
        ):
            raise FileNotFound(file_id)
        return self._files[file_id]

    def name(self, file_id: Hashable) -> str:
        return self.get(file_id).name

    def source(self, file_id: Hashable) -> str:
        return self.get(file_id).source

    def index(self, file_id: Hashable) -> PositionIndex:
        return self.get(file_id).index

    def __len__(self) -> int:
        return len(self._files)
