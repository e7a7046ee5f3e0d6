"""Error types raised while configuring or rendering diagnostics."""

from __future__ import annotations

from typing import Hashable


class CodeframeError(Exception):
    """Base class for every error raised by codeframe."""


class ConfigError(CodeframeError, ValueError):
    """A configuration value is out of range or of the wrong type."""


class RangeError(CodeframeError, ValueError):
    """A byte range or offset does not fit the source it refers to."""

    def __init__(self, message: str, *, offset: int | None = None) -> None:
        self.offset = offset
        super().__init__(message)


class FileNotFound(CodeframeError, LookupError):
    """A label references a file id the files collaborator cannot resolve."""

    def __init__(self, file_id: Hashable) -> None:
        self.file_id = file_id
        super().__init__(f"unknown file id: {file_id!r}")


class WriteError(CodeframeError, OSError):
    """The output writer refused a segment."""
