"""Source-annotated diagnostic rendering."""

from codeframe.config import Chars, Config, DisplayStyle, config_for, discover_config, load_config
from codeframe.diagnostic import Diagnostic, Label, LabelStyle, Severity
from codeframe.errors import CodeframeError, ConfigError, FileNotFound, RangeError, WriteError
from codeframe.layout import FileBlock, LineLayoutEngine
from codeframe.render import Renderer, emit, render_to_string
from codeframe.source import Files, Location, PositionIndex, SimpleFiles, SourceFile
from codeframe.styles import AnsiWriter, BufferWriter, HtmlWriter, PlainWriter, Style, Writer

__version__ = "0.1.0"

__all__ = [
    "AnsiWriter",
    "BufferWriter",
    "Chars",
    "CodeframeError",
    "Config",
    "ConfigError",
    "Diagnostic",
    "DisplayStyle",
    "FileBlock",
    "FileNotFound",
    "Files",
    "HtmlWriter",
    "Label",
    "LabelStyle",
    "LineLayoutEngine",
    "Location",
    "PlainWriter",
    "PositionIndex",
    "RangeError",
    "Renderer",
    "Severity",
    "SimpleFiles",
    "SourceFile",
    "Style",
    "Writer",
    "WriteError",
    "config_for",
    "discover_config",
    "emit",
    "load_config",
    "render_to_string",
]
