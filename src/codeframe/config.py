"""Render configuration and codeframe.toml loading."""

from __future__ import annotations

import logging
import tomllib
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Any

from codeframe.diagnostic import LabelStyle, Severity
from codeframe.errors import ConfigError
from codeframe.styles import Style
from codeframe.width import DEFAULT_TAB_WIDTH

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "codeframe.toml"


class DisplayStyle(Enum):
    """How much of a diagnostic to show."""

    RICH = "rich"
    MEDIUM = "medium"
    SHORT = "short"


@dataclass(frozen=True)
class Chars:
    """Glyphs used to draw gutters, underlines and connectors."""

    snippet_start: str
    snippet_other: str
    border: str
    border_break: str
    fold: str
    note_bullet: str
    primary_caret: str
    secondary_caret: str
    insertion_caret: str
    multi_primary_caret: str
    multi_secondary_caret: str
    multi_top_left: str
    multi_left: str
    multi_bottom_left: str
    multi_horizontal: str

    @classmethod
    def box_drawing(cls) -> Chars:
        return cls(
            snippet_start="-->",
            snippet_other=":::",
            border="│",
            border_break="·",
            fold="⋮",
            note_bullet="=",
            primary_caret="^",
            secondary_caret="-",
            insertion_caret="▲",
            multi_primary_caret="^",
            multi_secondary_caret="'",
            multi_top_left="╭",
            multi_left="│",
            multi_bottom_left="╰",
            multi_horizontal="─",
        )

    @classmethod
    def ascii(cls) -> Chars:
        return cls(
            snippet_start="-->",
            snippet_other=":::",
            border="|",
            border_break=".",
            fold=".",
            note_bullet="=",
            primary_caret="^",
            secondary_caret="-",
            insertion_caret="^",
            multi_primary_caret="^",
            multi_secondary_caret="'",
            multi_top_left="/",
            multi_left="|",
            multi_bottom_left="\\",
            multi_horizontal="-",
        )


DEFAULT_STYLE_MAP: Mapping[Severity, Style] = MappingProxyType({
    Severity.BUG: Style.LEVEL_BUG,
    Severity.ERROR: Style.LEVEL_ERROR,
    Severity.WARNING: Style.LEVEL_WARNING,
    Severity.NOTE: Style.LEVEL_NOTE,
    Severity.HELP: Style.LEVEL_HELP,
})

# primary label marks follow the severity color; secondary marks do not
_PRIMARY_LABEL_STYLES: Mapping[Severity, Style] = MappingProxyType({
    Severity.BUG: Style.PRIMARY,
    Severity.ERROR: Style.PRIMARY,
    Severity.WARNING: Style.PRIMARY_WARNING,
    Severity.NOTE: Style.PRIMARY_NOTE,
    Severity.HELP: Style.PRIMARY_HELP,
})


def _check_int(name: str, value: Any, minimum: int) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigError(f"{name} must be an integer, got {value!r}")
    if value < minimum:
        raise ConfigError(f"{name} must be at least {minimum}, got {value}")


@dataclass(frozen=True)
class Config:
    """Options that control layout and glyph selection.

    ``fold_threshold`` is the number of consecutive unlabeled lines that
    are still shown in full; longer runs collapse into a fold marker.
    ``context_lines`` is how many lines are shown around labeled lines.
    """

    tab_width: int = DEFAULT_TAB_WIDTH
    fold_threshold: int = 1
    context_lines: int = 1
    ascii_only: bool = False
    display_style: DisplayStyle = DisplayStyle.RICH
    style_map: Mapping[Severity, Style] = field(default_factory=lambda: DEFAULT_STYLE_MAP)

    def __post_init__(self) -> None:
        _check_int("tab_width", self.tab_width, 1)
        _check_int("fold_threshold", self.fold_threshold, 0)
        _check_int("context_lines", self.context_lines, 0)
        if not isinstance(self.ascii_only, bool):
            raise ConfigError(f"ascii_only must be a boolean, got {self.ascii_only!r}")
        if not isinstance(self.display_style, DisplayStyle):
            try:
                object.__setattr__(self, "display_style", DisplayStyle(self.display_style))
            except ValueError:
                raise ConfigError(f"unknown display style: {self.display_style!r}") from None

        merged = dict(DEFAULT_STYLE_MAP)
        for severity, style in self.style_map.items():
            if not isinstance(severity, Severity) or not isinstance(style, Style):
                raise ConfigError(f"invalid style mapping {severity!r} -> {style!r}")
            merged[severity] = style
        object.__setattr__(self, "style_map", MappingProxyType(merged))

    @property
    def chars(self) -> Chars:
        return Chars.ascii() if self.ascii_only else Chars.box_drawing()

    def level_style(self, severity: Severity) -> Style:
        return self.style_map[severity]

    def label_style(self, severity: Severity, label_style: LabelStyle) -> Style:
        if label_style is LabelStyle.SECONDARY:
            return Style.SECONDARY
        return _PRIMARY_LABEL_STYLES[severity]


def discover_config(start: Path | None = None) -> Path | None:
    """Return the nearest codeframe.toml at or above ``start``, if any.

    ``start`` may be a file; the search then begins in its directory.
    """
    path = (start or Path.cwd()).resolve()
    if path.is_file():
        path = path.parent
    for directory in (path, *path.parents):
        candidate = directory / CONFIG_FILENAME
        if candidate.is_file():
            return candidate
    return None


def _parse_styles(table: Mapping[str, Any]) -> dict[Severity, Style]:
    styles: dict[Severity, Style] = {}
    for severity_name, style_name in table.items():
        try:
            styles[Severity(severity_name)] = Style(style_name)
        except ValueError:
            raise ConfigError(
                f"invalid [styles] entry: {severity_name} = {style_name!r}"
            ) from None
    return styles


def load_config(path: Path) -> Config:
    """Parse a codeframe.toml file into a Config."""
    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"{path}: {e}") from e

    render = data.get("render", {})
    defaults = Config()
    config = Config(
        tab_width=render.get("tab_width", defaults.tab_width),
        fold_threshold=render.get("fold_threshold", defaults.fold_threshold),
        context_lines=render.get("context_lines", defaults.context_lines),
        ascii_only=render.get("ascii_only", defaults.ascii_only),
        display_style=render.get("display_style", defaults.display_style),
        style_map=_parse_styles(data.get("styles", {})),
    )
    logger.debug("loaded config from %s: %s", path, config)
    return config


def config_for(start: Path | None = None) -> Config:
    """Load the codeframe.toml governing ``start``, or the defaults when there is none."""
    path = discover_config(start)
    if path is None:
        logger.debug("no %s above %s, using defaults", CONFIG_FILENAME, start or Path.cwd())
        return Config()
    return load_config(path)
