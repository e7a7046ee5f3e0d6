"""codeframe command line."""

from __future__ import annotations

import dataclasses
import io
import logging
import os
from pathlib import Path

import click

from codeframe import __version__
from codeframe.config import Config, DisplayStyle, config_for, load_config
from codeframe.diagnostic import Diagnostic, Label, Severity
from codeframe.errors import CodeframeError
from codeframe.render import emit
from codeframe.source import PositionIndex, SimpleFiles
from codeframe.styles import AnsiWriter

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def configure_logging(verbose: bool = False) -> None:
    level_name = "DEBUG" if verbose else os.getenv("LOG_LEVEL", "WARNING").upper()
    level = getattr(logging, level_name, logging.WARNING)
    logging.basicConfig(level=level, format=LOG_FORMAT)


class SpanType(click.ParamType):
    """Parses ``START..END[:MESSAGE]`` (or ``OFFSET[:MESSAGE]``) label specs."""

    name = "span"

    def convert(self, value, param, ctx):
        if isinstance(value, tuple):
            return value
        text, _, message = value.partition(":")
        start_text, sep, end_text = text.partition("..")
        try:
            start = int(start_text)
            end = int(end_text) if sep else start
        except ValueError:
            self.fail(f"{value!r} is not START..END[:MESSAGE]", param, ctx)
        return start, end, message


SPAN = SpanType()


def _load_config(config_path: str | None, near: Path) -> Config:
    if config_path is not None:
        return load_config(Path(config_path))
    return config_for(near)


def _read_source(path: Path) -> str:
    # decode bytes directly so \r\n survives and offsets stay byte offsets
    return path.read_bytes().decode("utf-8")


@click.group()
@click.version_option(__version__, prog_name="codeframe")
@click.option("-v", "--verbose", is_flag=True, help="Log debug output to stderr.")
def main(verbose: bool) -> None:
    """Render source-annotated diagnostics."""
    configure_logging(verbose)


@main.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option("-m", "--message", default="", help="Diagnostic message.")
@click.option(
    "--severity",
    type=click.Choice([s.value for s in Severity]),
    default=Severity.ERROR.value,
    show_default=True,
)
@click.option("--code", default=None, help="Diagnostic code, e.g. E0308.")
@click.option("-l", "--label", "primary", multiple=True, type=SPAN, help="Primary label START..END[:MESSAGE].")
@click.option("-s", "--secondary", multiple=True, type=SPAN, help="Secondary label START..END[:MESSAGE].")
@click.option("-n", "--note", "notes", multiple=True, help="Note printed after the snippet.")
@click.option("--style", "display_style", type=click.Choice([s.value for s in DisplayStyle]), default=None)
@click.option("--ascii/--unicode", "ascii_only", default=None, help="Glyph set for connectors.")
@click.option("--color/--no-color", default=None, help="Force or disable ANSI colors.")
@click.option("--tab-width", type=int, default=None)
@click.option("--fold-threshold", type=int, default=None)
@click.option("--config", "config_path", type=click.Path(exists=True, dir_okay=False), default=None)
def render(
    file: str,
    message: str,
    severity: str,
    code: str | None,
    primary: tuple[tuple[int, int, str], ...],
    secondary: tuple[tuple[int, int, str], ...],
    notes: tuple[str, ...],
    display_style: str | None,
    ascii_only: bool | None,
    color: bool | None,
    tab_width: int | None,
    fold_threshold: int | None,
    config_path: str | None,
) -> None:
    """Render one diagnostic against FILE."""
    path = Path(file)
    overrides = {
        "display_style": display_style,
        "ascii_only": ascii_only,
        "tab_width": tab_width,
        "fold_threshold": fold_threshold,
    }
    try:
        config = _load_config(config_path, path)
        config = dataclasses.replace(
            config, **{key: value for key, value in overrides.items() if value is not None}
        )

        files = SimpleFiles()
        file_id = files.add(str(path), _read_source(path))
        labels = [Label.primary(file_id, *spec) for spec in primary]
        labels += [Label.secondary(file_id, *spec) for spec in secondary]
        diagnostic = Diagnostic(Severity(severity), message, code, labels, notes)

        out = io.StringIO()
        emit(AnsiWriter(out), config, files, diagnostic)
    except CodeframeError as e:
        click.echo(f"error: {e}", err=True)
        raise SystemExit(1)
    except UnicodeDecodeError:
        click.echo(f"error: {file} is not valid UTF-8", err=True)
        raise SystemExit(1)

    click.echo(out.getvalue(), nl=False, color=color)


@main.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.argument("offsets", nargs=-1, type=int, required=True)
@click.option("--tab-width", type=int, default=None)
def locate(file: str, offsets: tuple[int, ...], tab_width: int | None) -> None:
    """Print FILE:LINE:COLUMN for each byte OFFSET in FILE."""
    path = Path(file)
    try:
        config = _load_config(None, path)
        if tab_width is not None:
            config = dataclasses.replace(config, tab_width=tab_width)
        index = PositionIndex.build(path.read_bytes())
        for offset in offsets:
            click.echo(f"{file}:{index.location(offset, config.tab_width)}")
    except CodeframeError as e:
        click.echo(f"error: {e}", err=True)
        raise SystemExit(1)
