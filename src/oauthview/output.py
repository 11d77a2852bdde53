"""Terminal output for the ``oauthview`` commands.

Data the user may pipe (replay reports, certificate details, trust store
listings) goes to stdout; status lines, warnings and the interactive trust
dialog go to stderr. Three renderings are available:

* ``json`` -- the payload as indented JSON, for scripts.
* ``plain`` -- one ``field<TAB>value`` line per field. List fields such as
  ``commands`` in a replay report repeat the field name on every line, so
  ``grep`` and ``cut`` work on them.
* ``rich`` -- field/value tables, with lists of records (replay commands)
  drawn as nested tables.

``auto`` picks ``rich`` on a colour-capable TTY and ``plain`` otherwise.
``NO_COLOR`` and ``TERM=dumb`` disable colour.

:func:`~oauthview.app.main_callback` installs one :class:`OutputManager`
per invocation; commands call the module-level helpers.
"""

from __future__ import annotations

import json
import os
import sys
from enum import Enum
from typing import Any, Optional

from rich.console import Console
from rich.table import Table


class OutputFormat(str, Enum):
    AUTO = "auto"
    JSON = "json"
    PLAIN = "plain"
    RICH = "rich"


def _plain_cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, dict):
        return " ".join(f"{k}={_plain_cell(v)}" for k, v in value.items())
    if isinstance(value, list):
        return ",".join(_plain_cell(v) for v in value)
    return str(value)


def _is_record_list(value: Any) -> bool:
    return isinstance(value, list) and bool(value) and all(isinstance(v, dict) for v in value)


class OutputManager:
    """Renders command results and diagnostics.

    Args:
        format: Requested rendering; ``AUTO`` is resolved at construction.
        no_color: Disable colour and markup.
        quiet: Drop ``info``, ``success`` and ``suggest`` messages.
            Warnings, errors and stdout data are always written.
    """

    def __init__(
        self,
        format: OutputFormat = OutputFormat.AUTO,
        no_color: bool = False,
        quiet: bool = False,
    ) -> None:
        self._no_color = no_color or _should_disable_color()
        self._quiet = quiet
        if format == OutputFormat.AUTO:
            rich_ok = _is_tty() and not self._no_color
            format = OutputFormat.RICH if rich_ok else OutputFormat.PLAIN
        self._format = format

        self._out = Console(
            file=sys.stdout,
            no_color=self._no_color,
            force_terminal=format == OutputFormat.RICH,
        )
        self._err = Console(file=sys.stderr, no_color=self._no_color, stderr=True)

    @property
    def format(self) -> OutputFormat:
        return self._format

    # --- stdout ---

    def format_response(self, data: Any, title: Optional[str] = None) -> None:
        """Write a command result (a dict, a list of records, or a scalar)."""
        if self._format == OutputFormat.JSON:
            self._emit(json.dumps(data, indent=2, ensure_ascii=False, default=str))
        elif self._format == OutputFormat.PLAIN:
            self._plain(data)
        elif isinstance(data, dict):
            self._out.print(self._field_table(data, title))
        elif _is_record_list(data):
            self._out.print(self._record_table(data, title))
        else:
            self._out.print(str(data))

    def print_table(
        self,
        headers: list[str],
        rows: list[list[str]],
        title: Optional[str] = None,
    ) -> None:
        """Write rows under *headers*: JSON records, TSV with a header line, or a table."""
        if self._format == OutputFormat.JSON:
            self._emit(json.dumps([dict(zip(headers, r)) for r in rows], indent=2))
            return
        if self._format == OutputFormat.PLAIN:
            for line in [headers, *rows]:
                self._emit("\t".join(line))
            return
        table = Table(title=title, header_style="bold cyan")
        for header in headers:
            table.add_column(header)
        for row in rows:
            table.add_row(*row)
        self._out.print(table)

    # --- stderr ---

    def info(self, message: str) -> None:
        if not self._quiet:
            self._diagnostic(message, "")

    def success(self, message: str) -> None:
        if not self._quiet:
            self._diagnostic(message, "", style="green")

    def warning(self, message: str) -> None:
        self._diagnostic(message, "Warning: ", style="yellow")

    def error(self, message: str) -> None:
        self._diagnostic(message, "Error: ", style="bold red")

    def suggest(self, message: str) -> None:
        if not self._quiet:
            self._diagnostic(f"→ {message}", "", style="dim")

    # --- helpers ---

    def _emit(self, text: str) -> None:
        print(text, file=sys.stdout, flush=True)

    def _diagnostic(self, message: str, prefix: str, style: Optional[str] = None) -> None:
        if self._no_color:
            print(f"{prefix}{message}", file=sys.stderr, flush=True)
        elif style and prefix:
            self._err.print(f"[{style}]{prefix}[/{style}]{message}", highlight=False)
        elif style:
            self._err.print(f"[{style}]{message}[/{style}]", highlight=False)
        else:
            self._err.print(message, highlight=False)

    def _plain(self, data: Any) -> None:
        if isinstance(data, dict):
            for key, value in data.items():
                if _is_record_list(value):
                    for record in value:
                        cells = [_plain_cell(v) for v in record.values()]
                        self._emit("\t".join([key, *cells]))
                else:
                    self._emit(f"{key}\t{_plain_cell(value)}")
        elif isinstance(data, list):
            for item in data:
                if isinstance(item, dict):
                    self._emit("\t".join(_plain_cell(v) for v in item.values()))
                else:
                    self._emit(_plain_cell(item))
        else:
            self._emit(_plain_cell(data))

    def _field_table(self, data: dict[str, Any], title: Optional[str]) -> Table:
        table = Table(title=title, show_header=False, box=None, padding=(0, 2))
        table.add_column(style="bold cyan")
        table.add_column()
        for key, value in data.items():
            if _is_record_list(value):
                table.add_row(key, self._record_table(value, None))
            elif value is None or value == {} or value == []:
                table.add_row(key, "[dim]-[/dim]")
            else:
                table.add_row(key, _plain_cell(value))
        return table

    def _record_table(self, records: list[dict[str, Any]], title: Optional[str]) -> Table:
        columns = list(dict.fromkeys(k for record in records for k in record))
        table = Table(title=title, header_style="bold cyan")
        for column in columns:
            table.add_column(column)
        for record in records:
            table.add_row(*(_plain_cell(record.get(c)) for c in columns))
        return table


def _is_tty() -> bool:
    return hasattr(sys.stdout, "isatty") and sys.stdout.isatty()


def _should_disable_color() -> bool:
    """``NO_COLOR`` (any value, even empty) or ``TERM=dumb``."""
    return "NO_COLOR" in os.environ or os.environ.get("TERM") == "dumb"


_output: Optional[OutputManager] = None


def get_output() -> OutputManager:
    """Return the installed manager, creating an ``AUTO`` one on first use."""
    global _output
    if _output is None:
        _output = OutputManager()
    return _output


def set_output(output: OutputManager) -> None:
    global _output
    _output = output


def reset_output() -> None:
    """Forget the installed manager. Tests call this between runs."""
    global _output
    _output = None


def format_response(data: Any, title: Optional[str] = None) -> None:
    get_output().format_response(data, title)


def print_table(headers: list[str], rows: list[list[str]], title: Optional[str] = None) -> None:
    get_output().print_table(headers, rows, title)


def info(message: str) -> None:
    get_output().info(message)


def success(message: str) -> None:
    get_output().success(message)


def warning(message: str) -> None:
    get_output().warning(message)


def error(message: str) -> None:
    get_output().error(message)


def suggest(message: str) -> None:
    get_output().suggest(message)
