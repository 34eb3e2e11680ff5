"""Console output abstraction.

Services write through :class:`ConsoleProtocol` rather than a concrete
library so they can be exercised in tests with :class:`MockConsole`.

Branches run in parallel threads; each one writes through a
:class:`PrefixedConsole` so interleaved lines stay attributable.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Protocol

__all__ = [
    "Style",
    "ConsoleProtocol",
    "RichConsole",
    "PrefixedConsole",
    "MockConsole",
]


class Style(Enum):
    """Text styles for console output."""

    DEFAULT = auto()
    SUCCESS = auto()
    ERROR = auto()
    WARNING = auto()
    INFO = auto()
    DIM = auto()  # echoed commands, hints
    BOLD = auto()
    HEADER = auto()

    def __str__(self) -> str:
        return self.name.lower()


class ConsoleProtocol(Protocol):
    """Protocol for console output."""

    def print(self, message: str, style: Style = Style.DEFAULT) -> None: ...

    def success(self, message: str) -> None: ...

    def error(self, message: str) -> None: ...

    def warning(self, message: str) -> None: ...

    def info(self, message: str) -> None: ...

    def header(self, message: str) -> None: ...

    def newline(self) -> None: ...


class RichConsole:
    """Production console backed by Rich.

    Rich serialises writes internally, so one instance can be shared by
    all branch threads.
    """

    def __init__(self, *, stderr: bool = False) -> None:
        # Import Rich lazily to avoid import-time dependency
        from rich.console import Console

        self._console = Console(stderr=stderr, highlight=False)
        self._style_map = {
            Style.DEFAULT: "",
            Style.SUCCESS: "green",
            Style.ERROR: "red bold",
            Style.WARNING: "yellow",
            Style.INFO: "cyan",
            Style.DIM: "dim",
            Style.BOLD: "bold",
            Style.HEADER: "blue bold",
        }

    def print(self, message: str, style: Style = Style.DEFAULT) -> None:
        rich_style = self._style_map.get(style, "")
        if rich_style:
            self._console.print(message, style=rich_style, markup=False)
        else:
            self._console.print(message, markup=False)

    def success(self, message: str) -> None:
        self._console.print(f"[green]OK[/green] {_escape(message)}")

    def error(self, message: str) -> None:
        self._console.print(f"[red bold]error:[/red bold] {_escape(message)}")

    def warning(self, message: str) -> None:
        self._console.print(f"[yellow]warning:[/yellow] {_escape(message)}")

    def info(self, message: str) -> None:
        self._console.print(f"[cyan]info:[/cyan] {_escape(message)}")

    def header(self, message: str) -> None:
        self._console.print(f"\n[blue bold]{_escape(message)}[/blue bold]")

    def newline(self) -> None:
        self._console.print()


def _escape(message: str) -> str:
    # Messages carry file names and triples like "[linux]"; keep them literal.
    from rich.markup import escape

    return escape(message)


class PrefixedConsole:
    """Console wrapper that tags every line with a fixed prefix."""

    def __init__(self, inner: ConsoleProtocol, prefix: str) -> None:
        self._inner = inner
        self._prefix = f"[{prefix}] "

    def print(self, message: str, style: Style = Style.DEFAULT) -> None:
        self._inner.print(self._prefix + message, style)

    def success(self, message: str) -> None:
        self._inner.success(self._prefix + message)

    def error(self, message: str) -> None:
        self._inner.error(self._prefix + message)

    def warning(self, message: str) -> None:
        self._inner.warning(self._prefix + message)

    def info(self, message: str) -> None:
        self._inner.info(self._prefix + message)

    def header(self, message: str) -> None:
        self._inner.header(self._prefix + message)

    def newline(self) -> None:
        self._inner.newline()


@dataclass
class OutputRecord:
    """A single output record for MockConsole."""

    message: str
    style: Style


def _empty_outputs() -> list[OutputRecord]:
    return []


@dataclass
class MockConsole:
    """Console implementation that captures output for testing."""

    outputs: list[OutputRecord] = field(default_factory=_empty_outputs)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def _record(self, message: str, style: Style) -> None:
        with self._lock:
            self.outputs.append(OutputRecord(message, style))

    def print(self, message: str, style: Style = Style.DEFAULT) -> None:
        self._record(message, style)

    def success(self, message: str) -> None:
        self._record(f"OK {message}", Style.SUCCESS)

    def error(self, message: str) -> None:
        self._record(f"error: {message}", Style.ERROR)

    def warning(self, message: str) -> None:
        self._record(f"warning: {message}", Style.WARNING)

    def info(self, message: str) -> None:
        self._record(f"info: {message}", Style.INFO)

    def header(self, message: str) -> None:
        self._record(message, Style.HEADER)

    def newline(self) -> None:
        self._record("", Style.DEFAULT)

    # Test helpers

    @property
    def messages(self) -> list[str]:
        with self._lock:
            return [o.message for o in self.outputs]

    @property
    def text(self) -> str:
        return "\n".join(self.messages)

    def has_error(self) -> bool:
        return any(o.style == Style.ERROR for o in self.outputs)

    def find(self, substring: str) -> list[OutputRecord]:
        """Find all outputs containing a substring."""
        return [o for o in self.outputs if substring in o.message]
