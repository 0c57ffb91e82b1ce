"""Decoding session: diagnostics counters, trace sink and indent depth.

A DecodeSession carries all mutable state of one table pass. Passes that run
concurrently must each own a session (and a fresh registry copy).
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING

from acpiview.config import Architecture, ViewConfig

if TYPE_CHECKING:
    from acpiview.engine.header import HeaderInfo

# Column the " : " separator is aligned to in trace output
OUTPUT_FIELD_COLUMN_WIDTH = 36

# Indent of the per-type lines in the table breakdown
INSTANCE_COUNT_INDENT = 2

TraceWriter = Callable[[str], None]


class DecodeSession:
    """Error/warning tallies and trace output for one table pass."""

    def __init__(
        self,
        config: ViewConfig | None = None,
        writer: TraceWriter | None = None,
    ) -> None:
        self.config = config or ViewConfig()
        self.lines: list[str] = []
        self.indent = 0
        self.error_count = 0
        self.warning_count = 0
        self.header: HeaderInfo | None = None
        self._writer = writer
        self._pending = ""

    @property
    def consistency_checking(self) -> bool:
        return self.config.consistency_checking

    @property
    def architecture(self) -> Architecture:
        return self.config.architecture

    # -- counters ---------------------------------------------------------

    def reset_error_count(self) -> None:
        self.error_count = 0

    def reset_warning_count(self) -> None:
        self.warning_count = 0

    def reset_counts(self) -> None:
        """Zero both counters, typically before each table pass."""
        self.reset_error_count()
        self.reset_warning_count()

    def increment_error_count(self) -> None:
        self.error_count += 1

    def increment_warning_count(self) -> None:
        self.warning_count += 1

    def error(self, message: str) -> None:
        """Count an error and emit an inline ``ERROR:`` trace line."""
        self.increment_error_count()
        self.emit(f"ERROR: {message}")

    def warning(self, message: str) -> None:
        """Count a warning and emit an inline ``WARNING:`` trace line."""
        self.increment_warning_count()
        self.emit(f"WARNING: {message}")

    # -- trace output -----------------------------------------------------

    def write(self, text: str) -> None:
        """Append text to the current, not yet terminated, trace line."""
        self._pending += text

    def flush(self) -> None:
        """Terminate the current trace line if anything was written to it."""
        if self._pending:
            line, self._pending = self._pending, ""
            self._commit(line)

    def emit(self, line: str = "") -> None:
        """Emit a complete trace line, terminating any pending one first."""
        self.flush()
        self._commit(line)

    def _commit(self, line: str) -> None:
        self.lines.append(line)
        if self._writer is not None:
            self._writer(line)

    @property
    def text(self) -> str:
        parts = self.lines + ([self._pending] if self._pending else [])
        return "\n".join(parts)

    def field_label(self, indent: int, name: str) -> str:
        """Format ``name`` padded to the value column at the current depth."""
        depth = self.indent + indent
        width = max(OUTPUT_FIELD_COLUMN_WIDTH - depth, 0)
        return f"{'':{depth}}{name:<{width}} : "

    def heading(self, name: str) -> None:
        """Emit a structure heading line at the current depth."""
        width = max(OUTPUT_FIELD_COLUMN_WIDTH - self.indent, 0)
        self.emit(f"{'':{self.indent}}{name:<{width}} :")

    @contextmanager
    def indented(self, amount: int) -> Iterator[None]:
        """Increase the trace indent for the duration of a nested decode."""
        self.indent += amount
        try:
            yield
        finally:
            self.indent -= amount
