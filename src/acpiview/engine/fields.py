"""Field descriptor engine.

A descriptor table is an ordered tuple of FieldDescriptor entries describing
one flat structure layout. parse_fields() walks the table against a buffer,
tracing each field, cross-checking declared offsets and capturing slices the
caller needs to steer further parsing (e.g. a record's length).
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from acpiview.exceptions import FieldDescriptorError

if TYPE_CHECKING:
    from acpiview.engine.session import DecodeSession

FieldFormatter = Callable[["DecodeSession", "str | None", memoryview], str]
FieldValidator = Callable[["DecodeSession", memoryview, object], None]

# Widths rendered as little-endian integers
NUMERIC_WIDTHS = frozenset({1, 2, 4, 8})

# Widths that only make sense as character or compound data
FORMATTER_WIDTHS = frozenset({3, 6, 12})

VALID_WIDTHS = NUMERIC_WIDTHS | FORMATTER_WIDTHS

# Diagnostic labels when a structure or field carries no name
UNNAMED_STRUCTURE = "Structure"
UNNAMED_FIELD = "<unnamed>"


@dataclass(frozen=True)
class FieldDescriptor:
    """One fixed-length field of a structure layout."""

    name: str | None
    length: int
    offset: int
    fmt: str | None = None
    formatter: FieldFormatter | None = None
    capture: str | None = None
    validator: FieldValidator | None = None
    context: object = None

    def __post_init__(self) -> None:
        if self.length not in VALID_WIDTHS:
            raise FieldDescriptorError(
                f"Field '{self.name}' has unsupported length {self.length}",
                offset=self.offset,
            )
        if self.length in FORMATTER_WIDTHS and self.formatter is None:
            raise FieldDescriptorError(
                f"Field '{self.name}' of length {self.length} needs a formatter",
                offset=self.offset,
            )


FieldTable = tuple[FieldDescriptor, ...]


@dataclass
class FieldParseResult:
    """Outcome of parse_fields(): bytes consumed and captured field slices."""

    consumed: int
    captures: dict[str, memoryview | None] = field(default_factory=dict)

    def get(self, key: str) -> memoryview | None:
        return self.captures.get(key)

    def get_int(self, key: str) -> int | None:
        """Captured field as a little-endian unsigned int, None if absent."""
        data = self.captures.get(key)
        if data is None:
            return None
        return int.from_bytes(data, "little")


def as_view(buffer: bytes | bytearray | memoryview) -> memoryview:
    """Return a read-only, byte-addressed view over a buffer."""
    view = memoryview(buffer)
    if view.format != "B" or view.ndim != 1:
        view = view.cast("B")
    return view.toreadonly()


def dump_chars(session: DecodeSession, fmt: str | None, data: memoryview) -> str:
    """Render a field as characters, or through ``fmt`` applied to its bytes."""
    if fmt is not None:
        return fmt.format(*data)
    return "".join(chr(b) if 0x20 <= b < 0x7F else "." for b in data)


def render_numeric(fmt: str, data: memoryview) -> str:
    return fmt.format(int.from_bytes(data, "little"))


def parse_fields(
    session: DecodeSession,
    buffer: bytes | bytearray | memoryview,
    fields: Sequence[FieldDescriptor],
    *,
    trace: bool,
    name: str | None = None,
    indent: int = 0,
    length: int | None = None,
) -> FieldParseResult:
    """Decode ``fields`` sequentially from the start of ``buffer``.

    Fields that do not fit within ``length`` bytes are skipped without
    advancing the cursor (their captures are set to None), and later
    descriptors are still examined. Fields without a name are decoded and
    captured but never traced. Offset mismatches and validator findings
    are counted on the session; they never stop decoding.

    Args:
        session: Session receiving trace lines and diagnostics.
        buffer: Bytes of the structure, starting at its first field.
        fields: Descriptor table to apply.
        trace: Emit ``name : value`` lines for each decoded field.
        name: Structure name used for the heading and diagnostics.
        indent: Extra indent applied for the duration of this call.
        length: Usable length of the buffer; defaults to ``len(buffer)``.

    Returns:
        FieldParseResult with the number of bytes consumed by in-range
        fields and the captured slices.
    """
    view = as_view(buffer)
    limit = len(view) if length is None else min(length, len(view))
    result = FieldParseResult(consumed=0)
    cursor = 0

    with session.indented(indent):
        if trace and name is not None:
            session.heading(name)

        for desc in fields:
            if cursor + desc.length > limit:
                if desc.capture is not None:
                    result.captures[desc.capture] = None
                continue

            data = view[cursor:cursor + desc.length]

            if session.consistency_checking and cursor != desc.offset:
                session.error(
                    f"{name or UNNAMED_STRUCTURE}: Offset Mismatch for "
                    f"{desc.name or UNNAMED_FIELD}. "
                    f"CurrentOffset = {cursor} FieldOffset = {desc.offset}"
                )

            if trace and desc.name is not None:
                _trace_field(session, desc, data)

            if desc.capture is not None:
                result.captures[desc.capture] = data

            cursor += desc.length

        session.flush()

    result.consumed = cursor
    return result


def _trace_field(
    session: DecodeSession,
    desc: FieldDescriptor,
    data: memoryview,
) -> None:
    session.write(session.field_label(2, desc.name))
    if desc.formatter is not None:
        session.write(desc.formatter(session, desc.fmt, data))
    elif desc.fmt is not None:
        # FieldDescriptor guarantees non-numeric widths carry a formatter
        session.write(render_numeric(desc.fmt, data))

    if session.consistency_checking and desc.validator is not None:
        desc.validator(session, data, desc.context)
    session.flush()
