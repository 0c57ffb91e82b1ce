"""Generic Address Structure (GAS) sub-decoder.

GAS fields are 12 bytes wide and are traced as a nested block beneath the
owning field's label.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from acpiview.engine.fields import FieldDescriptor, FieldTable, parse_fields

if TYPE_CHECKING:
    from acpiview.engine.session import DecodeSession

GAS_LENGTH = 12

GAS_FIELDS: FieldTable = (
    FieldDescriptor("Address Space ID", 1, 0, "0x{:x}"),
    FieldDescriptor("Register Bit Width", 1, 1, "0x{:x}"),
    FieldDescriptor("Register Bit Offset", 1, 2, "0x{:x}"),
    FieldDescriptor("Address Size", 1, 3, "0x{:x}"),
    FieldDescriptor("Address", 8, 4, "0x{:x}"),
)


def dump_gas_struct(
    session: DecodeSession,
    buffer: bytes | bytearray | memoryview,
    indent: int,
    length: int,
) -> int:
    """Trace a GAS structure at ``indent``; return bytes parsed."""
    session.flush()
    return parse_fields(
        session, buffer, GAS_FIELDS, trace=True, indent=indent, length=length
    ).consumed


def dump_gas(session: DecodeSession, fmt: str | None, data: memoryview) -> str:
    """Field formatter for 12-byte GAS fields."""
    dump_gas_struct(session, data, 2, GAS_LENGTH)
    return ""
