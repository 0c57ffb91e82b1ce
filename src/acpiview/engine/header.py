"""Standard ACPI description header (36 bytes) shared by every table."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from acpiview.engine.fields import FieldDescriptor, FieldTable, dump_chars, parse_fields

if TYPE_CHECKING:
    from acpiview.engine.session import DecodeSession

ACPI_HEADER_LENGTH = 36
ACPI_HEADER_NAME = "ACPI Table Header"

SIGNATURE_KEY = "signature"
LENGTH_KEY = "length"
REVISION_KEY = "revision"


def header_fields() -> FieldTable:
    """Descriptor table for the ACPI header, capturing signature/length/revision.

    Table walkers start their prefix table with these fields so the header
    is traced and its values captured in the same pass.
    """
    return (
        FieldDescriptor("Signature", 4, 0, formatter=dump_chars, capture=SIGNATURE_KEY),
        FieldDescriptor("Length", 4, 4, "{:d}", capture=LENGTH_KEY),
        FieldDescriptor("Revision", 1, 8, "{:d}", capture=REVISION_KEY),
        FieldDescriptor("Checksum", 1, 9, "0x{:X}"),
        FieldDescriptor("Oem ID", 6, 10, formatter=dump_chars),
        FieldDescriptor("Oem Table ID", 8, 16, formatter=dump_chars),
        FieldDescriptor("Oem Revision", 4, 24, "0x{:X}"),
        FieldDescriptor("Creator ID", 4, 28, formatter=dump_chars),
        FieldDescriptor("Creator Revision", 4, 32, "0x{:X}"),
    )


ACPI_HEADER_FIELDS: FieldTable = header_fields()


@dataclass(frozen=True)
class HeaderInfo:
    """Signature, length and revision fields captured from a table header.

    Any of the slices is None when the buffer was too short to hold it.
    """

    signature_bytes: memoryview | None
    length_bytes: memoryview | None
    revision_bytes: memoryview | None

    @property
    def complete(self) -> bool:
        return None not in (self.signature_bytes, self.length_bytes, self.revision_bytes)

    @property
    def signature(self) -> str | None:
        if self.signature_bytes is None:
            return None
        return bytes(self.signature_bytes).decode("ascii", errors="replace")

    @property
    def length(self) -> int | None:
        if self.length_bytes is None:
            return None
        return int.from_bytes(self.length_bytes, "little")

    @property
    def revision(self) -> int | None:
        if self.revision_bytes is None:
            return None
        return self.revision_bytes[0]


def dump_acpi_header(session: DecodeSession, buffer: bytes | bytearray | memoryview) -> int:
    """Trace the ACPI header at the start of ``buffer``; return bytes parsed."""
    result = parse_fields(
        session,
        buffer,
        ACPI_HEADER_FIELDS,
        trace=True,
        name=ACPI_HEADER_NAME,
        length=ACPI_HEADER_LENGTH,
    )
    return result.consumed


def extract_header_fields(
    session: DecodeSession,
    buffer: bytes | bytearray | memoryview,
) -> HeaderInfo:
    """Decode the header untraced and capture signature, length and revision.

    The captured info is also stored on ``session.header``.
    """
    result = parse_fields(
        session,
        buffer,
        ACPI_HEADER_FIELDS,
        trace=False,
        name=ACPI_HEADER_NAME,
        length=ACPI_HEADER_LENGTH,
    )
    info = HeaderInfo(
        signature_bytes=result.get(SIGNATURE_KEY),
        length_bytes=result.get(LENGTH_KEY),
        revision_bytes=result.get(REVISION_KEY),
    )
    session.header = info
    return info
