"""Concrete table walkers, keyed by table signature."""

from __future__ import annotations

from collections.abc import Callable

from acpiview.engine.fields import as_view
from acpiview.engine.header import extract_header_fields
from acpiview.engine.session import DecodeSession
from acpiview.exceptions import TableLoadError, UnsupportedTableError
from acpiview.models.report import TableReport
from acpiview.tables.madt import MADT_SIGNATURE, parse_madt
from acpiview.tables.pptt import PPTT_SIGNATURE, parse_pptt

TableParser = Callable[..., "TableReport | None"]

TABLE_PARSERS: dict[str, TableParser] = {
    MADT_SIGNATURE: parse_madt,
    PPTT_SIGNATURE: parse_pptt,
}


def parse_table(
    session: DecodeSession,
    buffer: bytes | bytearray | memoryview,
) -> TableReport | None:
    """Identify a table by its header and run the matching walker.

    Raises:
        TableLoadError: The buffer is too short to hold a table header.
        UnsupportedTableError: No walker exists for the signature.
    """
    view = as_view(buffer)
    info = extract_header_fields(session, view)
    if not info.complete:
        raise TableLoadError(f"Buffer of {len(view)} bytes is too short for a table header")

    signature = info.signature
    parser = TABLE_PARSERS.get(signature)
    if parser is None:
        raise UnsupportedTableError(signature)

    return parser(session, view, info.length, info.revision)


__all__ = [
    "TABLE_PARSERS",
    "parse_madt",
    "parse_pptt",
    "parse_table",
]
