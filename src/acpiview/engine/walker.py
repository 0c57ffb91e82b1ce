"""Generic walker for tables made of a fixed prefix and type/length records."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

from acpiview.engine.fields import FieldDescriptor, FieldParseResult, as_view, parse_fields
from acpiview.utils.logging import get_logger

if TYPE_CHECKING:
    from acpiview.engine.registry import StructRegistry
    from acpiview.engine.session import DecodeSession

logger = get_logger(__name__)

TYPE_KEY = "type"
LENGTH_KEY = "length"


class WalkState(StrEnum):
    """Walker progress; a finished walk is DONE or ABORTED."""

    PREFIX = "prefix"
    BODY = "body"
    DONE = "done"
    ABORTED = "aborted"


@dataclass
class WalkResult:
    """Outcome of walk_structures()."""

    state: WalkState
    offset: int
    dispatched: int
    prefix: FieldParseResult


def walk_structures(
    session: DecodeSession,
    buffer: bytes | bytearray | memoryview,
    *,
    table_name: str,
    table_length: int,
    prefix_fields: Sequence[FieldDescriptor],
    header_fields: Sequence[FieldDescriptor],
    registry: StructRegistry,
    type_key: str = TYPE_KEY,
    length_key: str = LENGTH_KEY,
    indent: int = 2,
) -> WalkResult:
    """Trace the table prefix, then dispatch each record of the body.

    Each record header is decoded untraced first to learn its type and
    length. A header that does not fit, a zero length, or a record running
    past ``table_length`` aborts the walk. Dispatch failures do not. A
    ``table_length`` larger than the buffer is reported and clamped.

    Instance counts of ``registry`` are reset at the start of the walk.
    When the walk completes and consistency checking is enabled, the
    registry's counts are validated for the session's architecture.
    """
    view = as_view(buffer)
    registry.reset_counts()
    logger.debug("walk_started", table=table_name, length=table_length)

    if table_length > len(view):
        session.error(
            f"{table_name}: AcpiTableLength = {table_length} exceeds the buffer "
            f"length {len(view)}. Parsing limited to the buffer."
        )
        logger.warning(
            "table_truncated", table=table_name, declared=table_length, actual=len(view)
        )
        table_length = len(view)

    prefix = parse_fields(
        session, view, prefix_fields, trace=True, name=table_name, length=table_length
    )
    offset = prefix.consumed
    dispatched = 0
    state = WalkState.BODY

    while offset < table_length:
        peek = parse_fields(
            session,
            view[offset:],
            header_fields,
            trace=False,
            name=registry.name,
            length=table_length - offset,
        )
        type_code = peek.get_int(type_key)
        length = peek.get_int(length_key)

        if type_code is None or length is None:
            session.error(
                f"Insufficient remaining table buffer length to read the "
                f"{registry.name} header. Length = {table_length - offset}."
            )
            state = WalkState.ABORTED
            break

        if length == 0 or offset + length > table_length:
            session.error(
                f"Invalid {registry.name} length. Length = {length}. "
                f"Offset = {offset}. AcpiTableLength = {table_length}."
            )
            state = WalkState.ABORTED
            break

        registry.dispatch(
            session,
            view[offset:],
            type_code=type_code,
            length=length,
            offset=offset,
            indent=indent,
        )
        dispatched += 1
        offset += length

    if state is WalkState.ABORTED:
        logger.warning(
            "walk_aborted", table=table_name, offset=offset, dispatched=dispatched
        )
        return WalkResult(state, offset, dispatched, prefix)

    if session.consistency_checking:
        registry.validate_counts(session)

    logger.debug("walk_done", table=table_name, dispatched=dispatched)
    return WalkResult(WalkState.DONE, offset, dispatched, prefix)
