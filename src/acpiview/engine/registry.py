"""Structure registry and dispatcher.

A StructRegistry maps the type code of a record in a table's repeating body
to a decoding strategy, counts instances of each type during a pass, and
checks each type against the target architecture.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Union

from acpiview.config import ArchCompat
from acpiview.engine.fields import FieldTable, as_view, parse_fields
from acpiview.engine.session import INSTANCE_COUNT_INDENT, OUTPUT_FIELD_COLUMN_WIDTH
from acpiview.exceptions import RegistryError
from acpiview.utils.logging import get_logger

if TYPE_CHECKING:
    from acpiview.engine.session import DecodeSession

logger = get_logger(__name__)

# (session, registry, record, length, arg0, arg1)
StructParserFunc = Callable[
    ["DecodeSession", "StructRegistry", memoryview, int, object, object], None
]


@dataclass(frozen=True)
class FieldTableHandler:
    """Decode the record with a descriptor table."""

    fields: FieldTable


@dataclass(frozen=True)
class FunctionHandler:
    """Decode the record with a custom function that does its own tracing."""

    func: StructParserFunc


@dataclass(frozen=True)
class NotImplementedHandler:
    """Record type is known but has no decoder."""


StructHandler = Union[FieldTableHandler, FunctionHandler, NotImplementedHandler]


@dataclass(frozen=True)
class StructType:
    """One known record type of a table."""

    name: str
    type_code: int
    compat: ArchCompat
    handler: StructHandler = NotImplementedHandler()


def struct_name(name: str, index: int) -> str:
    """Display name of a structure instance: ``<Name> [<Index>]``."""
    return f"{name} [{index}]"


class StructRegistry:
    """Dense, type-code indexed set of structure types with instance counts."""

    def __init__(self, name: str, entries: Sequence[StructType]) -> None:
        for index, entry in enumerate(entries):
            if entry.type_code != index:
                raise RegistryError(
                    f"{name}: entry '{entry.name}' has type {entry.type_code} "
                    f"at index {index}"
                )
            if isinstance(entry.handler, FieldTableHandler) and not entry.handler.fields:
                raise RegistryError(f"{name}: entry '{entry.name}' has no fields")
        self.name = name
        self.entries: tuple[StructType, ...] = tuple(entries)
        self._counts = [0] * len(self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    @property
    def entry_count(self) -> int:
        return len(self.entries)

    def fresh(self) -> StructRegistry:
        """Independent copy with zeroed counts, for a separate pass."""
        return StructRegistry(self.name, self.entries)

    def count(self, type_code: int) -> int:
        return self._counts[type_code]

    def counts(self) -> dict[str, int]:
        return {entry.name: self._counts[entry.type_code] for entry in self.entries}

    def reset_counts(self) -> None:
        self._counts = [0] * len(self.entries)

    def sum_counts(self) -> int:
        return sum(self._counts)

    def is_type_valid(self, type_code: int, arch: ArchCompat) -> bool:
        """True if the type is defined and allowed on the ``arch`` mask."""
        if not 0 <= type_code < len(self.entries):
            return False
        return bool(self.entries[type_code].compat & arch)

    def counts_valid(self, arch: ArchCompat) -> bool:
        """True if no architecture-incompatible type has been counted."""
        return all(
            self.is_type_valid(entry.type_code, arch) or self._counts[entry.type_code] == 0
            for entry in self.entries
        )

    def validate_counts(self, session: DecodeSession) -> bool:
        """Emit the per-type breakdown and flag incompatible structures.

        Returns:
            False if any type not valid for the session's architecture was
            found at least once.
        """
        arch = session.architecture.compat_mask
        all_valid = True
        session.emit()
        session.emit("Table Breakdown:")

        width = OUTPUT_FIELD_COLUMN_WIDTH - INSTANCE_COUNT_INDENT
        for entry in self.entries:
            found = self._counts[entry.type_code]
            if self.is_type_valid(entry.type_code, arch):
                session.emit(f"{'':{INSTANCE_COUNT_INDENT}}{entry.name:<{width}} : {found}")
            elif found > 0:
                all_valid = False
                session.error(
                    f"{entry.name} Structure is not valid for the target "
                    f"architecture (found {found})"
                )
        return all_valid

    def dispatch(
        self,
        session: DecodeSession,
        buffer: bytes | bytearray | memoryview,
        *,
        type_code: int,
        length: int,
        offset: int,
        indent: int = 2,
        arg0: object = None,
        arg1: object = None,
    ) -> bool:
        """Decode one record according to its registered handler.

        Args:
            session: Session receiving trace lines and diagnostics.
            buffer: Bytes starting at the record.
            type_code: Record type read from the record header.
            length: Record length read from the record header.
            offset: Record offset within the table, for the trace only.
            indent: Indent for the record trace.
            arg0: Passed through to function handlers.
            arg1: Passed through to function handlers.

        Returns:
            False for an unknown type or an unimplemented handler. Findings
            of the record's own validators do not affect the result.
        """
        session.emit(session.field_label(indent, "* Offset *") + f"0x{offset:x}")

        if not 0 <= type_code < len(self.entries):
            session.error(f"Unknown {self.name}. Type = {type_code}")
            logger.debug("unknown_structure", registry=self.name, type_code=type_code)
            return False

        entry = self.entries[type_code]
        record = as_view(buffer)[:length]
        handler = entry.handler

        if isinstance(handler, FunctionHandler):
            handler.func(session, self, record, length, arg0, arg1)
        elif isinstance(handler, FieldTableHandler):
            parse_fields(
                session,
                record,
                handler.fields,
                trace=True,
                name=struct_name(entry.name, self._counts[type_code]),
                indent=indent,
                length=length,
            )
        else:
            self._counts[type_code] += 1
            session.error(f"Parsing of {entry.name} Structure is not implemented")
            return False

        self._counts[type_code] += 1
        return True
