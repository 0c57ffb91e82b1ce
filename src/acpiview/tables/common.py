"""Helpers shared by the concrete table walkers."""

from __future__ import annotations

from acpiview.engine.fields import FieldDescriptor, FieldTable
from acpiview.engine.registry import StructRegistry
from acpiview.engine.session import DecodeSession
from acpiview.engine.walker import LENGTH_KEY, TYPE_KEY, WalkResult
from acpiview.models.report import StructureCount, TableReport

# Record header shared by MADT and PPTT structures: Type(1), Length(1), Reserved(2)
RECORD_HEADER_FIELDS: FieldTable = (
    FieldDescriptor("Type", 1, 0, "0x{:x}"),
    FieldDescriptor("Length", 1, 1, "{:d}"),
    FieldDescriptor("Reserved", 2, 2, "0x{:x}"),
)

# Untraced lookahead of the same header, capturing type and length
RECORD_LOOKAHEAD_FIELDS: FieldTable = (
    FieldDescriptor("Type", 1, 0, capture=TYPE_KEY),
    FieldDescriptor("Length", 1, 1, capture=LENGTH_KEY),
    FieldDescriptor("Reserved", 2, 2),
)


def build_report(
    session: DecodeSession,
    signature: str,
    table_length: int,
    revision: int,
    walk: WalkResult,
    registry: StructRegistry,
) -> TableReport:
    """Summarise a finished walk and the session counters."""
    arch = session.architecture.compat_mask
    structures = [
        StructureCount(
            type_code=entry.type_code,
            name=entry.name,
            count=registry.count(entry.type_code),
            valid_for_arch=registry.is_type_valid(entry.type_code, arch),
        )
        for entry in registry.entries
    ]
    return TableReport(
        signature=signature,
        length=table_length,
        revision=revision,
        state=walk.state.value,
        records=walk.dispatched,
        errors=session.error_count,
        warnings=session.warning_count,
        structures_valid=registry.counts_valid(arch),
        structures=structures,
        trace=list(session.lines),
    )
