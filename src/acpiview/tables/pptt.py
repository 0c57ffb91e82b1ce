"""PPTT (Processor Properties Topology Table) walker.

References:
  - ACPI 6.3 Specification, section 5.2.29
  - Arm Architecture Reference Manual ARMv8 (D.a), CCSIDR_EL1
"""

from __future__ import annotations

from enum import IntEnum

from acpiview.config import ARCH_COMPAT_ALL
from acpiview.engine.fields import FieldDescriptor, FieldTable, as_view, dump_chars, parse_fields
from acpiview.engine.header import header_fields
from acpiview.engine.registry import (
    FieldTableHandler,
    FunctionHandler,
    StructRegistry,
    StructType,
    struct_name,
)
from acpiview.engine.session import DecodeSession
from acpiview.engine.walker import walk_structures
from acpiview.models.report import TableReport
from acpiview.tables.common import RECORD_HEADER_FIELDS, RECORD_LOOKAHEAD_FIELDS, build_report
from acpiview.utils.logging import get_logger

logger = get_logger(__name__)

PPTT_SIGNATURE = "PPTT"

# CCSIDR_EL1 NumSets limits, without and with ARMv8.3-CCIDX
PPTT_ARM_CACHE_NUMBER_OF_SETS_MAX = 1 << 15
PPTT_ARM_CCIDX_CACHE_NUMBER_OF_SETS_MAX = 1 << 24

# CCSIDR_EL1 LineSize encodes log2(bytes) - 4 in three bits
PPTT_ARM_CACHE_LINE_SIZE_MIN = 16
PPTT_ARM_CACHE_LINE_SIZE_MAX = 2048

# Cache attributes bits [7:5] are reserved
CACHE_ATTRIBUTES_RESERVED_MASK = 0xE0

PRIVATE_RESOURCES_KEY = "private_resources"
PRIVATE_RESOURCE_SIZE = 4


class PpttStructType(IntEnum):
    """Processor Topology Structure types (ACPI 6.3 table 5-154)."""

    PROCESSOR = 0x00
    CACHE = 0x01
    ID = 0x02


def validate_cache_number_of_sets(
    session: DecodeSession, data: memoryview, context: object
) -> None:
    number_of_sets = int.from_bytes(data, "little")
    if number_of_sets == 0:
        session.error("Cache number of sets must be greater than 0")
        return

    if not session.architecture.is_arm:
        return

    if number_of_sets > PPTT_ARM_CCIDX_CACHE_NUMBER_OF_SETS_MAX:
        session.error(
            "When ARMv8.3-CCIDX is implemented the maximum cache number of sets "
            f"must be less than or equal to {PPTT_ARM_CCIDX_CACHE_NUMBER_OF_SETS_MAX}"
        )
    elif number_of_sets > PPTT_ARM_CACHE_NUMBER_OF_SETS_MAX:
        session.warning(
            "Without ARMv8.3-CCIDX, the maximum cache number of sets must be less "
            f"than or equal to {PPTT_ARM_CACHE_NUMBER_OF_SETS_MAX}. Ignore this "
            "message if ARMv8.3-CCIDX is implemented"
        )


def validate_cache_associativity(
    session: DecodeSession, data: memoryview, context: object
) -> None:
    if data[0] == 0:
        session.error("Cache associativity must be greater than 0")


def validate_cache_line_size(
    session: DecodeSession, data: memoryview, context: object
) -> None:
    """Line size must be a power of two within the CCSIDR_EL1 range on Arm."""
    if not session.architecture.is_arm:
        return

    line_size = int.from_bytes(data, "little")
    if not PPTT_ARM_CACHE_LINE_SIZE_MIN <= line_size <= PPTT_ARM_CACHE_LINE_SIZE_MAX:
        session.error(
            f"The cache line size must be between {PPTT_ARM_CACHE_LINE_SIZE_MIN} and "
            f"{PPTT_ARM_CACHE_LINE_SIZE_MAX} bytes on ARM Platforms."
        )
    if line_size & (line_size - 1):
        session.error("The cache line size is not a power of 2.")


def validate_cache_attributes(
    session: DecodeSession, data: memoryview, context: object
) -> None:
    if data[0] & CACHE_ATTRIBUTES_RESERVED_MASK:
        session.error("Attributes bits [7:5] are reserved and must be zero.")


PROCESSOR_HIERARCHY_NODE_FIELDS: FieldTable = RECORD_HEADER_FIELDS + (
    FieldDescriptor("Flags", 4, 4, "0x{:x}"),
    FieldDescriptor("Parent", 4, 8, "0x{:x}"),
    FieldDescriptor("ACPI Processor ID", 4, 12, "0x{:x}"),
    FieldDescriptor(
        "Number of private resources", 4, 16, "{:d}", capture=PRIVATE_RESOURCES_KEY
    ),
)

CACHE_TYPE_FIELDS: FieldTable = RECORD_HEADER_FIELDS + (
    FieldDescriptor("Flags", 4, 4, "0x{:x}"),
    FieldDescriptor("Next Level of Cache", 4, 8, "0x{:x}"),
    FieldDescriptor("Size", 4, 12, "0x{:x}"),
    FieldDescriptor(
        "Number of sets", 4, 16, "{:d}", validator=validate_cache_number_of_sets
    ),
    FieldDescriptor(
        "Associativity", 1, 20, "{:d}", validator=validate_cache_associativity
    ),
    FieldDescriptor(
        "Attributes", 1, 21, "0x{:x}", validator=validate_cache_attributes
    ),
    FieldDescriptor("Line size", 2, 22, "{:d}", validator=validate_cache_line_size),
)

ID_FIELDS: FieldTable = RECORD_HEADER_FIELDS + (
    FieldDescriptor("VENDOR_ID", 4, 4, formatter=dump_chars),
    FieldDescriptor("LEVEL_1_ID", 8, 8, "0x{:x}"),
    FieldDescriptor("LEVEL_2_ID", 8, 16, "0x{:x}"),
    FieldDescriptor("MAJOR_REV", 2, 24, "0x{:x}"),
    FieldDescriptor("MINOR_REV", 2, 26, "0x{:x}"),
    FieldDescriptor("SPIN_REV", 2, 28, "0x{:x}"),
)

PPTT_FIELDS: FieldTable = header_fields()


def dump_processor_hierarchy_node(
    session: DecodeSession,
    registry: StructRegistry,
    record: memoryview,
    length: int,
    arg0: object,
    arg1: object,
) -> None:
    """Trace a Processor Hierarchy Node and its private resource references."""
    entry = registry.entries[PpttStructType.PROCESSOR]
    result = parse_fields(
        session,
        record,
        PROCESSOR_HIERARCHY_NODE_FIELDS,
        trace=True,
        name=struct_name(entry.name, registry.count(PpttStructType.PROCESSOR)),
        indent=2,
        length=length,
    )

    resource_count = result.get_int(PRIVATE_RESOURCES_KEY)
    if resource_count is None:
        session.error(f"Insufficient {entry.name} Structure length. Length = {length}.")
        return

    offset = result.consumed
    available = min(length, len(record))
    if offset + resource_count * PRIVATE_RESOURCE_SIZE > available:
        session.error(
            f"Invalid Number of Private Resources. "
            f"PrivateResourceCount = {resource_count}. "
            f"RemainingBufferLength = {available - offset}. "
            f"Parsing of this structure aborted."
        )
        return

    for index in range(resource_count):
        reference = int.from_bytes(record[offset:offset + PRIVATE_RESOURCE_SIZE], "little")
        session.emit(session.field_label(4, f"Private resource [{index}]") + f"0x{reference:x}")
        offset += PRIVATE_RESOURCE_SIZE


PPTT_REGISTRY = StructRegistry(
    "Processor Topology Structure",
    [
        StructType(
            "Processor", PpttStructType.PROCESSOR, ARCH_COMPAT_ALL,
            FunctionHandler(dump_processor_hierarchy_node),
        ),
        StructType(
            "Cache", PpttStructType.CACHE, ARCH_COMPAT_ALL,
            FieldTableHandler(CACHE_TYPE_FIELDS),
        ),
        StructType("ID", PpttStructType.ID, ARCH_COMPAT_ALL, FieldTableHandler(ID_FIELDS)),
    ],
)


def parse_pptt(
    session: DecodeSession,
    buffer: bytes | bytearray | memoryview,
    table_length: int,
    revision: int,
    *,
    registry: StructRegistry | None = None,
) -> TableReport | None:
    """Trace and validate a PPTT.

    Decodes Processor Hierarchy Node (type 0), Cache Type (type 1) and ID
    (type 2) structures.

    Returns:
        The table report, or None when tracing is disabled.
    """
    if not session.config.trace:
        return None

    registry = registry if registry is not None else PPTT_REGISTRY.fresh()
    walk = walk_structures(
        session,
        as_view(buffer),
        table_name="PPTT",
        table_length=table_length,
        prefix_fields=PPTT_FIELDS,
        header_fields=RECORD_LOOKAHEAD_FIELDS,
        registry=registry,
    )

    logger.debug("pptt_parsed", records=walk.dispatched, state=walk.state.value)
    return build_report(session, PPTT_SIGNATURE, table_length, revision, walk, registry)
