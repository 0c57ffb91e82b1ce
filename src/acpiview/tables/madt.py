"""MADT (Multiple APIC Description Table) walker.

References:
  - ACPI 6.3 Specification, section 5.2.12
  - Arm GIC architecture specification v3/v4, issue E
  - Arm Server Base System Architecture 5.0
"""

from __future__ import annotations

from enum import IntEnum

from acpiview.config import ArchCompat
from acpiview.engine.fields import FieldDescriptor, FieldTable, as_view, dump_chars
from acpiview.engine.header import header_fields
from acpiview.engine.registry import FieldTableHandler, StructRegistry, StructType
from acpiview.engine.session import DecodeSession
from acpiview.engine.walker import WalkState, walk_structures
from acpiview.models.report import TableReport
from acpiview.tables.common import RECORD_HEADER_FIELDS, RECORD_LOOKAHEAD_FIELDS, build_report
from acpiview.utils.logging import get_logger

logger = get_logger(__name__)

MADT_SIGNATURE = "APIC"

# PPI interrupt ID ranges (GICv3.1 adds the extended range)
ARM_PPI_ID_MIN = 16
ARM_PPI_ID_MAX = 31
ARM_PPI_ID_EXTENDED_MIN = 1056
ARM_PPI_ID_EXTENDED_MAX = 1119

# SBSA level 3 PPI assignment for the statistical profiling buffer interrupt
ARM_PPI_ID_PMBIRQ = 21

_X86 = ArchCompat.IA32 | ArchCompat.X64
_ARM = ArchCompat.ARM | ArchCompat.AARCH64


class MadtStructType(IntEnum):
    """Interrupt Controller Structure types (ACPI 6.3 table 5-45)."""

    PROCESSOR_LOCAL_APIC = 0x00
    IO_APIC = 0x01
    INTERRUPT_SOURCE_OVERRIDE = 0x02
    NMI_SOURCE = 0x03
    LOCAL_APIC_NMI = 0x04
    LOCAL_APIC_ADDRESS_OVERRIDE = 0x05
    IO_SAPIC = 0x06
    LOCAL_SAPIC = 0x07
    PLATFORM_INTERRUPT_SOURCES = 0x08
    PROCESSOR_LOCAL_X2APIC = 0x09
    LOCAL_X2APIC_NMI = 0x0A
    GICC = 0x0B
    GICD = 0x0C
    GIC_MSI_FRAME = 0x0D
    GICR = 0x0E
    GIC_ITS = 0x0F


def validate_gicd_system_vector_base(
    session: DecodeSession, data: memoryview, context: object
) -> None:
    if int.from_bytes(data, "little") != 0:
        session.error("System Vector Base must be zero.")


def validate_spe_overflow_interrupt(
    session: DecodeSession, data: memoryview, context: object
) -> None:
    """SPE overflow interrupt must be a PPI, ideally the SBSA assignment.

    Zero means the processor does not implement SPE.
    """
    interrupt = int.from_bytes(data, "little")
    if interrupt == 0:
        return

    in_ppi = ARM_PPI_ID_MIN <= interrupt <= ARM_PPI_ID_MAX
    in_extended = ARM_PPI_ID_EXTENDED_MIN <= interrupt <= ARM_PPI_ID_EXTENDED_MAX
    if not (in_ppi or in_extended):
        session.error(
            f"SPE Overflow Interrupt ID of {interrupt} is not in the allowed PPI ID "
            f"ranges of {ARM_PPI_ID_MIN}-{ARM_PPI_ID_MAX} or "
            f"{ARM_PPI_ID_EXTENDED_MIN}-{ARM_PPI_ID_EXTENDED_MAX} "
            f"(for GICv3.1 or later)."
        )
    elif interrupt != ARM_PPI_ID_PMBIRQ:
        session.warning(
            f"SPE Overflow Interrupt ID of {interrupt} is not compliant with SBSA "
            f"Level 3 PPI ID assignment: {ARM_PPI_ID_PMBIRQ}."
        )


GICC_FIELDS: FieldTable = RECORD_HEADER_FIELDS + (
    FieldDescriptor("CPU Interface Number", 4, 4, "0x{:x}"),
    FieldDescriptor("ACPI Processor UID", 4, 8, "0x{:x}"),
    FieldDescriptor("Flags", 4, 12, "0x{:x}"),
    FieldDescriptor("Parking Protocol Version", 4, 16, "0x{:x}"),
    FieldDescriptor("Performance Interrupt GSIV", 4, 20, "0x{:x}"),
    FieldDescriptor("Parked Address", 8, 24, "0x{:x}"),
    FieldDescriptor("Physical Base Address", 8, 32, "0x{:x}"),
    FieldDescriptor("GICV", 8, 40, "0x{:x}"),
    FieldDescriptor("GICH", 8, 48, "0x{:x}"),
    FieldDescriptor("VGIC Maintenance interrupt", 4, 56, "0x{:x}"),
    FieldDescriptor("GICR Base Address", 8, 60, "0x{:x}"),
    FieldDescriptor("MPIDR", 8, 68, "0x{:x}"),
    FieldDescriptor("Processor Power Efficiency Class", 1, 76, "0x{:x}"),
    FieldDescriptor("Reserved", 1, 77, "0x{:x}"),
    FieldDescriptor(
        "SPE overflow Interrupt", 2, 78, "0x{:x}",
        validator=validate_spe_overflow_interrupt,
    ),
)

GICD_FIELDS: FieldTable = RECORD_HEADER_FIELDS + (
    FieldDescriptor("GIC ID", 4, 4, "0x{:x}"),
    FieldDescriptor("Physical Base Address", 8, 8, "0x{:x}"),
    FieldDescriptor(
        "System Vector Base", 4, 16, "0x{:x}",
        validator=validate_gicd_system_vector_base,
    ),
    FieldDescriptor("GIC Version", 1, 20, "{:d}"),
    FieldDescriptor("Reserved", 3, 21, "{:x} {:x} {:x}", formatter=dump_chars),
)

GIC_MSI_FRAME_FIELDS: FieldTable = RECORD_HEADER_FIELDS + (
    FieldDescriptor("MSI Frame ID", 4, 4, "0x{:x}"),
    FieldDescriptor("Physical Base Address", 8, 8, "0x{:x}"),
    FieldDescriptor("Flags", 4, 16, "0x{:x}"),
    FieldDescriptor("SPI Count", 2, 20, "{:d}"),
    FieldDescriptor("SPI Base", 2, 22, "0x{:x}"),
)

GICR_FIELDS: FieldTable = RECORD_HEADER_FIELDS + (
    FieldDescriptor("Discovery Range Base Address", 8, 4, "0x{:x}"),
    FieldDescriptor("Discovery Range Length", 4, 12, "0x{:x}"),
)

GIC_ITS_FIELDS: FieldTable = RECORD_HEADER_FIELDS + (
    FieldDescriptor("GIC ITS ID", 4, 4, "0x{:x}"),
    FieldDescriptor("Physical Base Address", 8, 8, "0x{:x}"),
    FieldDescriptor("Reserved", 4, 16, "0x{:x}"),
)

MADT_FIELDS: FieldTable = header_fields() + (
    FieldDescriptor("Local Interrupt Controller Address", 4, 36, "0x{:x}"),
    FieldDescriptor("Flags", 4, 40, "0x{:x}"),
)

MADT_REGISTRY = StructRegistry(
    "Interrupt Controller Structure",
    [
        StructType("Processor Local APIC", MadtStructType.PROCESSOR_LOCAL_APIC, _X86),
        StructType("I/O APIC", MadtStructType.IO_APIC, _X86),
        StructType("Interrupt Source Override", MadtStructType.INTERRUPT_SOURCE_OVERRIDE, _X86),
        StructType("NMI Source", MadtStructType.NMI_SOURCE, _X86),
        StructType("Local APIC NMI", MadtStructType.LOCAL_APIC_NMI, _X86),
        StructType(
            "Local APIC Address Override", MadtStructType.LOCAL_APIC_ADDRESS_OVERRIDE, _X86
        ),
        StructType("I/O SAPIC", MadtStructType.IO_SAPIC, _X86),
        StructType("Local SAPIC", MadtStructType.LOCAL_SAPIC, _X86),
        StructType(
            "Platform Interrupt Sources", MadtStructType.PLATFORM_INTERRUPT_SOURCES, _X86
        ),
        StructType("Processor Local x2APIC", MadtStructType.PROCESSOR_LOCAL_X2APIC, _X86),
        StructType("Local x2APIC NMI", MadtStructType.LOCAL_X2APIC_NMI, _X86),
        StructType("GICC", MadtStructType.GICC, _ARM, FieldTableHandler(GICC_FIELDS)),
        StructType("GICD", MadtStructType.GICD, _ARM, FieldTableHandler(GICD_FIELDS)),
        StructType(
            "GIC MSI Frame", MadtStructType.GIC_MSI_FRAME, _ARM,
            FieldTableHandler(GIC_MSI_FRAME_FIELDS),
        ),
        StructType("GICR", MadtStructType.GICR, _ARM, FieldTableHandler(GICR_FIELDS)),
        StructType("GIC ITS", MadtStructType.GIC_ITS, _ARM, FieldTableHandler(GIC_ITS_FIELDS)),
    ],
)


def parse_madt(
    session: DecodeSession,
    buffer: bytes | bytearray | memoryview,
    table_length: int,
    revision: int,
    *,
    registry: StructRegistry | None = None,
) -> TableReport | None:
    """Trace and validate an MADT.

    Decodes GICC, GICD, GIC MSI Frame, GICR and GIC ITS structures; the x86
    APIC structures are recognised and counted but not decoded.

    Args:
        session: Session receiving trace and diagnostics.
        buffer: Table bytes starting at the header.
        table_length: Length field of the table header.
        revision: Revision field of the table header.
        registry: Registry to count instances in. Defaults to a fresh copy
            of MADT_REGISTRY.

    Returns:
        The table report, or None when tracing is disabled.
    """
    if not session.config.trace:
        return None

    registry = registry if registry is not None else MADT_REGISTRY.fresh()
    walk = walk_structures(
        session,
        as_view(buffer),
        table_name="MADT",
        table_length=table_length,
        prefix_fields=MADT_FIELDS,
        header_fields=RECORD_LOOKAHEAD_FIELDS,
        registry=registry,
    )

    if walk.state is WalkState.DONE and session.consistency_checking:
        if registry.count(MadtStructType.GICD) > 1:
            session.error(
                f"Only one {registry.entries[MadtStructType.GICD].name} must be present"
            )

    logger.debug("madt_parsed", records=walk.dispatched, state=walk.state.value)
    return build_report(session, MADT_SIGNATURE, table_length, revision, walk, registry)
