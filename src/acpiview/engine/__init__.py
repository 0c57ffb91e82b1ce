"""Field descriptor engine, structure registry and generic table walker.

The GAS helpers are exported for walkers of tables that embed 12-byte
Generic Address Structure fields.
"""

from acpiview.engine.fields import FieldDescriptor, FieldParseResult, dump_chars, parse_fields
from acpiview.engine.gas import GAS_FIELDS, GAS_LENGTH, dump_gas, dump_gas_struct
from acpiview.engine.header import HeaderInfo, dump_acpi_header, extract_header_fields
from acpiview.engine.registry import (
    FieldTableHandler,
    FunctionHandler,
    NotImplementedHandler,
    StructRegistry,
    StructType,
)
from acpiview.engine.session import DecodeSession
from acpiview.engine.walker import WalkResult, WalkState, walk_structures

__all__ = [
    "GAS_FIELDS",
    "GAS_LENGTH",
    "DecodeSession",
    "FieldDescriptor",
    "FieldParseResult",
    "FieldTableHandler",
    "FunctionHandler",
    "HeaderInfo",
    "NotImplementedHandler",
    "StructRegistry",
    "StructType",
    "WalkResult",
    "WalkState",
    "dump_acpi_header",
    "dump_chars",
    "dump_gas",
    "dump_gas_struct",
    "extract_header_fields",
    "parse_fields",
    "walk_structures",
]
