"""Unit tests for the structure registry and dispatcher."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from acpiview.config import ARCH_COMPAT_ALL, ArchCompat
from acpiview.engine.fields import FieldDescriptor
from acpiview.engine.registry import (
    FieldTableHandler,
    FunctionHandler,
    NotImplementedHandler,
    StructRegistry,
    StructType,
    struct_name,
)
from acpiview.exceptions import RegistryError

_WIDGET_FIELDS = (
    FieldDescriptor("Type", 1, 0, "0x{:x}"),
    FieldDescriptor("Length", 1, 1, "{:d}"),
    FieldDescriptor("Value", 2, 2, "0x{:x}"),
)

_X86 = ArchCompat.IA32 | ArchCompat.X64
_ARM = ArchCompat.ARM | ArchCompat.AARCH64


def _registry(func=None) -> StructRegistry:
    return StructRegistry(
        "Widget Structure",
        [
            StructType("Widget", 0, ARCH_COMPAT_ALL, FieldTableHandler(_WIDGET_FIELDS)),
            StructType("Gadget", 1, _X86, FunctionHandler(func or MagicMock())),
            StructType("Gizmo", 2, _ARM, FieldTableHandler(_WIDGET_FIELDS)),
            StructType("Legacy", 3, ARCH_COMPAT_ALL),
        ],
    )


class TestConstruction:
    def test_dense_type_codes_accepted(self):
        registry = _registry()
        assert registry.entry_count == 4
        assert len(registry) == 4

    def test_type_code_must_match_index(self):
        with pytest.raises(RegistryError, match="type 2 at index 1"):
            StructRegistry(
                "Broken",
                [
                    StructType("A", 0, ARCH_COMPAT_ALL),
                    StructType("B", 2, ARCH_COMPAT_ALL),
                ],
            )

    def test_empty_field_table_rejected(self):
        with pytest.raises(RegistryError, match="no fields"):
            StructRegistry("Broken", [StructType("A", 0, ARCH_COMPAT_ALL, FieldTableHandler(()))])

    def test_default_handler_is_not_implemented(self):
        assert isinstance(StructType("A", 0, ARCH_COMPAT_ALL).handler, NotImplementedHandler)

    def test_struct_name(self):
        assert struct_name("GICC", 3) == "GICC [3]"


class TestCounts:
    def test_fresh_registry_has_zero_counts(self):
        registry = _registry()
        assert registry.sum_counts() == 0
        assert registry.counts() == {"Widget": 0, "Gadget": 0, "Gizmo": 0, "Legacy": 0}

    def test_repeated_dispatch_increments_count(self, session):
        registry = _registry()
        for expected in range(1, 4):
            assert registry.dispatch(
                session, b"\x00\x04\x00\x00", type_code=0, length=4, offset=0
            )
            assert registry.count(0) == expected
        assert registry.sum_counts() == 3

    def test_reset_counts(self, session):
        registry = _registry()
        registry.dispatch(session, bytes(4), type_code=0, length=4, offset=0)
        registry.reset_counts()
        assert registry.sum_counts() == 0

    def test_fresh_copy_is_independent(self, session):
        template = _registry()
        copy = template.fresh()
        copy.dispatch(session, bytes(4), type_code=0, length=4, offset=0)
        assert copy.count(0) == 1
        assert template.count(0) == 0
        assert copy.entries == template.entries


class TestIsTypeValid:
    def test_in_range_and_compatible(self):
        registry = _registry()
        assert registry.is_type_valid(0, _X86)
        assert registry.is_type_valid(1, _X86)
        assert not registry.is_type_valid(2, _X86)
        assert registry.is_type_valid(2, _ARM)

    def test_out_of_range(self):
        registry = _registry()
        assert not registry.is_type_valid(4, ARCH_COMPAT_ALL)
        assert not registry.is_type_valid(-1, ARCH_COMPAT_ALL)


class TestDispatch:
    def test_offset_line_always_emitted(self, session):
        registry = _registry()
        registry.dispatch(session, bytes(4), type_code=0, length=4, offset=0x2C)
        assert session.lines[0] == f"  {'* Offset *':<34} : 0x2c"

    def test_unknown_type_fails_with_one_error(self, session):
        registry = _registry()
        ok = registry.dispatch(
            session, bytes(4), type_code=registry.entry_count, length=4, offset=0
        )
        assert ok is False
        assert session.error_count == 1
        assert session.lines[-1] == "ERROR: Unknown Widget Structure. Type = 4"
        assert registry.sum_counts() == 0

    def test_field_table_heading_uses_instance_index(self, session):
        registry = _registry()
        registry.dispatch(session, bytes(4), type_code=0, length=4, offset=0)
        registry.dispatch(session, bytes(4), type_code=0, length=4, offset=4)
        headings = [line.strip() for line in session.lines if line.rstrip().endswith(":")]
        assert headings[0].startswith("Widget [0]")
        assert headings[1].startswith("Widget [1]")

    def test_field_table_decode_limited_to_length(self, session):
        registry = _registry()
        registry.dispatch(session, b"\x00\x02\xaa\xbb", type_code=0, length=2, offset=0)
        assert not any("Value" in line for line in session.lines)
        assert registry.count(0) == 1

    def test_function_handler_receives_record_and_args(self, session):
        func = MagicMock()
        registry = _registry(func)
        ok = registry.dispatch(
            session, b"\x01\x04\x00\x00\xff\xff", type_code=1, length=4, offset=8,
            arg0="a", arg1="b",
        )
        assert ok is True
        func.assert_called_once()
        call_session, call_registry, record, length, arg0, arg1 = func.call_args.args
        assert call_session is session
        assert call_registry is registry
        assert bytes(record) == b"\x01\x04\x00\x00"
        assert length == 4
        assert (arg0, arg1) == ("a", "b")
        assert registry.count(1) == 1

    def test_function_handler_sees_count_before_increment(self, session):
        seen = []

        def handler(sess, registry, record, length, arg0, arg1):
            seen.append(registry.count(1))

        registry = _registry(handler)
        registry.dispatch(session, bytes(4), type_code=1, length=4, offset=0)
        registry.dispatch(session, bytes(4), type_code=1, length=4, offset=4)
        assert seen == [0, 1]

    def test_not_implemented_counts_and_fails(self, session):
        registry = _registry()
        ok = registry.dispatch(session, bytes(4), type_code=3, length=4, offset=0)
        assert ok is False
        assert registry.count(3) == 1
        assert session.error_count == 1
        assert session.lines[-1] == "ERROR: Parsing of Legacy Structure is not implemented"

    def test_validator_errors_do_not_fail_dispatch(self, session):
        def reject(sess, data, context):
            sess.error("nope")

        fields = (FieldDescriptor("Type", 1, 0, "{:d}", validator=reject),)
        registry = StructRegistry(
            "Strict", [StructType("Only", 0, ARCH_COMPAT_ALL, FieldTableHandler(fields))]
        )
        assert registry.dispatch(session, b"\x00", type_code=0, length=1, offset=0)
        assert session.error_count == 1


class TestValidateCounts:
    def test_breakdown_lists_valid_types(self, session):
        registry = _registry()
        registry.dispatch(session, bytes(4), type_code=0, length=4, offset=0)
        session.lines.clear()
        assert registry.validate_counts(session) is True
        assert session.lines[1] == "Table Breakdown:"
        assert f"  {'Widget':<34} : 1" in session.lines
        # Gizmo is ARM-only and absent: neither listed nor flagged on x64
        assert not any("Gizmo" in line for line in session.lines)
        assert session.error_count == 0

    def test_incompatible_type_present_flags_one_error(self, session):
        registry = _registry()
        registry.dispatch(session, bytes(4), type_code=2, length=4, offset=0)
        registry.dispatch(session, bytes(4), type_code=2, length=4, offset=4)
        errors_before = session.error_count
        assert registry.validate_counts(session) is False
        assert session.error_count == errors_before + 1
        assert session.lines[-1] == (
            "ERROR: Gizmo Structure is not valid for the target architecture (found 2)"
        )
        assert not registry.counts_valid(_X86)

    def test_incompatible_type_absent_is_fine(self, arm_session):
        registry = _registry()
        assert registry.validate_counts(arm_session) is True
        assert arm_session.error_count == 0
        assert registry.counts_valid(_ARM)
