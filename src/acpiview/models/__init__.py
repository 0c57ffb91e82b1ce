"""Pydantic data models for acpiview."""

from acpiview.models.report import StructureCount, TableReport

__all__ = [
    "StructureCount",
    "TableReport",
]
