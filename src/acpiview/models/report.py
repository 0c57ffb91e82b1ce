"""Per-table decode report models."""

from __future__ import annotations

from pydantic import BaseModel, Field


class StructureCount(BaseModel):
    """Instance count of one structure type found in a table."""

    type_code: int
    name: str
    count: int
    valid_for_arch: bool


class TableReport(BaseModel):
    """Result of walking one table."""

    signature: str
    length: int
    revision: int
    state: str
    records: int
    errors: int
    warnings: int
    structures_valid: bool
    structures: list[StructureCount] = Field(default_factory=list)
    trace: list[str] = Field(default_factory=list)

    @property
    def passed(self) -> bool:
        return self.errors == 0
