"""Exception hierarchy for acpiview.

Problems found in table *content* are never raised: they are tallied on the
DecodeSession and reported inline in the trace. Exceptions here cover
programming errors in descriptor tables and registries, and I/O.
"""

from __future__ import annotations


class AcpiViewError(Exception):
    """Base exception for all acpiview errors."""

    def __init__(self, message: str, offset: int | None = None) -> None:
        self.offset = offset
        super().__init__(message)


class FieldDescriptorError(AcpiViewError):
    """A field descriptor was declared with an unusable width or renderer."""


class RegistryError(AcpiViewError):
    """A structure registry violates the dense type-code layout."""


class TableLoadError(AcpiViewError):
    """A table binary could not be read or is too short to identify."""


class UnsupportedTableError(AcpiViewError):
    """No walker is registered for the table signature."""

    def __init__(self, signature: str) -> None:
        self.signature = signature
        super().__init__(f"No parser available for table '{signature}'")
