"""acpiview - ACPI table decoder and validator."""

__version__ = "0.1.0"
