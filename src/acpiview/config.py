"""Run configuration: consistency checking, tracing and target architecture."""

from __future__ import annotations

import os
import platform
from enum import IntFlag, StrEnum

from pydantic import BaseModel

ENV_CONSISTENCY = "ACPIVIEW_CONSISTENCY"
ENV_ARCH = "ACPIVIEW_ARCH"

_FALSE_VALUES = {"0", "false", "no", "off"}


class ArchCompat(IntFlag):
    """Architectures a structure type is defined for."""

    IA32 = 0x1
    X64 = 0x2
    ARM = 0x4
    AARCH64 = 0x8


ARCH_COMPAT_ALL = ArchCompat.IA32 | ArchCompat.X64 | ArchCompat.ARM | ArchCompat.AARCH64


class Architecture(StrEnum):
    """Target CPU architecture the tables are validated for."""

    IA32 = "ia32"
    X64 = "x64"
    ARM = "arm"
    AARCH64 = "aarch64"

    @property
    def compat_mask(self) -> ArchCompat:
        """Compatibility mask matched against StructType.compat.

        ARM and AARCH64 validate as one family, as do IA32 and X64.
        """
        if self in (Architecture.ARM, Architecture.AARCH64):
            return ArchCompat.ARM | ArchCompat.AARCH64
        return ArchCompat.IA32 | ArchCompat.X64

    @property
    def is_arm(self) -> bool:
        return self in (Architecture.ARM, Architecture.AARCH64)


# platform.machine() values seen on supported hosts
_MACHINE_MAP: dict[str, Architecture] = {
    "x86_64": Architecture.X64,
    "amd64": Architecture.X64,
    "i386": Architecture.IA32,
    "i686": Architecture.IA32,
    "x86": Architecture.IA32,
    "aarch64": Architecture.AARCH64,
    "arm64": Architecture.AARCH64,
    "armv7l": Architecture.ARM,
    "armv8l": Architecture.ARM,
    "arm": Architecture.ARM,
}


def host_architecture() -> Architecture:
    """Map the host machine to an Architecture, defaulting to X64."""
    return _MACHINE_MAP.get(platform.machine().lower(), Architecture.X64)


class ViewConfig(BaseModel):
    """Per-run decoding configuration, set once by the CLI layer."""

    consistency_checking: bool = True
    trace: bool = True
    architecture: Architecture = Architecture.X64

    @classmethod
    def from_env(cls, **overrides: object) -> ViewConfig:
        """Build a config from the host and ACPIVIEW_* environment variables.

        Explicit keyword overrides win over the environment. ``None`` values
        in overrides are ignored so CLI options can be passed through as-is.
        """
        values: dict[str, object] = {"architecture": host_architecture()}

        consistency = os.environ.get(ENV_CONSISTENCY)
        if consistency is not None:
            values["consistency_checking"] = consistency.strip().lower() not in _FALSE_VALUES

        arch = os.environ.get(ENV_ARCH)
        if arch:
            values["architecture"] = Architecture(arch.strip().lower())

        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)
