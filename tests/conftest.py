"""Pytest configuration and shared fixtures."""

import pytest

from acpiview.config import Architecture, ViewConfig
from acpiview.engine.session import DecodeSession


@pytest.fixture
def session():
    """Session on x64 with consistency checking enabled."""
    return DecodeSession(ViewConfig(architecture=Architecture.X64))


@pytest.fixture
def arm_session():
    """Session on aarch64 with consistency checking enabled."""
    return DecodeSession(ViewConfig(architecture=Architecture.AARCH64))


@pytest.fixture
def lenient_session():
    """Session with consistency checking disabled."""
    return DecodeSession(
        ViewConfig(architecture=Architecture.X64, consistency_checking=False)
    )
