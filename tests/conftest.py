"""
Shared pytest fixtures and configuration for statearchive tests.

This module provides common fixtures, marks, and configuration
for deterministic, reproducible testing across the test suite.
"""

from __future__ import annotations

import io
import logging
import random
from typing import TYPE_CHECKING, Any

import numpy as np
import pytest

from statearchive.archive.storage import StateStorage
from statearchive.space.real_vector import RealVectorStateSpace
from statearchive.space.so2 import SO2StateSpace

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

# ============================================================
# Pytest Hooks and Configuration
# ============================================================


def pytest_configure(config: Any) -> None:
    """Configure custom pytest markers."""
    config.addinivalue_line("markers", "unit: marks unit tests")
    config.addinivalue_line("markers", "property: marks property-based tests")


# ============================================================
# Deterministic Seed Fixtures
# ============================================================

_DEFAULT_SEED = 42


def _set_random_seeds(seed: int) -> None:
    random.seed(seed)
    np.random.seed(seed)


@pytest.fixture(autouse=True, scope="function")
def _ensure_deterministic_random_state() -> None:
    """Reset global random state before every test."""
    _set_random_seeds(_DEFAULT_SEED)


@pytest.fixture(autouse=True)
def _restore_statearchive_logger() -> Iterator[None]:
    """Undo handlers and levels installed by configure_logging during a test."""
    root = logging.getLogger("statearchive")
    handlers = list(root.handlers)
    level = root.level
    yield
    for handler in list(root.handlers):
        if handler not in handlers:
            root.removeHandler(handler)
    root.setLevel(level)


# ============================================================
# State Space Fixtures
# ============================================================


@pytest.fixture
def real_space() -> RealVectorStateSpace:
    """Three-dimensional box [-1, 1]^3 with a fixed sampler seed."""
    return RealVectorStateSpace(3, low=-1.0, high=1.0, seed=_DEFAULT_SEED)


@pytest.fixture
def wide_real_space() -> RealVectorStateSpace:
    """Structurally different from ``real_space``: five dimensions."""
    return RealVectorStateSpace(5, low=-1.0, high=1.0, seed=_DEFAULT_SEED)


@pytest.fixture
def so2_space() -> SO2StateSpace:
    return SO2StateSpace(seed=_DEFAULT_SEED)


# ============================================================
# Storage Fixtures
# ============================================================


@pytest.fixture
def populated_storage(real_space: RealVectorStateSpace) -> Iterator[StateStorage]:
    """Storage holding 10 sampled states of ``real_space``."""
    storage = StateStorage(real_space)
    storage.generate_samples(10)
    yield storage
    storage.clear()


@pytest.fixture
def archive_bytes() -> Callable[[StateStorage], bytes]:
    """Serialize a storage to an in-memory archive and return its bytes."""

    def _dump(storage: StateStorage) -> bytes:
        buffer = io.BytesIO()
        report = storage.store(buffer)
        assert report.ok
        return buffer.getvalue()

    return _dump


def serialized(space: Any, state: Any) -> bytes:
    """Bytes of one state as the space serializes it."""
    raw = bytearray(space.get_serialization_length())
    space.serialize(memoryview(raw), state)
    return bytes(raw)


@pytest.fixture
def serialize_state() -> Callable[[Any, Any], bytes]:
    return serialized
