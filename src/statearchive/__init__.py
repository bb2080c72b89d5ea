"""
statearchive: persistent sample sets for state spaces.

Stores ordered collections of states in a compact binary archive tied to the
signature of the state space that produced them, and turns a loaded archive
back into a sampler for that space.

Public API:
-----------
- StateStorage: load/store/generate/clear a collection of states
- PrecomputedSamplerFactory: sampler allocator over stored states
- RealVectorStateSpace, SO2StateSpace: reference state spaces
- ArchiveConfig, load_config: validated configuration
- configure_logging: attach a text or JSON log handler

Quick Start:
-----------
>>> from statearchive import RealVectorStateSpace, StateStorage
>>> space = RealVectorStateSpace(3, low=-1.0, high=1.0)
>>> storage = StateStorage(space)
>>> storage.generate_samples(10)
>>> report = storage.store("samples.bin")
"""

from __future__ import annotations

from .archive import (
    ARCHIVE_MARKER,
    ArchiveHeader,
    ArchiveReport,
    PrecomputedSamplerFactory,
    PrecomputedStateSampler,
    StateStorage,
    is_compatible,
)
from .config import ArchiveConfig, LoggingSettings, StorageSettings, load_config
from .observability import configure_logging
from .space import RealVectorStateSpace, SO2StateSpace, StateSampler, StateSpace
from .utils.errors import (
    ArchiveError,
    ErrorCode,
    FormatError,
    IOUnavailableError,
    SamplingError,
    SignatureMismatchError,
    TruncatedDataError,
    TruncatedHeaderError,
)

__version__ = "1.0.0"

__all__ = [
    "ARCHIVE_MARKER",
    "ArchiveConfig",
    "ArchiveError",
    "ArchiveHeader",
    "ArchiveReport",
    "ErrorCode",
    "FormatError",
    "IOUnavailableError",
    "LoggingSettings",
    "PrecomputedSamplerFactory",
    "PrecomputedStateSampler",
    "RealVectorStateSpace",
    "SO2StateSpace",
    "SamplingError",
    "SignatureMismatchError",
    "StateSampler",
    "StateSpace",
    "StateStorage",
    "StorageSettings",
    "TruncatedDataError",
    "TruncatedHeaderError",
    "__version__",
    "configure_logging",
    "is_compatible",
    "load_config",
]
