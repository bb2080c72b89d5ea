"""Binary state archives and precomputed sampling.

Public API Exports:
- StateStorage: ordered, persistable collection of states
- ArchiveReport: outcome of load/store
- ArchiveHeader, encode_header, decode_header: header codec
- PrecomputedSamplerFactory, PrecomputedStateSampler: sampling stored states
- is_compatible, compute_live_signature: signature checks

Usage:
    from statearchive.archive import StateStorage

    storage = StateStorage(space)
    storage.generate_samples(100)
    storage.store("states.bin")
"""

from .buffer import read_bounded, read_exact, record_view, scratch_buffer
from .header import (
    ARCHIVE_MARKER,
    ArchiveHeader,
    decode_header,
    encode_header,
    header_size,
    pack_header,
)
from .sampler import PrecomputedSamplerFactory, PrecomputedStateSampler
from .signature import (
    compute_live_signature,
    ensure_compatible,
    format_signature,
    is_compatible,
)
from .storage import ArchiveReport, StateStorage

__all__ = [
    # Header codec
    "ARCHIVE_MARKER",
    "ArchiveHeader",
    "decode_header",
    "encode_header",
    "header_size",
    "pack_header",
    # Signatures
    "compute_live_signature",
    "ensure_compatible",
    "format_signature",
    "is_compatible",
    # Storage
    "ArchiveReport",
    "StateStorage",
    # Sampling
    "PrecomputedSamplerFactory",
    "PrecomputedStateSampler",
    # Buffers
    "read_bounded",
    "read_exact",
    "record_view",
    "scratch_buffer",
]
