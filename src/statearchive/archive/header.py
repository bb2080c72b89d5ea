"""Archive header codec.

Layout (little-endian, no padding)::

    uint32  marker            ARCHIVE_MARKER
    int32   signature_length  number of signature elements that follow
    int32   signature[signature_length]
    uint64  state_count
    uint64  metadata_size     reserved bytes after each state record

The header is followed by ``state_count`` records of
``per_state_length + metadata_size`` bytes each.
"""

from __future__ import annotations

import struct
from collections.abc import Sequence
from dataclasses import dataclass
from typing import BinaryIO

from statearchive.archive.buffer import read_exact
from statearchive.archive.signature import is_compatible
from statearchive.utils.errors import (
    FormatError,
    SignatureMismatchError,
    TruncatedHeaderError,
)

ARCHIVE_MARKER = 0x4C504D4F  # b"OMPL" on disk

MARKER_STRUCT = struct.Struct("<I")
SIGNATURE_ITEM_STRUCT = struct.Struct("<i")
SIZE_STRUCT = struct.Struct("<Q")

_MAX_SIZE = 2**64 - 1


@dataclass(frozen=True)
class ArchiveHeader:
    """Decoded archive header."""

    signature: tuple[int, ...]
    state_count: int
    metadata_size: int = 0
    marker: int = ARCHIVE_MARKER

    def record_size(self, per_state_length: int) -> int:
        """Bytes occupied by one state record, metadata included."""
        return per_state_length + self.metadata_size

    def payload_length(self, per_state_length: int) -> int:
        """Bytes of state payload that follow the header."""
        return self.state_count * self.record_size(per_state_length)


def header_size(signature: Sequence[int]) -> int:
    """Encoded size in bytes of a header carrying ``signature``."""
    return MARKER_STRUCT.size + SIGNATURE_ITEM_STRUCT.size * len(signature) + 2 * SIZE_STRUCT.size


def pack_header(signature: Sequence[int], state_count: int, metadata_size: int = 0) -> bytes:
    """Encode a header.

    ``signature`` must already carry its length as element 0.

    Raises:
        ValueError: If the signature is malformed or a count is out of range
    """
    if not signature:
        raise ValueError("signature must not be empty")
    if signature[0] != len(signature) - 1:
        raise ValueError(
            f"signature declares {signature[0]} elements but carries {len(signature) - 1}"
        )
    for name, value in (("state_count", state_count), ("metadata_size", metadata_size)):
        if not 0 <= value <= _MAX_SIZE:
            raise ValueError(f"{name} out of range: {value}")

    parts = [MARKER_STRUCT.pack(ARCHIVE_MARKER)]
    try:
        parts.extend(SIGNATURE_ITEM_STRUCT.pack(int(v)) for v in signature)
    except struct.error as e:
        raise ValueError(f"signature element does not fit in int32: {e}") from e
    parts.append(SIZE_STRUCT.pack(state_count))
    parts.append(SIZE_STRUCT.pack(metadata_size))
    return b"".join(parts)


def encode_header(
    stream: BinaryIO,
    signature: Sequence[int],
    state_count: int,
    metadata_size: int = 0,
) -> int:
    """Write a header to ``stream``; returns the number of bytes written."""
    data = pack_header(signature, state_count, metadata_size)
    stream.write(data)
    return len(data)


def _read_field(stream: BinaryIO, layout: struct.Struct) -> int | None:
    raw = bytearray(layout.size)
    with memoryview(raw) as view:
        if read_exact(stream, view) != layout.size:
            return None
    (value,) = layout.unpack(raw)
    return value


def decode_header(stream: BinaryIO, live_signature: Sequence[int]) -> ArchiveHeader:
    """Read and validate a header against the live state space signature.

    Signature elements are compared as they are read; on the first mismatch
    the function raises without consuming the rest of the header.

    Raises:
        FormatError: Missing or wrong marker
        SignatureMismatchError: Stored signature differs from ``live_signature``
        TruncatedHeaderError: Any other header field could not be read in full
    """
    marker = _read_field(stream, MARKER_STRUCT)
    if marker != ARCHIVE_MARKER:
        raise FormatError(
            details={"marker": None if marker is None else f"0x{marker:08X}"},
        )

    live = tuple(live_signature)

    signature_length = _read_field(stream, SIGNATURE_ITEM_STRUCT)
    if signature_length is None:
        raise TruncatedHeaderError(field_name="signature_length")
    if not live or signature_length != live[0]:
        raise SignatureMismatchError(expected=live, actual=[signature_length])

    stored = [signature_length]
    for i in range(signature_length):
        element = _read_field(stream, SIGNATURE_ITEM_STRUCT)
        if element is None:
            raise TruncatedHeaderError(field_name=f"signature[{i + 1}]")
        stored.append(element)
        if i + 1 >= len(live) or element != live[i + 1]:
            raise SignatureMismatchError(expected=live, actual=stored)
    if not is_compatible(stored, live):
        raise SignatureMismatchError(expected=live, actual=stored)

    state_count = _read_field(stream, SIZE_STRUCT)
    if state_count is None:
        raise TruncatedHeaderError(
            "Expected number of states. Incorrect file format", field_name="state_count"
        )
    metadata_size = _read_field(stream, SIZE_STRUCT)
    if metadata_size is None:
        raise TruncatedHeaderError(
            "Expected metadata size. Incorrect file format", field_name="metadata_size"
        )
    if state_count > 0 and getattr(stream, "closed", False):
        raise TruncatedHeaderError(
            "Expected state data. Incorrect file format", field_name="state_payload"
        )

    return ArchiveHeader(
        signature=tuple(stored),
        state_count=state_count,
        metadata_size=metadata_size,
    )


__all__ = [
    "ARCHIVE_MARKER",
    "ArchiveHeader",
    "MARKER_STRUCT",
    "SIGNATURE_ITEM_STRUCT",
    "SIZE_STRUCT",
    "decode_header",
    "encode_header",
    "header_size",
    "pack_header",
]
