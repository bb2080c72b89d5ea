"""Scoped scratch buffers for bulk archive I/O."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from typing import BinaryIO

READ_CHUNK_SIZE = 1 << 20


@contextmanager
def scratch_buffer(length: int) -> Iterator[memoryview]:
    """Yield a zero-filled writable view of exactly ``length`` bytes.

    The view is released when the block exits, including on exceptions, so
    slices taken from it cannot outlive the call that acquired it.
    """
    if length < 0:
        raise ValueError(f"buffer length must be non-negative, got {length}")
    view = memoryview(bytearray(length))
    try:
        yield view
    finally:
        view.release()


def record_view(buffer: memoryview, index: int, record_size: int, payload_size: int) -> memoryview:
    """Return the payload slice of record ``index`` in a packed record buffer.

    Records are ``record_size`` bytes apart; the first ``payload_size`` bytes
    of each are the payload, the rest is skipped.
    """
    if payload_size > record_size:
        raise ValueError(f"payload size {payload_size} exceeds record size {record_size}")
    if index < 0:
        raise IndexError(f"record index {index} is negative")
    start = index * record_size
    end = start + payload_size
    if end > len(buffer):
        raise IndexError(
            f"record {index} ends at byte {end}, beyond buffer of {len(buffer)} bytes"
        )
    return buffer[start:end]


def read_bounded(stream: BinaryIO, length: int, chunk_size: int = READ_CHUNK_SIZE) -> bytearray:
    """Read up to ``length`` bytes, growing the result only as data arrives.

    For streams whose size cannot be known up front: memory use is bounded by
    what the stream actually delivers, not by ``length``.
    """
    data = bytearray()
    while len(data) < length:
        chunk = stream.read(min(chunk_size, length - len(data)))
        if not chunk:
            break
        data += chunk
    return data


def read_exact(stream: BinaryIO, view: memoryview) -> int:
    """Fill ``view`` from ``stream``, tolerating short reads.

    Returns the number of bytes read, which is less than ``len(view)`` only if
    the stream ran out.
    """
    total = 0
    size = len(view)
    readinto = getattr(stream, "readinto", None)
    while total < size:
        if readinto is not None:
            n = readinto(view[total:])
        else:
            chunk = stream.read(size - total)
            n = len(chunk) if chunk else 0
            view[total : total + n] = chunk
        if not n:
            break
        total += n
    return total


__all__ = ["READ_CHUNK_SIZE", "read_bounded", "read_exact", "record_view", "scratch_buffer"]
