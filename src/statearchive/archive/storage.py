"""Persistent storage for collections of states.

:class:`StateStorage` owns an ordered list of states allocated through one
state space. It writes them to, and reads them back from, the binary archive
format described in :mod:`statearchive.archive.header`, and exposes the
stored states as a sampler factory.

Failure handling follows two rules:

- ``load`` and ``store`` never raise for bad input data or unusable streams.
  The problem is logged, the archive is left empty (load) or nothing is
  written (store), and the returned :class:`ArchiveReport` carries the error.
- Sampler factories raise :class:`SignatureMismatchError` when invoked with an
  incompatible space, since sampling from wrong data must not go unnoticed.

Usage:
    storage = StateStorage(space)
    storage.generate_samples(1000)
    storage.store("samples.bin")

    restored = StateStorage(space)
    report = restored.load("samples.bin")
    sampler = restored.get_sampler_factory()(space)
"""

from __future__ import annotations

import io
import logging
import os
import sys
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from typing import IO, Any, BinaryIO, TextIO, Union

from tenacity import Retrying, retry_if_exception, stop_after_attempt, wait_exponential

from statearchive.archive.buffer import read_bounded, read_exact, record_view, scratch_buffer
from statearchive.archive.header import ArchiveHeader, decode_header, pack_header
from statearchive.archive.sampler import PrecomputedSamplerFactory
from statearchive.archive.signature import compute_live_signature
from statearchive.config.schema import StorageSettings
from statearchive.space.base import StateSpace
from statearchive.utils.errors import (
    ArchiveError,
    ErrorCode,
    ErrorDetails,
    IOUnavailableError,
    SamplingError,
    TruncatedDataError,
)

logger = logging.getLogger(__name__)

PathOrStream = Union[str, "os.PathLike[str]", BinaryIO]

# Errors that another attempt at opening the same path will not fix.
_PERMANENT_OS_ERRORS = (
    FileNotFoundError,
    IsADirectoryError,
    NotADirectoryError,
    PermissionError,
)


@dataclass(frozen=True)
class ArchiveReport:
    """Outcome of a ``load`` or ``store`` call.

    Attributes:
        operation: "load" or "store"
        ok: True if the operation completed
        state_count: States loaded or written
        payload_bytes: Bytes of state payload read or written
        error: Structured error when ``ok`` is False
    """

    operation: str
    ok: bool
    state_count: int = 0
    payload_bytes: int = 0
    error: ErrorDetails | None = None

    @property
    def error_code(self) -> ErrorCode | None:
        return self.error.code if self.error is not None else None


def _is_path(target: Any) -> bool:
    return isinstance(target, (str, os.PathLike))


def _is_transient(exc: BaseException) -> bool:
    return isinstance(exc, OSError) and not isinstance(exc, _PERMANENT_OS_ERRORS)


def _stream_flag(stream: IO[bytes], name: str) -> bool:
    if isinstance(stream, io.TextIOBase) or getattr(stream, "closed", False):
        return False
    check = getattr(stream, name, None)
    if check is None:
        return True
    try:
        return bool(check())
    except (OSError, ValueError):
        return False


def _remaining_bytes(stream: IO[bytes]) -> int | None:
    """Bytes left in a seekable stream, or None when that cannot be known."""
    try:
        if not stream.seekable():
            return None
        position = stream.tell()
        end = stream.seek(0, io.SEEK_END)
        stream.seek(position, io.SEEK_SET)
    except (AttributeError, OSError, ValueError):
        return None
    return max(end - position, 0)


class StateStorage:
    """Ordered, persistable collection of states from one state space.

    Every state in the collection is owned by the storage: it is released
    through the space's ``free_state`` by :meth:`clear`, :meth:`close`, or
    when the storage is garbage collected. Not thread-safe.

    Args:
        space: State space that allocates, serializes and signs the states
        settings: Retry and sampler options (defaults when None)
    """

    def __init__(self, space: StateSpace, settings: StorageSettings | None = None) -> None:
        self._space = space
        self.settings = settings or StorageSettings()
        self._states: list[Any] = []

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def state_space(self) -> StateSpace:
        return self._space

    @property
    def states(self) -> tuple[Any, ...]:
        """Snapshot of the stored states, in order."""
        return tuple(self._states)

    def size(self) -> int:
        return len(self._states)

    def is_empty(self) -> bool:
        return not self._states

    def __len__(self) -> int:
        return len(self._states)

    def __iter__(self) -> Iterator[Any]:
        return iter(self._states)

    def __getitem__(self, index: int) -> Any:
        return self._states[index]

    def __repr__(self) -> str:
        return f"StateStorage(space={getattr(self._space, 'name', self._space)!r}, size={len(self)})"

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def load(self, source: PathOrStream) -> ArchiveReport:
        """Replace the stored states with those read from ``source``.

        ``source`` is a filesystem path or a readable binary stream. Paths are
        opened in binary mode and closed before returning.
        """
        if not _is_path(source):
            return self._load_stream(source)

        self.clear()
        try:
            stream = self._open(source, "rb")
        except OSError as e:
            return self._failed(
                "load",
                IOUnavailableError(f"Unable to load states from {os.fspath(source)}: {e}"),
                logging.WARNING,
            )
        with stream:
            return self._load_stream(stream)

    def _load_stream(self, stream: BinaryIO) -> ArchiveReport:
        self.clear()
        if not _stream_flag(stream, "readable"):
            return self._failed("load", IOUnavailableError("Unable to load states"), logging.WARNING)

        try:
            header = decode_header(stream, compute_live_signature(self._space))
            payload_bytes = self._read_states(stream, header)
        except ArchiveError as e:
            self.clear()
            return self._failed("load", e)
        except OSError as e:
            self.clear()
            return self._failed("load", IOUnavailableError(f"Error while reading states: {e}"))

        return ArchiveReport("load", True, state_count=len(self._states), payload_bytes=payload_bytes)

    def _read_states(self, stream: BinaryIO, header: ArchiveHeader) -> int:
        per_state = self._space.get_serialization_length()
        record_size = header.record_size(per_state)
        length = header.payload_length(per_state)
        if length == 0:
            return 0

        # Refuse to allocate for a payload the stream cannot possibly hold.
        remaining = _remaining_bytes(stream)
        if remaining is not None and remaining < length:
            raise TruncatedDataError(expected=length, actual=remaining)

        if remaining is None:
            # Size unknown: trust only the bytes that actually arrive.
            payload = read_bounded(stream, length)
            if len(payload) != length:
                raise TruncatedDataError(expected=length, actual=len(payload))
            self._decode_records(memoryview(payload), header.state_count, record_size, per_state)
            return length

        with scratch_buffer(length) as buffer:
            read = read_exact(stream, buffer)
            if read != length:
                raise TruncatedDataError(expected=length, actual=read)
            self._decode_records(buffer, header.state_count, record_size, per_state)
        return length

    def _decode_records(self, buffer: memoryview, count: int, record_size: int, per_state: int) -> None:
        logger.debug("Deserializing %d states", count)
        for i in range(count):
            state = self._space.alloc_state()
            self._space.deserialize(state, record_view(buffer, i, record_size, per_state))
            self.add_state(state)

    # ------------------------------------------------------------------
    # Storing
    # ------------------------------------------------------------------

    def store(self, target: PathOrStream) -> ArchiveReport:
        """Write the stored states to ``target``.

        ``target`` is a filesystem path or a writable binary stream. Paths are
        opened in binary mode, truncating any existing file, and closed before
        returning. Header and payload go out in a single write; if that write
        fails the target may still hold a partial archive.
        """
        if not _is_path(target):
            return self._store_stream(target)

        try:
            stream = self._open(target, "wb")
        except OSError as e:
            return self._failed(
                "store",
                IOUnavailableError(f"Unable to store states to {os.fspath(target)}: {e}"),
                logging.WARNING,
            )
        with stream:
            return self._store_stream(stream)

    def _store_stream(self, stream: BinaryIO) -> ArchiveReport:
        if not _stream_flag(stream, "writable"):
            return self._failed("store", IOUnavailableError("Unable to store states"), logging.WARNING)

        signature = compute_live_signature(self._space)
        count = len(self._states)
        per_state = self._space.get_serialization_length()
        length = per_state * count

        header = pack_header(signature, count, 0)

        try:
            logger.debug("Serializing %d states", count)
            with scratch_buffer(len(header) + length) as buffer:
                buffer[: len(header)] = header
                payload = buffer[len(header) :]
                for i, state in enumerate(self._states):
                    self._space.serialize(record_view(payload, i, per_state, per_state), state)
                stream.write(buffer)
        except OSError as e:
            return self._failed("store", IOUnavailableError(f"Error while writing states: {e}"))

        return ArchiveReport("store", True, state_count=count, payload_bytes=length)

    # ------------------------------------------------------------------
    # Collection management
    # ------------------------------------------------------------------

    def add_state(self, state: Any) -> None:
        """Append a state allocated by this storage's space; ownership passes to the storage."""
        self._states.append(state)

    def generate_samples(self, count: int) -> None:
        """Append ``count`` uniformly sampled states."""
        if count < 0:
            raise ValueError(f"count must be non-negative, got {count}")
        sampler = self._space.alloc_state_sampler()
        for _ in range(count):
            state = self._space.alloc_state()
            sampler.sample_uniform(state)
            self.add_state(state)

    def sort(self, key: Callable[[Any], Any]) -> None:
        """Stable in-place reorder of the stored states by ``key``."""
        self._states.sort(key=key)

    def clear(self) -> None:
        """Free every stored state and empty the collection."""
        for state in self._states:
            self._space.free_state(state)
        self._states.clear()

    def close(self) -> None:
        self.clear()

    def __enter__(self) -> StateStorage:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def __del__(self) -> None:
        if getattr(self, "_states", None):
            self.clear()

    def print(self, out: TextIO | None = None) -> None:
        """Write every stored state, in order, using the space's printer."""
        out = out if out is not None else sys.stdout
        for state in self._states:
            self._space.print_state(state, out)

    # ------------------------------------------------------------------
    # Sampler factories
    # ------------------------------------------------------------------

    def get_sampler_factory(self) -> PrecomputedSamplerFactory:
        """Factory for samplers drawing from all stored states, current and future."""
        return self._factory(0, None)

    def get_sampler_factory_range(self, start: int, stop: int) -> PrecomputedSamplerFactory:
        """Factory for samplers drawing only from indices ``[start, stop)``."""
        if not 0 <= start < stop <= len(self._states):
            raise SamplingError(
                ErrorCode.E402_INVALID_INDEX_RANGE,
                f"Index range [{start}, {stop}) is not inside [0, {len(self._states)})",
            )
        return self._factory(start, stop)

    def get_sampler_factory_after(self, index: int) -> PrecomputedSamplerFactory:
        """Factory for samplers drawing from ``index`` onward, including later additions."""
        if not 0 <= index < len(self._states):
            raise SamplingError(
                ErrorCode.E402_INVALID_INDEX_RANGE,
                f"Index {index} is not inside [0, {len(self._states)})",
            )
        return self._factory(index, None)

    def get_sampler_factory_until(self, index: int) -> PrecomputedSamplerFactory:
        """Factory for samplers drawing from indices ``[0, index)``."""
        return self.get_sampler_factory_range(0, index)

    def _factory(self, start: int, stop: int | None) -> PrecomputedSamplerFactory:
        return PrecomputedSamplerFactory(
            compute_live_signature(self._space),
            self._states,
            start=start,
            stop=stop,
            seed=self.settings.sampler_seed,
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _open(self, path: str | os.PathLike[str], mode: str) -> BinaryIO:
        retrying = Retrying(
            stop=stop_after_attempt(self.settings.io_retry_attempts),
            wait=wait_exponential(multiplier=self.settings.io_retry_wait_s, max=10),
            retry=retry_if_exception(_is_transient),
            reraise=True,
        )
        for attempt in retrying:
            with attempt:
                return open(path, mode)  # noqa: SIM115
        raise AssertionError("unreachable")  # pragma: no cover

    def _failed(self, operation: str, error: ArchiveError, level: int = logging.ERROR) -> ArchiveReport:
        error.log(level, logger)
        return ArchiveReport(operation, False, error=error.error_details)


__all__ = ["ArchiveReport", "PathOrStream", "StateStorage"]
