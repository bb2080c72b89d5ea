"""
Unit Tests for StateStorage.

Tests cover:
- Store/load round trips through streams and paths
- Load replaces, never appends
- Non-fatal reporting of format, signature and truncation problems
- Unwritable and unreadable targets
- Collection management (add, generate, sort, clear, print)
"""

import io
import logging
import struct
from unittest import mock

import numpy as np
import pytest

from statearchive.archive.header import header_size, pack_header
from statearchive.archive.storage import ArchiveReport, StateStorage
from statearchive.config.schema import StorageSettings
from statearchive.space.real_vector import RealVectorStateSpace
from statearchive.utils.errors import ErrorCode

pytestmark = pytest.mark.unit


def _state(space, *values):
    state = space.alloc_state()
    state.values[:] = values
    return state


class _Pipe(io.RawIOBase):
    """Readable, unseekable byte source, like a pipe or socket."""

    def __init__(self, data: bytes) -> None:
        self._source = io.BytesIO(data)

    def readable(self) -> bool:
        return True

    def readinto(self, buffer) -> int:
        return self._source.readinto(buffer)


class TestRoundTrip:
    """Store followed by load on a fresh storage."""

    def test_stream_round_trip_preserves_bytes_and_order(
        self, real_space, populated_storage, serialize_state
    ):
        buffer = io.BytesIO()
        report = populated_storage.store(buffer)

        assert report == ArchiveReport("store", True, state_count=10, payload_bytes=240)

        restored = StateStorage(real_space)
        buffer.seek(0)
        report = restored.load(buffer)

        assert report.ok
        assert report.state_count == 10
        assert report.error is None
        assert [serialize_state(real_space, s) for s in restored] == [
            serialize_state(real_space, s) for s in populated_storage
        ]

    def test_path_round_trip(self, tmp_path, real_space, populated_storage):
        path = tmp_path / "states.bin"

        assert populated_storage.store(path).ok
        restored = StateStorage(real_space)
        assert restored.load(str(path)).ok

        assert len(restored) == len(populated_storage)
        for a, b in zip(restored, populated_storage):
            assert real_space.equal_states(a, b)

    def test_file_size_matches_layout(self, tmp_path, real_space, populated_storage):
        path = tmp_path / "states.bin"
        populated_storage.store(path)

        expected = header_size(real_space.compute_signature()) + 10 * 24
        assert path.stat().st_size == expected

    def test_loaded_states_are_fresh_allocations(self, real_space, populated_storage, archive_bytes):
        restored = StateStorage(real_space)
        restored.load(io.BytesIO(archive_bytes(populated_storage)))

        for a, b in zip(restored, populated_storage):
            assert a is not b

    def test_so2_round_trip(self, so2_space, archive_bytes):
        storage = StateStorage(so2_space)
        storage.generate_samples(4)

        restored = StateStorage(so2_space)
        restored.load(io.BytesIO(archive_bytes(storage)))

        assert [s.value for s in restored] == [s.value for s in storage]


class TestEmptyArchive:
    def test_store_empty_writes_header_only(self, real_space):
        storage = StateStorage(real_space)
        buffer = io.BytesIO()

        report = storage.store(buffer)

        assert report.ok
        assert report.state_count == 0
        assert buffer.getvalue() == pack_header(real_space.compute_signature(), 0, 0)

    def test_load_empty_yields_no_states(self, real_space):
        storage = StateStorage(real_space)
        report = storage.load(io.BytesIO(pack_header(real_space.compute_signature(), 0)))

        assert report.ok
        assert report.state_count == 0
        assert storage.is_empty()


class TestLoadReplaces:
    def test_previous_states_are_freed(self, real_space, populated_storage, archive_bytes):
        data = archive_bytes(populated_storage)
        storage = StateStorage(real_space)
        storage.generate_samples(3)
        old = list(storage)

        storage.load(io.BytesIO(data))

        assert len(storage) == 10
        assert all(s.values is None for s in old)

    def test_failed_load_still_clears(self, real_space):
        storage = StateStorage(real_space)
        storage.generate_samples(3)

        report = storage.load(io.BytesIO(b"garbage"))

        assert not report.ok
        assert storage.is_empty()


class TestLoadFailures:
    """Header and payload problems are reported, never raised."""

    def test_corrupt_marker(self, real_space, populated_storage, archive_bytes, caplog):
        data = bytearray(archive_bytes(populated_storage))
        data[:4] = b"\xde\xad\xbe\xef"
        storage = StateStorage(real_space)

        with caplog.at_level(logging.ERROR, logger="statearchive"):
            report = storage.load(io.BytesIO(bytes(data)))

        assert report.error_code == ErrorCode.E100_FORMAT_ERROR
        assert storage.is_empty()
        assert any("E100" in r.getMessage() for r in caplog.records)

    def test_signature_mismatch(self, wide_real_space, populated_storage, archive_bytes):
        storage = StateStorage(wide_real_space)

        report = storage.load(io.BytesIO(archive_bytes(populated_storage)))

        assert report.error_code == ErrorCode.E200_SIGNATURE_MISMATCH
        assert len(storage) == 0

    def test_signature_mismatch_across_space_types(self, so2_space, populated_storage, archive_bytes):
        storage = StateStorage(so2_space)

        report = storage.load(io.BytesIO(archive_bytes(populated_storage)))

        assert report.error_code == ErrorCode.E200_SIGNATURE_MISMATCH
        assert storage.is_empty()

    def test_truncated_payload(self, real_space, populated_storage, archive_bytes):
        data = archive_bytes(populated_storage)
        storage = StateStorage(real_space)

        report = storage.load(io.BytesIO(data[:-5]))

        assert report.error_code == ErrorCode.E102_TRUNCATED_DATA
        assert report.error.details["expected_bytes"] == 240
        assert storage.is_empty()

    def test_missing_payload(self, real_space):
        storage = StateStorage(real_space)

        report = storage.load(io.BytesIO(pack_header(real_space.compute_signature(), 4)))

        assert report.error_code == ErrorCode.E102_TRUNCATED_DATA
        assert storage.is_empty()

    def test_truncated_payload_on_unseekable_stream(self, real_space, populated_storage, archive_bytes):
        """Test the bulk-read length check when the size cannot be known up front."""
        data = archive_bytes(populated_storage)[:-1]
        stream = mock.Mock(wraps=io.BytesIO(data))
        stream.closed = False
        stream.readable.return_value = True
        stream.seekable.return_value = False
        storage = StateStorage(real_space)

        report = storage.load(stream)

        assert report.error_code == ErrorCode.E102_TRUNCATED_DATA
        assert storage.is_empty()

    def test_huge_declared_count_does_not_allocate(self, real_space):
        """Test that an absurd state_count is rejected before buffer allocation."""
        data = pack_header(real_space.compute_signature(), 2**40) + b"\x00" * 24
        storage = StateStorage(real_space)

        with mock.patch("statearchive.archive.storage.scratch_buffer") as buffer:
            report = storage.load(io.BytesIO(data))

        buffer.assert_not_called()
        assert report.error_code == ErrorCode.E102_TRUNCATED_DATA

    def test_huge_declared_count_on_unseekable_stream(self, real_space):
        """Test that a header claiming 2**62 states fails cleanly when the size is unknown."""
        data = pack_header(real_space.compute_signature(), 2**62) + b"\x00" * 24
        storage = StateStorage(real_space)

        report = storage.load(io.BufferedReader(_Pipe(data)))

        assert not report.ok
        assert report.error_code == ErrorCode.E102_TRUNCATED_DATA
        assert report.error.details["actual_bytes"] == 24
        assert storage.is_empty()

    def test_unseekable_stream_round_trip(self, real_space, populated_storage, archive_bytes):
        storage = StateStorage(real_space)

        report = storage.load(io.BufferedReader(_Pipe(archive_bytes(populated_storage))))

        assert report.ok
        assert [s.values.tolist() for s in storage] == [s.values.tolist() for s in populated_storage]

    def test_text_mode_file_is_unavailable(self, tmp_path, real_space, populated_storage):
        path = tmp_path / "samples.bin"
        assert populated_storage.store(path).ok
        storage = StateStorage(real_space)

        with open(path, encoding="latin-1") as stream:
            report = storage.load(stream)

        assert report.error_code == ErrorCode.E300_IO_UNAVAILABLE
        assert storage.is_empty()

    def test_string_stream_is_unavailable(self, real_space):
        report = StateStorage(real_space).load(io.StringIO("OMPL"))

        assert report.error_code == ErrorCode.E300_IO_UNAVAILABLE

    def test_truncated_header(self, real_space):
        data = pack_header(real_space.compute_signature(), 1)[:-3]
        storage = StateStorage(real_space)

        report = storage.load(io.BytesIO(data))

        assert report.error_code == ErrorCode.E101_TRUNCATED_HEADER
        assert storage.is_empty()

    def test_missing_file(self, tmp_path, real_space, caplog):
        storage = StateStorage(real_space)

        with caplog.at_level(logging.WARNING, logger="statearchive"):
            report = storage.load(tmp_path / "absent.bin")

        assert report.error_code == ErrorCode.E300_IO_UNAVAILABLE
        assert any(r.levelno == logging.WARNING for r in caplog.records)

    def test_closed_stream(self, real_space):
        stream = io.BytesIO(b"")
        stream.close()

        report = StateStorage(real_space).load(stream)

        assert report.error_code == ErrorCode.E300_IO_UNAVAILABLE

    def test_write_only_stream(self, real_space, tmp_path):
        with open(tmp_path / "out.bin", "wb") as stream:
            report = StateStorage(real_space).load(stream)

        assert report.error_code == ErrorCode.E300_IO_UNAVAILABLE

    def test_stream_error_mid_read(self, real_space, populated_storage, archive_bytes):
        data = archive_bytes(populated_storage)
        stream = io.BytesIO(data)
        storage = StateStorage(real_space)

        with mock.patch(
            "statearchive.archive.storage.read_exact", side_effect=OSError("device gone")
        ):
            report = storage.load(stream)

        assert report.error_code == ErrorCode.E300_IO_UNAVAILABLE
        assert storage.is_empty()


class TestMetadata:
    def test_metadata_bytes_are_skipped(self, real_space):
        """Test records written with reserved metadata by another writer."""
        signature = real_space.compute_signature()
        records = [(0.5, -0.25, 1.0), (-1.0, 0.0, 0.75)]
        payload = b"".join(struct.pack("<3d", *r) + b"META" for r in records)
        data = pack_header(signature, len(records), metadata_size=4) + payload
        storage = StateStorage(real_space)

        report = storage.load(io.BytesIO(data))

        assert report.ok
        assert report.payload_bytes == 2 * 28
        np.testing.assert_array_equal(storage[0].values, records[0])
        np.testing.assert_array_equal(storage[1].values, records[1])

    def test_store_always_writes_zero_metadata(self, populated_storage, archive_bytes, real_space):
        data = archive_bytes(populated_storage)
        offset = header_size(real_space.compute_signature()) - 8

        assert struct.unpack_from("<Q", data, offset) == (0,)


class TestStoreFailures:
    def test_read_only_stream_writes_nothing(self, tmp_path, populated_storage, caplog):
        path = tmp_path / "ro.bin"
        path.write_bytes(b"")

        with open(path, "rb") as stream, caplog.at_level(logging.WARNING, logger="statearchive"):
            report = populated_storage.store(stream)

        assert report.error_code == ErrorCode.E300_IO_UNAVAILABLE
        assert path.read_bytes() == b""
        assert any(r.levelno == logging.WARNING for r in caplog.records)

    def test_closed_stream(self, populated_storage):
        stream = io.BytesIO()
        stream.close()

        report = populated_storage.store(stream)

        assert not report.ok
        assert report.error_code == ErrorCode.E300_IO_UNAVAILABLE

    def test_text_stream_writes_nothing(self, populated_storage):
        stream = io.StringIO()

        report = populated_storage.store(stream)

        assert report.error_code == ErrorCode.E300_IO_UNAVAILABLE
        assert stream.getvalue() == ""

    def test_header_and_payload_written_at_once(self, populated_storage, archive_bytes):
        target = io.BytesIO()
        stream = mock.Mock(wraps=target)
        stream.closed = False

        report = populated_storage.store(stream)

        assert report.ok
        assert stream.write.call_count == 1
        assert target.getvalue() == archive_bytes(populated_storage)

    def test_failed_write_is_reported(self, populated_storage):
        stream = mock.Mock(wraps=io.BytesIO())
        stream.closed = False
        stream.write.side_effect = OSError("disk full")

        report = populated_storage.store(stream)

        assert not report.ok
        assert report.error_code == ErrorCode.E300_IO_UNAVAILABLE

    def test_unopenable_path(self, tmp_path, populated_storage):
        report = populated_storage.store(tmp_path / "missing" / "dir" / "out.bin")

        assert report.error_code == ErrorCode.E300_IO_UNAVAILABLE

    def test_transient_open_errors_are_retried(self, tmp_path, populated_storage):
        path = tmp_path / "retry.bin"
        real_open = open
        calls = []

        def flaky_open(target, mode):
            calls.append(mode)
            if len(calls) < 3:
                raise BlockingIOError("try again")
            return real_open(target, mode)

        populated_storage.settings = StorageSettings(io_retry_attempts=3, io_retry_wait_s=0.0)
        with mock.patch("builtins.open", side_effect=flaky_open):
            report = populated_storage.store(path)

        assert report.ok
        assert len(calls) == 3
        assert path.stat().st_size > 0

    def test_transient_errors_retried_when_opening_for_read(
        self, tmp_path, real_space, populated_storage
    ):
        path = tmp_path / "retry.bin"
        assert populated_storage.store(path).ok
        real_open = open
        calls = []

        def flaky_open(target, mode):
            calls.append(mode)
            if len(calls) < 2:
                raise InterruptedError("interrupted")
            return real_open(target, mode)

        storage = StateStorage(real_space, StorageSettings(io_retry_attempts=2, io_retry_wait_s=0.0))
        with mock.patch("builtins.open", side_effect=flaky_open):
            report = storage.load(path)

        assert report.ok
        assert calls == ["rb", "rb"]
        assert len(storage) == len(populated_storage)

    def test_missing_file_is_not_retried(self, tmp_path, real_space):
        storage = StateStorage(real_space, StorageSettings(io_retry_attempts=5, io_retry_wait_s=0.0))

        with mock.patch("builtins.open", side_effect=FileNotFoundError("nope")) as opener:
            report = storage.load(tmp_path / "nope.bin")

        assert opener.call_count == 1
        assert report.error_code == ErrorCode.E300_IO_UNAVAILABLE


class TestCollection:
    def test_add_state_appends_without_copy(self, real_space):
        storage = StateStorage(real_space)
        state = _state(real_space, 0.1, 0.2, 0.3)

        storage.add_state(state)

        assert storage[0] is state
        assert storage.size() == 1
        assert storage.states == (state,)

    def test_generate_samples_adds_exactly_count(self, real_space):
        storage = StateStorage(real_space)
        storage.generate_samples(2)

        storage.generate_samples(5)

        assert len(storage) == 7
        for state in storage:
            assert np.all(state.values >= -1.0)
            assert np.all(state.values <= 1.0)

    def test_generate_samples_uses_space_sampler(self, real_space):
        storage = StateStorage(real_space)

        with mock.patch.object(real_space, "alloc_state_sampler", wraps=real_space.alloc_state_sampler) as alloc:
            storage.generate_samples(3)

        alloc.assert_called_once_with()

    def test_generate_zero_samples(self, real_space):
        storage = StateStorage(real_space)
        storage.generate_samples(0)
        assert storage.is_empty()

    def test_generate_negative_count(self, real_space):
        with pytest.raises(ValueError):
            StateStorage(real_space).generate_samples(-1)

    def test_sort_is_stable_and_in_place(self, real_space):
        storage = StateStorage(real_space)
        a = _state(real_space, 0.5, 0.0, 0.0)
        b = _state(real_space, -0.5, 1.0, 0.0)
        c = _state(real_space, 0.5, -1.0, 0.0)
        for s in (a, b, c):
            storage.add_state(s)

        storage.sort(key=lambda s: s.values[0])

        assert storage.states == (b, a, c)

    def test_clear_frees_every_state(self, real_space):
        storage = StateStorage(real_space)
        storage.generate_samples(4)
        held = list(storage)

        with mock.patch.object(real_space, "free_state", wraps=real_space.free_state) as free:
            storage.clear()

        assert free.call_count == 4
        assert [call.args[0] for call in free.call_args_list] == held
        assert storage.is_empty()

    def test_clear_is_idempotent(self, populated_storage):
        populated_storage.clear()
        assert populated_storage.is_empty()

        populated_storage.clear()
        assert populated_storage.is_empty()

    def test_context_manager_clears(self, real_space):
        with StateStorage(real_space) as storage:
            storage.generate_samples(2)
            held = list(storage)

        assert storage.is_empty()
        assert all(s.values is None for s in held)

    def test_state_space_property(self, real_space):
        assert StateStorage(real_space).state_space is real_space


class TestPrint:
    def test_prints_each_state_in_order(self, real_space):
        storage = StateStorage(real_space)
        storage.add_state(_state(real_space, 1.0, 0.0, 0.0))
        storage.add_state(_state(real_space, 0.0, 0.5, 0.0))
        out = io.StringIO()

        storage.print(out)

        assert out.getvalue() == (
            "RealVectorState [1.0 0.0 0.0]\n"
            "RealVectorState [0.0 0.5 0.0]\n"
        )

    def test_print_defaults_to_stdout(self, real_space, capsys):
        storage = StateStorage(real_space)
        storage.add_state(_state(real_space, 0.25, 0.0, 0.0))

        storage.print()

        assert capsys.readouterr().out == "RealVectorState [0.25 0.0 0.0]\n"

    def test_print_does_not_mutate(self, populated_storage):
        before = populated_storage.states
        populated_storage.print(io.StringIO())
        assert populated_storage.states == before


def test_zero_length_states_skip_payload_read():
    """Test a space whose states serialize to zero bytes."""
    space = mock.Mock(spec=RealVectorStateSpace)
    space.compute_signature.return_value = [1, 99]
    space.get_serialization_length.return_value = 0
    storage = StateStorage(space)

    report = storage.load(io.BytesIO(pack_header([1, 99], 5)))

    assert report.ok
    assert storage.is_empty()
    space.alloc_state.assert_not_called()
