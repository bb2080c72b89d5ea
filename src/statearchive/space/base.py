"""StateSpace and StateSampler protocols.

The archive never looks inside a state. Everything it needs from the space
that produced the states goes through the :class:`StateSpace` protocol below,
so any object implementing these methods can back a
:class:`~statearchive.archive.storage.StateStorage`.

Signatures follow one convention: element 0 is the number of elements that
follow it. :func:`finalize_signature` builds one from its body.
"""

from __future__ import annotations

from enum import IntEnum
from typing import Any, Protocol, TextIO, runtime_checkable


class StateSpaceType(IntEnum):
    """Type tags used as the first body element of a signature."""

    UNKNOWN = 0
    REAL_VECTOR = 1
    SO2 = 2


@runtime_checkable
class StateSampler(Protocol):
    """Draws states for a particular space."""

    def sample_uniform(self, state: Any) -> None:
        """Overwrite ``state`` with a uniformly drawn state."""
        ...

    def sample_uniform_near(self, state: Any, near: Any, distance: float) -> None:
        """Overwrite ``state`` with a state within ``distance`` of ``near``."""
        ...

    def sample_gaussian(self, state: Any, mean: Any, std_dev: float) -> None:
        """Overwrite ``state`` with a state drawn around ``mean``."""
        ...


@runtime_checkable
class StateSpace(Protocol):
    """Protocol for spaces whose states can be archived.

    All states of one space serialize to the same number of bytes.
    """

    name: str

    def alloc_state(self) -> Any:
        """Allocate a new state owned by the caller."""
        ...

    def free_state(self, state: Any) -> None:
        """Release a state allocated by :meth:`alloc_state`."""
        ...

    def copy_state(self, destination: Any, source: Any) -> None:
        """Copy the value of ``source`` into ``destination``."""
        ...

    def get_serialization_length(self) -> int:
        """Number of bytes one serialized state occupies."""
        ...

    def serialize(self, buffer: memoryview, state: Any) -> None:
        """Write ``state`` into the first serialization-length bytes of ``buffer``."""
        ...

    def deserialize(self, state: Any, buffer: memoryview) -> None:
        """Read ``state`` from the first serialization-length bytes of ``buffer``."""
        ...

    def compute_signature(self) -> list[int]:
        """Describe the layout of serialized states as a list of integers."""
        ...

    def alloc_state_sampler(self) -> StateSampler:
        """Return a live sampler for this space."""
        ...

    def print_state(self, state: Any, out: TextIO) -> None:
        """Write a human-readable rendering of ``state`` to ``out``."""
        ...

    def distance(self, state1: Any, state2: Any) -> float:
        """Distance between two states."""
        ...

    def interpolate(self, source: Any, target: Any, t: float, state: Any) -> None:
        """Write the state at fraction ``t`` along the path from ``source`` to ``target``."""
        ...


def finalize_signature(body: list[int]) -> list[int]:
    """Prefix a signature body with its length."""
    return [len(body), *body]


__all__ = [
    "StateSampler",
    "StateSpace",
    "StateSpaceType",
    "finalize_signature",
]
