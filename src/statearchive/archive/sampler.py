"""Sampling from a stored collection of states.

:class:`PrecomputedSamplerFactory` is what
:meth:`StateStorage.get_sampler_factory` hands out. It can be passed anywhere
a ``Callable[[StateSpace], StateSampler]`` is expected. Invoking it against a
space whose signature differs from the one captured at creation raises
:class:`SignatureMismatchError`: sampling stored states through the wrong
space would silently produce garbage.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

import numpy as np

from statearchive.archive.signature import compute_live_signature, ensure_compatible
from statearchive.utils.errors import ErrorCode, SamplingError

if TYPE_CHECKING:
    from statearchive.space.base import StateSpace

logger = logging.getLogger(__name__)


class PrecomputedStateSampler:
    """Draws states uniformly, with replacement, from a stored collection.

    Only indices in ``[start, stop)`` are drawn. ``stop=None`` tracks the
    collection's length at draw time, so states appended after the sampler
    was created are eligible too.
    """

    def __init__(
        self,
        space: StateSpace,
        states: Sequence[Any],
        start: int = 0,
        stop: int | None = None,
        rng: np.random.Generator | None = None,
    ) -> None:
        self.space = space
        self._states = states
        self.start = start
        self.stop = stop
        self.rng = rng if rng is not None else np.random.default_rng()

    def _pick(self) -> Any:
        stop = len(self._states) if self.stop is None else min(self.stop, len(self._states))
        if stop <= self.start:
            raise SamplingError(
                ErrorCode.E401_EMPTY_SAMPLE_SOURCE,
                details={"start": self.start, "stop": stop, "available": len(self._states)},
            )
        index = int(self.rng.integers(self.start, stop))
        return self._states[index]

    def sample_uniform(self, state: Any) -> None:
        self.space.copy_state(state, self._pick())

    def sample_uniform_near(self, state: Any, near: Any, distance: float) -> None:
        """Draw a stored state; if it is farther than ``distance`` from
        ``near``, move it onto the segment from ``near`` at that distance."""
        candidate = self._pick()
        d = self.space.distance(near, candidate)
        if d > distance:
            self.space.interpolate(near, candidate, distance / d, state)
        else:
            self.space.copy_state(state, candidate)

    def sample_gaussian(self, state: Any, mean: Any, std_dev: float) -> None:
        self.sample_uniform_near(state, mean, 2.0 * std_dev)


class PrecomputedSamplerFactory:
    """Allocates :class:`PrecomputedStateSampler` instances for a stored collection.

    Args:
        expected_signature: Signature of the space the states belong to
        states: The archive's own list (a reference, never copied)
        start: First index eligible for sampling
        stop: One past the last eligible index, None for "all"
        seed: Seed for the samplers' generators; each sampler gets its own stream
    """

    def __init__(
        self,
        expected_signature: Sequence[int],
        states: Sequence[Any],
        start: int = 0,
        stop: int | None = None,
        seed: int | None = None,
    ) -> None:
        if start < 0:
            raise SamplingError(
                ErrorCode.E402_INVALID_INDEX_RANGE,
                f"start index must be non-negative, got {start}",
            )
        if stop is not None and stop < start:
            raise SamplingError(
                ErrorCode.E402_INVALID_INDEX_RANGE,
                f"stop index {stop} precedes start index {start}",
            )
        self.expected_signature = tuple(expected_signature)
        self._states = states
        self.start = start
        self.stop = stop
        self._seed_sequence = np.random.SeedSequence(seed)

    def __call__(self, space: StateSpace) -> PrecomputedStateSampler:
        live = compute_live_signature(space)
        ensure_compatible(self.expected_signature, live, getattr(space, "name", ""))
        rng = np.random.default_rng(self._seed_sequence.spawn(1)[0])
        logger.debug(
            "Allocated precomputed sampler over indices [%d, %s)",
            self.start,
            "end" if self.stop is None else self.stop,
        )
        return PrecomputedStateSampler(space, self._states, self.start, self.stop, rng)


__all__ = ["PrecomputedSamplerFactory", "PrecomputedStateSampler"]
