"""Bounded real-vector state space backed by numpy."""

from __future__ import annotations

from typing import TextIO

import numpy as np

from statearchive.space.base import StateSpaceType, finalize_signature

# Serialized states are little-endian float64 regardless of host byte order.
_WIRE_DTYPE = np.dtype("<f8")


class RealVectorState:
    """A point in R^n."""

    __slots__ = ("values",)

    def __init__(self, dimension: int) -> None:
        self.values: np.ndarray | None = np.zeros(dimension, dtype=np.float64)

    def __repr__(self) -> str:
        return f"RealVectorState({self.values!r})"


class RealVectorStateSampler:
    """Uniform and gaussian sampling inside the space bounds."""

    def __init__(self, space: RealVectorStateSpace, rng: np.random.Generator) -> None:
        self.space = space
        self.rng = rng

    def sample_uniform(self, state: RealVectorState) -> None:
        state.values[:] = self.rng.uniform(self.space.low, self.space.high)

    def sample_uniform_near(self, state: RealVectorState, near: RealVectorState, distance: float) -> None:
        low = np.maximum(self.space.low, near.values - distance)
        high = np.minimum(self.space.high, near.values + distance)
        state.values[:] = self.rng.uniform(low, high)

    def sample_gaussian(self, state: RealVectorState, mean: RealVectorState, std_dev: float) -> None:
        drawn = self.rng.normal(mean.values, std_dev)
        state.values[:] = np.clip(drawn, self.space.low, self.space.high)


class RealVectorStateSpace:
    """R^n with per-dimension bounds.

    Args:
        dimension: Number of coordinates (must be positive)
        low: Lower bound, scalar or one value per dimension
        high: Upper bound, scalar or one value per dimension
        name: Optional display name
        seed: Seed for samplers allocated by this space
    """

    def __init__(
        self,
        dimension: int,
        low: float | np.ndarray | list[float] = 0.0,
        high: float | np.ndarray | list[float] = 1.0,
        name: str | None = None,
        seed: int | None = None,
    ) -> None:
        if dimension <= 0:
            raise ValueError(f"dimension must be positive, got {dimension}")
        self.dimension = int(dimension)
        self.low = np.broadcast_to(np.asarray(low, dtype=np.float64), (self.dimension,)).copy()
        self.high = np.broadcast_to(np.asarray(high, dtype=np.float64), (self.dimension,)).copy()
        if np.any(self.low > self.high):
            raise ValueError("lower bounds must not exceed upper bounds")
        self.name = name or f"RealVector{self.dimension}"
        self._seed_sequence = np.random.SeedSequence(seed)

    def alloc_state(self) -> RealVectorState:
        return RealVectorState(self.dimension)

    def free_state(self, state: RealVectorState) -> None:
        state.values = None

    def copy_state(self, destination: RealVectorState, source: RealVectorState) -> None:
        destination.values[:] = source.values

    def equal_states(self, state1: RealVectorState, state2: RealVectorState) -> bool:
        return bool(np.array_equal(state1.values, state2.values))

    def get_serialization_length(self) -> int:
        return self.dimension * _WIRE_DTYPE.itemsize

    def serialize(self, buffer: memoryview, state: RealVectorState) -> None:
        length = self.get_serialization_length()
        buffer[:length] = state.values.astype(_WIRE_DTYPE).tobytes()

    def deserialize(self, state: RealVectorState, buffer: memoryview) -> None:
        length = self.get_serialization_length()
        state.values[:] = np.frombuffer(buffer[:length], dtype=_WIRE_DTYPE)

    def compute_signature(self) -> list[int]:
        return finalize_signature([int(StateSpaceType.REAL_VECTOR), self.dimension])

    def alloc_state_sampler(self) -> RealVectorStateSampler:
        child = self._seed_sequence.spawn(1)[0]
        return RealVectorStateSampler(self, np.random.default_rng(child))

    def print_state(self, state: RealVectorState, out: TextIO) -> None:
        if state.values is None:
            out.write("RealVectorState [NULL]\n")
            return
        coords = " ".join(repr(float(v)) for v in state.values)
        out.write(f"RealVectorState [{coords}]\n")

    def distance(self, state1: RealVectorState, state2: RealVectorState) -> float:
        return float(np.linalg.norm(state1.values - state2.values))

    def interpolate(
        self,
        source: RealVectorState,
        target: RealVectorState,
        t: float,
        state: RealVectorState,
    ) -> None:
        state.values[:] = source.values + (target.values - source.values) * t

    def __repr__(self) -> str:
        return f"RealVectorStateSpace(name={self.name!r}, dimension={self.dimension})"


__all__ = ["RealVectorState", "RealVectorStateSampler", "RealVectorStateSpace"]
