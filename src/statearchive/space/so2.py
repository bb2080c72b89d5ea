"""SO(2): planar rotations stored as an angle in [-pi, pi)."""

from __future__ import annotations

import math
import struct
from typing import TextIO

import numpy as np

from statearchive.space.base import StateSpaceType, finalize_signature

_ANGLE = struct.Struct("<d")


def wrap_angle(value: float) -> float:
    """Map an angle onto [-pi, pi)."""
    wrapped = math.fmod(value + math.pi, 2.0 * math.pi)
    if wrapped < 0.0:
        wrapped += 2.0 * math.pi
    return wrapped - math.pi


class SO2State:
    __slots__ = ("value",)

    def __init__(self, value: float = 0.0) -> None:
        self.value = value

    def __repr__(self) -> str:
        return f"SO2State({self.value!r})"


class SO2StateSampler:
    def __init__(self, space: SO2StateSpace, rng: np.random.Generator) -> None:
        self.space = space
        self.rng = rng

    def sample_uniform(self, state: SO2State) -> None:
        state.value = float(self.rng.uniform(-math.pi, math.pi))

    def sample_uniform_near(self, state: SO2State, near: SO2State, distance: float) -> None:
        state.value = wrap_angle(float(self.rng.uniform(near.value - distance, near.value + distance)))

    def sample_gaussian(self, state: SO2State, mean: SO2State, std_dev: float) -> None:
        state.value = wrap_angle(float(self.rng.normal(mean.value, std_dev)))


class SO2StateSpace:
    """Rotations in the plane; distance is the shortest arc."""

    def __init__(self, name: str | None = None, seed: int | None = None) -> None:
        self.name = name or "SO2"
        self._seed_sequence = np.random.SeedSequence(seed)

    def alloc_state(self) -> SO2State:
        return SO2State()

    def free_state(self, state: SO2State) -> None:
        state.value = None

    def copy_state(self, destination: SO2State, source: SO2State) -> None:
        destination.value = source.value

    def equal_states(self, state1: SO2State, state2: SO2State) -> bool:
        return state1.value == state2.value

    def get_serialization_length(self) -> int:
        return _ANGLE.size

    def serialize(self, buffer: memoryview, state: SO2State) -> None:
        _ANGLE.pack_into(buffer, 0, state.value)

    def deserialize(self, state: SO2State, buffer: memoryview) -> None:
        (state.value,) = _ANGLE.unpack_from(buffer, 0)

    def compute_signature(self) -> list[int]:
        return finalize_signature([int(StateSpaceType.SO2)])

    def alloc_state_sampler(self) -> SO2StateSampler:
        child = self._seed_sequence.spawn(1)[0]
        return SO2StateSampler(self, np.random.default_rng(child))

    def print_state(self, state: SO2State, out: TextIO) -> None:
        if state.value is None:
            out.write("SO2State [NULL]\n")
            return
        out.write(f"SO2State [{state.value!r}]\n")

    def distance(self, state1: SO2State, state2: SO2State) -> float:
        d = abs(state1.value - state2.value)
        return d if d <= math.pi else 2.0 * math.pi - d

    def interpolate(self, source: SO2State, target: SO2State, t: float, state: SO2State) -> None:
        diff = target.value - source.value
        if abs(diff) <= math.pi:
            state.value = source.value + diff * t
        else:
            # Go the short way round.
            diff = diff - 2.0 * math.pi if diff > 0.0 else diff + 2.0 * math.pi
            state.value = wrap_angle(source.value + diff * t)

    def __repr__(self) -> str:
        return f"SO2StateSpace(name={self.name!r})"


__all__ = ["SO2State", "SO2StateSampler", "SO2StateSpace", "wrap_angle"]
