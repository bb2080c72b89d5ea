"""State space protocols and reference implementations.

Public API Exports:
- StateSpace / StateSampler: protocols the archive relies on
- RealVectorStateSpace: bounded R^n
- SO2StateSpace: planar rotations
"""

from .base import StateSampler, StateSpace, StateSpaceType, finalize_signature
from .real_vector import RealVectorState, RealVectorStateSampler, RealVectorStateSpace
from .so2 import SO2State, SO2StateSampler, SO2StateSpace, wrap_angle

__all__ = [
    "RealVectorState",
    "RealVectorStateSampler",
    "RealVectorStateSpace",
    "SO2State",
    "SO2StateSampler",
    "SO2StateSpace",
    "StateSampler",
    "StateSpace",
    "StateSpaceType",
    "finalize_signature",
    "wrap_angle",
]
