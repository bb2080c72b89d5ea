"""State space signature checks.

A signature is a list of integers whose first element is the count of the
elements after it. An archive written for one space can only be read back,
or sampled from, through a space whose signature is identical.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

from statearchive.utils.errors import SignatureMismatchError

if TYPE_CHECKING:
    from statearchive.space.base import StateSpace


def compute_live_signature(space: StateSpace) -> tuple[int, ...]:
    """Return the current signature of ``space`` as an immutable tuple."""
    return tuple(int(v) for v in space.compute_signature())


def is_compatible(stored: Sequence[int], live: Sequence[int]) -> bool:
    """True iff both signatures are element-wise equal, length prefix included."""
    return tuple(stored) == tuple(live)


def format_signature(signature: Sequence[int]) -> str:
    return " ".join(str(v) for v in signature)


def ensure_compatible(stored: Sequence[int], live: Sequence[int], space_name: str = "") -> None:
    """Raise :class:`SignatureMismatchError` unless the signatures match."""
    if is_compatible(stored, live):
        return
    where = f"space {space_name} " if space_name else "space "
    raise SignatureMismatchError(
        "Cannot allocate state sampler for a state space whose signature does not match "
        f"that of the stored states. Expected signature {format_signature(stored)} "
        f"but {where}has signature {format_signature(live)}",
        expected=stored,
        actual=live,
    )


__all__ = [
    "compute_live_signature",
    "ensure_compatible",
    "format_signature",
    "is_compatible",
]
