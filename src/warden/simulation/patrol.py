"""Random patrol point generation around a memory point."""

from __future__ import annotations

from typing import Protocol

import numpy as np


class UniformSource(Protocol):
    """Anything with ``uniform(a, b)`` -- random.Random, numpy Generator, or a stub."""

    def uniform(self, a: float, b: float) -> float:
        ...


def patrol_point(center, max_offset: float, rng: UniformSource) -> np.ndarray:
    """Offset *center* by independent uniform draws on the X and Z axes.

    Each horizontal axis gets its own draw in [-max_offset, max_offset];
    the vertical (Y) coordinate is left unchanged.  X is drawn before Z so
    a seeded *rng* produces a reproducible point.
    """
    if max_offset < 0:
        raise ValueError(f"max_offset must be >= 0, got {max_offset}")
    point = np.array(center, dtype=np.float64)
    point[0] += float(rng.uniform(-max_offset, max_offset))
    point[2] += float(rng.uniform(-max_offset, max_offset))
    return point
