"""Collaborator interfaces the guard core consumes but does not implement.

The physics/world query, the navigation agent and the target source are
owned by the host environment.  ``world.py`` ships simple in-process
implementations used by the harness and the tests.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Optional, Protocol

import numpy as np

if TYPE_CHECKING:
    from .geometry import Pose


@dataclass(frozen=True)
class HitInfo:
    """First object struck by a raycast."""
    distance: float
    tag: str


class WorldQuery(Protocol):
    """Physics query exposed by the environment."""

    def raycast(self, origin: np.ndarray, direction: np.ndarray) -> Optional[HitInfo]:
        """Return the nearest hit along the ray, or None if it leaves the world."""
        ...


class Navigator(Protocol):
    """Path-following agent that moves a guard toward a destination."""

    stopping_distance: float

    def set_destination(self, point: np.ndarray) -> None:
        ...

    def stop_and_clear_path(self) -> None:
        ...


# Zero-arg callable returning the current target pose (None when absent)
TargetSource = Callable[[], Optional["Pose"]]
