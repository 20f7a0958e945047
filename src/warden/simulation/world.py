"""In-process world and navigation collaborators.

CollisionWorld -- tagged sphere and box colliders with nearest-hit raycasts
StraightLineNavigator -- moves a Pose straight toward its destination

These stand in for a host engine's physics scene and nav agent:
no broadphase, no navmesh, no avoidance.  The guard
core only sees them through the WorldQuery / Navigator protocols.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Optional, Union

import numpy as np

from .geometry import magnitude, normalize, vec3
from .interfaces import HitInfo

if TYPE_CHECKING:
    from .geometry import Pose

_EPSILON = 1e-9


@dataclass
class SphereCollider:
    """Sphere volume.  Mutable center so a moving actor can carry one."""
    center: np.ndarray
    radius: float = 0.5
    tag: str = "Untagged"
    enabled: bool = True

    def __post_init__(self) -> None:
        self.center = vec3(self.center)
        if self.radius <= 0:
            raise ValueError(f"radius must be > 0, got {self.radius}")

    def intersect(self, origin: np.ndarray, direction: np.ndarray) -> float | None:
        """Distance along the unit ray to the sphere surface, or None.

        A ray starting inside the sphere hits it at distance 0.
        """
        oc = origin - self.center
        b = float(np.dot(oc, direction))
        c = float(np.dot(oc, oc)) - self.radius * self.radius
        if c <= 0.0:
            return 0.0
        disc = b * b - c
        if disc < 0.0:
            return None
        t = -b - math.sqrt(disc)
        if t < 0.0:
            return None
        return t


@dataclass
class BoxCollider:
    """Axis-aligned box (walls, crates, pillars)."""
    min_corner: np.ndarray
    max_corner: np.ndarray
    tag: str = "Untagged"
    enabled: bool = True

    def __post_init__(self) -> None:
        lo = vec3(self.min_corner)
        hi = vec3(self.max_corner)
        self.min_corner = np.minimum(lo, hi)
        self.max_corner = np.maximum(lo, hi)

    def intersect(self, origin: np.ndarray, direction: np.ndarray) -> float | None:
        """Slab test.  Distance to the first face crossed, 0 if starting inside."""
        t_near = -math.inf
        t_far = math.inf
        for axis in range(3):
            o = origin[axis]
            d = direction[axis]
            lo = self.min_corner[axis]
            hi = self.max_corner[axis]
            if abs(d) < _EPSILON:
                if o < lo or o > hi:
                    return None
                continue
            t1 = (lo - o) / d
            t2 = (hi - o) / d
            if t1 > t2:
                t1, t2 = t2, t1
            t_near = max(t_near, t1)
            t_far = min(t_far, t2)
            if t_near > t_far:
                return None
        if t_far < 0.0:
            return None
        return max(t_near, 0.0)


Collider = Union[SphereCollider, BoxCollider]


class CollisionWorld:
    """A flat list of colliders answering ``raycast`` queries."""

    def __init__(self, colliders: list[Collider] | None = None) -> None:
        self._colliders: list[Collider] = list(colliders or [])

    def add(self, collider: Collider) -> Collider:
        self._colliders.append(collider)
        return collider

    def remove(self, collider: Collider) -> None:
        try:
            self._colliders.remove(collider)
        except ValueError:
            pass

    @property
    def colliders(self) -> list[Collider]:
        return list(self._colliders)

    def raycast(
        self,
        origin,
        direction,
        max_distance: float = math.inf,
    ) -> Optional[HitInfo]:
        """Nearest enabled collider along the ray, or None if nothing is hit."""
        origin = vec3(origin)
        direction = vec3(direction)
        if magnitude(direction) < _EPSILON:
            return None
        direction = normalize(direction)

        best: HitInfo | None = None
        for collider in self._colliders:
            if not collider.enabled:
                continue
            t = collider.intersect(origin, direction)
            if t is None or t > max_distance:
                continue
            if best is None or t < best.distance:
                best = HitInfo(distance=t, tag=collider.tag)
        return best


@dataclass
class StraightLineNavigator:
    """Nav agent that walks its Pose in a straight line to the destination.

    Stops once within ``stopping_distance``.  Turns the pose to face its
    horizontal travel direction, as a ground agent would.  Every
    set_destination() call is kept in ``requests`` so callers can audit
    exactly what the guard asked for.
    """
    pose: Pose
    speed: float = 3.5
    stopping_distance: float = 0.0
    destination: Optional[np.ndarray] = None
    is_stopped: bool = False
    requests: list[np.ndarray] = field(default_factory=list)
    stop_count: int = 0

    def set_destination(self, point) -> None:
        self.destination = vec3(point)
        self.is_stopped = False
        self.requests.append(self.destination.copy())

    def stop_and_clear_path(self) -> None:
        self.destination = None
        self.is_stopped = True
        self.stop_count += 1

    @property
    def has_path(self) -> bool:
        return self.destination is not None and not self.is_stopped

    @property
    def remaining_distance(self) -> float:
        if self.destination is None:
            return 0.0
        return magnitude(self.destination - self.pose.position)

    def update(self, dt: float) -> None:
        """Move toward the destination for *dt* seconds."""
        if not self.has_path:
            return
        offset = self.destination - self.pose.position
        dist = magnitude(offset)
        if dist <= self.stopping_distance:
            return
        step = min(self.speed * dt, dist - self.stopping_distance)
        heading = offset / dist
        self.pose.position = self.pose.position + heading * step

        flat = np.array([offset[0], 0.0, offset[2]])
        if magnitude(flat) > _EPSILON:
            self.pose.forward = normalize(flat)
