"""Vector math and the Pose type shared by perception and guard behavior.

Coordinate convention:
    +Y = up.  The horizontal plane is X/Z.  An unrotated guard faces +Z.

Vectors are float64 numpy arrays of shape (3,).  Helpers accept anything
``np.asarray`` understands (tuples, lists) so call sites and tests can
pass plain tuples.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field

import numpy as np

UP = np.array([0.0, 1.0, 0.0])
FORWARD = np.array([0.0, 0.0, 1.0])

# Below this length a vector is treated as zero (no defined direction)
_EPSILON = 1e-9


def vec3(value) -> np.ndarray:
    """Coerce *value* to a float64 3-vector (copies)."""
    arr = np.array(value, dtype=np.float64)
    if arr.shape != (3,):
        raise ValueError(f"expected a 3D vector, got shape {arr.shape}")
    return arr


def magnitude(v: np.ndarray) -> float:
    return float(np.linalg.norm(v))


def distance_between(a, b) -> float:
    """Straight-line distance between two points."""
    return magnitude(np.asarray(b, dtype=np.float64) - np.asarray(a, dtype=np.float64))


def normalize(v: np.ndarray, fallback: np.ndarray | None = None) -> np.ndarray:
    """Return the unit vector along *v*.

    A zero-length *v* has no direction; *fallback* (default +Z) is returned
    instead of dividing by zero.
    """
    length = magnitude(v)
    if length < _EPSILON:
        return (FORWARD if fallback is None else np.asarray(fallback, dtype=np.float64)).copy()
    return np.asarray(v, dtype=np.float64) / length


def angle_between(a, b) -> float:
    """Unsigned angle between two vectors in degrees, range [0, 180].

    Returns 0.0 when either vector has zero length, i.e. a coincident
    target counts as directly ahead.
    """
    a = np.asarray(a, dtype=np.float64)
    b = np.asarray(b, dtype=np.float64)
    denom = magnitude(a) * magnitude(b)
    if denom < _EPSILON:
        return 0.0
    cos_theta = float(np.dot(a, b)) / denom
    # Clamp for float drift just outside [-1, 1]
    cos_theta = max(-1.0, min(1.0, cos_theta))
    return math.degrees(math.acos(cos_theta))


def rotate_towards(current, target, t: float) -> np.ndarray:
    """Spherically interpolate unit direction *current* toward *target*.

    *t* is clamped to [0, 1]; at 1 the result faces *target* exactly, so a
    single step can never swing past it.  Antiparallel inputs rotate about
    the world up axis (or +X when the vectors are vertical).
    """
    t = max(0.0, min(1.0, t))
    a = normalize(np.asarray(current, dtype=np.float64))
    b = normalize(np.asarray(target, dtype=np.float64), fallback=a)

    cos_theta = max(-1.0, min(1.0, float(np.dot(a, b))))
    theta = math.acos(cos_theta)
    if theta < _EPSILON:
        return b.copy()

    if math.pi - theta < 1e-6:
        # Antiparallel: slerp is undefined, pick a perpendicular axis
        ortho = np.cross(UP, a)
        if magnitude(ortho) < _EPSILON:
            ortho = np.cross(np.array([1.0, 0.0, 0.0]), a)
        ortho = normalize(ortho)
        angle = theta * t
        return normalize(a * math.cos(angle) + ortho * math.sin(angle))

    sin_theta = math.sin(theta)
    w_a = math.sin((1.0 - t) * theta) / sin_theta
    w_b = math.sin(t * theta) / sin_theta
    return normalize(a * w_a + b * w_b)


def heading_degrees(forward) -> float:
    """Compass heading of *forward* on the X/Z plane (0 = +Z, clockwise toward +X)."""
    f = np.asarray(forward, dtype=np.float64)
    return math.degrees(math.atan2(f[0], f[2])) % 360.0


@dataclass
class Pose:
    """Position plus facing of an agent in world space.

    ``forward`` is kept normalized; a zero vector falls back to +Z.
    """

    position: np.ndarray = field(default_factory=lambda: np.zeros(3))
    forward: np.ndarray = field(default_factory=lambda: FORWARD.copy())

    def __post_init__(self) -> None:
        self.position = vec3(self.position)
        self.forward = normalize(vec3(self.forward))

    @classmethod
    def at(cls, x: float, y: float, z: float, facing=(0.0, 0.0, 1.0)) -> Pose:
        return cls(position=np.array([x, y, z], dtype=np.float64), forward=facing)

    def copy(self) -> Pose:
        return Pose(position=self.position.copy(), forward=self.forward.copy())

    def to_dict(self) -> dict:
        return {
            "position": [float(c) for c in self.position],
            "forward": [float(c) for c in self.forward],
            "heading": heading_degrees(self.forward),
        }
