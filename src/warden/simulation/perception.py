"""PerceptionSensor -- can this guard see the target right now?

A target is visible when all of the following hold:
  - Range: straight-line distance is under view_distance
  - Cone: angle between guard forward and the target direction is under
    view_half_angle (the full half-angle of the cone, in degrees)
  - Line-of-sight: the first thing a ray toward the target hits carries
    the target tag.  Any geometry hit first blocks sight.

Fail-closed: a missing target or a ray that leaves the world without
hitting anything is simply "not visible".  Nothing here raises for world
or target conditions, and nothing here has side effects.

Integration:
  - GuardBehavior calls can_see() once per tick and feeds the result
    into its state machine
  - evaluate() exposes the intermediate values for telemetry and tests
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

from .geometry import angle_between, magnitude, normalize
from .interfaces import HitInfo

if TYPE_CHECKING:
    from .geometry import Pose
    from .interfaces import WorldQuery


@dataclass(frozen=True)
class PerceptionConfig:
    """Immutable per-guard vision tunables."""
    view_distance: float = 20.0
    view_half_angle: float = 45.0  # degrees, measured from forward
    target_tag: str = "Player"

    def __post_init__(self) -> None:
        if not self.view_distance > 0:
            raise ValueError(f"view_distance must be > 0, got {self.view_distance}")
        if not 0 < self.view_half_angle <= 180:
            raise ValueError(
                f"view_half_angle must be in (0, 180], got {self.view_half_angle}"
            )
        if not self.target_tag:
            raise ValueError("target_tag must be a non-empty string")


@dataclass(frozen=True)
class Sighting:
    """Result of one perception check -- why the target is (not) visible."""
    visible: bool
    distance: float = 0.0
    angle: float = 0.0
    hit: Optional[HitInfo] = None
    target_present: bool = True

    def to_dict(self) -> dict:
        return {
            "visible": self.visible,
            "distance": self.distance,
            "angle": self.angle,
            "hit_tag": self.hit.tag if self.hit is not None else None,
            "target_present": self.target_present,
        }


class PerceptionSensor:
    """Cone + range + line-of-sight visibility test for a single guard."""

    def __init__(self, config: PerceptionConfig | None = None) -> None:
        self.config = config or PerceptionConfig()

    def evaluate(
        self,
        observer: Pose,
        target: Pose | None,
        world: WorldQuery,
    ) -> Sighting:
        """Run the full visibility check and report every intermediate value."""
        if target is None:
            return Sighting(visible=False, target_present=False)

        direction = target.position - observer.position
        dist = magnitude(direction)
        angle = angle_between(direction, observer.forward)

        # Coincident target: cast along forward so the ray is still defined
        ray_dir = normalize(direction, fallback=observer.forward)
        hit = world.raycast(observer.position.copy(), ray_dir)

        cfg = self.config
        visible = (
            hit is not None
            and hit.tag == cfg.target_tag
            and dist < cfg.view_distance
            and angle < cfg.view_half_angle
        )
        return Sighting(visible=visible, distance=dist, angle=angle, hit=hit)

    def can_see(
        self,
        observer: Pose,
        target: Pose | None,
        world: WorldQuery,
    ) -> bool:
        """True if *target* is visible from *observer* in *world*."""
        return self.evaluate(observer, target, world).visible
