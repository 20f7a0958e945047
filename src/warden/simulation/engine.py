"""GuardSimulation -- step-driven harness for guards chasing one target.

Architecture
------------
The harness owns a CollisionWorld, the target actor's Pose (with a
sphere collider tagged as the target so line-of-sight rays can strike
it) and any number of guards, each paired with a StraightLineNavigator.

step(dt) is the only clock.  Nothing here sleeps or spawns threads: the
host (a game loop, a test, a replay tool) decides when and how often to
step.  Per step:

  1. Sync the target collider to the target pose
  2. For each guard: guard.tick(dt), then navigator.update(dt)
  3. Publish ``guard_telemetry`` for each guard on the EventBus

Guards share nothing except the read-only world and target, so the
order in which guards are ticked within a step does not change outcomes.

knock() is the noise source: it alerts every guard within a radius of
the knock point through report_disturbance().
"""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING

from loguru import logger

from warden.comms.event_bus import GUARD_TELEMETRY
from warden.config import GuardSettings
from warden.config import settings as default_settings

from .geometry import Pose, normalize, vec3
from .guard import GuardBehavior
from .noise import alert_guards
from .world import CollisionWorld, SphereCollider, StraightLineNavigator

if TYPE_CHECKING:
    from warden.comms.event_bus import EventBus

    from .guard import TickResult
    from .patrol import UniformSource

# Radius of the target's line-of-sight collider
TARGET_RADIUS = 0.5


class GuardSimulation:
    """Steps guards and their navigators against a shared world and target."""

    def __init__(
        self,
        world: CollisionWorld | None = None,
        target: Pose | None = None,
        *,
        settings: GuardSettings | None = None,
        event_bus: EventBus | None = None,
    ) -> None:
        self._settings = settings or default_settings
        self._event_bus = event_bus
        self.world = world or CollisionWorld()
        self._lock = threading.Lock()
        self._guards: dict[str, tuple[GuardBehavior, StraightLineNavigator]] = {}
        self._target: Pose | None = None
        self._target_collider = SphereCollider(
            center=(0.0, 0.0, 0.0),
            radius=TARGET_RADIUS,
            tag=self._settings.target_tag,
            enabled=False,
        )
        self.world.add(self._target_collider)
        self.elapsed = 0.0
        self.set_target(target)

    # -- Target -------------------------------------------------------------

    @property
    def target(self) -> Pose | None:
        return self._target

    def set_target(self, target: Pose | None) -> None:
        """Place (or remove, with None) the target actor."""
        self._target = target
        self._sync_target_collider()

    def move_target(self, position, forward=None) -> None:
        if self._target is None:
            self._target = Pose(position=position, forward=forward if forward is not None else (0.0, 0.0, 1.0))
        else:
            self._target.position = vec3(position)
            if forward is not None:
                self._target.forward = normalize(vec3(forward))
        self._sync_target_collider()

    def _sync_target_collider(self) -> None:
        if self._target is None:
            self._target_collider.enabled = False
        else:
            self._target_collider.center = self._target.position.copy()
            self._target_collider.enabled = True

    # -- Guard management ---------------------------------------------------

    def add_guard(
        self,
        guard_id: str,
        pose: Pose,
        *,
        nav_speed: float = 3.5,
        stopping_distance: float = 0.0,
        rng: UniformSource | None = None,
    ) -> GuardBehavior:
        navigator = StraightLineNavigator(
            pose=pose, speed=nav_speed, stopping_distance=stopping_distance,
        )
        guard = GuardBehavior(
            pose,
            navigator,
            world=self.world,
            target_source=lambda: self._target,
            settings=self._settings,
            rng=rng,
            event_bus=self._event_bus,
            guard_id=guard_id,
        )
        with self._lock:
            if guard_id in self._guards:
                raise ValueError(f"duplicate guard id: {guard_id}")
            self._guards[guard_id] = (guard, navigator)
        logger.info(f"Guard added: {guard_id} at {pose.to_dict()['position']}")
        return guard

    def remove_guard(self, guard_id: str) -> bool:
        with self._lock:
            return self._guards.pop(guard_id, None) is not None

    def get_guard(self, guard_id: str) -> GuardBehavior | None:
        with self._lock:
            entry = self._guards.get(guard_id)
        return entry[0] if entry is not None else None

    def get_navigator(self, guard_id: str) -> StraightLineNavigator | None:
        with self._lock:
            entry = self._guards.get(guard_id)
        return entry[1] if entry is not None else None

    def get_guards(self) -> list[GuardBehavior]:
        with self._lock:
            return [g for g, _ in self._guards.values()]

    # -- Stepping -----------------------------------------------------------

    def step(self, dt: float) -> dict[str, TickResult]:
        """Advance every guard by *dt* seconds."""
        if dt < 0:
            raise ValueError(f"dt must be >= 0, got {dt}")
        self._sync_target_collider()
        with self._lock:
            entries = list(self._guards.items())

        results: dict[str, TickResult] = {}
        for guard_id, (guard, navigator) in entries:
            results[guard_id] = guard.tick(dt)
            navigator.update(dt)
            if self._event_bus is not None:
                self._event_bus.publish(GUARD_TELEMETRY, guard.telemetry())
        self.elapsed += dt
        return results

    def run(self, seconds: float, dt: float = 0.1) -> None:
        """Step repeatedly until *seconds* of simulated time have passed."""
        if dt <= 0:
            raise ValueError(f"dt must be > 0, got {dt}")
        steps = int(round(seconds / dt))
        for _ in range(steps):
            self.step(dt)

    # -- Noise ---------------------------------------------------------------

    def knock(self, point=None, radius: float | None = None) -> list[GuardBehavior]:
        """Make a noise at *point* (default: the target's position).

        Every guard within *radius* (default ``knock_radius``) investigates.
        """
        if point is None:
            if self._target is None:
                raise ValueError("knock() without a point needs a target")
            point = self._target.position
        if radius is None:
            radius = self._settings.knock_radius
        return alert_guards(self.get_guards(), point, radius)
