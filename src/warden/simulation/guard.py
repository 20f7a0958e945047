"""GuardBehavior -- perception-driven patrol / investigate / chase FSM.

State diagram:

    patrol <-----(arrived)----- investigate <----(lost sight)---- chase
      |                            ^   ^                            ^
      |                            |   +--(disturbance, not chasing)|
      +-------------------------(target visible, any state)---------+

Per-tick evaluation order:
  1. Visibility.  A visible target forces CHASE and stores its position
     as the memory point (last_place_seen).
  2. Lost sight.  Not visible while in CHASE forces INVESTIGATE; the
     memory point keeps the last sighted position.
  3. Behavior.  The behavior of the resulting state runs.  It may switch
     the state for the next tick (INVESTIGATE -> PATROL on arrival).

Movement output:
  - PATROL / INVESTIGATE ask the Navigator to route to a destination
  - CHASE halts the Navigator and steers the pose directly: rotate toward
    the target by a bounded slerp step, then advance along the guard's own
    forward axis.  The guard never strafes, so a guard still turning
    drifts off the direct line to the target.

Disturbances (noise, knocks) arrive through report_disturbance() from any
thread and always become the memory point.  Outside CHASE they force
INVESTIGATE at once.  During CHASE the state holds: the next tick keeps
CHASE while the target stays visible, and otherwise investigates the
reported point.  The tick and the disturbance share one lock, so a
disturbance lands either wholly before or wholly after a tick.
"""

from __future__ import annotations

import random
import threading
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Optional

import numpy as np
from loguru import logger

from warden.comms.event_bus import GUARD_DISTURBANCE, GUARD_STATE_CHANGED
from warden.config import GuardSettings
from warden.config import settings as default_settings

from .geometry import distance_between, magnitude, rotate_towards, vec3
from .patrol import patrol_point
from .perception import PerceptionSensor

if TYPE_CHECKING:
    from warden.comms.event_bus import EventBus

    from .geometry import Pose
    from .interfaces import Navigator, TargetSource, WorldQuery
    from .patrol import UniformSource


class GuardState(Enum):
    """Behavioral state of a guard.  Exactly one is active at a time."""
    PATROL = "patrol"
    INVESTIGATE = "investigate"
    CHASE = "chase"


@dataclass(frozen=True)
class MotionDelta:
    """Direct movement applied by CHASE in one tick."""
    translation: np.ndarray
    forward: np.ndarray


@dataclass(frozen=True)
class TickResult:
    """Outcome of one guard tick.

    At most one of ``destination`` (navigation request issued this tick)
    and ``motion`` (direct CHASE movement) is set.
    """
    state: GuardState
    visible: bool
    destination: Optional[np.ndarray] = None
    motion: Optional[MotionDelta] = None


@dataclass(frozen=True)
class StateChange:
    """Published whenever a guard's state differs from what it was."""
    guard_id: str
    old_state: GuardState
    new_state: GuardState
    reason: str

    def to_dict(self) -> dict:
        return {
            "guard_id": self.guard_id,
            "old_state": self.old_state.value,
            "new_state": self.new_state.value,
            "reason": self.reason,
        }


class GuardBehavior:
    """One guard's decision logic.

    The guard owns its Pose (shared with its Navigator, which moves it
    during PATROL/INVESTIGATE).  Collaborators are injected so the FSM
    runs without an engine:

      navigator:     routes toward points (set_destination / stop_and_clear_path)
      world:         raycast queries for line-of-sight
      target_source: returns the target Pose, or None when there is none
      rng:           uniform() source for patrol points
      event_bus:     optional sink for state change / disturbance events
    """

    def __init__(
        self,
        pose: Pose,
        navigator: Navigator,
        *,
        world: WorldQuery | None = None,
        target_source: TargetSource | None = None,
        sensor: PerceptionSensor | None = None,
        settings: GuardSettings | None = None,
        rng: UniformSource | None = None,
        event_bus: EventBus | None = None,
        guard_id: str = "guard",
    ) -> None:
        self._settings = settings or default_settings
        self._pose = pose
        self._navigator = navigator
        self._world = world
        self._target_source = target_source
        self.sensor = sensor or PerceptionSensor(self._settings.perception_config())
        self._rng = rng if rng is not None else random.Random()
        self._event_bus = event_bus
        self.guard_id = guard_id

        self._lock = threading.RLock()
        self._state = GuardState.PATROL
        self._last_place_seen = pose.position.copy()
        self._patrol_timer = self._settings.patrol_wait if self._settings.start_patrol_primed else 0.0
        self._active_destination: np.ndarray | None = None
        self._disturbed_in_chase = False

    # -- Read-only observability ------------------------------------------

    @property
    def state(self) -> GuardState:
        with self._lock:
            return self._state

    @property
    def last_place_seen(self) -> np.ndarray:
        with self._lock:
            return self._last_place_seen.copy()

    @property
    def patrol_timer(self) -> float:
        with self._lock:
            return self._patrol_timer

    @property
    def active_destination(self) -> np.ndarray | None:
        """Most recent navigation request still in effect (None after CHASE halts it)."""
        with self._lock:
            if self._active_destination is None:
                return None
            return self._active_destination.copy()

    @property
    def pose(self) -> Pose:
        return self._pose

    @property
    def arrival_threshold(self) -> float:
        return self._navigator.stopping_distance + self._settings.arrival_slack

    def telemetry(self) -> dict:
        """JSON-friendly snapshot for debug overlays."""
        with self._lock:
            dest = self._active_destination
            return {
                "guard_id": self.guard_id,
                "state": self._state.value,
                **self._pose.to_dict(),
                "last_place_seen": [float(c) for c in self._last_place_seen],
                "patrol_timer": self._patrol_timer,
                "destination": [float(c) for c in dest] if dest is not None else None,
            }

    # -- External entry points --------------------------------------------

    def tick(self, dt: float) -> TickResult:
        """Sense the target through the injected world, then advance the FSM."""
        target = self._target_source() if self._target_source is not None else None
        if self._world is None:
            visible = False
        else:
            visible = self.sensor.can_see(self._pose, target, self._world)
        return self.advance(visible, target, dt)

    def report_disturbance(self, point) -> None:
        """Investigate *point* (a noise, a knock).  Accepted from any thread.

        No reachability check is made; routing failures are the
        navigator's concern.
        """
        point = vec3(point)
        with self._lock:
            old = self._state
            self._last_place_seen = point
            if old is GuardState.CHASE:
                # Visibility decides on the next tick
                self._disturbed_in_chase = True
            else:
                self._state = GuardState.INVESTIGATE
            logger.info(f"Guard {self.guard_id} disturbance at {_fmt(point)}")
            if self._event_bus is not None:
                self._event_bus.publish(GUARD_DISTURBANCE, {
                    "guard_id": self.guard_id,
                    "point": [float(c) for c in point],
                })
            if old is not self._state:
                self._emit_change(old, self._state, "disturbance")

    def advance(self, visible: bool, target: Pose | None, dt: float) -> TickResult:
        """Advance one tick given this tick's perception result."""
        if dt < 0:
            raise ValueError(f"dt must be >= 0, got {dt}")
        visible = bool(visible) and target is not None

        with self._lock:
            start = self._state
            reason = ""
            disturbed = self._disturbed_in_chase
            self._disturbed_in_chase = False

            if visible:
                self._state = GuardState.CHASE
                self._last_place_seen = target.position.copy()
                reason = "target_sighted"
            elif self._state is GuardState.CHASE:
                self._state = GuardState.INVESTIGATE
                reason = "disturbance" if disturbed else "target_lost"

            destination = None
            motion = None
            acting = self._state
            if acting is GuardState.PATROL:
                destination = self._patrol(dt)
            elif acting is GuardState.INVESTIGATE:
                destination = self._investigate()
                if self._state is not acting:
                    reason = "arrived"
            else:
                motion = self._chase(target, dt)

            if self._state is not start:
                self._emit_change(start, self._state, reason)

            return TickResult(
                state=self._state,
                visible=visible,
                destination=destination,
                motion=motion,
            )

    # -- State behaviors (called with the lock held) ----------------------

    def _chase(self, target: Pose, dt: float) -> MotionDelta:
        self._navigator.stop_and_clear_path()
        self._active_destination = None

        pose = self._pose
        direction = target.position - pose.position
        if magnitude(direction) > 0.0:
            new_forward = rotate_towards(pose.forward, direction, dt * self._settings.chasing_rot_speed)
        else:
            new_forward = pose.forward.copy()

        translation = np.zeros(3)
        if magnitude(direction) > self._settings.chasing_accuracy:
            # Advance along own facing, never straight at the target
            translation = new_forward * (self._settings.chasing_speed * dt)

        pose.forward = new_forward
        pose.position = pose.position + translation
        return MotionDelta(translation=translation, forward=new_forward.copy())

    def _investigate(self) -> np.ndarray | None:
        if distance_between(self._pose.position, self._last_place_seen) < self.arrival_threshold:
            self._state = GuardState.PATROL
            return None

        destination = self._last_place_seen.copy()
        self._navigator.set_destination(destination.copy())
        self._active_destination = destination
        logger.debug(f"Guard {self.guard_id} investigating {_fmt(destination)}")
        return destination

    def _patrol(self, dt: float) -> np.ndarray | None:
        self._patrol_timer += dt
        if self._patrol_timer < self._settings.patrol_wait:
            return None

        self._patrol_timer = 0.0
        point = patrol_point(self._last_place_seen, self._settings.patrol_distance, self._rng)
        # Patrol walks: the next point is drawn around this one
        self._last_place_seen = point.copy()
        self._navigator.set_destination(point.copy())
        self._active_destination = point
        logger.debug(f"Guard {self.guard_id} patrolling to {_fmt(point)}")
        return point

    def _emit_change(self, old: GuardState, new: GuardState, reason: str) -> None:
        change = StateChange(self.guard_id, old, new, reason)
        logger.info(f"Guard {self.guard_id} state: {old.value} -> {new.value} ({reason})")
        if self._event_bus is not None:
            self._event_bus.publish(GUARD_STATE_CHANGED, change.to_dict())


def _fmt(point: np.ndarray) -> str:
    return "(" + ", ".join(f"{c:.2f}" for c in point) + ")"
