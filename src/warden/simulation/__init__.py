"""Simulation subsystem -- guard perception, FSM, world and harness."""
from .engine import GuardSimulation
from .geometry import Pose, angle_between, rotate_towards
from .guard import GuardBehavior, GuardState, MotionDelta, StateChange, TickResult
from .interfaces import HitInfo, Navigator, TargetSource, WorldQuery
from .noise import alert_guards
from .patrol import patrol_point
from .perception import PerceptionConfig, PerceptionSensor, Sighting
from .world import BoxCollider, CollisionWorld, SphereCollider, StraightLineNavigator

__all__ = [
    "BoxCollider",
    "CollisionWorld",
    "GuardBehavior",
    "GuardSimulation",
    "GuardState",
    "HitInfo",
    "MotionDelta",
    "Navigator",
    "PerceptionConfig",
    "PerceptionSensor",
    "Pose",
    "Sighting",
    "SphereCollider",
    "StateChange",
    "StraightLineNavigator",
    "TargetSource",
    "TickResult",
    "WorldQuery",
    "alert_guards",
    "angle_between",
    "patrol_point",
    "rotate_towards",
]
