"""Integration tests for GuardSimulation -- sensor, FSM, world and navigator together."""

from __future__ import annotations

import random

import numpy as np
import pytest

from warden.comms.event_bus import GUARD_STATE_CHANGED, GUARD_TELEMETRY, EventBus
from warden.config import GuardSettings
from warden.simulation.engine import GuardSimulation
from warden.simulation.geometry import Pose, distance_between
from warden.simulation.guard import GuardState
from warden.simulation.world import BoxCollider, CollisionWorld


pytestmark = pytest.mark.integration


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _make_sim(
    target: tuple[float, float, float] | None = (0.0, 0.0, 10.0),
    world: CollisionWorld | None = None,
    event_bus: EventBus | None = None,
    **settings,
) -> GuardSimulation:
    return GuardSimulation(
        world=world,
        target=Pose.at(*target) if target is not None else None,
        settings=GuardSettings(**settings),
        event_bus=event_bus,
    )


# ===========================================================================
# Sighting scenarios
# ===========================================================================


class TestSighting:
    def test_clear_sight_enters_chase(self):
        sim = _make_sim(target=(0.0, 0.0, 10.0))
        guard = sim.add_guard("g1", Pose.at(0, 0, 0))
        results = sim.step(0.1)
        assert results["g1"].visible
        assert guard.state is GuardState.CHASE
        np.testing.assert_allclose(guard.last_place_seen, [0, 0, 10])

    def test_wide_angle_target_not_seen(self):
        sim = _make_sim(target=(15.0, 0.0, 1.0))
        guard = sim.add_guard("g1", Pose.at(0, 0, 0))
        assert not sim.step(0.1)["g1"].visible
        assert guard.state is GuardState.PATROL

    def test_wall_blocks_sight(self):
        world = CollisionWorld([BoxCollider(min_corner=(-2, -1, 4), max_corner=(2, 1, 5), tag="Wall")])
        sim = _make_sim(target=(0.0, 0.0, 10.0), world=world)
        guard = sim.add_guard("g1", Pose.at(0, 0, 0))
        sim.step(0.1)
        assert guard.state is GuardState.PATROL

    def test_no_target_never_visible(self):
        sim = _make_sim(target=None)
        guard = sim.add_guard("g1", Pose.at(0, 0, 0))
        sim.run(1.0)
        assert guard.state is GuardState.PATROL

    def test_chase_closes_to_accuracy(self):
        sim = _make_sim(target=(6.0, 0.0, 10.0), chasing_accuracy=5.0)
        guard = sim.add_guard("g1", Pose.at(0, 0, 0))
        sim.run(10.0)
        assert guard.state is GuardState.CHASE
        gap = distance_between(guard.pose.position, sim.target.position)
        assert 4.5 <= gap <= 5.0 + 1e-9

    def test_chase_halts_navigator(self):
        sim = _make_sim(target=(0.0, 0.0, 10.0))
        sim.add_guard("g1", Pose.at(0, 0, 0))
        sim.step(0.1)
        nav = sim.get_navigator("g1")
        assert not nav.has_path
        assert nav.stop_count == 1


# ===========================================================================
# Losing the target
# ===========================================================================


class TestLoseTarget:
    def test_chase_investigate_patrol(self):
        sim = _make_sim(target=(0.0, 0.0, 10.0))
        guard = sim.add_guard("g1", Pose.at(0, 0, 0))
        sim.step(0.1)
        assert guard.state is GuardState.CHASE

        sim.set_target(None)
        sim.step(0.1)
        assert guard.state is GuardState.INVESTIGATE
        np.testing.assert_allclose(guard.last_place_seen, [0, 0, 10])

        for _ in range(100):
            sim.step(0.1)
            if guard.state is GuardState.PATROL:
                break
        assert guard.state is GuardState.PATROL
        assert distance_between(guard.pose.position, (0, 0, 10)) < 0.5

    def test_target_slips_behind_wall(self):
        world = CollisionWorld()
        sim = _make_sim(target=(0.0, 0.0, 10.0), world=world)
        guard = sim.add_guard("g1", Pose.at(0, 0, 0))
        sim.step(0.1)
        assert guard.state is GuardState.CHASE

        world.add(BoxCollider(min_corner=(-2, -1, 6), max_corner=(2, 1, 7), tag="Wall"))
        sim.step(0.1)
        assert guard.state is GuardState.INVESTIGATE


# ===========================================================================
# Patrol timing
# ===========================================================================


class TestPatrolTiming:
    def test_request_on_fifth_second(self):
        sim = _make_sim(target=None, patrol_wait=5.0, patrol_distance=10.0)
        guard = sim.add_guard("g1", Pose.at(0, 0, 0), rng=random.Random(11))
        nav = sim.get_navigator("g1")
        for tick in range(1, 6):
            memory = guard.last_place_seen
            result = sim.step(1.0)["g1"]
            if tick < 5:
                assert result.destination is None
                assert nav.requests == []
        assert len(nav.requests) == 1
        point = nav.requests[0]
        assert abs(point[0] - memory[0]) <= 10.0
        assert abs(point[2] - memory[2]) <= 10.0
        assert point[1] == memory[1]


# ===========================================================================
# Knocks
# ===========================================================================


class TestKnock:
    def test_knock_alerts_guards_in_radius(self):
        sim = _make_sim(target=(0.0, 0.0, -30.0), knock_radius=20.0)
        near = sim.add_guard("near", Pose.at(0, 0, -15))
        far = sim.add_guard("far", Pose.at(0, 0, 40))
        alerted = sim.knock()
        assert alerted == [near]
        assert near.state is GuardState.INVESTIGATE
        assert far.state is GuardState.PATROL
        np.testing.assert_allclose(near.last_place_seen, [0, 0, -30])

    def test_knock_explicit_point_and_radius(self):
        sim = _make_sim(target=None)
        g = sim.add_guard("g1", Pose.at(0, 0, 0))
        assert sim.knock((3.0, 0.0, 3.0), radius=5.0) == [g]

    def test_knock_without_point_or_target_rejected(self):
        sim = _make_sim(target=None)
        with pytest.raises(ValueError):
            sim.knock()

    def test_knock_during_visible_chase_keeps_chasing(self):
        bus = EventBus()
        changes = bus.subscribe(GUARD_STATE_CHANGED)
        sim = _make_sim(target=(0.0, 0.0, 10.0), event_bus=bus)
        guard = sim.add_guard("g1", Pose.at(0, 0, 0))
        sim.step(0.1)
        guard.report_disturbance((50.0, 0.0, 50.0))
        assert guard.state is GuardState.CHASE
        sim.step(0.1)
        assert guard.state is GuardState.CHASE
        np.testing.assert_allclose(guard.last_place_seen, [0, 0, 10])
        assert changes.qsize() == 1
        assert changes.get_nowait()["data"]["new_state"] == "chase"

    def test_guard_walks_to_knock(self):
        sim = _make_sim(target=None)
        guard = sim.add_guard("g1", Pose.at(0, 0, 0))
        sim.knock((0.0, 0.0, 5.0), radius=10.0)
        sim.run(3.0)
        assert guard.state is GuardState.PATROL
        assert distance_between(guard.pose.position, (0, 0, 5)) < 0.5


# ===========================================================================
# Harness bookkeeping
# ===========================================================================


class TestHarness:
    def test_duplicate_guard_rejected(self):
        sim = _make_sim()
        sim.add_guard("g1", Pose.at(0, 0, 0))
        with pytest.raises(ValueError):
            sim.add_guard("g1", Pose.at(5, 0, 0))

    def test_remove_guard(self):
        sim = _make_sim()
        sim.add_guard("g1", Pose.at(0, 0, 0))
        assert sim.remove_guard("g1")
        assert not sim.remove_guard("g1")
        assert sim.get_guard("g1") is None

    def test_negative_dt_rejected(self):
        with pytest.raises(ValueError):
            _make_sim().step(-1.0)

    def test_elapsed_accumulates(self):
        sim = _make_sim(target=None)
        sim.run(1.0, dt=0.25)
        assert sim.elapsed == pytest.approx(1.0)

    def test_move_target_updates_collider(self):
        sim = _make_sim(target=(0.0, 0.0, -10.0))
        guard = sim.add_guard("g1", Pose.at(0, 0, 0))
        sim.step(0.1)
        assert guard.state is GuardState.PATROL
        sim.move_target((0.0, 0.0, 8.0))
        sim.step(0.1)
        assert guard.state is GuardState.CHASE

    def test_events_published(self):
        bus = EventBus()
        telemetry = bus.subscribe(GUARD_TELEMETRY)
        changes = bus.subscribe(GUARD_STATE_CHANGED)
        sim = _make_sim(target=(0.0, 0.0, 10.0), event_bus=bus)
        sim.add_guard("g1", Pose.at(0, 0, 0))
        sim.step(0.1)
        assert telemetry.get_nowait()["data"]["state"] == "chase"
        assert changes.get_nowait()["data"]["new_state"] == "chase"

    def test_guards_are_independent(self):
        sim = _make_sim(target=(0.0, 0.0, 10.0))
        watcher = sim.add_guard("watcher", Pose.at(0, 0, 0))
        blind = sim.add_guard("blind", Pose.at(0, 0, 30))
        sim.step(0.1)
        assert watcher.state is GuardState.CHASE
        assert blind.state is GuardState.PATROL
