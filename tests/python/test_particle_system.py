from __future__ import annotations

import pytest
from pytest import approx

from boidsim.sim.core.agent import Boid, BouncyParticle, ParticleTag
from boidsim.sim.core.config import FlockParams, SimulationConfig
from boidsim.sim.core.particle_system import ParticleSystem
from boidsim.sim.utils.vector import Vec2


def _system(populate: bool = False, **overrides) -> ParticleSystem:
    flock = overrides.pop("flock", FlockParams())
    config = SimulationConfig(seed=11, flock=flock, **overrides)
    return ParticleSystem(config, populate=populate)


def test_populate_and_remove_all_counts():
    system = _system()
    system.populate(25)
    assert system.num_particles() == 25

    system.remove_all()
    assert system.num_particles() == 0


def test_initial_population_is_spawned_within_bounds_and_speed_range():
    system = _system(populate=True, initial_population=40)
    params = system.params

    assert system.num_particles() == 40
    for boid in system.agents:
        assert 0.0 <= boid.position.x <= system.width
        assert 0.0 <= boid.position.y <= system.height
        assert params.min_velocity <= boid.velocity.mag() + 1e-9
        assert boid.velocity.mag() <= params.max_velocity + 1e-9


def test_remove_particle_on_empty_system_is_noop():
    system = _system()
    assert system.remove_particle() is None
    assert system.num_particles() == 0


def test_remove_particle_takes_one_agent():
    system = _system()
    system.populate(3)
    before = system.get_all()

    removed = system.remove_particle()

    assert removed in before
    assert system.num_particles() == 2
    assert removed not in system.agents


def test_get_all_returns_detached_copy():
    system = _system()
    system.populate(4)
    snapshot = system.get_all()

    snapshot.clear()
    assert system.num_particles() == 4

    held = system.get_all()
    system.remove_all()
    assert len(held) == 4


def test_explicit_spawn_uses_given_values():
    system = _system()
    boid = system.add_particle(100.0, 200.0, 0.0, 120.0)

    assert (boid.position.x, boid.position.y) == (100.0, 200.0)
    assert (boid.velocity.x, boid.velocity.y) == approx((120.0, 0.0))
    assert system.agents == [boid]


def test_add_particle_accepts_prebuilt_agent():
    system = _system()
    bouncy = BouncyParticle(position=Vec2(20.0, 20.0), velocity=Vec2(300.0, 0.0))

    assert system.add_particle(bouncy) is bouncy
    system.move_all(0.01)

    assert system.num_particles() == 1
    assert bouncy.position.as_tuple() == approx((23.0, 20.0))
    with pytest.raises(TypeError):
        system.add_particle(bouncy, 5.0)
    assert system.num_particles() == 1


def test_tag_and_predicate_queries():
    system = _system()
    system.populate(3)
    bouncy = system.add_bouncy(10.0, 10.0)

    assert system.get_tagged(ParticleTag.BOUNCY_PARTICLE) == [bouncy]
    assert len(system.get_tagged(ParticleTag.BOID)) == 3
    assert bouncy.velocity.mag() == approx(300.0)

    assert system.remove_tagged(ParticleTag.BOID) == 3
    assert system.agents == [bouncy]
    assert system.remove_if(lambda agent: agent.position.x < 50.0) == 1
    assert system.num_particles() == 0


def test_update_params_validates_and_rejects_atomically():
    system = _system()
    system.set_param("view_range", 80.0)
    assert system.params.view_range == 80.0

    with pytest.raises(ValueError):
        system.set_param("scatter_chance", 1.5)
    with pytest.raises(ValueError):
        system.update_params(min_velocity=300.0, cohesion_factor=3.0)
    with pytest.raises(ValueError):
        system.set_param("warp_factor", 9.0)

    params = system.params
    assert params.scatter_chance == FlockParams().scatter_chance
    assert params.cohesion_factor == FlockParams().cohesion_factor


def test_params_property_is_a_copy():
    system = _system()
    params = system.params
    params.view_range = 1.0
    assert system.params.view_range == FlockParams().view_range


def test_slow_motion_toggle_and_frame_dt():
    system = _system(dt_damping=0.75)
    assert system.frame_dt(0.02) == approx(0.015)

    assert system.toggle_slow_motion() == 0.25
    assert system.frame_dt(0.02) == approx(0.00375)
    assert system.toggle_slow_motion() == 1.0


def test_invariants_hold_every_step():
    system = _system(populate=True, initial_population=40)
    system.add_bouncy(375.0, 375.0)
    params = system.params
    dt = system.frame_dt(1.0 / 60.0)

    for _ in range(400):
        system.move_all(dt)
        for agent in system.agents:
            assert 0.0 <= agent.position.x <= system.width
            assert 0.0 <= agent.position.y <= system.height
            if isinstance(agent, Boid):
                speed = agent.velocity.mag()
                assert params.min_velocity - 1e-6 <= speed <= params.max_velocity + 1e-6


def test_isolated_boid_travels_in_a_straight_line():
    system = _system()
    boid = system.add_particle(375.0, 375.0, 0.0, 100.0)

    for _ in range(10):
        system.move_all(0.01)

    assert (boid.position.x, boid.position.y) == approx((385.0, 375.0))
    assert (boid.velocity.x, boid.velocity.y) == approx((100.0, 0.0))


def test_non_positive_dt_skips_the_frame():
    system = _system()
    boid = system.add_particle(375.0, 375.0, 0.0, 100.0)

    system.move_all(0.0)
    system.move_all(-1.0)
    system.move_all(float("nan"))

    assert (boid.position.x, boid.position.y) == (375.0, 375.0)
    assert system.tick == 0
    assert system.scatter_timer.interval_timer == approx(1.5)


def test_large_dt_is_clamped():
    system = _system(max_frame_time=0.1)
    boid = system.add_particle(375.0, 375.0, 0.0, 100.0)

    system.move_all(5.0)

    assert boid.position.x == approx(385.0)


def test_marked_agents_are_removed_after_the_pass():
    system = _system()
    system.populate(5)
    doomed = system.agents[2]
    doomed.mark_for_remove = True

    metrics = system.move_all(0.01)

    assert metrics.removed == 1
    assert system.num_particles() == 4
    assert doomed not in system.agents


def test_later_agents_see_earlier_updates_in_the_same_pass():
    system = _system(flock=FlockParams(wall_margin=0.0, scatter_chance=0.0))
    leader = system.add_particle(339.0, 375.0, 0.0, 100.0)
    follower = system.add_particle(400.0, 375.0, 0.0, 0.0)
    follower.velocity = Vec2(0.0, 100.0)

    system.move_all(0.1)

    # leader moved 10px closer before the follower scanned, putting it in view
    assert leader.position.x == approx(349.0)
    assert follower.velocity.x == approx(100.0 * 1.2 * 0.1 - 51.0 * 1.0 * 0.1)


def test_scatter_chance_one_scatters_at_every_rollover():
    system = _system(flock=FlockParams(scatter_chance=1.0), scatter_interval=1.5, max_frame_time=1.0)
    system.add_particle(375.0, 375.0, 0.0, 100.0)

    assert not system.move_all(0.5).scattering
    assert not system.move_all(0.5).scattering
    assert system.move_all(0.5).scattering

    assert system.scatter_timer.rollovers == 1
    assert system.scattering

    for _ in range(3):
        system.move_all(0.5)
    assert system.scatter_timer.rollovers == 2
    assert system.scattering


def test_scatter_chance_zero_never_scatters():
    system = _system(flock=FlockParams(scatter_chance=0.0))
    for _ in range(600):
        assert not system.move_all(0.1).scattering
    assert system.scatter_timer.rollovers >= 30


def test_reset_restores_seeded_population():
    system = _system(populate=True, initial_population=5)
    first = [(agent.position.x, agent.position.y) for agent in system.agents]
    for _ in range(20):
        system.move_all(0.01)

    system.reset()

    assert [(agent.position.x, agent.position.y) for agent in system.agents] == first
    assert system.tick == 0


def test_snapshot_lists_agents_and_params():
    system = _system()
    system.add_particle(10.0, 20.0, 0.0, 100.0)
    system.add(BouncyParticle(position=Vec2(5.0, 5.0), velocity=Vec2(0.0, 300.0)))

    snapshot = system.snapshot()

    assert snapshot.world.width == system.width
    assert snapshot.params["view_range"] == system.params.view_range
    assert [agent["kind"] for agent in snapshot.agents] == ["Boid", "BouncyParticle"]
    assert snapshot.agents[1]["speed"] == approx(300.0)
    assert snapshot.metrics.population == 2
