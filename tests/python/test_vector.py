from __future__ import annotations

import math

from pytest import approx

from boidsim.sim.utils.vector import Vec2


def test_mutating_ops_chain_and_return_self():
    vec = Vec2(1.0, 2.0)
    result = vec.add(Vec2(3.0, 4.0)).sub(Vec2(1.0, 1.0)).mult(2.0).div(4.0)

    assert result is vec
    assert (vec.x, vec.y) == approx((1.5, 2.5))


def test_copy_is_independent():
    original = Vec2(1.0, 1.0)
    clone = original.copy()
    clone.mult(10.0)

    assert (original.x, original.y) == (1.0, 1.0)
    assert (clone.x, clone.y) == (10.0, 10.0)


def test_operators_do_not_mutate():
    a = Vec2(1.0, 2.0)
    b = Vec2(0.5, 0.5)
    total = a + b
    scaled = 2.0 * a

    assert (a.x, a.y) == (1.0, 2.0)
    assert (total.x, total.y) == (1.5, 2.5)
    assert (scaled.x, scaled.y) == (2.0, 4.0)


def test_division_by_zero_collapses_to_zero():
    vec = Vec2(3.0, -4.0)
    assert (vec / 0).is_zero()
    assert vec.div(0) is vec
    assert vec.is_zero()


def test_limit_clamps_both_ends_and_keeps_direction():
    fast = Vec2(30.0, 40.0).limit(1.0, 10.0)
    slow = Vec2(0.3, 0.4).limit(1.0, 10.0)
    inside = Vec2(3.0, 4.0).limit(1.0, 10.0)

    assert fast.mag() == approx(10.0)
    assert fast.heading() == approx(math.atan2(4.0, 3.0))
    assert slow.mag() == approx(1.0)
    assert slow.heading() == approx(math.atan2(4.0, 3.0))
    assert (inside.x, inside.y) == (3.0, 4.0)


def test_limit_leaves_zero_vector_at_zero():
    assert Vec2().limit(5.0, 10.0).is_zero()


def test_polar_round_trip_uses_radians():
    vec = Vec2.from_polar(math.pi / 2, 5.0)

    assert vec.x == approx(0.0, abs=1e-9)
    assert vec.y == approx(5.0)
    assert vec.heading() == approx(math.pi / 2)


def test_dist_sq():
    assert Vec2(1.0, 1.0).dist_sq(Vec2(4.0, 5.0)) == approx(25.0)
