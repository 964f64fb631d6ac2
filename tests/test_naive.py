"""
Tests for the direct-summation integrator.

Covers:
- shape, id, mass and order preservation of step
- Newton's third law for pairwise_force
- zero net force at a point-symmetric centre
- the distance floor for coincident bodies
- determinism and input immutability
- semi-implicit Euler ordering on the sun/satellite system
- long-run circular-orbit stability
- nan/inf propagation for zero mass, underflowing epsilon and overflow
"""

import math
import warnings

import pytest

from nbody.naive import EPSILON, Body, Vector, is_finite, pairwise_force, step, total_force


def sun_and_satellite():
    return [
        Body(0, Vector(0.0, 0.0), Vector(0.0, 0.0), 1000.0),
        Body(1, Vector(5.0, 0.0), Vector(0.0, math.sqrt(200.0)), 1.0),
    ]


@pytest.fixture
def four_bodies():
    return [
        Body(7, Vector(0.0, 0.0), Vector(0.0, 0.0), 1000.0),
        Body(3, Vector(5.0, 0.0), Vector(0.0, 14.1421), 1.0),
        Body(9, Vector(0.0, 8.0), Vector(-11.18, 0.0), 0.8),
        Body(1, Vector(5.0, 0.5), Vector(0.0, 16.14), 0.1),
    ]


def test_vector_arithmetic():
    a = Vector(1.0, 2.0)
    b = Vector(3.0, -4.0)
    assert a + b == Vector(4.0, -2.0)
    assert b - a == Vector(2.0, -6.0)
    assert -a == Vector(-1.0, -2.0)
    assert a * 2.0 == Vector(2.0, 4.0)
    assert 2.0 * a == Vector(2.0, 4.0)
    assert b / 2.0 == Vector(1.5, -2.0)
    assert b.length() == 5.0


def test_vector_division_by_zero_does_not_raise():
    v = Vector(1.0, -1.0) / 0.0
    assert v.x == math.inf
    assert v.y == -math.inf
    assert math.isnan((Vector(0.0, 0.0) / 0.0).x)


def test_step_preserves_shape(four_bodies):
    new_bodies = step(four_bodies)
    assert len(new_bodies) == len(four_bodies)
    assert [b.id for b in new_bodies] == [7, 3, 9, 1]
    assert [b.mass for b in new_bodies] == [b.mass for b in four_bodies]


def test_step_single_body_drifts():
    body = Body(0, Vector(1.0, 1.0), Vector(2.0, -1.0), 3.0)
    (moved,) = step([body], dt=0.5)
    assert moved.velocity == body.velocity
    assert moved.position == Vector(2.0, 0.5)


def test_newtons_third_law():
    a = Body(0, Vector(0.3, -1.2), Vector(0.0, 0.0), 2.5)
    b = Body(1, Vector(-4.1, 2.7), Vector(0.0, 0.0), 7.0)
    f_ab = pairwise_force(a, b)
    f_ba = pairwise_force(b, a)
    assert f_ab.x == pytest.approx(-f_ba.x)
    assert f_ab.y == pytest.approx(-f_ba.y)
    # points from a toward b
    assert f_ab.x < 0 and f_ab.y > 0


def test_force_magnitude_follows_inverse_square():
    a = Body(0, Vector(0.0, 0.0), Vector(0.0, 0.0), 3.0)
    b = Body(1, Vector(0.0, 2.0), Vector(0.0, 0.0), 4.0)
    force = pairwise_force(a, b, G=0.5)
    assert force.x == 0.0
    assert force.y == pytest.approx(0.5 * 3.0 * 4.0 / 4.0)


def test_zero_net_force_at_symmetric_centre():
    bodies = [
        Body(0, Vector(-3.0, 0.0), Vector(0.0, 0.0), 5.0),
        Body(1, Vector(0.0, 0.0), Vector(0.0, 0.0), 1.0),
        Body(2, Vector(3.0, 0.0), Vector(0.0, 0.0), 5.0),
        Body(3, Vector(1.5, 2.0), Vector(0.0, 0.0), 2.0),
        Body(4, Vector(-1.5, -2.0), Vector(0.0, 0.0), 2.0),
    ]
    force = total_force(bodies, 1)
    assert force.x == pytest.approx(0.0, abs=1e-12)
    assert force.y == pytest.approx(0.0, abs=1e-12)


def test_coincident_bodies_are_bounded():
    a = Body(0, Vector(1.0, 1.0), Vector(0.0, 0.0), 2.0)
    b = Body(1, Vector(1.0, 1.0), Vector(0.0, 0.0), 3.0)
    force = pairwise_force(a, b)
    bound = 1.0 * 2.0 * 3.0 / EPSILON ** 2
    assert force.is_finite()
    assert force.length() <= bound

    new_bodies = step([a, b])
    assert is_finite(new_bodies)


def test_nearly_coincident_bodies_use_distance_floor():
    a = Body(0, Vector(0.0, 0.0), Vector(0.0, 0.0), 1.0)
    b = Body(1, Vector(1e-12, 0.0), Vector(0.0, 0.0), 1.0)
    force = pairwise_force(a, b)
    bound = 1.0 / EPSILON ** 2
    assert force.is_finite()
    assert force.length() <= bound
    assert force.x == pytest.approx(1e-12 / EPSILON * bound)


def test_custom_epsilon():
    a = Body(0, Vector(0.0, 0.0), Vector(0.0, 0.0), 1.0)
    b = Body(1, Vector(0.1, 0.0), Vector(0.0, 0.0), 1.0)
    # distance 0.1 is below the floor, so it acts like distance 1.0 for the
    # magnitude while the direction is scaled by 0.1 / 1.0
    force = pairwise_force(a, b, epsilon=1.0)
    assert force.x == pytest.approx(0.1)
    assert force.y == 0.0


def test_step_is_deterministic(four_bodies):
    assert step(four_bodies) == step(four_bodies)


def test_step_does_not_mutate_input(four_bodies):
    before = list(four_bodies)
    step(four_bodies)
    assert four_bodies == before


def test_forces_come_from_the_input_snapshot(four_bodies):
    forward = step(four_bodies)
    backward = step(four_bodies[::-1])[::-1]
    for f, b in zip(forward, backward):
        assert f.position.x == pytest.approx(b.position.x, rel=1e-12)
        assert f.position.y == pytest.approx(b.position.y, rel=1e-12)
        assert f.velocity.x == pytest.approx(b.velocity.x, rel=1e-12)
        assert f.velocity.y == pytest.approx(b.velocity.y, rel=1e-12)


def test_semi_implicit_euler_order():
    bodies = sun_and_satellite()
    dt = 0.01
    _, satellite = step(bodies, G=1.0, dt=dt)

    # acceleration toward the sun: 1000 / 5**2 = 40
    expected_velocity = Vector(0.0 + -40.0 * dt, math.sqrt(200.0) + 0.0 * dt)
    assert satellite.velocity.x == pytest.approx(expected_velocity.x)
    assert satellite.velocity.y == pytest.approx(expected_velocity.y)

    expected_position = bodies[1].position + satellite.velocity * dt
    assert satellite.position == expected_position
    assert satellite.position.x == pytest.approx(4.996)
    assert satellite.position.y == pytest.approx(math.sqrt(200.0) * dt)

    naive_euler_x = bodies[1].position.x + bodies[1].velocity.x * dt
    assert satellite.position.x != naive_euler_x


def test_circular_orbit_stays_circular():
    bodies = sun_and_satellite()
    r = 5.0
    distances = []
    for _ in range(10_000):
        bodies = step(bodies, G=1.0, dt=0.01)
        distances.append((bodies[1].position - bodies[0].position).length())
    assert min(distances) > 0.95 * r
    assert max(distances) < 1.05 * r


def test_zero_mass_propagates_nan_without_raising():
    bodies = [
        Body(0, Vector(0.0, 0.0), Vector(0.0, 0.0), 0.0),
        Body(1, Vector(1.0, 0.0), Vector(0.0, 0.0), 1.0),
    ]
    new_bodies = step(bodies)
    assert not is_finite(new_bodies)
    assert math.isnan(new_bodies[0].velocity.x)
    # the massive body feels no force from a massless one
    assert new_bodies[1].velocity == Vector(0.0, 0.0)

    again = step(new_bodies)
    assert len(again) == 2
    assert not is_finite(again)


def test_tiny_epsilon_with_coincident_bodies_does_not_raise():
    bodies = [
        Body(0, Vector(0.0, 0.0), Vector(0.0, 0.0), 1.0),
        Body(1, Vector(0.0, 0.0), Vector(0.0, 0.0), 1.0),
    ]
    # epsilon squared underflows to zero, so the magnitude is 1 / 0
    new_bodies = step(bodies, epsilon=1e-200)
    assert len(new_bodies) == 2
    assert not is_finite(new_bodies)


def test_overflow_is_silent():
    with warnings.catch_warnings():
        warnings.simplefilter("error")
        v = Vector(1e300, -1e300) / 1e-10
        bodies = step([
            Body(0, Vector(0.0, 0.0), Vector(0.0, 0.0), 1e-300),
            Body(1, Vector(1e-5, 0.0), Vector(0.0, 0.0), 1e300),
        ])
    assert v == Vector(math.inf, -math.inf)
    assert bodies[0].velocity.x == math.inf
