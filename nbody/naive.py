import math
from dataclasses import dataclass, replace

import numpy as np

G = 1.0 # gravity constant
DT = 0.01
EPSILON = 1e-10 # distance floor, keeps coincident bodies from dividing by zero


def _divide(a, b):
    # IEEE semantics: x / 0 -> inf, 0 / 0 -> nan, overflow -> inf
    with np.errstate(divide="ignore", invalid="ignore", over="ignore"):
        return float(np.float64(a) / b)


@dataclass(frozen=True)
class Vector:
    """2D displacement, velocity or force."""
    x: float = 0.0
    y: float = 0.0

    def __add__(self, other):
        return Vector(self.x + other.x, self.y + other.y)

    def __sub__(self, other):
        return Vector(self.x - other.x, self.y - other.y)

    def __neg__(self):
        return Vector(-self.x, -self.y)

    def __mul__(self, scalar):
        return Vector(self.x * scalar, self.y * scalar)

    __rmul__ = __mul__

    def __truediv__(self, scalar):
        return Vector(_divide(self.x, scalar), _divide(self.y, scalar))

    def length(self):
        return math.sqrt(self.x * self.x + self.y * self.y)

    def is_finite(self):
        return math.isfinite(self.x) and math.isfinite(self.y)


@dataclass(frozen=True)
class Body:
    id: int
    position: Vector
    velocity: Vector
    mass: float


def pairwise_force(body: Body, other: Body, G: float = G, epsilon: float = EPSILON) -> Vector:
    """Force exerted on `body` by `other`, pointing from body toward other."""
    r_vec = other.position - body.position
    safe_distance = max(r_vec.length(), epsilon)
    direction = r_vec / safe_distance
    magnitude = _divide(G * body.mass * other.mass, safe_distance * safe_distance)
    return direction * magnitude


def total_force(bodies, index: int, G: float = G, epsilon: float = EPSILON) -> Vector:
    force = Vector(0.0, 0.0)
    for j, other in enumerate(bodies):
        if j != index:
            force = force + pairwise_force(bodies[index], other, G, epsilon)
    return force


def step(bodies, G: float = G, dt: float = DT, epsilon: float = EPSILON) -> list:
    """Advance the system by one time step.

    Every force is computed from the input snapshot, then velocity is updated
    from the acceleration and position from the *updated* velocity
    (semi-implicit Euler). Ids, masses and ordering are carried over. Never
    raises: zero masses or overflow show up as inf/nan in the result.
    """
    snapshot = tuple(bodies)
    new_bodies = []
    for i, body in enumerate(snapshot):
        acceleration = total_force(snapshot, i, G, epsilon) / body.mass
        velocity = body.velocity + acceleration * dt
        position = body.position + velocity * dt
        new_bodies.append(replace(body, position=position, velocity=velocity))
    return new_bodies


def is_finite(bodies) -> bool:
    return all(b.position.is_finite() and b.velocity.is_finite() for b in bodies)
