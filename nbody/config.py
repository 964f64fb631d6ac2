"""Scenario configuration.

Scenarios are TOML files. A bare name such as ``sun_planet`` is looked up in
the bundled ``configs`` directory, anything else is treated as a path. A
scenario either lists its bodies explicitly (``[[bodies]]`` tables, where a
body may ask for a circular orbit around an earlier body instead of giving a
velocity) or sets ``random = true`` and lets numpy draw them.

Validation lives here and in the driver, never in the integrator: ``step``
accepts anything and lets bad input turn into nan/inf.
"""
import logging
import math
from dataclasses import dataclass, field
from pathlib import Path
import tomllib as toml

import numpy as np

from .naive import Body, Vector, G, DT, EPSILON

logger = logging.getLogger(__name__)

CONFIG_DIR = Path(__file__).parent / "configs"
MAX_SPEED = 10


class ConfigError(ValueError):
    """Raised when a scenario cannot be loaded or describes an invalid system."""


@dataclass
class ViewConfig:
    width: int = 800
    height: int = 800
    scale: float = 40.0 # pixels per world unit
    speed: int = 1 # physics steps per frame
    trail_length: int = 500

    @classmethod
    def from_dict(cls, data):
        try:
            view = cls(
                width=int(data.get("width", cls.width)),
                height=int(data.get("height", cls.height)),
                scale=float(data.get("scale", cls.scale)),
                speed=int(data.get("speed", cls.speed)),
                trail_length=int(data.get("trail_length", cls.trail_length)),
            )
        except (TypeError, ValueError) as e:
            raise ConfigError(f"invalid [view] table: {e}") from e
        if view.width <= 0 or view.height <= 0:
            raise ConfigError("view width and height must be positive")
        if not (math.isfinite(view.scale) and view.scale > 0):
            raise ConfigError("view scale must be positive")
        if not 1 <= view.speed <= MAX_SPEED:
            raise ConfigError(f"view speed must be between 1 and {MAX_SPEED}")
        if view.trail_length < 1:
            raise ConfigError("trail_length must be at least 1")
        return view


@dataclass
class SimulationConfig:
    name: str = "unnamed"
    G: float = G
    dt: float = DT
    epsilon: float = EPSILON
    steps: int = 100
    report_every: int = 10
    bodies: list = field(default_factory=list)
    random: bool = False
    n: int = 5
    position_range: tuple = (-2.0, 2.0)
    velocity_range: tuple = (-0.5, 0.5)
    mass_range: tuple = (0.5, 1.0)
    seed: int | None = None
    view: ViewConfig = field(default_factory=ViewConfig)

    @classmethod
    def from_dict(cls, data, name=None):
        try:
            config = cls(
                name=str(data.get("name", name or cls.name)),
                G=float(data.get("G", G)),
                dt=float(data.get("dt", DT)),
                epsilon=float(data.get("epsilon", EPSILON)),
                steps=int(data.get("steps", cls.steps)),
                report_every=int(data.get("report_every", cls.report_every)),
                bodies=list(data.get("bodies", [])),
                random=_boolean(data.get("random", False), "random"),
                n=int(data.get("n", cls.n)),
                position_range=_range(data, "position_range", cls.position_range),
                velocity_range=_range(data, "velocity_range", cls.velocity_range),
                mass_range=_range(data, "mass_range", cls.mass_range),
                seed=_seed(data.get("seed")),
                view=ViewConfig.from_dict(data.get("view", {})),
            )
        except ConfigError:
            raise
        except (TypeError, ValueError) as e:
            raise ConfigError(f"invalid scenario: {e}") from e
        config.check_parameters()
        return config

    def check_parameters(self):
        if not (math.isfinite(self.dt) and self.dt > 0):
            raise ConfigError(f"dt must be a positive number, got {self.dt}")
        if not (math.isfinite(self.epsilon) and self.epsilon > 0):
            raise ConfigError(f"epsilon must be a positive number, got {self.epsilon}")
        if self.epsilon * self.epsilon == 0:
            raise ConfigError(f"epsilon {self.epsilon} is too small, its square underflows to zero")
        if not math.isfinite(self.G):
            raise ConfigError(f"G must be finite, got {self.G}")
        if self.steps < 0:
            raise ConfigError("steps must not be negative")
        if self.report_every < 1:
            raise ConfigError("report_every must be at least 1")
        if self.seed is not None and self.seed < 0:
            raise ConfigError(f"seed must not be negative, got {self.seed}")
        if self.random and self.n < 1:
            raise ConfigError("a random scenario needs n >= 1")
        if not self.random and not self.bodies:
            raise ConfigError(f"scenario {self.name!r} has no bodies")

    def initial_state(self, validate=True):
        """Build the list of bodies the simulation starts from."""
        if self.random:
            bodies = self._random_bodies()
        else:
            bodies = self._listed_bodies()
        if validate:
            validate_bodies(bodies)
        return bodies

    def _random_bodies(self):
        rng = np.random.default_rng(self.seed)
        positions = rng.uniform(*self.position_range, (self.n, 2))
        velocities = rng.uniform(*self.velocity_range, (self.n, 2))
        masses = rng.uniform(*self.mass_range, self.n)
        return [
            Body(i, Vector(*map(float, positions[i])), Vector(*map(float, velocities[i])), float(masses[i]))
            for i in range(self.n)
        ]

    def _listed_bodies(self):
        bodies = []
        by_id = {}
        for index, table in enumerate(self.bodies):
            if not isinstance(table, dict):
                raise ConfigError(f"body #{index} must be a table")
            try:
                body_id = _integer(table.get("id", index), "id")
                mass = float(table["mass"])
                position = _vector(table["position"])
            except KeyError as e:
                raise ConfigError(f"body #{index} is missing {e.args[0]!r}") from e
            except (TypeError, ValueError) as e:
                raise ConfigError(f"body #{index}: {e}") from e

            if "orbit" in table:
                parent_id = table["orbit"]
                if isinstance(parent_id, bool) or not isinstance(parent_id, int) or parent_id not in by_id:
                    raise ConfigError(
                        f"body {body_id} orbits {parent_id!r}, which is not listed before it")
                direction = table.get("direction", "ccw")
                velocity = circular_orbit_velocity(by_id[parent_id], position, self.G, direction)
                logger.info("Body %d: circular orbit velocity around body %d is %s",
                            body_id, parent_id, velocity)
            else:
                try:
                    velocity = _vector(table.get("velocity", (0.0, 0.0)))
                except (TypeError, ValueError) as e:
                    raise ConfigError(f"body #{index}: {e}") from e

            body = Body(body_id, position, velocity, mass)
            bodies.append(body)
            by_id.setdefault(body_id, body)
        return bodies


def circular_orbit_velocity(parent, position, G=G, direction="ccw"):
    """Velocity of a circular orbit around `parent` through `position`.

    Speed is sqrt(G * M / r) relative to the parent, perpendicular to the
    radius, counter-clockwise unless `direction` is "cw".
    """
    if direction not in ("ccw", "cw"):
        raise ConfigError(f"orbit direction must be 'ccw' or 'cw', got {direction!r}")
    r_vec = position - parent.position
    r = r_vec.length()
    if r == 0:
        raise ConfigError(f"cannot orbit body {parent.id} from its own position")
    speed_squared = G * parent.mass / r
    if not speed_squared >= 0:
        raise ConfigError(
            f"no circular orbit around body {parent.id}: G * mass / r = {speed_squared}")
    speed = math.sqrt(speed_squared)
    tangent = Vector(-r_vec.y / r, r_vec.x / r)
    if direction == "cw":
        tangent = -tangent
    return parent.velocity + tangent * speed


def validate_bodies(bodies):
    """Reject states the integrator would silently turn into nan/inf."""
    if not bodies:
        raise ConfigError("at least one body is required")
    seen = set()
    for body in bodies:
        if body.id in seen:
            raise ConfigError(f"duplicate body id {body.id}")
        seen.add(body.id)
        if not (math.isfinite(body.mass) and body.mass > 0):
            raise ConfigError(f"body {body.id} has non-positive mass {body.mass}")
        if not (body.position.is_finite() and body.velocity.is_finite()):
            raise ConfigError(f"body {body.id} has a non-finite position or velocity")


def resolve_path(name):
    path = Path(name)
    if path.suffix != ".toml" and path.parent == Path("."):
        path = CONFIG_DIR / path.with_suffix(".toml")
    return path


def load_config(name):
    path = resolve_path(name)
    try:
        with path.open("rb") as f:
            data = toml.load(f)
    except FileNotFoundError as e:
        raise ConfigError(f"no such scenario: {name}") from e
    except toml.TOMLDecodeError as e:
        raise ConfigError(f"{path}: {e}") from e
    config = SimulationConfig.from_dict(data, name=path.stem)
    logger.info("Loaded scenario %r from %s", config.name, path)
    return config


def available_scenarios():
    return sorted(p.stem for p in CONFIG_DIR.glob("*.toml"))


def _vector(value):
    x, y = value
    return Vector(float(x), float(y))


def _range(data, key, default):
    low, high = data.get(key, default)
    return float(low), float(high)


def _integer(value, key):
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{key} must be an integer, got {value!r}")
    return value


def _boolean(value, key):
    if not isinstance(value, bool):
        raise TypeError(f"{key} must be true or false, got {value!r}")
    return value


def _seed(value):
    return None if value is None else _integer(value, "seed")
