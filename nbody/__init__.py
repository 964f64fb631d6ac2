from .naive import Body, Vector, step, pairwise_force, total_force, is_finite
from .config import ConfigError, SimulationConfig, ViewConfig, load_config

__all__ = [
    "Body",
    "Vector",
    "step",
    "pairwise_force",
    "total_force",
    "is_finite",
    "ConfigError",
    "SimulationConfig",
    "ViewConfig",
    "load_config",
]
