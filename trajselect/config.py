"""
Configuration for the trajectory selection core.

Every component takes its parameters as constructor keyword arguments with
sensible defaults. SelectorConfig gathers them in one place so a whole setup
can be stored in (and loaded from) a YAML file.

Example:
    ```python
    config = SelectorConfig.from_yaml('selector.yaml')
    selector = TrajectorySelector.from_config(config)
    ```
"""

import logging
from dataclasses import dataclass, fields, asdict
from pathlib import Path
from typing import Any, Dict, Tuple, Union

import numpy as np
import yaml

from .errors import InvalidConfiguration

logger = logging.getLogger(__name__)


# Library
DEFAULT_NUM_TRAJECTORIES = 25
DEFAULT_HORIZON = 0.5               # seconds
DEFAULT_MAX_ACCELERATION = 6.0      # m/s^2, lateral/vertical avoidance
DEFAULT_MAX_SPEED = 10.0            # m/s
DEFAULT_CONE_HALF_ANGLE = float(np.deg2rad(90))  # widest ring is purely lateral/vertical

# Scoring
DEFAULT_NUM_TIME_SAMPLES = 10
DEFAULT_MAX_OBSTACLES = 100
DEFAULT_COLLISION_PENALTY = 10.0    # lambda in score = progress - lambda * risk
AGGREGATION_POLICIES = ('risk_or', 'max')
COMBINATION_POLICIES = ('subtractive', 'multiplicative')

# Uncertainty (per axis, meters)
DEFAULT_SIGMA_FLOOR = (0.5, 0.5, 0.35)
DEFAULT_SIGMA_GROWTH_RATE = (0.5, 0.5, 0.5)
DEFAULT_SIGMA_GROWTH_ACCEL = (0.0, 0.0, 0.0)

# Local goal
DEFAULT_CARROT_DISTANCE = 5.0       # meters along the waypoint path
DEFAULT_MAX_WAYPOINTS = 6


@dataclass
class SelectorConfig:
    """All tunable parameters of the selector, library and uncertainty model."""
    num_trajectories: int = DEFAULT_NUM_TRAJECTORIES
    horizon: float = DEFAULT_HORIZON
    max_acceleration: float = DEFAULT_MAX_ACCELERATION
    max_speed: float = DEFAULT_MAX_SPEED
    cone_half_angle: float = DEFAULT_CONE_HALF_ANGLE

    num_time_samples: int = DEFAULT_NUM_TIME_SAMPLES
    max_obstacles: int = DEFAULT_MAX_OBSTACLES
    collision_penalty: float = DEFAULT_COLLISION_PENALTY
    aggregation: str = 'risk_or'
    combination: str = 'subtractive'

    sigma_floor: Tuple[float, float, float] = DEFAULT_SIGMA_FLOOR
    sigma_growth_rate: Tuple[float, float, float] = DEFAULT_SIGMA_GROWTH_RATE
    sigma_growth_accel: Tuple[float, float, float] = DEFAULT_SIGMA_GROWTH_ACCEL

    carrot_distance: float = DEFAULT_CARROT_DISTANCE
    max_waypoints: int = DEFAULT_MAX_WAYPOINTS

    def __post_init__(self):
        for name in ('sigma_floor', 'sigma_growth_rate', 'sigma_growth_accel'):
            setattr(self, name, tuple(float(v) for v in np.broadcast_to(getattr(self, name), 3)))
        self.validate()

    def validate(self):
        """Raise InvalidConfiguration if any parameter is unusable."""
        if int(self.num_trajectories) < 1:
            raise InvalidConfiguration(f"num_trajectories must be >= 1, got {self.num_trajectories}")
        if not self.horizon > 0:
            raise InvalidConfiguration(f"horizon must be positive, got {self.horizon}")
        if int(self.num_time_samples) < 1:
            raise InvalidConfiguration(f"num_time_samples must be >= 1, got {self.num_time_samples}")
        if int(self.max_obstacles) < 0:
            raise InvalidConfiguration(f"max_obstacles must be >= 0, got {self.max_obstacles}")
        if not (np.isfinite(self.max_acceleration) and self.max_acceleration >= 0) or not self.max_speed > 0:
            raise InvalidConfiguration(
                f"max_acceleration must be finite and >= 0 and max_speed > 0, "
                f"got {self.max_acceleration}, {self.max_speed}"
            )
        if not 0.0 <= self.cone_half_angle <= np.pi:
            raise InvalidConfiguration(f"cone_half_angle must lie in [0, pi], got {self.cone_half_angle}")
        if self.collision_penalty < 0:
            raise InvalidConfiguration(f"collision_penalty must be >= 0, got {self.collision_penalty}")
        if self.aggregation not in AGGREGATION_POLICIES:
            raise InvalidConfiguration(
                f"aggregation must be one of {AGGREGATION_POLICIES}, got '{self.aggregation}'"
            )
        if self.combination not in COMBINATION_POLICIES:
            raise InvalidConfiguration(
                f"combination must be one of {COMBINATION_POLICIES}, got '{self.combination}'"
            )
        if not self.carrot_distance > 0 or int(self.max_waypoints) < 1:
            raise InvalidConfiguration(
                f"carrot_distance must be positive and max_waypoints >= 1, "
                f"got {self.carrot_distance}, {self.max_waypoints}"
            )

    def to_dict(self) -> Dict[str, Any]:
        """Plain dict (lists instead of tuples) suitable for YAML."""
        data = asdict(self)
        for key, value in data.items():
            if isinstance(value, tuple):
                data[key] = list(value)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SelectorConfig':
        """
        Build a config from a mapping, rejecting unknown keys.

        Args:
            data: Mapping of field name to value; missing keys take defaults

        Returns:
            Validated SelectorConfig
        """
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise InvalidConfiguration(f"Unknown configuration keys: {sorted(unknown)}")
        return cls(**data)

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> 'SelectorConfig':
        """Load a config from a YAML file. An empty file gives the defaults."""
        with open(path, 'r') as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise InvalidConfiguration(f"Expected a mapping at the top of {path}")
        logger.debug("Loaded selector config from %s", path)
        return cls.from_dict(data)

    def to_yaml(self, path: Union[str, Path]):
        """Write the config to a YAML file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w') as f:
            yaml.safe_dump(self.to_dict(), f, sort_keys=False)
