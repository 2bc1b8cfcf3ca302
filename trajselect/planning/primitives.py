"""
Motion primitive library.

A fixed, ordered set of short-horizon constant-acceleration trajectories
starting from the robot's current velocity. Each primitive applies one
acceleration preset from a cone around the nominal forward axis (+x in the
body-aligned frame):

    p(t) = v0 * t + 0.5 * a * t^2,    t in [0, horizon]

Index 0 accelerates straight ahead; the remaining presets sit on rings of 8
directions tilted further away from the forward axis, the outermost ring at
cone_half_angle.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Sequence, Tuple, Union

import numpy as np
from scipy.spatial.transform import Rotation

from ..errors import InvalidConfiguration, OutOfRangeQuery
from ..config import (
    DEFAULT_NUM_TRAJECTORIES,
    DEFAULT_HORIZON,
    DEFAULT_MAX_ACCELERATION,
    DEFAULT_MAX_SPEED,
    DEFAULT_CONE_HALF_ANGLE,
)

logger = logging.getLogger(__name__)

FORWARD_AXIS = np.array([1.0, 0.0, 0.0])
LATERAL_AXIS = np.array([0.0, 1.0, 0.0])
DIRECTIONS_PER_RING = 8

ArrayLike = Union[Sequence[float], np.ndarray]


def _frozen(array: np.ndarray) -> np.ndarray:
    array = np.array(array, dtype=float)
    array.setflags(write=False)
    return array


def _as_vector3(value: ArrayLike, name: str) -> np.ndarray:
    vec = np.asarray(value, dtype=float)
    if vec.shape != (3,):
        raise ValueError(f"{name} must have shape (3,), got {vec.shape}")
    if not np.all(np.isfinite(vec)):
        raise ValueError(f"{name} must be finite, got {vec}")
    return vec


def acceleration_presets(
    num_trajectories: int,
    max_acceleration: float,
    cone_half_angle: float = DEFAULT_CONE_HALF_ANGLE
) -> np.ndarray:
    """
    Deterministic acceleration presets spanning an avoidance cone.

    Args:
        num_trajectories: Number of presets N (>= 1)
        max_acceleration: Magnitude of every preset (m/s^2)
        cone_half_angle: Tilt of the outermost ring from the forward axis (rad)

    Returns:
        (N, 3) array of accelerations; row 0 points along the forward axis
    """
    if num_trajectories < 1:
        raise InvalidConfiguration(f"num_trajectories must be >= 1, got {num_trajectories}")

    presets = np.zeros((num_trajectories, 3))
    presets[0] = FORWARD_AXIS

    remaining = num_trajectories - 1
    num_rings = math.ceil(remaining / DIRECTIONS_PER_RING)
    row = 1
    for ring in range(num_rings):
        count = min(DIRECTIONS_PER_RING, remaining - ring * DIRECTIONS_PER_RING)
        tilt = cone_half_angle * (ring + 1) / num_rings
        # Odd rings are rotated half a step so neighbouring rings interleave
        offset = np.pi / count if ring % 2 else 0.0
        for k in range(count):
            roll = offset + 2.0 * np.pi * k / count
            lateral = Rotation.from_rotvec(roll * FORWARD_AXIS).apply(LATERAL_AXIS)
            presets[row] = np.cos(tilt) * FORWARD_AXIS + np.sin(tilt) * lateral
            row += 1

    return presets * max_acceleration


def limit_acceleration(
    initial_velocity: np.ndarray,
    acceleration: np.ndarray,
    horizon: float,
    max_speed: float
) -> np.ndarray:
    """
    Cap the speed at the end of the horizon by limiting the end velocity.

    If |v0 + a*T| exceeds max_speed, the end velocity is pulled back onto the
    max_speed sphere along its own direction and the acceleration is
    recomputed as (v_end - v0) / T. The direction change is kept and only
    the end speed is capped.

    Above max_speed the same rule decelerates the robot; the result is then
    clipped to the preset's magnitude so it never exceeds max_acceleration.
    """
    v0 = initial_velocity
    end_velocity = v0 + acceleration * horizon
    end_speed = float(np.linalg.norm(end_velocity))
    if end_speed <= max_speed:
        return acceleration

    limited = (end_velocity * (max_speed / end_speed) - v0) / horizon
    bound = float(np.linalg.norm(acceleration))
    magnitude = float(np.linalg.norm(limited))
    if magnitude > bound:
        limited = limited * (bound / magnitude)
    return limited


@dataclass(frozen=True, eq=False)
class Trajectory:
    """
    One constant-acceleration primitive over [0, horizon].

    Immutable: a new initial velocity or horizon produces new Trajectory
    objects rather than mutating existing ones.
    """
    index: int
    initial_velocity: np.ndarray
    acceleration: np.ndarray
    horizon: float
    anchor: np.ndarray = field(default_factory=lambda: _frozen(np.zeros(3)))

    def position(self, t: float) -> np.ndarray:
        """Position at time t (s), t in [0, horizon]."""
        t = self.check_time(t)
        return self.anchor + self.initial_velocity * t + 0.5 * self.acceleration * t * t

    def velocity(self, t: float) -> np.ndarray:
        """Velocity at time t (s), t in [0, horizon]."""
        t = self.check_time(t)
        return self.initial_velocity + self.acceleration * t

    def positions(self, times: ArrayLike) -> np.ndarray:
        """Positions at each of the given times, shape (len(times), 3)."""
        t = self.check_times(times)[:, None]
        return self.anchor + self.initial_velocity * t + 0.5 * self.acceleration * t * t

    def final_position(self) -> np.ndarray:
        return self.position(self.horizon)

    def check_time(self, t: float) -> float:
        t = float(t)
        if not 0.0 <= t <= self.horizon:
            raise OutOfRangeQuery(
                f"Time {t} outside trajectory domain [0, {self.horizon}]"
            )
        return t

    def check_times(self, times: ArrayLike) -> np.ndarray:
        t = np.asarray(times, dtype=float).reshape(-1)
        if t.size and not (np.all(t >= 0.0) and np.all(t <= self.horizon)):
            raise OutOfRangeQuery(
                f"Times outside trajectory domain [0, {self.horizon}]: "
                f"{t[(t < 0.0) | ~(t <= self.horizon)]}"
            )
        return t


class TrajectoryLibrary:
    """
    Fixed-size ordered library of motion primitives.

    Indices 0..N-1 are stable for the lifetime of the library. Calling
    initialize() or set_initial_velocity() regenerates every trajectory and
    swaps the whole set in with a single assignment, so a reader never sees a
    mix of old and new primitives.

    Args:
        num_trajectories: Number of primitives N (default: 25)
        horizon: Look-ahead duration (s, default: 0.5)
        max_acceleration: Preset acceleration magnitude (m/s^2)
        max_speed: Speed bound at the end of the horizon (m/s)
        cone_half_angle: Tilt of the outermost preset ring (rad)
        initial_velocity: Starting velocity [vx, vy, vz] (m/s, default: zeros)

    Example:
        ```python
        library = TrajectoryLibrary(num_trajectories=25, horizon=0.5)
        library.set_initial_velocity(np.array([2.0, 0.0, 0.0]))
        p = library.position(3, 0.25)
        ```
    """

    def __init__(
        self,
        num_trajectories: int = DEFAULT_NUM_TRAJECTORIES,
        horizon: float = DEFAULT_HORIZON,
        max_acceleration: float = DEFAULT_MAX_ACCELERATION,
        max_speed: float = DEFAULT_MAX_SPEED,
        cone_half_angle: float = DEFAULT_CONE_HALF_ANGLE,
        initial_velocity: ArrayLike = None,
    ):
        if int(num_trajectories) < 1:
            raise InvalidConfiguration(f"num_trajectories must be >= 1, got {num_trajectories}")
        if not (math.isfinite(max_acceleration) and max_acceleration >= 0) or not max_speed > 0:
            raise InvalidConfiguration(
                f"max_acceleration must be finite and >= 0 and max_speed > 0, "
                f"got {max_acceleration}, {max_speed}"
            )
        if not 0.0 <= cone_half_angle <= np.pi:
            raise InvalidConfiguration(f"cone_half_angle must be in [0, pi], got {cone_half_angle}")

        self._num_trajectories = int(num_trajectories)
        self.max_acceleration = float(max_acceleration)
        self.max_speed = float(max_speed)
        self._presets = _frozen(acceleration_presets(
            self._num_trajectories, self.max_acceleration, cone_half_angle
        ))

        if initial_velocity is None:
            initial_velocity = np.zeros(3)
        self._initial_velocity = _frozen(_as_vector3(initial_velocity, 'initial_velocity'))
        self._trajectories: Tuple[Trajectory, ...] = ()
        self.initialize(horizon)

    def initialize(self, horizon: float):
        """
        Regenerate all trajectories over [0, horizon].

        Args:
            horizon: Look-ahead duration (s), must be > 0
        """
        horizon = float(horizon)
        if not (math.isfinite(horizon) and horizon > 0):
            raise InvalidConfiguration(f"horizon must be positive, got {horizon}")
        self._regenerate(self._initial_velocity, horizon)
        logger.debug("Initialized %d trajectories over %.3fs", self._num_trajectories, horizon)

    def set_initial_velocity(self, velocity: ArrayLike):
        """Reparametrize every trajectory to start from the given velocity."""
        velocity = _frozen(_as_vector3(velocity, 'velocity'))
        self._regenerate(velocity, self.horizon)
        self._initial_velocity = velocity

    def _regenerate(self, velocity: np.ndarray, horizon: float):
        trajectories = tuple(
            Trajectory(
                index=i,
                initial_velocity=velocity,
                acceleration=_frozen(limit_acceleration(velocity, preset, horizon, self.max_speed)),
                horizon=horizon,
            )
            for i, preset in enumerate(self._presets)
        )
        self._trajectories = trajectories

    def num_trajectories(self) -> int:
        """Number of primitives N, fixed at construction."""
        return self._num_trajectories

    def __len__(self) -> int:
        return self._num_trajectories

    @property
    def horizon(self) -> float:
        return self._trajectories[0].horizon

    @property
    def initial_velocity(self) -> np.ndarray:
        return self._initial_velocity

    @property
    def presets(self) -> np.ndarray:
        """Unlimited acceleration presets, shape (N, 3)."""
        return self._presets

    def trajectories(self) -> Tuple[Trajectory, ...]:
        """Consistent snapshot of the current set."""
        return self._trajectories

    def trajectory(self, index: int) -> Trajectory:
        return self._get(self._trajectories, index)

    def position(self, index: int, t: float) -> np.ndarray:
        """Position of trajectory `index` at time t."""
        return self.trajectory(index).position(t)

    def velocity(self, index: int, t: float) -> np.ndarray:
        """Velocity of trajectory `index` at time t."""
        return self.trajectory(index).velocity(t)

    def acceleration(self, index: int, t: float) -> np.ndarray:
        """Acceleration of trajectory `index` at time t (constant over the horizon)."""
        trajectory = self.trajectory(index)
        trajectory.check_time(t)
        return trajectory.acceleration.copy()

    def positions_at_times(self, times: ArrayLike) -> np.ndarray:
        """
        Positions of every trajectory at every time.

        Args:
            times: (K,) query times within [0, horizon]

        Returns:
            (N, K, 3) array
        """
        snapshot = self._trajectories
        return np.stack([trajectory.positions(times) for trajectory in snapshot])

    def _get(self, snapshot: Tuple[Trajectory, ...], index: int) -> Trajectory:
        if isinstance(index, (bool, np.bool_)) or not isinstance(index, (int, np.integer)):
            raise OutOfRangeQuery(f"Trajectory index must be an integer, got {index!r}")
        if not 0 <= index < len(snapshot):
            raise OutOfRangeQuery(
                f"Trajectory index {index} outside [0, {len(snapshot)})"
            )
        return snapshot[int(index)]
