"""
Positional uncertainty model.

Maps time into the future to a per-axis standard deviation of the predicted
position. Uncertainty starts at a strictly positive floor and grows with
elapsed time, so the inverse used for obstacle weighting is always finite.
"""

import math
import numpy as np
from typing import Sequence, Union

from ..errors import InvalidConfiguration, OutOfRangeQuery
from ..config import (
    DEFAULT_SIGMA_FLOOR,
    DEFAULT_SIGMA_GROWTH_RATE,
    DEFAULT_SIGMA_GROWTH_ACCEL,
)

Vector3Like = Union[float, Sequence[float], np.ndarray]


def _as_axis_vector(value: Vector3Like, name: str) -> np.ndarray:
    vec = np.array(np.broadcast_to(np.asarray(value, dtype=float), (3,)))
    if not np.all(np.isfinite(vec)):
        raise InvalidConfiguration(f"{name} must be finite, got {vec}")
    vec.setflags(write=False)
    return vec


class UncertaintyModel:
    """
    Per-axis positional uncertainty growing with time.

        sigma(t) = floor + growth_rate * t + growth_accel * t^2    (t > 0)
        sigma(t) = floor                                           (t <= 0)

    With a strictly positive floor and non-negative rates this is strictly
    positive and non-decreasing for all t. Queries beyond the planning horizon
    follow the same law.

    Args:
        floor: Uncertainty at t = 0 (m), scalar or per-axis [sx, sy, sz]
        growth_rate: Linear growth (m/s), scalar or per-axis
        growth_accel: Quadratic growth (m/s^2), scalar or per-axis

    Example:
        ```python
        model = UncertaintyModel(floor=0.3, growth_rate=[0.5, 0.5, 0.2])
        sigma = model.sigma_at_time(0.25)
        weights = model.inverse_sigma_at_time(0.25)
        ```
    """

    def __init__(
        self,
        floor: Vector3Like = DEFAULT_SIGMA_FLOOR,
        growth_rate: Vector3Like = DEFAULT_SIGMA_GROWTH_RATE,
        growth_accel: Vector3Like = DEFAULT_SIGMA_GROWTH_ACCEL,
    ):
        self.floor = _as_axis_vector(floor, 'floor')
        self.growth_rate = _as_axis_vector(growth_rate, 'growth_rate')
        self.growth_accel = _as_axis_vector(growth_accel, 'growth_accel')

        if np.any(self.floor <= 0):
            raise InvalidConfiguration(f"floor must be strictly positive, got {self.floor}")
        if np.any(self.growth_rate < 0) or np.any(self.growth_accel < 0):
            raise InvalidConfiguration(
                f"growth coefficients must be non-negative, "
                f"got {self.growth_rate} and {self.growth_accel}"
            )

    def sigma_at_time(self, t: float) -> np.ndarray:
        """
        Standard deviation of the predicted position at time t.

        Args:
            t: Time into the future (s)

        Returns:
            (3,) array, every component > 0
        """
        t = self._check_time(t)
        if t <= 0.0:
            return self.floor.copy()
        return self.floor + self.growth_rate * t + self.growth_accel * t * t

    def inverse_sigma_at_time(self, t: float) -> np.ndarray:
        """Elementwise reciprocal of sigma_at_time(t)."""
        return 1.0 / self.sigma_at_time(t)

    def sigmas_at_times(self, times: np.ndarray) -> np.ndarray:
        """Vectorized sigma_at_time over an array of times, shape (K, 3)."""
        times = np.asarray(times, dtype=float).reshape(-1)
        if not np.all(np.isfinite(times)):
            raise OutOfRangeQuery("Uncertainty queried at a non-finite time")
        t = np.clip(times, 0.0, None)[:, None]
        return self.floor + self.growth_rate * t + self.growth_accel * t * t

    @staticmethod
    def _check_time(t: float) -> float:
        t = float(t)
        if not math.isfinite(t):
            raise OutOfRangeQuery(f"Uncertainty queried at non-finite time {t}")
        return t

    def __repr__(self):
        return (f"UncertaintyModel(floor={self.floor.tolist()}, "
                f"growth_rate={self.growth_rate.tolist()}, "
                f"growth_accel={self.growth_accel.tolist()})")
