"""
Local goal ("carrot") selection.

The selector scores progress toward a single local goal point. This helper
derives that point from a waypoint path by walking a fixed distance along it.
"""

import numpy as np
from typing import List, Sequence, Union

from ..config import DEFAULT_CARROT_DISTANCE, DEFAULT_MAX_WAYPOINTS


def compute_carrot(
    waypoints: Union[Sequence[np.ndarray], np.ndarray],
    carrot_distance: float = DEFAULT_CARROT_DISTANCE,
    max_waypoints: int = DEFAULT_MAX_WAYPOINTS
) -> np.ndarray:
    """
    Point `carrot_distance` meters along a waypoint path.

    Only the first `max_waypoints` waypoints are considered. If the path is
    shorter than `carrot_distance`, the last considered waypoint is returned.

    Args:
        waypoints: Sequence of positions [x, y, z], first one is the start
        carrot_distance: Look-ahead distance along the path (m)
        max_waypoints: Number of waypoints to consider

    Returns:
        carrot: (3,) position
    """
    points = np.asarray(waypoints, dtype=float)
    if points.ndim != 2 or points.shape[1] != 3 or len(points) == 0:
        raise ValueError(f"waypoints must have shape (n, 3) with n >= 1, got {points.shape}")
    if not carrot_distance > 0:
        raise ValueError(f"carrot_distance must be positive, got {carrot_distance}")

    points = points[:max(1, int(max_waypoints))]
    distance_so_far = 0.0
    for p1, p2 in zip(points[:-1], points[1:]):
        segment = np.linalg.norm(p2 - p1)
        if segment == 0.0:
            continue
        if distance_so_far + segment >= carrot_distance:
            remaining = carrot_distance - distance_so_far
            return p1 + (p2 - p1) / segment * remaining
        distance_so_far += segment

    return points[-1].copy()


def path_length(waypoints: Union[List[np.ndarray], np.ndarray]) -> float:
    """Total length of a polyline (m)."""
    points = np.asarray(waypoints, dtype=float)
    if len(points) < 2:
        return 0.0
    return float(np.sum(np.linalg.norm(np.diff(points, axis=0), axis=1)))
