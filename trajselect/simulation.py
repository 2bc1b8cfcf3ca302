"""
Closed-loop point-mass simulation.

Drives a TrajectorySelectionPlanner through a static obstacle field. The
planning frame is the world frame translated to the robot's position (no
rotation), so the primitives' forward axis is world +x.
"""

import logging
from typing import Dict, Optional

import numpy as np

from .planning.planner import TrajectorySelectionPlanner

logger = logging.getLogger(__name__)


def nearest_obstacles(obstacles: np.ndarray, position: np.ndarray, max_count: int) -> np.ndarray:
    """
    Obstacle offsets relative to `position`, nearest first, at most max_count.

    Rows with non-finite coordinates sort last.
    """
    relative = np.asarray(obstacles, dtype=float).reshape(-1, 3) - position
    if len(relative) == 0 or max_count == 0:
        return np.empty((0, 3))
    distances = np.linalg.norm(relative, axis=1)
    distances[~np.isfinite(distances)] = np.inf
    order = np.argsort(distances, kind='stable')[:max_count]
    return relative[order]


def simulate(
    planner: TrajectorySelectionPlanner,
    obstacles: np.ndarray,
    goal: np.ndarray,
    initial_position: Optional[np.ndarray] = None,
    initial_velocity: Optional[np.ndarray] = None,
    dt: float = 0.05,
    steps: int = 200,
    goal_tolerance: float = 0.5
) -> Dict[str, np.ndarray]:
    """
    Fly a point mass under the planner's commanded acceleration.

    Args:
        planner: Planner to query every step
        obstacles: (P, 3) static obstacle points in the world frame
        goal: Goal position [x, y, z] in the world frame
        initial_position: Start position (default: origin)
        initial_velocity: Start velocity (default: zeros)
        dt: Integration step (s)
        steps: Maximum number of steps
        goal_tolerance: Stop once within this distance of the goal (m)

    Returns:
        Dict with 'time', 'position', 'velocity', 'acceleration', 'index',
        'clearance' (distance to the nearest obstacle) and 'reached' (bool)
    """
    if not dt > 0 or steps < 1:
        raise ValueError(f"dt must be positive and steps >= 1, got {dt}, {steps}")

    goal = np.asarray(goal, dtype=float)
    obstacles = np.asarray(obstacles, dtype=float).reshape(-1, 3)
    position = np.zeros(3) if initial_position is None else np.array(initial_position, dtype=float)
    velocity = np.zeros(3) if initial_velocity is None else np.array(initial_velocity, dtype=float)
    max_count = planner.selector.max_obstacles

    times, positions, velocities, accelerations, indices, clearances = [], [], [], [], [], []
    reached = False
    t = 0.0

    for _ in range(steps):
        relative = nearest_obstacles(obstacles, position, max_count)
        action = planner.compute_action(obstacles=relative, goal=goal - position, velocity=velocity)
        accel = action['acceleration']

        # Semi-implicit Euler
        velocity = velocity + accel * dt
        position = position + velocity * dt
        t += dt

        finite = np.all(np.isfinite(obstacles), axis=1)
        clearance = (np.min(np.linalg.norm(obstacles[finite] - position, axis=1))
                     if np.any(finite) else np.inf)

        times.append(t)
        positions.append(position.copy())
        velocities.append(velocity.copy())
        accelerations.append(accel)
        indices.append(action['index'])
        clearances.append(clearance)

        if np.linalg.norm(goal - position) <= goal_tolerance:
            reached = True
            break

    logger.info("Simulated %d steps (%.2fs), goal %s, min clearance %.2fm",
                len(times), t, "reached" if reached else "not reached", min(clearances))

    return {
        'time': np.array(times),
        'position': np.array(positions),
        'velocity': np.array(velocities),
        'acceleration': np.array(accelerations),
        'index': np.array(indices, dtype=int),
        'clearance': np.array(clearances),
        'reached': reached,
    }
