"""
Plotting helpers for the trajectory library and selection results.

All functions draw on a matplotlib Axes (created if not given) and return it,
so they can be composed into larger figures.
"""

from typing import Optional, Sequence

import numpy as np
import matplotlib.pyplot as plt
from matplotlib.patches import Ellipse

from .planning.selector import TrajectorySelector, SelectionResult


def plot_library(
    selector: TrajectorySelector,
    obstacles: Optional[np.ndarray] = None,
    goal: Optional[np.ndarray] = None,
    result: Optional[SelectionResult] = None,
    num_samples: int = 20,
    ax=None
):
    """
    Top-down (x-y) view of every primitive, obstacle samples and the goal.

    The selected trajectory (if `result` is given) is drawn thick in green,
    the others colored by collision probability.
    """
    if ax is None:
        _, ax = plt.subplots(figsize=(8, 6))

    times = np.linspace(0.0, selector.library.horizon, num_samples)
    cmap = plt.get_cmap('RdYlGn_r')

    for i in range(selector.num_trajectories()):
        path = selector.sample_trajectory_array(i, times)
        if result is not None and i == result.index:
            continue
        risk = result.collision_probabilities[i] if result is not None else 0.0
        ax.plot(path[:, 0], path[:, 1], '-', color=cmap(risk), linewidth=1, alpha=0.7)

    if result is not None:
        path = selector.sample_trajectory_array(result.index, times)
        ax.plot(path[:, 0], path[:, 1], 'g-', linewidth=3, label=f'selected ({result.index})')

    if obstacles is not None and len(obstacles):
        points = np.asarray(obstacles, dtype=float)
        points = points[np.all(np.isfinite(points), axis=1)]
        ax.plot(points[:, 0], points[:, 1], 'kx', markersize=5, label='obstacles')

    if goal is not None:
        ax.plot(goal[0], goal[1], 'b*', markersize=14, label='goal')

    ax.plot(0.0, 0.0, 'go', markersize=8)
    ax.set_xlabel('Forward x (m)')
    ax.set_ylabel('Lateral y (m)')
    ax.set_title('Trajectory Library')
    ax.grid(True, alpha=0.3)
    ax.axis('equal')
    ax.legend(loc='best')
    return ax


def plot_uncertainty(
    selector: TrajectorySelector,
    index: int = 0,
    ax=None
):
    """Uncertainty ellipses (1 sigma, x-y) at each collision sample time of one trajectory."""
    if ax is None:
        _, ax = plt.subplots(figsize=(8, 6))

    times = selector.sampling_times
    path = selector.sample_trajectory_array(index, times)
    ax.plot(path[:, 0], path[:, 1], 'b.-', linewidth=1.5)

    for t, p in zip(times, path):
        sigma = selector.sigma_at_time(t)
        ax.add_patch(Ellipse(
            (p[0], p[1]), width=2 * sigma[0], height=2 * sigma[1],
            facecolor='m', alpha=0.15, edgecolor='m'
        ))

    ax.set_xlabel('Forward x (m)')
    ax.set_ylabel('Lateral y (m)')
    ax.set_title(f'Positional uncertainty along trajectory {index}')
    ax.grid(True, alpha=0.3)
    ax.axis('equal')
    return ax


def plot_scores(result: SelectionResult, ax=None):
    """Bar chart of goal progress, collision probability and combined score."""
    if ax is None:
        _, ax = plt.subplots(figsize=(10, 4))

    indices = np.arange(len(result.scores))
    width = 0.28
    ax.bar(indices - width, result.goal_progress, width, label='goal progress')
    ax.bar(indices, result.collision_probabilities, width, label='collision probability')
    ax.bar(indices + width, result.scores, width, label='score')
    ax.axvline(result.index, color='g', linestyle='--', alpha=0.6)
    ax.set_xlabel('Trajectory index')
    ax.set_title('Selection scores')
    ax.grid(True, alpha=0.3)
    ax.legend(loc='best')
    return ax


def plot_simulation(history: dict, obstacles: np.ndarray, goal: Sequence[float], ax=None):
    """Top-down view of a closed-loop run from trajselect.simulation.simulate()."""
    if ax is None:
        _, ax = plt.subplots(figsize=(8, 6))

    positions = history['position']
    points = np.asarray(obstacles, dtype=float)
    ax.plot(points[:, 0], points[:, 1], 'k.', markersize=3, label='obstacles')
    ax.plot(positions[:, 0], positions[:, 1], 'r-', linewidth=2, label='flown path')
    ax.plot(goal[0], goal[1], 'b*', markersize=14, label='goal')
    ax.set_xlabel('x (m)')
    ax.set_ylabel('y (m)')
    ax.set_title('Closed-loop avoidance')
    ax.grid(True, alpha=0.3)
    ax.axis('equal')
    ax.legend(loc='best')
    return ax
