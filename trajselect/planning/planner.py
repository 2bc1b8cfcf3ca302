"""
Reactive trajectory-selection planner.

Wraps TrajectorySelector behind the planner interface. Velocity updates and
selection cycles may come from different threads (estimator callback vs.
sensor callback); a single lock guarantees that one selection cycle sees one
fixed initial velocity for its whole duration.
"""

import logging
import threading
from typing import Any, Dict, List, Optional

import numpy as np

from .base import ReactivePlanner
from .goal import compute_carrot
from .selector import TrajectorySelector
from ..config import SelectorConfig

logger = logging.getLogger(__name__)


class TrajectorySelectionPlanner(ReactivePlanner):
    """
    Reactive obstacle avoidance by motion-primitive selection.

    Each call to compute_action() picks the best primitive and returns its
    constant acceleration as the command, plus reference velocity/position at
    the first collision-check sample time.

    Args:
        selector: Preconfigured selector (default: built from config)
        config: Configuration used when no selector is given

    Example:
        ```python
        planner = TrajectorySelectionPlanner()
        planner.set_velocity(np.array([2.0, 0.0, 0.0]))
        planner.set_waypoints(waypoints)

        action = planner.compute_action(obstacles=points)
        dynamics.step({'acceleration': action['acceleration']}, dt=0.02)
        ```
    """

    def __init__(
        self,
        selector: Optional[TrajectorySelector] = None,
        config: Optional[SelectorConfig] = None,
    ):
        super().__init__()
        self.config = config if config is not None else SelectorConfig()
        self.selector = selector if selector is not None else TrajectorySelector.from_config(self.config)
        self.goal: Optional[np.ndarray] = None
        self._lock = threading.Lock()

    def set_velocity(self, velocity: np.ndarray):
        """Push a new velocity estimate (thread-safe)."""
        with self._lock:
            self.selector.set_initial_velocity(velocity)

    def set_horizon(self, horizon: float):
        """Regenerate the library over a new horizon (thread-safe)."""
        with self._lock:
            self.selector.initialize_library(horizon)

    def set_goal(self, goal: np.ndarray):
        """Set the local goal directly, in the planning frame."""
        goal = np.asarray(goal, dtype=float)
        if goal.shape != (3,):
            raise ValueError(f"goal must have shape (3,), got {goal.shape}")
        with self._lock:
            self.goal = goal.copy()

    def set_waypoints(self, waypoints: np.ndarray):
        """Set the local goal to the carrot point along a waypoint path."""
        carrot = compute_carrot(
            waypoints,
            carrot_distance=self.config.carrot_distance,
            max_waypoints=self.config.max_waypoints,
        )
        with self._lock:
            self.goal = carrot
        logger.debug("Local goal set to carrot %s", carrot)

    def compute_action(self, obstacles: Optional[np.ndarray] = None,
                       goal: Optional[np.ndarray] = None,
                       velocity: Optional[np.ndarray] = None,
                       **kwargs) -> Dict[str, Any]:
        """
        Run one selection cycle.

        Args:
            obstacles: (m, 3) obstacle samples, non-finite rows ignored
            goal: Local goal for this cycle (default: last set goal)
            velocity: Optional velocity estimate applied before selecting

        Returns:
            Dictionary with:
                'index': Selected trajectory index
                'acceleration': Commanded acceleration (m/s^2)
                'velocity': Reference velocity at the first sample time
                'position': Reference position at the first sample time
                'time': Sample time the references refer to (s)
                'info': Score vectors for tuning/diagnostics
        """
        with self._lock:
            if velocity is not None:
                self.selector.set_initial_velocity(velocity)
            if goal is None:
                goal = self.goal
            if goal is None:
                raise ValueError("No goal set: pass goal= or call set_goal()/set_waypoints() first")

            result = self.selector.evaluate(obstacles, goal)
            trajectory = self.selector.library.trajectory(result.index)
            t_ref = self.selector.sampling_times[0]
            action = {
                'index': result.index,
                'acceleration': trajectory.acceleration.copy(),
                'velocity': trajectory.velocity(t_ref),
                'position': trajectory.position(t_ref),
                'time': t_ref,
                'info': {
                    'scores': result.scores,
                    'goal_progress': result.goal_progress,
                    'collision_probabilities': result.collision_probabilities,
                    'num_valid_obstacles': result.num_valid_obstacles,
                },
            }

        self.mark_cycle()
        return action

    def sample_library(self, num_samples: int = 10) -> List[np.ndarray]:
        """
        Sampled positions of every trajectory for display.

        Returns:
            List of N arrays of shape (num_samples, 3), sampled over (0, horizon]
        """
        with self._lock:
            times = np.linspace(0.0, self.selector.library.horizon, num_samples + 1)[1:]
            return [
                self.selector.sample_trajectory_array(i, times)
                for i in range(self.selector.num_trajectories())
            ]

    def reset(self):
        """Restart the cycle count and forget the goal."""
        super().reset()
        with self._lock:
            self.goal = None
