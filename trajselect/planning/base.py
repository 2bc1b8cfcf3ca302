"""
Planner interfaces.

A planner is queried once per control cycle through compute_action() and
answers with a dictionary of reference arrays. ReactivePlanner narrows the
inputs to what an obstacle-sampling planner sees each cycle: obstacle points
and a local goal, both expressed in the planning frame.
"""

from abc import ABC, abstractmethod
from typing import Dict, Any, Optional
import numpy as np


class BasePlanner(ABC):
    """
    Interface shared by all planners.

    Subclasses call mark_cycle() at the end of every successful
    compute_action() so cycle_count tracks how many commands were issued.
    """

    def __init__(self):
        self._cycles = 0

    @abstractmethod
    def compute_action(self, **kwargs) -> Dict[str, Any]:
        """
        Produce the command for the current cycle.

        Returns:
            Dictionary of reference arrays. Acceleration-commanded planners
            return at least:
            {
                'acceleration': np.array([ax, ay, az]),
                'velocity': np.array([vx, vy, vz]),
                'position': np.array([x, y, z]),
                'info': {...}
            }
        """

    def mark_cycle(self):
        self._cycles += 1

    def reset(self):
        """Forget per-run state; the cycle count restarts at zero."""
        self._cycles = 0

    @property
    def cycle_count(self) -> int:
        return self._cycles


class ReactivePlanner(BasePlanner):
    """
    Planner driven by sampled obstacle points and a local goal.
    """

    @abstractmethod
    def compute_action(self, obstacles: Optional[np.ndarray] = None,
                       goal: Optional[np.ndarray] = None,
                       **kwargs) -> Dict[str, Any]:
        """
        Args:
            obstacles: (m, 3) obstacle points in the planning frame, or None
            goal: Local goal [x, y, z] in the planning frame; None keeps the
                last goal the planner was given

        Returns:
            Dictionary with at least an 'acceleration' entry
        """
