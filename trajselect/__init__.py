"""
trajselect - Reactive Obstacle Avoidance by Motion-Primitive Selection

Once per control cycle, picks the trajectory from a fixed library of
short-horizon primitives that best trades progress toward a local goal
against the estimated probability of hitting sampled obstacle points.

Usage:
    import trajselect

    # Access submodules
    from trajselect import planning, simulation

    # Or import the main classes directly
    from trajselect import TrajectorySelector, TrajectorySelectionPlanner
"""

__version__ = "0.1.0"

from . import planning
from . import simulation

from .errors import TrajectorySelectionError, InvalidConfiguration, OutOfRangeQuery
from .config import SelectorConfig
from .planning import (
    TrajectoryLibrary,
    UncertaintyModel,
    TrajectorySelector,
    TrajectorySelectionPlanner,
    compute_carrot,
)

__all__ = [
    'planning',
    'simulation',
    'TrajectorySelectionError',
    'InvalidConfiguration',
    'OutOfRangeQuery',
    'SelectorConfig',
    'TrajectoryLibrary',
    'UncertaintyModel',
    'TrajectorySelector',
    'TrajectorySelectionPlanner',
    'compute_carrot',
    '__version__',
]
