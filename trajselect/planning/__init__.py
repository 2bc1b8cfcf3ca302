"""
Planning module for reactive obstacle avoidance by motion-primitive selection.

All planners implement compute_action(**kwargs) → Dict[str, Any]

Base Classes:
    - BasePlanner: Abstract base for all planners
    - ReactivePlanner: Base for planners driven by sampled obstacle points

Components:
    - TrajectoryLibrary: Fixed set of constant-acceleration primitives
    - UncertaintyModel: Per-axis positional uncertainty over time
    - TrajectorySelector: Goal-progress / collision-risk scoring and selection
    - TrajectorySelectionPlanner: Thread-safe planner wrapper

Helpers:
    - compute_carrot: Local goal from a waypoint path
"""

from .base import BasePlanner, ReactivePlanner

from .primitives import (
    Trajectory,
    TrajectoryLibrary,
    acceleration_presets,
    limit_acceleration
)

from .uncertainty import UncertaintyModel

from .selector import (
    TrajectorySelector,
    TrajectorySamples,
    SelectionResult,
    make_sampling_times,
    collision_likelihoods,
    aggregate_collision_probability,
    combine_scores,
    select_best_index
)

from .goal import compute_carrot, path_length

from .planner import TrajectorySelectionPlanner

__all__ = [
    # Base classes
    'BasePlanner',
    'ReactivePlanner',
    # Primitives
    'Trajectory',
    'TrajectoryLibrary',
    'acceleration_presets',
    'limit_acceleration',
    # Uncertainty
    'UncertaintyModel',
    # Selection
    'TrajectorySelector',
    'TrajectorySamples',
    'SelectionResult',
    'make_sampling_times',
    'collision_likelihoods',
    'aggregate_collision_probability',
    'combine_scores',
    'select_best_index',
    # Local goal
    'compute_carrot',
    'path_length',
    # Planner
    'TrajectorySelectionPlanner'
]
