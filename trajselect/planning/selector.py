"""
Trajectory selection.

Scores every primitive in a TrajectoryLibrary for goal progress and for
collision probability against a sparse set of obstacle samples, fuses the two
into one scalar per primitive and returns the best index.

Collision likelihood for one trajectory sample p and one obstacle q at time t:

    exp(-0.5 * sum_axis ((p - q)_axis * inverse_sigma_axis(t))^2)

Likelihoods over all (time step, obstacle) pairs are combined with a risk-OR,
1 - prod(1 - p), so one near miss dominates many harmless samples. A 'max'
rule is available as an alternative. There is no averaging rule.
"""

import logging
from dataclasses import dataclass
from typing import Iterator, Optional, Sequence, Tuple, Union

import numpy as np

from .primitives import Trajectory, TrajectoryLibrary
from .uncertainty import UncertaintyModel
from ..errors import InvalidConfiguration
from ..config import (
    SelectorConfig,
    DEFAULT_NUM_TIME_SAMPLES,
    DEFAULT_MAX_OBSTACLES,
    DEFAULT_COLLISION_PENALTY,
    AGGREGATION_POLICIES,
    COMBINATION_POLICIES,
)

logger = logging.getLogger(__name__)

ArrayLike = Union[Sequence[float], np.ndarray]

# Risk at or above this counts as saturated when reporting degenerate cycles
SATURATED_RISK = 1.0 - 1e-9


def make_sampling_times(horizon: float, num_samples: int) -> np.ndarray:
    """
    Evenly spaced sample times covering (0, horizon].

    Returns:
        (num_samples,) array, horizon/K, 2*horizon/K, ..., horizon
    """
    if not horizon > 0:
        raise InvalidConfiguration(f"horizon must be positive, got {horizon}")
    if num_samples < 1:
        raise InvalidConfiguration(f"num_samples must be >= 1, got {num_samples}")
    return np.linspace(horizon / num_samples, horizon, num_samples)


def collision_likelihoods(
    positions: np.ndarray,
    obstacles: np.ndarray,
    inverse_sigmas: np.ndarray
) -> np.ndarray:
    """
    Gaussian-kernel collision likelihood for every (trajectory, step, obstacle).

    Args:
        positions: (N, K, 3) sampled trajectory positions
        obstacles: (M, 3) finite obstacle points
        inverse_sigmas: (K, 3) inverse uncertainty at each sample time

    Returns:
        (N, K, M) array of values in (0, 1]
    """
    diff = positions[:, :, None, :] - obstacles[None, None, :, :]
    weighted = diff * inverse_sigmas[None, :, None, :]
    return np.exp(-0.5 * np.sum(weighted * weighted, axis=-1))


def aggregate_collision_probability(
    likelihoods: np.ndarray,
    policy: str = 'risk_or'
) -> np.ndarray:
    """
    Collapse per-sample likelihoods into one collision probability per trajectory.

    Args:
        likelihoods: (N, ...) likelihoods; all trailing axes are aggregated
        policy: 'risk_or' for 1 - prod(1 - p), or 'max'

    Returns:
        (N,) array in [0, 1]; zeros when there is nothing to aggregate
    """
    flat = likelihoods.reshape(likelihoods.shape[0], -1)
    if flat.shape[1] == 0:
        return np.zeros(flat.shape[0])

    if policy == 'risk_or':
        # log-space product; log1p(-1) = -inf gives exactly 1
        with np.errstate(divide='ignore'):
            return -np.expm1(np.sum(np.log1p(-flat), axis=1))
    if policy == 'max':
        return flat.max(axis=1)
    raise InvalidConfiguration(f"Unknown aggregation policy '{policy}'")


def combine_scores(
    goal_progress: np.ndarray,
    collision_probabilities: np.ndarray,
    collision_penalty: float = DEFAULT_COLLISION_PENALTY,
    policy: str = 'subtractive'
) -> np.ndarray:
    """
    Fuse goal progress and collision probability into one score per trajectory.

    'subtractive':    progress - penalty * risk
    'multiplicative': progress - |progress| * risk  (penalty unused)
    """
    goal_progress = np.asarray(goal_progress, dtype=float)
    collision_probabilities = np.asarray(collision_probabilities, dtype=float)
    if policy == 'subtractive':
        return goal_progress - collision_penalty * collision_probabilities
    if policy == 'multiplicative':
        return goal_progress - np.abs(goal_progress) * collision_probabilities
    raise InvalidConfiguration(f"Unknown combination policy '{policy}'")


def select_best_index(scores: np.ndarray) -> int:
    """Index of the highest score; ties go to the lowest index."""
    scores = np.asarray(scores, dtype=float)
    if scores.size == 0:
        raise ValueError("Cannot select from an empty score vector")
    return int(np.argmax(scores))


@dataclass
class SelectionResult:
    """Outcome of one selection cycle."""
    index: int
    scores: np.ndarray
    goal_progress: np.ndarray
    collision_probabilities: np.ndarray
    num_valid_obstacles: int


class TrajectorySamples:
    """
    Lazy, restartable sequence of positions along one trajectory.

    Holds the trajectory it was created from, so later library updates do not
    change what it yields.
    """

    def __init__(self, trajectory: Trajectory, times: np.ndarray):
        self.trajectory = trajectory
        self.times = times

    def __iter__(self) -> Iterator[np.ndarray]:
        for t in self.times:
            yield self.trajectory.position(t)

    def __len__(self) -> int:
        return len(self.times)

    def to_array(self) -> np.ndarray:
        return self.trajectory.positions(self.times)


class TrajectorySelector:
    """
    Picks the best motion primitive each control cycle.

    Stateless across cycles apart from the library and uncertainty model it
    owns: every call is a pure function of its inputs and the current
    initial velocity / horizon.

    Args:
        library: Trajectory library (default: TrajectoryLibrary())
        uncertainty: Uncertainty model (default: UncertaintyModel())
        num_time_samples: Sample times per trajectory K (default: 10)
        max_obstacles: Largest accepted obstacle set M (default: 100)
        collision_penalty: Weight lambda on collision probability (default: 10)
        aggregation: 'risk_or' or 'max'
        combination: 'subtractive' or 'multiplicative'

    Example:
        ```python
        selector = TrajectorySelector()
        selector.set_initial_velocity(np.array([3.0, 0.0, 0.0]))
        best = selector.compute_best_trajectory_index(obstacles, goal)
        path = selector.sample_for_drawing(best, np.linspace(0, 0.5, 20))
        ```
    """

    def __init__(
        self,
        library: Optional[TrajectoryLibrary] = None,
        uncertainty: Optional[UncertaintyModel] = None,
        num_time_samples: int = DEFAULT_NUM_TIME_SAMPLES,
        max_obstacles: int = DEFAULT_MAX_OBSTACLES,
        collision_penalty: float = DEFAULT_COLLISION_PENALTY,
        aggregation: str = 'risk_or',
        combination: str = 'subtractive',
    ):
        if aggregation not in AGGREGATION_POLICIES:
            raise InvalidConfiguration(
                f"aggregation must be one of {AGGREGATION_POLICIES}, got '{aggregation}'"
            )
        if combination not in COMBINATION_POLICIES:
            raise InvalidConfiguration(
                f"combination must be one of {COMBINATION_POLICIES}, got '{combination}'"
            )
        if int(num_time_samples) < 1:
            raise InvalidConfiguration(f"num_time_samples must be >= 1, got {num_time_samples}")
        if int(max_obstacles) < 0:
            raise InvalidConfiguration(f"max_obstacles must be >= 0, got {max_obstacles}")
        if collision_penalty < 0:
            raise InvalidConfiguration(f"collision_penalty must be >= 0, got {collision_penalty}")

        self.library = library if library is not None else TrajectoryLibrary()
        self.uncertainty = uncertainty if uncertainty is not None else UncertaintyModel()
        self.num_time_samples = int(num_time_samples)
        self.max_obstacles = int(max_obstacles)
        self.collision_penalty = float(collision_penalty)
        self.aggregation = aggregation
        self.combination = combination

    @classmethod
    def from_config(cls, config: SelectorConfig) -> 'TrajectorySelector':
        """Build a selector, library and uncertainty model from one config."""
        library = TrajectoryLibrary(
            num_trajectories=config.num_trajectories,
            horizon=config.horizon,
            max_acceleration=config.max_acceleration,
            max_speed=config.max_speed,
            cone_half_angle=config.cone_half_angle,
        )
        uncertainty = UncertaintyModel(
            floor=config.sigma_floor,
            growth_rate=config.sigma_growth_rate,
            growth_accel=config.sigma_growth_accel,
        )
        return cls(
            library=library,
            uncertainty=uncertainty,
            num_time_samples=config.num_time_samples,
            max_obstacles=config.max_obstacles,
            collision_penalty=config.collision_penalty,
            aggregation=config.aggregation,
            combination=config.combination,
        )

    # Configuration

    def initialize_library(self, horizon: float):
        """Regenerate the library over [0, horizon]."""
        self.library.initialize(horizon)

    def set_initial_velocity(self, velocity: ArrayLike):
        """Start every primitive from the given velocity."""
        self.library.set_initial_velocity(velocity)

    def num_trajectories(self) -> int:
        return self.library.num_trajectories()

    @property
    def sampling_times(self) -> np.ndarray:
        """Sample times used for collision checking, (K,)."""
        return make_sampling_times(self.library.horizon, self.num_time_samples)

    def sigma_at_time(self, t: float) -> np.ndarray:
        return self.uncertainty.sigma_at_time(t)

    def inverse_sigma_at_time(self, t: float) -> np.ndarray:
        return self.uncertainty.inverse_sigma_at_time(t)

    # Selection

    def compute_best_trajectory_index(self, obstacles: Optional[ArrayLike], goal: ArrayLike) -> int:
        """
        Index of the primitive with the best progress/risk trade-off.

        Args:
            obstacles: (m, 3) obstacle points, m <= max_obstacles; rows with
                non-finite entries are ignored. None or empty means no obstacles.
            goal: Local goal [x, y, z] in the trajectory frame

        Returns:
            Selected index in [0, N)
        """
        return self.evaluate(obstacles, goal).index

    def compute_desired_acceleration(self, obstacles: Optional[ArrayLike], goal: ArrayLike) -> np.ndarray:
        """Constant acceleration of the best primitive (m/s^2)."""
        snapshot = self.library.trajectories()
        result = self._evaluate(snapshot, obstacles, goal)
        return snapshot[result.index].acceleration.copy()

    def evaluate(self, obstacles: Optional[ArrayLike], goal: ArrayLike) -> SelectionResult:
        """Run one full selection cycle and return index plus score vectors."""
        return self._evaluate(self.library.trajectories(), obstacles, goal)

    def evaluate_goal_progress(self, goal: ArrayLike) -> np.ndarray:
        """
        Reduction in distance to the goal over the horizon, per trajectory.

        Returns:
            (N,) array; higher is better
        """
        return self._goal_progress(self.library.trajectories(), self._prepare_goal(goal))

    def evaluate_collision_probabilities(self, obstacles: Optional[ArrayLike]) -> np.ndarray:
        """Aggregated collision probability per trajectory, (N,) in [0, 1]."""
        snapshot = self.library.trajectories()
        valid = self._prepare_obstacles(obstacles)
        return self._collision_probabilities(snapshot, valid)

    def _evaluate(
        self,
        snapshot: Tuple[Trajectory, ...],
        obstacles: Optional[ArrayLike],
        goal: ArrayLike
    ) -> SelectionResult:
        goal = self._prepare_goal(goal)
        valid = self._prepare_obstacles(obstacles)

        progress = self._goal_progress(snapshot, goal)
        risk = self._collision_probabilities(snapshot, valid)
        scores = combine_scores(progress, risk, self.collision_penalty, self.combination)
        index = select_best_index(scores)

        if len(valid) and np.all(risk >= SATURATED_RISK):
            logger.debug("All %d trajectories saturated at maximal risk, returning least-bad index %d",
                         len(snapshot), index)
        logger.debug("Selected trajectory %d (score %.3f, progress %.3f, risk %.3f, %d obstacles)",
                     index, scores[index], progress[index], risk[index], len(valid))

        return SelectionResult(
            index=index,
            scores=scores,
            goal_progress=progress,
            collision_probabilities=risk,
            num_valid_obstacles=len(valid),
        )

    def _goal_progress(self, snapshot: Tuple[Trajectory, ...], goal: np.ndarray) -> np.ndarray:
        starts = np.stack([trajectory.anchor for trajectory in snapshot])
        ends = np.stack([trajectory.final_position() for trajectory in snapshot])
        return np.linalg.norm(goal - starts, axis=1) - np.linalg.norm(goal - ends, axis=1)

    def _collision_probabilities(self, snapshot: Tuple[Trajectory, ...], obstacles: np.ndarray) -> np.ndarray:
        if len(obstacles) == 0:
            return np.zeros(len(snapshot))

        times = make_sampling_times(snapshot[0].horizon, self.num_time_samples)
        positions = np.stack([trajectory.positions(times) for trajectory in snapshot])
        inverse_sigmas = 1.0 / self.uncertainty.sigmas_at_times(times)

        likelihoods = collision_likelihoods(positions, obstacles, inverse_sigmas)
        return aggregate_collision_probability(likelihoods, self.aggregation)

    def _prepare_goal(self, goal: ArrayLike) -> np.ndarray:
        goal = np.asarray(goal, dtype=float)
        if goal.shape != (3,):
            raise ValueError(f"goal must have shape (3,), got {goal.shape}")
        if not np.all(np.isfinite(goal)):
            raise ValueError(f"goal must be finite, got {goal}")
        return goal

    def _prepare_obstacles(self, obstacles: Optional[ArrayLike]) -> np.ndarray:
        """Validate the obstacle array and drop rows with non-finite entries."""
        if obstacles is None:
            return np.empty((0, 3))
        points = np.asarray(obstacles, dtype=float)
        if points.size == 0:
            return np.empty((0, 3))
        if points.ndim != 2 or points.shape[1] != 3:
            raise ValueError(f"obstacles must have shape (m, 3), got {points.shape}")
        if len(points) > self.max_obstacles:
            raise ValueError(
                f"Got {len(points)} obstacle samples, at most {self.max_obstacles} are accepted"
            )

        finite = np.all(np.isfinite(points), axis=1)
        skipped = int(np.count_nonzero(~finite))
        if skipped:
            logger.debug("Skipping %d of %d obstacle samples with no return", skipped, len(points))
        return points[finite]

    # Diagnostics

    def sample_for_drawing(self, index: int, time_samples: ArrayLike) -> TrajectorySamples:
        """
        Positions of trajectory `index` at the given times, for visualization.

        Pure read: the returned sequence is lazy, can be iterated more than
        once and is unaffected by later velocity updates.

        Args:
            index: Trajectory index in [0, N)
            time_samples: Query times within [0, horizon]
        """
        trajectory = self.library.trajectory(index)
        times = np.array(time_samples, dtype=float).reshape(-1)
        trajectory.check_times(times)
        return TrajectorySamples(trajectory, times)

    def sample_trajectory_array(self, index: int, time_samples: ArrayLike) -> np.ndarray:
        """Same as sample_for_drawing but materialized as a (len(times), 3) array."""
        return self.sample_for_drawing(index, time_samples).to_array()
