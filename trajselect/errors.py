"""
Exceptions raised by the trajectory selection core.

Only configuration problems and API-contract violations cross the
package boundary. Invalid obstacle samples are absorbed during scoring.
"""


class TrajectorySelectionError(Exception):
    """Base class for all trajselect errors."""


class InvalidConfiguration(TrajectorySelectionError, ValueError):
    """
    Raised when a component is constructed or initialized with unusable
    parameters (non-positive horizon, zero trajectories, negative growth rates,
    unknown scoring policy, ...).
    """


class OutOfRangeQuery(TrajectorySelectionError, IndexError):
    """
    Raised when a trajectory index or query time lies outside its valid domain.

    Queries are never clamped: an out-of-range request is a caller bug.
    """
