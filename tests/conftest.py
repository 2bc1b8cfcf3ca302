import matplotlib
matplotlib.use('Agg')

import numpy as np
import pytest

from trajselect import TrajectoryLibrary, UncertaintyModel, TrajectorySelector


@pytest.fixture
def library():
    return TrajectoryLibrary(num_trajectories=25, horizon=0.5)


@pytest.fixture
def sharp_selector():
    """Three primitives (forward, +y, -y) with a tight, constant uncertainty."""
    library = TrajectoryLibrary(num_trajectories=3, horizon=0.5,
                                initial_velocity=np.array([2.0, 0.0, 0.0]))
    uncertainty = UncertaintyModel(floor=0.01, growth_rate=0.0)
    return TrajectorySelector(library=library, uncertainty=uncertainty, collision_penalty=10.0)


@pytest.fixture
def no_returns():
    return np.full((100, 3), np.nan)
