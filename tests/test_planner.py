import threading

import numpy as np
import pytest

from trajselect import TrajectorySelectionPlanner, SelectorConfig


@pytest.fixture
def planner():
    return TrajectorySelectionPlanner(config=SelectorConfig(num_trajectories=9))


def test_compute_action_outputs(planner, no_returns):
    planner.set_velocity(np.array([2.0, 0.0, 0.0]))
    action = planner.compute_action(obstacles=no_returns, goal=np.array([5.0, 0.0, 0.0]))

    assert set(action) >= {'index', 'acceleration', 'velocity', 'position', 'time', 'info'}
    assert 0 <= action['index'] < 9
    trajectory = planner.selector.library.trajectory(action['index'])
    np.testing.assert_array_equal(action['acceleration'], trajectory.acceleration)
    np.testing.assert_allclose(action['velocity'], trajectory.velocity(action['time']))
    np.testing.assert_allclose(action['position'], trajectory.position(action['time']))
    assert action['info']['scores'].shape == (9,)
    assert action['info']['num_valid_obstacles'] == 0


def test_straight_ahead_in_free_space(planner):
    action = planner.compute_action(goal=np.array([10.0, 0.0, 0.0]))
    assert action['index'] == 0
    np.testing.assert_allclose(action['acceleration'], [6.0, 0.0, 0.0])


def test_requires_goal(planner):
    with pytest.raises(ValueError):
        planner.compute_action(obstacles=None)


def test_waypoints_set_carrot_goal(planner):
    planner.set_waypoints(np.array([[0.0, 0.0, 0.0], [0.0, 20.0, 0.0]]))
    np.testing.assert_allclose(planner.goal, [0.0, 5.0, 0.0])
    action = planner.compute_action()
    assert action['info']['goal_progress'][action['index']] > 0


def test_velocity_keyword_applied(planner):
    planner.compute_action(goal=np.array([5.0, 0.0, 0.0]), velocity=np.array([1.0, 2.0, 3.0]))
    np.testing.assert_array_equal(planner.selector.library.initial_velocity, [1.0, 2.0, 3.0])


def test_cycle_count_and_reset(planner):
    planner.set_goal(np.array([5.0, 0.0, 0.0]))
    planner.compute_action()
    planner.compute_action()
    assert planner.cycle_count == 2
    planner.reset()
    assert planner.cycle_count == 0
    assert planner.goal is None


def test_set_horizon(planner):
    planner.set_horizon(1.0)
    assert planner.selector.library.horizon == 1.0


def test_sample_library(planner):
    paths = planner.sample_library(num_samples=10)
    assert len(paths) == 9
    assert all(path.shape == (10, 3) for path in paths)


def test_concurrent_velocity_updates(planner):
    planner.set_goal(np.array([5.0, 1.0, 0.0]))
    obstacles = np.random.default_rng(1).uniform(0.0, 4.0, size=(100, 3))
    errors = []
    stop = threading.Event()

    def push_velocities():
        speeds = np.linspace(0.0, 5.0, 50)
        while not stop.is_set():
            for s in speeds:
                planner.set_velocity(np.array([s, 0.0, 0.0]))

    def select():
        try:
            for _ in range(50):
                action = planner.compute_action(obstacles=obstacles)
                assert 0 <= action['index'] < 9
        except Exception as exc:  # surfaced to the main thread below
            errors.append(exc)

    writer = threading.Thread(target=push_velocities)
    reader = threading.Thread(target=select)
    writer.start()
    reader.start()
    reader.join()
    stop.set()
    writer.join()

    assert not errors
