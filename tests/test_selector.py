import numpy as np
import pytest

from trajselect import (
    TrajectoryLibrary,
    TrajectorySelector,
    UncertaintyModel,
    SelectorConfig,
    InvalidConfiguration,
    OutOfRangeQuery,
)
from trajselect.planning import (
    make_sampling_times,
    aggregate_collision_probability,
    collision_likelihoods,
    combine_scores,
    select_best_index,
)


GOAL_LEFT = np.array([0.0, 5.0, 0.0])


def test_sampling_times_cover_horizon():
    times = make_sampling_times(0.5, 10)
    assert len(times) == 10
    assert times[0] == pytest.approx(0.05)
    assert times[-1] == 0.5
    assert np.all(times > 0)
    np.testing.assert_allclose(np.diff(times), 0.05)


def test_sampling_times_refuse_bad_arguments():
    with pytest.raises(InvalidConfiguration):
        make_sampling_times(0.0, 10)
    with pytest.raises(InvalidConfiguration):
        make_sampling_times(0.5, 0)


def test_kernel_is_one_at_coincidence():
    positions = np.array([[[1.0, 2.0, 3.0]]])
    obstacles = np.array([[1.0, 2.0, 3.0], [1.0, 2.0, 4.0]])
    inverse_sigmas = np.array([[1.0, 1.0, 2.0]])
    out = collision_likelihoods(positions, obstacles, inverse_sigmas)
    assert out.shape == (1, 1, 2)
    assert out[0, 0, 0] == 1.0
    assert out[0, 0, 1] == pytest.approx(np.exp(-2.0))


def test_risk_or_aggregation():
    likelihoods = np.array([[0.5, 0.5], [0.0, 0.0], [1.0, 0.0]])
    np.testing.assert_allclose(aggregate_collision_probability(likelihoods), [0.75, 0.0, 1.0])


def test_max_aggregation():
    likelihoods = np.array([[0.5, 0.2], [0.1, 0.3]])
    np.testing.assert_allclose(aggregate_collision_probability(likelihoods, 'max'), [0.5, 0.3])


def test_single_near_miss_dominates():
    likelihoods = np.zeros((1, 10, 100))
    likelihoods[0, 4, 17] = 0.99
    assert aggregate_collision_probability(likelihoods)[0] == pytest.approx(0.99)


def test_aggregation_of_nothing_is_zero():
    np.testing.assert_array_equal(aggregate_collision_probability(np.zeros((4, 10, 0))), np.zeros(4))


def test_unknown_policies_refused():
    with pytest.raises(InvalidConfiguration):
        aggregate_collision_probability(np.zeros((1, 1)), 'mean')
    with pytest.raises(InvalidConfiguration):
        combine_scores([0.0], [0.0], policy='ratio')
    with pytest.raises(InvalidConfiguration):
        TrajectorySelector(aggregation='mean')
    with pytest.raises(InvalidConfiguration):
        TrajectorySelector(combination='ratio')


def test_combine_scores():
    np.testing.assert_allclose(combine_scores([1.0, 2.0], [0.5, 0.1], 2.0), [0.0, 1.8])
    np.testing.assert_allclose(
        combine_scores([1.0, -1.0], [0.5, 0.5], policy='multiplicative'), [0.5, -1.5]
    )


def test_ties_go_to_lowest_index():
    assert select_best_index([0.3, 0.7, 0.7, 0.1]) == 1
    assert select_best_index([0.0, 0.0, 0.0]) == 0


def test_scenario_a_no_obstacles():
    progress = np.array([0.1, 0.9, 0.5])
    scores = combine_scores(progress, np.zeros(3), 10.0)
    assert select_best_index(scores) == 1


def test_scenario_b_collision_flips_choice():
    progress = np.array([0.1, 0.9, 0.5])
    risk = np.array([0.0, 1.0, 0.0])
    assert select_best_index(combine_scores(progress, risk, 0.1)) == 1
    assert select_best_index(combine_scores(progress, risk, 10.0)) == 2


def test_goal_progress_prefers_heading_to_goal(sharp_selector):
    progress = sharp_selector.evaluate_goal_progress(GOAL_LEFT)
    assert np.argmax(progress) == 1
    assert sharp_selector.compute_best_trajectory_index(None, GOAL_LEFT) == 1


def test_obstacle_on_best_trajectory(sharp_selector):
    t_mid = sharp_selector.sampling_times[4]
    assert t_mid == pytest.approx(0.25)
    obstacle = sharp_selector.library.position(1, t_mid)

    result = sharp_selector.evaluate(obstacle[None, :], GOAL_LEFT)
    assert result.collision_probabilities[1] == pytest.approx(1.0)
    assert result.collision_probabilities[0] < 1e-6
    assert result.collision_probabilities[2] < 1e-6
    # Forward (0) beats the right-hand primitive (2) once the left one is blocked
    assert result.index == 0


def test_empty_obstacles_rank_by_progress(sharp_selector):
    progress = sharp_selector.evaluate_goal_progress(GOAL_LEFT)
    for obstacles in [None, np.empty((0, 3)), []]:
        assert sharp_selector.compute_best_trajectory_index(obstacles, GOAL_LEFT) == int(np.argmax(progress))


def test_scenario_c_invalid_points_match_empty(sharp_selector, no_returns):
    empty = sharp_selector.evaluate(None, GOAL_LEFT)
    invalid = sharp_selector.evaluate(no_returns, GOAL_LEFT)
    assert invalid.index == empty.index
    assert invalid.num_valid_obstacles == 0
    np.testing.assert_array_equal(invalid.collision_probabilities, np.zeros(3))
    np.testing.assert_array_equal(invalid.scores, empty.scores)


def test_partially_invalid_points_are_skipped(sharp_selector, no_returns):
    obstacle = sharp_selector.library.position(1, sharp_selector.sampling_times[4])
    mixed = no_returns.copy()
    mixed[50] = obstacle
    mixed[60] = [np.inf, 0.0, 0.0]
    result = sharp_selector.evaluate(mixed, GOAL_LEFT)
    assert result.num_valid_obstacles == 1
    assert result.collision_probabilities[1] == pytest.approx(1.0)


def test_adding_coincident_obstacle_never_lowers_risk():
    selector = TrajectorySelector()
    selector.set_initial_velocity(np.array([3.0, 0.5, 0.0]))
    rng = np.random.default_rng(3)
    obstacles = rng.uniform(-1.0, 3.0, size=(60, 3))
    before = selector.evaluate_collision_probabilities(obstacles)

    for index, step in [(0, 0), (12, 4), (24, 9)]:
        point = selector.library.position(index, selector.sampling_times[step])
        after = selector.evaluate_collision_probabilities(np.vstack([obstacles, point]))
        assert np.all(after >= before - 1e-12)
        assert after[index] >= before[index]


def test_selection_is_deterministic():
    rng = np.random.default_rng(7)
    obstacles = rng.uniform(0.0, 3.0, size=(100, 3))
    obstacles[::7] = np.nan
    goal = np.array([6.0, 1.0, -0.5])

    results = []
    for _ in range(3):
        selector = TrajectorySelector()
        selector.set_initial_velocity(np.array([2.0, 0.0, 0.1]))
        results.append(selector.evaluate(obstacles, goal))

    assert len({r.index for r in results}) == 1
    for r in results[1:]:
        np.testing.assert_array_equal(r.scores, results[0].scores)


def test_saturated_risk_still_selects():
    selector = TrajectorySelector(uncertainty=UncertaintyModel(floor=1000.0, growth_rate=0.0))
    selector.set_initial_velocity(np.array([1.0, 0.0, 0.0]))
    goal = np.array([5.0, 0.0, 0.0])
    result = selector.evaluate(np.array([[0.5, 0.0, 0.0]]), goal)

    np.testing.assert_array_equal(result.collision_probabilities, np.ones(selector.num_trajectories()))
    assert 0 <= result.index < selector.num_trajectories()
    assert result.index == int(np.argmax(result.goal_progress))


def test_max_aggregation_selector(sharp_selector):
    selector = TrajectorySelector(
        library=sharp_selector.library,
        uncertainty=sharp_selector.uncertainty,
        aggregation='max',
    )
    obstacle = selector.library.position(1, selector.sampling_times[4])
    risk = selector.evaluate_collision_probabilities(obstacle[None, :])
    assert risk[1] == pytest.approx(1.0)


def test_input_contract_violations(sharp_selector):
    with pytest.raises(ValueError):
        sharp_selector.compute_best_trajectory_index(np.zeros((101, 3)), GOAL_LEFT)
    with pytest.raises(ValueError):
        sharp_selector.compute_best_trajectory_index(np.zeros((10, 2)), GOAL_LEFT)
    with pytest.raises(ValueError):
        sharp_selector.compute_best_trajectory_index(None, np.zeros(2))
    with pytest.raises(ValueError):
        sharp_selector.compute_best_trajectory_index(None, np.array([np.nan, 0.0, 0.0]))


def test_desired_acceleration_matches_selection(sharp_selector):
    index = sharp_selector.compute_best_trajectory_index(None, GOAL_LEFT)
    accel = sharp_selector.compute_desired_acceleration(None, GOAL_LEFT)
    np.testing.assert_array_equal(accel, sharp_selector.library.trajectory(index).acceleration)


def test_sample_for_drawing_is_lazy_and_restartable(sharp_selector):
    times = np.linspace(0.0, 0.5, 6)
    samples = sharp_selector.sample_for_drawing(2, times)
    assert len(samples) == 6

    first = np.array(list(samples))
    second = np.array(list(samples))
    np.testing.assert_array_equal(first, second)
    np.testing.assert_allclose(first, sharp_selector.sample_trajectory_array(2, times))
    np.testing.assert_allclose(first[3], sharp_selector.library.position(2, times[3]))


def test_sample_for_drawing_is_unaffected_by_updates(sharp_selector):
    times = np.linspace(0.0, 0.5, 4)
    samples = sharp_selector.sample_for_drawing(0, times)
    expected = samples.to_array()
    sharp_selector.set_initial_velocity(np.array([0.0, 0.0, 5.0]))
    np.testing.assert_array_equal(np.array(list(samples)), expected)


def test_sample_for_drawing_contract(sharp_selector):
    with pytest.raises(OutOfRangeQuery):
        sharp_selector.sample_for_drawing(3, [0.1])
    with pytest.raises(OutOfRangeQuery):
        sharp_selector.sample_for_drawing(0, [0.1, 0.7])


def test_sigma_passthrough(sharp_selector):
    np.testing.assert_allclose(sharp_selector.sigma_at_time(0.3), [0.01, 0.01, 0.01])
    np.testing.assert_allclose(sharp_selector.inverse_sigma_at_time(0.3), [100.0, 100.0, 100.0])


def test_initialize_library_updates_sampling(sharp_selector):
    sharp_selector.initialize_library(1.0)
    assert sharp_selector.sampling_times[-1] == 1.0
    assert sharp_selector.num_trajectories() == 3


def test_from_config():
    config = SelectorConfig(num_trajectories=9, horizon=0.8, num_time_samples=5,
                            collision_penalty=3.0, aggregation='max')
    selector = TrajectorySelector.from_config(config)
    assert selector.num_trajectories() == 9
    assert selector.library.horizon == 0.8
    assert len(selector.sampling_times) == 5
    assert selector.collision_penalty == 3.0
    assert selector.aggregation == 'max'
