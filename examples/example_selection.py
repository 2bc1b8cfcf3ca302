"""
Example: Reactive trajectory selection.

Shows the primitive library, a single selection cycle against a wall of
obstacle samples, and a closed-loop flight through a pillar field.
"""

import numpy as np
import matplotlib.pyplot as plt
from pathlib import Path
import sys

sys.path.insert(0, str(Path(__file__).parent.parent))
from trajselect import TrajectorySelector, TrajectorySelectionPlanner, SelectorConfig
from trajselect.simulation import simulate
from trajselect.visualization import plot_library, plot_uncertainty, plot_scores, plot_simulation


def example_single_cycle():
    """One selection cycle in front of a partial wall."""
    print("\nSingle Selection Cycle")
    print("-" * 40)

    selector = TrajectorySelector()
    selector.set_initial_velocity(np.array([4.0, 0.0, 0.0]))

    # Wall 1.5 m ahead covering y in [-1, 0.5], plus invalid returns
    obstacles = np.full((100, 3), np.nan)
    ys = np.linspace(-1.0, 0.5, 40)
    zs = np.tile([-0.3, 0.0, 0.3], 14)[:40]
    obstacles[:40] = np.column_stack([np.full(40, 1.5), ys, zs])
    goal = np.array([5.0, 0.0, 0.0])

    result = selector.evaluate(obstacles, goal)
    print(f"✓ Selected trajectory {result.index} of {selector.num_trajectories()}")
    print(f"  Goal progress: {result.goal_progress[result.index]:.2f} m")
    print(f"  Collision probability: {result.collision_probabilities[result.index]:.3f}")
    print(f"  Valid obstacle samples: {result.num_valid_obstacles}")

    return selector, obstacles, goal, result


def example_closed_loop():
    """Fly through a field of vertical pillars."""
    print("\nClosed-Loop Avoidance")
    print("-" * 40)

    config = SelectorConfig(collision_penalty=20.0)
    planner = TrajectorySelectionPlanner(config=config)

    rng = np.random.default_rng(0)
    pillars = np.column_stack([rng.uniform(3.0, 17.0, 12), rng.uniform(-3.0, 3.0, 12)])
    heights = np.linspace(-1.0, 1.0, 5)
    obstacles = np.array([[x, y, z] for x, y in pillars for z in heights])
    goal = np.array([20.0, 0.0, 0.0])

    history = simulate(planner, obstacles, goal, dt=0.05, steps=400)
    print(f"✓ Flew {len(history['time'])} steps ({history['time'][-1]:.1f}s)")
    print(f"  Goal reached: {history['reached']}")
    print(f"  Minimum clearance: {history['clearance'].min():.2f} m")

    return obstacles, goal, history


if __name__ == '__main__':
    print("=" * 50)
    print("Trajectory Selection Examples")
    print("=" * 50)

    selector, obstacles, goal, result = example_single_cycle()
    field, field_goal, history = example_closed_loop()

    fig = plt.figure(figsize=(14, 10))
    plot_library(selector, obstacles, goal, result, ax=fig.add_subplot(221))
    plot_uncertainty(selector, result.index, ax=fig.add_subplot(222))
    plot_scores(result, ax=fig.add_subplot(223))
    plot_simulation(history, field, field_goal, ax=fig.add_subplot(224))
    plt.tight_layout()

    save_path = Path('outputs/selection_examples.png')
    save_path.parent.mkdir(parents=True, exist_ok=True)
    plt.savefig(save_path, dpi=150)
    print(f"\n✓ Plot saved to {save_path}")

    print("\n" + "=" * 50)
    print("Done!")
    print("=" * 50)
