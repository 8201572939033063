"""
Configuration for the frame-budgeted planner.
"""

from dataclasses import dataclass


@dataclass
class PlannerConfig:
    """
    Configuration of an MCTS planning episode.

    The planner only counts iterations: time is recorded as a diagnostic but never used to stop a
    batch, so a given configuration and seed always produce the same tree.
    """

    # ##>: Iteration budgets.
    max_iterations: int = 100  # Total iterations per episode
    max_iterations_per_frame: int = 10  # Iterations per run_iteration_batch call

    # ##>: UCT exploration constant C.
    exploration_weight: float = 1.4

    # ##>: Randomness. None draws fresh entropy.
    seed: int | None = None

    # ##>: Longest random playout before the state is scored as-is. None means unlimited.
    playout_depth_limit: int | None = None

    def __post_init__(self):
        """Validate the budgets."""
        if self.max_iterations < 0:
            raise ValueError(f'max_iterations must be non-negative, got {self.max_iterations}.')
        if self.max_iterations_per_frame < 1:
            raise ValueError(f'max_iterations_per_frame must be at least 1, got {self.max_iterations_per_frame}.')
        if self.exploration_weight < 0:
            raise ValueError(f'exploration_weight must be non-negative, got {self.exploration_weight}.')
        if self.playout_depth_limit is not None and self.playout_depth_limit < 1:
            raise ValueError(f'playout_depth_limit must be at least 1, got {self.playout_depth_limit}.')


def default_config() -> PlannerConfig:
    """
    Create the default planner configuration.

    Returns
    -------
    PlannerConfig
        100 iterations per episode, 10 per frame, C = 1.4.
    """
    return PlannerConfig()


def fast_config(seed: int | None = 0) -> PlannerConfig:
    """
    Create a small, seeded configuration for quick experiments and tests.

    Parameters
    ----------
    seed : int, optional
        Seed of the planner's generator (default is 0).

    Returns
    -------
    PlannerConfig
        Reduced configuration.
    """
    return PlannerConfig(max_iterations=20, max_iterations_per_frame=5, seed=seed)
