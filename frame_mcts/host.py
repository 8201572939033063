"""
Host-side driver for the planner.

A game loop drives the planner one frame at a time and must never be brought down by it. This module
wraps ``MCTSPlanner`` so that planner errors are logged and replaced by a fallback action.
"""

import logging

from tqdm import tqdm

from frame_mcts.addons.errors import PlannerError
from frame_mcts.addons.types import Action, EpisodeState, WorldModel
from frame_mcts.mcts.planner import MCTSPlanner

_logger = logging.getLogger(__name__)


class FrameDecisionMaker:
    """
    Drive an MCTS planner from a host loop.

    Attributes
    ----------
    planner : MCTSPlanner
        The planner being driven.
    fallback : Action, optional
        Action returned when the planner has nothing to offer or fails.

    Methods
    -------
    tick(world)
        Advance the search by one frame.
    choose_action(world, verbose)
        Run a whole episode at once.
    reset()
        Abandon the current episode.
    """

    def __init__(self, planner: MCTSPlanner | None = None, fallback: Action | None = None):
        """
        Initialize the decision maker.

        Parameters
        ----------
        planner : MCTSPlanner, optional
            The planner to drive (default is a planner with the default configuration).
        fallback : Action, optional
            Action used when no decision is available (default is None).
        """
        self.planner = planner if planner is not None else MCTSPlanner()
        self.fallback = fallback

    @property
    def decision_ready(self) -> bool:
        """Whether the current episode has spent its whole budget."""
        return self.planner.state is EpisodeState.COMPLETED

    def reset(self) -> None:
        """Abandon the current episode; the next tick plans from a fresh world model."""
        self.planner.abandon_episode()

    def tick(self, world: WorldModel) -> Action | None:
        """
        Advance the search by one frame.

        Starts an episode from ``world`` when none is running, then runs one batch of iterations.
        Once the episode completes, the same decision is returned until ``reset`` is called.

        Parameters
        ----------
        world : WorldModel
            The current game state, used only when a new episode starts.

        Returns
        -------
        Action or None
            The best action so far, or the fallback.
        """
        try:
            if self.planner.state is EpisodeState.NOT_STARTED:
                self.planner.initialize_episode(world)
            action = self.planner.run_iteration_batch()
        except PlannerError:
            _logger.exception('Planner failed, falling back to %r', self.fallback)
            self.planner.abandon_episode()
            return self.fallback

        if action is None:
            return self.fallback
        return action

    def choose_action(self, world: WorldModel, verbose: bool = False) -> Action | None:
        """
        Plan a whole episode and return its decision.

        Parameters
        ----------
        world : WorldModel
            The current game state.
        verbose : bool, optional
            Show a progress bar over the iteration budget (default is False).

        Returns
        -------
        Action or None
            The best action, or the fallback.
        """
        self.planner.abandon_episode()
        try:
            self.planner.initialize_episode(world)
            with tqdm(total=self.planner.config.max_iterations, disable=not verbose, desc='Planning') as progress:
                while True:
                    done = self.planner.completed_iterations
                    action = self.planner.run_iteration_batch()
                    progress.update(self.planner.completed_iterations - done)
                    if not self.planner.in_progress:
                        break
        except PlannerError:
            _logger.exception('Planner failed, falling back to %r', self.fallback)
            self.planner.abandon_episode()
            return self.fallback

        stats = self.planner.statistics()
        _logger.info(
            'Planned %d iterations in %.4fs (selection depth %d, playout depth %d)',
            stats.completed_iterations,
            stats.total_processing_time,
            stats.max_selection_depth,
            stats.max_playout_depth,
        )
        if action is None:
            return self.fallback
        return action
