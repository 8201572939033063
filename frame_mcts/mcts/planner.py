"""
Frame-budgeted Monte Carlo Tree Search planner.

The planner does not own a thread. The host calls ``initialize_episode`` once, then
``run_iteration_batch`` once per frame; every call runs a bounded number of iterations on the same
tree and returns the best first action found so far. Budgets are counted in iterations only, the
elapsed time is kept as a diagnostic.
"""

import logging
from time import perf_counter

from numpy.random import PCG64DXSM, Generator, default_rng

from frame_mcts.addons.config import PlannerConfig, default_config
from frame_mcts.addons.errors import InvalidStateError, NoActionAvailableError
from frame_mcts.addons.types import Action, EpisodeState, PlannerStats, WorldModel

from .node import SearchNode
from .search import backpropagate, best_action_sequence, best_child, playout, select

_logger = logging.getLogger(__name__)


class MCTSPlanner:
    """
    An incremental UCT planner for a single searching agent.

    Attributes
    ----------
    config : PlannerConfig
        Budgets and exploration constant.
    root : SearchNode, optional
        Root of the current episode's tree.
    best_first_child : SearchNode, optional
        Best root child after the last batch.
    completed_iterations : int
        Iterations completed in the current episode.
    iterations_in_frame : int
        Iterations completed by the last batch.
    max_selection_depth : int
        Deepest node selected for a playout.
    max_playout_depth : int
        Longest playout.
    total_processing_time : float
        Seconds spent inside batches.

    Methods
    -------
    initialize_episode(world)
        Start a new episode from a world model.
    abandon_episode()
        Discard the current episode.
    run_iteration_batch()
        Run one frame's worth of iterations.
    best_action()
        Best first action, raising when there is none.
    best_action_sequence()
        Actions along the best path of the tree.
    statistics()
        Snapshot of the diagnostic counters.

    Notes
    -----
    Episode life cycle: NOT_STARTED -> IN_PROGRESS -> COMPLETED. A COMPLETED episode keeps answering
    with its final decision until the next ``initialize_episode``.
    """

    def __init__(self, config: PlannerConfig | None = None, generator: Generator | None = None):
        """
        Initialize the planner.

        Parameters
        ----------
        config : PlannerConfig, optional
            Planner configuration (default is ``default_config()``).
        generator : Generator, optional
            Source of randomness for playouts. Built from ``config.seed`` when omitted.
        """
        self.config = config if config is not None else default_config()
        self._generator = generator if generator is not None else default_rng(PCG64DXSM(self.config.seed))
        self._state = EpisodeState.NOT_STARTED
        self.root: SearchNode | None = None
        self._reset_episode()

    def _reset_episode(self) -> None:
        """Reset the tree and every counter."""
        self.best_first_child: SearchNode | None = None
        self.completed_iterations = 0
        self.iterations_in_frame = 0
        self.max_selection_depth = 0
        self.max_playout_depth = 0
        self.total_processing_time = 0.0

    @property
    def state(self) -> EpisodeState:
        """Current episode state."""
        return self._state

    @property
    def in_progress(self) -> bool:
        """Whether the episode still has iterations to run."""
        return self._state is EpisodeState.IN_PROGRESS

    def initialize_episode(self, world: WorldModel) -> None:
        """
        Start a new planning episode.

        Parameters
        ----------
        world : WorldModel
            The current game state. It is cloned; the planner never touches the original.

        Raises
        ------
        InvalidStateError
            If an episode is still in progress. Call ``abandon_episode`` first.
        """
        if self._state is EpisodeState.IN_PROGRESS:
            raise InvalidStateError('A planning episode is still in progress. Abandon it before starting another.')

        # ##>: Build the root first; a failing world model leaves the current episode untouched.
        root = SearchNode(state=world.clone_for_child())
        self._reset_episode()
        self.root = root
        self._state = EpisodeState.IN_PROGRESS
        _logger.debug(
            'Episode started (max_iterations=%d, per_frame=%d, actions=%d)',
            self.config.max_iterations,
            self.config.max_iterations_per_frame,
            len(self.root.legal_actions),
        )

        # ##>: Nothing to search: terminal root or empty budget.
        if self.root.final or self.config.max_iterations == 0:
            self._state = EpisodeState.COMPLETED
            _logger.debug('Episode completed without iterations (terminal_root=%s)', self.root.final)

    def abandon_episode(self) -> None:
        """Discard the current tree and return to NOT_STARTED."""
        if self._state is EpisodeState.IN_PROGRESS:
            _logger.debug('Episode abandoned after %d iterations', self.completed_iterations)
        self.root = None
        self._reset_episode()
        self._state = EpisodeState.NOT_STARTED

    def _iterate(self) -> None:
        """Run one selection, expansion, playout and backpropagation."""
        node = select(self.root, self.config.exploration_weight)
        self.max_selection_depth = max(self.max_selection_depth, node.depth)

        reward, depth = playout(node.state, self._generator, self.config.playout_depth_limit)
        self.max_playout_depth = max(self.max_playout_depth, depth)

        backpropagate(node, reward)

    def run_iteration_batch(self) -> Action | None:
        """
        Run up to ``max_iterations_per_frame`` iterations on the current tree.

        Returns
        -------
        Action or None
            The best first action so far, or None when no action is available.

        Raises
        ------
        InvalidStateError
            If no episode was initialized.
        MalformedCollaboratorError
            If the world model reports a non-terminal state without executable actions.
        """
        if self._state is EpisodeState.NOT_STARTED:
            raise InvalidStateError('No planning episode. Call initialize_episode first.')

        # ##>: Completed episodes keep their decision; no more work.
        if self._state is EpisodeState.COMPLETED:
            self.iterations_in_frame = 0
            return self._best_first_action()

        self.iterations_in_frame = 0
        start = perf_counter()
        try:
            while (
                self.iterations_in_frame < self.config.max_iterations_per_frame
                and self.completed_iterations < self.config.max_iterations
            ):
                self._iterate()
                self.completed_iterations += 1
                self.iterations_in_frame += 1
        finally:
            self.total_processing_time += perf_counter() - start

        if self.completed_iterations >= self.config.max_iterations:
            self._state = EpisodeState.COMPLETED
            _logger.debug(
                'Episode completed: %d iterations in %.4fs (selection depth %d, playout depth %d)',
                self.completed_iterations,
                self.total_processing_time,
                self.max_selection_depth,
                self.max_playout_depth,
            )

        self.best_first_child = best_child(self.root)
        return self._best_first_action()

    def _best_first_action(self) -> Action | None:
        """Action of the best first child, if any."""
        return self.best_first_child.action if self.best_first_child is not None else None

    def best_action(self) -> Action:
        """
        Return the best first action of the current tree.

        Returns
        -------
        Action
            The action of the root child with the highest average reward.

        Raises
        ------
        InvalidStateError
            If no episode was initialized.
        NoActionAvailableError
            If the root has no child.
        """
        if self.root is None:
            raise InvalidStateError('No planning episode. Call initialize_episode first.')
        child = best_child(self.root)
        if child is None:
            raise NoActionAvailableError('The root has no child: terminal state or no iteration run.')
        return child.action

    def best_action_sequence(self) -> list[Action]:
        """Actions along the best path of the current tree, recomputed on each call."""
        if self.root is None:
            return []
        return best_action_sequence(self.root)

    def statistics(self) -> PlannerStats:
        """Snapshot of the diagnostic counters."""
        return PlannerStats(
            state=self._state,
            completed_iterations=self.completed_iterations,
            iterations_in_frame=self.iterations_in_frame,
            max_selection_depth=self.max_selection_depth,
            max_playout_depth=self.max_playout_depth,
            total_processing_time=self.total_processing_time,
        )
