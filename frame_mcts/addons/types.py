"""
Collaborator contracts and result types for the planner.

The planner never knows the rules of the game it plans for. Everything it needs is reached through
the two abstract classes of this module: a ``WorldModel`` describing a game state and an ``Action``
that transforms one. The host implements both.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from enum import Enum
from typing import NamedTuple


class WorldModel(ABC):
    """
    Abstract game state searched by the planner.

    Methods
    -------
    is_terminal()
        Whether the state ends the game.
    executable_actions()
        Ordered, finite sequence of the actions applicable in this state.
    score()
        Scalar value of the state, used as the playout reward.
    clone_for_child()
        Independent copy of the state.

    Notes
    -----
    ``clone_for_child`` must be deep enough that mutating the copy never affects the original. The
    planner relies on it to keep every node's state untouched once the node is built.
    """

    @abstractmethod
    def is_terminal(self) -> bool:
        """Check whether the state ends the game."""

    @abstractmethod
    def executable_actions(self) -> Sequence[Action]:
        """Return the actions applicable in this state, in a stable order."""

    @abstractmethod
    def score(self) -> float:
        """Return the value of the state. Only meaningful for terminal states."""

    @abstractmethod
    def clone_for_child(self) -> WorldModel:
        """Return an independent copy of the state."""


class Action(ABC):
    """
    Abstract operation applicable to a world model.

    Methods
    -------
    apply_effects(world)
        Mutate the given world model in place.
    is_applicable(world)
        Whether the action can be executed in the given world model.

    Notes
    -----
    The planner never calls ``is_applicable``: it trusts ``WorldModel.executable_actions`` to return
    only applicable actions. The method is there for world models to filter their actions with.
    """

    @abstractmethod
    def apply_effects(self, world: WorldModel) -> None:
        """Apply the action to ``world`` in place. Must be deterministic given the same state."""

    def is_applicable(self, world: WorldModel) -> bool:
        """Check whether the action can be executed in ``world``. Not called by the planner."""
        return True


class EpisodeState(str, Enum):
    """
    Life cycle of a planning episode.

    NOT_STARTED: no episode, or the last one was abandoned.
    IN_PROGRESS: the iteration budget is not exhausted yet.
    COMPLETED: the budget is exhausted; the best action is frozen until the next episode.
    """

    NOT_STARTED = 'not_started'
    IN_PROGRESS = 'in_progress'
    COMPLETED = 'completed'


class PlannerStats(NamedTuple):
    """
    Snapshot of the planner's diagnostic counters.

    Attributes
    ----------
    state : EpisodeState
        Current episode state.
    completed_iterations : int
        Iterations completed since the episode started.
    iterations_in_frame : int
        Iterations completed by the last batch.
    max_selection_depth : int
        Deepest tree descent reached during selection.
    max_playout_depth : int
        Longest random playout.
    total_processing_time : float
        Wall-clock seconds spent inside batches.
    """

    state: EpisodeState
    completed_iterations: int
    iterations_in_frame: int
    max_selection_depth: int
    max_playout_depth: int
    total_processing_time: float
