"""
Real-time Monte Carlo Tree Search planning, computed incrementally across frames.
"""

from .addons import (
    Action,
    EpisodeState,
    InvalidStateError,
    MalformedCollaboratorError,
    NoActionAvailableError,
    PlannerConfig,
    PlannerError,
    PlannerStats,
    WorldModel,
)
from .host import FrameDecisionMaker
from .mcts import MCTSPlanner, SearchNode

__all__ = [
    'Action',
    'EpisodeState',
    'FrameDecisionMaker',
    'InvalidStateError',
    'MCTSPlanner',
    'MalformedCollaboratorError',
    'NoActionAvailableError',
    'PlannerConfig',
    'PlannerError',
    'PlannerStats',
    'SearchNode',
    'WorldModel',
]
