"""
Monte Carlo Tree Search module for frame-budgeted planning.

This module provides:
- SearchNode: tree node owning an immutable world model snapshot
- Search phases: UCT selection with in-order expansion, random playout, backpropagation
- MCTSPlanner: episode state machine running a bounded batch of iterations per frame
"""

from .node import SearchNode
from .planner import MCTSPlanner
from .search import backpropagate, best_action_sequence, best_child, playout, select, uct_score, uct_select

__all__ = [
    'MCTSPlanner',
    'SearchNode',
    'backpropagate',
    'best_action_sequence',
    'best_child',
    'playout',
    'select',
    'uct_score',
    'uct_select',
]
