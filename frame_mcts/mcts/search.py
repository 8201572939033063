"""
Monte Carlo Tree Search phases.

This module provides the four phases of an MCTS iteration as plain functions: selection (with
expansion of the first untried action), random playout, and backpropagation, together with the UCT
score that drives the descent and the best-child policy used to report a decision.

None of the functions mutate a node's state. Expansion and playout both work on fresh clones, and
backpropagation is the only code path touching the visit and value statistics.
"""

import logging
from math import inf, isfinite, log, sqrt

from numpy.random import Generator

from frame_mcts.addons.errors import MalformedCollaboratorError
from frame_mcts.addons.types import Action, WorldModel

from .node import SearchNode

_logger = logging.getLogger(__name__)


def uct_score(child: SearchNode, log_parent_visits: float, exploration_weight: float) -> float:
    """
    Compute the UCT score of a child node.

    Parameters
    ----------
    child : SearchNode
        The child to score.
    log_parent_visits : float
        Natural logarithm of the parent's visit count.
    exploration_weight : float
        The exploration constant C.

    Returns
    -------
    float
        The UCT score, infinite for an unvisited child.

    Notes
    -----
    Uses the UCB1 formula: Q / N + C * sqrt(log(parent_visits) / N).
    """
    if child.visits == 0:
        return inf
    return child.values / child.visits + exploration_weight * sqrt(log_parent_visits / child.visits)


def uct_select(node: SearchNode, exploration_weight: float) -> SearchNode:
    """
    Select the child maximizing the UCT score.

    Parameters
    ----------
    node : SearchNode
        The parent node from which to select a child.
    exploration_weight : float
        The exploration constant C.

    Returns
    -------
    SearchNode
        The selected child. Ties go to the first child in expansion order.

    Raises
    ------
    ValueError
        If the node has no child.
    """
    if not node.children:
        raise ValueError('UCT selection needs at least one child.')

    # ##>: An unvisited parent would give log(0); clamp to log(1) = 0.
    log_visits = log(max(node.visits, 1))
    return max(node.children, key=lambda child: uct_score(child, log_visits, exploration_weight))


def select(root: SearchNode, exploration_weight: float) -> SearchNode:
    """
    Descend the tree and return the node to play out from.

    Starting at the root, stop at a terminal node, expand the first untried action of a node that is
    not fully expanded, or descend into the best UCT child.

    Parameters
    ----------
    root : SearchNode
        The root of the search tree.
    exploration_weight : float
        The exploration constant C.

    Returns
    -------
    SearchNode
        The selected node: a terminal node or a freshly expanded child.

    Raises
    ------
    MalformedCollaboratorError
        If a non-terminal state reports no executable action.
    """
    node = root
    while not node.final:
        if not node.legal_actions:
            raise MalformedCollaboratorError(
                f'Non-terminal world model at depth {node.depth} has no executable action.'
            )
        if not node.fully_expanded():
            return node.add_child()
        node = uct_select(node, exploration_weight)
    return node


def playout(state: WorldModel, generator: Generator, depth_limit: int | None = None) -> tuple[float, int]:
    """
    Play uniformly random actions from a state until the game ends.

    Parameters
    ----------
    state : WorldModel
        The starting state. It is cloned and never modified.
    generator : Generator
        Source of randomness for action choices.
    depth_limit : int, optional
        Maximum number of actions; the rollout is scored as-is when reached (default is no limit).

    Returns
    -------
    reward : float
        Score of the final rollout state.
    depth : int
        Number of actions played.

    Raises
    ------
    MalformedCollaboratorError
        If a non-terminal rollout state reports no executable action, or if the score is not finite.
    """
    rollout = state.clone_for_child()
    depth = 0

    while not rollout.is_terminal():
        if depth_limit is not None and depth >= depth_limit:
            _logger.debug('Playout truncated at depth %d', depth)
            break

        actions = rollout.executable_actions()
        if not actions:
            raise MalformedCollaboratorError(f'Non-terminal rollout state at depth {depth} has no executable action.')

        # ##>: Uniform over [0, len(actions)), every action reachable.
        action = actions[int(generator.integers(len(actions)))]
        action.apply_effects(rollout)
        depth += 1

    reward = float(rollout.score())
    if not isfinite(reward):
        raise MalformedCollaboratorError(f'World model scored a rollout as {reward}.')
    return reward, depth


def backpropagate(node: SearchNode, reward: float) -> None:
    """
    Back-propagate the reward through the tree.

    Parameters
    ----------
    node : SearchNode
        The node the playout started from.
    reward : float
        The playout reward.

    Notes
    -----
    Every node from ``node`` up to the root, inclusive, gets one more visit and the reward.
    """
    current: SearchNode | None = node
    while current is not None:
        current.update(reward)
        current = current.parent


def best_child(node: SearchNode) -> SearchNode | None:
    """
    Choose the child with the highest average reward.

    Parameters
    ----------
    node : SearchNode
        The node whose children are compared.

    Returns
    -------
    SearchNode or None
        The best child, or None when the node has no child.

    Notes
    -----
    No exploration term. Ties are broken by visit count, then by expansion order.
    """
    if not node.children:
        return None
    return max(node.children, key=lambda child: (child.average_value, child.visits))


def best_action_sequence(root: SearchNode) -> list[Action]:
    """
    Follow best children from the root and collect their actions.

    Parameters
    ----------
    root : SearchNode
        The root of the search tree.

    Returns
    -------
    list[Action]
        Actions along the best path, first action first. Empty when the root has no child.
    """
    sequence = []
    child = best_child(root)
    while child is not None:
        sequence.append(child.action)
        child = best_child(child)
    return sequence
