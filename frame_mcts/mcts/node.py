"""
Monte Carlo Tree Search node for frame-budgeted planning.

A node wraps a world model snapshot that it owns exclusively. The snapshot is never mutated once the
node is built: expansion clones it before applying an action, so sibling expansions can never corrupt
each other. Ownership flows strictly from parent to children; a child only keeps a weak reference to
its parent.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from weakref import ReferenceType, ref

from frame_mcts.addons.types import Action, WorldModel


@dataclass(kw_only=True, eq=False)
class SearchNode:
    """
    Node of the search tree.

    Attributes
    ----------
    state : WorldModel
        The world model snapshot owned by this node.
    action : Action, optional
        The action that produced this node from its parent. None for the root.
    parent_ref : weakref, optional
        Weak reference to the parent node. None for the root.
    depth : int
        Distance from the root.
    values : float
        Accumulated rewards from playouts.
    visits : int
        Number of playouts back-propagated through this node.
    children : list[SearchNode]
        Child nodes, in expansion order.
    final : bool
        Whether the state is terminal.
    legal_actions : list[Action]
        Executable actions of the state, in the order the world model reports them.

    Methods
    -------
    fully_expanded()
        Check if every executable action has a child.
    is_leaf()
        Check if the node has no child.
    untried_actions()
        Executable actions without a child yet.
    add_child()
        Expand the next untried action.
    update(reward)
        Update node statistics after a playout.

    Notes
    -----
    Nodes compare by identity: two children reached through the same action from equal states are
    still distinct nodes.
    """

    state: WorldModel
    action: Action | None = None
    parent_ref: ReferenceType[SearchNode] | None = field(default=None, repr=False)
    depth: int = 0
    values: float = 0.0
    visits: int = 0
    children: list[SearchNode] = field(default_factory=list, repr=False)
    final: bool = field(init=False, default=False)
    legal_actions: list[Action] = field(init=False, default_factory=list, repr=False)

    def __post_init__(self):
        """Cache terminality and executable actions; the state never changes afterwards."""
        self.final = bool(self.state.is_terminal())
        if not self.final:
            self.legal_actions = list(self.state.executable_actions())

    @property
    def parent(self) -> SearchNode | None:
        """The parent node, or None for the root."""
        return self.parent_ref() if self.parent_ref is not None else None

    @property
    def average_value(self) -> float:
        """Average playout reward, minus infinity while the node is unvisited."""
        if self.visits == 0:
            return float('-inf')
        return self.values / self.visits

    def fully_expanded(self) -> bool:
        """Check if every executable action has been expanded."""
        return len(self.children) == len(self.legal_actions)

    def is_leaf(self) -> bool:
        """Check if the node has no child."""
        return not self.children

    def untried_actions(self) -> list[Action]:
        """
        List the executable actions that have no child yet.

        Returns
        -------
        list[Action]
            Untried actions, in ``executable_actions()`` order.

        Notes
        -----
        Actions are expanded in order, so the untried ones are exactly the tail of ``legal_actions``
        past the current number of children. Actions need not be hashable or comparable.
        """
        return self.legal_actions[len(self.children) :]

    def add_child(self) -> SearchNode:
        """
        Expand the next untried action into a new child.

        The node's state is cloned and the action is applied to the clone, never to the node's own
        state.

        Returns
        -------
        SearchNode
            The newly created child.

        Raises
        ------
        ValueError
            If all actions have been tried. Node should be fully expanded.
        """
        untried = self.untried_actions()
        if not untried:
            raise ValueError('All actions have been tried. Node should be fully expanded.')
        action = untried[0]
        child_state = self.state.clone_for_child()
        action.apply_effects(child_state)
        child = SearchNode(state=child_state, action=action, parent_ref=ref(self), depth=self.depth + 1)
        self.children.append(child)
        return child

    def update(self, reward: float) -> None:
        """
        Update node statistics after a playout.

        Parameters
        ----------
        reward : float
            The reward received from the playout.
        """
        self.values += reward
        self.visits += 1
