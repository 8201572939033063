"""
Tests for MCTSPlanner (episode life cycle, frame budgets and tree statistics).
"""

from unittest import TestCase, main

from numpy.random import PCG64DXSM, default_rng

from frame_mcts.addons.config import PlannerConfig
from frame_mcts.addons.errors import InvalidStateError, MalformedCollaboratorError, NoActionAvailableError
from frame_mcts.addons.types import Action, EpisodeState
from frame_mcts.mcts.planner import MCTSPlanner
from worlds import AddAction, CounterWorld, single_action_world, stuck_world, terminal_world


class UncloneableWorld(CounterWorld):
    """World whose snapshot cannot be taken."""

    def clone_for_child(self):
        raise RuntimeError('snapshot failed')


class StrictAction(AddAction):
    """Action refusing to be asked about applicability."""

    def is_applicable(self, world):
        raise AssertionError('applicability is left to the world model')


class StrictWorld(CounterWorld):
    """World reporting its actions without consulting them."""

    def __init__(self):
        super().__init__(turns_left=2)
        self.actions = (StrictAction(1.0), StrictAction(2.0))

    def executable_actions(self):
        return list(self.actions)


def walk(node):
    """Yield every node of a tree."""
    yield node
    for child in node.children:
        yield from walk(child)


class TestEpisodeLifeCycle(TestCase):
    """Test the NOT_STARTED -> IN_PROGRESS -> COMPLETED state machine."""

    def setUp(self):
        """Planner with a small budget."""
        self.planner = MCTSPlanner(PlannerConfig(max_iterations=5, max_iterations_per_frame=2, seed=0))

    def test_starts_not_started(self):
        """Fresh planner has no episode."""
        self.assertIs(self.planner.state, EpisodeState.NOT_STARTED)
        self.assertIsNone(self.planner.root)
        self.assertFalse(self.planner.in_progress)

    def test_run_without_episode_raises(self):
        """Running a batch before initializing is an invalid state."""
        with self.assertRaises(InvalidStateError):
            self.planner.run_iteration_batch()

    def test_initialize_twice_raises(self):
        """An in-progress episode cannot be silently restarted."""
        self.planner.initialize_episode(CounterWorld())

        with self.assertRaises(InvalidStateError):
            self.planner.initialize_episode(CounterWorld())

    def test_abandon_then_initialize(self):
        """Abandoning allows a new episode with a fresh tree."""
        self.planner.initialize_episode(CounterWorld())
        self.planner.run_iteration_batch()
        old_root = self.planner.root

        self.planner.abandon_episode()
        self.assertIs(self.planner.state, EpisodeState.NOT_STARTED)
        self.assertIsNone(self.planner.root)

        self.planner.initialize_episode(CounterWorld())
        self.assertIsNot(self.planner.root, old_root)
        self.assertEqual(self.planner.completed_iterations, 0)

    def test_budget_exhaustion_order(self):
        """Five iterations, two per frame: 2, 4, 5 then completed."""
        self.planner.initialize_episode(CounterWorld())

        completed, states = [], []
        for _ in range(3):
            self.planner.run_iteration_batch()
            completed.append(self.planner.completed_iterations)
            states.append(self.planner.state)

        self.assertEqual(completed, [2, 4, 5])
        self.assertEqual(states, [EpisodeState.IN_PROGRESS, EpisodeState.IN_PROGRESS, EpisodeState.COMPLETED])
        self.assertEqual(self.planner.iterations_in_frame, 1)

    def test_completed_episode_is_a_no_op(self):
        """After completion, batches return the same action and run nothing."""
        self.planner.initialize_episode(CounterWorld())
        for _ in range(3):
            action = self.planner.run_iteration_batch()
        visits = self.planner.root.visits

        again = self.planner.run_iteration_batch()

        self.assertIs(again, action)
        self.assertEqual(self.planner.completed_iterations, 5)
        self.assertEqual(self.planner.root.visits, visits)
        self.assertEqual(self.planner.iterations_in_frame, 0)

    def test_failed_initialize_keeps_previous_episode(self):
        """A world model failing to clone leaves the finished episode intact."""
        self.planner.initialize_episode(CounterWorld())
        for _ in range(3):
            action = self.planner.run_iteration_batch()
        old_root = self.planner.root

        with self.assertRaises(RuntimeError):
            self.planner.initialize_episode(UncloneableWorld())

        # ##>: State, tree and counters all still describe the completed episode.
        self.assertIs(self.planner.state, EpisodeState.COMPLETED)
        self.assertIs(self.planner.root, old_root)
        self.assertEqual(self.planner.completed_iterations, 5)
        self.assertEqual(self.planner.root.visits, self.planner.completed_iterations)
        self.assertIs(self.planner.run_iteration_batch(), action)
        self.assertIs(self.planner.best_action(), action)

    def test_completed_episode_can_restart(self):
        """Initializing after completion starts from scratch."""
        self.planner.initialize_episode(CounterWorld())
        for _ in range(3):
            self.planner.run_iteration_batch()

        self.planner.initialize_episode(CounterWorld())

        self.assertIs(self.planner.state, EpisodeState.IN_PROGRESS)
        self.assertEqual(self.planner.completed_iterations, 0)
        self.assertEqual(self.planner.max_selection_depth, 0)
        self.assertEqual(self.planner.total_processing_time, 0.0)
        self.assertIsNone(self.planner.best_first_child)
        self.assertTrue(self.planner.root.is_leaf())


class TestBudgets(TestCase):
    """Test that batches respect both budgets."""

    def test_budget_respect(self):
        """After N batches, completed iterations = min(N * per_frame, max_iterations)."""
        for max_iterations, per_frame in [(100, 10), (7, 3), (10, 10), (3, 5), (1, 1)]:
            planner = MCTSPlanner(
                PlannerConfig(max_iterations=max_iterations, max_iterations_per_frame=per_frame, seed=1)
            )
            planner.initialize_episode(CounterWorld(turns_left=4))
            for calls in range(1, 15):
                planner.run_iteration_batch()
                with self.subTest(max_iterations=max_iterations, per_frame=per_frame, calls=calls):
                    self.assertEqual(planner.completed_iterations, min(calls * per_frame, max_iterations))

    def test_zero_budget_completes_immediately(self):
        """An empty budget gives no decision."""
        planner = MCTSPlanner(PlannerConfig(max_iterations=0))
        planner.initialize_episode(CounterWorld())

        self.assertIs(planner.state, EpisodeState.COMPLETED)
        self.assertIsNone(planner.run_iteration_batch())
        with self.assertRaises(NoActionAvailableError):
            planner.best_action()


class TestScenarios(TestCase):
    """End-to-end planning scenarios."""

    def test_single_terminal_action_root(self):
        """One action straight to a terminal state worth 5.0."""
        world = single_action_world(5.0)
        planner = MCTSPlanner(PlannerConfig(max_iterations=1, max_iterations_per_frame=1, seed=0))
        planner.initialize_episode(world)

        action = planner.run_iteration_batch()

        root = planner.root
        self.assertEqual(len(root.children), 1)
        self.assertEqual(root.children[0].visits, 1)
        self.assertEqual(root.children[0].values, 5.0)
        self.assertIs(action, world.actions[0])
        self.assertIs(planner.best_action(), world.actions[0])
        self.assertIs(planner.state, EpisodeState.COMPLETED)

    def test_terminal_root(self):
        """Terminal root reports no action without expanding or playing out."""
        world = terminal_world()
        planner = MCTSPlanner(PlannerConfig(seed=0))
        planner.initialize_episode(world)

        self.assertIsNone(planner.run_iteration_batch())

        # ##>: Only the root snapshot was cloned; no action applied.
        self.assertEqual(world.tracker['clones'], 1)
        self.assertEqual(world.tracker['applied'], 0)
        self.assertEqual(planner.completed_iterations, 0)
        self.assertIs(planner.state, EpisodeState.COMPLETED)
        with self.assertRaises(NoActionAvailableError):
            planner.best_action()

    def test_best_action_prefers_higher_reward(self):
        """With enough iterations the highest-scoring action is reported."""
        world = CounterWorld(turns_left=1, amounts=(1.0, 3.0, 2.0))
        planner = MCTSPlanner(PlannerConfig(max_iterations=30, max_iterations_per_frame=10, seed=0))
        planner.initialize_episode(world)

        while planner.in_progress:
            action = planner.run_iteration_batch()

        self.assertIs(action, world.actions[1])
        self.assertIs(planner.best_first_child.action, world.actions[1])

    def test_best_action_sequence(self):
        """Best path follows the highest averages down the tree."""
        world = CounterWorld(turns_left=2, amounts=(1.0, 2.0))
        planner = MCTSPlanner(PlannerConfig(max_iterations=60, max_iterations_per_frame=60, seed=3))
        planner.initialize_episode(world)
        planner.run_iteration_batch()

        sequence = planner.best_action_sequence()

        self.assertEqual(sequence, [world.actions[1], world.actions[1]])
        self.assertIs(sequence[0], planner.best_action())

    def test_host_world_is_never_modified(self):
        """The planner searches on clones only."""
        world = CounterWorld(turns_left=4)
        planner = MCTSPlanner(PlannerConfig(max_iterations=40, seed=0))
        planner.initialize_episode(world)
        while planner.in_progress:
            planner.run_iteration_batch()

        self.assertEqual(world.total, 0.0)
        self.assertEqual(world.turns_left, 4)
        self.assertEqual(planner.root.state.total, 0.0)

    def test_applicability_is_not_queried(self):
        """The planner trusts executable_actions() and never calls is_applicable."""
        world = StrictWorld()
        planner = MCTSPlanner(PlannerConfig(max_iterations=10, seed=0))
        planner.initialize_episode(world)

        while planner.in_progress:
            action = planner.run_iteration_batch()

        self.assertIn(action, world.actions)
        self.assertEqual(planner.completed_iterations, 10)

    def test_default_action_is_applicable(self):
        """Actions are applicable unless they say otherwise."""
        class NoOp(Action):
            def apply_effects(self, world):
                pass

        self.assertTrue(NoOp().is_applicable(CounterWorld()))

    def test_malformed_world_raises(self):
        """A non-terminal world without actions is surfaced."""
        planner = MCTSPlanner(PlannerConfig(seed=0))
        planner.initialize_episode(stuck_world())

        with self.assertRaises(MalformedCollaboratorError):
            planner.run_iteration_batch()
        self.assertEqual(planner.completed_iterations, 0)


class TestTreeStatistics(TestCase):
    """Test the invariants of the grown tree."""

    def setUp(self):
        """Grow a tree over a few frames."""
        self.world = CounterWorld(turns_left=4, amounts=(1.0, 2.0, 3.0))
        self.planner = MCTSPlanner(PlannerConfig(max_iterations=50, max_iterations_per_frame=7, seed=11))
        self.planner.initialize_episode(self.world)
        while self.planner.in_progress:
            self.planner.run_iteration_batch()

    def test_root_visits_equal_iterations(self):
        """Every iteration goes through the root exactly once."""
        self.assertEqual(self.planner.root.visits, self.planner.completed_iterations)
        self.assertEqual(self.planner.root.visits, 50)

    def test_visits_match_playouts_below(self):
        """Non-terminal nodes: one playout started at expansion, the rest went to children."""
        root = self.planner.root
        self.assertEqual(root.visits, sum(child.visits for child in root.children))
        for node in walk(root):
            if node is root:
                continue
            if node.final:
                self.assertGreaterEqual(node.visits, 1)
                self.assertTrue(node.is_leaf())
            else:
                self.assertEqual(node.visits, 1 + sum(child.visits for child in node.children))

    def test_expansion_exhaustiveness(self):
        """No node has more children than actions, nor two children for the same action."""
        for node in walk(self.planner.root):
            self.assertLessEqual(len(node.children), len(node.legal_actions))
            self.assertEqual([child.action for child in node.children], node.legal_actions[: len(node.children)])

    def test_depth_high_water_marks(self):
        """Selection and playout depths are bounded by the game length."""
        stats = self.planner.statistics()

        self.assertEqual(stats.completed_iterations, 50)
        self.assertGreaterEqual(stats.max_selection_depth, 2)
        self.assertLessEqual(stats.max_selection_depth, 4)
        self.assertLessEqual(stats.max_playout_depth, 3)
        self.assertGreaterEqual(stats.total_processing_time, 0.0)
        self.assertIs(stats.state, EpisodeState.COMPLETED)

    def test_equal_seeds_equal_trees(self):
        """Same seed and world give the same visit distribution."""
        other = MCTSPlanner(PlannerConfig(max_iterations=50, max_iterations_per_frame=7, seed=11))
        other.initialize_episode(CounterWorld(turns_left=4, amounts=(1.0, 2.0, 3.0)))
        while other.in_progress:
            other.run_iteration_batch()

        mine = [(node.depth, node.visits, node.values) for node in walk(self.planner.root)]
        theirs = [(node.depth, node.visits, node.values) for node in walk(other.root)]
        self.assertEqual(mine, theirs)

    def test_injected_generator(self):
        """An injected generator replaces the seeded one."""
        first = MCTSPlanner(PlannerConfig(max_iterations=20, seed=None), generator=default_rng(PCG64DXSM(5)))
        second = MCTSPlanner(PlannerConfig(max_iterations=20, seed=None), generator=default_rng(PCG64DXSM(5)))
        for planner in (first, second):
            planner.initialize_episode(CounterWorld(turns_left=5))
            while planner.in_progress:
                planner.run_iteration_batch()

        self.assertEqual(
            [child.values for child in first.root.children], [child.values for child in second.root.children]
        )


if __name__ == '__main__':
    main()
