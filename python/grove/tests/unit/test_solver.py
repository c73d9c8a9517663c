# Copyright Rand Arete @ Ananke 2025
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# ==============================================================================
"""Unit tests for the propagation solver primitives."""

import pytest

from grove.constraints import Forbidden
from grove.core.errors import PathError, StructuralError
from grove.solver import Comparison, Solver
from grove.tree import Hole, RuleNode

ONE, X, NEG, PLUS, TIMES = range(5)
ALL = 0b11111


def make_solver(grammar, max_depth=None, max_size=None, root=None):
    root = root if root is not None else Hole("Int", grammar.domain_for("Int"))
    return Solver(grammar, root, max_depth=max_depth, max_size=max_size)


@pytest.fixture
def sum_solver(arithmetic_grammar):
    """Solver whose root is already a + with two open children."""
    solver = make_solver(arithmetic_grammar)
    solver.fill((), PLUS)
    assert solver.fix_point()
    return solver


# =============================================================================
# Construction and getters
# =============================================================================


class TestConstruction:
    """Tests for creating solvers."""

    def test_rejects_bad_bounds(self, arithmetic_grammar):
        with pytest.raises(ValueError):
            make_solver(arithmetic_grammar, max_size=0)

    def test_rejects_malformed_tree(self, arithmetic_grammar):
        with pytest.raises(StructuralError):
            make_solver(arithmetic_grammar, root=RuleNode(PLUS, (RuleNode(ONE),)))

    def test_initial_state(self, arithmetic_grammar):
        solver = make_solver(arithmetic_grammar)
        assert solver.isfeasible()
        assert solver.get_tree() == Hole("Int", ALL)
        assert not solver.is_complete()


class TestGetters:
    """Tests for get_path, get_node_at and get_hole_at."""

    def test_get_path_uses_identity(self, sum_solver):
        node = sum_solver.get_node_at((1,))
        assert sum_solver.get_path(node) == (1,)
        with pytest.raises(PathError):
            sum_solver.get_path(Hole("Int", ALL))

    def test_get_hole_at(self, sum_solver):
        assert sum_solver.get_hole_at((0,)).domain == ALL
        with pytest.raises(PathError):
            sum_solver.get_hole_at(())

    def test_get_hole_at_singleton(self, sum_solver):
        sum_solver.remove_all_but((0,), [X])
        with pytest.raises(PathError):
            sum_solver.get_hole_at((0,))

    def test_invalid_path(self, sum_solver):
        with pytest.raises(PathError):
            sum_solver.remove((0, 3), ONE)


# =============================================================================
# Domain primitives
# =============================================================================


class TestRemove:
    """Tests for remove / remove_all_but / remove_above / remove_below."""

    def test_remove_single_and_many(self, sum_solver):
        sum_solver.remove((0,), ONE)
        sum_solver.remove((1,), [NEG, TIMES])
        assert sum_solver.get_node_at((0,)).rules == [X, NEG, PLUS, TIMES]
        assert sum_solver.get_node_at((1,)).rules == [ONE, X, PLUS]
        assert sum_solver.isfeasible()

    def test_remove_all_but_accepts_bitset(self, sum_solver):
        sum_solver.remove_all_but((0,), (1 << NEG) | (1 << PLUS))
        assert sum_solver.get_node_at((0,)).rules == [NEG, PLUS]

    def test_remove_above_and_below(self, sum_solver):
        sum_solver.remove_above((0,), NEG)
        sum_solver.remove_below((1,), NEG)
        assert sum_solver.get_node_at((0,)).rules == [ONE, X, NEG]
        assert sum_solver.get_node_at((1,)).rules == [NEG, PLUS, TIMES]

    def test_emptied_domain_is_infeasible(self, sum_solver):
        sum_solver.remove_all_but((0,), [ONE])
        sum_solver.remove((0,), ONE)
        assert not sum_solver.isfeasible()

    def test_filled_node_keeps_its_rule(self, sum_solver):
        """On a RuleNode, removing another rule is a no-op."""
        sum_solver.remove((), TIMES)
        assert sum_solver.isfeasible()
        sum_solver.remove_below((), PLUS)
        assert sum_solver.isfeasible()

    def test_filled_node_losing_its_rule(self, sum_solver):
        sum_solver.remove_above((), NEG)
        assert not sum_solver.isfeasible()

    def test_set_infeasible_discards_work(self, sum_solver):
        sum_solver.set_infeasible("test")
        assert not sum_solver.isfeasible()
        assert sum_solver.fix_point() is False


class TestFill:
    """Tests for fill and materialize_singletons."""

    def test_fill_creates_child_holes(self, sum_solver):
        assert sum_solver.get_tree() == RuleNode(PLUS, (Hole("Int", ALL), Hole("Int", ALL)))
        assert sum_solver.stats["fills"] == 1

    def test_fill_twice_rejected(self, sum_solver):
        with pytest.raises(PathError):
            sum_solver.fill((), TIMES)

    def test_fill_outside_domain_is_infeasible(self, sum_solver):
        sum_solver.remove((0,), X)
        sum_solver.fill((0,), X)
        assert not sum_solver.isfeasible()

    def test_materialize_singletons(self, sum_solver):
        sum_solver.remove_all_but((0,), [X])
        sum_solver.remove_all_but((1,), [NEG])
        assert sum_solver.materialize_singletons()
        tree = sum_solver.get_tree()
        assert tree.children[0] == RuleNode(X)
        assert tree.children[1] == RuleNode(NEG, (Hole("Int", ALL),))
        assert not sum_solver.materialize_singletons()


class TestBounds:
    """Tests for depth and size pruning."""

    def test_depth_limits_child_domains(self, arithmetic_grammar):
        solver = make_solver(arithmetic_grammar, max_depth=2)
        solver.fill((), PLUS)
        assert solver.get_node_at((0,)).rules == [ONE, X]

    def test_depth_too_small_for_rule(self, arithmetic_grammar):
        solver = make_solver(arithmetic_grammar, max_depth=1)
        solver.fill((), PLUS)
        assert not solver.isfeasible()

    def test_size_prunes_root(self, arithmetic_grammar):
        solver = make_solver(arithmetic_grammar, max_size=2)
        assert solver.fix_point()
        assert solver.get_node_at(()).rules == [ONE, X, NEG]

    def test_size_prunes_children(self, arithmetic_grammar):
        solver = make_solver(arithmetic_grammar, max_size=3)
        solver.fill((), PLUS)
        assert solver.fix_point()
        assert solver.get_node_at((0,)).rules == [ONE, X]
        assert solver.get_node_at((1,)).rules == [ONE, X]
        assert solver.size_lower_bound() == 3
        assert solver.size_slack() == 0
        assert solver.hole_min_size((0,)) == 1

    def test_depth_budget(self, arithmetic_grammar):
        solver = make_solver(arithmetic_grammar, max_depth=3)
        assert solver.depth_budget(()) == 3
        assert solver.depth_budget((0, 1)) == 1
        assert make_solver(arithmetic_grammar).depth_budget(()) is None

    def test_size_exceeded_is_infeasible(self, arithmetic_grammar):
        solver = make_solver(arithmetic_grammar, max_size=4)
        solver.fill((), PLUS)
        solver.fill((0,), PLUS)
        assert solver.fix_point() is False


# =============================================================================
# Forking
# =============================================================================


class TestFork:
    """Tests for branch isolation."""

    def test_fork_isolates_changes(self, sum_solver):
        branch = sum_solver.fork()
        branch.fill((0,), NEG)
        assert isinstance(branch.get_node_at((0,)), RuleNode)
        assert isinstance(sum_solver.get_node_at((0,)), Hole)

    def test_fork_shares_untouched_subtrees(self, sum_solver):
        branch = sum_solver.fork()
        branch.fill((0,), NEG)
        assert branch.get_node_at((1,)) is sum_solver.get_node_at((1,))

    def test_fork_copies_equivalences(self, sum_solver):
        branch = sum_solver.fork()
        branch.make_equal((0,), (1,))
        assert branch.equivalent_paths((0,)) == [(0,), (1,)]
        assert sum_solver.equivalent_paths((0,)) == [(0,)]


# =============================================================================
# make_equal
# =============================================================================


class TestMakeEqual:
    """Tests for structural unification of two positions."""

    def test_holes_intersect(self, sum_solver):
        sum_solver.remove_all_but((0,), [ONE, X, NEG])
        sum_solver.remove_all_but((1,), [X, NEG, PLUS])
        sum_solver.make_equal((0,), (1,))
        assert sum_solver.get_node_at((0,)).rules == [X, NEG]
        assert sum_solver.get_node_at((1,)).rules == [X, NEG]

    def test_filled_side_copies_into_hole(self, sum_solver):
        sum_solver.fill((0,), NEG)
        sum_solver.fill((0, 0), ONE)
        sum_solver.make_equal((0,), (1,))
        assert sum_solver.get_node_at((1,)) == RuleNode(NEG, (RuleNode(ONE),))
        assert sum_solver.isfeasible()

    def test_different_rules_infeasible(self, sum_solver):
        sum_solver.fill((0,), ONE)
        sum_solver.fill((1,), X)
        sum_solver.make_equal((0,), (1,))
        assert not sum_solver.isfeasible()

    def test_equality_holds_henceforth(self, sum_solver):
        """Later changes at one side are mirrored at the other."""
        sum_solver.make_equal((0,), (1,))
        sum_solver.remove((0,), ONE)
        assert ONE not in sum_solver.get_node_at((1,)).rules
        sum_solver.fill((1,), TIMES)
        assert sum_solver.get_node_at((0,)) == RuleNode(TIMES, (Hole("Int", ALL), Hole("Int", ALL)))
        sum_solver.fill((0, 1), X)
        assert sum_solver.get_node_at((1, 1)) == RuleNode(X)

    def test_ancestor_cannot_equal_descendant(self, sum_solver):
        sum_solver.make_equal((), (0,))
        assert not sum_solver.isfeasible()

    def test_reactivates_constraints_while_unifying(self, arithmetic_grammar):
        """Constraints retired on a subtree come back when make_equal changes it."""
        arithmetic_grammar.addconstraint(Forbidden(RuleNode(NEG, (RuleNode(ONE),))))
        solver = make_solver(arithmetic_grammar)
        solver.fill((), PLUS)
        solver.fill((0,), ONE)
        assert solver.fix_point()
        retired = len(solver.deactivated_constraints)
        assert retired > 0

        solver.make_equal((0,), (1,))

        assert solver.stats["reactivations"] >= 1
        assert solver.fix_point()
        assert solver.get_node_at((1,)) == RuleNode(ONE)
        assert len(solver.deactivated_constraints) >= retired


# =============================================================================
# make_less_than_or_equal
# =============================================================================


class TestMakeLessThanOrEqual:
    """Tests for the canonical tree order."""

    def test_open_holes_undecided(self, sum_solver):
        assert sum_solver.make_less_than_or_equal((0,), (1,)) is Comparison.UNDECIDED
        assert sum_solver.get_node_at((0,)).domain == ALL

    def test_hole_bounded_by_filled(self, sum_solver):
        sum_solver.remove_all_but((1,), [ONE])
        assert sum_solver.make_less_than_or_equal((0,), (1,)) is Comparison.EQUAL
        assert sum_solver.get_node_at((0,)).rules == [ONE]

    def test_filled_bounds_hole(self, sum_solver):
        sum_solver.fill((0,), X)
        assert sum_solver.make_less_than_or_equal((0,), (1,)) is Comparison.UNDECIDED
        assert sum_solver.get_node_at((1,)).rules == [X, NEG, PLUS, TIMES]

    def test_strictly_less(self, sum_solver):
        sum_solver.fill((0,), ONE)
        sum_solver.fill((1,), NEG)
        assert sum_solver.make_less_than_or_equal((0,), (1,)) is Comparison.LESS

    def test_violated(self, sum_solver):
        sum_solver.fill((0,), X)
        sum_solver.fill((1,), ONE)
        assert sum_solver.make_less_than_or_equal((0,), (1,)) is Comparison.VIOLATED
        assert not sum_solver.isfeasible()

    def test_children_compared_left_to_right(self, sum_solver):
        for path in ((0,), (1,)):
            sum_solver.fill(path, NEG)
        sum_solver.fill((0, 0), X)
        sum_solver.fill((1, 0), ONE)
        assert sum_solver.make_less_than_or_equal((0,), (1,)) is Comparison.VIOLATED

    def test_disjoint_holes_are_less(self, sum_solver):
        sum_solver.remove_all_but((0,), [ONE, X])
        sum_solver.remove_all_but((1,), [PLUS, TIMES])
        assert sum_solver.make_less_than_or_equal((0,), (1,)) is Comparison.LESS
