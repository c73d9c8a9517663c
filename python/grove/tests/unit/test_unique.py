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
"""Unit tests for the Unique constraint."""

from grove.constraints import LocalUnique, Unique
from grove.search import BFSEnumerator, DFSEnumerator
from grove.solver import Solver
from grove.tree import Hole, RuleNode, iter_nodes

ONE, X, NEG, PLUS, TIMES = range(5)


class TestUnique:
    def test_first_occurrence_strikes_the_rest(self, arithmetic_grammar):
        arithmetic_grammar.addconstraint(Unique(ONE))
        solver = Solver(arithmetic_grammar, Hole("Int", arithmetic_grammar.domain_for("Int")))
        solver.fill((), PLUS)
        solver.fill((0,), ONE)
        assert solver.fix_point()
        assert solver.get_node_at((1,)).rules == [X, NEG, PLUS, TIMES]

    def test_stays_active(self, arithmetic_grammar):
        """New holes keep appearing, so the check never retires."""
        arithmetic_grammar.addconstraint(Unique(ONE))
        solver = Solver(arithmetic_grammar, Hole("Int", arithmetic_grammar.domain_for("Int")))
        solver.fill((), PLUS)
        solver.fill((0,), ONE)
        solver.fix_point()
        assert LocalUnique((), ONE) in solver.active_constraints

    def test_second_occurrence_is_infeasible(self, arithmetic_grammar):
        arithmetic_grammar.addconstraint(Unique(ONE))
        solver = Solver(arithmetic_grammar, RuleNode(PLUS, (RuleNode(ONE), RuleNode(ONE))))
        assert not solver.fix_point()

    def test_singleton_hole_counts_as_occurrence(self, arithmetic_grammar):
        arithmetic_grammar.addconstraint(Unique(X))
        tree = RuleNode(PLUS, (Hole("Int", 1 << X), Hole("Int", (1 << X) | (1 << NEG))))
        solver = Solver(arithmetic_grammar, tree)
        assert solver.fix_point()
        assert solver.get_node_at((1,)).rules == [NEG]

    def test_enumeration(self, arithmetic_grammar):
        arithmetic_grammar.addconstraint(Unique(ONE))
        bfs = list(BFSEnumerator(arithmetic_grammar, "Int", max_size=3))
        dfs = list(DFSEnumerator(arithmetic_grammar, "Int", max_size=3))
        assert len(bfs) == 12
        assert set(bfs) == set(dfs)
        for tree in bfs:
            assert sum(node.rule == ONE for _, node in iter_nodes(tree)) <= 1
