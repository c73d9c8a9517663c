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
"""Top-down enumeration of complete trees.

Each frontier entry is a Solver holding one partial tree. Expanding an entry
picks one hole and creates a branch per rule in its domain:

1. Fork the solver
2. Fill the hole with the rule
3. Propagate to a fixpoint and materialize holes left with one rule
4. Keep the branch if it is still feasible

A feasible branch without holes is a complete tree and is yielded. Branches
that break a constraint or cannot fit the bounds disappear silently.

Enumeration is lazy: trees are produced as the caller pulls them, and
iterating again starts from scratch with identical output.

Example:
    >>> enumerator = BFSEnumerator(grammar, "Int", max_depth=2)
    >>> [grammar.render(tree) for tree in enumerator]
    ['1', '2', '*(1, 1)', '*(1, 2)', '*(2, 1)', '*(2, 2)']
"""

from __future__ import annotations

import heapq
import logging
from abc import ABC, abstractmethod
from typing import Iterator, List, Optional

from ..core.domain import iter_rules
from ..core.errors import StructuralError
from ..grammar.grammar import Grammar
from ..solver.solver import Solver
from ..tree.nodes import Hole, Path, RuleNode, first_hole, iter_holes
from .config import SearchConfig, SearchStats, SearchStrategy

logger = logging.getLogger(__name__)


class TopDownEnumerator(ABC):
    """Shared machinery of the frontier-based enumerators."""

    strategy: SearchStrategy

    def __init__(
        self,
        grammar: Grammar,
        start: str,
        max_depth: Optional[int] = None,
        max_size: Optional[int] = None,
        config: Optional[SearchConfig] = None,
    ):
        """Initialize the enumerator.

        Args:
            grammar: Grammar with its attached constraints
            start: Category of the root
            max_depth: Maximum depth; overrides config.max_depth
            max_size: Maximum size; overrides config.max_size
            config: Optional configuration

        Raises:
            StructuralError: If start is not a category of grammar
            ValueError: If a bound is smaller than 1
        """
        if start not in grammar.categories:
            raise StructuralError(f"unknown start category {start!r}")
        if config is None:
            config = SearchConfig(strategy=self.strategy)
        self.grammar = grammar
        self.start = start
        self.config = SearchConfig(
            strategy=self.strategy,
            max_depth=config.max_depth if max_depth is None else max_depth,
            max_size=config.max_size if max_size is None else max_size,
        )
        self._stats = SearchStats()

    @property
    def max_depth(self) -> Optional[int]:
        return self.config.max_depth

    @property
    def max_size(self) -> Optional[int]:
        return self.config.max_size

    @property
    def stats(self) -> SearchStats:
        """Statistics of the most recent pass."""
        return self._stats

    def __iter__(self) -> Iterator[RuleNode]:
        self._stats = SearchStats()
        root = self._initial_state()
        if root is None:
            logger.debug(f"No tree of category {self.start!r} fits the bounds")
            return
        logger.debug(
            f"Enumerating {self.start!r} with {self.strategy.name}, "
            f"max_depth={self.max_depth}, max_size={self.max_size}"
        )
        yield from self._search(root)
        logger.debug(f"Enumeration finished: {self._stats.to_dict()}")

    def count(self) -> int:
        """Number of complete trees; runs a full pass."""
        return sum(1 for _ in self)

    def _initial_state(self) -> Optional[Solver]:
        analysis = self.grammar.analysis
        domain = self.grammar.domain_for(self.start) & analysis.within_depth(self.max_depth)
        if not domain:
            return None
        solver = Solver(self.grammar, Hole(self.start, domain), self.max_depth, self.max_size)
        return solver if self._settle(solver) else None

    @staticmethod
    def _settle(solver: Solver) -> bool:
        """Propagate and materialize until neither makes progress."""
        while True:
            if not solver.fix_point():
                return False
            if not solver.materialize_singletons():
                return solver.isfeasible()

    def _expand(self, state: Solver) -> List[Solver]:
        """Branch on one hole of state, keeping the feasible children."""
        path = self._select_hole(state)
        hole = state.get_node_at(path)
        self._stats.expansions += 1
        children = []
        for rule in iter_rules(hole.domain):
            branch = state.fork()
            branch.fill(path, rule)
            self._stats.branches += 1
            if self._settle(branch):
                children.append(branch)
            else:
                self._stats.pruned += 1
        return children

    @abstractmethod
    def _select_hole(self, state: Solver) -> Path:
        """Path of the hole to branch on next."""
        pass

    @abstractmethod
    def _search(self, root: Solver) -> Iterator[RuleNode]:
        pass


class BFSEnumerator(TopDownEnumerator):
    """Breadth-first enumeration in non-decreasing tree size.

    The frontier is a priority queue keyed by the size of the smallest
    completion of each partial tree, ties broken by insertion order. A
    complete tree is queued like any other entry and yielded when it
    reaches the front, so no smaller tree can still be pending.
    """

    strategy = SearchStrategy.BFS

    def _select_hole(self, state: Solver) -> Path:
        return min((path for path, _ in iter_holes(state.get_tree())), key=lambda p: (len(p), p))

    def _search(self, root: Solver) -> Iterator[RuleNode]:
        sequence = 0
        frontier = [(root.size_lower_bound(), sequence, root)]
        while frontier:
            _, _, state = heapq.heappop(frontier)
            if state.is_complete():
                self._stats.yielded += 1
                yield state.get_tree()
                continue
            for child in self._expand(state):
                sequence += 1
                heapq.heappush(frontier, (child.size_lower_bound(), sequence, child))
            self._stats.max_frontier = max(self._stats.max_frontier, len(frontier))


class DFSEnumerator(TopDownEnumerator):
    """Depth-first enumeration, leftmost hole first."""

    strategy = SearchStrategy.DFS

    def _select_hole(self, state: Solver) -> Path:
        return first_hole(state.get_tree())

    def _search(self, root: Solver) -> Iterator[RuleNode]:
        stack = [root]
        while stack:
            state = stack.pop()
            if state.is_complete():
                self._stats.yielded += 1
                yield state.get_tree()
                continue
            stack.extend(reversed(self._expand(state)))
            self._stats.max_frontier = max(self._stats.max_frontier, len(stack))


def create_enumerator(
    grammar: Grammar,
    start: str,
    config: Optional[SearchConfig] = None,
) -> TopDownEnumerator:
    """Build the enumerator selected by config.strategy.

    Args:
        grammar: Grammar with its attached constraints
        start: Category of the root
        config: Strategy and bounds; BFS without bounds if None

    Returns:
        A BFSEnumerator or DFSEnumerator
    """
    config = config or SearchConfig()
    if config.strategy is SearchStrategy.DFS:
        return DFSEnumerator(grammar, start, config=config)
    return BFSEnumerator(grammar, start, config=config)
