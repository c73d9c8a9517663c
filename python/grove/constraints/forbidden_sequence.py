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
"""ForbiddenSequence: forbid a chain of rules along a root-to-leaf path.

The rules of ``sequence`` may not appear in that order (not necessarily
adjacent) on any path from the root downwards, unless a rule of
``ignore_if`` sits between two matched elements.

A check is posted at every position and looks upwards: the position itself
must be the last element and its ancestors must supply the rest. Ancestors
are always decided, so the check concludes the moment it runs.

Example:
    >>> # forbid "1" anywhere under "+", unless a "*" lies in between
    >>> ForbiddenSequence((plus, one), ignore_if=(times,))
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Dict, Optional, Tuple

from ..core.domain import domain_contains
from ..tree.nodes import Hole, Path, RuleNode, get_node_at
from .base import GrammarConstraint, LocalConstraint

if TYPE_CHECKING:
    from ..grammar.grammar import Grammar
    from ..solver.solver import Solver


@dataclass(frozen=True)
class ForbiddenSequence(GrammarConstraint):
    sequence: Tuple[int, ...]
    ignore_if: Tuple[int, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "sequence", tuple(self.sequence))
        object.__setattr__(self, "ignore_if", tuple(self.ignore_if))

    def on_new_node(self, solver: Solver, path: Path) -> None:
        solver.post(LocalForbiddenSequence(path, self.sequence, self.ignore_if))

    def is_domain_valid(self, grammar: Grammar) -> bool:
        if not self.sequence:
            return False
        return all(grammar.is_live(rule) for rule in self.sequence + self.ignore_if)

    def issame(self, other: GrammarConstraint) -> bool:
        return self == other

    def remap(self, mapping: Dict[int, int]) -> Optional[ForbiddenSequence]:
        if any(rule not in mapping for rule in self.sequence):
            return None
        return ForbiddenSequence(
            tuple(mapping[rule] for rule in self.sequence),
            tuple(mapping[rule] for rule in self.ignore_if if rule in mapping),
        )

    def __str__(self) -> str:
        return f"ForbiddenSequence({list(self.sequence)}, ignore_if={list(self.ignore_if)})"


@dataclass(frozen=True)
class LocalForbiddenSequence(LocalConstraint):
    path: Path
    sequence: Tuple[int, ...]
    ignore_if: Tuple[int, ...]

    def shouldschedule(self, solver: Solver, path: Path) -> bool:
        return path == self.path

    def propagate(self, solver: Solver) -> None:
        node = solver.get_node_at(self.path)
        last = self.sequence[-1]
        if isinstance(node, RuleNode):
            possible = node.rule == last
        else:
            possible = domain_contains(node.domain, last)

        if possible and self._prefix_above(solver):
            if isinstance(node, Hole) and node.domain != 1 << last:
                solver.deactivate(self)
                solver.remove(self.path, last)
                return
            solver.set_infeasible(f"forbidden sequence {list(self.sequence)} ends at {self.path}")
            return
        solver.deactivate(self)

    def _prefix_above(self, solver: Solver) -> bool:
        """True if the ancestors complete the sequence without interruption.

        Walks upwards matching elements greedily from the end; taking the
        nearest occurrence of each element leaves the least room for an
        ignore_if rule in between.
        """
        remaining = len(self.sequence) - 1
        tree = solver.get_tree()
        for depth in range(len(self.path) - 1, -1, -1):
            if remaining == 0:
                break
            rule = get_node_at(tree, self.path[:depth]).rule
            if rule == self.sequence[remaining - 1]:
                remaining -= 1
            elif rule in self.ignore_if:
                return False
        return remaining == 0
