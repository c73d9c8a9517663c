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
"""Unique: a rule may occur at most once in the tree."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Dict, Optional

from ..core.domain import domain_contains
from ..tree.nodes import Path, RuleNode, iter_nodes
from .base import GrammarConstraint, LocalConstraint

if TYPE_CHECKING:
    from ..grammar.grammar import Grammar
    from ..solver.solver import Solver


@dataclass(frozen=True)
class Unique(GrammarConstraint):
    rule: int

    def on_new_node(self, solver: Solver, path: Path) -> None:
        if not path:
            solver.post(LocalUnique((), self.rule))

    def is_domain_valid(self, grammar: Grammar) -> bool:
        return grammar.is_live(self.rule)

    def issame(self, other: GrammarConstraint) -> bool:
        return self == other

    def remap(self, mapping: Dict[int, int]) -> Optional[Unique]:
        if self.rule not in mapping:
            return None
        return Unique(mapping[self.rule])

    def __str__(self) -> str:
        return f"Unique({self.rule})"


@dataclass(frozen=True)
class LocalUnique(LocalConstraint):
    path: Path
    rule: int

    def shouldschedule(self, solver: Solver, path: Path) -> bool:
        return True

    def propagate(self, solver: Solver) -> None:
        target = 1 << self.rule
        count = 0
        open_holes = []
        for path, node in iter_nodes(solver.get_tree()):
            if isinstance(node, RuleNode):
                count += node.rule == self.rule
            elif node.domain == target:
                count += 1
            elif domain_contains(node.domain, self.rule):
                open_holes.append(path)

        if count > 1:
            solver.set_infeasible(f"rule {self.rule} occurs {count} times")
        elif count == 1:
            for path in open_holes:
                solver.remove(path, self.rule)
                if not solver.isfeasible():
                    return
