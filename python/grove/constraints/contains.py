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
"""Contains: a rule must occur somewhere in the tree.

The check is posted once, at the root. It is satisfied as soon as the rule
is decided at some position. Until then every hole is a potential host if
some rule of its domain can grow the target within the remaining size and
depth budget. No host left means the branch is dead; a single host is
narrowed to the rules that can grow the target.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Dict, Optional

from ..core.errors import StructuralError
from ..tree.nodes import Path, RuleNode, iter_nodes
from .base import GrammarConstraint, LocalConstraint, viable_hosts

if TYPE_CHECKING:
    from ..grammar.grammar import Grammar
    from ..solver.solver import Solver


@dataclass(frozen=True)
class Contains(GrammarConstraint):
    rule: int

    def on_new_node(self, solver: Solver, path: Path) -> None:
        if not path:
            solver.post(LocalContains((), self.rule))

    def is_domain_valid(self, grammar: Grammar) -> bool:
        return grammar.is_live(self.rule)

    def issame(self, other: GrammarConstraint) -> bool:
        return self == other

    def remap(self, mapping: Dict[int, int]) -> Optional[Contains]:
        if self.rule not in mapping:
            raise StructuralError(f"Contains({self.rule}) needs a removed rule")
        return Contains(mapping[self.rule])

    def __str__(self) -> str:
        return f"Contains({self.rule})"


@dataclass(frozen=True)
class LocalContains(LocalConstraint):
    path: Path
    rule: int

    def shouldschedule(self, solver: Solver, path: Path) -> bool:
        return True

    def propagate(self, solver: Solver) -> None:
        target = 1 << self.rule
        total = solver.size_lower_bound()
        hosts = []
        for path, node in iter_nodes(solver.get_tree()):
            if isinstance(node, RuleNode):
                if node.rule == self.rule:
                    solver.deactivate(self)
                    return
                continue
            if node.domain == target:
                solver.deactivate(self)
                return
            viable = viable_hosts(solver, path, node, target, total)
            if viable:
                hosts.append((path, node, viable))

        if not hosts:
            solver.set_infeasible(f"rule {self.rule} can no longer occur")
        elif len(hosts) == 1:
            path, hole, viable = hosts[0]
            if viable != hole.domain:
                solver.remove_all_but(path, viable)
