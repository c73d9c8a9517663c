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
"""ContainsSubtree: some subtree must match a template.

Candidates for the match are the decided positions where the template
partially matches, and the holes that can still grow a position where it
could match. With no candidate left the branch is dead. When the only
candidate is one partial match at a decided position, the match is forced
there: its holes are narrowed and its repeated variables unified. When the
only candidate is one hole, it keeps just the rules able to host a match.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Dict, Optional

from ..core.errors import StructuralError
from ..tree.nodes import Hole, Path, TemplateNode, iter_nodes
from ..tree.patterns import Match, PartialMatch, pattern_match
from .base import (
    GrammarConstraint,
    LocalConstraint,
    remap_template,
    template_is_valid,
    template_root_domain,
    viable_hosts,
)

if TYPE_CHECKING:
    from ..grammar.grammar import Grammar
    from ..solver.solver import Solver


@dataclass(frozen=True)
class ContainsSubtree(GrammarConstraint):
    template: TemplateNode

    def on_new_node(self, solver: Solver, path: Path) -> None:
        if not path and template_root_domain(self.template) is not None:
            solver.post(LocalContainsSubtree((), self.template))

    def is_domain_valid(self, grammar: Grammar) -> bool:
        return template_is_valid(self.template, grammar)

    def issame(self, other: GrammarConstraint) -> bool:
        return self == other

    def remap(self, mapping: Dict[int, int]) -> Optional[ContainsSubtree]:
        template = remap_template(self.template, mapping)
        if template is None:
            raise StructuralError(f"{self} needs a removed rule")
        return ContainsSubtree(template)

    def __str__(self) -> str:
        return f"ContainsSubtree({self.template})"


@dataclass(frozen=True)
class LocalContainsSubtree(LocalConstraint):
    path: Path
    template: TemplateNode

    def shouldschedule(self, solver: Solver, path: Path) -> bool:
        return True

    def propagate(self, solver: Solver) -> None:
        targets = template_root_domain(self.template)
        total = solver.size_lower_bound()
        partials = []
        growing = []
        for path, node in iter_nodes(solver.get_tree()):
            result = pattern_match(self.template, node, solver.grammar, path)
            if isinstance(result, Match):
                solver.deactivate(self)
                return
            if isinstance(node, Hole):
                viable = viable_hosts(solver, path, node, targets, total)
                if viable:
                    growing.append((path, node, viable))
            elif isinstance(result, PartialMatch):
                partials.append(result)

        if not partials and not growing:
            solver.set_infeasible(f"{self.template} can no longer occur")
        elif len(partials) == 1 and not growing:
            self._enforce(solver, partials[0])
        elif not partials and len(growing) == 1:
            path, hole, viable = growing[0]
            if viable != hole.domain:
                solver.remove_all_but(path, viable)

    def _enforce(self, solver: Solver, match: PartialMatch) -> None:
        for requirement in match.holes:
            solver.remove_all_but(requirement.path, requirement.domain)
            if not solver.isfeasible():
                return
        for first, second in match.equalities:
            solver.make_equal(first, second)
            if not solver.isfeasible():
                return
