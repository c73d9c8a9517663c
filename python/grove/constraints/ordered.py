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
"""Ordered: symmetry breaking over template variables.

Wherever the template matches, the subtrees bound to the variables listed in
``order`` must be non-decreasing in the canonical tree order (root rule
index first, then children left to right). For a commutative operator this
keeps ``a + b`` and drops ``b + a``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Dict, Optional, Tuple

from ..solver.solver import Comparison
from ..tree.nodes import Path, TemplateNode, template_variables
from ..tree.patterns import Match, NoMatch, pattern_match
from .base import GrammarConstraint, LocalConstraint, in_subtree, remap_template, template_is_valid

if TYPE_CHECKING:
    from ..grammar.grammar import Grammar
    from ..solver.solver import Solver


@dataclass(frozen=True)
class Ordered(GrammarConstraint):
    template: TemplateNode
    order: Tuple[str, ...] = field(default=())

    def __post_init__(self):
        if not isinstance(self.order, tuple):
            object.__setattr__(self, "order", tuple(self.order))

    def on_new_node(self, solver: Solver, path: Path) -> None:
        node = solver.get_node_at(path)
        if not isinstance(pattern_match(self.template, node, solver.grammar, path), NoMatch):
            solver.post(LocalOrdered(path, self.template, self.order))

    def is_domain_valid(self, grammar: Grammar) -> bool:
        names = template_variables(self.template)
        if len(self.order) < 2 or any(name not in names for name in self.order):
            return False
        return template_is_valid(self.template, grammar)

    def issame(self, other: GrammarConstraint) -> bool:
        return self == other

    def remap(self, mapping: Dict[int, int]) -> Optional[Ordered]:
        template = remap_template(self.template, mapping)
        return None if template is None else Ordered(template, self.order)

    def __str__(self) -> str:
        return f"Ordered({self.template}, {list(self.order)})"


@dataclass(frozen=True)
class LocalOrdered(LocalConstraint):
    path: Path
    template: TemplateNode
    order: Tuple[str, ...]

    def shouldschedule(self, solver: Solver, path: Path) -> bool:
        return in_subtree(self.path, path)

    def propagate(self, solver: Solver) -> None:
        node = solver.get_node_at(self.path)
        result = pattern_match(self.template, node, solver.grammar, self.path)
        if isinstance(result, NoMatch):
            solver.deactivate(self)
            return
        if not isinstance(result, Match):
            return

        settled = True
        for first, second in zip(self.order, self.order[1:]):
            outcome = solver.make_less_than_or_equal(
                result.bindings[first], result.bindings[second]
            )
            if outcome is Comparison.VIOLATED:
                return
            if outcome is Comparison.UNDECIDED:
                settled = False
        if settled:
            solver.deactivate(self)
