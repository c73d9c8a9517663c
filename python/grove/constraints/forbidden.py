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
"""Forbidden: no subtree may match a template.

Example:
    >>> # forbid 1 * anything, with rules 0: "1" and 4: "Int * Int"
    >>> grammar.addconstraint(Forbidden(RuleNode(4, (RuleNode(0), VarNode("a")))))
    True
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Dict, Optional

from ..core.domain import iter_rules
from ..tree.nodes import Path, TemplateNode
from ..tree.patterns import Match, NoMatch, pattern_match, single_complete_requirement
from .base import GrammarConstraint, LocalConstraint, in_subtree, remap_template, template_is_valid

if TYPE_CHECKING:
    from ..grammar.grammar import Grammar
    from ..solver.solver import Solver


@dataclass(frozen=True)
class Forbidden(GrammarConstraint):
    template: TemplateNode

    def on_new_node(self, solver: Solver, path: Path) -> None:
        node = solver.get_node_at(path)
        if not isinstance(pattern_match(self.template, node, solver.grammar, path), NoMatch):
            solver.post(LocalForbidden(path, self.template))

    def is_domain_valid(self, grammar: Grammar) -> bool:
        return template_is_valid(self.template, grammar)

    def issame(self, other: GrammarConstraint) -> bool:
        return self == other

    def remap(self, mapping: Dict[int, int]) -> Optional[Forbidden]:
        template = remap_template(self.template, mapping)
        return None if template is None else Forbidden(template)

    def __str__(self) -> str:
        return f"Forbidden({self.template})"


@dataclass(frozen=True)
class LocalForbidden(LocalConstraint):
    """Forbidden template anchored at one path."""

    path: Path
    template: TemplateNode

    def shouldschedule(self, solver: Solver, path: Path) -> bool:
        return in_subtree(self.path, path)

    def propagate(self, solver: Solver) -> None:
        node = solver.get_node_at(self.path)
        result = pattern_match(self.template, node, solver.grammar, self.path)
        if isinstance(result, NoMatch):
            solver.deactivate(self)
        elif isinstance(result, Match):
            solver.set_infeasible(f"forbidden {self.template} matches at {self.path}")
        else:
            requirement = single_complete_requirement(result)
            if requirement is None:
                return
            solver.deactivate(self)
            solver.remove(requirement.path, iter_rules(requirement.domain))
