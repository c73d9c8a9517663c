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
"""Constraint protocol.

Constraints come in two layers:

- GrammarConstraint: declared once on a Grammar, independent of location.
  Its on_new_node hook runs for every position a solver creates and posts
  LocalConstraints where the rule might apply.
- LocalConstraint: bound to one path of one branch. The solver asks
  shouldschedule() after each change and calls propagate() from its
  work-list. A local constraint that can no longer prune anything
  deactivates itself.

Local constraints must be hashable value objects: the solver deduplicates
them by equality, and forked branches share them.

New constraint kinds subclass these two classes; nothing in the solver
special-cases the built-ins.
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Dict, Optional

from ..core.domain import iter_rules
from ..tree.nodes import DomainRuleNode, Hole, Path, RuleNode, TemplateNode, VarNode

if TYPE_CHECKING:
    from ..grammar.grammar import Grammar
    from ..solver.solver import Solver


class GrammarConstraint(ABC):
    """A constraint attached to a grammar."""

    @abstractmethod
    def on_new_node(self, solver: Solver, path: Path) -> None:
        """Called once for every new position; may post local constraints."""
        pass

    @abstractmethod
    def is_domain_valid(self, grammar: Grammar) -> bool:
        """True if every rule the constraint names exists in grammar."""
        pass

    def issame(self, other: GrammarConstraint) -> bool:
        """True if other is a duplicate of this constraint."""
        return False

    def remap(self, mapping: Dict[int, int]) -> Optional[GrammarConstraint]:
        """Rewrite rule indices after Grammar.compact().

        Args:
            mapping: Old index to new index for every surviving rule

        Returns:
            The rewritten constraint, or None if it can no longer restrict
            anything

        Raises:
            StructuralError: If the constraint can no longer be satisfied
        """
        return self


class LocalConstraint(ABC):
    """A constraint instance rooted at one path of one branch."""

    path: Path

    @abstractmethod
    def propagate(self, solver: Solver) -> None:
        """Narrow domains, deactivate, or mark the branch infeasible."""
        pass

    @abstractmethod
    def shouldschedule(self, solver: Solver, path: Path) -> bool:
        """True if a change at path may let this constraint prune."""
        pass


# =============================================================================
# Helpers shared by the built-in constraints
# =============================================================================


def in_subtree(root: Path, path: Path) -> bool:
    """True if path is root or lies below it."""
    return path[: len(root)] == root


def template_is_valid(template: TemplateNode, grammar: Grammar) -> bool:
    """Check that a template only names live rules with matching arity."""
    if isinstance(template, VarNode):
        return True
    if isinstance(template, RuleNode):
        if not grammar.is_live(template.rule):
            return False
        if grammar.nchildren(template.rule) != len(template.children):
            return False
    elif isinstance(template, DomainRuleNode):
        rules = list(iter_rules(template.domain))
        if not rules or not all(grammar.is_live(rule) for rule in rules):
            return False
        if not any(grammar.nchildren(rule) == len(template.children) for rule in rules):
            return False
    else:
        return False
    return all(template_is_valid(child, grammar) for child in template.children)


def remap_domain(domain: int, mapping: Dict[int, int]) -> int:
    remapped = 0
    for rule in iter_rules(domain):
        if rule in mapping:
            remapped |= 1 << mapping[rule]
    return remapped


def remap_template(template: TemplateNode, mapping: Dict[int, int]) -> Optional[TemplateNode]:
    """Rewrite the rule indices of a template.

    Returns:
        The rewritten template, or None if it names a removed rule (or a
        domain with no surviving rule) and can therefore never match
    """
    if isinstance(template, VarNode):
        return template
    children = []
    for child in template.children:
        remapped = remap_template(child, mapping)
        if remapped is None:
            return None
        children.append(remapped)
    if isinstance(template, RuleNode):
        if template.rule not in mapping:
            return None
        return RuleNode(mapping[template.rule], tuple(children))
    domain = remap_domain(template.domain, mapping)
    if not domain:
        return None
    return DomainRuleNode(domain, tuple(children))


def template_root_domain(template: TemplateNode) -> Optional[int]:
    """Rules a template's root may take, or None for a bare variable."""
    if isinstance(template, VarNode):
        return None
    if isinstance(template, RuleNode):
        return 1 << template.rule
    return template.domain


def viable_hosts(solver: Solver, path: Path, hole: Hole, targets: int, total: float) -> int:
    """Rules of a hole whose subtree can still contain a target rule.

    Args:
        solver: Branch the hole belongs to
        path: Path of the hole
        hole: The hole itself
        targets: Bitset of target rules
        total: Current size lower bound of the whole tree

    Returns:
        Bitset of rules from the hole's domain that can grow a target
        within the remaining size and depth budget
    """
    analysis = solver.grammar.analysis
    table = analysis.containing(targets)
    size_budget = math.inf
    if solver.max_size is not None:
        size_budget = solver.max_size - total + analysis.domain_min_size(hole.domain)
    depth_budget = solver.depth_budget(path)
    if depth_budget is None:
        depth_budget = math.inf
    hosts = 0
    for rule in iter_rules(hole.domain):
        if table.rule_size[rule] <= size_budget and table.rule_depth[rule] <= depth_budget:
            hosts |= 1 << rule
    return hosts
