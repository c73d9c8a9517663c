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
"""Grammar model: categories, production rules and attached constraints.

Rules are addressed by a 0-based index that stays stable for the lifetime of
a grammar. Removing a rule leaves a tombstone in place; only compact()
re-indexes, and it rewrites the attached constraints to match.

A Grammar is shared by reference across every search branch and must not be
mutated while an enumeration is running.

Example:
    >>> g = Grammar()
    >>> g.add_rule("Int", (), label="1")
    0
    >>> g.add_rule("Int", ("Int", "Int"), label="Int + Int")
    1
    >>> g.isterminal(0), g.nchildren(1)
    (True, 2)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Dict, List, Optional, Sequence, Tuple

from ..core.errors import ConstraintDomainError, StructuralError
from ..tree.nodes import Hole, Node, RuleNode

if TYPE_CHECKING:
    from ..constraints.base import GrammarConstraint
    from .analysis import GrammarAnalysis

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Rule:
    """A production rule.

    Attributes:
        index: Stable rule index
        return_type: Category the rule produces
        children_types: Category of each child, empty for terminals
        weight: Optional weight for callers that rank rules
        label: Optional display text such as "Int + Int"
        removed: True once the rule has been tombstoned
    """

    index: int
    return_type: str
    children_types: Tuple[str, ...] = ()
    weight: Optional[float] = None
    label: Optional[str] = None
    removed: bool = False

    @property
    def arity(self) -> int:
        return len(self.children_types)

    @property
    def isterminal(self) -> bool:
        return not self.children_types

    def __str__(self) -> str:
        if self.label is not None:
            return self.label
        if not self.children_types:
            return f"{self.return_type}#{self.index}"
        return f"{self.return_type}#{self.index}({', '.join(self.children_types)})"


class Grammar:
    """A set of rules grouped by category plus the constraints attached to it."""

    def __init__(self):
        self._rules: List[Rule] = []
        self._categories: Dict[str, List[int]] = {}
        self._constraints: List[GrammarConstraint] = []
        self._version = 0
        self._analysis: Optional[GrammarAnalysis] = None

    # =========================================================================
    # Rules
    # =========================================================================

    def declare_category(self, category: str) -> None:
        """Make a category known before any rule returns it.

        Needed for rules whose children refer to a category defined later.
        """
        if category not in self._categories:
            self._categories[category] = []
            self._touch()

    def add_rule(
        self,
        category: str,
        children_types: Sequence[str] = (),
        weight: Optional[float] = None,
        label: Optional[str] = None,
    ) -> int:
        """Append a rule and return its index.

        Raises:
            StructuralError: If a child category is unknown
        """
        children = tuple(children_types)
        for child in children:
            if child != category and child not in self._categories:
                raise StructuralError(
                    f"rule {label or category!r} refers to unknown category {child!r}"
                )
        index = len(self._rules)
        self._rules.append(Rule(index, category, children, weight, label))
        self._categories.setdefault(category, []).append(index)
        self._touch()
        return index

    def remove_rule(self, index: int) -> None:
        """Tombstone a rule; indices of the other rules are unchanged.

        Raises:
            StructuralError: If the rule does not exist or is already removed
        """
        rule = self.rule(index)
        if rule.removed:
            raise StructuralError(f"rule {index} is already removed")
        self._rules[index] = replace(rule, removed=True)
        self._touch()

    def compact(self) -> Dict[int, int]:
        """Drop tombstoned rules and re-index the survivors.

        Attached constraints are rewritten through their remap() hook.
        Constraints that can no longer restrict anything are dropped.

        Returns:
            Mapping from old to new index for every surviving rule

        Raises:
            StructuralError: If a constraint needs a removed rule to be
                satisfiable; the grammar is left unchanged in that case
        """
        mapping: Dict[int, int] = {}
        for rule in self._rules:
            if not rule.removed:
                mapping[rule.index] = len(mapping)

        constraints = []
        for constraint in self._constraints:
            remapped = constraint.remap(mapping)
            if remapped is None:
                logger.info(f"Dropping constraint {constraint} made vacuous by compaction")
            else:
                constraints.append(remapped)

        removed = len(self._rules) - len(mapping)
        self._rules = [
            replace(rule, index=mapping[rule.index])
            for rule in self._rules
            if not rule.removed
        ]
        self._categories = {
            category: [mapping[i] for i in indices if i in mapping]
            for category, indices in self._categories.items()
        }
        self._constraints = constraints
        self._touch()
        logger.info(f"Compacted grammar: removed {removed} rules, {len(self._rules)} remain")
        return mapping

    def rule(self, index: int) -> Rule:
        """Return the rule at index, tombstoned or not.

        Raises:
            StructuralError: If the index is out of range
        """
        if not 0 <= index < len(self._rules):
            raise StructuralError(f"rule index {index} out of range")
        return self._rules[index]

    @property
    def rules(self) -> Tuple[Rule, ...]:
        return tuple(self._rules)

    def live_rules(self) -> List[Rule]:
        return [rule for rule in self._rules if not rule.removed]

    def is_live(self, index: int) -> bool:
        return 0 <= index < len(self._rules) and not self._rules[index].removed

    def find_rule(self, label: str) -> int:
        """Index of the live rule with the given label.

        Raises:
            KeyError: If no live rule has that label
        """
        for rule in self._rules:
            if rule.label == label and not rule.removed:
                return rule.index
        raise KeyError(label)

    def __len__(self) -> int:
        return len(self._rules)

    # =========================================================================
    # Queries
    # =========================================================================

    @property
    def categories(self) -> Tuple[str, ...]:
        return tuple(self._categories)

    def nonterminals(self) -> List[str]:
        """Categories that at least one live rule produces."""
        return [
            category
            for category, indices in self._categories.items()
            if any(not self._rules[i].removed for i in indices)
        ]

    def rules_for(self, category: str) -> List[int]:
        """Live rule indices of a category, ascending."""
        if category not in self._categories:
            raise StructuralError(f"unknown category {category!r}")
        return [i for i in self._categories[category] if not self._rules[i].removed]

    def domain_for(self, category: str) -> int:
        domain = 0
        for index in self.rules_for(category):
            domain |= 1 << index
        return domain

    def domain_mask(self) -> int:
        """Bitset of every live rule."""
        domain = 0
        for rule in self._rules:
            if not rule.removed:
                domain |= 1 << rule.index
        return domain

    def return_type(self, index: int) -> str:
        return self.rule(index).return_type

    def child_types(self, index: int) -> Tuple[str, ...]:
        return self.rule(index).children_types

    def nchildren(self, index: int) -> int:
        return len(self.rule(index).children_types)

    def isterminal(self, index: int) -> bool:
        return not self.rule(index).children_types

    def label(self, index: int) -> str:
        return str(self.rule(index))

    def check_tree(self, node: Node, category: Optional[str] = None) -> None:
        """Validate that a tree respects the grammar.

        Args:
            node: Root of the tree
            category: Category the root must produce; unchecked if None

        Raises:
            StructuralError: On unknown or removed rules, category
                mismatches, arity mismatches or hole domains outside their
                category
        """
        stack = [(node, category)]
        while stack:
            current, expected = stack.pop()
            if isinstance(current, Hole):
                if expected is not None and current.category != expected:
                    raise StructuralError(
                        f"hole of category {current.category!r} where {expected!r} is required"
                    )
                if current.domain & ~self.domain_for(current.category):
                    raise StructuralError(
                        f"hole domain {current.rules} has rules outside {current.category!r}"
                    )
                continue
            if not isinstance(current, RuleNode):
                raise StructuralError(f"{current!r} is not a tree node")
            if not self.is_live(current.rule):
                raise StructuralError(f"rule {current.rule} is not a live rule")
            rule = self._rules[current.rule]
            if expected is not None and rule.return_type != expected:
                raise StructuralError(
                    f"rule {rule} produces {rule.return_type!r} where {expected!r} is required"
                )
            if len(current.children) != rule.arity:
                raise StructuralError(
                    f"rule {rule} expects {rule.arity} children, got {len(current.children)}"
                )
            stack.extend(zip(current.children, rule.children_types))

    def render(self, node: Node) -> str:
        """Human-readable form of a tree using rule labels where present."""
        if isinstance(node, Hole):
            return str(node)
        text = self.label(node.rule)
        if not node.children:
            return text
        return f"{text}({', '.join(self.render(child) for child in node.children)})"

    # =========================================================================
    # Constraints
    # =========================================================================

    @property
    def constraints(self) -> Tuple[GrammarConstraint, ...]:
        return tuple(self._constraints)

    def addconstraint(self, constraint: GrammarConstraint) -> bool:
        """Attach a constraint.

        Returns:
            False if an equivalent constraint (per issame) is already
            attached, True otherwise

        Raises:
            ConstraintDomainError: If the constraint refers to rules the
                grammar does not have
        """
        if not constraint.is_domain_valid(self):
            raise ConstraintDomainError(f"{constraint} is not valid for this grammar")
        for existing in self._constraints:
            if existing.issame(constraint):
                logger.debug(f"Skipping duplicate constraint {constraint}")
                return False
        self._constraints.append(constraint)
        self._touch()
        return True

    def clearconstraints(self) -> None:
        self._constraints = []
        self._touch()

    # =========================================================================
    # Derived data
    # =========================================================================

    @property
    def version(self) -> int:
        """Counter bumped by every mutation."""
        return self._version

    @property
    def analysis(self) -> GrammarAnalysis:
        """Size and depth tables, rebuilt lazily after a mutation."""
        if self._analysis is None or self._analysis.version != self._version:
            from .analysis import GrammarAnalysis

            self._analysis = GrammarAnalysis(self)
        return self._analysis

    def _touch(self) -> None:
        self._version += 1

    def __repr__(self) -> str:
        lines = [f"Grammar({len(self.live_rules())} rules, {len(self._constraints)} constraints)"]
        for rule in self._rules:
            if rule.removed:
                continue
            lines.append(f"  {rule.index}: {rule.return_type} = {rule}")
        return "\n".join(lines)
