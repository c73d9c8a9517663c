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
"""Fluent construction of grammars.

Categories can be used before their rules are added: build() declares every
category first, so mutually recursive categories need no special ordering.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterable, List, Optional, Sequence, Tuple

from .grammar import Grammar

if TYPE_CHECKING:
    from ..constraints.base import GrammarConstraint


class GrammarBuilder:
    """Builder for constructing grammars.

    Example:
        >>> grammar = (
        ...     GrammarBuilder()
        ...     .with_rule("Int", (), label="1")
        ...     .with_rule("Int", (), label="x")
        ...     .with_rule("Int", ("Int", "Int"), label="Int + Int")
        ...     .with_constraint(Forbidden(RuleNode(2, (RuleNode(0), RuleNode(0)))))
        ...     .build()
        ... )
    """

    def __init__(self):
        self._categories: List[str] = []
        self._rules: List[Tuple[str, Tuple[str, ...], Optional[float], Optional[str]]] = []
        self._constraints: List[GrammarConstraint] = []

    def with_category(self, category: str) -> GrammarBuilder:
        """Declare a category.

        Args:
            category: Category name

        Returns:
            Self for chaining
        """
        if category not in self._categories:
            self._categories.append(category)
        return self

    def with_rule(
        self,
        category: str,
        children_types: Sequence[str] = (),
        weight: Optional[float] = None,
        label: Optional[str] = None,
    ) -> GrammarBuilder:
        """Add a rule. Rules get indices in the order they are added.

        Returns:
            Self for chaining
        """
        self.with_category(category)
        self._rules.append((category, tuple(children_types), weight, label))
        return self

    def with_rules(
        self,
        category: str,
        alternatives: Iterable[Sequence[str]],
    ) -> GrammarBuilder:
        """Add one rule per alternative, each given as its child categories.

        Returns:
            Self for chaining
        """
        for children_types in alternatives:
            self.with_rule(category, children_types)
        return self

    def with_constraint(self, constraint: GrammarConstraint) -> GrammarBuilder:
        self._constraints.append(constraint)
        return self

    def build(self) -> Grammar:
        """Build the grammar.

        Raises:
            StructuralError: If a rule refers to a category with no rules
                and no declaration
            ConstraintDomainError: If a constraint does not fit the rules
        """
        grammar = Grammar()
        for category in self._categories:
            grammar.declare_category(category)
        for category, children_types, weight, label in self._rules:
            grammar.add_rule(category, children_types, weight=weight, label=label)
        for constraint in self._constraints:
            grammar.addconstraint(constraint)
        return grammar
