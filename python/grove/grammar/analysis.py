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
"""Static size and depth tables for a grammar.

All tables are least fixpoints over the rule graph, computed by iterating
until nothing improves. Values are lower bounds: a subtree rooted at rule r
has at least ``rule_min_size[r]`` nodes and depth at least
``rule_min_depth[r]``. Rules that can never finish (every derivation
recurses forever) keep ``math.inf``.

The solver uses these tables to prune rules that cannot fit within the
remaining size and depth budget, and the containment constraints use the
``containing`` tables to decide whether a hole can still grow a target rule.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import TYPE_CHECKING, Dict, List, Optional

if TYPE_CHECKING:
    from .grammar import Grammar

logger = logging.getLogger(__name__)


@dataclass
class ContainmentTable:
    """Cheapest way to grow any of a set of target rules.

    Attributes:
        targets: Bitset of target rules
        rule_size: Minimal size of a subtree rooted at each rule that
            contains a target rule
        rule_depth: Minimal depth of such a subtree
    """

    targets: int
    rule_size: List[float]
    rule_depth: List[float]


class GrammarAnalysis:
    """Minimal sizes, depths and reachability for one grammar version."""

    def __init__(self, grammar: Grammar):
        self.version = grammar.version
        self._grammar = grammar
        self._rules = grammar.live_rules()
        count = len(grammar)

        self.rule_min_size: List[float] = [math.inf] * count
        self.rule_min_depth: List[float] = [math.inf] * count
        self.category_min_size: Dict[str, float] = {c: math.inf for c in grammar.categories}
        self.category_min_depth: Dict[str, float] = {c: math.inf for c in grammar.categories}
        self._compute_minimums()

        self.producible = 0
        for rule in self._rules:
            if self.rule_min_size[rule.index] < math.inf:
                self.producible |= 1 << rule.index

        self.reachable: Dict[str, int] = {}
        self._compute_reachability()

        self._containing: Dict[int, ContainmentTable] = {}
        self._within_size: Dict[int, int] = {}
        self._within_depth: Dict[int, int] = {}
        self._domain_min_size: Dict[int, float] = {}

    def _compute_minimums(self) -> None:
        changed = True
        while changed:
            changed = False
            for rule in self._rules:
                size = 1 + sum(self.category_min_size[c] for c in rule.children_types)
                depth = 1 + max(
                    (self.category_min_depth[c] for c in rule.children_types), default=0
                )
                if size < self.rule_min_size[rule.index]:
                    self.rule_min_size[rule.index] = size
                    changed = True
                if depth < self.rule_min_depth[rule.index]:
                    self.rule_min_depth[rule.index] = depth
                    changed = True
                category = rule.return_type
                if size < self.category_min_size[category]:
                    self.category_min_size[category] = size
                    changed = True
                if depth < self.category_min_depth[category]:
                    self.category_min_depth[category] = depth
                    changed = True

    def _compute_reachability(self) -> None:
        """Bitset of rules that can appear in a tree of each category."""
        for category in self._grammar.categories:
            self.reachable[category] = self._grammar.domain_for(category) & self.producible
        changed = True
        while changed:
            changed = False
            for rule in self._rules:
                if not self.producible >> rule.index & 1:
                    continue
                current = self.reachable[rule.return_type]
                merged = current
                for child in rule.children_types:
                    merged |= self.reachable[child]
                if merged != current:
                    self.reachable[rule.return_type] = merged
                    changed = True

    # =========================================================================
    # Budget masks
    # =========================================================================

    def domain_min_size(self, domain: int) -> float:
        """Smallest rule_min_size among the rules of a domain."""
        cached = self._domain_min_size.get(domain)
        if cached is None:
            cached = math.inf
            rest = domain
            while rest:
                low = rest & -rest
                cached = min(cached, self.rule_min_size[low.bit_length() - 1])
                rest ^= low
            self._domain_min_size[domain] = cached
        return cached

    def within_size(self, budget: int) -> int:
        """Bitset of producible rules whose minimal subtree has <= budget nodes."""
        mask = self._within_size.get(budget)
        if mask is None:
            mask = 0
            for rule in self._rules:
                if self.rule_min_size[rule.index] <= budget:
                    mask |= 1 << rule.index
            self._within_size[budget] = mask
        return mask

    def within_depth(self, budget: Optional[int]) -> int:
        """Bitset of producible rules whose minimal subtree fits in budget levels."""
        if budget is None:
            return self.producible
        mask = self._within_depth.get(budget)
        if mask is None:
            mask = 0
            for rule in self._rules:
                if self.rule_min_depth[rule.index] <= budget:
                    mask |= 1 << rule.index
            self._within_depth[budget] = mask
        return mask

    # =========================================================================
    # Containment
    # =========================================================================

    def containing(self, targets: int) -> ContainmentTable:
        """Minimal size and depth of subtrees that contain a target rule.

        A subtree rooted at a target rule costs its own minimum. Otherwise
        one child has to contain a target while the others stay minimal.
        """
        table = self._containing.get(targets)
        if table is not None:
            return table

        count = len(self._grammar)
        rule_size: List[float] = [math.inf] * count
        rule_depth: List[float] = [math.inf] * count
        category_size = {c: math.inf for c in self._grammar.categories}
        category_depth = {c: math.inf for c in self._grammar.categories}

        changed = True
        while changed:
            changed = False
            for rule in self._rules:
                index = rule.index
                if targets >> index & 1:
                    size = self.rule_min_size[index]
                    depth = self.rule_min_depth[index]
                else:
                    size = depth = math.inf
                    children = rule.children_types
                    for i, child in enumerate(children):
                        others = [c for j, c in enumerate(children) if j != i]
                        size = min(
                            size,
                            1 + category_size[child] + sum(self.category_min_size[c] for c in others),
                        )
                        depth = min(
                            depth,
                            1
                            + max(
                                [category_depth[child]]
                                + [self.category_min_depth[c] for c in others]
                            ),
                        )
                if size < rule_size[index]:
                    rule_size[index] = size
                    changed = True
                if depth < rule_depth[index]:
                    rule_depth[index] = depth
                    changed = True
                if size < category_size[rule.return_type]:
                    category_size[rule.return_type] = size
                    changed = True
                if depth < category_depth[rule.return_type]:
                    category_depth[rule.return_type] = depth
                    changed = True

        table = ContainmentTable(targets, rule_size, rule_depth)
        self._containing[targets] = table
        logger.debug(f"Built containment table for targets {bin(targets)}")
        return table

    def min_size_containing(self, rule: int, category: str) -> float:
        """Smallest tree of category that contains rule."""
        table = self.containing(1 << rule)
        return min(
            (table.rule_size[i] for i in self._grammar.rules_for(category)),
            default=math.inf,
        )

    def min_depth_containing(self, rule: int, category: str) -> float:
        table = self.containing(1 << rule)
        return min(
            (table.rule_depth[i] for i in self._grammar.rules_for(category)),
            default=math.inf,
        )
