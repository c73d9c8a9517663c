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
"""Matching templates against partial trees.

Matching is read-only. Where a hole decides the outcome, the matcher reports
what the hole would need to become instead of narrowing it, and the calling
constraint decides whether to act on that.

Three outcomes:

- NoMatch: the template can never match here, whatever the holes become.
- Match: the template matches now; bindings map variables to paths.
- PartialMatch: the outcome depends on holes. ``holes`` lists
  HoleRequirements (the hole must take a rule from ``domain``), and
  ``equalities`` lists pairs of paths that must become structurally equal
  for a repeated variable to match.

Example:
    >>> template = RuleNode(4, (RuleNode(0), VarNode("a")))
    >>> pattern_match(template, RuleNode(4, (Hole("Int", 0b11), Hole("Int", 0b11))))
    PartialMatch(holes=(HoleRequirement(path=(0,), domain=1, complete=True),), ...)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple, Union

from ..core.domain import domain_contains, is_singleton, iter_rules, lowest_rule
from .nodes import (
    DomainRuleNode,
    Hole,
    Node,
    Path,
    RuleNode,
    TemplateNode,
    VarNode,
    get_node_at,
)


@dataclass(frozen=True)
class NoMatch:
    def __bool__(self) -> bool:
        return False


NO_MATCH = NoMatch()


@dataclass(frozen=True)
class Match:
    bindings: Dict[str, Path] = field(default_factory=dict)


@dataclass(frozen=True)
class HoleRequirement:
    """A hole that must take one of ``domain`` for the match to progress.

    Attributes:
        path: Path of the hole
        domain: Bitset of rules that keep the match alive
        complete: True if taking any of those rules settles this position
            entirely, i.e. the template has nothing left to check below it
    """

    path: Path
    domain: int
    complete: bool


@dataclass(frozen=True)
class PartialMatch:
    holes: Tuple[HoleRequirement, ...] = ()
    equalities: Tuple[Tuple[Path, Path], ...] = ()
    bindings: Dict[str, Path] = field(default_factory=dict)


MatchResult = Union[NoMatch, Match, PartialMatch]


class _Fail(Exception):
    """Internal signal that the template cannot match."""


class _Matcher:
    def __init__(self, root: Node, grammar, base: Path):
        self.root = root
        self.grammar = grammar
        self.base = base
        self.bindings: Dict[str, Path] = {}
        self.holes: List[HoleRequirement] = []
        self.equalities: List[Tuple[Path, Path]] = []

    def arity_mask(self, domain: int, arity: int) -> int:
        if self.grammar is None:
            return domain
        keep = 0
        for rule in iter_rules(domain):
            if self.grammar.nchildren(rule) == arity:
                keep |= 1 << rule
        return keep

    def match(self, template: TemplateNode, node: Node, path: Path) -> None:
        if isinstance(template, VarNode):
            bound = self.bindings.get(template.name)
            if bound is None:
                self.bindings[template.name] = path
            else:
                self.compare(get_node_at(self.root, bound[len(self.base) :]), bound, node, path)
            return

        if isinstance(template, RuleNode):
            allowed = 1 << template.rule
        else:
            allowed = template.domain
        arity = len(template.children)

        if isinstance(node, RuleNode):
            if not domain_contains(allowed, node.rule) or len(node.children) != arity:
                raise _Fail()
            for index, child_template in enumerate(template.children):
                self.match(child_template, node.children[index], path + (index,))
            return

        allowed = self.arity_mask(node.domain & allowed, arity)
        if not allowed:
            raise _Fail()
        if arity == 0:
            if node.domain & ~allowed:
                self.holes.append(HoleRequirement(path, allowed, True))
            return
        self.holes.append(HoleRequirement(path, allowed, False))

    def compare(self, first: Node, first_path: Path, second: Node, second_path: Path) -> None:
        """Record what it takes for two subtrees to be structurally equal."""
        first_filled = isinstance(first, RuleNode)
        second_filled = isinstance(second, RuleNode)
        if first_filled and second_filled:
            if first.rule != second.rule or len(first.children) != len(second.children):
                raise _Fail()
            for index in range(len(first.children)):
                self.compare(
                    first.children[index],
                    first_path + (index,),
                    second.children[index],
                    second_path + (index,),
                )
            return

        if first_filled or second_filled:
            hole, hole_path, filled = (
                (second, second_path, first) if first_filled else (first, first_path, second)
            )
            if not domain_contains(hole.domain, filled.rule):
                raise _Fail()
            if filled.children:
                self.equalities.append((first_path, second_path))
            elif hole.domain != 1 << filled.rule:
                self.holes.append(HoleRequirement(hole_path, 1 << filled.rule, True))
            return

        if not first.domain & second.domain:
            raise _Fail()
        if (
            first.domain == second.domain
            and is_singleton(first.domain)
            and self.grammar is not None
            and self.grammar.isterminal(lowest_rule(first.domain))
        ):
            return
        self.equalities.append((first_path, second_path))


def pattern_match(
    template: TemplateNode,
    node: Node,
    grammar=None,
    path: Path = (),
) -> MatchResult:
    """Match a template against the subtree rooted at node.

    Args:
        template: Pattern built from RuleNode, DomainRuleNode and VarNode
        node: Root of the subtree to match
        grammar: Used to filter DomainRuleNode rules by arity and to settle
            comparisons of decided terminal holes; optional
        path: Path of node in the full tree; reported paths include it

    Returns:
        NO_MATCH, a Match, or a PartialMatch
    """
    matcher = _Matcher(node, grammar, tuple(path))
    try:
        matcher.match(template, node, tuple(path))
    except _Fail:
        return NO_MATCH
    if not matcher.holes and not matcher.equalities:
        return Match(dict(matcher.bindings))
    return PartialMatch(
        tuple(matcher.holes), tuple(matcher.equalities), dict(matcher.bindings)
    )


def single_complete_requirement(result: MatchResult) -> Optional[HoleRequirement]:
    """The lone hole requirement of a partial match, if it settles the match."""
    if not isinstance(result, PartialMatch) or result.equalities or len(result.holes) != 1:
        return None
    requirement = result.holes[0]
    return requirement if requirement.complete else None
