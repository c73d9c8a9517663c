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
"""Property-based tests for constrained enumeration using Hypothesis.

Every enumerated set is compared against a brute-force reference: build all
trees up to a size bound, then filter them with a direct check of the
constraint. Agreement means the enumeration is:

1. Sound: every produced tree satisfies every constraint.

2. Complete: every satisfying tree within the bounds is produced.

3. Duplicate-free: no tree is produced twice.

Reference checks deliberately avoid the library's matcher so that a bug in
pattern_match cannot hide itself.
"""

from functools import lru_cache
from typing import Dict, List, Optional

from hypothesis import assume, given, settings, strategies as st

from grove.constraints import Contains, ContainsSubtree, Forbidden, Ordered, Unique
from grove.grammar import Grammar, GrammarBuilder
from grove.search import BFSEnumerator, DFSEnumerator
from grove.tree import DomainRuleNode, RuleNode, VarNode, iter_nodes

ONE, X, NEG, PLUS, TIMES = range(5)
RULES_BY_ARITY = {0: [ONE, X], 1: [NEG], 2: [PLUS, TIMES]}
MAX_SIZE = 4


# ============================================================================
# Reference implementation
# ============================================================================


@lru_cache(maxsize=None)
def trees_of_size(size: int) -> tuple:
    if size == 1:
        return tuple(RuleNode(rule) for rule in RULES_BY_ARITY[0])
    trees = [RuleNode(NEG, (child,)) for child in trees_of_size(size - 1)]
    for left_size in range(1, size - 1):
        for rule in RULES_BY_ARITY[2]:
            for left in trees_of_size(left_size):
                for right in trees_of_size(size - 1 - left_size):
                    trees.append(RuleNode(rule, (left, right)))
    return tuple(trees)


def all_trees(max_size: int) -> List[RuleNode]:
    return [tree for size in range(1, max_size + 1) for tree in trees_of_size(size)]


def reference_match(template, node, bindings: Optional[Dict] = None) -> Optional[Dict]:
    """Bindings of template against a complete tree, or None."""
    bindings = {} if bindings is None else bindings
    if isinstance(template, VarNode):
        if template.name in bindings:
            return bindings if bindings[template.name] == node else None
        bindings[template.name] = node
        return bindings
    if isinstance(template, RuleNode):
        if template.rule != node.rule:
            return None
    elif not (template.domain >> node.rule) & 1:
        return None
    if len(template.children) != len(node.children):
        return None
    for child_template, child in zip(template.children, node.children):
        if reference_match(child_template, child, bindings) is None:
            return None
    return bindings


def matches_anywhere(template, tree) -> bool:
    return any(reference_match(template, node) is not None for _, node in iter_nodes(tree))


def sort_key(node) -> tuple:
    return (node.rule,) + tuple(sort_key(child) for child in node.children)


def arithmetic_grammar() -> Grammar:
    return (
        GrammarBuilder()
        .with_rules("Int", [(), (), ("Int",), ("Int", "Int"), ("Int", "Int")])
        .build()
    )


def enumerate_with(constraints, enumerator_cls=BFSEnumerator) -> List[RuleNode]:
    grammar = arithmetic_grammar()
    for constraint in constraints:
        grammar.addconstraint(constraint)
    return list(enumerator_cls(grammar, "Int", max_size=MAX_SIZE))


def assert_same_trees(produced, expected) -> None:
    assert len(produced) == len(set(produced)), "duplicate trees"
    assert set(produced) == set(expected)


# ============================================================================
# Strategies
# ============================================================================


@st.composite
def templates(draw, depth: int = 2):
    if depth == 0 or draw(st.integers(min_value=0, max_value=3)) == 0:
        return VarNode(draw(st.sampled_from(["a", "b"])))
    arity = draw(st.sampled_from([0, 1, 2]))
    children = tuple(draw(templates(depth - 1)) for _ in range(arity))
    candidates = RULES_BY_ARITY[arity]
    if len(candidates) > 1 and draw(st.booleans()):
        rules = draw(st.lists(st.sampled_from(candidates), min_size=1, unique=True))
        return DomainRuleNode.of(rules, children)
    return RuleNode(draw(st.sampled_from(candidates)), children)


@st.composite
def ordered_templates(draw):
    """A binary template with a on one side and b on the other."""

    def side(name):
        var = VarNode(name)
        return RuleNode(NEG, (var,)) if draw(st.booleans()) else var

    left, right = side("a"), side("b")
    if draw(st.booleans()):
        left, right = right, left
    operators = draw(st.lists(st.sampled_from(RULES_BY_ARITY[2]), min_size=1, unique=True))
    return DomainRuleNode.of(operators, (left, right))


rules = st.integers(min_value=0, max_value=4)


# ============================================================================
# Property Tests
# ============================================================================


class TestEnumerationMatchesReference:
    """Constrained enumeration equals brute-force filtering."""

    def test_unconstrained(self):
        assert_same_trees(enumerate_with([]), all_trees(MAX_SIZE))

    @given(templates())
    @settings(max_examples=25, deadline=None)
    def test_forbidden(self, template):
        expected = [t for t in all_trees(MAX_SIZE) if not matches_anywhere(template, t)]
        assert_same_trees(enumerate_with([Forbidden(template)]), expected)

    @given(rules)
    @settings(max_examples=10, deadline=None)
    def test_contains(self, rule):
        expected = [
            t for t in all_trees(MAX_SIZE) if any(n.rule == rule for _, n in iter_nodes(t))
        ]
        assert_same_trees(enumerate_with([Contains(rule)]), expected)

    @given(templates())
    @settings(max_examples=25, deadline=None)
    def test_contains_subtree(self, template):
        assume(not isinstance(template, VarNode))
        expected = [t for t in all_trees(MAX_SIZE) if matches_anywhere(template, t)]
        assert_same_trees(enumerate_with([ContainsSubtree(template)]), expected)

    @given(rules)
    @settings(max_examples=10, deadline=None)
    def test_unique(self, rule):
        expected = [
            t for t in all_trees(MAX_SIZE) if sum(n.rule == rule for _, n in iter_nodes(t)) <= 1
        ]
        assert_same_trees(enumerate_with([Unique(rule)]), expected)

    @given(ordered_templates())
    @settings(max_examples=25, deadline=None)
    def test_ordered(self, template):
        def ordered_everywhere(tree):
            for _, node in iter_nodes(tree):
                bindings = reference_match(template, node)
                if bindings is not None and sort_key(bindings["a"]) > sort_key(bindings["b"]):
                    return False
            return True

        expected = [t for t in all_trees(MAX_SIZE) if ordered_everywhere(t)]
        assert_same_trees(enumerate_with([Ordered(template, ("a", "b"))]), expected)


class TestEnumerationInvariants:
    """Properties that do not need a reference."""

    @given(templates(), rules)
    @settings(max_examples=20, deadline=None)
    def test_bfs_and_dfs_agree(self, template, rule):
        constraints = [Forbidden(template), Unique(rule)]
        bfs = enumerate_with(constraints, BFSEnumerator)
        dfs = enumerate_with(constraints, DFSEnumerator)
        assert_same_trees(dfs, bfs)

    @given(templates())
    @settings(max_examples=20, deadline=None)
    def test_deterministic(self, template):
        grammar = arithmetic_grammar()
        grammar.addconstraint(Forbidden(template))
        enumerator = BFSEnumerator(grammar, "Int", max_size=MAX_SIZE)
        assert list(enumerator) == list(enumerator)

    @given(templates())
    @settings(max_examples=20, deadline=None)
    def test_duplicate_constraint_is_noop(self, template):
        grammar = arithmetic_grammar()
        assert grammar.addconstraint(Forbidden(template))
        before = list(BFSEnumerator(grammar, "Int", max_size=MAX_SIZE))
        assert not grammar.addconstraint(Forbidden(template))
        assert len(grammar.constraints) == 1
        assert list(BFSEnumerator(grammar, "Int", max_size=MAX_SIZE)) == before
