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
"""grove: grammar-constrained tree search for program synthesis.

grove enumerates the programs a grammar can derive, bounded by depth and
size, while declarative constraints prune the search space. Partial programs
are trees with holes; each hole carries the set of rules it may still
become, and a propagation solver narrows those sets as constraints learn
more about the tree.

Key Components:
    - grammar: Rules, categories, attached constraints and size tables
    - tree: Partial trees, templates and template matching
    - solver: Per-branch constraint propagation
    - constraints: Forbidden, Contains, ContainsSubtree, Ordered,
      ForbiddenSequence and Unique
    - search: Breadth-first and depth-first enumerators

Usage:
    >>> from grove import BFSEnumerator, Forbidden, GrammarBuilder, RuleNode, VarNode
    >>> grammar = GrammarBuilder().with_rule("Int", (), label="1").build()
    >>> list(BFSEnumerator(grammar, "Int", max_size=1))
    [RuleNode(rule=0, children=())]
"""

# Lazy imports keep "import grove" cheap; submodules load on first access


def __getattr__(name: str):
    """Lazy import of module attributes."""
    # Errors
    if name in ("ConstraintDomainError", "GroveError", "PathError", "StructuralError"):
        from .core.errors import (
            ConstraintDomainError,
            GroveError,
            PathError,
            StructuralError,
        )

        return locals()[name]

    # Grammar model
    if name in ("Grammar", "GrammarAnalysis", "GrammarBuilder", "Rule"):
        from .grammar import Grammar, GrammarAnalysis, GrammarBuilder, Rule

        return locals()[name]

    # Tree model
    if name in (
        "DomainRuleNode",
        "Hole",
        "HoleRequirement",
        "Match",
        "NoMatch",
        "PartialMatch",
        "RuleNode",
        "VarNode",
        "pattern_match",
    ):
        from .tree import (
            DomainRuleNode,
            Hole,
            HoleRequirement,
            Match,
            NoMatch,
            PartialMatch,
            RuleNode,
            VarNode,
            pattern_match,
        )

        return locals()[name]

    # Solver
    if name in ("Comparison", "Solver"):
        from .solver import Comparison, Solver

        return locals()[name]

    # Constraints
    if name in (
        "Contains",
        "ContainsSubtree",
        "Forbidden",
        "ForbiddenSequence",
        "GrammarConstraint",
        "LocalConstraint",
        "Ordered",
        "Unique",
    ):
        from .constraints import (
            Contains,
            ContainsSubtree,
            Forbidden,
            ForbiddenSequence,
            GrammarConstraint,
            LocalConstraint,
            Ordered,
            Unique,
        )

        return locals()[name]

    # Search
    if name in (
        "BFSEnumerator",
        "DFSEnumerator",
        "SearchConfig",
        "SearchStats",
        "SearchStrategy",
        "TopDownEnumerator",
        "create_enumerator",
    ):
        from .search import (
            BFSEnumerator,
            DFSEnumerator,
            SearchConfig,
            SearchStats,
            SearchStrategy,
            TopDownEnumerator,
            create_enumerator,
        )

        return locals()[name]

    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    # Errors
    "GroveError",
    "StructuralError",
    "ConstraintDomainError",
    "PathError",
    # Grammar model
    "Grammar",
    "GrammarAnalysis",
    "GrammarBuilder",
    "Rule",
    # Tree model
    "RuleNode",
    "Hole",
    "DomainRuleNode",
    "VarNode",
    "pattern_match",
    "Match",
    "NoMatch",
    "PartialMatch",
    "HoleRequirement",
    # Solver
    "Solver",
    "Comparison",
    # Constraints
    "GrammarConstraint",
    "LocalConstraint",
    "Forbidden",
    "Contains",
    "ContainsSubtree",
    "Ordered",
    "ForbiddenSequence",
    "Unique",
    # Search
    "TopDownEnumerator",
    "BFSEnumerator",
    "DFSEnumerator",
    "SearchConfig",
    "SearchStats",
    "SearchStrategy",
    "create_enumerator",
]

__version__ = "0.1.0"
