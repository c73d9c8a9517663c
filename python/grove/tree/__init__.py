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
"""Partial trees, templates and template matching."""

from .nodes import (
    DomainRuleNode,
    Hole,
    Node,
    Path,
    RuleNode,
    TemplateNode,
    VarNode,
    contains_hole,
    first_hole,
    get_children,
    get_hole_at,
    get_node_at,
    get_rule,
    is_complete,
    isfilled,
    iter_holes,
    iter_nodes,
    node_depth,
    node_size,
    replace_at,
    template_variables,
)
from .patterns import (
    NO_MATCH,
    HoleRequirement,
    Match,
    MatchResult,
    NoMatch,
    PartialMatch,
    pattern_match,
    single_complete_requirement,
)

__all__ = [
    "DomainRuleNode",
    "Hole",
    "Node",
    "Path",
    "RuleNode",
    "TemplateNode",
    "VarNode",
    "contains_hole",
    "first_hole",
    "get_children",
    "get_hole_at",
    "get_node_at",
    "get_rule",
    "is_complete",
    "isfilled",
    "iter_holes",
    "iter_nodes",
    "node_depth",
    "node_size",
    "replace_at",
    "template_variables",
    "NO_MATCH",
    "HoleRequirement",
    "Match",
    "MatchResult",
    "NoMatch",
    "PartialMatch",
    "pattern_match",
    "single_complete_requirement",
]
