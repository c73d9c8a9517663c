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
"""Partial derivation trees and tree templates.

A tree is built from two node kinds:

- RuleNode: a position whose rule is decided, with one child per child
  category of that rule.
- Hole: an undecided position carrying its category and a bitset domain of
  the rules it may still become.

Nodes are immutable. Editing a tree rebuilds only the spine from the root to
the edited position, so two search branches forked from the same state share
every subtree neither of them touched.

Templates (the patterns constraints are written in) reuse RuleNode for
concrete rules and add DomainRuleNode (any rule of a domain) and VarNode
(a named pattern variable).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, List, Optional, Tuple, Union

from ..core.domain import domain_rules, domain_size, is_singleton, lowest_rule
from ..core.errors import PathError, StructuralError

Path = Tuple[int, ...]


@dataclass(frozen=True, slots=True)
class RuleNode:
    """A node whose rule has been chosen.

    Attributes:
        rule: Grammar rule index
        children: One subtree per child category of the rule
    """

    rule: int
    children: Tuple = ()

    def __post_init__(self):
        if not isinstance(self.children, tuple):
            object.__setattr__(self, "children", tuple(self.children))

    def __str__(self) -> str:
        if not self.children:
            return str(self.rule)
        return f"{self.rule}{{{','.join(str(c) for c in self.children)}}}"


@dataclass(frozen=True, slots=True)
class Hole:
    """An undecided position.

    A hole with a single rule in its domain is logically decided but stays a
    Hole until the solver materializes it into a RuleNode.

    Attributes:
        category: Category the position requires
        domain: Bitset of admissible rule indices
    """

    category: str
    domain: int

    @property
    def rules(self) -> List[int]:
        return domain_rules(self.domain)

    @property
    def is_singleton(self) -> bool:
        return is_singleton(self.domain)

    def __len__(self) -> int:
        return domain_size(self.domain)

    def __str__(self) -> str:
        return f"hole[{self.category}]{self.rules}"


@dataclass(frozen=True, slots=True)
class DomainRuleNode:
    """Template node matching any rule of a domain with the given arity."""

    domain: int
    children: Tuple = ()

    def __post_init__(self):
        if not isinstance(self.children, tuple):
            object.__setattr__(self, "children", tuple(self.children))

    @classmethod
    def of(cls, rules, children=()) -> DomainRuleNode:
        """Build from an iterable of rule indices instead of a bitset."""
        domain = 0
        for rule in rules:
            domain |= 1 << rule
        return cls(domain, tuple(children))

    def __str__(self) -> str:
        head = "{" + ",".join(str(r) for r in domain_rules(self.domain)) + "}"
        if not self.children:
            return head
        return f"{head}({','.join(str(c) for c in self.children)})"


@dataclass(frozen=True, slots=True)
class VarNode:
    """Template variable. Repeated names must bind identical subtrees."""

    name: str

    def __str__(self) -> str:
        return self.name


Node = Union[RuleNode, Hole]
TemplateNode = Union[RuleNode, DomainRuleNode, VarNode]


# =============================================================================
# Navigation
# =============================================================================


def get_node_at(root: Node, path: Path) -> Node:
    """Return the node addressed by path.

    Raises:
        PathError: If the path runs past a leaf or a hole
    """
    node = root
    for depth, index in enumerate(path):
        children = node.children if isinstance(node, RuleNode) else ()
        if index < 0 or index >= len(children):
            raise PathError(path, f"path {tuple(path)} is invalid at depth {depth}")
        node = children[index]
    return node


def get_hole_at(root: Node, path: Path) -> Hole:
    """Return the undecided hole at path.

    Raises:
        PathError: If the node is filled or its domain is a singleton
    """
    node = get_node_at(root, path)
    if not isinstance(node, Hole) or domain_size(node.domain) < 2:
        raise PathError(path, f"node at {tuple(path)} is not an undecided hole")
    return node


def replace_at(root: Node, path: Path, new_node: Node) -> Node:
    """Return a copy of root with the node at path replaced.

    Only the spine from the root to path is rebuilt; all other subtrees are
    shared with the original tree.
    """
    if not path:
        return new_node
    if not isinstance(root, RuleNode) or not 0 <= path[0] < len(root.children):
        raise PathError(path)
    index = path[0]
    child = replace_at(root.children[index], path[1:], new_node)
    children = root.children[:index] + (child,) + root.children[index + 1 :]
    return RuleNode(root.rule, children)


def iter_nodes(root: Node, path: Path = ()) -> Iterator[Tuple[Path, Node]]:
    """Yield (path, node) pairs in pre-order, left to right."""
    stack = [(tuple(path), root)]
    while stack:
        node_path, node = stack.pop()
        yield node_path, node
        if isinstance(node, RuleNode):
            for index in range(len(node.children) - 1, -1, -1):
                stack.append((node_path + (index,), node.children[index]))


def iter_holes(root: Node) -> Iterator[Tuple[Path, Hole]]:
    for path, node in iter_nodes(root):
        if isinstance(node, Hole):
            yield path, node


def first_hole(root: Node) -> Optional[Path]:
    for path, _ in iter_holes(root):
        return path
    return None


# =============================================================================
# Measures
# =============================================================================


def is_complete(root: Node) -> bool:
    """True if the tree contains no Hole at all, singleton holes included."""
    return first_hole(root) is None


def contains_hole(root: Node) -> bool:
    return first_hole(root) is not None


def node_size(root: Node) -> int:
    """Number of nodes in the tree, counting each hole as one node."""
    return sum(1 for _ in iter_nodes(root))


def node_depth(root: Node) -> int:
    """Depth of the tree; a single node has depth 1."""
    if isinstance(root, RuleNode) and root.children:
        return 1 + max(node_depth(child) for child in root.children)
    return 1


def isfilled(node: Node) -> bool:
    """True for RuleNodes and for holes with exactly one rule left."""
    return isinstance(node, RuleNode) or is_singleton(node.domain)


def get_rule(node: Node) -> int:
    """Rule index of a filled node.

    Raises:
        StructuralError: If the node is an undecided hole
    """
    if isinstance(node, RuleNode):
        return node.rule
    if is_singleton(node.domain):
        return lowest_rule(node.domain)
    raise StructuralError(f"{node} has no single rule")


def get_children(node: Node) -> Tuple:
    return node.children if isinstance(node, RuleNode) else ()


def template_variables(template: TemplateNode) -> List[str]:
    """Variable names of a template in pre-order, first occurrences only."""
    names: List[str] = []
    stack = [template]
    while stack:
        node = stack.pop()
        if isinstance(node, VarNode):
            if node.name not in names:
                names.append(node.name)
        else:
            stack.extend(reversed(node.children))
    return names
