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
"""Constraint propagation solver for one search branch.

A Solver owns one partial tree, the local constraints posted on it, and a
feasibility flag. Every domain change goes through the mutation primitives
below; each change at a path schedules the active local constraints whose
shouldschedule() accepts that path, and fix_point() drains the resulting
work-list.

Propagation model:
    1. A primitive narrows a domain (or fills a hole) at path P
    2. Active constraints interested in P are queued (deduplicated)
    3. fix_point() propagates queued constraints until none are left
    4. Size and depth bounds are re-checked; any pruning re-queues work
    5. An emptied domain or a violated constraint marks the branch
       infeasible and discards all queued work

Positions unified with make_equal() form an equivalence class; a change at
one member is applied to all of them, so unified subtrees stay identical.

Soundness:
    Primitives only ever remove rules that cannot be part of a complete
    tree satisfying every constraint within the bounds. Complete trees are
    never lost; only dead branches are cut.
"""

from __future__ import annotations

import logging
from enum import Enum, auto
from typing import TYPE_CHECKING, Dict, Iterable, List, Optional, Tuple, Union

from ..core.domain import (
    domain_contains,
    domain_of,
    highest_rule,
    is_singleton,
    lowest_rule,
    rules_at_least,
    rules_at_most,
)
from ..core.errors import PathError
from ..tree.nodes import (
    Hole,
    Node,
    Path,
    RuleNode,
    get_hole_at,
    get_node_at,
    get_rule,
    isfilled,
    iter_holes,
    iter_nodes,
    replace_at,
)
from .equivalence import PathEquivalence
from .worklist import ConstraintWorklist

if TYPE_CHECKING:
    from ..constraints.base import LocalConstraint
    from ..grammar.grammar import Grammar

logger = logging.getLogger(__name__)


class Comparison(Enum):
    """Outcome of make_less_than_or_equal.

    LESS:
        The first subtree is certainly smaller
    EQUAL:
        Both subtrees are complete and identical
    UNDECIDED:
        Not yet determined; domains may have been narrowed
    VIOLATED:
        The first subtree is certainly larger; the branch is infeasible
    """

    LESS = auto()
    EQUAL = auto()
    UNDECIDED = auto()
    VIOLATED = auto()


class Solver:
    """Propagation state of one search branch.

    Example:
        >>> solver = Solver(grammar, Hole("Int", grammar.domain_for("Int")), max_size=3)
        >>> solver.fill((), grammar.find_rule("Int + Int"))
        >>> solver.fix_point()
        True
        >>> solver.get_tree()
        RuleNode(rule=3, children=(Hole(...), Hole(...)))
    """

    def __init__(
        self,
        grammar: Grammar,
        root: Node,
        max_depth: Optional[int] = None,
        max_size: Optional[int] = None,
    ):
        """Create a solver and announce every node of the initial tree.

        Args:
            grammar: Grammar the tree is derived from
            root: Initial tree, usually a single Hole
            max_depth: Maximum tree depth (a single node has depth 1)
            max_size: Maximum number of nodes

        Raises:
            ValueError: If a bound is smaller than 1
            StructuralError: If the tree does not respect the grammar
        """
        for name, bound in (("max_depth", max_depth), ("max_size", max_size)):
            if bound is not None and bound < 1:
                raise ValueError(f"{name} must be >= 1, got {bound}")
        grammar.check_tree(root)

        self._grammar = grammar
        self._root = root
        self._max_depth = max_depth
        self._max_size = max_size
        self._active: Dict[LocalConstraint, None] = {}
        self._deactivated: Dict[LocalConstraint, None] = {}
        self._worklist = ConstraintWorklist()
        self._equivalence = PathEquivalence()
        self._feasible = True
        self._unify_depth = 0
        self._stats = {
            "fills": 0,
            "narrowings": 0,
            "posted": 0,
            "propagations": 0,
            "reactivations": 0,
        }

        for path, _ in list(iter_nodes(root)):
            if not self._feasible:
                break
            self._new_node(path)

    # =========================================================================
    # Getters
    # =========================================================================

    @property
    def grammar(self) -> Grammar:
        return self._grammar

    @property
    def max_depth(self) -> Optional[int]:
        return self._max_depth

    @property
    def max_size(self) -> Optional[int]:
        return self._max_size

    @property
    def stats(self) -> Dict[str, int]:
        return dict(self._stats)

    @property
    def active_constraints(self) -> Tuple[LocalConstraint, ...]:
        return tuple(self._active)

    @property
    def deactivated_constraints(self) -> Tuple[LocalConstraint, ...]:
        return tuple(self._deactivated)

    def get_tree(self) -> Node:
        return self._root

    def isfeasible(self) -> bool:
        return self._feasible

    def is_complete(self) -> bool:
        """True if no hole is left, singleton holes included."""
        for _ in iter_holes(self._root):
            return False
        return True

    def get_node_at(self, path: Path) -> Node:
        return get_node_at(self._root, tuple(path))

    def get_hole_at(self, path: Path) -> Hole:
        """Return the undecided hole at path.

        Raises:
            PathError: If the node is filled or has a singleton domain
        """
        return get_hole_at(self._root, tuple(path))

    def get_path(self, node: Node) -> Path:
        """Path of a node of the current tree, found by identity.

        Raises:
            PathError: If the node is not part of the current tree
        """
        for path, candidate in iter_nodes(self._root):
            if candidate is node:
                return path
        raise PathError((), f"{node} is not in the current tree")

    def equivalent_paths(self, path: Path) -> List[Path]:
        return self._equivalence.members(tuple(path))

    def size_lower_bound(self) -> float:
        """Size of the smallest completion of the current tree."""
        analysis = self._grammar.analysis
        total = 0
        for _, node in iter_nodes(self._root):
            if isinstance(node, RuleNode):
                total += 1
            else:
                total += analysis.domain_min_size(node.domain)
        return total

    def hole_min_size(self, path: Path) -> float:
        node = self.get_node_at(path)
        if isinstance(node, RuleNode):
            raise PathError(path, f"node at {tuple(path)} is not a hole")
        return self._grammar.analysis.domain_min_size(node.domain)

    def size_slack(self) -> Optional[float]:
        """Nodes that can still be added beyond the smallest completion."""
        if self._max_size is None:
            return None
        return self._max_size - self.size_lower_bound()

    def depth_budget(self, path: Path) -> Optional[int]:
        """Levels available to the subtree rooted at path, itself included."""
        if self._max_depth is None:
            return None
        return self._max_depth - len(path)

    # =========================================================================
    # Domain primitives
    # =========================================================================

    def remove(self, path: Path, rules: Union[int, Iterable[int]]) -> None:
        """Strike one rule (an int) or several rules from the domain at path."""
        mask = 1 << rules if isinstance(rules, int) else domain_of(rules)
        self._narrow(tuple(path), ~mask)

    def remove_all_but(self, path: Path, domain: Union[int, Iterable[int]]) -> None:
        """Keep only the given rules at path.

        Args:
            path: Position to narrow
            domain: Bitset of rules to keep, or an iterable of rule indices
        """
        keep = domain if isinstance(domain, int) else domain_of(domain)
        self._narrow(tuple(path), keep)

    def remove_above(self, path: Path, rule: int) -> None:
        """Strike every rule with an index greater than rule."""
        self._narrow(tuple(path), rules_at_most(rule))

    def remove_below(self, path: Path, rule: int) -> None:
        """Strike every rule with an index smaller than rule."""
        self._narrow(tuple(path), rules_at_least(rule))

    def fill(self, path: Path, rule: int) -> None:
        """Materialize the hole at path as rule, adding fresh child holes.

        Every attached grammar constraint sees each new child position
        through its on_new_node hook. Child domains only keep rules whose
        minimal subtree fits within max_depth.

        Raises:
            PathError: If the node at path is already a RuleNode
        """
        path = tuple(path)
        node = self.get_node_at(path)
        if isinstance(node, RuleNode):
            raise PathError(path, f"node at {path} is already filled")
        if not self._feasible:
            return
        self._narrow(path, 1 << rule)
        if self._feasible:
            self._fill_class(path, rule)

    def materialize_singletons(self) -> bool:
        """Fill every hole with a single rule left, until none remain.

        Returns:
            True if at least one hole was filled
        """
        filled = False
        while self._feasible:
            target = None
            for path, hole in iter_holes(self._root):
                if is_singleton(hole.domain):
                    target = path, lowest_rule(hole.domain)
                    break
            if target is None:
                break
            self._fill_class(*target)
            filled = True
        return filled

    def make_equal(self, path1: Path, path2: Path) -> None:
        """Force the subtrees at two paths to be structurally identical.

        A filled side narrows and materializes the other side recursively;
        two holes intersect their domains. The paths stay unified for the
        rest of this branch.
        """
        path1, path2 = tuple(path1), tuple(path2)
        self.get_node_at(path1)
        self.get_node_at(path2)
        if not self._feasible or path1 == path2:
            return
        shorter, longer = sorted((path1, path2), key=len)
        if longer[: len(shorter)] == shorter:
            self.set_infeasible(f"{shorter} cannot equal its own subtree {longer}")
            return
        self._unify_depth += 1
        try:
            self._equivalence.union(path1, path2)
            self._sync(path1)
        finally:
            self._unify_depth -= 1

    def make_less_than_or_equal(self, path1: Path, path2: Path) -> Comparison:
        """Enforce subtree(path1) <= subtree(path2) in the canonical order.

        Trees are ordered by root rule index first, then by children from
        left to right.
        """
        path1, path2 = tuple(path1), tuple(path2)
        if not self._feasible:
            return Comparison.VIOLATED
        node1, node2 = self.get_node_at(path1), self.get_node_at(path2)
        filled1, filled2 = isfilled(node1), isfilled(node2)

        if filled1 and filled2:
            rule1, rule2 = get_rule(node1), get_rule(node2)
            if rule1 < rule2:
                return Comparison.LESS
            if rule1 > rule2:
                self.set_infeasible(f"{path1} sorts after {path2}")
                return Comparison.VIOLATED
            if isinstance(node1, RuleNode) and isinstance(node2, RuleNode):
                for index in range(len(node1.children)):
                    result = self.make_less_than_or_equal(path1 + (index,), path2 + (index,))
                    if result is not Comparison.EQUAL:
                        return result
                return Comparison.EQUAL
            if self._grammar.isterminal(rule1):
                return Comparison.EQUAL
            return Comparison.UNDECIDED

        if filled2:
            self.remove_above(path1, get_rule(node2))
        elif filled1:
            self.remove_below(path2, get_rule(node1))
        else:
            self.remove_above(path1, highest_rule(node2.domain))
            self.remove_below(path2, lowest_rule(node1.domain))
        if not self._feasible:
            return Comparison.VIOLATED

        node1, node2 = self.get_node_at(path1), self.get_node_at(path2)
        if isfilled(node1) and isfilled(node2):
            return self.make_less_than_or_equal(path1, path2)
        high1 = get_rule(node1) if isfilled(node1) else highest_rule(node1.domain)
        low2 = get_rule(node2) if isfilled(node2) else lowest_rule(node2.domain)
        if high1 < low2:
            return Comparison.LESS
        return Comparison.UNDECIDED

    def set_infeasible(self, reason: str = "") -> None:
        """Mark the branch dead and drop all queued work."""
        if self._feasible:
            logger.debug(f"Branch infeasible: {reason or 'constraint violated'}")
        self._feasible = False
        self._worklist.clear()

    # =========================================================================
    # Constraint management
    # =========================================================================

    def post(self, constraint: LocalConstraint) -> None:
        """Add a local constraint and propagate it once right away.

        A constraint equal to one already active or deactivated is ignored.
        """
        if not self._feasible:
            return
        if constraint in self._active or constraint in self._deactivated:
            return
        self._active[constraint] = None
        self._stats["posted"] += 1
        constraint.propagate(self)

    def deactivate(self, constraint: LocalConstraint) -> None:
        """Retire a local constraint that can no longer prune anything."""
        self._active.pop(constraint, None)
        self._deactivated[constraint] = None
        self._worklist.remove(constraint)

    def schedule(self, constraint: LocalConstraint) -> None:
        if constraint in self._active:
            self._worklist.add(constraint)

    def fix_point(self) -> bool:
        """Propagate queued constraints until nothing changes.

        Returns:
            The feasibility flag after propagation
        """
        while self._feasible:
            constraint = self._worklist.pop()
            if constraint is None:
                if self._tighten_bounds():
                    continue
                break
            if constraint not in self._active:
                continue
            self._stats["propagations"] += 1
            constraint.propagate(self)
        return self._feasible

    def fork(self) -> Solver:
        """Copy this branch. The tree is shared; mutable state is copied."""
        other = Solver.__new__(Solver)
        other._grammar = self._grammar
        other._root = self._root
        other._max_depth = self._max_depth
        other._max_size = self._max_size
        other._active = dict(self._active)
        other._deactivated = dict(self._deactivated)
        other._worklist = self._worklist.copy()
        other._equivalence = self._equivalence.copy()
        other._feasible = self._feasible
        other._unify_depth = 0
        other._stats = dict(self._stats)
        return other

    # =========================================================================
    # Internals
    # =========================================================================

    def _narrow(self, path: Path, keep: int) -> None:
        """Intersect the domain at path, and at every unified path, with keep."""
        self.get_node_at(path)
        for member in self._equivalence.members(path):
            if not self._feasible:
                return
            self._narrow_one(member, keep)

    def _narrow_one(self, path: Path, keep: int) -> None:
        node = get_node_at(self._root, path)
        if isinstance(node, RuleNode):
            if not domain_contains(keep, node.rule):
                self.set_infeasible(f"rule {node.rule} at {path} was removed")
            return
        domain = node.domain & keep
        if domain == node.domain:
            return
        if not domain:
            self.set_infeasible(f"domain at {path} is empty")
            return
        self._root = replace_at(self._root, path, Hole(node.category, domain))
        self._stats["narrowings"] += 1
        self._notify(path)

    def _fill_class(self, path: Path, rule: int) -> None:
        members = self._equivalence.members(path)
        new_paths: List[Path] = []
        for member in members:
            node = get_node_at(self._root, member)
            if isinstance(node, RuleNode):
                if node.rule != rule:
                    self.set_infeasible(f"{member} holds rule {node.rule}, not {rule}")
                    return
                continue
            if not domain_contains(node.domain, rule):
                self.set_infeasible(f"rule {rule} not admissible at {member}")
                return
            new_paths.extend(self._fill_one(member, node, rule))
            if not self._feasible:
                return

        if len(members) > 1:
            anchor = members[0]
            for index in range(self._grammar.nchildren(rule)):
                for member in members[1:]:
                    self._equivalence.union(anchor + (index,), member + (index,))
                self._sync(anchor + (index,))
                if not self._feasible:
                    return

        for new_path in new_paths:
            self._new_node(new_path)
            if not self._feasible:
                return

    def _fill_one(self, path: Path, hole: Hole, rule: int) -> List[Path]:
        analysis = self._grammar.analysis
        depth_mask = analysis.within_depth(self.depth_budget(path + (0,)))
        children = []
        for category in self._grammar.child_types(rule):
            domain = self._grammar.domain_for(category) & depth_mask
            if not domain:
                self.set_infeasible(f"no {category!r} rule fits below {path}")
                return []
            children.append(Hole(category, domain))
        self._root = replace_at(self._root, path, RuleNode(rule, tuple(children)))
        self._stats["fills"] += 1
        self._notify(path)
        return [path + (index,) for index in range(len(children))]

    def _sync(self, path: Path) -> None:
        """Bring every member of the class of path to the same state."""
        members = self._equivalence.members(path)
        if len(members) < 2:
            return
        nodes = [get_node_at(self._root, member) for member in members]
        rules = {node.rule for node in nodes if isinstance(node, RuleNode)}
        if len(rules) > 1:
            self.set_infeasible(f"unified paths {members} hold different rules")
            return
        if rules:
            rule = rules.pop()
            self._narrow(path, 1 << rule)
            if self._feasible:
                self._fill_class(path, rule)
            return
        common = -1
        for node in nodes:
            common &= node.domain
        self._narrow(path, common)

    def _new_node(self, path: Path) -> None:
        for constraint in self._grammar.constraints:
            if not self._feasible:
                return
            constraint.on_new_node(self, path)

    def _notify(self, path: Path) -> None:
        for constraint in list(self._active):
            if constraint.shouldschedule(self, path):
                self._worklist.add(constraint)
        if self._unify_depth:
            for constraint in list(self._deactivated):
                if constraint.shouldschedule(self, path):
                    del self._deactivated[constraint]
                    self._active[constraint] = None
                    self._worklist.add(constraint)
                    self._stats["reactivations"] += 1
                    logger.debug(f"Reactivated {constraint} after unifying at {path}")

    def _tighten_bounds(self) -> bool:
        """Prune rules that cannot fit the size and depth bounds.

        Returns:
            True if any domain changed
        """
        if self._max_size is None and self._max_depth is None:
            return False
        analysis = self._grammar.analysis
        total = 0
        holes = []
        for path, node in iter_nodes(self._root):
            if isinstance(node, RuleNode):
                total += 1
            else:
                minimum = analysis.domain_min_size(node.domain)
                total += minimum
                holes.append((path, node, minimum))
        if self._max_size is not None and total > self._max_size:
            self.set_infeasible(f"smallest completion has {total} nodes")
            return False

        changed = False
        for path, hole, minimum in holes:
            keep = analysis.within_depth(self.depth_budget(path))
            if self._max_size is not None:
                keep &= analysis.within_size(int(minimum + self._max_size - total))
            current = get_node_at(self._root, path)
            if isinstance(current, Hole) and current.domain & ~keep:
                self._narrow(path, keep)
                changed = True
                if not self._feasible:
                    return False
        return changed

    def __repr__(self) -> str:
        state = "feasible" if self._feasible else "infeasible"
        return (
            f"Solver({state}, tree={self._root}, active={len(self._active)}, "
            f"queued={len(self._worklist)})"
        )
