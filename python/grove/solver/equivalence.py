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
"""Union-find over tree paths.

Two paths in the same class must end up holding structurally identical
subtrees. The solver keeps every class in lockstep: a domain change at one
member is applied to all of them.
"""

from __future__ import annotations

from typing import Dict, List, Tuple

Path = Tuple[int, ...]


class PathEquivalence:
    """Disjoint sets of paths with member listing.

    Example:
        >>> eq = PathEquivalence()
        >>> eq.union((0,), (1,))
        True
        >>> eq.members((1,))
        [(0,), (1,)]
        >>> eq.members((2,))
        [(2,)]
    """

    def __init__(self):
        self._parent: Dict[Path, Path] = {}
        self._members: Dict[Path, List[Path]] = {}

    def find(self, path: Path) -> Path:
        root = path
        while self._parent.get(root, root) != root:
            root = self._parent[root]
        # path compression
        while path != root:
            parent = self._parent[path]
            self._parent[path] = root
            path = parent
        return root

    def union(self, first: Path, second: Path) -> bool:
        """Merge the classes of two paths.

        Returns:
            True if the classes were distinct
        """
        a, b = self.find(first), self.find(second)
        if a == b:
            return False
        members_a = self._members.pop(a, [a])
        members_b = self._members.pop(b, [b])
        if len(members_a) < len(members_b):
            a, b = b, a
            members_a, members_b = members_b, members_a
        self._parent.setdefault(a, a)
        self._parent[b] = a
        self._members[a] = members_a + members_b
        return True

    def members(self, path: Path) -> List[Path]:
        """Every path in the class of path, itself included, in merge order."""
        return list(self._members.get(self.find(path), [path]))

    def same(self, first: Path, second: Path) -> bool:
        return self.find(first) == self.find(second)

    def copy(self) -> PathEquivalence:
        other = PathEquivalence()
        other._parent = dict(self._parent)
        other._members = {root: list(paths) for root, paths in self._members.items()}
        return other

    def __len__(self) -> int:
        """Number of non-trivial classes."""
        return len(self._members)
