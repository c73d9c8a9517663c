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
"""Work-list for constraint propagation scheduling.

The work-list holds local constraints waiting to be propagated. It supports:
- First-in-first-out ordering
- Deduplication (each constraint appears at most once)
- Fixpoint detection (empty work-list = fixed point)

Propagation order only affects how fast the fixpoint is reached, never the
fixpoint itself.
"""

from __future__ import annotations

from collections import deque
from typing import TYPE_CHECKING, Deque, Optional, Set

if TYPE_CHECKING:
    from ..constraints.base import LocalConstraint


class ConstraintWorklist:
    """FIFO queue of local constraints without duplicates.

    Example:
        >>> worklist = ConstraintWorklist()
        >>> worklist.add(forbid_at_root)
        True
        >>> worklist.add(forbid_at_root)
        False
        >>> worklist.pop() is forbid_at_root
        True
    """

    def __init__(self):
        self._queue: Deque[LocalConstraint] = deque()
        self._in_worklist: Set[LocalConstraint] = set()

    def add(self, constraint: LocalConstraint) -> bool:
        """Queue a constraint.

        Returns:
            True if added, False if already queued
        """
        if constraint in self._in_worklist:
            return False
        self._queue.append(constraint)
        self._in_worklist.add(constraint)
        return True

    def pop(self) -> Optional[LocalConstraint]:
        """Remove and return the oldest queued constraint, or None."""
        while self._queue:
            constraint = self._queue.popleft()
            if constraint in self._in_worklist:
                self._in_worklist.remove(constraint)
                return constraint
        return None

    def remove(self, constraint: LocalConstraint) -> bool:
        """Drop a queued constraint; the stale queue entry is skipped by pop()."""
        if constraint in self._in_worklist:
            self._in_worklist.remove(constraint)
            return True
        return False

    def contains(self, constraint: LocalConstraint) -> bool:
        return constraint in self._in_worklist

    def clear(self) -> None:
        self._queue = deque()
        self._in_worklist = set()

    def copy(self) -> ConstraintWorklist:
        other = ConstraintWorklist()
        other._queue = deque(c for c in self._queue if c in self._in_worklist)
        other._in_worklist = set(self._in_worklist)
        return other

    def is_empty(self) -> bool:
        return not self._in_worklist

    def __len__(self) -> int:
        return len(self._in_worklist)

    def __bool__(self) -> bool:
        return not self.is_empty()
