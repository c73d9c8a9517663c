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
"""Configuration and statistics for tree enumeration."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import Enum, auto
from typing import Any, Dict, Optional


class SearchStrategy(Enum):
    """Order in which the enumerator explores the frontier.

    BFS:
        Smallest partial trees first; complete trees come out in
        non-decreasing size.

    DFS:
        Most recent branch first; complete trees come out as soon as they
        are found.
    """

    BFS = auto()
    DFS = auto()


@dataclass
class SearchConfig:
    """Configuration for an enumeration.

    Attributes:
        strategy: Frontier discipline
        max_depth: Maximum tree depth, None for unbounded
        max_size: Maximum number of nodes, None for unbounded
    """

    strategy: SearchStrategy = SearchStrategy.BFS
    max_depth: Optional[int] = None
    max_size: Optional[int] = None

    def __post_init__(self):
        if isinstance(self.strategy, str):
            self.strategy = SearchStrategy[self.strategy.upper()]
        for name in ("max_depth", "max_size"):
            value = getattr(self, name)
            if value is not None and value < 1:
                raise ValueError(f"{name} must be >= 1, got {value}")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> SearchConfig:
        """Build from a plain mapping such as a parsed settings file.

        Unknown keys are ignored.
        """
        return cls(
            strategy=data.get("strategy", SearchStrategy.BFS),
            max_depth=data.get("max_depth"),
            max_size=data.get("max_size"),
        )


@dataclass
class SearchStats:
    """Statistics for one pass over the enumerator.

    Attributes:
        expansions: Partial trees whose hole was branched on
        branches: Child branches created
        pruned: Child branches found infeasible and dropped
        yielded: Complete trees produced
        max_frontier: Largest frontier size seen
    """

    expansions: int = 0
    branches: int = 0
    pruned: int = 0
    yielded: int = 0
    max_frontier: int = 0

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)
