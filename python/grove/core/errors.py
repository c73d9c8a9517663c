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
"""Exception hierarchy for grove.

Branch infeasibility is never signalled with an exception: a solver that
runs out of options flips its feasibility flag and the enumerator drops the
branch. Exceptions are reserved for malformed input.
"""

from __future__ import annotations


class GroveError(Exception):
    """Base class for all grove errors."""


class StructuralError(GroveError, ValueError):
    """A rule, grammar or tree is malformed.

    Raised for unknown child categories, removed or out-of-range rule
    indices, and trees whose rules disagree with the category or arity
    their position requires.
    """


class ConstraintDomainError(GroveError, ValueError):
    """A constraint refers to rules or variables the grammar does not have."""


class PathError(GroveError, LookupError):
    """A path does not address a node of the expected kind."""

    def __init__(self, path, message: str = ""):
        self.path = tuple(path)
        super().__init__(message or f"no node at path {self.path}")
