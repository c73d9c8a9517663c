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
"""Grammar constraints and the local constraints they post."""

from .base import GrammarConstraint, LocalConstraint
from .contains import Contains, LocalContains
from .contains_subtree import ContainsSubtree, LocalContainsSubtree
from .forbidden import Forbidden, LocalForbidden
from .forbidden_sequence import ForbiddenSequence, LocalForbiddenSequence
from .ordered import LocalOrdered, Ordered
from .unique import LocalUnique, Unique

__all__ = [
    "GrammarConstraint",
    "LocalConstraint",
    "Contains",
    "ContainsSubtree",
    "Forbidden",
    "ForbiddenSequence",
    "Ordered",
    "Unique",
    "LocalContains",
    "LocalContainsSubtree",
    "LocalForbidden",
    "LocalForbiddenSequence",
    "LocalOrdered",
    "LocalUnique",
]
