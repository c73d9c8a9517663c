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
"""Shared support code: error types and bitset rule domains."""

from .domain import (
    EMPTY_DOMAIN,
    domain_contains,
    domain_of,
    domain_rules,
    domain_size,
    highest_rule,
    is_singleton,
    iter_rules,
    lowest_rule,
    rules_at_least,
    rules_at_most,
)
from .errors import (
    ConstraintDomainError,
    GroveError,
    PathError,
    StructuralError,
)

__all__ = [
    "EMPTY_DOMAIN",
    "domain_contains",
    "domain_of",
    "domain_rules",
    "domain_size",
    "highest_rule",
    "is_singleton",
    "iter_rules",
    "lowest_rule",
    "rules_at_least",
    "rules_at_most",
    "ConstraintDomainError",
    "GroveError",
    "PathError",
    "StructuralError",
]
