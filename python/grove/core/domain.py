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
"""Rule domains as integer bitsets.

Bit ``i`` of a domain is set when rule ``i`` is still admissible. Python
integers are unbounded, so a domain works for any grammar size and set
operations are single machine-level operations on small grammars.

Example:
    >>> d = domain_of([0, 3])
    >>> domain_rules(d)
    [0, 3]
    >>> domain_size(d & ~domain_of([3]))
    1
"""

from __future__ import annotations

from typing import Iterable, Iterator, List

EMPTY_DOMAIN = 0


def domain_of(rules: Iterable[int]) -> int:
    """Build a domain from rule indices."""
    domain = 0
    for rule in rules:
        if rule < 0:
            raise ValueError(f"rule index must be non-negative, got {rule}")
        domain |= 1 << rule
    return domain


def iter_rules(domain: int) -> Iterator[int]:
    """Yield the rules of a domain in ascending order."""
    while domain:
        low = domain & -domain
        yield low.bit_length() - 1
        domain ^= low


def domain_rules(domain: int) -> List[int]:
    return list(iter_rules(domain))


def domain_size(domain: int) -> int:
    return bin(domain).count("1")


def domain_contains(domain: int, rule: int) -> bool:
    return (domain >> rule) & 1 == 1


def is_singleton(domain: int) -> bool:
    return domain != 0 and domain & (domain - 1) == 0


def lowest_rule(domain: int) -> int:
    """Return the smallest rule index of a non-empty domain."""
    if not domain:
        raise ValueError("empty domain has no rules")
    return (domain & -domain).bit_length() - 1


def highest_rule(domain: int) -> int:
    """Return the largest rule index of a non-empty domain."""
    if not domain:
        raise ValueError("empty domain has no rules")
    return domain.bit_length() - 1


def rules_at_most(rule: int) -> int:
    """Mask of every rule index <= rule."""
    return (1 << (rule + 1)) - 1


def rules_at_least(rule: int) -> int:
    """Mask of every rule index >= rule (an infinite two's complement mask)."""
    return ~((1 << rule) - 1)
