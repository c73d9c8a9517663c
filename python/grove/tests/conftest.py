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
"""Pytest configuration for grove tests.

Puts the source root on sys.path so the tests also run without an
installed package, and provides the grammars most tests share.

Arithmetic grammar rule indices:
    0: Int = 1
    1: Int = x
    2: Int = -Int
    3: Int = Int + Int
    4: Int = Int * Int
"""

import sys
from pathlib import Path

import pytest

python_dir = Path(__file__).parent.parent.parent
if str(python_dir) not in sys.path:
    sys.path.insert(0, str(python_dir))

from grove.grammar import Grammar, GrammarBuilder  # noqa: E402


def build_arithmetic_grammar() -> Grammar:
    return (
        GrammarBuilder()
        .with_rule("Int", (), label="1")
        .with_rule("Int", (), label="x")
        .with_rule("Int", ("Int",), label="-")
        .with_rule("Int", ("Int", "Int"), label="+")
        .with_rule("Int", ("Int", "Int"), label="*")
        .build()
    )


@pytest.fixture
def arithmetic_grammar() -> Grammar:
    """Fresh arithmetic grammar without constraints."""
    return build_arithmetic_grammar()


@pytest.fixture
def real_grammar() -> Grammar:
    """Real = 1 | 2 | Real * Real (rules 0, 1, 2)."""
    return (
        GrammarBuilder()
        .with_rule("Real", (), label="1")
        .with_rule("Real", (), label="2")
        .with_rule("Real", ("Real", "Real"), label="*")
        .build()
    )
