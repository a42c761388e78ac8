import itertools
from collections.abc import Iterable

import pytest

from lorebook.core.activation.service import reset_injection_service
from lorebook.core.rules.domain.rule import Rule
from lorebook.shared.kernel import runtime


# ============================================================================
# Deterministic probability rolls
# ============================================================================
class FixedRolls:
    """RandomSource returning a scripted sequence of rolls, then a constant."""

    def __init__(self, rolls: Iterable[float] = (), default: float = 0.0):
        self._rolls = list(rolls)
        self.default = default
        self.calls = 0

    def roll(self) -> float:
        self.calls += 1
        if self._rolls:
            return self._rolls.pop(0)
        return self.default


@pytest.fixture
def fixed_rolls():
    return FixedRolls


# ============================================================================
# Rule factory
# ============================================================================
@pytest.fixture
def make_rule():
    """
    Build rules with stable ids and strictly increasing ``created_at`` so
    priority tie-breaks are predictable.
    """
    counter = itertools.count(1)

    def _make(content: str = "Some lore.", **overrides) -> Rule:
        n = next(counter)
        overrides.setdefault("id", f"rule-{n}")
        overrides.setdefault("created_at", 1_700_000_000_000 + n)
        return Rule(content=content, **overrides)

    return _make


# ============================================================================
# Global state
# ============================================================================
@pytest.fixture(autouse=True)
def _reset_runtime_state():
    runtime._reset_for_tests()
    reset_injection_service()
    yield
    runtime._reset_for_tests()
    reset_injection_service()
