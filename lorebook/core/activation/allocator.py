"""
Budget Allocator
================

Orders activated rules by priority and packs them into the token budget.
"""

import logging
from dataclasses import dataclass, field

from lorebook.core.activation.gate import priority_key
from lorebook.core.rules.domain.rule import Rule

logger = logging.getLogger(__name__)


def allocation_key(rule: Rule) -> tuple:
    """Always-active first, then order, token priority, age and id."""
    return (0 if rule.always_active else 1, *priority_key(rule))


@dataclass
class Allocation:
    """Result of packing activated rules into the budget."""

    included: list[Rule] = field(default_factory=list)
    dropped: list[Rule] = field(default_factory=list)
    budget: int = 0
    tokens_used: int = 0

    @property
    def remaining_budget(self) -> int:
        return self.budget - self.tokens_used


def allocate(activated: list[Rule], budget: int) -> Allocation:
    """
    Greedy single pass over the priority order.

    A rule is included iff it fits in what is left of ``budget``; a rule that
    does not fit is skipped for good and the walk continues with the next one.
    Content is never split.
    """
    allocation = Allocation(budget=max(0, budget))

    for rule in sorted(activated, key=allocation_key):
        weight = max(0, rule.token_weight or 0)
        if allocation.tokens_used + weight <= allocation.budget:
            allocation.included.append(rule)
            allocation.tokens_used += weight
        else:
            logger.debug(
                f"Rule {rule.id} dropped for budget: needs {weight}, "
                f"{allocation.remaining_budget} of {allocation.budget} left"
            )
            allocation.dropped.append(rule)

    return allocation
