"""
Activation Gate
===============

Turns the set of matched rules into the set of activated rules:

1. Always-active rules pass untouched.
2. Every matched rule rolls once against its ``probability``.
3. The per-turn activation ceiling trims the lowest-priority survivors.
"""

import logging
import random
from dataclasses import dataclass, field
from typing import Protocol

from lorebook.core.rules.domain.rule import Rule

logger = logging.getLogger(__name__)


class RandomSource(Protocol):
    """Source of probability rolls, injectable so tests can force outcomes."""

    def roll(self) -> float:
        """Return a uniform value in [0, 100)."""
        ...


class SeededRandomSource:
    """RandomSource backed by a private ``random.Random`` instance."""

    def __init__(self, seed: int | None = None):
        self._rng = random.Random(seed)

    def roll(self) -> float:
        return self._rng.random() * 100


def priority_key(rule: Rule) -> tuple:
    """Descending-priority sort key shared by the gate and the allocator."""
    return (-rule.order, -rule.token_priority, rule.created_at, rule.id)


@dataclass
class GateResult:
    activated: list[Rule] = field(default_factory=list)
    # Matched but lost the probability roll or the activation ceiling
    suppressed: list[Rule] = field(default_factory=list)
    rolls: dict[str, float] = field(default_factory=dict)


class ActivationGate:
    """Applies probability rolls and the per-turn activation ceiling."""

    def __init__(self, random_source: RandomSource | None = None):
        self.random_source = random_source or SeededRandomSource()

    def apply(self, matched: list[Rule], always_active: list[Rule]) -> GateResult:
        """
        Decide activation for one turn.

        ``matched`` must be in snapshot order: one roll is drawn per rule in
        that order, which keeps seeded runs reproducible.
        """
        result = GateResult()
        result.activated.extend(always_active)

        survivors: list[Rule] = []
        for rule in matched:
            roll = self.random_source.roll()
            result.rolls[rule.id] = roll
            if roll < rule.probability:
                survivors.append(rule)
            else:
                logger.debug(f"Rule {rule.id} suppressed by probability roll {roll:.2f} >= {rule.probability}")
                result.suppressed.append(rule)

        kept, trimmed = self.apply_activation_ceiling(survivors)
        result.activated.extend(kept)
        result.suppressed.extend(trimmed)
        return result

    @staticmethod
    def apply_activation_ceiling(rules: list[Rule]) -> tuple[list[Rule], list[Rule]]:
        """
        Enforce ``max_activations_per_turn`` across all triggered rules.

        Rules are considered highest priority first; a rule is kept only if the
        kept count including it stays within its own cap and within the cap of
        every rule already kept. Excess rules are therefore dropped from the
        bottom of the priority order, never at random.
        """
        kept: list[Rule] = []
        trimmed: list[Rule] = []
        ceiling: int | None = None

        for rule in sorted(rules, key=priority_key):
            candidate_ceiling = ceiling
            if rule.max_activations_per_turn is not None:
                cap = rule.max_activations_per_turn
                candidate_ceiling = cap if ceiling is None else min(ceiling, cap)

            if candidate_ceiling is not None and len(kept) + 1 > candidate_ceiling:
                logger.debug(f"Rule {rule.id} trimmed by activation ceiling {candidate_ceiling}")
                trimmed.append(rule)
                continue

            kept.append(rule)
            ceiling = candidate_ceiling

        return kept, trimmed
