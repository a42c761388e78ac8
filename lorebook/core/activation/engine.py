"""
Knowledge Injection Engine
==========================

Runs one turn of rule evaluation against an explicit snapshot:

    validate -> scan -> trigger -> gate -> allocate -> assemble

Each rule ends the turn in exactly one ``RuleOutcome``. The engine performs
no I/O and never mutates the rules it is given; bookkeeping is written back
by the caller (see ``KnowledgeInjectionService``).
"""

import enum
import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

from lorebook.core.activation.allocator import allocate
from lorebook.core.activation.assembly import InjectionAssembler, InjectionEntry
from lorebook.core.activation.gate import ActivationGate, RandomSource
from lorebook.core.activation.scan import ScanSources, ScanTextCache
from lorebook.core.activation.triggers import evaluate_trigger
from lorebook.core.rules.domain.rule import Rule, RuleSnapshot
from lorebook.core.rules.domain.validation import blocking_errors, validate_rule

logger = logging.getLogger(__name__)

SECONDARY_MODE_METADATA = "metadata"
SECONDARY_MODE_MERGED = "merged"
SECONDARY_KEYWORD_MODES = (SECONDARY_MODE_METADATA, SECONDARY_MODE_MERGED)


class RuleOutcome(str, enum.Enum):
    """Terminal per-turn state of a rule."""

    INACTIVE = "inactive"
    INVALID = "invalid"
    UNMATCHED = "unmatched"
    SUPPRESSED = "suppressed"
    DROPPED_FOR_BUDGET = "dropped_for_budget"
    INCLUDED = "included"


@dataclass
class InjectionResult:
    """Everything decided for one turn."""

    turn: int
    budget: int
    snapshot_version: int | None = None
    entries: list[InjectionEntry] = field(default_factory=list)
    block: str = ""
    tokens_used: int = 0
    outcomes: dict[str, RuleOutcome] = field(default_factory=dict)
    validation_errors: dict[str, list[str]] = field(default_factory=dict)

    @property
    def remaining_budget(self) -> int:
        return self.budget - self.tokens_used

    @property
    def included_ids(self) -> list[str]:
        return [e.rule_id for e in self.entries]

    @property
    def contents(self) -> list[str]:
        return [e.content for e in self.entries]

    def ids_with(self, outcome: RuleOutcome) -> list[str]:
        return [rule_id for rule_id, o in self.outcomes.items() if o is outcome]


class KnowledgeInjectionEngine:
    """Decides which rules are injected this turn, and in what order."""

    def __init__(
        self,
        random_source: RandomSource | None = None,
        assembler: InjectionAssembler | None = None,
        secondary_keyword_mode: str = SECONDARY_MODE_METADATA,
    ):
        if secondary_keyword_mode not in SECONDARY_KEYWORD_MODES:
            raise ValueError(f"Unknown secondary keyword mode: {secondary_keyword_mode}")
        self.gate = ActivationGate(random_source)
        self.assembler = assembler or InjectionAssembler()
        self.secondary_keyword_mode = secondary_keyword_mode

    def _trigger_keywords(self, rule: Rule) -> list[str]:
        if self.secondary_keyword_mode == SECONDARY_MODE_MERGED:
            return [*rule.keywords, *rule.secondary_keywords]
        return list(rule.keywords)

    def evaluate(
        self,
        snapshot: RuleSnapshot | Iterable[Rule],
        sources: ScanSources,
        *,
        turn: int,
        budget: int,
    ) -> InjectionResult:
        """
        Evaluate every rule in ``snapshot`` for ``turn``.

        Args:
            snapshot: Rules to consider, in store order
            sources: Scan text for this turn
            turn: Current turn number (recorded on included entries by the caller)
            budget: Total token budget for the injection block

        Returns:
            InjectionResult with ordered entries, the assembled block and
            the outcome of every rule
        """
        version = snapshot.version if isinstance(snapshot, RuleSnapshot) else None
        rules = list(snapshot)
        result = InjectionResult(turn=turn, budget=max(0, budget), snapshot_version=version)

        cache = ScanTextCache(sources)
        always_active: list[Rule] = []
        matched: list[Rule] = []
        reasons: dict[str, str] = {}
        matched_keywords: dict[str, tuple[str, ...]] = {}

        for rule in rules:
            if not rule.is_active:
                result.outcomes[rule.id] = RuleOutcome.INACTIVE
                continue

            errors = validate_rule(rule)
            if errors:
                result.validation_errors[rule.id] = errors
            if blocking_errors(errors):
                logger.debug(f"Rule {rule.id} excluded: {'; '.join(errors)}")
                result.outcomes[rule.id] = RuleOutcome.INVALID
                continue

            if rule.always_active:
                always_active.append(rule)
                reasons[rule.id] = "Always active (constant rule)"
                continue

            trigger = evaluate_trigger(
                self._trigger_keywords(rule),
                rule.logic,
                cache.text_for(rule),
                case_sensitive=rule.case_sensitive,
                match_whole_words=rule.match_whole_words,
            )
            if trigger.matched:
                matched.append(rule)
                reasons[rule.id] = trigger.reason
                matched_keywords[rule.id] = tuple(trigger.matched_keywords)
            else:
                result.outcomes[rule.id] = RuleOutcome.UNMATCHED

        gated = self.gate.apply(matched, always_active)
        for rule in gated.suppressed:
            result.outcomes[rule.id] = RuleOutcome.SUPPRESSED

        allocation = allocate(gated.activated, result.budget)
        for rule in allocation.dropped:
            result.outcomes[rule.id] = RuleOutcome.DROPPED_FOR_BUDGET

        for rule in allocation.included:
            result.outcomes[rule.id] = RuleOutcome.INCLUDED
            result.entries.append(
                InjectionEntry(
                    rule_id=rule.id,
                    title=rule.title,
                    content=rule.content,
                    token_weight=rule.token_weight or 0,
                    order=rule.order,
                    always_active=rule.always_active,
                    reason=reasons.get(rule.id, ""),
                    matched_keywords=matched_keywords.get(rule.id, ()),
                )
            )

        result.tokens_used = allocation.tokens_used
        result.block = self.assembler.assemble(result.entries)

        logger.info(
            f"Turn {turn}: {len(rules)} rules, {len(always_active)} always active, "
            f"{len(matched)} matched, {len(gated.activated)} activated, "
            f"{len(allocation.included)} included ({result.tokens_used}/{result.budget} tokens)"
        )
        return result
