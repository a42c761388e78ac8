"""
Rule Store
==========

Owns the rule set. Evaluation never sees live rules: ``snapshot()`` hands out
deep copies tagged with a version, so author edits made while a turn is being
evaluated only become visible on the next turn.
"""

import copy
import logging
import threading
from collections.abc import Callable, Iterable
from dataclasses import fields
from typing import Any

from lorebook.core.rules.domain.rule import Rule, RuleLogic, RuleSnapshot
from lorebook.core.rules.domain.validation import validate_rule
from lorebook.core.utils.tokenizer import estimate_token_weight
from lorebook.shared.exceptions import DuplicateRuleError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

_IMMUTABLE_FIELDS = frozenset({"id", "created_at", "token_weight", "activation_count", "last_activated"})
_EDITABLE_FIELDS = frozenset(f.name for f in fields(Rule)) - _IMMUTABLE_FIELDS


class RuleStore:
    """
    In-memory, thread-safe rule collection preserving insertion order.

    Args:
        rules: Initial rules (added in order)
        weigher: Optional token counter applied on add and on content edits.
            When None, the character heuristic is used for edits and explicit
            weights on added rules are kept.
    """

    def __init__(
        self,
        rules: Iterable[Rule] | None = None,
        weigher: Callable[[str], int] | None = None,
    ):
        self._rules: dict[str, Rule] = {}
        self._lock = threading.RLock()
        self._version = 0
        self._weigher = weigher
        for rule in rules or ():
            self.add(rule)

    @property
    def version(self) -> int:
        return self._version

    def _bump(self) -> None:
        self._version += 1

    def __len__(self) -> int:
        return len(self._rules)

    def __contains__(self, rule_id: object) -> bool:
        return rule_id in self._rules

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    def get(self, rule_id: str) -> Rule:
        """Return a copy of one rule."""
        with self._lock:
            rule = self._rules.get(rule_id)
            if rule is None:
                raise NotFoundError("Rule", rule_id)
            return copy.deepcopy(rule)

    def list_rules(self, include_inactive: bool = True) -> list[Rule]:
        with self._lock:
            return [
                copy.deepcopy(r) for r in self._rules.values() if include_inactive or r.is_active
            ]

    def snapshot(self) -> RuleSnapshot:
        """Deep-copied, versioned view for one evaluation pass."""
        with self._lock:
            return RuleSnapshot(
                version=self._version,
                rules=tuple(copy.deepcopy(r) for r in self._rules.values()),
            )

    def ids(self) -> set[str]:
        with self._lock:
            return set(self._rules)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------
    def add(self, rule: Rule, *, strict: bool = False) -> Rule:
        """
        Add a rule. The store keeps its own copy.

        With ``strict=True`` a rule failing validation is rejected; otherwise
        it is stored as authored and simply excluded at evaluation time.
        """
        if strict:
            errors = validate_rule(rule)
            if errors:
                raise ValidationError(f"Rule {rule.id} is invalid", errors)

        with self._lock:
            if rule.id in self._rules:
                raise DuplicateRuleError(rule.id)
            stored = copy.deepcopy(rule)
            if self._weigher is not None:
                stored.token_weight = self._weigher(stored.content)
            self._rules[stored.id] = stored
            self._bump()
            logger.debug(f"Added rule {stored.id}")
            return copy.deepcopy(stored)

    def update(self, rule_id: str, *, strict: bool = False, **changes: Any) -> Rule:
        """
        Apply author edits in place. Editing ``content`` recomputes ``token_weight``.

        Bookkeeping fields, ``id`` and ``created_at`` cannot be edited.
        """
        unknown = set(changes) - _EDITABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot edit rule fields: {', '.join(sorted(unknown))}")

        with self._lock:
            rule = self._rules.get(rule_id)
            if rule is None:
                raise NotFoundError("Rule", rule_id)

            edited = copy.deepcopy(rule)
            for name, value in changes.items():
                if name == "content":
                    edited.set_content(value, self._weigher or estimate_token_weight)
                elif name == "logic":
                    edited.logic = RuleLogic(value)
                else:
                    setattr(edited, name, value)

            if strict:
                errors = validate_rule(edited)
                if errors:
                    raise ValidationError(f"Rule {rule_id} is invalid", errors)

            self._rules[rule_id] = edited
            self._bump()
            logger.debug(f"Updated rule {rule_id}: {', '.join(sorted(changes))}")
            return copy.deepcopy(edited)

    def deactivate(self, rule_id: str) -> Rule:
        """Retire a rule while keeping its activation history."""
        return self.update(rule_id, is_active=False)

    def remove(self, rule_id: str) -> None:
        with self._lock:
            if self._rules.pop(rule_id, None) is None:
                raise NotFoundError("Rule", rule_id)
            self._bump()
            logger.info(f"Removed rule {rule_id}")

    def clear(self) -> None:
        with self._lock:
            self._rules.clear()
            self._bump()

    def record_activations(self, rule_ids: Iterable[str], turn: int) -> int:
        """
        Write back per-turn bookkeeping for rules that were actually injected.

        Rules removed since the snapshot was taken are skipped. Returns the
        number of rules updated.
        """
        updated = 0
        with self._lock:
            for rule_id in rule_ids:
                rule = self._rules.get(rule_id)
                if rule is None:
                    logger.warning(f"Activation recorded for unknown rule {rule_id}, skipping")
                    continue
                rule.activation_count += 1
                rule.last_activated = turn
                updated += 1
            if updated:
                self._bump()
        return updated
