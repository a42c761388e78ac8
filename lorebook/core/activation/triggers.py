"""
Trigger Evaluator
=================

Decides whether a rule's keywords match the scan text under its logic mode.
"""

import re
import unicodedata
from dataclasses import dataclass, field
from functools import lru_cache

from lorebook.core.rules.domain.rule import RuleLogic


@dataclass(frozen=True)
class TriggerMatch:
    """Outcome of evaluating one keyword set."""

    matched: bool
    matched_keywords: list[str] = field(default_factory=list)
    reason: str = ""


@lru_cache(maxsize=1024)
def _whole_word_pattern(token: str) -> re.Pattern[str]:
    return re.compile(rf"(?<!\w){re.escape(token)}(?!\w)")


def keyword_matches(
    token: str,
    text: str,
    *,
    case_sensitive: bool = False,
    match_whole_words: bool = False,
) -> bool:
    """Return True when ``token`` occurs in ``text`` under the given comparison rules."""
    if not token or not token.strip() or not text:
        return False

    token = unicodedata.normalize("NFC", token)
    text = unicodedata.normalize("NFC", text)
    if not case_sensitive:
        token = token.casefold()
        text = text.casefold()

    if match_whole_words:
        return _whole_word_pattern(token).search(text) is not None
    return token in text


def evaluate_trigger(
    keywords: list[str],
    logic: RuleLogic,
    text: str,
    *,
    case_sensitive: bool = False,
    match_whole_words: bool = False,
) -> TriggerMatch:
    """
    Evaluate ``logic`` over ``keywords`` against ``text``.

    Empty keyword sets: ANY and NOT_ALL are False, ALL and NOT_ANY are
    vacuously True.
    """
    logic = RuleLogic(logic)
    matched = [
        k
        for k in keywords
        if keyword_matches(k, text, case_sensitive=case_sensitive, match_whole_words=match_whole_words)
    ]
    total = len(keywords)
    any_hit = bool(matched)
    all_hit = len(matched) == total

    if logic is RuleLogic.ANY:
        return TriggerMatch(any_hit, matched, f"ANY: matched {len(matched)}/{total} keywords")
    if logic is RuleLogic.ALL:
        return TriggerMatch(all_hit, matched, f"ALL: matched {len(matched)}/{total} keywords")
    if logic is RuleLogic.NOT_ALL:
        return TriggerMatch(not all_hit, matched, f"NOT_ALL: matched {len(matched)}/{total} keywords")
    if logic is RuleLogic.NOT_ANY:
        return TriggerMatch(not any_hit, matched, f"NOT_ANY: matched {len(matched)}/{total} keywords")

    raise ValueError(f"Unknown rule logic: {logic!r}")
