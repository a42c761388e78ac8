"""
Scan Source Aggregator
======================

Builds the text a rule's keywords are matched against: the most recent
``scan_depth`` entries of each scan source the rule enables.
"""

from collections.abc import Sequence
from dataclasses import dataclass, field

from lorebook.core.rules.domain.rule import Rule

SCAN_ENTRY_SEPARATOR = "\n"


@dataclass(frozen=True)
class ScanSources:
    """Recent interaction text for one turn, oldest entry first in each history."""

    player_input: str = ""
    narration_history: Sequence[str] = ()
    memory_notes: Sequence[str] = ()
    player_history: Sequence[str] = ()

    def player_entries(self) -> list[str]:
        entries = list(self.player_history)
        if self.player_input:
            entries.append(self.player_input)
        return entries


def _recent(entries: Sequence[str], depth: int) -> list[str]:
    if depth < 1:
        return []
    return [e for e in list(entries)[-depth:] if e and e.strip()]


def build_scan_text(
    sources: ScanSources,
    depth: int,
    *,
    player: bool = True,
    narration: bool = True,
    memories: bool = True,
) -> str:
    """
    Concatenate the enabled sources' recent windows.

    Sources appear in a fixed order (player, narration, memories), each as its
    own chronological slice, so the result depends only on the inputs.
    """
    parts: list[str] = []
    if player:
        parts.extend(_recent(sources.player_entries(), depth))
    if narration:
        parts.extend(_recent(sources.narration_history, depth))
    if memories:
        parts.extend(_recent(sources.memory_notes, depth))
    return SCAN_ENTRY_SEPARATOR.join(parts)


@dataclass
class ScanTextCache:
    """Memoises scan text per (depth, source flags) for the duration of one turn."""

    sources: ScanSources
    _texts: dict[tuple[int, bool, bool, bool], str] = field(default_factory=dict)

    def text_for(self, rule: Rule) -> str:
        key = (rule.scan_depth, rule.scan_player_input, rule.scan_ai_output, rule.scan_memories)
        if key not in self._texts:
            self._texts[key] = build_scan_text(
                self.sources,
                rule.scan_depth,
                player=rule.scan_player_input,
                narration=rule.scan_ai_output,
                memories=rule.scan_memories,
            )
        return self._texts[key]
