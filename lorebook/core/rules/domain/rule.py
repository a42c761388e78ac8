"""
Rule Model
==========

A unit of author-supplied knowledge (lore, constraints, world facts) that may
be appended to the narration context when its trigger fires.
"""

import enum
import time
from dataclasses import dataclass, field
from uuid import uuid4

from lorebook.core.utils.tokenizer import estimate_token_weight

DEFAULT_ORDER = 100
DEFAULT_PROBABILITY = 100
DEFAULT_SCAN_DEPTH = 5
DEFAULT_TOKEN_PRIORITY = 100
DEFAULT_CATEGORY = "general"

MAX_KEYWORDS_PER_FIELD = 20
MAX_KEYWORD_LENGTH = 100


class RuleLogic(enum.IntEnum):
    """
    How a rule's keywords combine into a trigger.

    Numeric values follow the WorldInfo ``selectiveLogic`` convention so that
    exported files and lorebooks agree.
    """

    ANY = 0
    NOT_ALL = 1
    NOT_ANY = 2
    ALL = 3


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class Rule:
    """An injectable knowledge rule. Owned and mutated only by the RuleStore."""

    content: str
    id: str = field(default_factory=lambda: uuid4().hex)
    title: str = ""

    # Trigger
    keywords: list[str] = field(default_factory=list)
    secondary_keywords: list[str] = field(default_factory=list)
    logic: RuleLogic = RuleLogic.ANY
    always_active: bool = False
    case_sensitive: bool = False
    match_whole_words: bool = False

    # Gating
    order: int = DEFAULT_ORDER
    probability: int = DEFAULT_PROBABILITY
    max_activations_per_turn: int | None = None

    # Scanning
    scan_depth: int = DEFAULT_SCAN_DEPTH
    scan_player_input: bool = True
    scan_ai_output: bool = True
    scan_memories: bool = True

    # Budget
    token_weight: int | None = None
    token_priority: int = DEFAULT_TOKEN_PRIORITY

    # Metadata
    is_active: bool = True
    category: str = DEFAULT_CATEGORY
    created_at: int = field(default_factory=_now_ms)
    last_activated: int | None = None
    activation_count: int = 0

    def __post_init__(self) -> None:
        self.logic = RuleLogic(self.logic)
        if self.token_weight is None:
            self.token_weight = estimate_token_weight(self.content)

    def set_content(self, content: str, weigher=estimate_token_weight) -> None:
        """Replace the content and recompute its budget weight."""
        self.content = content
        self.token_weight = weigher(content)

    @property
    def has_keywords(self) -> bool:
        return bool(self.keywords or self.secondary_keywords)

    def __repr__(self) -> str:
        return f"<Rule(id={self.id}, title={self.title!r}, order={self.order}, weight={self.token_weight})>"


@dataclass(frozen=True)
class RuleSnapshot:
    """Read-only view of a store's rules for one evaluation pass."""

    version: int
    rules: tuple[Rule, ...] = ()

    def __iter__(self):
        return iter(self.rules)

    def __len__(self) -> int:
        return len(self.rules)
