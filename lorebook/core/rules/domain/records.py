"""
Rule Records
============

Pydantic wire representation of a rule, as found in exported rule files
(camelCase field names). Converts to and from the ``Rule`` domain object.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from lorebook.core.rules.domain.rule import (
    DEFAULT_CATEGORY,
    DEFAULT_ORDER,
    DEFAULT_PROBABILITY,
    DEFAULT_SCAN_DEPTH,
    DEFAULT_TOKEN_PRIORITY,
    Rule,
    RuleLogic,
)

# Older files spell the logic modes the way the first rule editor did
_LOGIC_ALIASES = {
    "AND_ANY": RuleLogic.ANY,
    "AND_ALL": RuleLogic.ALL,
    "NOT ALL": RuleLogic.NOT_ALL,
    "NOT ANY": RuleLogic.NOT_ANY,
}


def coerce_logic(value: Any) -> RuleLogic:
    """Accept a RuleLogic, its numeric value, or its (legacy) name."""
    if value is None:
        return RuleLogic.ANY
    if isinstance(value, RuleLogic):
        return value
    if isinstance(value, bool):
        raise ValueError(f"Invalid rule logic: {value!r}")
    if isinstance(value, int):
        return RuleLogic(value)
    if isinstance(value, str):
        name = value.strip().upper()
        if name in _LOGIC_ALIASES:
            return _LOGIC_ALIASES[name]
        if name.isdigit():
            return RuleLogic(int(name))
        try:
            return RuleLogic[name]
        except KeyError:
            pass
    raise ValueError(f"Invalid rule logic: {value!r}")


class RuleRecord(BaseModel):
    """One rule as stored in export files and exchanged over the API."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    id: str | None = None
    title: str = ""
    content: str = ""
    keywords: list[str] = Field(default_factory=list)
    secondary_keywords: list[str] = Field(default_factory=list)
    logic: RuleLogic = RuleLogic.ANY
    always_active: bool = False
    order: int = DEFAULT_ORDER
    case_sensitive: bool = False
    match_whole_words: bool = False
    probability: int = DEFAULT_PROBABILITY
    max_activations_per_turn: int | None = None
    scan_depth: int = DEFAULT_SCAN_DEPTH
    scan_player_input: bool = True
    scan_ai_output: bool = Field(default=True, alias="scanAIOutput")
    scan_memories: bool = True
    token_weight: int | None = None
    token_priority: int = DEFAULT_TOKEN_PRIORITY
    is_active: bool = True
    category: str = DEFAULT_CATEGORY
    created_at: int | None = None
    last_activated: int | None = None
    activation_count: int = 0

    @field_validator("keywords", "secondary_keywords", mode="before")
    @classmethod
    def none_to_empty(cls, v: Any) -> Any:
        return [] if v is None else v

    @field_validator("title", "content", "category", mode="before")
    @classmethod
    def none_to_blank(cls, v: Any) -> Any:
        return "" if v is None else v

    @field_validator("logic", mode="before")
    @classmethod
    def parse_logic(cls, v: Any) -> RuleLogic:
        return coerce_logic(v)

    def to_rule(self) -> Rule:
        data = self.model_dump(exclude_none=True)
        # A zero weight in a file means "not computed"; Rule derives it from content
        if data.get("token_weight") == 0:
            del data["token_weight"]
        return Rule(**data)

    @classmethod
    def from_rule(cls, rule: Rule) -> "RuleRecord":
        return cls.model_validate(
            {
                "id": rule.id,
                "title": rule.title,
                "content": rule.content,
                "keywords": list(rule.keywords),
                "secondary_keywords": list(rule.secondary_keywords),
                "logic": rule.logic,
                "always_active": rule.always_active,
                "order": rule.order,
                "case_sensitive": rule.case_sensitive,
                "match_whole_words": rule.match_whole_words,
                "probability": rule.probability,
                "max_activations_per_turn": rule.max_activations_per_turn,
                "scan_depth": rule.scan_depth,
                "scan_player_input": rule.scan_player_input,
                "scan_ai_output": rule.scan_ai_output,
                "scan_memories": rule.scan_memories,
                "token_weight": rule.token_weight,
                "token_priority": rule.token_priority,
                "is_active": rule.is_active,
                "category": rule.category,
                "created_at": rule.created_at,
                "last_activated": rule.last_activated,
                "activation_count": rule.activation_count,
            }
        )

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")
