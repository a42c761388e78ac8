"""
Rule API Schemas
================

Request/response models for the rule-authoring endpoints. Field names are
accepted in snake_case or camelCase; responses use camelCase like export files.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from lorebook.core.activation.keywords import parse_keywords
from lorebook.core.rules.domain.records import coerce_logic
from lorebook.core.rules.domain.rule import RuleLogic


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")


def _keyword_field(v: Any) -> Any:
    """Raw keyword text goes through the keyword tokenizer; lists pass as-is."""
    if v is None:
        return []
    if isinstance(v, str):
        return parse_keywords(v)
    return v


class RuleCreate(_CamelModel):
    id: str | None = None
    title: str = ""
    content: str
    keywords: list[str] = Field(default_factory=list)
    secondary_keywords: list[str] = Field(default_factory=list)
    logic: RuleLogic = RuleLogic.ANY
    always_active: bool = False
    order: int = 100
    case_sensitive: bool = False
    match_whole_words: bool = False
    probability: int = 100
    max_activations_per_turn: int | None = None
    scan_depth: int | None = None
    scan_player_input: bool = True
    scan_ai_output: bool = Field(default=True, alias="scanAIOutput")
    scan_memories: bool = True
    token_priority: int = 100
    is_active: bool = True
    category: str = "general"

    @field_validator("keywords", "secondary_keywords", mode="before")
    @classmethod
    def parse_keyword_text(cls, v: Any) -> Any:
        return _keyword_field(v)

    @field_validator("logic", mode="before")
    @classmethod
    def parse_logic(cls, v: Any) -> RuleLogic:
        return coerce_logic(v)


class RuleUpdate(_CamelModel):
    title: str | None = None
    content: str | None = None
    keywords: list[str] | None = None
    secondary_keywords: list[str] | None = None
    logic: RuleLogic | None = None
    always_active: bool | None = None
    order: int | None = None
    case_sensitive: bool | None = None
    match_whole_words: bool | None = None
    probability: int | None = None
    max_activations_per_turn: int | None = None
    scan_depth: int | None = None
    scan_player_input: bool | None = None
    scan_ai_output: bool | None = Field(default=None, alias="scanAIOutput")
    scan_memories: bool | None = None
    token_priority: int | None = None
    is_active: bool | None = None
    category: str | None = None

    @field_validator("keywords", "secondary_keywords", mode="before")
    @classmethod
    def parse_keyword_text(cls, v: Any) -> Any:
        if isinstance(v, str):
            return parse_keywords(v)
        return v

    @field_validator("logic", mode="before")
    @classmethod
    def parse_logic(cls, v: Any) -> RuleLogic | None:
        return None if v is None else coerce_logic(v)

    def changes(self) -> dict[str, Any]:
        """Fields the client actually sent, snake_case. Only the activation cap may be cleared with null."""
        data = self.model_dump(exclude_unset=True)
        return {k: v for k, v in data.items() if v is not None or k == "max_activations_per_turn"}


class RuleValidationResponse(BaseModel):
    valid: bool
    errors: list[str] = Field(default_factory=list)


class ImportIssueResponse(BaseModel):
    index: int
    rule_id: str | None = None
    errors: list[str]


class ImportResponse(BaseModel):
    imported: int
    rule_ids: list[str]
    renamed: dict[str, str] = Field(default_factory=dict)
    issues: list[ImportIssueResponse] = Field(default_factory=list)


class KeywordParseRequest(BaseModel):
    text: str


class KeywordFormatRequest(BaseModel):
    keywords: list[str]


class KeywordsResponse(BaseModel):
    keywords: list[str]
    formatted: str
