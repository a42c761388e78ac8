"""
Injection API Schemas
=====================
"""

from pydantic import BaseModel, Field

from lorebook.core.activation.engine import InjectionResult, RuleOutcome


class EvaluateRequest(BaseModel):
    """Scan sources and turn data for one evaluation."""

    turn: int = Field(..., ge=0, description="Current turn number")
    player_input: str = Field(default="", description="Latest player input")
    player_history: list[str] = Field(default_factory=list, description="Earlier player inputs, oldest first")
    narration_history: list[str] = Field(default_factory=list, description="Narration outputs, oldest first")
    memory_notes: list[str] = Field(default_factory=list, description="Memory notes, oldest first")
    budget: int | None = Field(default=None, ge=0, description="Overrides the configured token budget")
    commit: bool = Field(default=True, description="Record activation bookkeeping on included rules")


class InjectionEntryResponse(BaseModel):
    rule_id: str
    title: str
    content: str
    token_weight: int
    order: int
    always_active: bool
    reason: str
    matched_keywords: list[str]


class EvaluateResponse(BaseModel):
    turn: int
    budget: int
    tokens_used: int
    remaining_budget: int
    snapshot_version: int | None
    block: str
    entries: list[InjectionEntryResponse]
    outcomes: dict[str, RuleOutcome]
    validation_errors: dict[str, list[str]]

    @classmethod
    def from_result(cls, result: InjectionResult) -> "EvaluateResponse":
        return cls(
            turn=result.turn,
            budget=result.budget,
            tokens_used=result.tokens_used,
            remaining_budget=result.remaining_budget,
            snapshot_version=result.snapshot_version,
            block=result.block,
            entries=[
                InjectionEntryResponse(
                    rule_id=e.rule_id,
                    title=e.title,
                    content=e.content,
                    token_weight=e.token_weight,
                    order=e.order,
                    always_active=e.always_active,
                    reason=e.reason,
                    matched_keywords=list(e.matched_keywords),
                )
                for e in result.entries
            ],
            outcomes=dict(result.outcomes),
            validation_errors=dict(result.validation_errors),
        )
