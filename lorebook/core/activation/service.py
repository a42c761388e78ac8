"""
Knowledge Injection Service
===========================

Binds a RuleStore to the injection engine for the game loop: take a
snapshot, evaluate the turn, write bookkeeping back for injected rules.
"""

import logging

from lorebook.core.activation.assembly import InjectionAssembler
from lorebook.core.activation.engine import InjectionResult, KnowledgeInjectionEngine
from lorebook.core.activation.gate import SeededRandomSource
from lorebook.core.activation.scan import ScanSources
from lorebook.core.rules.application.store import RuleStore
from lorebook.core.utils.tokenizer import get_token_weigher
from lorebook.shared.kernel.settings import InjectionSettingsProtocol

logger = logging.getLogger(__name__)


class KnowledgeInjectionService:
    """Per-turn entry point used by prompt assembly."""

    def __init__(self, store: RuleStore, engine: KnowledgeInjectionEngine, token_budget: int):
        self.store = store
        self.engine = engine
        self.token_budget = token_budget

    def inject(
        self,
        sources: ScanSources,
        turn: int,
        budget: int | None = None,
        commit: bool = True,
    ) -> InjectionResult:
        """
        Evaluate ``turn`` against the store's current snapshot.

        Args:
            sources: Scan text for this turn
            turn: Current turn number
            budget: Overrides the configured token budget for this call
            commit: Record activation bookkeeping on the store (dry run when False)
        """
        snapshot = self.store.snapshot()
        result = self.engine.evaluate(
            snapshot,
            sources,
            turn=turn,
            budget=self.token_budget if budget is None else budget,
        )

        if commit and result.entries:
            self.store.record_activations(result.included_ids, turn)
        return result


def build_injection_service(
    settings: InjectionSettingsProtocol,
    store: RuleStore | None = None,
) -> KnowledgeInjectionService:
    """Wire a service from injection settings."""
    if store is None:
        store = RuleStore(weigher=get_token_weigher(settings.token_weight_mode, settings.tiktoken_encoding))
    engine = KnowledgeInjectionEngine(
        random_source=SeededRandomSource(settings.random_seed),
        assembler=InjectionAssembler(
            separator=settings.separator,
            include_titles=settings.include_titles,
            header=settings.header,
            footer=settings.footer,
        ),
        secondary_keyword_mode=settings.secondary_keyword_mode,
    )
    return KnowledgeInjectionService(store=store, engine=engine, token_budget=settings.token_budget)


# Singleton instance factory
_injection_service: KnowledgeInjectionService | None = None


def get_injection_service() -> KnowledgeInjectionService:
    """Get or create the injection service singleton from the runtime settings."""
    global _injection_service

    if _injection_service is None:
        from lorebook.shared.kernel.runtime import get_injection_settings

        _injection_service = build_injection_service(get_injection_settings())
        logger.info("Knowledge injection service initialized")

    return _injection_service


def reset_injection_service() -> None:
    global _injection_service
    _injection_service = None
