"""
API Dependencies
================

FastAPI dependency injection utilities.
"""

from lorebook.core.activation.service import KnowledgeInjectionService
from lorebook.core.activation.service import get_injection_service as _get_injection_service
from lorebook.core.rules.application.migration_service import RuleMigrationService
from lorebook.core.rules.application.store import RuleStore


def get_injection_service() -> KnowledgeInjectionService:
    return _get_injection_service()


def get_rule_store() -> RuleStore:
    """The store shared by the authoring routes and the injection service."""
    return _get_injection_service().store


def get_migration_service() -> RuleMigrationService:
    return RuleMigrationService(get_rule_store())
