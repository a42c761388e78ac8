"""
Rules Authoring API
===================

CRUD endpoints for injection rules, plus validation, import and export.
"""

import logging
from datetime import UTC, datetime

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse

from lorebook.api.config import settings
from lorebook.api.deps import get_migration_service, get_rule_store
from lorebook.api.schemas.base import ResponseSchema
from lorebook.api.schemas.errors import error_responses
from lorebook.api.schemas.rules import (
    ImportIssueResponse,
    ImportResponse,
    RuleCreate,
    RuleUpdate,
    RuleValidationResponse,
)
from lorebook.core.rules.application.migration_service import ImportReport, RuleMigrationService
from lorebook.core.rules.application.store import RuleStore
from lorebook.core.rules.domain.records import RuleRecord
from lorebook.core.rules.domain.rule import Rule
from lorebook.core.rules.domain.validation import validate_rule

router = APIRouter(prefix="/rules", tags=["rules"])
logger = logging.getLogger(__name__)


def _to_rule(data: RuleCreate) -> Rule:
    fields = data.model_dump(exclude_none=True)
    fields.setdefault("scan_depth", settings.injection.default_scan_depth)
    return Rule(**fields)


def _import_response(report: ImportReport) -> ImportResponse:
    return ImportResponse(
        imported=len(report.rules),
        rule_ids=[rule.id for rule in report.rules],
        renamed=report.renamed,
        issues=[
            ImportIssueResponse(index=issue.index, rule_id=issue.rule_id, errors=issue.errors)
            for issue in report.issues
        ],
    )


# =============================================================================
# Endpoints
# =============================================================================

@router.get("", response_model=ResponseSchema[list[RuleRecord]])
async def list_rules(
    include_inactive: bool = True,
    category: str | None = None,
    store: RuleStore = Depends(get_rule_store),
):
    """List rules in authoring order."""
    rules = store.list_rules(include_inactive=include_inactive)
    if category is not None:
        rules = [r for r in rules if r.category == category]

    return ResponseSchema(
        data=[RuleRecord.from_rule(r) for r in rules],
        message=f"Found {len(rules)} rules",
    )


@router.post(
    "",
    response_model=ResponseSchema[RuleRecord],
    status_code=status.HTTP_201_CREATED,
    responses=error_responses(409, 422),
)
async def create_rule(data: RuleCreate, store: RuleStore = Depends(get_rule_store)):
    """Create a rule. Rules failing validation are rejected with 422."""
    rule = store.add(_to_rule(data), strict=True)

    logger.info(f"Created rule {rule.id} ({rule.category})")
    return ResponseSchema(data=RuleRecord.from_rule(rule), message="Rule created")


@router.post("/validate", response_model=ResponseSchema[RuleValidationResponse])
async def validate(data: RuleCreate):
    """Dry-run validation of a rule without storing it."""
    errors = validate_rule(_to_rule(data))
    return ResponseSchema(data=RuleValidationResponse(valid=not errors, errors=errors))


@router.get("/export")
async def export_rules(migration: RuleMigrationService = Depends(get_migration_service)):
    """Download every rule as a versioned export file."""
    payload = migration.export_data()
    filename = f"rules-{datetime.now(UTC).strftime('%Y%m%d-%H%M%S')}.json"

    logger.info(f"Exported {payload['rulesCount']} rules")
    return JSONResponse(
        content=payload,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post("/import", response_model=ResponseSchema[ImportResponse], responses=error_responses(400))
async def import_rules(
    request: Request,
    migration: RuleMigrationService = Depends(get_migration_service),
):
    """
    Import a rule file (versioned export object or legacy array).

    Invalid entries are skipped and reported; unreadable files fail with 400.
    """
    report = migration.import_json(await request.body())

    logger.info(f"Imported {len(report.rules)} rules, skipped {len(report.issues)}")
    return ResponseSchema(
        data=_import_response(report),
        message=f"Imported {len(report.rules)} rules",
    )


@router.post("/import/worldinfo", response_model=ResponseSchema[ImportResponse], responses=error_responses(400))
async def import_worldinfo(
    request: Request,
    migration: RuleMigrationService = Depends(get_migration_service),
):
    """Import a WorldInfo lorebook file."""
    report = migration.import_worldinfo(await request.body())

    logger.info(f"Imported {len(report.rules)} WorldInfo entries, skipped {len(report.issues)}")
    return ResponseSchema(
        data=_import_response(report),
        message=f"Imported {len(report.rules)} WorldInfo entries",
    )


@router.get("/{rule_id}", response_model=ResponseSchema[RuleRecord], responses=error_responses(404))
async def get_rule(rule_id: str, store: RuleStore = Depends(get_rule_store)):
    """Get a single rule by ID."""
    return ResponseSchema(data=RuleRecord.from_rule(store.get(rule_id)))


@router.patch("/{rule_id}", response_model=ResponseSchema[RuleRecord], responses=error_responses(404, 422))
async def update_rule(rule_id: str, data: RuleUpdate, store: RuleStore = Depends(get_rule_store)):
    """Edit a rule. Changing content recomputes its token weight."""
    changes = data.changes()
    rule = store.update(rule_id, strict=True, **changes)

    logger.info(f"Updated rule {rule_id}: {', '.join(sorted(changes)) or 'no changes'}")
    return ResponseSchema(data=RuleRecord.from_rule(rule), message="Rule updated")


@router.post("/{rule_id}/deactivate", response_model=ResponseSchema[RuleRecord], responses=error_responses(404))
async def deactivate_rule(rule_id: str, store: RuleStore = Depends(get_rule_store)):
    """Retire a rule without deleting its activation history."""
    rule = store.deactivate(rule_id)

    logger.info(f"Deactivated rule {rule_id}")
    return ResponseSchema(data=RuleRecord.from_rule(rule), message="Rule deactivated")


@router.delete("/{rule_id}", status_code=status.HTTP_204_NO_CONTENT, responses=error_responses(404))
async def delete_rule(rule_id: str, store: RuleStore = Depends(get_rule_store)):
    """Delete a rule."""
    store.remove(rule_id)
