"""
Rule Migration Service
======================

Import and export of rule files, including:

- the versioned export object ``{version, exportedAt, rulesCount, rules}``
- bare arrays of legacy rules (content-only, migrated onto current defaults)
- WorldInfo lorebooks (``{"entries": {...}}``) mapped field by field

Every rule is parsed and validated on its own; one bad rule is reported and
skipped while the rest of the file still imports. Only unreadable JSON aborts
the whole import.
"""

import json
import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

from pydantic import ValidationError as PydanticValidationError

from lorebook.core.activation.keywords import parse_keywords
from lorebook.core.rules.application.store import RuleStore
from lorebook.core.rules.domain.records import RuleRecord, coerce_logic
from lorebook.core.rules.domain.rule import DEFAULT_ORDER, DEFAULT_PROBABILITY, DEFAULT_SCAN_DEPTH, Rule
from lorebook.core.rules.domain.validation import blocking_errors, validate_rule
from lorebook.core.utils.tokenizer import estimate_token_weight
from lorebook.shared.exceptions import RuleImportError
from lorebook.shared.messages import ERROR_MESSAGES

logger = logging.getLogger(__name__)

EXPORT_VERSION = "2.0"
WORLDINFO_CATEGORY = "worldinfo"


@dataclass(frozen=True)
class ImportIssue:
    """Why one entry of an import file was skipped."""

    index: int  # 1-based position in the file
    errors: list[str]
    rule_id: str | None = None

    @property
    def message(self) -> str:
        return f"Rule {self.index}: {', '.join(self.errors)}"


@dataclass
class ImportReport:
    rules: list[Rule] = field(default_factory=list)
    issues: list[ImportIssue] = field(default_factory=list)
    renamed: dict[str, str] = field(default_factory=dict)

    @property
    def errors(self) -> list[str]:
        return [issue.message for issue in self.issues]


def _format_pydantic_errors(exc: PydanticValidationError) -> list[str]:
    messages = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error["loc"]) or "rule"
        messages.append(f"{location}: {error['msg']}")
    return messages


# =============================================================================
# Export
# =============================================================================

def build_export(rules: Iterable[Rule], exported_at: datetime | None = None) -> dict[str, Any]:
    records = [RuleRecord.from_rule(rule).to_wire() for rule in rules]
    return {
        "version": EXPORT_VERSION,
        "exportedAt": (exported_at or datetime.now(UTC)).isoformat(),
        "rulesCount": len(records),
        "rules": records,
    }


def export_rules_to_json(rules: Iterable[Rule], exported_at: datetime | None = None) -> str:
    return json.dumps(build_export(rules, exported_at), ensure_ascii=False, indent=2)


# =============================================================================
# Legacy and versioned rule files
# =============================================================================

def migrate_legacy_rule(legacy: dict[str, Any]) -> Rule:
    """
    Carry a first-generation rule (id, content, isActive) onto current defaults.

    Every other field takes its default and the weight is recomputed from the
    content.
    """
    content = legacy.get("content") or ""
    if not isinstance(content, str):
        raise ValueError("content must be a string")

    rule = Rule(content=content)
    if legacy.get("id"):
        rule.id = str(legacy["id"])
    if legacy.get("isActive") is not None:
        rule.is_active = bool(legacy["isActive"])
    rule.token_weight = estimate_token_weight(rule.content)
    return rule


def _needs_migration(raw: dict[str, Any]) -> bool:
    return not any(key in raw for key in ("keywords", "title", "order"))


def parse_rule_entry(raw: Any, index: int, *, legacy: bool = False) -> Rule | ImportIssue:
    """
    Parse and validate one entry of a rule file.

    Pure: returns the Rule, or an ImportIssue describing why it was rejected.
    """
    if not isinstance(raw, dict):
        return ImportIssue(index=index, errors=["entry is not an object"])

    rule_id = str(raw["id"]) if raw.get("id") is not None else None
    try:
        if legacy or _needs_migration(raw):
            rule = migrate_legacy_rule(raw)
        else:
            rule = RuleRecord.model_validate(raw).to_rule()
    except PydanticValidationError as e:
        return ImportIssue(index=index, errors=_format_pydantic_errors(e), rule_id=rule_id)
    except ValueError as e:
        return ImportIssue(index=index, errors=[str(e)], rule_id=rule_id)

    errors = blocking_errors(validate_rule(rule))
    if errors:
        return ImportIssue(index=index, errors=errors, rule_id=rule.id)
    return rule


def _load_json(text: str | bytes) -> Any:
    try:
        return json.loads(text)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise RuleImportError(f"{ERROR_MESSAGES['import_json']} {e}") from e


def _dedupe_ids(report: ImportReport, existing_ids: Iterable[str]) -> None:
    taken = set(existing_ids)
    for rule in report.rules:
        if rule.id in taken:
            new_id = uuid4().hex
            logger.info(f"Imported rule id {rule.id} already in use, reassigned to {new_id}")
            report.renamed[rule.id] = new_id
            rule.id = new_id
        taken.add(rule.id)


def import_rules_from_json(text: str | bytes, existing_ids: Iterable[str] = ()) -> ImportReport:
    """
    Parse a rule file: a bare legacy array or a versioned export object.

    Raises:
        RuleImportError: The text is not JSON, or has neither accepted shape
    """
    data = _load_json(text)

    if isinstance(data, list):
        entries, legacy = data, True
    elif isinstance(data, dict) and isinstance(data.get("rules"), list):
        entries, legacy = data["rules"], False
    else:
        raise RuleImportError(ERROR_MESSAGES["import_format"])

    report = ImportReport()
    for index, raw in enumerate(entries, 1):
        parsed = parse_rule_entry(raw, index, legacy=legacy)
        if isinstance(parsed, ImportIssue):
            report.issues.append(parsed)
        else:
            report.rules.append(parsed)

    _dedupe_ids(report, existing_ids)
    logger.info(f"Parsed rule file: {len(report.rules)} rules, {len(report.issues)} rejected")
    return report


# =============================================================================
# WorldInfo lorebooks
# =============================================================================

def _worldinfo_keys(value: Any) -> list[str]:
    if isinstance(value, str):
        return parse_keywords(value)
    if isinstance(value, list):
        return [str(v).strip() for v in value if v is not None and str(v).strip()]
    return []


def convert_worldinfo_entry(entry: Any, index: int) -> Rule | ImportIssue:
    """
    Map one WorldInfo entry onto a Rule.

    key -> keywords, keysecondary -> secondary keywords, selectiveLogic -> logic,
    order, probability (honoured only when useProbability is not false),
    depth -> scan depth, caseSensitive / matchWholeWords, disable -> inactive,
    group -> category, comment -> title, constant -> always active.
    """
    if not isinstance(entry, dict):
        return ImportIssue(index=index, errors=["entry is not an object"])

    uid = entry.get("uid", index)
    content = entry.get("content") or ""
    if not isinstance(content, str):
        return ImportIssue(index=index, errors=["content must be a string"], rule_id=str(uid))

    try:
        logic = coerce_logic(entry.get("selectiveLogic"))
        order = int(entry.get("order") if entry.get("order") is not None else DEFAULT_ORDER)
        probability = DEFAULT_PROBABILITY
        if entry.get("useProbability", True) is not False and entry.get("probability") is not None:
            probability = int(entry["probability"])
        depth = entry.get("depth") if entry.get("depth") is not None else entry.get("scanDepth")
        scan_depth = int(depth) if depth is not None else DEFAULT_SCAN_DEPTH
    except (TypeError, ValueError) as e:
        return ImportIssue(index=index, errors=[str(e)], rule_id=str(uid))

    always_active = bool(entry.get("constant", False))
    rule = Rule(
        id=f"worldinfo-{uid}",
        title=entry.get("comment") or f"World Info Entry {uid}",
        content=content,
        keywords=[] if always_active else _worldinfo_keys(entry.get("key")),
        secondary_keywords=[] if always_active else _worldinfo_keys(entry.get("keysecondary")),
        logic=logic,
        always_active=always_active,
        order=order,
        probability=probability,
        scan_depth=scan_depth,
        case_sensitive=entry.get("caseSensitive") is True,
        match_whole_words=entry.get("matchWholeWords") is True,
        is_active=not entry.get("disable", False),
        category=entry.get("group") or WORLDINFO_CATEGORY,
    )

    errors = blocking_errors(validate_rule(rule))
    if errors:
        return ImportIssue(index=index, errors=errors, rule_id=rule.id)
    return rule


def import_worldinfo_from_json(text: str | bytes, existing_ids: Iterable[str] = ()) -> ImportReport:
    """
    Parse a WorldInfo lorebook file.

    Raises:
        RuleImportError: The text is not JSON, or has no ``entries`` collection
    """
    data = _load_json(text)
    entries = data.get("entries") if isinstance(data, dict) else None
    if isinstance(entries, dict):
        entries = list(entries.values())
    if not isinstance(entries, list):
        raise RuleImportError(ERROR_MESSAGES["worldinfo_format"])

    report = ImportReport()
    for index, entry in enumerate(entries, 1):
        parsed = convert_worldinfo_entry(entry, index)
        if isinstance(parsed, ImportIssue):
            report.issues.append(parsed)
        else:
            report.rules.append(parsed)

    _dedupe_ids(report, existing_ids)
    logger.info(f"Parsed WorldInfo file: {len(report.rules)} entries, {len(report.issues)} rejected")
    return report


# =============================================================================
# Store-bound service
# =============================================================================

class RuleMigrationService:
    """Moves rules between files and a RuleStore."""

    def __init__(self, store: RuleStore):
        self.store = store

    def export_json(self) -> str:
        return export_rules_to_json(self.store.list_rules())

    def export_data(self) -> dict[str, Any]:
        return build_export(self.store.list_rules())

    def _add_all(self, report: ImportReport) -> ImportReport:
        for rule in report.rules:
            self.store.add(rule)
        return report

    def import_json(self, text: str | bytes) -> ImportReport:
        return self._add_all(import_rules_from_json(text, self.store.ids()))

    def import_worldinfo(self, text: str | bytes) -> ImportReport:
        return self._add_all(import_worldinfo_from_json(text, self.store.ids()))
