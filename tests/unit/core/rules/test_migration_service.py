import json
from datetime import UTC, datetime

import pytest

from lorebook.core.rules.application.migration_service import (
    RuleMigrationService,
    build_export,
    convert_worldinfo_entry,
    import_rules_from_json,
    import_worldinfo_from_json,
    migrate_legacy_rule,
)
from lorebook.core.rules.application.store import RuleStore
from lorebook.core.rules.domain.records import coerce_logic
from lorebook.core.rules.domain.rule import RuleLogic
from lorebook.shared.exceptions import RuleImportError


# =============================================================================
# Export
# =============================================================================

def test_export_shape(make_rule):
    rule = make_rule("Lore", id="r1", keywords=["dragon"], logic=RuleLogic.ALL, max_activations_per_turn=2)
    exported = build_export([rule], exported_at=datetime(2024, 1, 15, tzinfo=UTC))

    assert exported["version"] == "2.0"
    assert exported["exportedAt"] == "2024-01-15T00:00:00+00:00"
    assert exported["rulesCount"] == 1

    wire = exported["rules"][0]
    assert wire["id"] == "r1"
    assert wire["logic"] == 3
    assert wire["maxActivationsPerTurn"] == 2
    assert wire["scanAIOutput"] is True
    assert wire["secondaryKeywords"] == []
    assert wire["tokenWeight"] == 1
    assert "scan_depth" not in wire


def test_export_then_import_keeps_rule_fields(make_rule):
    rule = make_rule(
        "The old king rules.",
        id="king",
        title="King",
        keywords=["old king"],
        secondary_keywords=["throne"],
        logic=RuleLogic.NOT_ALL,
        order=250,
        probability=70,
        scan_memories=False,
        category="people",
        activation_count=3,
    )
    text = json.dumps(build_export([rule]))

    report = import_rules_from_json(text)

    assert report.issues == []
    assert report.rules == [rule]


# =============================================================================
# Legacy and versioned imports
# =============================================================================

def test_legacy_array_migrated_onto_defaults():
    text = json.dumps([
        {"id": "old1", "content": "The river floods in spring.", "isActive": False},
        {"content": "Wolves hunt at night."},
    ])

    report = import_rules_from_json(text)

    assert len(report.rules) == 2
    first = report.rules[0]
    assert first.id == "old1"
    assert first.is_active is False
    assert first.keywords == []
    assert first.order == 100
    assert first.token_weight == 7
    assert len(report.rules[1].id) == 32


def test_migrate_legacy_rule_rejects_non_string_content():
    with pytest.raises(ValueError):
        migrate_legacy_rule({"content": 42})


def test_versioned_file_skips_invalid_rules():
    text = json.dumps({
        "version": "2.0",
        "rules": [
            {"id": "ok", "title": "Fine", "content": "Lore", "keywords": ["a"]},
            {"id": "bad", "title": "Broken", "content": "Lore", "probability": 500},
            {"id": "empty", "title": "Empty", "content": ""},
            "not an object",
        ],
    })

    report = import_rules_from_json(text)

    assert [r.id for r in report.rules] == ["ok"]
    assert report.errors == [
        "Rule 2: Probability must be between 0 and 100",
        "Rule 3: Rule content cannot be empty",
        "Rule 4: entry is not an object",
    ]
    assert report.issues[0].rule_id == "bad"


def test_versioned_file_reports_type_errors():
    text = json.dumps({"rules": [{"id": "x", "title": "T", "content": "Lore", "order": "high"}]})

    report = import_rules_from_json(text)

    assert report.rules == []
    assert report.issues[0].index == 1
    assert report.issues[0].rule_id == "x"
    assert report.issues[0].errors[0].startswith("order")


def test_versioned_file_accepts_legacy_logic_names():
    text = json.dumps({"rules": [{"title": "T", "content": "Lore", "keywords": ["a"], "logic": "AND_ALL"}]})
    assert import_rules_from_json(text).rules[0].logic is RuleLogic.ALL


def test_malformed_json_aborts_import():
    with pytest.raises(RuleImportError):
        import_rules_from_json("{not json")


def test_wrong_shape_aborts_import():
    with pytest.raises(RuleImportError):
        import_rules_from_json(json.dumps({"version": "2.0"}))


def test_colliding_ids_are_reassigned():
    text = json.dumps([{"id": "taken", "content": "One"}, {"id": "dup", "content": "Two"}, {"id": "dup", "content": "Three"}])

    report = import_rules_from_json(text, existing_ids={"taken"})

    ids = [r.id for r in report.rules]
    assert len(set(ids)) == 3
    assert ids[1] == "dup"
    assert "taken" not in ids
    assert report.renamed["taken"] == ids[0]


@pytest.mark.parametrize(
    "value,expected",
    [
        (None, RuleLogic.ANY),
        (2, RuleLogic.NOT_ANY),
        ("3", RuleLogic.ALL),
        ("not_all", RuleLogic.NOT_ALL),
        ("NOT ANY", RuleLogic.NOT_ANY),
        ("AND_ANY", RuleLogic.ANY),
    ],
)
def test_coerce_logic(value, expected):
    assert coerce_logic(value) is expected


@pytest.mark.parametrize("value", [True, 7, "SOME", 1.5])
def test_coerce_logic_rejects_garbage(value):
    with pytest.raises(ValueError):
        coerce_logic(value)


# =============================================================================
# WorldInfo
# =============================================================================

def _worldinfo_entry(**overrides):
    entry = {
        "uid": 7,
        "key": ["dragon", "wyrm"],
        "keysecondary": ["fire"],
        "selectiveLogic": 3,
        "order": 150,
        "probability": 40,
        "useProbability": True,
        "depth": 3,
        "caseSensitive": True,
        "matchWholeWords": None,
        "disable": False,
        "group": "Beasts",
        "comment": "Dragons",
        "content": "Dragons hoard gold.",
        "constant": False,
    }
    entry.update(overrides)
    return entry


def test_worldinfo_field_mapping():
    rule = convert_worldinfo_entry(_worldinfo_entry(), 1)

    assert rule.id == "worldinfo-7"
    assert rule.title == "Dragons"
    assert rule.keywords == ["dragon", "wyrm"]
    assert rule.secondary_keywords == ["fire"]
    assert rule.logic is RuleLogic.ALL
    assert rule.order == 150
    assert rule.probability == 40
    assert rule.scan_depth == 3
    assert rule.case_sensitive is True
    assert rule.match_whole_words is False
    assert rule.is_active is True
    assert rule.category == "Beasts"
    assert rule.token_weight == 5


def test_worldinfo_probability_ignored_when_disabled():
    rule = convert_worldinfo_entry(_worldinfo_entry(useProbability=False, probability=10), 1)
    assert rule.probability == 100


def test_worldinfo_constant_entry_becomes_always_active():
    rule = convert_worldinfo_entry(_worldinfo_entry(constant=True), 1)

    assert rule.always_active is True
    assert rule.keywords == []
    assert rule.secondary_keywords == []


def test_worldinfo_disabled_and_defaults():
    entry = {"uid": 3, "key": "castle, \"iron gate\"", "content": "Lore", "disable": True}
    rule = convert_worldinfo_entry(entry, 1)

    assert rule.keywords == ["castle", "iron gate"]
    assert rule.is_active is False
    assert rule.title == "World Info Entry 3"
    assert rule.category == "worldinfo"
    assert rule.scan_depth == 5


def test_worldinfo_file_with_entries_mapping():
    text = json.dumps({
        "entries": {
            "0": _worldinfo_entry(uid=0),
            "1": _worldinfo_entry(uid=1, content=""),
            "2": _worldinfo_entry(uid=2, order="soon"),
        }
    })

    report = import_worldinfo_from_json(text)

    assert [r.id for r in report.rules] == ["worldinfo-0"]
    assert [issue.index for issue in report.issues] == [2, 3]
    assert report.issues[0].errors == ["Rule content cannot be empty"]


def test_worldinfo_file_without_entries():
    with pytest.raises(RuleImportError):
        import_worldinfo_from_json(json.dumps([{"key": ["x"]}]))


# =============================================================================
# Store-bound service
# =============================================================================

def test_service_import_adds_to_store(make_rule):
    store = RuleStore([make_rule(id="r1")])
    service = RuleMigrationService(store)

    report = service.import_json(json.dumps([{"id": "r1", "content": "Clash"}, {"id": "r2", "content": "New"}]))

    assert len(store) == 3
    assert "r2" in store
    assert report.renamed["r1"] in store


def test_service_export_round_trip(make_rule):
    source = RuleStore([make_rule("Lore", id="r1", keywords=["a"]), make_rule("More", id="r2")])
    target = RuleStore()

    RuleMigrationService(target).import_json(RuleMigrationService(source).export_json())

    assert [r.id for r in target.list_rules()] == ["r1", "r2"]


def test_service_worldinfo_import(make_rule):
    store = RuleStore()
    report = RuleMigrationService(store).import_worldinfo(json.dumps({"entries": [_worldinfo_entry()]}))

    assert report.errors == []
    assert store.get("worldinfo-7").category == "Beasts"


def test_zero_token_weight_is_derived_from_content():
    text = json.dumps({"rules": [{"id": "z", "title": "T", "content": "x" * 400, "keywords": ["a"], "tokenWeight": 0}]})

    assert import_rules_from_json(text).rules[0].token_weight == 100


def test_explicit_token_weight_is_kept():
    text = json.dumps({"rules": [{"id": "w", "title": "T", "content": "x" * 400, "keywords": ["a"], "tokenWeight": 7}]})

    assert import_rules_from_json(text).rules[0].token_weight == 7


def test_always_active_rule_with_keywords_is_imported():
    text = json.dumps({
        "rules": [{"id": "c", "title": "Constant", "content": "Lore", "alwaysActive": True, "keywords": ["a"]}],
    })

    report = import_rules_from_json(text)

    assert [r.id for r in report.rules] == ["c"]
    assert report.issues == []
