from types import SimpleNamespace

import pytest

from lorebook.core.activation import service as service_module
from lorebook.core.activation.scan import ScanSources
from lorebook.core.activation.service import build_injection_service, get_injection_service
from lorebook.core.rules.application.store import RuleStore
from lorebook.shared.kernel import runtime


def _injection_settings(**overrides):
    values = {
        "token_budget": 100,
        "default_scan_depth": 5,
        "separator": "\n---\n",
        "include_titles": False,
        "header": None,
        "footer": None,
        "secondary_keyword_mode": "metadata",
        "token_weight_mode": "chars",
        "tiktoken_encoding": "cl100k_base",
        "random_seed": 1,
    }
    values.update(overrides)
    return SimpleNamespace(**values)


def test_inject_commits_bookkeeping(make_rule):
    store = RuleStore([make_rule("Gate lore.", id="gate", keywords=["gate"]), make_rule("Other", id="x", keywords=["x"])])
    service = build_injection_service(_injection_settings(), store=store)

    result = service.inject(ScanSources(player_input="open the gate"), turn=4)

    assert result.included_ids == ["gate"]
    assert store.get("gate").activation_count == 1
    assert store.get("gate").last_activated == 4
    assert store.get("x").activation_count == 0


def test_inject_dry_run_leaves_store_untouched(make_rule):
    store = RuleStore([make_rule("Gate lore.", id="gate", keywords=["gate"])])
    service = build_injection_service(_injection_settings(), store=store)
    version = store.version

    service.inject(ScanSources(player_input="gate"), turn=4, commit=False)

    assert store.get("gate").activation_count == 0
    assert store.version == version


def test_budget_override(make_rule):
    store = RuleStore([make_rule("x" * 40, keywords=["gate"])])
    service = build_injection_service(_injection_settings(token_budget=100), store=store)

    assert service.inject(ScanSources(player_input="gate"), turn=1, budget=5).entries == []
    assert len(service.inject(ScanSources(player_input="gate"), turn=2).entries) == 1


def test_settings_flow_into_engine():
    service = build_injection_service(
        _injection_settings(separator="||", include_titles=True, secondary_keyword_mode="merged")
    )

    assert service.engine.assembler.separator == "||"
    assert service.engine.assembler.include_titles is True
    assert service.engine.secondary_keyword_mode == "merged"
    assert service.token_budget == 100


def test_singleton_requires_configured_settings():
    with pytest.raises(RuntimeError):
        get_injection_service()


def test_singleton_built_once_from_runtime_settings():
    runtime.configure_settings(SimpleNamespace(injection=_injection_settings(token_budget=42)))

    first = get_injection_service()

    assert first is get_injection_service()
    assert first.token_budget == 42

    service_module.reset_injection_service()
    assert get_injection_service() is not first


def test_block_format_comes_from_settings(make_rule):
    store = RuleStore([make_rule("Gates close at dusk.", id="gate", title="Gate", keywords=["gate"], order=120)])
    settings = _injection_settings(
        include_titles=True,
        header="=== ACTIVE WORLD RULES ===",
        footer="=== {count} rules, {tokens} tokens ===",
    )
    service = build_injection_service(settings, store=store)

    result = service.inject(ScanSources(player_input="the gate"), turn=1, commit=False)

    assert result.block == (
        "=== ACTIVE WORLD RULES ===\n---\n"
        "[Gate] (priority: 120) - matched keywords: gate\nGates close at dusk.\n---\n"
        "=== 1 rules, 5 tokens ==="
    )
