"""
Settings Protocol
=================

Defines the settings interface that core/application layers depend on.
Infrastructure provides implementations (e.g., from lorebook.api.config).
"""

from typing import Protocol


class InjectionSettingsProtocol(Protocol):
    """Protocol for knowledge injection settings."""

    token_budget: int
    default_scan_depth: int
    separator: str
    include_titles: bool
    header: str | None
    footer: str | None
    secondary_keyword_mode: str
    token_weight_mode: str
    tiktoken_encoding: str
    random_seed: int | None


class SettingsProtocol(Protocol):
    """
    Protocol defining the settings interface used by core/application layers.

    This allows core to depend on an abstraction rather than lorebook.api.config directly.
    """

    # Application
    app_name: str
    debug: bool
    log_level: str

    # Nested settings
    injection: InjectionSettingsProtocol
