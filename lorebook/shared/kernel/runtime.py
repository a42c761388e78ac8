"""Process-wide settings holder, filled once by the API lifespan or an embedding app."""

from lorebook.shared.kernel.settings import InjectionSettingsProtocol, SettingsProtocol

_settings: SettingsProtocol | None = None


def configure_settings(settings: SettingsProtocol) -> None:
    global _settings
    _settings = settings


def is_configured() -> bool:
    return _settings is not None


def get_settings() -> SettingsProtocol:
    if _settings is None:
        raise RuntimeError(
            "Lorebook settings are not configured. Call configure_settings() before building the injection service."
        )
    return _settings


def get_injection_settings() -> InjectionSettingsProtocol:
    """Shortcut for the ``injection`` section, which is all the engine reads."""
    return get_settings().injection


def _reset_for_tests() -> None:
    global _settings
    _settings = None
