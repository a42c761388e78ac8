from lorebook.shared.kernel.runtime import configure_settings, get_injection_settings, get_settings, is_configured
from lorebook.shared.kernel.settings import InjectionSettingsProtocol, SettingsProtocol

__all__ = [
    "InjectionSettingsProtocol",
    "SettingsProtocol",
    "configure_settings",
    "get_injection_settings",
    "get_settings",
    "is_configured",
]
