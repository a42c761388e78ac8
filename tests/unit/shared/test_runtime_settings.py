import pytest

from lorebook.shared.kernel import runtime


class DummySettings:
    app_name = "lorebook"


def test_get_settings_raises_when_unconfigured():
    runtime._reset_for_tests()
    with pytest.raises(RuntimeError):
        runtime.get_settings()


def test_get_settings_returns_configured_instance():
    runtime._reset_for_tests()
    settings = DummySettings()
    runtime.configure_settings(settings)
    assert runtime.get_settings() is settings


def test_is_configured_tracks_state():
    runtime._reset_for_tests()
    assert not runtime.is_configured()

    runtime.configure_settings(DummySettings())
    assert runtime.is_configured()


def test_get_injection_settings_returns_nested_section():
    runtime._reset_for_tests()
    settings = DummySettings()
    settings.injection = object()
    runtime.configure_settings(settings)

    assert runtime.get_injection_settings() is settings.injection
