import pytest

from oceanic_backend.config import load_settings
from oceanic_backend.errors import ConfigurationError

BASE = {
    "RCL_LOWER_LIMIT": "15",
    "RCL_UPPER_LIMIT": "90",
    "RCL_TIME_CONSTRAINTS_ENABLED": "true",
    "RCL_AUTO_ACKNOWLEDGEMENT_ENABLED": "0",
}


def test_load_settings_with_defaults():
    settings = load_settings(BASE)
    assert settings.window.lower_bound_minutes == 15
    assert settings.window.upper_bound_minutes == 90
    assert settings.time_constraints_enabled is True
    assert settings.auto_acknowledgement_enabled is False
    assert settings.conflict_span_minutes == 10
    assert settings.fetch_timeout_s == 2.0


def test_optional_values_override_defaults():
    settings = load_settings({**BASE, "RCL_CONFLICT_SPAN_MINUTES": "5", "RCL_FETCH_TIMEOUT_S": "0.5"})
    assert settings.conflict_span_minutes == 5
    assert settings.fetch_timeout_s == 0.5


@pytest.mark.parametrize("missing", sorted(BASE))
def test_required_values(missing):
    env = {k: v for k, v in BASE.items() if k != missing}
    with pytest.raises(ConfigurationError, match=missing):
        load_settings(env)


@pytest.mark.parametrize("override", [
    {"RCL_LOWER_LIMIT": "fifteen"},
    {"RCL_LOWER_LIMIT": "100"},
    {"RCL_LOWER_LIMIT": "-5"},
    {"RCL_TIME_CONSTRAINTS_ENABLED": "maybe"},
    {"RCL_AUTO_ACKNOWLEDGEMENT_ENABLED": " "},
    {"RCL_CONFLICT_SPAN_MINUTES": "-1"},
    {"RCL_FETCH_TIMEOUT_S": "soon"},
])
def test_invalid_values(override):
    with pytest.raises(ConfigurationError):
        load_settings({**BASE, **override})
