"""
Settings resolution tests: defaults snapshot, deep merge, legacy keys, validation, clamping.
Run from project root: python -m pytest tests/test_settings.py -v
Or: python tests/test_settings.py
"""
import sys
import os

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

import pytest

from clipengine.core.errors import InvalidSettingsError
from clipengine.core.params import clamp_if_bounds, get_param
from clipengine.core.types import ClipSettings, NormalizeSettings, TrimPadSettings
from clipengine.params import (
    DEFAULT_SETTINGS,
    clamp_settings,
    resolve_settings,
    settings_from_dict,
    settings_to_dict,
)


def test_defaults_snapshot():
    """Batch defaults: trim on at -40 dB with 100 ms padding and 10 ms fades, normalize to -3 dB."""
    assert DEFAULT_SETTINGS == {
        "trim": {
            "enabled": True,
            "padding_ms": 100.0,
            "threshold_db": -40.0,
            "fade_in_ms": 10.0,
            "fade_out_ms": 10.0,
        },
        "normalize": {"enabled": True, "target_db": -3.0},
    }
    assert resolve_settings() == ClipSettings()
    assert resolve_settings({}) == ClipSettings()


def test_deep_merge_keeps_sibling_defaults():
    settings = resolve_settings({"trim": {"padding_ms": 50}})
    assert settings.trim.padding_ms == 50.0
    assert settings.trim.threshold_db == -40.0
    assert settings.normalize.target_db == -3.0


def test_legacy_keys_are_mapped():
    settings = resolve_settings({"trimThreshold": -35, "normTarget": -1, "trimEnabled": False})
    assert settings.trim.threshold_db == -35.0
    assert settings.trim.enabled is False
    assert settings.normalize.target_db == -1.0


def test_nested_keys_win_over_legacy():
    settings = resolve_settings({"trimPadding": 10, "trim": {"padding_ms": 20}})
    assert settings.trim.padding_ms == 20.0


def test_string_booleans():
    settings = resolve_settings({"normalize": {"enabled": "false"}})
    assert settings.normalize.enabled is False


def test_positive_threshold_rejected():
    with pytest.raises(InvalidSettingsError):
        resolve_settings({"trim": {"threshold_db": 3.0}})


def test_negative_padding_rejected():
    with pytest.raises(InvalidSettingsError):
        resolve_settings({"trim": {"padding_ms": -1}})


def test_non_numeric_rejected():
    with pytest.raises(InvalidSettingsError):
        resolve_settings({"normalize": {"target_db": "loud"}})
    with pytest.raises(InvalidSettingsError):
        resolve_settings({"normalize": {"target_db": True}})


def test_non_dict_preset_rejected():
    with pytest.raises(InvalidSettingsError):
        resolve_settings(["trim"])


def test_positive_target_allowed():
    assert resolve_settings({"normalize": {"target_db": 6.0}}).normalize.target_db == 6.0


def test_dict_roundtrip():
    settings = ClipSettings(
        trim=TrimPadSettings(enabled=False, padding_ms=5.0, threshold_db=-50.0, fade_in_ms=0.0, fade_out_ms=2.0),
        normalize=NormalizeSettings(enabled=True, target_db=-9.0),
    )
    assert settings_from_dict(settings_to_dict(settings)) == settings


def test_clamp_to_ui_ranges():
    settings = ClipSettings(
        trim=TrimPadSettings(padding_ms=5000.0, threshold_db=-90.0, fade_in_ms=900.0),
        normalize=NormalizeSettings(target_db=20.0),
    )
    clamped = clamp_settings(settings)
    assert clamped.trim.padding_ms == 2000.0
    assert clamped.trim.threshold_db == -60.0
    assert clamped.trim.fade_in_ms == 500.0
    assert clamped.trim.fade_out_ms == 10.0
    assert clamped.normalize.target_db == 10.0
    assert clamped.trim.enabled is True
    # input untouched
    assert settings.trim.padding_ms == 5000.0


def test_get_param_dotted():
    params = {"trim": {"padding_ms": 7}}
    assert get_param(params, "trim.padding_ms") == 7
    assert get_param(params, "trim.missing", 1) == 1
    assert get_param(params, "normalize.target_db", -3) == -3


def test_clamp_if_bounds():
    assert clamp_if_bounds(5, 0, 10) == 5.0
    assert clamp_if_bounds(-1, 0, None) == 0
    assert clamp_if_bounds(11, None, 10) == 10
    assert clamp_if_bounds(3) == 3.0


if __name__ == "__main__":
    test_defaults_snapshot()
    test_deep_merge_keeps_sibling_defaults()
    test_legacy_keys_are_mapped()
    test_nested_keys_win_over_legacy()
    test_string_booleans()
    test_positive_target_allowed()
    test_dict_roundtrip()
    test_clamp_to_ui_ranges()
    test_get_param_dotted()
    test_clamp_if_bounds()
    print("All settings tests passed.")
