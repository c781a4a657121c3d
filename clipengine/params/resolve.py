"""
Settings resolution: deep-merge DEFAULT_SETTINGS with an incoming preset, then
build a validated ClipSettings. Incoming values override defaults at any nesting level.
"""
from dataclasses import asdict
import logging
from typing import Any, Dict

from clipengine.config import DEV
from clipengine.core.errors import InvalidSettingsError
from clipengine.core.params import get_bool, get_float
from clipengine.core.types import ClipSettings, NormalizeSettings, TrimPadSettings
from clipengine.params.schema import DEFAULT_SETTINGS, LEGACY_KEY_MAP

logger = logging.getLogger("clipengine")


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """
    Deep merge two dicts. override values take precedence.
    Returns a new dict (does not mutate inputs).
    """
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value

    return result


def _expand_legacy_keys(params: Dict[str, Any]) -> Dict[str, Any]:
    """Map flat camelCase keys onto the nested shape. Nested keys win over legacy ones."""
    found = [k for k in LEGACY_KEY_MAP if k in params]
    if not found:
        return params
    if DEV:
        logger.warning("[Settings] Legacy preset keys mapped: %s", found)

    nested: Dict[str, Any] = {}
    rest = {k: v for k, v in params.items() if k not in LEGACY_KEY_MAP}
    for key in found:
        section, name = LEGACY_KEY_MAP[key].split(".")
        nested.setdefault(section, {})[name] = params[key]
    return _deep_merge(nested, rest)


def validate_settings(settings: ClipSettings) -> ClipSettings:
    trim = settings.trim
    if trim.threshold_db > 0:
        raise InvalidSettingsError(f"trim.threshold_db must be <= 0, got {trim.threshold_db}")
    for name in ("padding_ms", "fade_in_ms", "fade_out_ms"):
        if getattr(trim, name) < 0:
            raise InvalidSettingsError(f"trim.{name} must be >= 0, got {getattr(trim, name)}")
    return settings


def settings_from_dict(params: Dict[str, Any]) -> ClipSettings:
    """Build ClipSettings from a complete (already merged) preset dict."""
    defaults = ClipSettings()
    trim = TrimPadSettings(
        enabled=get_bool(params, "trim.enabled", defaults.trim.enabled),
        padding_ms=get_float(params, "trim.padding_ms", defaults.trim.padding_ms),
        threshold_db=get_float(params, "trim.threshold_db", defaults.trim.threshold_db),
        fade_in_ms=get_float(params, "trim.fade_in_ms", defaults.trim.fade_in_ms),
        fade_out_ms=get_float(params, "trim.fade_out_ms", defaults.trim.fade_out_ms),
    )
    normalize = NormalizeSettings(
        enabled=get_bool(params, "normalize.enabled", defaults.normalize.enabled),
        target_db=get_float(params, "normalize.target_db", defaults.normalize.target_db),
    )
    return validate_settings(ClipSettings(trim=trim, normalize=normalize))


def settings_to_dict(settings: ClipSettings) -> Dict[str, Dict[str, Any]]:
    """Plain nested dict suitable for JSON presets; settings_from_dict reverses it."""
    return asdict(settings)


def resolve_settings(params: Dict[str, Any] = None) -> ClipSettings:
    """
    Resolve a preset by:
    1. Expanding legacy flat keys onto the nested shape
    2. Deep-merging onto DEFAULT_SETTINGS (incoming values win)
    3. Building and validating ClipSettings

    Args:
        params: Partial preset dict, e.g. {"trim": {"padding_ms": 50}}

    Returns:
        Validated ClipSettings.
    """
    if params is None:
        params = {}
    if not isinstance(params, dict):
        raise InvalidSettingsError(f"settings preset must be a dict, got {type(params).__name__}")
    merged = _deep_merge(DEFAULT_SETTINGS, _expand_legacy_keys(params))
    return settings_from_dict(merged)
