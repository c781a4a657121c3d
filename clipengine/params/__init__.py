"""
Settings schema, defaults and preset resolution.
Default values: single source is clipengine.core.types.ClipSettings; use resolve_settings({}) for resolved defaults.
"""
from clipengine.params.schema import DEFAULT_SETTINGS, SETTINGS_SCHEMA
from clipengine.params.resolve import (
    resolve_settings,
    settings_from_dict,
    settings_to_dict,
    validate_settings,
)
from clipengine.params.clamp import clamp_settings

__all__ = [
    "DEFAULT_SETTINGS",
    "SETTINGS_SCHEMA",
    "resolve_settings",
    "settings_from_dict",
    "settings_to_dict",
    "validate_settings",
    "clamp_settings",
]
