"""
Clamp settings to the UI ranges in SETTINGS_SCHEMA.
Only applied when a caller asks for it (e.g. mode=safe on the HTTP surface);
the engine itself accepts any valid value.
"""
from dataclasses import replace

from clipengine.core.params import clamp_if_bounds
from clipengine.core.types import ClipSettings
from clipengine.params.schema import SETTINGS_SCHEMA


def clamp_settings(settings: ClipSettings) -> ClipSettings:
    """Returns a new ClipSettings (does not mutate input)."""
    sections = {}
    for section, defs in SETTINGS_SCHEMA.items():
        current = getattr(settings, section)
        changes = {}
        for d in defs:
            if d.min is None and d.max is None:
                continue
            changes[d.name] = clamp_if_bounds(getattr(current, d.name), d.min, d.max)
        sections[section] = replace(current, **changes)
    return replace(settings, **sections)
