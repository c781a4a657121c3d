"""
Settings schema and defaults.
Defaults: single source is the ClipSettings dataclass; DEFAULT_SETTINGS is its dict form.
Bounds here are UI ranges (used by clamp_settings), not validity limits.
"""
from dataclasses import asdict
from typing import Any, Dict, List

from clipengine.core.params import ParamDef
from clipengine.core.types import ClipSettings

DEFAULT_SETTINGS: Dict[str, Dict[str, Any]] = asdict(ClipSettings())

SETTINGS_SCHEMA: Dict[str, List[ParamDef]] = {
    "trim": [
        ParamDef("enabled", True),
        ParamDef("threshold_db", -40.0, min=-60.0, max=0.0, unit="dB"),
        ParamDef("padding_ms", 100.0, min=0.0, max=2000.0, unit="ms"),
        ParamDef("fade_in_ms", 10.0, min=0.0, max=500.0, unit="ms"),
        ParamDef("fade_out_ms", 10.0, min=0.0, max=500.0, unit="ms"),
    ],
    "normalize": [
        ParamDef("enabled", True),
        ParamDef("target_db", -3.0, min=-30.0, max=10.0, unit="dB"),
    ],
}

# Flat camelCase keys from older batch presets -> dotted nested keys
LEGACY_KEY_MAP = {
    "trimEnabled": "trim.enabled",
    "trimThreshold": "trim.threshold_db",
    "trimPadding": "trim.padding_ms",
    "fadeInMs": "trim.fade_in_ms",
    "fadeOutMs": "trim.fade_out_ms",
    "normEnabled": "normalize.enabled",
    "normTarget": "normalize.target_db",
}
