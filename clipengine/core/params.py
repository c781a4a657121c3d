"""
Param lookup utilities for settings presets (plain nested dicts).
Supports dotted keys, e.g. get_param(p, "trim.threshold_db").
"""
from dataclasses import dataclass
from typing import Any, Optional

from clipengine.core.errors import InvalidSettingsError


# -----------------------------------------------------------------------------
# Param definition (for schema/documentation; lookup still via get_param)
# -----------------------------------------------------------------------------

@dataclass
class ParamDef:
    """Definition of a single setting. Bounds/unit are optional."""
    name: str
    default: Any
    min: Optional[float] = None
    max: Optional[float] = None
    unit: Optional[str] = None


# -----------------------------------------------------------------------------
# Lookup helpers
# -----------------------------------------------------------------------------

def get_param(params: dict, name: str, default: Any = None) -> Any:
    """
    Read a value from params, supporting dotted keys for nested dicts.
    E.g. get_param(p, "trim.padding_ms", 100.0) -> p["trim"]["padding_ms"] or default.
    If any intermediate key is missing or not a dict, returns default.
    """
    if not params or not name:
        return default
    keys = name.split(".")
    current = params
    for key in keys[:-1]:
        next_val = current.get(key)
        if next_val is None or not isinstance(next_val, dict):
            return default
        current = next_val
    return current.get(keys[-1], default)


def get_float(params: dict, name: str, default: float) -> float:
    """Read a numeric setting. Non-numeric values are a settings error, not a silent default."""
    raw = get_param(params, name, default)
    if isinstance(raw, bool):
        raise InvalidSettingsError(f"{name}: expected a number, got {raw!r}")
    try:
        return float(raw)
    except (TypeError, ValueError):
        raise InvalidSettingsError(f"{name}: expected a number, got {raw!r}") from None


def get_bool(params: dict, name: str, default: bool) -> bool:
    raw = get_param(params, name, default)
    if isinstance(raw, str):
        return raw.strip().lower() in ("1", "true", "yes", "on")
    return bool(raw)


def clamp_if_bounds(
    value: float,
    min: Optional[float] = None,
    max: Optional[float] = None,
) -> float:
    """
    Clamp value to [min, max] when bounds are not None.
    If both are None, returns value unchanged.
    """
    v = float(value)
    if min is not None and v < min:
        return min
    if max is not None and v > max:
        return max
    return v
