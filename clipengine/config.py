"""
Runtime configuration read from the environment once at import.
Processing settings (trim/normalize) live in clipengine.params, not here.
"""
import os

DEV = os.environ.get("ENV", "development").lower() in ("development", "dev", "test")

LOG_LEVEL = os.environ.get("CLIPENGINE_LOG_LEVEL", "INFO").upper()


def _float_env(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


# Sequence playback starts this long after the anchor so the output device is warm.
LEAD_IN_MS = _float_env("CLIPENGINE_LEAD_IN_MS", 100.0)
