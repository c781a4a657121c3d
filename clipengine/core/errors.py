"""
Error taxonomy for the clip engine.

Recoverable, stage-local conditions are NOT exceptions: no signal above the trim
threshold is reported through Boundaries.signal_detected, a silent buffer passes
through normalization unchanged, and an undetected pitch is the -1.0 sentinel.
Only truly invalid input raises.
"""


class ClipEngineError(Exception):
    """Base class for all engine errors."""


class InvalidBufferError(ClipEngineError, ValueError):
    """Malformed sample buffer: wrong rank, mismatched channel lengths, bad sample rate."""


class InvalidSettingsError(ClipEngineError, ValueError):
    """Settings value outside its allowed domain (e.g. threshold_db > 0)."""


class EncodeFailure(ClipEngineError):
    """Buffer cannot be written to the PCM container (zero channels, NaN samples)."""


class DecodeFailure(ClipEngineError):
    """The external decoder could not turn bytes into a SampleBuffer."""


class InvalidTransitionError(ClipEngineError):
    """Illegal batch item lifecycle transition."""
