"""
Peak normalization across all channels.

No ceiling is applied: a positive target_db pushes samples past +/-1.0 and the
PCM encoder's clamp will hard-limit them. QC reports that case as a warning.
"""
import torch

from clipengine.core.types import NormalizeSettings, SampleBuffer
from clipengine.dsp.envelopes import db_to_lin


def peak_amplitude(buffer: SampleBuffer) -> float:
    """max |sample| over every channel; 0.0 for an empty buffer."""
    if buffer.samples.numel() == 0:
        return 0.0
    return float(torch.max(torch.abs(buffer.samples)))


def normalize(buffer: SampleBuffer, target_db: float) -> SampleBuffer:
    """Scale every sample so the peak lands on 10^(target_db/20). Silence is returned unchanged."""
    peak = peak_amplitude(buffer)
    if peak == 0.0:
        return buffer
    gain = db_to_lin(target_db) / peak
    return buffer.with_samples(buffer.samples * gain)


def apply_normalize(buffer: SampleBuffer, settings: NormalizeSettings) -> SampleBuffer:
    if not settings.enabled:
        return buffer
    return normalize(buffer, settings.target_db)
