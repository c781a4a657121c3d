"""
Trim -> pad -> fade transform.

The half-open slice [start, end) of every channel is copied into a fresh,
zeroed buffer at offset padding_samples; the zeros on either side are the
padding. Linear fades are then applied to the copied region only. Fade-in and
fade-out are applied one after the other, so when they are longer than the
region they overlap multiplicatively.
"""
import torch

from clipengine.core.errors import InvalidBufferError
from clipengine.core.types import SampleBuffer, TrimPadSettings
from clipengine.dsp.envelopes import fade_in_, fade_out_, ms_to_samples


def output_length(start: int, end: int, padding_ms: float, sample_rate: int) -> int:
    return (end - start) + 2 * ms_to_samples(padding_ms, sample_rate)


def apply_trim_pad_fade(
    buffer: SampleBuffer,
    start: int,
    end: int,
    settings: TrimPadSettings,
) -> SampleBuffer:
    """
    Returns a new buffer of length (end - start) + 2 * padding_samples.
    Disabled settings return the input buffer itself.
    """
    if not settings.enabled:
        return buffer
    if not (0 <= start < end < buffer.length):
        raise InvalidBufferError(
            f"boundaries ({start}, {end}) outside buffer of length {buffer.length}"
        )

    sr = buffer.sample_rate
    pad = ms_to_samples(settings.padding_ms, sr)
    region_len = end - start

    out = torch.zeros((buffer.num_channels, region_len + 2 * pad), dtype=torch.float32)
    out[:, pad:pad + region_len] = buffer.samples[:, start:end]

    fade_in_(out, pad, region_len, ms_to_samples(settings.fade_in_ms, sr))
    fade_out_(out, pad, region_len, ms_to_samples(settings.fade_out_ms, sr))

    return SampleBuffer(out, sr)
