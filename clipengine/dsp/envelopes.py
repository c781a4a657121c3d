import math

import torch


# -----------------------------------------------------------------------------
# Helpers (reusable across transforms and analysis)
# -----------------------------------------------------------------------------

def db_to_lin(db: float) -> float:
    """Convert decibels to linear amplitude. 0 dB -> 1.0, -inf -> 0.0."""
    return 10.0 ** (db / 20.0)


def lin_to_db(x: float) -> float:
    """Convert linear amplitude to dB. Non-positive -> -inf."""
    if x <= 0:
        return -math.inf
    return 20.0 * math.log10(x)


def ms_to_s(ms: float) -> float:
    """Convert milliseconds to seconds."""
    return ms / 1000.0


def ms_to_samples(ms: float, sample_rate: int) -> int:
    """round(ms / 1000 * sample_rate); Python rounds halves to even."""
    return int(round(ms_to_s(ms) * sample_rate))


# -----------------------------------------------------------------------------
# Linear edge fades (in place, on a tensor the caller exclusively owns)
# -----------------------------------------------------------------------------

def fade_ramp(count: int, fade_samples: int) -> torch.Tensor:
    """j / fade_samples for j in [0, count), float64. Starts at exactly 0."""
    return torch.arange(count, dtype=torch.float64).div(fade_samples)


def _scale_(region: torch.Tensor, ramp: torch.Tensor):
    # product taken in float64, rounded once to the buffer dtype
    region.copy_((region.double() * ramp).to(region.dtype))


def fade_in_(samples: torch.Tensor, offset: int, region_len: int, fade_samples: int) -> torch.Tensor:
    """
    Multiply samples[..., offset + j] by j / fade_samples for the first
    min(fade_samples, region_len) samples of the region.
    """
    n = min(fade_samples, region_len)
    if fade_samples <= 0 or n <= 0:
        return samples
    _scale_(samples[..., offset:offset + n], fade_ramp(n, fade_samples))
    return samples


def fade_out_(samples: torch.Tensor, offset: int, region_len: int, fade_samples: int) -> torch.Tensor:
    """
    Mirror of fade_in_: the last sample of the region gets multiplier 0,
    the one before it 1 / fade_samples, and so on.
    """
    n = min(fade_samples, region_len)
    if fade_samples <= 0 or n <= 0:
        return samples
    last = offset + region_len
    # ramp runs 0 -> (n-1)/fade backwards from the region end
    _scale_(samples[..., last - n:last], torch.flip(fade_ramp(n, fade_samples), dims=[0]))
    return samples
