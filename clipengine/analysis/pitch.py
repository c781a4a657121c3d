"""
Monophonic pitch estimation.

YIN (de Cheveigne & Kawahara): difference function, cumulative-mean
normalization, absolute threshold, parabolic refinement. The direct
difference function costs O(W^2) per window of W samples, which is fine for
offline analysis of short clips but not for streaming. method="fft" computes
the same difference function through an FFT cross-correlation in
O(W log W); results match the direct form to floating-point tolerance.

estimate_pitch_amdf is the cheaper average-magnitude-difference estimator used
for live pitch readouts.
"""
import math

import torch

YIN_THRESHOLD = 0.15
MIN_TAU = 2

# AMDF estimator constants
AMDF_MIN_RMS = 0.01
AMDF_ONSET_LEVEL = 0.2
AMDF_MIN_OFFSET = 40
AMDF_MIN_CORRELATION = 0.1

UNDETECTED = -1.0


# -----------------------------------------------------------------------------
# YIN
# -----------------------------------------------------------------------------

def _difference_direct(x: torch.Tensor, half: int) -> torch.Tensor:
    # row tau holds x[tau : tau + half]
    shifted = x.unfold(0, half, 1)[:half]
    return ((x[:half].unsqueeze(0) - shifted) ** 2).sum(dim=1)


def _difference_fft(x: torch.Tensor, half: int) -> torch.Tensor:
    # d(tau) = sum x[j]^2 + sum x[j+tau]^2 - 2 sum x[j] x[j+tau],  j in [0, half)
    sq = x ** 2
    cs = torch.cat([torch.zeros(1, dtype=x.dtype), torch.cumsum(sq, dim=0)])
    taus = torch.arange(half)
    energy_shifted = cs[taus + half] - cs[taus]
    energy_head = cs[half]

    n_fft = 1 << math.ceil(math.log2(x.shape[0] + half))
    spec = torch.fft.rfft(x, n=n_fft) * torch.conj(torch.fft.rfft(x[:half], n=n_fft))
    cross = torch.fft.irfft(spec, n=n_fft)[:half]

    return torch.clamp(energy_head + energy_shifted - 2.0 * cross, min=0.0)


def difference_function(window: torch.Tensor, method: str = "direct") -> torch.Tensor:
    """d(tau) for tau in [0, len(window) // 2), computed in float64."""
    x = window.to(torch.float64).view(-1)
    half = x.shape[0] // 2
    if half == 0:
        return torch.zeros(0, dtype=torch.float64)
    if method == "direct":
        return _difference_direct(x, half)
    if method == "fft":
        return _difference_fft(x, half)
    raise ValueError(f"unknown difference method {method!r} (expected 'direct' or 'fft')")


def cumulative_mean_normalized(d: torch.Tensor) -> torch.Tensor:
    """d'(0) = 1, d'(tau) = d(tau) * tau / sum(d[1..tau]). A zero running sum yields 1."""
    out = torch.ones_like(d)
    if d.shape[0] < 2:
        return out
    running = torch.cumsum(d[1:], dim=0)
    taus = torch.arange(1, d.shape[0], dtype=d.dtype)
    safe = torch.where(running > 0, running, torch.ones_like(running))
    out[1:] = torch.where(running > 0, d[1:] * taus / safe, torch.ones_like(running))
    return out


def absolute_threshold(dn: torch.Tensor, threshold: float = YIN_THRESHOLD) -> int:
    """Smallest tau >= 2 where d'(tau) < threshold; -1 when no tau qualifies."""
    below = torch.nonzero(dn[MIN_TAU:] < threshold).view(-1)
    if below.numel() == 0:
        return -1
    return int(below[0]) + MIN_TAU


def parabolic_interpolation(values: torch.Tensor, tau: int) -> float:
    """Vertex of the parabola through (tau-1, tau, tau+1); tau itself at the edges."""
    if tau < 1 or tau + 1 >= values.shape[0]:
        return float(tau)
    s0 = float(values[tau - 1])
    s1 = float(values[tau])
    s2 = float(values[tau + 1])
    denom = 2.0 * (2.0 * s1 - s2 - s0)
    if denom == 0.0:
        return float(tau)
    return tau + (s2 - s0) / denom


def yin_pitch(
    window: torch.Tensor,
    sample_rate: int,
    threshold: float = YIN_THRESHOLD,
    method: str = "direct",
) -> float:
    """Pitch in Hz, or -1.0 when no periodicity passes the threshold."""
    dn = cumulative_mean_normalized(difference_function(window, method))
    tau = absolute_threshold(dn, threshold)
    if tau < 0:
        return UNDETECTED
    refined = parabolic_interpolation(dn, tau)
    if refined <= 0:
        return UNDETECTED
    return sample_rate / refined


# -----------------------------------------------------------------------------
# AMDF (live readout)
# -----------------------------------------------------------------------------

def estimate_pitch_amdf(window: torch.Tensor, sample_rate: int) -> float:
    """
    Average-magnitude-difference pitch estimate.
    Returns -1.0 when the window is too quiet, never crosses the onset level,
    or no offset correlates well enough.
    """
    x = window.to(torch.float64).view(-1)
    n = x.shape[0]
    if n == 0:
        return UNDETECTED

    rms = math.sqrt(float(torch.mean(x ** 2)))
    if rms < AMDF_MIN_RMS:
        return UNDETECTED
    if not bool(torch.any(torch.abs(x) >= AMDF_ONSET_LEVEL)):
        return UNDETECTED

    correlation = torch.zeros(n, dtype=torch.float64)
    best_offset = -1
    best_correlation = 0.0
    for offset in range(AMDF_MIN_OFFSET, (n + 1) // 2):
        c = 1.0 - float(torch.mean(torch.abs(x[: n - offset] - x[offset:])))
        correlation[offset] = c
        if c > best_correlation:
            best_correlation = c
            best_offset = offset

    if best_offset < 0 or best_correlation < AMDF_MIN_CORRELATION:
        return UNDETECTED

    prev_c = float(correlation[best_offset - 1])
    next_c = float(correlation[best_offset + 1]) if best_offset + 1 < n else 0.0
    denom = 2.0 * (2.0 * best_correlation - prev_c - next_c)
    final_offset = best_offset + ((next_c - prev_c) / denom if denom != 0.0 else 0.0)
    return sample_rate / final_offset
