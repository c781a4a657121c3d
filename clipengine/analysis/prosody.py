"""
Windowed prosody analysis (pitch + RMS intensity) on channel 0.

analyze() returns a lazy generator: one ProsodyFrame per full window, in time
order. Calling analyze() again on the same buffer starts a fresh pass.
"""
import math
from typing import Dict, Iterable, Iterator, List

import torch

from clipengine.analysis.pitch import YIN_THRESHOLD, yin_pitch
from clipengine.core.types import ProsodyFrame, SampleBuffer

DEFAULT_WINDOW_SIZE = 1024
DEFAULT_HOP_SIZE = 512

# Windows quieter than this are never voiced, whatever the pitch tracker says
SILENCE_RMS = 0.01


def _frames(
    x: torch.Tensor,
    sample_rate: int,
    window_size: int,
    hop_size: int,
    threshold: float,
    method: str,
) -> Iterator[ProsodyFrame]:
    for start in range(0, x.shape[0] - window_size + 1, hop_size):
        window = x[start:start + window_size]
        rms = math.sqrt(float(torch.mean(window ** 2)))
        pitch = yin_pitch(window, sample_rate, threshold=threshold, method=method)
        yield ProsodyFrame(
            time_s=start / sample_rate,
            pitch_hz=pitch,
            intensity_rms=rms,
            voiced=pitch > 0 and rms > SILENCE_RMS,
        )


def analyze(
    buffer: SampleBuffer,
    window_size: int = DEFAULT_WINDOW_SIZE,
    hop_size: int = DEFAULT_HOP_SIZE,
    threshold: float = YIN_THRESHOLD,
    method: str = "direct",
) -> Iterator[ProsodyFrame]:
    """
    Frames start at 0, hop_size, 2*hop_size, ... while a full window fits;
    a buffer shorter than one window yields nothing.

    method: "direct" (reference O(window^2) difference function) or "fft".
    """
    if window_size < 4:
        raise ValueError(f"window_size must be >= 4, got {window_size}")
    if hop_size <= 0:
        raise ValueError(f"hop_size must be > 0, got {hop_size}")
    if method not in ("direct", "fft"):
        raise ValueError(f"unknown method {method!r}")

    if buffer.num_channels == 0:
        return iter(())
    x = buffer.channel(0).to(torch.float64)
    return _frames(x, buffer.sample_rate, window_size, hop_size, threshold, method)


def to_series(frames: Iterable[ProsodyFrame]) -> Dict[str, List]:
    """Parallel equal-length sequences for plotting."""
    series: Dict[str, List] = {"time_s": [], "pitch_hz": [], "intensity_rms": [], "voiced": []}
    for frame in frames:
        series["time_s"].append(frame.time_s)
        series["pitch_hz"].append(frame.pitch_hz)
        series["intensity_rms"].append(frame.intensity_rms)
        series["voiced"].append(frame.voiced)
    return series
