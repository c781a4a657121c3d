"""
Silence boundary detection on the reference channel (channel 0).
"""
from typing import NamedTuple

import torch

from clipengine.core.types import SampleBuffer
from clipengine.dsp.envelopes import db_to_lin


class Boundaries(NamedTuple):
    start: int
    end: int

    @property
    def signal_detected(self) -> bool:
        """False means no sample rose above the threshold: skip trimming, pass through."""
        return self.start < self.end


def detect_boundaries(buffer: SampleBuffer, threshold_db: float) -> Boundaries:
    """
    First and last index on channel 0 whose |sample| exceeds 10^(threshold_db/20).
    Defaults to (0, length - 1) when nothing exceeds it.
    """
    n = buffer.length
    if buffer.num_channels == 0 or n == 0:
        return Boundaries(0, n - 1)

    threshold = db_to_lin(threshold_db)
    above = torch.nonzero(torch.abs(buffer.channel(0)) > threshold).view(-1)
    if above.numel() == 0:
        return Boundaries(0, n - 1)
    return Boundaries(int(above[0]), int(above[-1]))
