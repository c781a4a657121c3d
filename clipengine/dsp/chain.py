"""
Single-clip processing chain: detect boundaries -> trim/pad/fade -> normalize.
Deterministic; every stage returns a new buffer, so the trimmed (un-normalized)
preview stays valid after normalization.
"""
from dataclasses import dataclass
import logging
from typing import Optional

from clipengine.core.types import ClipSettings, SampleBuffer
from clipengine.dsp.boundaries import Boundaries, detect_boundaries
from clipengine.dsp.normalize import apply_normalize
from clipengine.dsp.trim import apply_trim_pad_fade

logger = logging.getLogger("clipengine")


@dataclass(frozen=True)
class ChainResult:
    source: SampleBuffer
    trimmed: SampleBuffer
    output: SampleBuffer
    boundaries: Optional[Boundaries] = None  # None when trimming is disabled

    @property
    def no_signal(self) -> bool:
        return self.boundaries is not None and not self.boundaries.signal_detected


class ClipChain:
    """
    Chain: boundaries -> trim/pad/fade (skipped on no signal) -> peak normalize.
    """

    @staticmethod
    def _trim(buffer: SampleBuffer, settings: ClipSettings):
        trim = settings.trim
        if not trim.enabled:
            return buffer, None
        bounds = detect_boundaries(buffer, trim.threshold_db)
        if not bounds.signal_detected:
            logger.debug("No signal above %.1f dB; passing buffer through untrimmed", trim.threshold_db)
            return buffer, bounds
        return apply_trim_pad_fade(buffer, bounds.start, bounds.end, trim), bounds

    @classmethod
    def process(cls, buffer: SampleBuffer, settings: Optional[ClipSettings] = None) -> ChainResult:
        """Run the full chain on buffer."""
        settings = settings or ClipSettings()

        # 1-2. Boundaries + trim/pad/fade
        trimmed, bounds = cls._trim(buffer, settings)

        # 3. Peak normalize
        output = apply_normalize(trimmed, settings.normalize)

        return ChainResult(source=buffer, trimmed=trimmed, output=output, boundaries=bounds)
