from dataclasses import dataclass, field
from enum import Enum
import uuid
from typing import Dict, FrozenSet, List, Optional, Sequence

import numpy as np
import torch

from clipengine.core.errors import InvalidBufferError, InvalidTransitionError


# -----------------------------------------------------------------------------
# Sample buffer
# -----------------------------------------------------------------------------

@dataclass(frozen=True, eq=False)
class SampleBuffer:
    """
    Decoded audio: float32 tensor shaped [channels, length] plus its sample rate.
    Treated as immutable; every transform returns a new buffer it owns.
    """
    samples: torch.Tensor
    sample_rate: int

    def __post_init__(self):
        if not isinstance(self.samples, torch.Tensor):
            raise InvalidBufferError("samples must be a torch.Tensor")
        if self.samples.dim() != 2:
            raise InvalidBufferError(
                f"samples must be shaped [channels, length], got {tuple(self.samples.shape)}"
            )
        if isinstance(self.sample_rate, bool) or int(self.sample_rate) != self.sample_rate or self.sample_rate <= 0:
            raise InvalidBufferError(f"sample_rate must be a positive integer, got {self.sample_rate!r}")
        object.__setattr__(self, "sample_rate", int(self.sample_rate))
        if self.samples.dtype != torch.float32:
            object.__setattr__(self, "samples", self.samples.to(torch.float32))

    @property
    def num_channels(self) -> int:
        return self.samples.shape[0]

    @property
    def length(self) -> int:
        """Samples per channel."""
        return self.samples.shape[1]

    @property
    def duration_s(self) -> float:
        return self.length / self.sample_rate

    def channel(self, index: int) -> torch.Tensor:
        return self.samples[index]

    def with_samples(self, samples: torch.Tensor) -> "SampleBuffer":
        """New buffer at the same sample rate."""
        return SampleBuffer(samples, self.sample_rate)

    def to_numpy(self) -> np.ndarray:
        return self.samples.detach().cpu().numpy()

    @classmethod
    def from_channels(cls, channels: Sequence[Sequence[float]], sample_rate: int) -> "SampleBuffer":
        """Build from per-channel sample lists. All channels must have equal length."""
        lengths = {len(ch) for ch in channels}
        if len(lengths) > 1:
            raise InvalidBufferError(f"channel lengths differ: {sorted(lengths)}")
        if not channels:
            return cls(torch.zeros((0, 0), dtype=torch.float32), sample_rate)
        data = torch.tensor([list(ch) for ch in channels], dtype=torch.float32)
        return cls(data, sample_rate)

    @classmethod
    def from_numpy(cls, data: np.ndarray, sample_rate: int, channels_last: bool = False) -> "SampleBuffer":
        """1-D arrays are mono. soundfile returns [frames, channels]: pass channels_last=True."""
        arr = np.asarray(data, dtype=np.float32)
        if arr.ndim == 1:
            arr = arr[np.newaxis, :]
        elif channels_last:
            arr = arr.T
        return cls(torch.from_numpy(np.ascontiguousarray(arr)), sample_rate)

    @classmethod
    def zeros(cls, num_channels: int, length: int, sample_rate: int) -> "SampleBuffer":
        return cls(torch.zeros((num_channels, length), dtype=torch.float32), sample_rate)


# -----------------------------------------------------------------------------
# Processing settings
# -----------------------------------------------------------------------------

@dataclass(frozen=True)
class TrimPadSettings:
    enabled: bool = True
    padding_ms: float = 100.0
    threshold_db: float = -40.0
    fade_in_ms: float = 10.0
    fade_out_ms: float = 10.0


@dataclass(frozen=True)
class NormalizeSettings:
    enabled: bool = True
    target_db: float = -3.0  # may be > 0; clipping is reported by QC, not prevented


@dataclass(frozen=True)
class ClipSettings:
    trim: TrimPadSettings = field(default_factory=TrimPadSettings)
    normalize: NormalizeSettings = field(default_factory=NormalizeSettings)


# -----------------------------------------------------------------------------
# Analysis / sequencing values
# -----------------------------------------------------------------------------

@dataclass(frozen=True)
class ProsodyFrame:
    time_s: float       # start of the analysis window
    pitch_hz: float     # -1.0 when unvoiced/undetected
    intensity_rms: float
    voiced: bool


@dataclass(frozen=True)
class SequenceItem:
    clip_ref: str
    delay_after_ms: int = 100  # negative -> next clip overlaps this one
    id: str = field(default_factory=lambda: str(uuid.uuid4()))


# -----------------------------------------------------------------------------
# Batch item lifecycle
# -----------------------------------------------------------------------------

class BatchStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    DONE = "done"
    ERROR = "error"


ALLOWED_TRANSITIONS: Dict[BatchStatus, FrozenSet[BatchStatus]] = {
    BatchStatus.PENDING: frozenset({BatchStatus.PROCESSING}),
    # PROCESSING -> PENDING: result discarded because settings changed mid-run
    BatchStatus.PROCESSING: frozenset({BatchStatus.DONE, BatchStatus.ERROR, BatchStatus.PENDING}),
    BatchStatus.DONE: frozenset({BatchStatus.PENDING}),
    BatchStatus.ERROR: frozenset({BatchStatus.PENDING}),
}


@dataclass(eq=False)
class BatchItem:
    name: str
    source: SampleBuffer
    settings: ClipSettings = field(default_factory=ClipSettings)
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    status: BatchStatus = BatchStatus.PENDING
    error: Optional[str] = None
    result: Optional[SampleBuffer] = None
    result_bytes: Optional[bytes] = None
    warnings: List[str] = field(default_factory=list)
    generation: int = 0  # bumped on every settings change; stale runs compare against it

    def transition(self, new_status: BatchStatus) -> None:
        """Move to new_status, rejecting transitions the lifecycle does not allow."""
        if new_status not in ALLOWED_TRANSITIONS[self.status]:
            raise InvalidTransitionError(
                f"item {self.id}: {self.status.value} -> {new_status.value} is not allowed"
            )
        self.status = new_status
        if new_status in (BatchStatus.PENDING, BatchStatus.PROCESSING):
            self.result = None
            self.result_bytes = None
            self.error = None
            self.warnings = []
