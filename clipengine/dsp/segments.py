"""
Segment splitting: cut one recording into named, independently exportable regions.
"""
from dataclasses import dataclass, field, replace
import math
import uuid
from typing import List, Sequence

from clipengine.core.types import SampleBuffer


@dataclass(frozen=True)
class Segment:
    name: str
    start_s: float
    end_s: float
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    @property
    def duration_s(self) -> float:
        return self.end_s - self.start_s


def initial_segments(buffer: SampleBuffer) -> List[Segment]:
    """A single segment spanning the whole buffer."""
    return [Segment("Segment 1", 0.0, buffer.duration_s)]


def split_segment(segments: Sequence[Segment], at_s: float) -> List[Segment]:
    """
    Split the segment strictly containing at_s into two. The right half is
    inserted right after the left and named "Segment {n + 1}".
    Returns an unchanged copy when no segment contains at_s.
    """
    result = list(segments)
    for index, seg in enumerate(result):
        if seg.start_s < at_s < seg.end_s:
            result[index] = replace(seg, end_s=at_s)
            result.insert(index + 1, Segment(f"Segment {len(segments) + 1}", at_s, seg.end_s))
            break
    return result


def split_at(buffer: SampleBuffer, cut_points_s: Sequence[float]) -> List[Segment]:
    segments = initial_segments(buffer)
    for at_s in sorted(cut_points_s):
        segments = split_segment(segments, at_s)
    return segments


def rename_segment(segments: Sequence[Segment], segment_id: str, name: str) -> List[Segment]:
    return [replace(s, name=name) if s.id == segment_id else s for s in segments]


def remove_segment(segments: Sequence[Segment], segment_id: str) -> List[Segment]:
    return [s for s in segments if s.id != segment_id]


def slice_buffer(buffer: SampleBuffer, start_s: float, end_s: float) -> SampleBuffer:
    """
    Samples floor(start_s * sr) .. ceil(end_s * sr), clamped to the buffer.
    An empty or inverted range gives a zero-length buffer.
    """
    sr = buffer.sample_rate
    first = max(0, math.floor(start_s * sr))
    last = min(buffer.length, math.ceil(end_s * sr))
    if last <= first:
        return SampleBuffer.zeros(buffer.num_channels, 0, sr)
    return buffer.with_samples(buffer.samples[:, first:last].clone())
