"""
Sequence timeline: absolute start offsets for an ordered list of clips.

Every offset is computed from a single anchor (time 0 = when playback is
requested), never by chaining relative waits:

    offset[0] = lead_in
    offset[i] = offset[i-1] + duration[i-1] + delay_after_ms[i-1] / 1000

Negative delays overlap consecutive clips and may even move a start before
the previous one; offsets are not clamped. The last item's delay is unused.
"""
from dataclasses import dataclass, replace
import logging
from typing import Iterator, List, Mapping, NamedTuple, Optional, Sequence, Tuple, Union

from clipengine import config
from clipengine.core.types import SampleBuffer, SequenceItem

logger = logging.getLogger("clipengine")

DEFAULT_DELAY_MS = 100

ClipLike = Union[SampleBuffer, float]


class ScheduledStart(NamedTuple):
    clip_ref: str
    offset_s: float
    duration_s: float
    item_id: str


@dataclass(frozen=True)
class Schedule:
    starts: Tuple[ScheduledStart, ...]
    complete_at_s: float
    lead_in_s: float

    def __iter__(self) -> Iterator[ScheduledStart]:
        return iter(self.starts)

    def __len__(self) -> int:
        return len(self.starts)

    @property
    def offsets(self) -> List[float]:
        return [s.offset_s for s in self.starts]

    def dispatch_order(self) -> List[ScheduledStart]:
        """Starts sorted by offset; ties keep sequence order."""
        return sorted(self.starts, key=lambda s: s.offset_s)


def _duration(clip: ClipLike) -> float:
    if isinstance(clip, SampleBuffer):
        return clip.duration_s
    return float(clip)


def schedule(
    items: Sequence[SequenceItem],
    clips: Mapping[str, ClipLike],
    lead_in_s: Optional[float] = None,
) -> Schedule:
    """
    Compute the playback timeline.

    Args:
        items: Ordered sequence items.
        clips: clip_ref -> SampleBuffer (or a duration in seconds). Items whose
            clip is missing are skipped along with their delay.
        lead_in_s: Offset of the first clip; defaults to config.LEAD_IN_MS.

    Returns:
        Schedule with one ScheduledStart per playable item and the time the
        last clip finishes.
    """
    if lead_in_s is None:
        lead_in_s = config.LEAD_IN_MS / 1000.0

    playable = []
    for item in items:
        if item.clip_ref not in clips:
            logger.warning("Sequence item %s references unknown clip %r; skipping", item.id, item.clip_ref)
            continue
        playable.append((item, _duration(clips[item.clip_ref])))

    starts = []
    offset = lead_in_s
    complete_at = lead_in_s
    for index, (item, duration) in enumerate(playable):
        starts.append(ScheduledStart(item.clip_ref, offset, duration, item.id))
        complete_at = offset + duration
        if index < len(playable) - 1:
            offset = offset + duration + item.delay_after_ms / 1000.0

    return Schedule(starts=tuple(starts), complete_at_s=complete_at, lead_in_s=lead_in_s)


# -----------------------------------------------------------------------------
# Sequence editing (returns new lists; items are immutable)
# -----------------------------------------------------------------------------

def add_item(sequence: Sequence[SequenceItem], clip_ref: str, delay_after_ms: int = DEFAULT_DELAY_MS) -> List[SequenceItem]:
    return list(sequence) + [SequenceItem(clip_ref=clip_ref, delay_after_ms=int(delay_after_ms))]


def remove_item(sequence: Sequence[SequenceItem], item_id: str) -> List[SequenceItem]:
    return [item for item in sequence if item.id != item_id]


def set_delay(sequence: Sequence[SequenceItem], item_id: str, delay_after_ms: int) -> List[SequenceItem]:
    return [
        replace(item, delay_after_ms=int(delay_after_ms)) if item.id == item_id else item
        for item in sequence
    ]


def move_item(sequence: Sequence[SequenceItem], old_index: int, new_index: int) -> List[SequenceItem]:
    """Remove the item at old_index and reinsert it at new_index (drag-reorder)."""
    result = list(sequence)
    if not (0 <= old_index < len(result)) or not (0 <= new_index < len(result)):
        raise IndexError(f"move {old_index} -> {new_index} outside sequence of length {len(result)}")
    result.insert(new_index, result.pop(old_index))
    return result
