"""
Unit tests for clipengine/sequence: absolute-offset scheduling, editing helpers, playback dispatch.
Run from project root: python -m pytest tests/test_sequence.py -v
"""
import sys
import os
import threading
import time

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

import pytest
import torch

from clipengine.core.types import SampleBuffer, SequenceItem
from clipengine.sequence.player import SequencePlayer
from clipengine.sequence.scheduler import (
    add_item,
    move_item,
    remove_item,
    schedule,
    set_delay,
)

LEAD_IN = 0.1


def _clip(duration_s, sr=1000):
    return SampleBuffer(torch.zeros(1, int(round(duration_s * sr))), sr)


class RecordingSink:
    def __init__(self, clock=time.monotonic):
        self.clock = clock
        self.events = []
        self.lock = threading.Lock()

    def start(self, clip_ref, buffer):
        with self.lock:
            self.events.append((clip_ref, self.clock()))


# -----------------------------------------------------------------------------
# Scheduler
# -----------------------------------------------------------------------------

def test_zero_delays_offsets_are_cumulative_durations():
    clips = {"a": 0.5, "b": 1.25, "c": 0.75}
    items = [SequenceItem(ref, delay_after_ms=0) for ref in ("a", "b", "c")]
    plan = schedule(items, clips, lead_in_s=LEAD_IN)
    assert plan.offsets == pytest.approx([LEAD_IN, LEAD_IN + 0.5, LEAD_IN + 1.75])
    assert plan.complete_at_s == pytest.approx(LEAD_IN + 2.5)


def test_negative_delay_overlaps_previous_clip():
    clips = {"a": _clip(2.0), "b": _clip(1.5)}
    items = [SequenceItem("a", delay_after_ms=-500), SequenceItem("b", delay_after_ms=0)]
    plan = schedule(items, clips, lead_in_s=LEAD_IN)
    assert plan.offsets[1] == pytest.approx(LEAD_IN + 1.5)
    assert plan.complete_at_s == pytest.approx(LEAD_IN + 3.0)


def test_negative_delay_beyond_duration_is_not_clamped():
    clips = {"a": 1.0, "b": 1.0}
    items = [SequenceItem("a", delay_after_ms=-1500), SequenceItem("b")]
    plan = schedule(items, clips, lead_in_s=LEAD_IN)
    # b starts 0.5 s before a
    assert plan.offsets[1] == pytest.approx(LEAD_IN - 0.5)
    assert [s.clip_ref for s in plan.dispatch_order()] == ["b", "a"]


def test_positive_delay_and_last_delay_unused():
    clips = {"a": 1.0, "b": 2.0}
    items = [SequenceItem("a", delay_after_ms=250), SequenceItem("b", delay_after_ms=9999)]
    plan = schedule(items, clips, lead_in_s=0.0)
    assert plan.offsets == pytest.approx([0.0, 1.25])
    assert plan.complete_at_s == pytest.approx(3.25)


def test_default_lead_in_from_config():
    plan = schedule([SequenceItem("a")], {"a": 1.0})
    assert plan.lead_in_s == pytest.approx(0.1)
    assert plan.offsets == pytest.approx([0.1])


def test_missing_clip_is_skipped():
    clips = {"a": 1.0, "c": 1.0}
    items = [SequenceItem("a", delay_after_ms=0), SequenceItem("missing", delay_after_ms=5000), SequenceItem("c")]
    plan = schedule(items, clips, lead_in_s=0.0)
    assert [s.clip_ref for s in plan] == ["a", "c"]
    assert plan.offsets == pytest.approx([0.0, 1.0])


def test_empty_sequence():
    plan = schedule([], {}, lead_in_s=LEAD_IN)
    assert len(plan) == 0
    assert plan.complete_at_s == LEAD_IN


def test_same_clip_used_twice():
    items = [SequenceItem("a", delay_after_ms=100), SequenceItem("a")]
    plan = schedule(items, {"a": 0.5}, lead_in_s=0.0)
    assert plan.offsets == pytest.approx([0.0, 0.6])
    assert plan.starts[0].item_id != plan.starts[1].item_id


# -----------------------------------------------------------------------------
# Editing helpers
# -----------------------------------------------------------------------------

def test_add_remove_set_delay():
    seq = add_item([], "a")
    seq = add_item(seq, "b", delay_after_ms=-200)
    assert [i.clip_ref for i in seq] == ["a", "b"]
    assert seq[0].delay_after_ms == 100
    assert seq[1].delay_after_ms == -200

    seq2 = set_delay(seq, seq[0].id, 0)
    assert seq2[0].delay_after_ms == 0
    assert seq[0].delay_after_ms == 100

    seq3 = remove_item(seq2, seq2[0].id)
    assert [i.clip_ref for i in seq3] == ["b"]


def test_move_item():
    seq = [SequenceItem(ref) for ref in ("a", "b", "c")]
    assert [i.clip_ref for i in move_item(seq, 0, 2)] == ["b", "c", "a"]
    assert [i.clip_ref for i in move_item(seq, 2, 0)] == ["c", "a", "b"]
    with pytest.raises(IndexError):
        move_item(seq, 0, 3)


# -----------------------------------------------------------------------------
# Player
# -----------------------------------------------------------------------------

def test_player_starts_in_offset_order_and_completes():
    clips = {"a": _clip(0.05), "b": _clip(0.05)}
    items = [SequenceItem("a", delay_after_ms=-20), SequenceItem("b")]
    plan = schedule(items, clips, lead_in_s=0.02)

    sink = RecordingSink()
    done = threading.Event()
    player = SequencePlayer(sink)
    run = player.play(plan, clips, on_complete=done.set)

    assert done.wait(2.0)
    assert run.join(1.0)
    assert run.completed
    assert run.error is None
    assert [ref for ref, _ in sink.events] == ["a", "b"]
    assert run.revoked == []
    # starts are measured from one anchor
    gap = sink.events[1][1] - sink.events[0][1]
    assert gap == pytest.approx(0.03, abs=0.02)
    assert all(late >= 0 for late in run.dispatch_lateness)


def test_cancel_revokes_pending_starts():
    clips = {"a": _clip(0.01), "b": _clip(0.01), "c": _clip(0.01)}
    items = [SequenceItem("a", delay_after_ms=5000), SequenceItem("b"), SequenceItem("c")]
    plan = schedule(items, clips, lead_in_s=0.0)

    sink = RecordingSink()
    first_started = threading.Event()
    completed = []
    player = SequencePlayer(sink)
    run = player.play(plan, clips, on_start=lambda s: first_started.set(), on_complete=lambda: completed.append(True))

    assert first_started.wait(2.0)
    player.stop()
    assert run.done
    assert run.cancelled
    assert not run.completed
    assert completed == []
    assert [ref for ref, _ in sink.events] == ["a"]
    assert [s.clip_ref for s in run.revoked] == ["b", "c"]


def test_new_play_cancels_previous_run():
    clips = {"a": _clip(0.01), "b": _clip(0.01)}
    slow = schedule([SequenceItem("a", delay_after_ms=5000), SequenceItem("b")], clips, lead_in_s=0.0)
    fast = schedule([SequenceItem("b")], clips, lead_in_s=0.0)

    sink = RecordingSink()
    player = SequencePlayer(sink)
    first = player.play(slow, clips)
    second = player.play(fast, clips)

    assert first.join(2.0)
    assert second.join(2.0)
    assert first.cancelled
    assert second.completed
    assert player.current is second


def test_sink_failure_is_recorded():
    class BrokenSink:
        def start(self, clip_ref, buffer):
            raise RuntimeError("device lost")

    clips = {"a": _clip(0.01)}
    plan = schedule([SequenceItem("a")], clips, lead_in_s=0.0)
    run = SequencePlayer(BrokenSink()).play(plan, clips)
    assert run.join(2.0)
    assert isinstance(run.error, RuntimeError)
    assert not run.completed
    assert run.started == []
    assert [s.clip_ref for s in run.revoked] == ["a"]


def test_sink_failure_midway_revokes_failed_and_remaining():
    class FailOnB:
        def __init__(self):
            self.started = []

        def start(self, clip_ref, buffer):
            if clip_ref == "b":
                raise RuntimeError("device lost")
            self.started.append(clip_ref)

    clips = {"a": _clip(0.01), "b": _clip(0.01), "c": _clip(0.01)}
    items = [SequenceItem(ref, delay_after_ms=0) for ref in ("a", "b", "c")]
    sink = FailOnB()
    run = SequencePlayer(sink).play(schedule(items, clips, lead_in_s=0.0), clips)
    assert run.join(2.0)
    assert sink.started == ["a"]
    assert [s.clip_ref for s in run.started] == ["a"]
    assert [s.clip_ref for s in run.revoked] == ["b", "c"]
    assert len(run.started) + len(run.revoked) == 3
