"""
QC report, segment splitting and ZIP export tests.
Run from project root: python -m pytest tests/test_qc_segments_export.py -v
"""
import sys
import os
import io
import json
import zipfile

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

import pytest
import torch

from clipengine.batch import BatchOrchestrator, BatchStatus
from clipengine.core.io import AudioIO
from clipengine.core.types import SampleBuffer
from clipengine.dsp.segments import (
    initial_segments,
    remove_segment,
    rename_segment,
    slice_buffer,
    split_at,
    split_segment,
)
from clipengine.export.exporter import Exporter, processed_filename
from clipengine.qc import analyze


def _tone(n=8000, amp=0.5, sr=8000):
    t = torch.arange(n, dtype=torch.float32)
    return SampleBuffer((amp * torch.sin(2 * 3.14159265 * 220 * t / sr)).unsqueeze(0), sr)


# -----------------------------------------------------------------------------
# QC
# -----------------------------------------------------------------------------

def test_qc_pass_on_normal_clip():
    report = analyze(_tone())
    assert report["status"] == "PASS", report
    assert abs(report["metrics"]["peak_dbfs"] + 6.02) < 0.05
    assert report["metrics"]["clipped_samples"] == 0


def test_qc_warns_above_full_scale():
    report = analyze(_tone(amp=1.4))
    assert report["status"] == "WARN"
    assert report["metrics"]["clipped_samples"] > 0
    assert any("full scale" in w for w in report["warnings"])


def test_qc_silent_clip():
    report = analyze(SampleBuffer.zeros(1, 800, 8000))
    assert report["status"] == "WARN"
    assert "Clip is silent" in report["warnings"]
    assert report["metrics"]["peak_dbfs"] is None


def test_qc_empty_clip_fails():
    report = analyze(SampleBuffer.zeros(1, 0, 8000))
    assert report["status"] == "FAIL"
    assert report["failures"]


def test_qc_custom_thresholds():
    report = analyze(_tone(amp=0.5), {"peak_dbfs_min": -3.0})
    assert any("Peak very low" in w for w in report["warnings"])


# -----------------------------------------------------------------------------
# Segments
# -----------------------------------------------------------------------------

def test_split_segment_names_and_order():
    buf = _tone(n=8000)
    segs = initial_segments(buf)
    assert [(s.name, s.start_s, s.end_s) for s in segs] == [("Segment 1", 0.0, 1.0)]

    segs = split_segment(segs, 0.5)
    segs = split_segment(segs, 0.25)
    assert [s.name for s in segs] == ["Segment 1", "Segment 3", "Segment 2"]
    assert [(s.start_s, s.end_s) for s in segs] == [(0.0, 0.25), (0.25, 0.5), (0.5, 1.0)]


def test_split_outside_any_segment_is_noop():
    segs = initial_segments(_tone(n=8000))
    assert split_segment(segs, 1.0) == segs
    assert split_segment(segs, 0.0) == segs


def test_split_at_sorts_cut_points():
    segs = split_at(_tone(n=8000), [0.75, 0.25])
    assert [(s.start_s, s.end_s) for s in segs] == [(0.0, 0.25), (0.25, 0.75), (0.75, 1.0)]


def test_rename_and_remove():
    segs = split_at(_tone(n=8000), [0.5])
    renamed = rename_segment(segs, segs[1].id, "outro")
    assert renamed[1].name == "outro"
    assert segs[1].name == "Segment 2"
    assert [s.id for s in remove_segment(renamed, segs[0].id)] == [segs[1].id]


def test_slice_buffer_floor_ceil():
    buf = SampleBuffer(torch.arange(10, dtype=torch.float32).unsqueeze(0), 10)
    part = slice_buffer(buf, 0.25, 0.61)
    # floor(2.5) = 2 .. ceil(6.1) = 7
    assert part.channel(0).tolist() == [2.0, 3.0, 4.0, 5.0, 6.0]


def test_slice_buffer_clamps_and_empty():
    buf = SampleBuffer(torch.arange(10, dtype=torch.float32).unsqueeze(0), 10)
    assert slice_buffer(buf, -1.0, 5.0).length == 10
    assert slice_buffer(buf, 0.8, 0.2).length == 0


# -----------------------------------------------------------------------------
# Export
# -----------------------------------------------------------------------------

@pytest.mark.parametrize("name,expected", [
    ("take 3.mp3", "take 3_processed.wav"),
    ("voice.final.wav", "voice.final_processed.wav"),
    ("noext", "noext_processed.wav"),
])
def test_processed_filename(name, expected):
    assert processed_filename(name) == expected


def test_batch_zip_contents():
    orch = BatchOrchestrator()
    orch.add("a.wav", _tone())
    orch.add("bad.wav", SampleBuffer.zeros(0, 0, 8000))
    orch.add("a.wav", _tone(amp=0.2))
    orch.run_all()

    data = Exporter.create_batch_zip(orch.items, "session", skipped=["broken.mp3"])
    with zipfile.ZipFile(io.BytesIO(data)) as zf:
        names = zf.namelist()
        meta = json.loads(zf.read("batch_info.json"))
        wavs = [n for n in names if n.endswith(".wav")]
        assert len(wavs) == 2
        assert "a_processed.wav" in wavs
        for n in wavs:
            decoded = AudioIO.decode(zf.read(n))
            assert decoded.sample_rate == 8000

    assert meta["batch_name"] == "session"
    assert meta["skipped"] == ["broken.mp3"]
    statuses = [item["status"] for item in meta["items"]]
    assert statuses == [BatchStatus.DONE.value, BatchStatus.ERROR.value, BatchStatus.DONE.value]
    assert meta["items"][1]["file"] is None
    assert meta["items"][1]["error"].startswith("Processing failed")
    assert meta["items"][0]["settings"]["normalize"]["target_db"] == -3.0


def test_batch_zip_same_name_files_match_metadata():
    orch = BatchOrchestrator()
    first = orch.add("a.wav", _tone())
    second = orch.add("a.wav", _tone(amp=0.2))
    orch.run_all()

    data = Exporter.create_batch_zip(orch.items, "session")
    with zipfile.ZipFile(io.BytesIO(data)) as zf:
        wavs = sorted(n for n in zf.namelist() if n.endswith(".wav"))
        meta = json.loads(zf.read("batch_info.json"))

    files = [item["file"] for item in meta["items"]]
    assert files == ["a_processed.wav", f"a_{second.id[:8]}_processed.wav"]
    assert sorted(files) == wavs
    assert first.id != second.id

def test_segments_zip():
    buf = _tone(n=8000)
    segs = split_at(buf, [0.5])
    data = Exporter.create_segments_zip(buf, segs)
    with zipfile.ZipFile(io.BytesIO(data)) as zf:
        assert sorted(zf.namelist()) == ["Segment 1.wav", "Segment 2.wav"]
        first = AudioIO.decode(zf.read("Segment 1.wav"))
        assert first.length == 4000
