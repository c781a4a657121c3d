#!/usr/bin/env python3
"""
Offline clip tool: run the processing chain, prosody analysis, sequence
scheduling and segment splitting on WAV files from the command line.

Usage:
    python tools/process.py <subcommand> [options]

Subcommands:
    trim <input.wav> [settings_json]         Trim/pad/fade + normalize one clip
    analyze <input.wav>                      Print pitch/intensity frames (or save JSON)
    schedule <a.wav> <b.wav> ...             Print absolute start offsets for a sequence
    split <input.wav> <t1> <t2> ...          Cut a recording at the given seconds

Options:
    --mode <str>          "default" or "safe" (safe clamps settings to UI ranges)
    --output-dir <path>   Output directory (default: next to the input)
"""
import sys
import os
import json
import argparse
from pathlib import Path

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from clipengine.analysis.prosody import DEFAULT_HOP_SIZE, DEFAULT_WINDOW_SIZE, analyze, to_series
from clipengine.core.io import AudioIO
from clipengine.core.types import SequenceItem
from clipengine.dsp.chain import ClipChain
from clipengine.dsp.segments import split_at
from clipengine.export.exporter import Exporter, processed_filename
from clipengine.params import clamp_settings, resolve_settings, settings_to_dict
from clipengine.qc import analyze as qc_analyze
from clipengine.sequence.scheduler import DEFAULT_DELAY_MS, schedule


def _output_dir(args, input_path: Path) -> Path:
    output_dir = Path(args.output_dir) if args.output_dir else input_path.parent
    output_dir.mkdir(parents=True, exist_ok=True)
    return output_dir


def cmd_trim(args):
    """Process a single clip."""
    if args.settings_json:
        with open(args.settings_json, "r") as f:
            params = json.load(f)
    else:
        params = {}

    settings = resolve_settings(params)
    if args.mode == "safe":
        settings = clamp_settings(settings)

    input_path = Path(args.input)
    buffer = AudioIO.load(str(input_path))
    result = ClipChain.process(buffer, settings)

    out_path = _output_dir(args, input_path) / processed_filename(input_path.name)
    AudioIO.save_wav(result.output, str(out_path))

    print(f"\n=== Processing Complete ===")
    print(f"Input: {input_path} ({buffer.duration_s:.3f}s, {buffer.num_channels} ch, {buffer.sample_rate} Hz)")
    print(f"Output: {out_path} ({result.output.duration_s:.3f}s)")
    if result.boundaries is not None:
        if result.no_signal:
            print(f"No signal above {settings.trim.threshold_db:.1f} dB, trim skipped")
        else:
            print(f"Boundaries: {result.boundaries.start}..{result.boundaries.end}")

    if args.debug:
        json_path = out_path.with_suffix(".resolved.json")
        with open(json_path, "w") as f:
            json.dump(settings_to_dict(settings), f, indent=2)
        print(f"Debug JSON: {json_path}")

    if args.qc:
        report = qc_analyze(result.output)
        print(f"QC Status: {report['status']}")
        for warning in report["warnings"]:
            print(f"  Warning: {warning}")
        for failure in report["failures"]:
            print(f"  Failure: {failure}")
        return 1 if report["status"] == "FAIL" else 0
    return 0


def cmd_analyze(args):
    """Pitch / intensity frames for channel 0."""
    input_path = Path(args.input)
    buffer = AudioIO.load(str(input_path))
    series = to_series(analyze(
        buffer,
        window_size=args.window_size,
        hop_size=args.hop_size,
        method=args.method,
    ))

    if args.json:
        json_path = _output_dir(args, input_path) / f"{input_path.stem}.prosody.json"
        with open(json_path, "w") as f:
            json.dump({"sample_rate": buffer.sample_rate, **series}, f, indent=2)
        print(f"Prosody JSON: {json_path}")
        return 0

    print(f"{'time_s':>8}  {'pitch_hz':>9}  {'rms':>7}  voiced")
    for t, pitch, rms, voiced in zip(series["time_s"], series["pitch_hz"], series["intensity_rms"], series["voiced"]):
        print(f"{t:8.3f}  {pitch:9.2f}  {rms:7.4f}  {'yes' if voiced else '-'}")
    voiced_count = sum(series["voiced"])
    print(f"\n{len(series['time_s'])} frames, {voiced_count} voiced")
    return 0


def cmd_schedule(args):
    """Print where each clip would start if played back-to-back."""
    clips = {}
    items = []
    for path in args.inputs:
        clips[path] = AudioIO.load(path)
        items.append(SequenceItem(clip_ref=path, delay_after_ms=args.delay_ms))

    plan = schedule(items, clips, lead_in_s=None if args.lead_in_ms is None else args.lead_in_ms / 1000.0)
    print(f"Lead-in: {plan.lead_in_s:.3f}s")
    for start in plan.dispatch_order():
        print(f"  {start.offset_s:8.3f}s  {start.clip_ref} ({start.duration_s:.3f}s)")
    print(f"Complete at: {plan.complete_at_s:.3f}s")
    return 0


def cmd_split(args):
    """Cut a recording into segments and write them as a ZIP."""
    input_path = Path(args.input)
    buffer = AudioIO.load(str(input_path))
    segments = split_at(buffer, args.cut_points)

    zip_path = _output_dir(args, input_path) / f"{input_path.stem}_segments.zip"
    with open(zip_path, "wb") as f:
        f.write(Exporter.create_segments_zip(buffer, segments))

    for seg in segments:
        print(f"  {seg.name}: {seg.start_s:.3f}s - {seg.end_s:.3f}s")
    print(f"Output: {zip_path}")
    return 0


def main():
    parser = argparse.ArgumentParser(
        description="Offline voice clip processing tool"
    )

    subparsers = parser.add_subparsers(dest="command", help="Subcommand")

    # trim subcommand
    p_trim = subparsers.add_parser("trim", help="Trim/pad/fade + normalize one clip")
    p_trim.add_argument("input", help="Input audio file")
    p_trim.add_argument("settings_json", nargs="?", help="JSON file with settings (optional)")
    p_trim.add_argument("--mode", choices=["default", "safe"], default="default",
                        help="safe clamps settings to UI ranges")
    p_trim.add_argument("--debug", action="store_true", help="Save resolved.json with settings")
    p_trim.add_argument("--qc", action="store_true", help="Run QC analysis")
    p_trim.add_argument("--output-dir", type=str, help="Output directory (default: next to input)")

    # analyze subcommand
    p_analyze = subparsers.add_parser("analyze", help="Pitch/intensity analysis")
    p_analyze.add_argument("input", help="Input audio file")
    p_analyze.add_argument("--window-size", type=int, default=DEFAULT_WINDOW_SIZE)
    p_analyze.add_argument("--hop-size", type=int, default=DEFAULT_HOP_SIZE)
    p_analyze.add_argument("--method", choices=["direct", "fft"], default="direct")
    p_analyze.add_argument("--json", action="store_true", help="Write a .prosody.json instead of printing")
    p_analyze.add_argument("--output-dir", type=str, help="Output directory (default: next to input)")

    # schedule subcommand
    p_sched = subparsers.add_parser("schedule", help="Print sequence start offsets")
    p_sched.add_argument("inputs", nargs="+", help="Clips in playback order")
    p_sched.add_argument("--delay-ms", type=int, default=DEFAULT_DELAY_MS, help="Delay after each clip")
    p_sched.add_argument("--lead-in-ms", type=float, default=None, help="Override lead-in")

    # split subcommand
    p_split = subparsers.add_parser("split", help="Cut a recording into segments")
    p_split.add_argument("input", help="Input audio file")
    p_split.add_argument("cut_points", nargs="*", type=float, help="Cut points in seconds")
    p_split.add_argument("--output-dir", type=str, help="Output directory (default: next to input)")

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        return 1

    if args.command == "trim":
        return cmd_trim(args)
    elif args.command == "analyze":
        return cmd_analyze(args)
    elif args.command == "schedule":
        return cmd_schedule(args)
    elif args.command == "split":
        return cmd_split(args)
    else:
        parser.print_help()
        return 1


if __name__ == "__main__":
    sys.exit(main())
