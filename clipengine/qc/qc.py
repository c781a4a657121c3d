"""
Quality control for processed clips.
Surfaces the conditions the processing stages deliberately pass through:
clipping from a positive normalize target, near-silent output, empty clips.
"""
import math
from typing import Dict, Optional

import torch

from clipengine.core.types import SampleBuffer
from clipengine.dsp.envelopes import lin_to_db
from clipengine.dsp.normalize import peak_amplitude
from clipengine.qc.thresholds import QC_THRESHOLDS


def _rms(buffer: SampleBuffer) -> float:
    if buffer.samples.numel() == 0:
        return 0.0
    return float(torch.sqrt(torch.mean(buffer.samples.double() ** 2)))


def analyze(buffer: SampleBuffer, thresholds: Optional[Dict] = None) -> Dict:
    """
    Analyze a processed buffer.

    Returns:
        Dict with metrics, failures, warnings and an overall PASS/WARN/FAIL status.
    """
    thresholds = {**QC_THRESHOLDS, **(thresholds or {})}

    peak = peak_amplitude(buffer)
    rms = _rms(buffer)
    metrics = {
        "peak_linear": peak,
        "rms_linear": rms,
        "peak_dbfs": lin_to_db(peak),
        "rms_dbfs": lin_to_db(rms),
        "crest_factor": peak / rms if rms > 0 else 0.0,
        "duration_s": buffer.duration_s,
        "clipped_samples": int(torch.sum(torch.abs(buffer.samples) > 1.0)) if buffer.samples.numel() else 0,
    }

    failures = []
    warnings = []

    if buffer.num_channels == 0 or buffer.length == 0:
        failures.append("Empty clip: no samples to export")
    elif buffer.duration_s < thresholds["min_duration_s"]:
        warnings.append(f"Very short clip: {buffer.duration_s * 1000:.1f} ms")

    if peak == 0.0 and buffer.length > 0:
        warnings.append("Clip is silent")
    elif peak > 0.0:
        peak_dbfs = metrics["peak_dbfs"]
        if peak_dbfs > thresholds["peak_dbfs_max"]:
            warnings.append(
                f"Peak above full scale: {peak_dbfs:+.2f} dBFS, "
                f"{metrics['clipped_samples']} samples will clip on export"
            )
        elif peak_dbfs < thresholds["peak_dbfs_min"]:
            warnings.append(f"Peak very low: {peak_dbfs:.2f} dBFS < {thresholds['peak_dbfs_min']:.2f} dBFS")
        if rms > 0 and metrics["crest_factor"] < thresholds["crest_factor_min"]:
            warnings.append(f"Low crest factor ({metrics['crest_factor']:.2f}): source may already be clipped")

    status = "PASS"
    if failures:
        status = "FAIL"
    elif warnings:
        status = "WARN"

    return {
        "status": status,
        "metrics": {k: (None if isinstance(v, float) and math.isinf(v) else v) for k, v in metrics.items()},
        "failures": failures,
        "warnings": warnings,
    }
