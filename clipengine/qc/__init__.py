"""
Quality Control module for evaluating processed clips.
"""
from clipengine.qc.qc import analyze
from clipengine.qc.thresholds import QC_THRESHOLDS

__all__ = ["analyze", "QC_THRESHOLDS"]
