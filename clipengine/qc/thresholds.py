"""
Default QC thresholds for processed voice clips.
"""
QC_THRESHOLDS = {
    "peak_dbfs_max": 0.0,       # above full scale the encoder clamp will clip
    "peak_dbfs_min": -40.0,     # quieter than this after processing is suspicious
    "crest_factor_min": 1.2,    # near-square waveform (already clipped source)
    "min_duration_s": 0.01,
}
