from __future__ import annotations

"""
Background correction against the untreated baseline.

For each channel a significant (group, sample) gets the cell type's untreated
mean subtracted; a non-significant or untestable one is set to 0. The Cy5
channel of Cy5-sensor rows is never subtracted here, and rows whose Cy5 was
not tested keep their raw value. Untreated rows are dropped afterwards.
"""

import numpy as np
import pandas as pd

from .config import AnalysisConfig
from .labels import CHANNELS, SensorType

FLAG_KEYS = ["cell_type", "group_id", "sample_id"]


def _flags_for_rows(table: pd.DataFrame, flags: pd.DataFrame, channel: str):
    """Return (tested, flag) aligned with table rows; flag is nullable boolean."""
    ch = flags[flags["channel"] == channel].set_index(FLAG_KEYS)["significant"]
    keys = pd.MultiIndex.from_frame(table[FLAG_KEYS])
    tested = np.asarray(keys.isin(ch.index), dtype=bool)
    flag = pd.array(ch.reindex(keys).to_numpy(), dtype="boolean")
    return tested, flag


def subtract_background(records: pd.DataFrame, flags: pd.DataFrame, cfg: AnalysisConfig) -> pd.DataFrame:
    """Add background-corrected AF488, Cy5 and mScarlet columns.

    Raw columns are left untouched. Missing raw values stay missing.
    """
    out = records.copy()
    baseline = records[records["sample_id"] == cfg.untreated_id]
    is_cy5_sensor = (out["sensor_type"] == SensorType.CY5.value).to_numpy()
    for channel in CHANNELS:
        raw = out[f"{channel}_raw"].astype(float)
        baseline_mean = out["cell_type"].map(baseline.groupby("cell_type")[f"{channel}_raw"].mean()).astype(float)
        tested, flag = _flags_for_rows(out, flags, channel)
        significant = flag.fillna(False).to_numpy(dtype=bool)
        corrected = np.where(significant, raw - baseline_mean, 0.0)
        if channel == "Cy5":
            corrected = np.where(is_cy5_sensor | ~tested, raw, corrected)
        corrected = np.where(raw.isna(), np.nan, corrected)
        out[channel] = corrected.astype(float)
        out[f"significant_{channel}"] = flag
    out = out[out["sample_id"] != cfg.untreated_id].reset_index(drop=True)
    if cfg.verbose:
        print(f"[correction] {len(out)} replicate(s) after dropping untreated {cfg.untreated_id!r}")
    return out
