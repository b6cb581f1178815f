from __future__ import annotations

"""
Significance gates (headless).

Both background-subtraction steps are gated by the same unpaired Welch t-test
(`scipy.stats.ttest_ind(..., equal_var=False)`) wrapped in `gated_welch_test`,
which owns the minimum-replicate and missing-value guards. Callers decide what
an untestable result means for them:

- baseline gate: per cell type and channel, each (group, sample) replicate set
  against the untreated replicate set; untestable -> NA flag.
- SNAP gate (see `escape.py`): WT vs LSA normalised Cy5; untestable -> False.

Also hosts `safe_divide`, the NA-not-inf division used by every ratio.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional
import warnings

import numpy as np
import pandas as pd
from scipy import stats  # type: ignore

from .config import AnalysisConfig
from .labels import CHANNELS, CellType


FLAG_COLUMNS = ["cell_type", "group_id", "sample_id", "channel", "n", "n_baseline", "p_value", "significant"]


@dataclass(frozen=True)
class GatedTest:
    significant: Optional[bool]  # None when the test could not be run
    p_value: float
    n_a: int
    n_b: int
    reason: str  # "tested", "missing", "undersampled" or "degenerate"


def gated_welch_test(a, b, alpha: float = 0.05, min_n: int = 2, missing: str = "drop") -> GatedTest:
    """Unpaired two-sample Welch t-test with replicate guards.

    missing="drop" discards NaNs before counting; missing="reject" makes any
    NaN in either sample untestable. Fewer than `min_n` values on either side,
    or an undefined p-value (e.g. both samples constant), is untestable too.
    """
    x = np.asarray(a, dtype=float).ravel()
    y = np.asarray(b, dtype=float).ravel()
    if missing == "reject":
        if np.isnan(x).any() or np.isnan(y).any():
            return GatedTest(None, float("nan"), x.size, y.size, "missing")
    elif missing == "drop":
        x = x[~np.isnan(x)]
        y = y[~np.isnan(y)]
    else:
        raise ValueError(f"missing must be 'drop' or 'reject', got {missing!r}")
    if x.size < min_n or y.size < min_n:
        return GatedTest(None, float("nan"), x.size, y.size, "undersampled")
    with warnings.catch_warnings(), np.errstate(divide="ignore", invalid="ignore"):
        warnings.simplefilter("ignore", RuntimeWarning)
        p_val = float(stats.ttest_ind(x, y, equal_var=False).pvalue)
    if not np.isfinite(p_val):
        return GatedTest(None, p_val, x.size, y.size, "degenerate")
    return GatedTest(bool(p_val < alpha), p_val, x.size, y.size, "tested")


def safe_divide(num, den) -> pd.Series:
    """Element-wise num / den with NA wherever den is 0 or missing."""
    num = pd.to_numeric(pd.Series(num), errors="coerce").astype(float)
    den = pd.to_numeric(pd.Series(den, index=num.index), errors="coerce").astype(float)
    ok = den.notna() & (den != 0)
    return num.where(ok) / den.where(ok)


def _tested_subset(treated: pd.DataFrame, channel: str, cfg: AnalysisConfig) -> pd.DataFrame:
    if channel == "Cy5":
        sensors = [s.value for s in cfg.cy5_baseline_sensors]
        return treated[treated["sensor_type"].isin(sensors)]
    return treated


def baseline_significance(records: pd.DataFrame, cfg: AnalysisConfig) -> pd.DataFrame:
    """Test every (group, sample) against the untreated baseline of its cell type.

    Returns a long table, one row per (cell_type, group_id, sample_id, channel).
    `significant` is a nullable boolean: NA where the test was undefined.
    Groups whose Cy5 channel is not tested get no Cy5 row at all.
    """
    rows: List[Dict[str, object]] = []
    for cell_type in CellType:
        cell = records[records["cell_type"] == cell_type.value]
        if cell.empty:
            continue
        baseline = cell[cell["sample_id"] == cfg.untreated_id]
        treated = cell[cell["sample_id"] != cfg.untreated_id]
        if baseline.empty and cfg.verbose:
            print(f"[significance] no untreated baseline for {cell_type.value}; its flags will be NA")
        for channel in CHANNELS:
            col = f"{channel}_raw"
            ref = baseline[col].to_numpy(dtype=float)
            subset = _tested_subset(treated, channel, cfg)
            for (group_id, sample_id), grp in subset.groupby(["group_id", "sample_id"], sort=True):
                res = gated_welch_test(
                    grp[col].to_numpy(dtype=float), ref,
                    alpha=cfg.alpha, min_n=cfg.min_replicates, missing="drop",
                )
                rows.append(
                    {
                        "cell_type": cell_type.value,
                        "group_id": group_id,
                        "sample_id": sample_id,
                        "channel": channel,
                        "n": res.n_a,
                        "n_baseline": res.n_b,
                        "p_value": res.p_value,
                        "significant": res.significant,
                    }
                )
    flags = pd.DataFrame(rows, columns=FLAG_COLUMNS)
    flags["significant"] = flags["significant"].astype("boolean")
    n_na = int(flags["significant"].isna().sum())
    if n_na and cfg.verbose:
        print(f"[significance] {n_na} baseline test(s) undefined (too few replicates); treated as not significant")
    return flags
