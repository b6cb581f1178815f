from __future__ import annotations

"""
SNAP-vs-WT differencing.

WT cells lack the SNAP acceptor, so their normalised Cy5 is the background
of a SNAP sample. Per SNAP sample_id the WT and LSA adj_Cy5 replicates are
compared with the shared Welch gate (missing values or fewer than
`min_replicates` on a side -> False). Significant samples get the WT mean
subtracted, the rest are set to 0; Cy5-sensor rows pass through. The result
is floored at 0.
"""

from typing import Dict, List

import numpy as np
import pandas as pd

from .config import AnalysisConfig
from .labels import CellType, SensorType
from .normalization import wt_partition_mean
from .significance import gated_welch_test

SNAP_FLAG_COLUMNS = ["sample_id", "n_wt", "n_lsa", "p_value", "significant_SNAP"]


def snap_vs_wt_significance(table: pd.DataFrame, cfg: AnalysisConfig) -> pd.DataFrame:
    rows: List[Dict[str, object]] = []
    snap = table[table["sensor_type"] == SensorType.SNAP.value]
    for sample_id, grp in snap.groupby("sample_id", sort=True):
        wt = grp.loc[grp["cell_type"] == CellType.WT.value, "adj_Cy5"].to_numpy(dtype=float)
        lsa = grp.loc[grp["cell_type"] == CellType.LSA.value, "adj_Cy5"].to_numpy(dtype=float)
        res = gated_welch_test(wt, lsa, alpha=cfg.alpha, min_n=cfg.min_replicates, missing="reject")
        rows.append(
            {
                "sample_id": sample_id,
                "n_wt": res.n_a,
                "n_lsa": res.n_b,
                "p_value": res.p_value,
                "significant_SNAP": bool(res.significant),
            }
        )
    return pd.DataFrame(rows, columns=SNAP_FLAG_COLUMNS).astype({"significant_SNAP": bool})


def subtract_wt_background(table: pd.DataFrame, snap_flags: pd.DataFrame) -> pd.DataFrame:
    """Add `adj_Cy5_abs` (and the per-row `significant_SNAP` flag)."""
    out = table.copy()
    significant_ids = snap_flags.loc[snap_flags["significant_SNAP"], "sample_id"]
    is_snap = (out["sensor_type"] == SensorType.SNAP.value).to_numpy()
    is_cy5 = (out["sensor_type"] == SensorType.CY5.value).to_numpy()
    significant = is_snap & out["sample_id"].isin(significant_ids).to_numpy()
    wt_mean = wt_partition_mean(out, "adj_Cy5", partition=["formulation", "sensor_type", "sample_id"])
    adj_abs = np.select(
        [significant, is_snap, is_cy5],
        [(out["adj_Cy5"] - wt_mean).to_numpy(dtype=float), 0.0, out["adj_Cy5"].to_numpy(dtype=float)],
        default=np.nan,
    )
    out["significant_SNAP"] = significant
    out["adj_Cy5_abs"] = pd.Series(adj_abs, index=out.index, dtype=float).clip(lower=0.0)
    return out
