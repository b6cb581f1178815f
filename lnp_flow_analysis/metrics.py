from __future__ import annotations

"""
Derived metrics per replicate.

    adj_Cy5_rel        = adj_Cy5_abs / AF488         escape per association
    express_per_assoc  = mScarlet / AF488
    express_per_escape = mScarlet / adj_Cy5_abs      NA when escape is 0
    SNAP_perc_of_Cy5   = adj_Cy5_rel[SNAP] * correction_factor * 100
                         / mean(adj_Cy5_rel[Cy5 sibling])   LSA rows only

Every ratio goes through `safe_divide`, so zero or missing denominators give
NA rather than inf. Only LSA rows of SNAP samples are returned; Cy5-sensor
rows exist to provide the percent-escape reference.
"""

import pandas as pd

from .labels import CellType, SensorType
from .significance import safe_divide

METRIC_COLUMNS = [
    "AF488",
    "adj_Cy5_abs",
    "adj_Cy5_rel",
    "SNAP_perc_of_Cy5",
    "mScarlet",
    "express_per_assoc",
    "express_per_escape",
]
ID_COLUMNS = [
    "formulation",
    "sample_name",
    "sample_id",
    "group_id",
    "cell_type",
    "sensor_type",
    "replicate",
    "viability",
]
OUTPUT_COLUMNS = ID_COLUMNS + METRIC_COLUMNS
SIBLING_KEYS = ["formulation", "sample_name"]


def add_ratios(table: pd.DataFrame) -> pd.DataFrame:
    out = table.copy()
    out["adj_Cy5_rel"] = safe_divide(out["adj_Cy5_abs"], out["AF488"])
    out["express_per_assoc"] = safe_divide(out["mScarlet"], out["AF488"])
    out["express_per_escape"] = safe_divide(out["mScarlet"], out["adj_Cy5_abs"])
    return out


def percent_escape_efficiency(table: pd.DataFrame, correction_factor: float, verbose: bool = False) -> pd.DataFrame:
    """Keep LSA rows, attach SNAP_perc_of_Cy5 and return SNAP-sensor rows only."""
    lsa = table[table["cell_type"] == CellType.LSA.value].copy()
    cy5_rel = lsa["adj_Cy5_rel"].where(lsa["sensor_type"] == SensorType.CY5.value)
    reference = (
        lsa.assign(_ref=cy5_rel)
        .groupby(SIBLING_KEYS, dropna=False, sort=False)["_ref"]
        .transform("mean")
    )
    lsa["SNAP_perc_of_Cy5"] = safe_divide(lsa["adj_Cy5_rel"] * correction_factor * 100.0, reference)
    snap = lsa[lsa["sensor_type"] == SensorType.SNAP.value]
    if verbose:
        orphan = snap.loc[reference.loc[snap.index].isna(), SIBLING_KEYS].drop_duplicates()
        for formulation, sample_name in orphan.itertuples(index=False):
            print(f"[metrics] no usable Cy5 reference for {sample_name!r} ({formulation}); SNAP_perc_of_Cy5 is NA")
    return (
        snap[OUTPUT_COLUMNS]
        .sort_values(["formulation", "sample_name", "sample_id", "group_id", "replicate"], kind="mergesort")
        .reset_index(drop=True)
    )
