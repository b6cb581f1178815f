from __future__ import annotations

"""
Cross-channel normalisation: rescale the escape probe signal by each
replicate's association level relative to the WT mean of its
(sensor_type, formulation, sample_id) partition.

    norm_factor = AF488 / mean(AF488 | WT)
    adj_Cy5     = Cy5 / norm_factor

A zero or undefined WT mean (or a zero AF488) leaves adj_Cy5 NA.
"""

import pandas as pd

from .labels import CellType
from .significance import safe_divide

PARTITION = ["sensor_type", "formulation", "sample_id"]


def wt_partition_mean(table: pd.DataFrame, column: str, partition=PARTITION) -> pd.Series:
    """Mean of `column` over WT rows of each partition, broadcast to every row."""
    wt_only = table[column].where(table["cell_type"] == CellType.WT.value)
    return (
        table.assign(_wt=wt_only)
        .groupby(list(partition), dropna=False, sort=False)["_wt"]
        .transform("mean")
    )


def normalize_to_association(table: pd.DataFrame) -> pd.DataFrame:
    out = table.copy()
    wt_mean = wt_partition_mean(out, "AF488")
    out["norm_factor"] = safe_divide(out["AF488"], wt_mean)
    out["adj_Cy5"] = safe_divide(out["Cy5"], out["norm_factor"])
    return out
