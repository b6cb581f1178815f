from __future__ import annotations

from typing import Dict, List

import numpy as np
import pandas as pd
import pytest

from lnp_flow_analysis.config import AnalysisConfig


def make_records(groups: List[Dict[str, object]]) -> pd.DataFrame:
    """Expand per-group specs (channel lists) into one row per replicate."""
    rows = []
    for g in groups:
        n = len(g["AF488"])
        for i in range(n):
            rows.append(
                {
                    "cell_type": g["cell_type"],
                    "sensor_type": g.get("sensor_type", np.nan),
                    "formulation": g.get("formulation", np.nan),
                    "sample_id": g["sample_id"],
                    "sample_name": g.get("sample_name", g["sample_id"]),
                    "group_id": g["group_id"],
                    "AF488_raw": float(g["AF488"][i]),
                    "Cy5_raw": float(g.get("Cy5", [0.0] * n)[i]),
                    "mScarlet_raw": float(g.get("mScarlet", [0.0] * n)[i]),
                }
            )
    return pd.DataFrame(rows)


def untreated_groups(af488=(10, 12, 11), cy5=(5, 6, 7), mscarlet=(2, 3, 4)) -> List[Dict[str, object]]:
    return [
        {"cell_type": ct, "sample_id": "untreated", "group_id": f"U-{ct}",
         "AF488": list(af488), "Cy5": list(cy5), "mScarlet": list(mscarlet)}
        for ct in ("WT", "LSA")
    ]


@pytest.fixture
def cfg() -> AnalysisConfig:
    return AnalysisConfig(probe_batch="B1", correction_factors={"B1": 0.5}, verbose=False)


@pytest.fixture
def experiment() -> pd.DataFrame:
    """Two LNPs: "A" measured with both sensors, "B" with SNAP only."""
    a = [50, 52, 51]
    groups = untreated_groups() + [
        # sample A, SNAP sensor
        {"cell_type": "WT", "sample_id": "s1", "group_id": "W1", "sensor_type": "SNAP",
         "formulation": "F1", "sample_name": "A", "AF488": a, "Cy5": [10, 10, 10], "mScarlet": [2, 3, 4]},
        {"cell_type": "LSA", "sample_id": "s1", "group_id": "L1", "sensor_type": "SNAP",
         "formulation": "F1", "sample_name": "A", "AF488": a, "Cy5": [100, 100, 100], "mScarlet": [30, 32, 31]},
        # sample A, Cy5 sensor
        {"cell_type": "WT", "sample_id": "s2", "group_id": "W2", "sensor_type": "Cy5",
         "formulation": "F1", "sample_name": "A", "AF488": a, "Cy5": [200, 200, 200], "mScarlet": [30, 32, 31]},
        {"cell_type": "LSA", "sample_id": "s2", "group_id": "L2", "sensor_type": "Cy5",
         "formulation": "F1", "sample_name": "A", "AF488": a, "Cy5": [200, 200, 200], "mScarlet": [30, 32, 31]},
        # sample B, SNAP only; WT association indistinguishable from background
        {"cell_type": "WT", "sample_id": "s3", "group_id": "W3", "sensor_type": "SNAP",
         "formulation": "F2", "sample_name": "B", "AF488": [10, 11, 12], "Cy5": [10, 10, 10], "mScarlet": [2, 3, 4]},
        {"cell_type": "LSA", "sample_id": "s3", "group_id": "L3", "sensor_type": "SNAP",
         "formulation": "F2", "sample_name": "B", "AF488": a, "Cy5": [100, 100, 100], "mScarlet": [30, 32, 31]},
    ]
    return make_records(groups)
