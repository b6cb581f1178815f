from __future__ import annotations

"""
Label helpers: the closed cell-type and sensor-type vocabularies and the
structural checks every replicate table must pass before analysis.

Metadata sheets are typed by hand, so labels are matched loosely with regexes
(e.g. "wt", "Wild type", "SNAP-tag") and normalised to enum members.
"""

from enum import Enum
from typing import Iterable, List, Optional
import re

import pandas as pd


class CellType(str, Enum):
    WT = "WT"
    LSA = "LSA"

    @classmethod
    def parse(cls, label: object) -> Optional["CellType"]:
        if isinstance(label, cls):
            return label
        if label is None or (isinstance(label, float) and pd.isna(label)):
            return None
        s = str(label).strip()
        if _WT_PAT.fullmatch(s):
            return cls.WT
        if _LSA_PAT.fullmatch(s):
            return cls.LSA
        return None


class SensorType(str, Enum):
    SNAP = "SNAP"
    CY5 = "Cy5"

    @classmethod
    def parse(cls, label: object) -> Optional["SensorType"]:
        if isinstance(label, cls):
            return label
        if label is None or (isinstance(label, float) and pd.isna(label)):
            return None
        s = str(label).strip()
        if _SNAP_PAT.fullmatch(s):
            return cls.SNAP
        if _CY5_PAT.fullmatch(s):
            return cls.CY5
        return None


_WT_PAT = re.compile(r"wt|wild[\s_-]?type(\s+cells?)?|wt\s+cells?", re.IGNORECASE)
_LSA_PAT = re.compile(r"lsa(\s+cells?)?", re.IGNORECASE)
_SNAP_PAT = re.compile(r"snap([\s_-]?tag)?", re.IGNORECASE)
_CY5_PAT = re.compile(r"cy5([\s_-]?dye)?", re.IGNORECASE)

CHANNELS = ("AF488", "Cy5", "mScarlet")
GROUP_KEYS = ["cell_type", "sample_id", "group_id"]
REQUIRED_COLUMNS = [
    "cell_type",
    "sensor_type",
    "formulation",
    "sample_id",
    "sample_name",
    "group_id",
    "AF488_raw",
    "Cy5_raw",
    "mScarlet_raw",
]


def _values(members: Iterable[Enum]) -> List[str]:
    return [m.value for m in members]


def validate_records(records: pd.DataFrame, untreated_id: str) -> None:
    """Reject tables that break the {WT, LSA} x {SNAP, Cy5} row contract.

    Raises ValueError describing the first problem found.
    """
    missing = [c for c in REQUIRED_COLUMNS if c not in records.columns]
    if missing:
        raise ValueError(f"Replicate table is missing columns: {missing}")

    bad_cell = records.loc[~records["cell_type"].isin(_values(CellType)), "cell_type"]
    if not bad_cell.empty:
        seen = sorted({str(v) for v in bad_cell})
        raise ValueError(f"Unrecognised cell_type value(s): {seen}; expected one of {_values(CellType)}")

    treated = records[records["sample_id"] != untreated_id]
    bad_sensor = treated.loc[~treated["sensor_type"].isin(_values(SensorType)), "sensor_type"]
    if not bad_sensor.empty:
        seen = sorted({str(v) for v in bad_sensor})
        raise ValueError(f"Unrecognised sensor_type value(s): {seen}; expected one of {_values(SensorType)}")

    baseline = records[records["sample_id"] == untreated_id]
    # baseline rows may leave the sensor blank, but not mislabel it
    bad_baseline = baseline.loc[
        baseline["sensor_type"].notna() & ~baseline["sensor_type"].isin(_values(SensorType)), "sensor_type"
    ]
    if not bad_baseline.empty:
        seen = sorted({str(v) for v in bad_baseline})
        raise ValueError(
            f"Unrecognised sensor_type value(s) on untreated rows: {seen}; expected blank or one of {_values(SensorType)}"
        )

    counts = treated.groupby(GROUP_KEYS)[["sensor_type", "formulation"]].nunique(dropna=False)
    mixed = counts[(counts["sensor_type"] > 1) | (counts["formulation"] > 1)]
    if not mixed.empty:
        keys = [tuple(k) for k in mixed.index[:5]]
        raise ValueError(f"Mixed sensor_type/formulation within replicate group(s): {keys}")
