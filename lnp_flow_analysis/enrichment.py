from __future__ import annotations

"""
Record enrichment: turn a raw per-well median export into canonical replicate
records by renaming channel columns and joining group/sample metadata.

Expected inputs
- raw export: one row per well with `group_id`, `sample_id` and the channel
  median columns named in `channel_columns` (optionally a `well` column)
- groups sheet: `group_id`, `cell_type`
- samples sheet: `sample_id`, `sample_name`, `formulation`, `sensor_type`

Keys are compared as strings so "3" and 3 join. Labels are normalised via
CellType.parse / SensorType.parse; unrecognised text is kept as-is so that
`validate_records` can reject it with a readable message.
"""

from pathlib import Path
from typing import Mapping, Optional

import pandas as pd

from .config import DEFAULT_CHANNEL_COLUMNS
from .labels import GROUP_KEYS, CellType, SensorType

GROUP_META_COLUMNS = ["group_id", "cell_type"]
SAMPLE_META_COLUMNS = ["sample_id", "sample_name", "formulation", "sensor_type"]


def read_table(path: Path) -> pd.DataFrame:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Input table not found: {path}")
    sep = "\t" if path.suffix.lower() in (".tsv", ".txt") else ","
    return pd.read_csv(path, sep=sep)


def rename_channels(raw: pd.DataFrame, channel_columns: Optional[Mapping[str, str]] = None) -> pd.DataFrame:
    channel_columns = dict(channel_columns or DEFAULT_CHANNEL_COLUMNS)
    missing = [c for c in channel_columns if c not in raw.columns]
    # viability is optional in the export
    missing = [c for c in missing if channel_columns[c] != "viability"]
    if missing:
        raise KeyError(f"Raw export is missing channel column(s): {missing}")
    out = raw.rename(columns=channel_columns)
    for col in channel_columns.values():
        if col in out.columns:
            out[col] = pd.to_numeric(out[col], errors="coerce").astype(float)
    return out


def _normalise_label(value: object, parser) -> object:
    parsed = parser(value)
    return parsed.value if parsed is not None else value


def _metadata(table: pd.DataFrame, columns: list, key: str, name: str) -> pd.DataFrame:
    missing = [c for c in columns if c not in table.columns]
    if missing:
        raise KeyError(f"{name} sheet is missing column(s): {missing}")
    meta = table[columns].copy()
    meta[key] = meta[key].astype(str).str.strip()
    dup = meta[key][meta[key].duplicated()]
    if not dup.empty:
        raise ValueError(f"Duplicate {key} in {name} sheet: {sorted(set(dup))}")
    return meta


def assign_replicates(records: pd.DataFrame) -> pd.DataFrame:
    """Number replicates 1..n within each (cell_type, sample_id, group_id) in row order."""
    out = records.copy()
    out["replicate"] = out.groupby(GROUP_KEYS, dropna=False, sort=False).cumcount() + 1
    return out


def enrich_records(
    raw: pd.DataFrame,
    groups: pd.DataFrame,
    samples: pd.DataFrame,
    channel_columns: Optional[Mapping[str, str]] = None,
) -> pd.DataFrame:
    data = rename_channels(raw, channel_columns)
    for key in ("group_id", "sample_id"):
        if key not in data.columns:
            raise KeyError(f"Raw export is missing key column {key!r}")
        data[key] = data[key].astype(str).str.strip()

    group_meta = _metadata(groups, GROUP_META_COLUMNS, "group_id", "groups")
    group_meta["cell_type"] = group_meta["cell_type"].map(lambda v: _normalise_label(v, CellType.parse))
    sample_meta = _metadata(samples, SAMPLE_META_COLUMNS, "sample_id", "samples")
    sample_meta["sensor_type"] = sample_meta["sensor_type"].map(lambda v: _normalise_label(v, SensorType.parse))

    data = data.drop(columns=[c for c in ("cell_type", "sample_name", "formulation", "sensor_type") if c in data.columns])
    out = data.merge(group_meta, on="group_id", how="left", validate="many_to_one")
    out = out.merge(sample_meta, on="sample_id", how="left", validate="many_to_one")
    if "viability" not in out.columns:
        out["viability"] = float("nan")
    return assign_replicates(out)
