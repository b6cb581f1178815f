from __future__ import annotations

"""
Tabular outputs for a pipeline run.

Layout under the run directory
- derived_metrics.csv           tidy, one row per SNAP/LSA replicate
- derived_metrics_summary.csv   mean/sd/n per (formulation, sample_name)
- baseline_significance.csv     untreated-vs-group Welch tests
- snap_significance.csv         WT-vs-LSA Welch tests per SNAP sample
- replicate_table.csv           full intermediate table (WT rows included)
- prism/wide_<metric>.csv       one column per sample, ragged, NA padded
"""

from pathlib import Path
from typing import Dict, List

import numpy as np
import pandas as pd

from .metrics import METRIC_COLUMNS, SIBLING_KEYS


def summarize_metrics(metrics: pd.DataFrame) -> pd.DataFrame:
    grouped = metrics.groupby(SIBLING_KEYS, dropna=False, sort=True)[METRIC_COLUMNS]
    summary = grouped.agg(["mean", "std", "count"])
    summary.columns = [f"{metric}_{stat}" for metric, stat in summary.columns]
    return summary.reset_index()


def prism_wide(metrics: pd.DataFrame, metric: str) -> pd.DataFrame:
    """Column table for GraphPad Prism: one column per formulation/sample."""
    cols: Dict[str, List[float]] = {}
    for (formulation, sample_name), g in metrics.groupby(SIBLING_KEYS, dropna=False, sort=True):
        cols[f"{formulation}__{sample_name}"] = g[metric].dropna().astype(float).tolist()
    if not cols:
        return pd.DataFrame()
    maxlen = max(len(v) for v in cols.values())
    wide = {k: v + [np.nan] * (maxlen - len(v)) for k, v in cols.items()}
    return pd.DataFrame(wide)


def write_outputs(result, out_dir: Path, verbose: bool = True) -> Dict[str, Path]:
    """Write every table of a PipelineResult; returns name -> path."""
    out_dir = Path(out_dir)
    prism_dir = out_dir / "prism"
    prism_dir.mkdir(parents=True, exist_ok=True)

    written: Dict[str, Path] = {}
    tables = {
        "derived_metrics": result.metrics,
        "derived_metrics_summary": summarize_metrics(result.metrics),
        "baseline_significance": result.baseline_flags,
        "snap_significance": result.snap_flags,
        "replicate_table": result.table,
    }
    for name, df in tables.items():
        path = out_dir / f"{name}.csv"
        df.to_csv(path, index=False)
        written[name] = path
    for metric in METRIC_COLUMNS:
        path = prism_dir / f"wide_{metric}.csv"
        prism_wide(result.metrics, metric).to_csv(path, index=False)
        written[f"prism_{metric}"] = path
    if verbose:
        print(f"[export] wrote {len(written)} table(s) -> {out_dir}")
    return written
