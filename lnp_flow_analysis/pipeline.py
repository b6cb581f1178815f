from __future__ import annotations

"""
End-to-end analysis:
- Validate the enriched replicate table (closed WT/LSA x SNAP/Cy5 contract)
- Baseline significance -> background correction (untreated dropped)
- Association normalisation -> SNAP-vs-WT differencing
- Ratios and percent escape efficiency (SNAP rows of LSA cells)

`run_pipeline` is the pure core: table + config in, new tables out.
`run_analysis` wraps it with file reading, export and plots.
"""

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Dict, Optional

import pandas as pd

from .config import AnalysisConfig, CONFIG
from .correction import subtract_background
from .enrichment import assign_replicates, enrich_records, read_table
from .escape import snap_vs_wt_significance, subtract_wt_background
from .export import write_outputs
from .labels import GROUP_KEYS, validate_records
from .metrics import add_ratios, percent_escape_efficiency
from .normalization import normalize_to_association
from .significance import baseline_significance


@dataclass(frozen=True)
class PipelineResult:
    metrics: pd.DataFrame
    baseline_flags: pd.DataFrame
    snap_flags: pd.DataFrame
    table: pd.DataFrame
    correction_factor: float


def _prepare(records: pd.DataFrame) -> pd.DataFrame:
    out = records.copy()
    if "replicate" not in out.columns:
        out = assign_replicates(out)
    if "viability" not in out.columns:
        out["viability"] = float("nan")
    for col in ("AF488_raw", "Cy5_raw", "mScarlet_raw", "viability"):
        out[col] = pd.to_numeric(out[col], errors="coerce").astype(float)
    return out


def run_pipeline(records: pd.DataFrame, cfg: AnalysisConfig | None = None) -> PipelineResult:
    cfg = cfg or CONFIG
    correction_factor = cfg.correction_factor
    validate_records(records, cfg.untreated_id)
    table = _prepare(records)
    if cfg.verbose:
        n_groups = table.groupby(GROUP_KEYS).ngroups
        print(f"[pipeline] {len(table)} replicate(s) in {n_groups} group(s); correction factor {correction_factor:g}")

    baseline_flags = baseline_significance(table, cfg)
    table = subtract_background(table, baseline_flags, cfg)
    table = normalize_to_association(table)
    snap_flags = snap_vs_wt_significance(table, cfg)
    table = subtract_wt_background(table, snap_flags)
    table = add_ratios(table)
    metrics = percent_escape_efficiency(table, correction_factor, verbose=cfg.verbose)

    if cfg.verbose:
        n_sig = int(snap_flags["significant_SNAP"].sum())
        print(f"[pipeline] SNAP vs WT significant in {n_sig}/{len(snap_flags)} sample(s)")
        print(f"[pipeline] {len(metrics)} derived metric row(s)")
    return PipelineResult(
        metrics=metrics,
        baseline_flags=baseline_flags,
        snap_flags=snap_flags,
        table=table,
        correction_factor=correction_factor,
    )


def run_analysis(
    raw_path: Path,
    groups_path: Path,
    samples_path: Path,
    cfg: AnalysisConfig | None = None,
    plots: bool = True,
    out_dir: Optional[Path] = None,
) -> Dict[str, Path]:
    """Read exports and metadata, run the pipeline, write tables (and plots).

    Outputs land in `<output_root>/run_<timestamp>/` unless `out_dir` is given.
    """
    cfg = cfg or CONFIG
    records = enrich_records(
        read_table(Path(raw_path)),
        read_table(Path(groups_path)),
        read_table(Path(samples_path)),
        cfg.channel_columns,
    )
    result = run_pipeline(records, cfg)

    if out_dir is None:
        ts = datetime.now().strftime("%Y%m%d_%H%M%S")
        out_dir = cfg.output_root / f"run_{ts}"
    written = write_outputs(result, out_dir, verbose=cfg.verbose)
    if plots:
        from .plotting import plot_all_metrics

        written.update(plot_all_metrics(result.metrics, out_dir / "plots", verbose=cfg.verbose))
    return written
