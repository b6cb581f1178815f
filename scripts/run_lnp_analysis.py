#!/usr/bin/env python3
from __future__ import annotations

"""
CLI: LNP association / escape / expression analysis from flow medians.

Reads a per-well median export plus the group and sample metadata sheets,
runs the significance-gated correction and normalisation pipeline, and writes
tidy CSVs, Prism column tables and per-metric plots.

Usage
-----
  python -m scripts.run_lnp_analysis --raw medians.csv --groups groups.csv --samples samples.csv
                                     [--config analysis.json]
                                     [--untreated-id ID] [--probe-batch BATCH]
                                     [--correction-factor F] [--alpha P]
                                     [--output-root PATH] [--no-plots] [--quiet]

Notes
-----
- `--correction-factor` registers F for `--probe-batch` (or the batch named
  "cli" when no batch is given), overriding the config file entry.
- Configuration or input-structure problems exit with status 2.
"""

import argparse
import sys
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Iterable, Optional


def _ensure_repo_on_path() -> Path:
    here = Path.cwd()
    for cand in [here, *here.parents]:
        if (cand / 'lnp_flow_analysis').exists():
            if str(cand) not in sys.path:
                sys.path.insert(0, str(cand))
            return cand
    return here


REPO_ROOT = _ensure_repo_on_path()

from lnp_flow_analysis.config import AnalysisConfig, load_config  # noqa: E402
from lnp_flow_analysis.pipeline import run_analysis  # noqa: E402


@dataclass(frozen=True)
class Args:
    raw: Path
    groups: Path
    samples: Path
    config: Optional[Path]
    untreated_id: Optional[str]
    probe_batch: Optional[str]
    correction_factor: Optional[float]
    alpha: Optional[float]
    output_root: Optional[Path]
    plots: bool
    quiet: bool


def _parse_args(argv: Optional[Iterable[str]] = None) -> Args:
    p = argparse.ArgumentParser(description='LNP flow-cytometry escape/expression analysis')
    p.add_argument('--raw', type=Path, required=True, help='Per-well median export (CSV/TSV)')
    p.add_argument('--groups', type=Path, required=True, help='Group sheet: group_id, cell_type')
    p.add_argument('--samples', type=Path, required=True, help='Sample sheet: sample_id, sample_name, formulation, sensor_type')
    p.add_argument('--config', type=Path, default=None, help='JSON file with AnalysisConfig fields')
    p.add_argument('--untreated-id', type=str, default=None, help='sample_id of the untreated baseline wells')
    p.add_argument('--probe-batch', type=str, default=None, help='Probe reagent batch used to pick the correction factor')
    p.add_argument('--correction-factor', type=float, default=None, help='Switch-on correction factor for the probe batch')
    p.add_argument('--alpha', type=float, default=None, help='Significance level for both Welch gates (default 0.05)')
    p.add_argument('--output-root', type=Path, default=None, help='Where run_<timestamp>/ folders are written')
    p.add_argument('--no-plots', action='store_true', help='Skip figure generation')
    p.add_argument('--quiet', action='store_true', help='Suppress progress messages')
    a = p.parse_args(argv)
    return Args(
        raw=a.raw,
        groups=a.groups,
        samples=a.samples,
        config=a.config,
        untreated_id=a.untreated_id,
        probe_batch=a.probe_batch,
        correction_factor=a.correction_factor,
        alpha=a.alpha,
        output_root=a.output_root,
        plots=not a.no_plots,
        quiet=a.quiet,
    )


def build_config(args: Args) -> AnalysisConfig:
    cfg = load_config(
        args.config,
        untreated_id=args.untreated_id,
        probe_batch=args.probe_batch,
        alpha=args.alpha,
        output_root=args.output_root,
        verbose=False if args.quiet else None,
    )
    if args.correction_factor is not None:
        batch = cfg.probe_batch or 'cli'
        factors = dict(cfg.correction_factors)
        factors[batch] = args.correction_factor
        cfg = replace(cfg, probe_batch=batch, correction_factors=factors)
    return cfg


def main(argv: Optional[Iterable[str]] = None) -> int:
    args = _parse_args(argv)
    try:
        cfg = build_config(args)
        written = run_analysis(args.raw, args.groups, args.samples, cfg, plots=args.plots)
    except (ValueError, KeyError, FileNotFoundError) as e:
        print(f"[run] error: {e}")
        return 2
    if cfg.verbose:
        for name, path in written.items():
            print(f"[run] {name}: {path}")
    return 0


if __name__ == '__main__':
    sys.exit(main())
