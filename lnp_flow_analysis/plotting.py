from __future__ import annotations

"""
Per-metric replicate plots: one strip of replicate points per sample with a
mean bar, samples grouped by formulation. SVG keeps text editable; a PDF copy
is written alongside.
"""

from pathlib import Path
from typing import Dict, List

import numpy as np
import pandas as pd
import matplotlib
matplotlib.use("Agg")  # ensure headless
import matplotlib.pyplot as plt  # noqa: E402

from .metrics import METRIC_COLUMNS, SIBLING_KEYS

plt.rcParams.update({
    'svg.fonttype': 'none',
    'pdf.fonttype': 42,
    'ps.fonttype': 42,
    'savefig.dpi': 300,
})

AXIS_LABELS = {
    "AF488": "Association (AF488, bg-corrected MFI)",
    "adj_Cy5_abs": "Escape (normalised Cy5, MFI)",
    "adj_Cy5_rel": "Escape / association",
    "SNAP_perc_of_Cy5": "Escape efficiency (% of Cy5)",
    "mScarlet": "Expression (mScarlet, bg-corrected MFI)",
    "express_per_assoc": "Expression / association",
    "express_per_escape": "Expression / escape",
}


def formulation_colors(formulations: List[str]) -> Dict[str, str]:
    uniq = sorted({str(f) for f in formulations})
    cmap = plt.get_cmap('tab10')
    to_hex = lambda c: '#%02x%02x%02x' % tuple(int(255 * x) for x in c[:3])
    return {f: to_hex(cmap(i % 10)) for i, f in enumerate(uniq)}


def plot_metric(metrics: pd.DataFrame, metric: str, out_base: Path) -> List[Path]:
    """Strip + mean bar plot of one metric; returns the written files."""
    out_base = Path(out_base)
    out_base.parent.mkdir(parents=True, exist_ok=True)
    groups = list(metrics.groupby(SIBLING_KEYS, dropna=False, sort=True))
    colors = formulation_colors([k[0] for k, _ in groups])

    fig, ax = plt.subplots(figsize=(max(4.0, 0.6 * len(groups) + 2.0), 4.0))
    rng = np.random.default_rng(0)  # fixed jitter
    labels = []
    for i, ((formulation, sample_name), g) in enumerate(groups):
        vals = g[metric].dropna().to_numpy(dtype=float)
        color = colors[str(formulation)]
        labels.append(f"{sample_name}\n{formulation}")
        if vals.size:
            ax.bar(i, vals.mean(), width=0.6, color=color, alpha=0.35, edgecolor=color)
            ax.scatter(i + rng.uniform(-0.12, 0.12, vals.size), vals, s=14, color=color, zorder=3)
    ax.set_xticks(range(len(groups)))
    ax.set_xticklabels(labels, rotation=45, ha='right', fontsize=8)
    ax.set_ylabel(AXIS_LABELS.get(metric, metric))
    ax.axhline(0.0, color='0.5', lw=0.6)
    ax.spines['top'].set_visible(False)
    ax.spines['right'].set_visible(False)
    fig.tight_layout()

    paths = [out_base.with_suffix('.svg'), out_base.with_suffix('.pdf')]
    for p in paths:
        fig.savefig(p)
    plt.close(fig)
    return paths


def plot_all_metrics(metrics: pd.DataFrame, out_dir: Path, verbose: bool = True) -> Dict[str, Path]:
    out_dir = Path(out_dir)
    written: Dict[str, Path] = {}
    for metric in METRIC_COLUMNS:
        svg, _pdf = plot_metric(metrics, metric, out_dir / f"{metric}")
        written[f"plot_{metric}"] = svg
    if verbose:
        print(f"[plot] wrote {len(written)} figure(s) -> {out_dir}")
    return written
