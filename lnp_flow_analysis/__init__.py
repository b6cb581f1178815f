"""
LNP flow-cytometry analysis utilities (table-based).

Turns per-well median fluorescence (AF488 association, Cy5/SNAP escape,
mScarlet expression) into background-corrected, association-normalised
escape and expression metrics. Stages are pure functions over pandas tables;
`pipeline.run_pipeline` chains them.

Dependencies:
- numpy, pandas, scipy (Welch t-tests)
- matplotlib (plots only)
"""

__all__ = [
    "config",
    "labels",
    "enrichment",
    "significance",
    "correction",
    "normalization",
    "escape",
    "metrics",
    "pipeline",
    "export",
    "plotting",
]
