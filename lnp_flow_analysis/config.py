from __future__ import annotations

"""
Central configuration for the LNP flow-cytometry analysis.

One frozen `AnalysisConfig` is built per run (defaults, a JSON file, CLI
flags) and handed explicitly to the pipeline; stages read only the fields
they need. Probe switch-on correction factors are keyed by probe batch.
"""

from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Dict, Mapping, Optional, Tuple
import json

from .labels import SensorType


DEFAULT_CHANNEL_COLUMNS: Dict[str, str] = {
    "AF488": "AF488_raw",
    "Cy5": "Cy5_raw",
    "mScarlet": "mScarlet_raw",
    "Viability": "viability",
}


@dataclass(frozen=True)
class AnalysisConfig:
    # Sample id of the untreated wells used as background reference
    untreated_id: str = "untreated"
    # Probe reagent batch and its empirically measured switch-on efficiency
    probe_batch: Optional[str] = None
    correction_factors: Mapping[str, float] = field(default_factory=dict)
    # Welch t-test settings shared by both significance gates
    alpha: float = 0.05
    min_replicates: int = 2
    # Sensor types whose Cy5 channel is tested against the untreated baseline
    cy5_baseline_sensors: Tuple[SensorType, ...] = (SensorType.CY5,)
    # Raw export column -> canonical column
    channel_columns: Mapping[str, str] = field(default_factory=lambda: dict(DEFAULT_CHANNEL_COLUMNS))
    output_root: Path = Path("lnp_flow_outputs")
    verbose: bool = True

    @property
    def correction_factor(self) -> float:
        factors = dict(self.correction_factors)
        batch = self.probe_batch
        if batch is None:
            if len(factors) != 1:
                raise ValueError(
                    f"probe_batch not set and {len(factors)} correction factor(s) configured; "
                    "choose a batch explicitly"
                )
            batch = next(iter(factors))
        if batch not in factors:
            raise ValueError(f"No correction factor for probe batch {batch!r}; known: {sorted(factors)}")
        value = float(factors[batch])
        if not value > 0:
            raise ValueError(f"Correction factor for probe batch {batch!r} must be positive, got {value}")
        return value


def _coerce(key: str, value: object) -> object:
    if key == "output_root":
        return Path(str(value))
    if key == "cy5_baseline_sensors":
        if isinstance(value, str):
            value = [value]
        sensors = []
        for v in value:  # type: ignore[union-attr]
            s = SensorType.parse(v)
            if s is None:
                raise ValueError(f"Unrecognised sensor type in cy5_baseline_sensors: {v!r}")
            sensors.append(s)
        return tuple(sensors)
    if key in ("correction_factors", "channel_columns"):
        return dict(value)  # type: ignore[arg-type]
    return value


def load_config(path: Optional[Path] = None, **overrides: object) -> AnalysisConfig:
    """Build a config from an optional JSON file plus keyword overrides.

    Overrides whose value is None are ignored so CLI defaults do not mask
    file values.
    """
    known = {f.name for f in fields(AnalysisConfig)}
    data: Dict[str, object] = {}
    if path is not None:
        raw = json.loads(Path(path).read_text())
        if not isinstance(raw, dict):
            raise ValueError(f"Config file must hold a JSON object: {path}")
        data.update(raw)
    data.update({k: v for k, v in overrides.items() if v is not None})
    unknown = sorted(set(data) - known)
    if unknown:
        raise ValueError(f"Unknown config key(s): {unknown}")
    return replace(AnalysisConfig(), **{k: _coerce(k, v) for k, v in data.items()})


CONFIG = AnalysisConfig()
