import json

import pandas as pd

from scripts.run_lnp_analysis import main


def _write_inputs(experiment, tmp_path):
    raw = experiment.rename(columns={"AF488_raw": "AF488", "Cy5_raw": "Cy5", "mScarlet_raw": "mScarlet"})
    raw[["group_id", "sample_id", "AF488", "Cy5", "mScarlet"]].to_csv(tmp_path / "raw.csv", index=False)
    experiment[["group_id", "cell_type"]].drop_duplicates().to_csv(tmp_path / "groups.csv", index=False)
    (
        experiment[["sample_id", "sample_name", "formulation", "sensor_type"]]
        .drop_duplicates("sample_id")
        .to_csv(tmp_path / "samples.csv", index=False)
    )
    return [
        "--raw", str(tmp_path / "raw.csv"),
        "--groups", str(tmp_path / "groups.csv"),
        "--samples", str(tmp_path / "samples.csv"),
    ]


def test_cli_end_to_end(experiment, tmp_path):
    args = _write_inputs(experiment, tmp_path)
    cfg = tmp_path / "analysis.json"
    cfg.write_text(json.dumps({"correction_factors": {"lot-1": 0.5}, "probe_batch": "lot-1"}))
    code = main(args + ["--config", str(cfg), "--output-root", str(tmp_path / "out"), "--no-plots", "--quiet"])
    assert code == 0
    runs = list((tmp_path / "out").glob("run_*/derived_metrics.csv"))
    assert len(runs) == 1
    metrics = pd.read_csv(runs[0])
    assert len(metrics) == 6


def test_cli_correction_factor_flag(experiment, tmp_path):
    args = _write_inputs(experiment, tmp_path)
    code = main(args + ["--correction-factor", "0.8", "--output-root", str(tmp_path / "out"), "--no-plots", "--quiet"])
    assert code == 0


def test_cli_reports_missing_factor(experiment, tmp_path, capsys):
    args = _write_inputs(experiment, tmp_path)
    code = main(args + ["--output-root", str(tmp_path / "out"), "--no-plots", "--quiet"])
    assert code == 2
    assert "[run] error" in capsys.readouterr().out


def test_cli_keeps_verbose_from_config_file(tmp_path):
    from scripts.run_lnp_analysis import _parse_args, build_config

    cfg = tmp_path / "analysis.json"
    cfg.write_text(json.dumps({"verbose": False, "correction_factors": {"lot-1": 0.5}}))
    base = ["--raw", "r.csv", "--groups", "g.csv", "--samples", "s.csv", "--config", str(cfg)]
    assert build_config(_parse_args(base)).verbose is False
    assert build_config(_parse_args(base[:6])).verbose is True
    assert build_config(_parse_args(base[:6] + ["--quiet"])).verbose is False
