from lnp_flow_analysis.pipeline import run_pipeline
from lnp_flow_analysis.plotting import formulation_colors, plot_all_metrics, plot_metric


def test_plot_metric_skips_missing_values(experiment, cfg, tmp_path):
    m = run_pipeline(experiment, cfg).metrics
    paths = plot_metric(m, "SNAP_perc_of_Cy5", tmp_path / "perc")
    assert [p.suffix for p in paths] == [".svg", ".pdf"]
    assert all(p.stat().st_size > 0 for p in paths)


def test_plot_all_metrics(experiment, cfg, tmp_path):
    m = run_pipeline(experiment, cfg).metrics
    written = plot_all_metrics(m, tmp_path / "plots", verbose=False)
    assert len(written) == 7
    assert all(p.exists() for p in written.values())


def test_formulation_colors_stable():
    assert formulation_colors(["F2", "F1", "F2"]) == formulation_colors(["F1", "F2"])
