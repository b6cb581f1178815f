import pandas as pd
import pytest

from lnp_flow_analysis.enrichment import enrich_records, read_table, rename_channels
from lnp_flow_analysis.labels import validate_records

CHANNELS = {"FITC-A Median": "AF488_raw", "APC-A Median": "Cy5_raw", "PE-A Median": "mScarlet_raw"}


def _raw():
    return pd.DataFrame({
        "well": ["A1", "A2", "A3", "B1", "B2"],
        "group_id": [1, 1, 1, 2, 2],
        "sample_id": ["untreated", "s1", "s1", "untreated", "s1"],
        "FITC-A Median": [10, 50, 52, 11, "n.a."],
        "APC-A Median": [5, 6, 7, 5, 8],
        "PE-A Median": [1, 2, 3, 1, 2],
    })


GROUPS = pd.DataFrame({"group_id": ["1", "2"], "cell_type": ["wild type", "LSA"]})
SAMPLES = pd.DataFrame({
    "sample_id": ["untreated", "s1"],
    "sample_name": ["untreated", "LNP-A"],
    "formulation": [None, "F1"],
    "sensor_type": [None, "snap-tag"],
})


def test_rename_channels_coerces_numbers():
    out = rename_channels(_raw(), CHANNELS)
    assert {"AF488_raw", "Cy5_raw", "mScarlet_raw"} <= set(out.columns)
    assert out["AF488_raw"].dtype == float
    assert pd.isna(out["AF488_raw"].iloc[4])


def test_rename_channels_missing_column():
    with pytest.raises(KeyError):
        rename_channels(_raw().drop(columns=["PE-A Median"]), CHANNELS)


def test_enrich_joins_metadata_and_numbers_replicates():
    out = enrich_records(_raw(), GROUPS, SAMPLES, CHANNELS)
    assert out["cell_type"].tolist() == ["WT", "WT", "WT", "LSA", "LSA"]
    s1 = out[out["sample_id"] == "s1"]
    assert set(s1["sensor_type"]) == {"SNAP"}
    assert set(s1["sample_name"]) == {"LNP-A"}
    assert s1["replicate"].tolist() == [1, 2, 1]
    assert out["viability"].isna().all()
    validate_records(out, "untreated")


def test_unknown_label_kept_for_validation():
    groups = pd.DataFrame({"group_id": ["1", "2"], "cell_type": ["WT", "HeLa"]})
    out = enrich_records(_raw(), groups, SAMPLES, CHANNELS)
    assert "HeLa" in set(out["cell_type"])
    with pytest.raises(ValueError, match="cell_type"):
        validate_records(out, "untreated")


def test_duplicate_metadata_key_rejected():
    groups = pd.concat([GROUPS, GROUPS.iloc[[0]]])
    with pytest.raises(ValueError, match="Duplicate group_id"):
        enrich_records(_raw(), groups, SAMPLES, CHANNELS)


def test_read_table_csv_and_tsv(tmp_path):
    df = pd.DataFrame({"group_id": ["1"], "cell_type": ["WT"]})
    df.to_csv(tmp_path / "g.csv", index=False)
    df.to_csv(tmp_path / "g.tsv", index=False, sep="\t")
    assert read_table(tmp_path / "g.csv").equals(read_table(tmp_path / "g.tsv"))
    with pytest.raises(FileNotFoundError):
        read_table(tmp_path / "missing.csv")
