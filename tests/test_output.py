"""Unit tests for table writers."""

import polars as pl
import pytest
import yaml

from dge_pipeline.output import (
    write_annotated_results,
    write_count_matrix,
    write_results_table,
)


@pytest.fixture
def annotated_df():
    return pl.DataFrame({
        "join_key": ["gene:1", "gene:3", "gene:999"],
        "gene_id": ["gene:1", "gene:3", None],
        "mean_vst": [5.5, 3.0, None],
        "Symbol": ["abc_1", None, "xyz_999"],
        "annotation_key": ["gene:1", None, "gene:999"],
    })


def test_write_count_matrix_tsv(tmp_path):
    matrix = pl.DataFrame({"gene_id": ["g1", "g2"], "a": [1, 2], "b": [3, 4]})

    path = write_count_matrix(matrix, tmp_path / "nested" / "count_matrix.tsv")

    lines = path.read_text().splitlines()
    assert lines[0] == "gene_id\ta\tb"
    assert lines[1] == "g1\t1\t3"


def test_write_results_table_has_header_and_no_index(tmp_path, annotated_df):
    path = write_results_table(annotated_df, tmp_path / "results.csv")

    lines = path.read_text().splitlines()
    assert lines[0] == "join_key,gene_id,mean_vst,Symbol,annotation_key"
    assert len(lines) == annotated_df.height + 1
    # No leading index column
    assert lines[1].startswith("gene:1,")


def test_missing_values_written_as_empty_fields(tmp_path, annotated_df):
    path = write_results_table(annotated_df, tmp_path / "results.csv")

    lines = path.read_text().splitlines()
    assert lines[2] == "gene:3,gene:3,3.0,,"
    assert lines[3] == "gene:999,,,xyz_999,gene:999"

    reloaded = pl.read_csv(path)
    assert reloaded.get_column("Symbol").null_count() == 1


def test_write_annotated_results_with_sidecar(tmp_path, annotated_df):
    paths = write_annotated_results(
        annotated_df,
        tmp_path / "annotated_results.csv",
        statistics={"matched": 1, "results_only": 1, "annotation_only": 1},
    )

    assert paths["csv"].exists()
    assert paths["provenance"] == tmp_path / "annotated_results.provenance.yaml"

    with open(paths["provenance"]) as f:
        provenance = yaml.safe_load(f)

    assert provenance["output_files"] == ["annotated_results.csv"]
    assert provenance["statistics"]["row_count"] == 3
    assert provenance["statistics"]["annotation_only"] == 1
    assert provenance["column_names"] == annotated_df.columns
    assert "generated_at" in provenance


def test_rewrite_is_byte_identical(tmp_path, annotated_df):
    first = write_results_table(annotated_df, tmp_path / "a.csv").read_bytes()
    second = write_results_table(annotated_df, tmp_path / "b.csv").read_bytes()

    assert first == second
