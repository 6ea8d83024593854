"""Integration tests for the CLI commands using CliRunner.

Tests:
- --help and info
- build-matrix output and validation failures
- run end to end (pydeseq2 replaced by fake_deseq)
- annotate on an existing result table
- malformed annotation aborts without writing outputs
"""

import polars as pl
import pytest
from click.testing import CliRunner

from conftest import write_counts
from dge_pipeline.cli.main import cli


@pytest.fixture
def runner():
    return CliRunner()


def test_help(runner):
    result = runner.invoke(cli, ["--help"])

    assert result.exit_code == 0
    for command in ("info", "build-matrix", "annotate", "run"):
        assert command in result.output


def test_info(runner, config_file):
    result = runner.invoke(cli, ["--config", str(config_file), "info"])

    assert result.exit_code == 0
    assert "Config Hash" in result.output
    assert "sample2" in result.output
    assert "~condition" in result.output


def test_build_matrix(runner, config_file, tmp_path):
    result = runner.invoke(cli, ["--config", str(config_file), "build-matrix"])

    assert result.exit_code == 0, result.output
    matrix_path = tmp_path / "results" / "count_matrix.tsv"
    matrix = pl.read_csv(matrix_path, separator="\t")
    assert matrix.columns == ["gene_id", "sample1", "sample2", "sample3"]
    # gene:2 is all-zero, __no_feature is an htseq counter
    assert matrix.get_column("gene_id").to_list() == ["gene:1", "gene:3", "gene:80"]
    assert (tmp_path / "results" / "count_matrix.provenance.json").exists()


def test_build_matrix_misaligned_samples(runner, config_file, sample_files, tmp_path):
    write_counts(sample_files["sample3"], [
        ("gene:1", 9), ("gene:3", 4), ("gene:2", 0), ("gene:80", 11), ("__no_feature", 1),
    ])

    result = runner.invoke(cli, ["--config", str(config_file), "build-matrix"])

    assert result.exit_code == 1
    assert "sample3" in result.output
    assert not (tmp_path / "results" / "count_matrix.tsv").exists()


def test_build_matrix_by_key_accepts_reordered_samples(runner, config_file, sample_files, tmp_path):
    write_counts(sample_files["sample3"], [
        ("gene:80", 11), ("gene:1", 9), ("gene:3", 4), ("gene:2", 0),
    ])
    config_file.write_text(config_file.read_text() + "\ncounts:\n  alignment: by_key\n")

    result = runner.invoke(cli, ["--config", str(config_file), "build-matrix"])

    assert result.exit_code == 0, result.output
    matrix = pl.read_csv(tmp_path / "results" / "count_matrix.tsv", separator="\t")
    assert matrix.get_column("sample3").to_list() == [9, 4, 11]


def test_run_end_to_end(runner, config_file, tmp_path, fake_deseq):
    result = runner.invoke(cli, ["--config", str(config_file), "run", "--skip-plots"])

    assert result.exit_code == 0, result.output
    out = tmp_path / "results"
    assert (out / "count_matrix.tsv").exists()
    assert (out / "de_results.csv").exists()
    assert (out / "run.provenance.json").exists()

    de_results = pl.read_csv(out / "de_results.csv")
    assert de_results.get_column("gene_id").to_list() == ["gene:1", "gene:3", "gene:80"]
    assert {"mean_vst", "lfc_sample1_vs_sample2", "log2FoldChange", "padj"} <= set(de_results.columns)

    annotated = pl.read_csv(out / "annotated_results.csv")
    assert annotated.columns[0] == "join_key"
    assert annotated.get_column("join_key").to_list() == ["gene:1", "gene:3", "gene:80", "gene:999"]

    rows = {row["join_key"]: row for row in annotated.to_dicts()}
    assert rows["gene:80"]["Symbol"] == "abc_80"
    assert rows["gene:80"]["Description"] == "kinase"
    assert rows["gene:3"]["Description"] is None
    assert rows["gene:999"]["gene_id"] is None
    assert rows["gene:999"]["mean_vst"] is None


def test_run_output_is_reproducible(runner, config_file, tmp_path, fake_deseq):
    first = runner.invoke(cli, ["--config", str(config_file), "run", "--skip-plots"])
    content = (tmp_path / "results" / "annotated_results.csv").read_bytes()
    second = runner.invoke(cli, ["--config", str(config_file), "run", "--skip-plots"])

    assert first.exit_code == 0 and second.exit_code == 0
    assert (tmp_path / "results" / "annotated_results.csv").read_bytes() == content


def test_run_with_plots(runner, config_file, tmp_path, fake_deseq):
    result = runner.invoke(cli, ["--config", str(config_file), "run"])

    assert result.exit_code == 0, result.output
    plots_dir = tmp_path / "results" / "plots"
    for name in ("heatmap", "sample_distances", "ma_plot", "pca"):
        assert (plots_dir / f"{name}.png").exists()


def test_run_malformed_annotation_writes_nothing(runner, config_file, annotation_file, tmp_path, fake_deseq):
    annotation_file.write_text("Symbol\tDescription\nabc_80\tkinase\nbad_symbol_1\tbroken\n")

    result = runner.invoke(cli, ["--config", str(config_file), "run", "--skip-plots"])

    assert result.exit_code == 1
    assert "bad_symbol_1" in result.output
    out = tmp_path / "results"
    assert not (out / "annotated_results.csv").exists()
    assert not (out / "count_matrix.tsv").exists()


def test_annotate_existing_results(runner, config_file, tmp_path):
    results_path = tmp_path / "my_results.csv"
    pl.DataFrame({
        "gene_id": ["gene:80", "gene:5"],
        "log2FoldChange": [1.2, -0.4],
    }).write_csv(results_path)
    output_path = tmp_path / "annotated.csv"

    result = runner.invoke(cli, [
        "--config", str(config_file),
        "annotate",
        "--results", str(results_path),
        "--output", str(output_path),
    ])

    assert result.exit_code == 0, result.output
    annotated = pl.read_csv(output_path)
    assert annotated.get_column("join_key").to_list() == ["gene:1", "gene:5", "gene:80", "gene:999"]
    assert (tmp_path / "annotated.provenance.yaml").exists()
