"""Shared fixtures: synthetic count files, config YAML and a stand-in for pydeseq2.

The stand-in replaces DeseqDataSet / DeseqStats / DefaultInference inside
dge_pipeline.de.deseq so tests exercise the adapter without fitting a model.
"""

from unittest.mock import MagicMock, patch

import numpy as np
import pandas as pd
import pytest

from dge_pipeline.de.models import DESEQ_STAT_COLUMNS


def write_counts(path, rows, separator="\t"):
    """Write a headerless (gene_id, count) file."""
    path.write_text("".join(f"{gene}{separator}{count}\n" for gene, count in rows))
    return path


@pytest.fixture
def sample_files(tmp_path):
    """Three htseq-count style files sharing the same gene order.

    gene:2 is zero everywhere; __no_feature is an htseq summary row.
    """
    data_dir = tmp_path / "data"
    data_dir.mkdir()
    rows = {
        "sample1": [("gene:1", 10), ("gene:2", 0), ("gene:3", 5), ("gene:80", 7), ("__no_feature", 3)],
        "sample2": [("gene:1", 12), ("gene:2", 0), ("gene:3", 0), ("gene:80", 9), ("__no_feature", 2)],
        "sample3": [("gene:1", 9), ("gene:2", 0), ("gene:3", 4), ("gene:80", 11), ("__no_feature", 1)],
    }
    return {
        sample_id: write_counts(data_dir / f"{sample_id}.counts", sample_rows)
        for sample_id, sample_rows in rows.items()
    }


@pytest.fixture
def annotation_file(tmp_path):
    """Annotation table: two symbols match count genes, one does not."""
    path = tmp_path / "data" / "annotation.tsv"
    path.parent.mkdir(exist_ok=True)
    path.write_text(
        "Symbol\tDescription\tChromosome\n"
        "abc_80\tkinase\tchr2\n"
        "abc_1\ttransporter\tchr1\n"
        "xyz_999\tunplaced\tchrUn\n"
    )
    return path


@pytest.fixture
def config_file(tmp_path, sample_files, annotation_file):
    """Config YAML pointing at the synthetic files."""
    config_path = tmp_path / "config.yaml"
    config_path.write_text(f"""
output_dir: {tmp_path}/results

samples:
  - sample_id: sample1
    counts_path: {sample_files['sample1']}
    condition: control
  - sample_id: sample2
    counts_path: {sample_files['sample2']}
    condition: treated
  - sample_id: sample3
    counts_path: {sample_files['sample3']}
    condition: treated

annotation:
  path: {annotation_file}

deseq:
  design_factor: condition
  contrast: [condition, treated, control]
  alpha: 0.05

plots:
  enabled: true
  top_n_genes: 10
  dpi: 50
""")
    return config_path


class FakeDeseq:
    """Records calls made to the pydeseq2 stand-ins."""

    def __init__(self):
        self.datasets = []
        self.stats = []
        self.shrink_error = None

    def dataset(self, counts, metadata, design, inference, quiet=False):
        dds = MagicMock(name="DeseqDataSet")
        dds.counts = counts
        dds.metadata = metadata
        dds.design = design
        dds.var_names = pd.Index(counts.columns)
        dds.obs_names = pd.Index(counts.index)
        dds.layers = {"vst_counts": np.log2(counts.to_numpy(dtype=float) + 1.0)}
        dds.obs = {"size_factors": np.ones(len(counts.index))}
        self.datasets.append(dds)
        return dds

    def deseq_stats(self, dds, contrast, alpha, inference, quiet=False):
        ds = MagicMock(name="DeseqStats")
        genes = list(dds.var_names)
        n = len(genes)
        ds.results_df = pd.DataFrame(
            {
                "baseMean": np.linspace(10.0, 100.0, n),
                "log2FoldChange": np.linspace(-2.0, 2.0, n),
                "lfcSE": np.full(n, 0.5),
                "stat": np.linspace(-4.0, 4.0, n),
                "pvalue": np.linspace(0.001, 0.5, n),
                "padj": np.linspace(0.01, 0.9, n),
            },
            index=genes,
        )[DESEQ_STAT_COLUMNS]
        if self.shrink_error is not None:
            ds.lfc_shrink.side_effect = self.shrink_error
        ds.contrast = contrast
        self.stats.append(ds)
        return ds


@pytest.fixture
def fake_deseq():
    """Patch pydeseq2 classes used by the adapter."""
    fake = FakeDeseq()
    with patch("dge_pipeline.de.deseq.DeseqDataSet", side_effect=fake.dataset), \
            patch("dge_pipeline.de.deseq.DeseqStats", side_effect=fake.deseq_stats), \
            patch("dge_pipeline.de.deseq.DefaultInference"):
        yield fake
