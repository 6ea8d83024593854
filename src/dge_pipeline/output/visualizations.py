"""Diagnostic plots for the differential expression run."""

import logging
from pathlib import Path

import matplotlib
import numpy as np
import polars as pl

# Use Agg backend (non-interactive, safe for headless/CLI use)
matplotlib.use("Agg")

import matplotlib.pyplot as plt  # noqa: E402
import seaborn as sns  # noqa: E402
from sklearn.decomposition import PCA  # noqa: E402

from dge_pipeline.counts.models import GENE_ID_COLUMN  # noqa: E402
from dge_pipeline.de.models import (  # noqa: E402
    MEAN_VST_COLUMN,
    PAIRWISE_LFC_PREFIX,
    SampleMetadata,
)

logger = logging.getLogger(__name__)


def _sample_columns(vst: pl.DataFrame) -> list[str]:
    return [c for c in vst.columns if c != GENE_ID_COLUMN]


def _save(fig, output_path: Path, dpi: int) -> Path:
    output_path.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(output_path, dpi=dpi, bbox_inches="tight")
    # CRITICAL: Close figure to prevent memory leak
    plt.close(fig)
    return output_path


def plot_expression_heatmap(
    vst: pl.DataFrame,
    output_path: Path,
    top_n: int = 50,
    dpi: int = 300,
) -> Path:
    """
    Heatmap of the most variable genes across samples.

    Args:
        vst: gene_id + one VST column per sample
        output_path: Path where PNG will be saved
        top_n: Number of genes ranked by VST variance
        dpi: Figure resolution

    Returns:
        Path to the saved PNG file

    Notes:
        - Values are centred per gene so colour shows deviation from the
          gene's mean
    """
    samples = _sample_columns(vst)

    top = (
        vst.with_columns(
            pl.concat_list([pl.col(s) for s in samples]).list.var().alias("_variance")
        )
        .sort(["_variance", GENE_ID_COLUMN], descending=[True, False])
        .head(top_n)
    )

    values = top.select(samples).to_numpy()
    centred = values - values.mean(axis=1, keepdims=True)

    height = max(4, 0.2 * top.height + 2)
    fig, ax = plt.subplots(figsize=(max(6, len(samples) * 1.2), height))

    sns.heatmap(
        centred,
        cmap="RdBu_r",
        center=0,
        xticklabels=samples,
        yticklabels=top.get_column(GENE_ID_COLUMN).to_list(),
        cbar_kws={"label": "VST - gene mean"},
        ax=ax,
    )

    ax.set_xlabel("Sample")
    ax.set_ylabel("Gene")
    ax.set_title(f"Top {top.height} Most Variable Genes")

    _save(fig, output_path, dpi)
    logger.info(f"Saved expression heatmap to {output_path}")
    return output_path


def plot_sample_distances(vst: pl.DataFrame, output_path: Path, dpi: int = 300) -> Path:
    """Heatmap of Euclidean distances between samples on VST values."""
    samples = _sample_columns(vst)
    values = vst.select(samples).to_numpy().T

    diffs = values[:, None, :] - values[None, :, :]
    distances = np.sqrt((diffs ** 2).sum(axis=2))

    fig, ax = plt.subplots(figsize=(max(5, len(samples) * 1.1), max(4, len(samples))))
    sns.heatmap(
        distances,
        cmap="Blues_r",
        annot=True,
        fmt=".1f",
        xticklabels=samples,
        yticklabels=samples,
        ax=ax,
    )
    ax.set_title("Sample-to-Sample Distances")

    _save(fig, output_path, dpi)
    logger.info(f"Saved sample distance heatmap to {output_path}")
    return output_path


def plot_ma(
    results: pl.DataFrame,
    output_path: Path,
    alpha: float = 0.05,
    dpi: int = 300,
) -> Path:
    """
    MA plot: log fold change against mean expression.

    Args:
        results: Result table from build_result_table
        output_path: Path where PNG will be saved
        alpha: padj threshold for highlighting significant genes
        dpi: Figure resolution

    Returns:
        Path to the saved PNG file

    Notes:
        - With DESeq2 statistics: log10(baseMean) vs log2FoldChange,
          significant genes in red
        - Without: mean_vst vs the first pairwise lfc_* column
    """
    if "log2FoldChange" in results.columns and "baseMean" in results.columns:
        pdf = (
            results.filter(pl.col("baseMean") > 0)
            .select([
                pl.col("baseMean").log10().alias("x"),
                pl.col("log2FoldChange").alias("y"),
                (pl.col("padj").is_not_null() & (pl.col("padj") < alpha)).alias("significant"),
            ])
            .to_pandas()
        )
        x_label = "log10 Mean of Normalized Counts"
        y_label = "log2 Fold Change"
    else:
        lfc_cols = [c for c in results.columns if c.startswith(PAIRWISE_LFC_PREFIX)]
        if not lfc_cols:
            raise ValueError("Result table has neither log2FoldChange nor lfc_* columns")
        pdf = results.select([
            pl.col(MEAN_VST_COLUMN).alias("x"),
            pl.col(lfc_cols[0]).alias("y"),
            pl.lit(False).alias("significant"),
        ]).to_pandas()
        x_label = "Mean VST Expression (A)"
        y_label = f"VST Difference (M, {lfc_cols[0][len(PAIRWISE_LFC_PREFIX):]})"

    sns.set_theme(style="whitegrid", context="paper")
    fig, ax = plt.subplots(figsize=(8, 6))

    sns.scatterplot(
        data=pdf,
        x="x",
        y="y",
        hue="significant",
        hue_order=[False, True],
        palette={False: "#95a5a6", True: "#e74c3c"},
        s=8,
        linewidth=0,
        ax=ax,
    )
    ax.axhline(0, color="#2c3e50", linewidth=0.8)

    ax.set_xlabel(x_label)
    ax.set_ylabel(y_label)
    ax.set_title("MA Plot")

    _save(fig, output_path, dpi)
    logger.info(f"Saved MA plot to {output_path}")
    return output_path


def plot_pca(
    vst: pl.DataFrame,
    metadata: SampleMetadata,
    output_path: Path,
    dpi: int = 300,
) -> Path:
    """
    Two-component PCA of samples on VST values, coloured by condition.

    Axis labels carry the fraction of variance explained by each component.
    """
    samples = _sample_columns(vst)
    if len(samples) < 2:
        raise ValueError(f"PCA needs at least 2 samples, got {len(samples)}")

    # samples x genes
    values = vst.select(samples).to_numpy().T
    n_components = min(2, len(samples), values.shape[1])

    pca = PCA(n_components=n_components)
    coords = pca.fit_transform(values)
    if n_components == 1:
        coords = np.column_stack([coords[:, 0], np.zeros(len(samples))])
    explained = list(pca.explained_variance_ratio_) + [0.0] * (2 - n_components)

    pdf = pl.DataFrame({
        "sample": samples,
        "PC1": coords[:, 0],
        "PC2": coords[:, 1],
        "condition": [metadata.conditions.get(s, "unknown") for s in samples],
    }).to_pandas()

    fig, ax = plt.subplots(figsize=(7, 6))
    sns.scatterplot(data=pdf, x="PC1", y="PC2", hue="condition", s=80, ax=ax)
    for _, row in pdf.iterrows():
        ax.annotate(row["sample"], (row["PC1"], row["PC2"]), xytext=(4, 4), textcoords="offset points", fontsize=8)

    ax.set_xlabel(f"PC1 ({explained[0]:.1%} variance)")
    ax.set_ylabel(f"PC2 ({explained[1]:.1%} variance)")
    ax.set_title("PCA of Variance-Stabilized Counts")

    _save(fig, output_path, dpi)
    logger.info(f"Saved PCA plot to {output_path}")
    return output_path


def generate_all_plots(
    vst: pl.DataFrame,
    results: pl.DataFrame,
    metadata: SampleMetadata,
    output_dir: Path,
    top_n: int = 50,
    alpha: float = 0.05,
    dpi: int = 300,
) -> dict[str, Path]:
    """
    Generate all diagnostic plots.

    Returns:
        Dictionary mapping plot name to file path

    Notes:
        - Wraps each plot in try/except to continue on individual failures
    """
    output_dir.mkdir(parents=True, exist_ok=True)

    plots = {}
    builders = [
        ("heatmap", lambda p: plot_expression_heatmap(vst, p, top_n=top_n, dpi=dpi)),
        ("sample_distances", lambda p: plot_sample_distances(vst, p, dpi=dpi)),
        ("ma_plot", lambda p: plot_ma(results, p, alpha=alpha, dpi=dpi)),
        ("pca", lambda p: plot_pca(vst, metadata, p, dpi=dpi)),
    ]

    for name, build in builders:
        try:
            plots[name] = build(output_dir / f"{name}.png")
        except Exception as e:
            logger.warning(f"Failed to create {name} plot: {e}")

    logger.info(f"Generated {len(plots)} plots in {output_dir}")
    return plots
