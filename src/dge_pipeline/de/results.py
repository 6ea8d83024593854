"""Build the per-gene result table from DESeq2 output."""

from typing import Optional

import polars as pl
import structlog

from dge_pipeline.counts.models import GENE_ID_COLUMN
from dge_pipeline.de.models import (
    MEAN_VST_COLUMN,
    PAIRWISE_LFC_PREFIX,
    DEResult,
)
from dge_pipeline.errors import SampleMetadataError

logger = structlog.get_logger()


def pairwise_lfc_column(sample_a: str, sample_b: str) -> str:
    return f"{PAIRWISE_LFC_PREFIX}{sample_a}_vs_{sample_b}"


def default_pairs(sample_ids: list[str]) -> list[tuple[str, str]]:
    """Consecutive sample pairs: (s1, s2), (s2, s3), ..."""
    return list(zip(sample_ids, sample_ids[1:]))


def compute_vst_metrics(
    vst: pl.DataFrame,
    pairs: Optional[list[tuple[str, str]]] = None,
) -> pl.DataFrame:
    """Average log-expression and pairwise log fold changes from VST values.

    VST values are on a log2-like scale, so the difference between two
    samples approximates their log2 fold change.

    Args:
        vst: gene_id column + one VST column per sample
        pairs: Ordered (a, b) sample pairs; column lfc_<a>_vs_<b> = a - b.
            Defaults to consecutive samples.

    Returns:
        DataFrame with gene_id, mean_vst and one lfc_* column per pair

    Raises:
        SampleMetadataError: A pair names a sample not in the VST table
    """
    sample_ids = [c for c in vst.columns if c != GENE_ID_COLUMN]
    if pairs is None:
        pairs = default_pairs(sample_ids)

    unknown = sorted({s for pair in pairs for s in pair if s not in sample_ids})
    if unknown:
        raise SampleMetadataError(
            f"Comparison pairs reference unknown samples {unknown}; "
            f"available: {sample_ids}"
        )

    exprs = [pl.mean_horizontal([pl.col(s) for s in sample_ids]).alias(MEAN_VST_COLUMN)]
    exprs.extend(
        (pl.col(a) - pl.col(b)).alias(pairwise_lfc_column(a, b))
        for a, b in pairs
    )

    return vst.select([pl.col(GENE_ID_COLUMN), *exprs])


def build_result_table(
    de_result: DEResult,
    pairs: Optional[list[tuple[str, str]]] = None,
) -> pl.DataFrame:
    """Combine VST metrics and DESeq2 statistics into one row per gene.

    gene_id is kept as an explicit column so the table can be joined with
    annotation data. Rows are sorted by gene_id.
    """
    results = compute_vst_metrics(de_result.vst, pairs)

    if de_result.stats is not None:
        results = results.join(de_result.stats, on=GENE_ID_COLUMN, how="left")

    results = results.sort(GENE_ID_COLUMN, maintain_order=True)

    logger.info(
        "result_table_built",
        gene_count=results.height,
        has_stats=de_result.stats is not None,
    )
    return results


def summarize_de_results(results: pl.DataFrame, alpha: float = 0.05) -> dict[str, int]:
    """Count significant, up- and down-regulated genes (padj < alpha)."""
    if "padj" not in results.columns:
        return {"tested": 0, "significant": 0, "up": 0, "down": 0}

    significant = results.filter(pl.col("padj").is_not_null() & (pl.col("padj") < alpha))
    return {
        "tested": results.filter(pl.col("pvalue").is_not_null()).height,
        "significant": significant.height,
        "up": significant.filter(pl.col("log2FoldChange") > 0).height,
        "down": significant.filter(pl.col("log2FoldChange") < 0).height,
    }
