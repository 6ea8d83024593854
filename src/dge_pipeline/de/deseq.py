"""Adapter around pydeseq2: the count matrix goes in, statistics and VST come out.

The negative binomial model, dispersion estimation, Wald test and shrinkage
all belong to pydeseq2. This module only reshapes polars tables into the
samples x genes pandas layout pydeseq2 expects, and the results back.
"""

from typing import Optional

import pandas as pd
import polars as pl
import structlog
from pydeseq2.dds import DeseqDataSet
from pydeseq2.default_inference import DefaultInference
from pydeseq2.ds import DeseqStats

from dge_pipeline.counts.models import GENE_ID_COLUMN
from dge_pipeline.de.models import DESEQ_STAT_COLUMNS, DEResult, SampleMetadata
from dge_pipeline.errors import DEAnalysisError, SampleMetadataError

logger = structlog.get_logger()


def can_test_contrast(metadata: SampleMetadata, contrast: Optional[list[str]]) -> bool:
    """Whether the design leaves residual degrees of freedom for a Wald test.

    Each condition level costs one coefficient; with as many levels as
    samples the dispersions cannot be estimated.
    """
    if contrast is None:
        return False
    return len(metadata.sample_ids) > len(metadata.levels())


def _counts_to_pandas(matrix: pl.DataFrame) -> pd.DataFrame:
    """gene x sample polars matrix -> sample x gene integer pandas frame."""
    return matrix.to_pandas().set_index(GENE_ID_COLUMN).T.astype(int)


def _vst_to_polars(dds: DeseqDataSet) -> pl.DataFrame:
    vst_counts = dds.layers["vst_counts"]
    data = {GENE_ID_COLUMN: [str(g) for g in dds.var_names]}
    for i, sample_id in enumerate(dds.obs_names):
        data[str(sample_id)] = vst_counts[i, :]
    return pl.DataFrame(data)


def _stats_to_polars(results_df: pd.DataFrame) -> pl.DataFrame:
    stats = results_df[DESEQ_STAT_COLUMNS].copy()
    stats.index = stats.index.astype(str)
    return pl.from_pandas(stats.reset_index(names=GENE_ID_COLUMN))


def run_deseq2(
    matrix: pl.DataFrame,
    metadata: SampleMetadata,
    design_factor: str = "condition",
    contrast: Optional[list[str]] = None,
    alpha: float = 0.05,
    shrink_lfc: bool = True,
    n_cpus: int = 1,
) -> DEResult:
    """Fit DESeq2 to the count matrix and collect its outputs.

    The variance-stabilising transform is always computed (blind to the
    design). The Wald test runs only when a contrast is given and the design
    has residual degrees of freedom; otherwise DEResult.stats is None.

    Args:
        matrix: Count matrix (gene_id + one integer column per sample)
        metadata: Sample conditions, in matrix column order
        design_factor: Metadata column used in the design formula
        contrast: [factor, tested_level, reference_level]
        alpha: Significance threshold for independent filtering / padj
        shrink_lfc: Apply LFC shrinkage to the tested coefficient
        n_cpus: CPUs for pydeseq2 inference

    Returns:
        DEResult with vst, size_factors and (optionally) stats

    Raises:
        SampleMetadataError: Metadata does not match matrix columns, or a
            contrast level has no samples
        DEAnalysisError: pydeseq2 failed
    """
    metadata.validate_against(matrix)

    if contrast is not None:
        missing = [lvl for lvl in contrast[1:] if metadata.replicates(lvl) == 0]
        if missing:
            raise SampleMetadataError(f"Contrast levels without samples: {missing}")

    test_contrast = can_test_contrast(metadata, contrast)
    if contrast is not None and not test_contrast:
        logger.warning(
            "deseq_contrast_skipped",
            reason="no residual degrees of freedom (one sample per condition)",
            contrast=contrast,
        )

    logger.info(
        "deseq_start",
        gene_count=matrix.height,
        sample_count=len(metadata.sample_ids),
        design=f"~{design_factor}",
        contrast=contrast,
    )

    try:
        inference = DefaultInference(n_cpus=n_cpus)
        dds = DeseqDataSet(
            counts=_counts_to_pandas(matrix),
            metadata=metadata.to_pandas(design_factor),
            design=f"~{design_factor}",
            inference=inference,
            quiet=True,
        )

        stats = None
        if test_contrast:
            dds.deseq2()

            ds = DeseqStats(dds, contrast=contrast, alpha=alpha, inference=inference, quiet=True)
            ds.summary()

            if shrink_lfc:
                factor, tested, _ = contrast
                coeff = f"{factor}[T.{tested}]"
                try:
                    ds.lfc_shrink(coeff=coeff)
                except Exception as e:
                    logger.warning("deseq_lfc_shrink_failed", coeff=coeff, error=str(e))

            stats = _stats_to_polars(ds.results_df)

        dds.vst(use_design=False)
        vst = _vst_to_polars(dds)
        size_factors = {
            str(sid): float(sf)
            for sid, sf in zip(dds.obs_names, dds.obs["size_factors"])
        }
    except Exception as e:
        logger.error("deseq_failed", error=str(e))
        raise DEAnalysisError(f"DESeq2 analysis failed: {e}") from e

    logger.info(
        "deseq_complete",
        tested=stats is not None,
        gene_count=vst.height,
    )

    return DEResult(
        vst=vst,
        size_factors=size_factors,
        stats=stats,
        contrast=contrast if stats is not None else None,
    )
