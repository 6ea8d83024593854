"""Pipeline steps shared by the CLI commands.

Each function takes the validated PipelineConfig, performs one stage and
records it with the ProvenanceTracker. Nothing here writes files; commands
write outputs only after every stage has succeeded.
"""

from pathlib import Path
from typing import Optional

import polars as pl
import structlog

from dge_pipeline.annotation import merge_annotations, read_annotation_table, summarize_merge
from dge_pipeline.config.schema import PipelineConfig
from dge_pipeline.counts import build_count_matrix, read_samples, summarize_count_matrix
from dge_pipeline.de import (
    DEResult,
    SampleMetadata,
    build_result_table,
    run_deseq2,
    summarize_de_results,
)
from dge_pipeline.provenance import ProvenanceTracker

logger = structlog.get_logger()

COUNT_MATRIX_FILENAME = "count_matrix.tsv"
DE_RESULTS_FILENAME = "de_results.csv"
ANNOTATED_RESULTS_FILENAME = "annotated_results.csv"
PLOTS_DIRNAME = "plots"


def assemble_count_matrix(
    config: PipelineConfig,
    provenance: Optional[ProvenanceTracker] = None,
) -> pl.DataFrame:
    """Read every configured sample and merge them into the count matrix."""
    tables = read_samples(
        config.samples,
        drop_special_counters=config.counts.drop_special_counters,
    )
    input_genes = len(tables[0]) if tables else 0

    matrix = build_count_matrix(
        tables,
        alignment=config.counts.alignment,
        drop_all_zero=config.counts.drop_all_zero,
    )

    if provenance is not None:
        provenance.record_step("build_count_matrix", {
            "alignment": config.counts.alignment,
            "sample_count": len(tables),
            "input_gene_count": input_genes,
            "gene_count": matrix.height,
            "all_zero_dropped": input_genes - matrix.height,
            "samples": summarize_count_matrix(matrix),
        })
    return matrix


def run_differential_expression(
    matrix: pl.DataFrame,
    config: PipelineConfig,
    provenance: Optional[ProvenanceTracker] = None,
) -> tuple[DEResult, pl.DataFrame]:
    """Run DESeq2 and build the per-gene result table."""
    metadata = SampleMetadata.from_samples(config.samples)
    de_result = run_deseq2(
        matrix,
        metadata,
        design_factor=config.deseq.design_factor,
        contrast=config.deseq.contrast,
        alpha=config.deseq.alpha,
        shrink_lfc=config.deseq.shrink_lfc,
        n_cpus=config.deseq.n_cpus,
    )
    results = build_result_table(de_result, pairs=config.deseq.compare_pairs)

    if provenance is not None:
        provenance.record_step("differential_expression", {
            "design": f"~{config.deseq.design_factor}",
            "contrast": de_result.contrast,
            "alpha": config.deseq.alpha,
            "size_factors": de_result.size_factors,
            "gene_count": results.height,
            **summarize_de_results(results, config.deseq.alpha),
        })
    return de_result, results


def annotate_results(
    results: pl.DataFrame,
    config: PipelineConfig,
    annotation_path: Optional[Path] = None,
    provenance: Optional[ProvenanceTracker] = None,
) -> pl.DataFrame:
    """Outer-join the result table with the configured annotation table."""
    path = annotation_path or config.annotation.path
    if path is None:
        raise ValueError("No annotation table configured (annotation.path)")

    annotations = read_annotation_table(path, symbol_column=config.annotation.symbol_column)
    merged = merge_annotations(
        results,
        annotations,
        symbol_column=config.annotation.symbol_column,
        delimiter=config.annotation.delimiter,
        key_prefix=config.annotation.key_prefix,
    )

    if provenance is not None:
        provenance.record_step("merge_annotations", {
            "annotation_path": str(path),
            "annotation_records": annotations.height,
            "row_count": merged.height,
            **summarize_merge(merged),
        })
    return merged
