"""Differential expression layer.

Wraps pydeseq2 (DESeq2 negative binomial model, Wald test and
variance-stabilising transform) and turns its output into a per-gene
result table with average log-expression and pairwise log fold changes.
"""

from dge_pipeline.de.deseq import can_test_contrast, run_deseq2
from dge_pipeline.de.models import (
    DESEQ_STAT_COLUMNS,
    MEAN_VST_COLUMN,
    DEResult,
    SampleMetadata,
)
from dge_pipeline.de.results import (
    build_result_table,
    compute_vst_metrics,
    default_pairs,
    pairwise_lfc_column,
    summarize_de_results,
)

__all__ = [
    "run_deseq2",
    "can_test_contrast",
    "SampleMetadata",
    "DEResult",
    "DESEQ_STAT_COLUMNS",
    "MEAN_VST_COLUMN",
    "build_result_table",
    "compute_vst_metrics",
    "default_pairs",
    "pairwise_lfc_column",
    "summarize_de_results",
]
