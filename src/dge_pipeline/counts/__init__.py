"""Per-sample read count loading and count matrix assembly.

Reads htseq-count style (gene_id, count) tables, verifies that every sample
reports the same genes, and merges them into a gene x sample count matrix
with uninformative all-zero genes removed.
"""

from dge_pipeline.counts.load import read_sample_counts, read_samples
from dge_pipeline.counts.matrix import (
    build_count_matrix,
    drop_all_zero_rows,
    summarize_count_matrix,
    validate_key_alignment,
    validate_key_sets,
)
from dge_pipeline.counts.models import (
    COUNT_COLUMN,
    GENE_ID_COLUMN,
    SampleCountTable,
)

__all__ = [
    "read_sample_counts",
    "read_samples",
    "build_count_matrix",
    "drop_all_zero_rows",
    "summarize_count_matrix",
    "validate_key_alignment",
    "validate_key_sets",
    "SampleCountTable",
    "GENE_ID_COLUMN",
    "COUNT_COLUMN",
]
