"""Assemble per-sample count tables into a gene x sample count matrix.

Two alignment strategies are supported:

- positional: the gene ID column of every table must equal the first
  table's, element for element and in order. Counts are then placed side by
  side without any reindexing.
- by_key: the gene ID sets must be identical, but row order may differ.
  Counts are joined on gene ID and the output follows the first table's order.

In both cases genes with zero counts in every sample are removed afterwards.
"""

from typing import Literal

import polars as pl
import structlog

from dge_pipeline.counts.models import COUNT_COLUMN, GENE_ID_COLUMN, SampleCountTable
from dge_pipeline.errors import (
    DimensionMismatchError,
    DuplicateKeyError,
    EmptyInputError,
    KeyAlignmentError,
    SampleMetadataError,
)

logger = structlog.get_logger()

Alignment = Literal["positional", "by_key"]


def _check_sample_ids(tables: list[SampleCountTable]) -> None:
    if not tables:
        raise EmptyInputError()

    sample_ids = [t.sample_id for t in tables]
    repeated = sorted({sid for sid in sample_ids if sample_ids.count(sid) > 1})
    if repeated:
        raise SampleMetadataError(f"Duplicate sample IDs: {repeated}")
    if GENE_ID_COLUMN in sample_ids:
        raise SampleMetadataError(
            f"Sample ID '{GENE_ID_COLUMN}' is reserved for the gene ID column"
        )


def _check_unique_gene_ids(tables: list[SampleCountTable]) -> None:
    for table in tables:
        dup = (
            table.frame.filter(pl.col(GENE_ID_COLUMN).is_duplicated())
            .get_column(GENE_ID_COLUMN)
            .unique(maintain_order=True)
            .to_list()
        )
        if dup:
            raise DuplicateKeyError(table.sample_id, dup)


def validate_key_alignment(tables: list[SampleCountTable]) -> None:
    """Verify gene IDs are identical, element for element, across all tables.

    Checks run in this order, so the first failing one is reported.

    Raises:
        EmptyInputError: No tables supplied
        SampleMetadataError: Sample IDs repeat or use the reserved name gene_id
        DimensionMismatchError: Tables have differing row counts
        DuplicateKeyError: A table repeats a gene ID
        KeyAlignmentError: Gene IDs differ at some position; the error names
            the reference sample, the disagreeing sample and the first
            mismatching row
    """
    _check_sample_ids(tables)

    row_counts = {t.sample_id: len(t) for t in tables}
    if len(set(row_counts.values())) > 1:
        raise DimensionMismatchError(row_counts)

    _check_unique_gene_ids(tables)

    reference = tables[0]
    for table in tables[1:]:
        mismatch = (table.gene_ids != reference.gene_ids).arg_true()
        if len(mismatch) > 0:
            position = int(mismatch[0])
            raise KeyAlignmentError(
                f"Gene IDs of sample '{table.sample_id}' differ from sample "
                f"'{reference.sample_id}' at row {position}: "
                f"{table.gene_ids[position]!r} != {reference.gene_ids[position]!r} "
                f"({len(mismatch)} mismatching rows)",
                reference_sample=reference.sample_id,
                sample=table.sample_id,
                position=position,
            )


def validate_key_sets(tables: list[SampleCountTable]) -> None:
    """Verify every table carries the same set of gene IDs (order-free).

    Raises:
        EmptyInputError: No tables supplied
        SampleMetadataError: Sample IDs repeat or use the reserved name gene_id
        DuplicateKeyError: A table repeats a gene ID
        KeyAlignmentError: Gene ID sets differ; names the genes missing on
            either side
    """
    _check_sample_ids(tables)
    _check_unique_gene_ids(tables)

    reference = tables[0]
    reference_ids = set(reference.gene_ids.to_list())
    for table in tables[1:]:
        ids = set(table.gene_ids.to_list())
        if ids == reference_ids:
            continue
        missing = sorted(reference_ids - ids)
        extra = sorted(ids - reference_ids)
        raise KeyAlignmentError(
            f"Gene ID set of sample '{table.sample_id}' differs from sample "
            f"'{reference.sample_id}': {len(missing)} missing "
            f"(first 5: {missing[:5]}), {len(extra)} unexpected "
            f"(first 5: {extra[:5]})",
            reference_sample=reference.sample_id,
            sample=table.sample_id,
        )


def drop_all_zero_rows(matrix: pl.DataFrame) -> pl.DataFrame:
    """Remove genes whose count is zero in every sample column."""
    sample_cols = [c for c in matrix.columns if c != GENE_ID_COLUMN]
    if not sample_cols:
        return matrix

    filtered = matrix.filter(pl.any_horizontal([pl.col(c) != 0 for c in sample_cols]))
    logger.info(
        "count_matrix_all_zero_dropped",
        dropped=matrix.height - filtered.height,
        remaining=filtered.height,
    )
    return filtered


def _assemble_positional(tables: list[SampleCountTable]) -> pl.DataFrame:
    validate_key_alignment(tables)
    columns = [tables[0].gene_ids.alias(GENE_ID_COLUMN)]
    columns.extend(t.counts.alias(t.sample_id) for t in tables)
    return pl.DataFrame(columns)


def _assemble_by_key(tables: list[SampleCountTable]) -> pl.DataFrame:
    validate_key_sets(tables)
    matrix = tables[0].frame.rename({COUNT_COLUMN: tables[0].sample_id})
    for table in tables[1:]:
        matrix = matrix.join(
            table.frame.rename({COUNT_COLUMN: table.sample_id}),
            on=GENE_ID_COLUMN,
            how="left",
            maintain_order="left",
        )
    return matrix


def build_count_matrix(
    tables: list[SampleCountTable],
    alignment: Alignment = "positional",
    drop_all_zero: bool = True,
) -> pl.DataFrame:
    """Merge per-sample count tables into one count matrix.

    Args:
        tables: Sample count tables in sample (column) order
        alignment: "positional" (hard row-for-row gene ID check) or
            "by_key" (gene ID sets must match; rows joined by ID)
        drop_all_zero: Remove genes with zero counts in every sample

    Returns:
        DataFrame with gene_id column followed by one Int64 column per
        sample, rows in the first table's gene order. Input tables are not
        modified.

    Raises:
        EmptyInputError, SampleMetadataError, DimensionMismatchError,
        DuplicateKeyError, KeyAlignmentError: See validate_key_alignment /
        validate_key_sets
    """
    logger.info(
        "count_matrix_build_start",
        sample_count=len(tables),
        alignment=alignment,
    )

    if alignment == "positional":
        matrix = _assemble_positional(tables)
    elif alignment == "by_key":
        matrix = _assemble_by_key(tables)
    else:
        raise ValueError(f"Unknown alignment strategy: {alignment!r}")

    if drop_all_zero:
        matrix = drop_all_zero_rows(matrix)

    logger.info(
        "count_matrix_build_complete",
        gene_count=matrix.height,
        sample_count=matrix.width - 1,
    )
    return matrix


def summarize_count_matrix(matrix: pl.DataFrame) -> dict[str, dict[str, int]]:
    """Per-sample library size and number of genes with a nonzero count."""
    summary = {}
    for col in matrix.columns:
        if col == GENE_ID_COLUMN:
            continue
        series = matrix.get_column(col)
        summary[col] = {
            "library_size": int(series.sum()),
            "detected_genes": int((series > 0).sum()),
        }
    return summary
