"""Outer-join differential expression results with gene annotations."""

import polars as pl
import structlog

from dge_pipeline.annotation.keys import (
    ANNOTATION_KEY_COLUMN,
    DEFAULT_DELIMITER,
    DEFAULT_KEY_PREFIX,
    add_annotation_keys,
)
from dge_pipeline.counts.models import GENE_ID_COLUMN

logger = structlog.get_logger()

JOIN_KEY_COLUMN = "join_key"
ANNOTATION_SUFFIX = "_annotation"

_RESULT_ROW = "__result_row"
_ANNOTATION_ROW = "__annotation_row"


def merge_annotations(
    results: pl.DataFrame,
    annotations: pl.DataFrame,
    symbol_column: str = "Symbol",
    delimiter: str = DEFAULT_DELIMITER,
    key_prefix: str = DEFAULT_KEY_PREFIX,
) -> pl.DataFrame:
    """Full outer join of results (on gene_id) and annotations (on derived key).

    Both key columns are kept. Rows found on one side only carry nulls in
    every column of the other side. A leading join_key column holds whichever
    key is present, and rows are sorted by it; rows sharing a key keep result
    order, then annotation order.

    Args:
        results: Result table with a gene_id column
        annotations: Annotation table with a composite symbol column
        symbol_column: Name of the composite symbol column
        delimiter: Separator inside the symbol
        key_prefix: Prefix used to rebuild gene keys

    Returns:
        Annotated result table. Annotation columns whose names clash with
        result columns, join_key or annotation_key are suffixed with
        '_annotation'.

    Raises:
        MalformedKeyError: An annotation symbol is malformed
        ValueError: results has no gene_id column
    """
    if GENE_ID_COLUMN not in results.columns:
        raise ValueError(f"Result table has no '{GENE_ID_COLUMN}' column")

    # Annotation fields never overwrite result columns or the merge's own keys
    reserved = {*results.columns, ANNOTATION_KEY_COLUMN, JOIN_KEY_COLUMN}
    renames = {c: f"{c}{ANNOTATION_SUFFIX}" for c in annotations.columns if c in reserved}
    if renames:
        annotations = annotations.rename(renames)
        symbol_column = renames.get(symbol_column, symbol_column)

    keyed = add_annotation_keys(
        annotations,
        symbol_column=symbol_column,
        delimiter=delimiter,
        prefix=key_prefix,
    )

    left = results.with_row_index(_RESULT_ROW)
    right = keyed.with_row_index(_ANNOTATION_ROW)

    merged = left.join(
        right,
        left_on=GENE_ID_COLUMN,
        right_on=ANNOTATION_KEY_COLUMN,
        how="full",
        coalesce=False,
    )

    merged = (
        merged.with_columns(
            pl.coalesce(pl.col(GENE_ID_COLUMN), pl.col(ANNOTATION_KEY_COLUMN)).alias(JOIN_KEY_COLUMN)
        )
        .sort([JOIN_KEY_COLUMN, _RESULT_ROW, _ANNOTATION_ROW], nulls_last=True)
        .drop([_RESULT_ROW, _ANNOTATION_ROW])
    )
    merged = merged.select([JOIN_KEY_COLUMN, *[c for c in merged.columns if c != JOIN_KEY_COLUMN]])

    stats = summarize_merge(merged)
    logger.info("annotation_merge_complete", row_count=merged.height, **stats)
    if stats["results_only"]:
        logger.warning("annotation_merge_unannotated_genes", count=stats["results_only"])

    return merged


def summarize_merge(merged: pl.DataFrame) -> dict[str, int]:
    """Count matched rows and rows present on only one side of the join."""
    has_result = pl.col(GENE_ID_COLUMN).is_not_null()
    has_annotation = pl.col(ANNOTATION_KEY_COLUMN).is_not_null()
    return {
        "matched": merged.filter(has_result & has_annotation).height,
        "results_only": merged.filter(has_result & ~has_annotation).height,
        "annotation_only": merged.filter(~has_result & has_annotation).height,
    }
