"""Read the tab-delimited gene annotation table."""

from pathlib import Path

import polars as pl
import structlog

from dge_pipeline.errors import AnnotationFormatError

logger = structlog.get_logger()


def read_annotation_table(
    path: Path | str,
    symbol_column: str = "Symbol",
) -> pl.DataFrame:
    """Load an annotation table with a header row.

    All columns are read as strings; annotation fields are carried through
    to the output unchanged.

    Raises:
        FileNotFoundError: path does not exist
        AnnotationFormatError: symbol column is absent
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Annotation table not found: {path}")

    df = pl.read_csv(
        path,
        separator="\t",
        has_header=True,
        infer_schema=False,
        quote_char=None,
    )

    if symbol_column not in df.columns:
        raise AnnotationFormatError(
            f"Annotation table {path} has no '{symbol_column}' column "
            f"(columns: {df.columns})"
        )

    logger.info("annotation_table_loaded", path=str(path), record_count=df.height)
    return df
