"""Derive gene keys from composite annotation symbols.

Annotation tables identify genes with a composite symbol '<prefix>_<id>'
(e.g. 'abc_80'), while count tables use 'gene:<id>' (e.g. 'gene:80'). The
key is rebuilt by splitting the symbol on the delimiter and re-prefixing the
second component. Symbols that do not split into exactly two non-empty parts
are rejected rather than truncated.
"""

from typing import Optional

import polars as pl
import structlog

from dge_pipeline.errors import MalformedKeyError

logger = structlog.get_logger()

ANNOTATION_KEY_COLUMN = "annotation_key"
DEFAULT_DELIMITER = "_"
DEFAULT_KEY_PREFIX = "gene:"


def derive_annotation_key(
    symbol: Optional[str],
    row_index: Optional[int] = None,
    delimiter: str = DEFAULT_DELIMITER,
    prefix: str = DEFAULT_KEY_PREFIX,
) -> str:
    """Rebuild the gene key from a '<prefix>_<id>' symbol.

    Args:
        symbol: Composite symbol, e.g. "abc_80"
        row_index: Position of the record, reported on failure
        delimiter: Separator between symbol prefix and id
        prefix: Literal prepended to the id

    Returns:
        Derived key, e.g. "gene:80"

    Raises:
        MalformedKeyError: symbol is missing, or does not split into exactly
            two non-empty components
    """
    if symbol is None:
        raise MalformedKeyError(symbol, row_index, delimiter)

    parts = symbol.split(delimiter)
    if len(parts) != 2 or not parts[0] or not parts[1]:
        raise MalformedKeyError(symbol, row_index, delimiter)

    return f"{prefix}{parts[1]}"


def add_annotation_keys(
    annotations: pl.DataFrame,
    symbol_column: str = "Symbol",
    delimiter: str = DEFAULT_DELIMITER,
    prefix: str = DEFAULT_KEY_PREFIX,
) -> pl.DataFrame:
    """Append an annotation_key column derived from the symbol column.

    The first malformed record aborts with MalformedKeyError; no keys are
    returned for a table containing one.
    """
    symbols = annotations.get_column(symbol_column).to_list()
    keys = [
        derive_annotation_key(symbol, row_index=i, delimiter=delimiter, prefix=prefix)
        for i, symbol in enumerate(symbols)
    ]

    logger.info(
        "annotation_keys_derived",
        record_count=len(keys),
        unique_keys=len(set(keys)),
    )

    return annotations.with_columns(pl.Series(ANNOTATION_KEY_COLUMN, keys, dtype=pl.Utf8))
