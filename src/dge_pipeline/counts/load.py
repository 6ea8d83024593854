"""Read per-sample count files into SampleCountTable objects."""

from pathlib import Path

import polars as pl
import structlog

from dge_pipeline.config.schema import SampleSpec
from dge_pipeline.counts.models import (
    COUNT_COLUMN,
    GENE_ID_COLUMN,
    SPECIAL_COUNTER_PREFIX,
    SampleCountTable,
)
from dge_pipeline.errors import CountFormatError

logger = structlog.get_logger()


def _split_whitespace_column(raw: pl.DataFrame, path: Path) -> pl.DataFrame:
    """Split a single-column frame of space-delimited lines into two columns."""
    line = pl.col(raw.columns[0]).str.strip_chars().str.replace_all(r"\s+", "\t")

    too_many = raw.filter(line.str.count_matches("\t") != 1)
    if too_many.height > 0:
        raise CountFormatError(
            path,
            f"expected 2 columns, found malformed line {too_many.row(0)[0]!r}",
        )

    return raw.select(
        line.str.split_exact("\t", 1)
        .struct.rename_fields([GENE_ID_COLUMN, COUNT_COLUMN])
        .alias("fields")
    ).unnest("fields")


def read_sample_counts(
    path: Path | str,
    sample_id: str,
    drop_special_counters: bool = True,
) -> SampleCountTable:
    """Read a headerless (gene_id, count) table for one sample.

    Accepts tab-delimited files (htseq-count output) and falls back to
    arbitrary whitespace when a line carries no tab.

    Args:
        path: Count file path
        sample_id: Identifier for this sample
        drop_special_counters: Drop htseq-count summary rows whose gene ID
            starts with '__' (default: True)

    Returns:
        SampleCountTable with rows in file order

    Raises:
        CountFormatError: File missing, empty, not two columns, or a count
            that is not a non-negative integer
    """
    path = Path(path)
    logger.info("count_table_read_start", sample_id=sample_id, path=str(path))

    if not path.exists():
        raise CountFormatError(path, "file not found")
    if path.stat().st_size == 0:
        raise CountFormatError(path, "file is empty")

    try:
        raw = pl.read_csv(
            path,
            separator="\t",
            has_header=False,
            infer_schema=False,
            quote_char=None,
        )
    except pl.exceptions.NoDataError:
        raise CountFormatError(path, "file is empty")
    except pl.exceptions.ComputeError as e:
        raise CountFormatError(path, f"unparseable rows ({e})")

    if raw.width == 1:
        raw = _split_whitespace_column(raw, path)
    elif raw.width == 2:
        raw = raw.rename(dict(zip(raw.columns, [GENE_ID_COLUMN, COUNT_COLUMN])))
    else:
        raise CountFormatError(path, f"expected 2 columns, found {raw.width}")

    if raw.get_column(GENE_ID_COLUMN).null_count() > 0:
        raise CountFormatError(path, "missing gene ID")

    frame = raw.with_columns(
        pl.col(COUNT_COLUMN).str.strip_chars().cast(pl.Int64, strict=False)
    )

    # Cast failures turn into nulls; report the original text
    bad = raw.filter(frame.get_column(COUNT_COLUMN).is_null())
    if bad.height > 0:
        raise CountFormatError(
            path,
            f"non-integer count {bad.row(0)[1]!r} for gene {bad.row(0)[0]!r}",
        )

    negative = frame.filter(pl.col(COUNT_COLUMN) < 0)
    if negative.height > 0:
        raise CountFormatError(
            path,
            f"negative count {negative.row(0)[1]} for gene {negative.row(0)[0]!r}",
        )

    if drop_special_counters:
        before = frame.height
        frame = frame.filter(~pl.col(GENE_ID_COLUMN).str.starts_with(SPECIAL_COUNTER_PREFIX))
        dropped = before - frame.height
        if dropped:
            logger.debug("count_table_special_counters_dropped", sample_id=sample_id, dropped=dropped)

    logger.info(
        "count_table_read_complete",
        sample_id=sample_id,
        gene_count=frame.height,
        library_size=int(frame.get_column(COUNT_COLUMN).sum()),
    )

    return SampleCountTable(sample_id=sample_id, frame=frame, source=path)


def read_samples(
    samples: list[SampleSpec],
    drop_special_counters: bool = True,
) -> list[SampleCountTable]:
    """Read every configured sample, preserving configured order."""
    return [
        read_sample_counts(
            sample.counts_path,
            sample.sample_id,
            drop_special_counters=drop_special_counters,
        )
        for sample in samples
    ]
