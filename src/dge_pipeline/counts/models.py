"""Data models for per-sample read count tables."""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import polars as pl

# Column names shared by every sample table and the count matrix
GENE_ID_COLUMN = "gene_id"
COUNT_COLUMN = "count"

# htseq-count appends summary rows (__no_feature, __ambiguous, ...) to its output
SPECIAL_COUNTER_PREFIX = "__"


@dataclass(frozen=True)
class SampleCountTable:
    """Read counts for one sample.

    Attributes:
        sample_id: Sample identifier (becomes the count matrix column name)
        frame: DataFrame with gene_id (Utf8) and count (Int64) columns,
            in file order
        source: File the counts were read from, if any
    """
    sample_id: str
    frame: pl.DataFrame
    source: Optional[Path] = None

    @property
    def gene_ids(self) -> pl.Series:
        return self.frame.get_column(GENE_ID_COLUMN)

    @property
    def counts(self) -> pl.Series:
        return self.frame.get_column(COUNT_COLUMN)

    def __len__(self) -> int:
        return self.frame.height

    @classmethod
    def from_pairs(
        cls,
        sample_id: str,
        pairs: list[tuple[str, int]],
    ) -> "SampleCountTable":
        """Build a table from in-memory (gene_id, count) pairs."""
        frame = pl.DataFrame(
            {
                GENE_ID_COLUMN: [gene for gene, _ in pairs],
                COUNT_COLUMN: [count for _, count in pairs],
            },
            schema={GENE_ID_COLUMN: pl.Utf8, COUNT_COLUMN: pl.Int64},
        )
        return cls(sample_id=sample_id, frame=frame)
