"""Data models for sample metadata and differential expression output."""

from dataclasses import dataclass
from typing import Optional

import pandas as pd
import polars as pl
from pydantic import BaseModel, ConfigDict

from dge_pipeline.config.schema import SampleSpec
from dge_pipeline.counts.models import GENE_ID_COLUMN
from dge_pipeline.errors import SampleMetadataError

# Columns produced by pydeseq2's DeseqStats.results_df
DESEQ_STAT_COLUMNS = ["baseMean", "log2FoldChange", "lfcSE", "stat", "pvalue", "padj"]

MEAN_VST_COLUMN = "mean_vst"
PAIRWISE_LFC_PREFIX = "lfc_"


class SampleMetadata(BaseModel):
    """Immutable sample -> condition mapping, in count matrix column order.

    Attributes:
        conditions: Ordered mapping of sample_id to condition label
    """

    model_config = ConfigDict(frozen=True)

    conditions: dict[str, str]

    @classmethod
    def from_samples(cls, samples: list[SampleSpec]) -> "SampleMetadata":
        return cls(conditions={s.sample_id: s.condition for s in samples})

    @property
    def sample_ids(self) -> list[str]:
        return list(self.conditions)

    def levels(self) -> list[str]:
        """Distinct condition labels in first-seen order."""
        return list(dict.fromkeys(self.conditions.values()))

    def replicates(self, level: str) -> int:
        return sum(1 for c in self.conditions.values() if c == level)

    def validate_against(self, matrix: pl.DataFrame) -> None:
        """Check that metadata pairs 1:1, in order, with matrix sample columns.

        Raises:
            SampleMetadataError: Sample IDs differ from matrix columns
        """
        matrix_samples = [c for c in matrix.columns if c != GENE_ID_COLUMN]
        if matrix_samples != self.sample_ids:
            raise SampleMetadataError(
                f"Sample metadata {self.sample_ids} does not match count matrix "
                f"columns {matrix_samples}"
            )

    def to_pandas(self, factor: str = "condition") -> pd.DataFrame:
        """Metadata frame indexed by sample ID, one column named after the factor."""
        return pd.DataFrame(
            {factor: list(self.conditions.values())},
            index=pd.Index(self.sample_ids, name="sample"),
        )


@dataclass
class DEResult:
    """Output of the differential expression engine.

    Attributes:
        vst: Variance-stabilised counts, gene_id column + one column per sample
        size_factors: Per-sample normalisation factors
        stats: Per-gene Wald test results (gene_id + DESEQ_STAT_COLUMNS), or
            None when no contrast could be tested
        contrast: Contrast tested, [factor, tested_level, reference_level]
    """
    vst: pl.DataFrame
    size_factors: dict[str, float]
    stats: Optional[pl.DataFrame] = None
    contrast: Optional[list[str]] = None
