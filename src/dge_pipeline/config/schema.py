"""Pydantic models for pipeline configuration."""

import hashlib
import json
from pathlib import Path
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

# Name of the count matrix key column; a sample column cannot share it
RESERVED_SAMPLE_ID = "gene_id"


class SampleSpec(BaseModel):
    """One sequenced sample: its count file and experimental condition."""

    sample_id: str = Field(
        ...,
        min_length=1,
        description="Sample identifier, used as the count matrix column name",
    )
    counts_path: Path = Field(
        ...,
        description="Headerless two-column (gene_id, count) table",
    )
    condition: str = Field(
        ...,
        min_length=1,
        description="Condition label for the design factor",
    )


class CountsConfig(BaseModel):
    """How per-sample count tables are merged into the count matrix."""

    alignment: Literal["positional", "by_key"] = Field(
        default="positional",
        description=(
            "positional: gene IDs must match row-for-row; "
            "by_key: gene ID sets must match, rows are aligned by ID"
        ),
    )
    drop_special_counters: bool = Field(
        default=True,
        description="Drop htseq-count summary rows (gene IDs starting with '__')",
    )
    drop_all_zero: bool = Field(
        default=True,
        description="Drop genes with zero counts in every sample",
    )


class AnnotationConfig(BaseModel):
    """Annotation table location and composite-key layout."""

    path: Optional[Path] = Field(
        default=None,
        description="Tab-delimited annotation table with header (annotation skipped if unset)",
    )
    symbol_column: str = Field(
        default="Symbol",
        description="Column holding '<prefix>_<id>' composite symbols",
    )
    delimiter: str = Field(
        default="_",
        min_length=1,
        description="Delimiter between symbol prefix and id",
    )
    key_prefix: str = Field(
        default="gene:",
        description="Prefix prepended to the id to rebuild the gene key",
    )


class DESeqConfig(BaseModel):
    """Parameters passed to the DESeq2 engine."""

    design_factor: str = Field(
        default="condition",
        description="Sample metadata column defining comparison groups",
    )
    contrast: Optional[list[str]] = Field(
        default=None,
        description="[factor, tested_level, reference_level]",
    )
    alpha: float = Field(
        default=0.05,
        gt=0.0,
        lt=1.0,
        description="Adjusted p-value significance threshold",
    )
    shrink_lfc: bool = Field(
        default=True,
        description="Apply apeGLM log fold change shrinkage",
    )
    n_cpus: int = Field(
        default=1,
        ge=1,
        description="CPUs used by the engine",
    )
    compare_pairs: Optional[list[tuple[str, str]]] = Field(
        default=None,
        description="Sample pairs for VST log fold changes (default: consecutive samples)",
    )

    @field_validator("contrast")
    @classmethod
    def check_contrast(cls, v: Optional[list[str]]) -> Optional[list[str]]:
        """Contrast must name a factor and two distinct levels."""
        if v is None:
            return v
        if len(v) != 3:
            raise ValueError(
                f"contrast must be [factor, tested_level, reference_level], got {v}"
            )
        if v[1] == v[2]:
            raise ValueError(f"contrast levels must differ, got {v[1]!r} twice")
        return v


class PlotConfig(BaseModel):
    """Diagnostic plot settings."""

    enabled: bool = Field(
        default=True,
        description="Generate diagnostic plots",
    )
    top_n_genes: int = Field(
        default=50,
        ge=2,
        description="Number of most variable genes shown in the heatmap",
    )
    dpi: int = Field(
        default=300,
        ge=50,
        description="Figure resolution",
    )


class PipelineConfig(BaseModel):
    """Main pipeline configuration."""

    output_dir: Path = Field(
        ...,
        description="Directory for count matrix, results, plots and provenance",
    )
    samples: list[SampleSpec] = Field(
        ...,
        min_length=1,
        description="Samples in matrix column order",
    )
    counts: CountsConfig = Field(
        default_factory=CountsConfig,
        description="Count matrix assembly options",
    )
    annotation: AnnotationConfig = Field(
        default_factory=AnnotationConfig,
        description="Annotation merge options",
    )
    deseq: DESeqConfig = Field(
        default_factory=DESeqConfig,
        description="Differential expression options",
    )
    plots: PlotConfig = Field(
        default_factory=PlotConfig,
        description="Diagnostic plot options",
    )

    @field_validator("output_dir")
    @classmethod
    def create_directory(cls, v: Path) -> Path:
        """Create directory if it doesn't exist."""
        v.mkdir(parents=True, exist_ok=True)
        return v

    @model_validator(mode="after")
    def check_samples(self) -> "PipelineConfig":
        """Sample IDs must be unique and not 'gene_id', and contrast levels must exist."""
        ids = [s.sample_id for s in self.samples]
        duplicates = sorted({sid for sid in ids if ids.count(sid) > 1})
        if duplicates:
            raise ValueError(f"Duplicate sample IDs: {duplicates}")
        if RESERVED_SAMPLE_ID in ids:
            raise ValueError(
                f"Sample ID {RESERVED_SAMPLE_ID!r} is reserved for the count matrix gene column"
            )

        if self.deseq.contrast is not None:
            factor, tested, reference = self.deseq.contrast
            if factor != self.deseq.design_factor:
                raise ValueError(
                    f"contrast factor {factor!r} is not the design factor "
                    f"{self.deseq.design_factor!r}"
                )
            conditions = {s.condition for s in self.samples}
            missing = [lvl for lvl in (tested, reference) if lvl not in conditions]
            if missing:
                raise ValueError(
                    f"contrast levels {missing} not among sample conditions "
                    f"{sorted(conditions)}"
                )
        return self

    def sample_ids(self) -> list[str]:
        """Sample IDs in configured order."""
        return [s.sample_id for s in self.samples]

    def config_hash(self) -> str:
        """
        Compute SHA-256 hash of the configuration.

        Returns a deterministic hash based on all config values,
        useful for tracking which settings produced a given output.
        """
        config_dict = self.model_dump(mode="python")
        config_json = json.dumps(
            config_dict,
            sort_keys=True,
            default=str,
        )
        return hashlib.sha256(config_json.encode()).hexdigest()
