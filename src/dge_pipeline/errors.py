"""Data-validation errors raised while assembling and annotating tables.

Every error here is fatal to the current run: the pipeline never writes a
partially-correct output table.
"""

from typing import Optional


class PipelineDataError(ValueError):
    """Base class for input data that cannot be processed."""


class EmptyInputError(PipelineDataError):
    """No sample count tables were supplied."""

    def __init__(self, message: str = "No sample count tables supplied"):
        super().__init__(message)


class DimensionMismatchError(PipelineDataError):
    """Sample count tables have differing row counts."""

    def __init__(self, row_counts: dict[str, int]):
        self.row_counts = row_counts
        summary = ", ".join(f"{sid}={n}" for sid, n in row_counts.items())
        super().__init__(f"Sample tables have differing row counts: {summary}")


class KeyAlignmentError(PipelineDataError):
    """Gene ID columns disagree between sample tables.

    Attributes:
        reference_sample: Sample whose gene order is the reference
        sample: Sample that disagrees with the reference
        position: First mismatching row (None for set-level mismatches)
    """

    def __init__(
        self,
        message: str,
        reference_sample: Optional[str] = None,
        sample: Optional[str] = None,
        position: Optional[int] = None,
    ):
        self.reference_sample = reference_sample
        self.sample = sample
        self.position = position
        super().__init__(message)


class DuplicateKeyError(KeyAlignmentError):
    """A sample table lists the same gene ID more than once."""

    def __init__(self, sample: str, duplicates: list[str]):
        self.duplicates = duplicates
        super().__init__(
            f"Sample '{sample}' repeats {len(duplicates)} gene IDs "
            f"(first 5: {duplicates[:5]})",
            sample=sample,
        )


class MalformedKeyError(PipelineDataError):
    """An annotation symbol does not split into exactly two components."""

    def __init__(
        self,
        symbol: Optional[str],
        row_index: Optional[int] = None,
        delimiter: str = "_",
    ):
        self.symbol = symbol
        self.row_index = row_index
        record = f"record {row_index}" if row_index is not None else "record"
        super().__init__(
            f"Annotation {record} has malformed symbol {symbol!r}: expected "
            f"'<prefix>{delimiter}<id>' with exactly one '{delimiter}'"
        )


class CountFormatError(PipelineDataError):
    """A count file cannot be parsed as (gene_id, non-negative count) rows."""

    def __init__(self, path, detail: str):
        self.path = path
        super().__init__(f"Invalid count table {path}: {detail}")


class AnnotationFormatError(PipelineDataError):
    """The annotation table lacks a required column."""


class SampleMetadataError(PipelineDataError):
    """Sample metadata does not pair 1:1 with count matrix columns."""


class DEAnalysisError(RuntimeError):
    """The differential expression engine failed."""
