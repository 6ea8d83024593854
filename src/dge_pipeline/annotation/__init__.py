"""Gene annotation layer.

Reconciles the composite '<prefix>_<id>' symbols of an annotation table with
the 'gene:<id>' identifiers of the result table, then outer-joins the two.
"""

from dge_pipeline.annotation.keys import (
    ANNOTATION_KEY_COLUMN,
    add_annotation_keys,
    derive_annotation_key,
)
from dge_pipeline.annotation.load import read_annotation_table
from dge_pipeline.annotation.merge import (
    JOIN_KEY_COLUMN,
    merge_annotations,
    summarize_merge,
)

__all__ = [
    "derive_annotation_key",
    "add_annotation_keys",
    "read_annotation_table",
    "merge_annotations",
    "summarize_merge",
    "ANNOTATION_KEY_COLUMN",
    "JOIN_KEY_COLUMN",
]
