"""Table writers with YAML provenance sidecars."""

from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import polars as pl
import yaml


def write_count_matrix(matrix: pl.DataFrame, output_path: Path) -> Path:
    """Write the count matrix as TSV with a header row."""
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    matrix.write_csv(output_path, separator="\t", include_header=True)
    return output_path


def write_results_table(df: pl.DataFrame, output_path: Path) -> Path:
    """Write a result table as CSV with a header row and no index column."""
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    df.write_csv(output_path, include_header=True)
    return output_path


def write_annotated_results(
    df: pl.DataFrame,
    output_path: Path,
    statistics: Optional[dict] = None,
) -> dict:
    """
    Write the annotated result table to CSV with a provenance sidecar.

    Args:
        df: Annotated result table (already sorted by join key)
        output_path: CSV file path (parent directory created if needed)
        statistics: Optional merge statistics recorded in the sidecar

    Returns:
        Dictionary with output file paths:
        {
            "csv": Path to CSV file,
            "provenance": Path to YAML provenance sidecar
        }

    Notes:
        - Header row included, no row-index column (polars frames have none)
        - Missing values are written as empty fields
        - Sidecar is written next to the CSV as <stem>.provenance.yaml
    """
    output_path = Path(output_path)
    csv_path = write_results_table(df, output_path)
    provenance_path = output_path.with_name(f"{output_path.stem}.provenance.yaml")

    provenance = {
        "generated_at": datetime.now(timezone.utc).isoformat(),
        "output_files": [csv_path.name],
        "statistics": {
            "row_count": df.height,
            **(statistics or {}),
        },
        "column_count": len(df.columns),
        "column_names": df.columns,
    }

    with open(provenance_path, "w") as f:
        yaml.dump(provenance, f, default_flow_style=False, sort_keys=False)

    return {
        "csv": csv_path,
        "provenance": provenance_path,
    }
