"""Build-matrix command: merge per-sample count files into one count matrix."""

import logging
import sys
from pathlib import Path

import click

from dge_pipeline.config.loader import load_config
from dge_pipeline.errors import PipelineDataError
from dge_pipeline.output import write_count_matrix
from dge_pipeline.pipeline import COUNT_MATRIX_FILENAME, assemble_count_matrix
from dge_pipeline.provenance import ProvenanceTracker

logger = logging.getLogger(__name__)


@click.command('build-matrix')
@click.option(
    '--output-dir',
    type=click.Path(path_type=Path),
    default=None,
    help='Output directory (default: output_dir from config)'
)
@click.pass_context
def build_matrix(ctx, output_dir):
    """Merge per-sample count tables into a count matrix.

    Verifies every sample reports the same gene IDs in the same order (or
    the same set, with counts.alignment: by_key), drops genes with zero
    counts in all samples and writes count_matrix.tsv.
    """
    config_path = ctx.obj['config_path']
    click.echo(click.style("=== Count Matrix ===", bold=True))
    click.echo()

    try:
        config = load_config(config_path)
        output_dir = Path(output_dir) if output_dir else config.output_dir
        provenance = ProvenanceTracker.from_config(config)

        click.echo(f"Reading {len(config.samples)} sample count tables...")
        matrix = assemble_count_matrix(config, provenance)
        click.echo(click.style(
            f"  {matrix.height} genes x {matrix.width - 1} samples",
            fg='green'
        ))

        matrix_path = write_count_matrix(matrix, output_dir / COUNT_MATRIX_FILENAME)
        sidecar = provenance.save_sidecar(matrix_path)
        click.echo(f"  Count matrix: {matrix_path}")
        click.echo(f"  Provenance: {sidecar}")
        click.echo()
        click.echo(click.style("Count matrix complete!", fg='green', bold=True))

    except PipelineDataError as e:
        click.echo(click.style(f"Invalid input: {e}", fg='red'), err=True)
        sys.exit(1)
    except Exception as e:
        click.echo(click.style(f"Count matrix failed: {e}", fg='red'), err=True)
        logger.exception("build-matrix command failed")
        sys.exit(1)
