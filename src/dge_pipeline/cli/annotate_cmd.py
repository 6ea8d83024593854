"""Annotate command: merge an existing result table with gene annotations."""

import logging
import sys
from pathlib import Path

import click
import polars as pl

from dge_pipeline.annotation import summarize_merge
from dge_pipeline.config.loader import load_config
from dge_pipeline.errors import PipelineDataError
from dge_pipeline.output import write_annotated_results
from dge_pipeline.pipeline import ANNOTATED_RESULTS_FILENAME, annotate_results

logger = logging.getLogger(__name__)


@click.command('annotate')
@click.option(
    '--results',
    'results_path',
    type=click.Path(exists=True, path_type=Path),
    required=True,
    help='Result table CSV with a gene_id column'
)
@click.option(
    '--annotation',
    'annotation_path',
    type=click.Path(exists=True, path_type=Path),
    default=None,
    help='Annotation table (default: annotation.path from config)'
)
@click.option(
    '--output',
    'output_path',
    type=click.Path(path_type=Path),
    default=None,
    help='Output CSV (default: {output_dir}/annotated_results.csv)'
)
@click.pass_context
def annotate(ctx, results_path, annotation_path, output_path):
    """Outer-join a result table with the annotation table.

    Derives 'gene:<id>' keys from '<prefix>_<id>' annotation symbols and
    keeps genes found on only one side, with the other side's fields empty.

    Examples:

        dge-pipeline annotate --results results/de_results.csv
    """
    config_path = ctx.obj['config_path']
    click.echo(click.style("=== Annotation Merge ===", bold=True))
    click.echo()

    try:
        config = load_config(config_path)
        output_path = output_path or config.output_dir / ANNOTATED_RESULTS_FILENAME

        results = pl.read_csv(results_path, schema_overrides={"gene_id": pl.Utf8})
        click.echo(f"Loaded {results.height} result rows from {results_path}")

        merged = annotate_results(results, config, annotation_path=annotation_path)
        stats = summarize_merge(merged)
        click.echo(click.style(
            f"  Matched: {stats['matched']}, results only: {stats['results_only']}, "
            f"annotation only: {stats['annotation_only']}",
            fg='green'
        ))

        paths = write_annotated_results(merged, output_path, statistics=stats)
        click.echo(f"  Annotated results: {paths['csv']}")
        click.echo()
        click.echo(click.style("Annotation complete!", fg='green', bold=True))

    except PipelineDataError as e:
        click.echo(click.style(f"Invalid input: {e}", fg='red'), err=True)
        sys.exit(1)
    except Exception as e:
        click.echo(click.style(f"Annotation failed: {e}", fg='red'), err=True)
        logger.exception("annotate command failed")
        sys.exit(1)
