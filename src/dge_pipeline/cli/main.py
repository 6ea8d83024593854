"""Main CLI entry point for dge-pipeline.

Provides command group with global options and subcommands for pipeline operations.
"""

import logging
from pathlib import Path

import click

from dge_pipeline import __version__
from dge_pipeline.config.loader import load_config
from dge_pipeline.cli.annotate_cmd import annotate
from dge_pipeline.cli.matrix_cmd import build_matrix
from dge_pipeline.cli.run_cmd import run


# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)


@click.group()
@click.option(
    '--config',
    type=click.Path(exists=True, path_type=Path),
    default='config/default.yaml',
    help='Path to pipeline configuration YAML file'
)
@click.option(
    '--verbose',
    is_flag=True,
    help='Enable verbose logging (DEBUG level)'
)
@click.pass_context
def cli(ctx, config, verbose):
    """dge-pipeline: Reproducible bulk RNA-seq differential expression walkthrough.

    Merges per-sample read counts into a count matrix, runs DESeq2,
    draws diagnostic plots and annotates the results.
    """
    ctx.ensure_object(dict)
    ctx.obj['config_path'] = config
    ctx.obj['verbose'] = verbose

    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)
        logging.debug("Verbose logging enabled")


@cli.command()
@click.pass_context
def info(ctx):
    """Display pipeline information and configuration summary."""
    config_path = ctx.obj['config_path']

    click.echo(f"DGE Pipeline v{__version__}")
    click.echo(f"Config: {config_path}")
    click.echo()

    try:
        config = load_config(config_path)

        config_hash = config.config_hash()
        click.echo(f"Config Hash: {config_hash[:16]}...")
        click.echo()

        click.echo(click.style("Samples:", bold=True))
        for sample in config.samples:
            click.echo(f"  {sample.sample_id:<16} {sample.condition:<12} {sample.counts_path}")
        click.echo()

        click.echo(click.style("Count Matrix:", bold=True))
        click.echo(f"  Alignment: {config.counts.alignment}")
        click.echo(f"  Drop htseq counters: {config.counts.drop_special_counters}")
        click.echo(f"  Drop all-zero genes: {config.counts.drop_all_zero}")
        click.echo()

        click.echo(click.style("DESeq2:", bold=True))
        click.echo(f"  Design: ~{config.deseq.design_factor}")
        click.echo(f"  Contrast: {config.deseq.contrast or 'none (VST metrics only)'}")
        click.echo(f"  Alpha: {config.deseq.alpha}")
        click.echo()

        click.echo(click.style("Paths:", bold=True))
        click.echo(f"  Annotation Table: {config.annotation.path or 'not configured'}")
        click.echo(f"  Output Directory: {config.output_dir}")

    except Exception as e:
        click.echo(click.style(f"Error loading config: {e}", fg='red'), err=True)
        ctx.exit(1)


# Register commands
cli.add_command(build_matrix)
cli.add_command(annotate)
cli.add_command(run)


if __name__ == '__main__':
    cli()
