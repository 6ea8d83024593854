"""Run command: the whole walkthrough from count files to annotated results.

Orchestrates:
1. Load config
2. Read per-sample count tables and build the count matrix
3. Run DESeq2 (statistics when the contrast is testable, VST always)
4. Build the per-gene result table
5. Merge with the annotation table (if configured)
6. Write count matrix, results and annotated results
7. Generate diagnostic plots (unless --skip-plots)
8. Save provenance

All computation finishes before the first file is written, so a failed run
leaves no partial outputs behind.
"""

import logging
import sys
from pathlib import Path

import click

from dge_pipeline.annotation import summarize_merge
from dge_pipeline.config.loader import load_config
from dge_pipeline.de import SampleMetadata, summarize_de_results
from dge_pipeline.errors import DEAnalysisError, PipelineDataError
from dge_pipeline.output import (
    generate_all_plots,
    write_annotated_results,
    write_count_matrix,
    write_results_table,
)
from dge_pipeline.pipeline import (
    ANNOTATED_RESULTS_FILENAME,
    COUNT_MATRIX_FILENAME,
    DE_RESULTS_FILENAME,
    PLOTS_DIRNAME,
    annotate_results,
    assemble_count_matrix,
    run_differential_expression,
)
from dge_pipeline.provenance import ProvenanceTracker

logger = logging.getLogger(__name__)


@click.command('run')
@click.option(
    '--output-dir',
    type=click.Path(path_type=Path),
    default=None,
    help='Output directory (default: output_dir from config)'
)
@click.option(
    '--skip-plots',
    is_flag=True,
    help='Skip diagnostic plot generation'
)
@click.pass_context
def run(ctx, output_dir, skip_plots):
    """Run the full differential expression walkthrough.

    Builds the count matrix, fits DESeq2, derives per-gene metrics,
    merges gene annotations and writes all outputs with provenance.

    Examples:

        # Full run with defaults
        dge-pipeline --config config/default.yaml run

        # Faster run without plots
        dge-pipeline run --skip-plots
    """
    config_path = ctx.obj['config_path']
    click.echo(click.style("=== DGE Pipeline Run ===", bold=True))
    click.echo()

    try:
        # 1. Load config
        click.echo("Loading configuration...")
        config = load_config(config_path)
        output_dir = Path(output_dir) if output_dir else config.output_dir
        provenance = ProvenanceTracker.from_config(config)
        click.echo(click.style(f"  Config loaded: {config_path}", fg='green'))
        click.echo()

        # 2. Count matrix
        click.echo(f"Building count matrix from {len(config.samples)} samples...")
        matrix = assemble_count_matrix(config, provenance)
        click.echo(click.style(
            f"  {matrix.height} genes x {matrix.width - 1} samples",
            fg='green'
        ))
        click.echo()

        # 3-4. DESeq2 and result table
        click.echo("Running DESeq2...")
        de_result, results = run_differential_expression(matrix, config, provenance)
        if de_result.stats is not None:
            summary = summarize_de_results(results, config.deseq.alpha)
            click.echo(click.style(
                f"  {summary['significant']} significant genes "
                f"(padj < {config.deseq.alpha}): {summary['up']} up, {summary['down']} down",
                fg='green'
            ))
        else:
            click.echo(click.style(
                "  No testable contrast; result table holds VST metrics only",
                fg='yellow'
            ))
        click.echo()

        # 5. Annotation
        merged = None
        if config.annotation.path is not None:
            click.echo("Merging gene annotations...")
            merged = annotate_results(results, config, provenance=provenance)
            stats = summarize_merge(merged)
            click.echo(click.style(
                f"  Matched: {stats['matched']}, results only: {stats['results_only']}, "
                f"annotation only: {stats['annotation_only']}",
                fg='green'
            ))
            click.echo()

        # 6. Write outputs
        click.echo("Writing outputs...")
        matrix_path = write_count_matrix(matrix, output_dir / COUNT_MATRIX_FILENAME)
        results_path = write_results_table(results, output_dir / DE_RESULTS_FILENAME)
        click.echo(f"  Count matrix: {matrix_path}")
        click.echo(f"  DE results: {results_path}")
        if merged is not None:
            paths = write_annotated_results(
                merged,
                output_dir / ANNOTATED_RESULTS_FILENAME,
                statistics=summarize_merge(merged),
            )
            click.echo(f"  Annotated results: {paths['csv']}")
        click.echo()

        # 7. Plots
        if skip_plots or not config.plots.enabled:
            click.echo(click.style("Skipping plots", fg='yellow'))
        else:
            click.echo("Generating diagnostic plots...")
            plots = generate_all_plots(
                de_result.vst,
                results,
                SampleMetadata.from_samples(config.samples),
                output_dir / PLOTS_DIRNAME,
                top_n=config.plots.top_n_genes,
                alpha=config.deseq.alpha,
                dpi=config.plots.dpi,
            )
            provenance.record_step("generate_plots", {"plots": sorted(plots)})
            click.echo(click.style(f"  Generated {len(plots)} plots", fg='green'))
        click.echo()

        # 8. Provenance
        sidecar = provenance.save_sidecar(output_dir / "run")
        click.echo(f"Provenance: {sidecar}")
        click.echo()
        click.echo(click.style("Run complete!", fg='green', bold=True))

    except PipelineDataError as e:
        click.echo(click.style(f"Invalid input: {e}", fg='red'), err=True)
        sys.exit(1)
    except DEAnalysisError as e:
        click.echo(click.style(str(e), fg='red'), err=True)
        logger.exception("DESeq2 step failed")
        sys.exit(1)
    except Exception as e:
        click.echo(click.style(f"Run failed: {e}", fg='red'), err=True)
        logger.exception("run command failed")
        sys.exit(1)
