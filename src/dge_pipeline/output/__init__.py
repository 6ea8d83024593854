"""Output generation: table writers and diagnostic plots."""

from dge_pipeline.output.visualizations import (
    generate_all_plots,
    plot_expression_heatmap,
    plot_ma,
    plot_pca,
    plot_sample_distances,
)
from dge_pipeline.output.writers import (
    write_annotated_results,
    write_count_matrix,
    write_results_table,
)

__all__ = [
    "write_count_matrix",
    "write_results_table",
    "write_annotated_results",
    "generate_all_plots",
    "plot_expression_heatmap",
    "plot_sample_distances",
    "plot_ma",
    "plot_pca",
]
