"""dge-pipeline: reproducible bulk RNA-seq differential expression walkthrough."""

__version__ = "0.1.0"
