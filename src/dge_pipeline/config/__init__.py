from .loader import load_config, load_config_with_overrides
from .schema import (
    AnnotationConfig,
    CountsConfig,
    DESeqConfig,
    PipelineConfig,
    PlotConfig,
    SampleSpec,
)

__all__ = [
    "load_config",
    "load_config_with_overrides",
    "PipelineConfig",
    "SampleSpec",
    "CountsConfig",
    "AnnotationConfig",
    "DESeqConfig",
    "PlotConfig",
]
