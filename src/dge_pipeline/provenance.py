"""Run provenance: which inputs, settings and library versions produced an output."""

import json
import time
from datetime import datetime, timezone
from importlib.metadata import PackageNotFoundError, version as package_version
from pathlib import Path
from typing import Optional

# Libraries whose versions determine the numbers in the output
TRACKED_LIBRARIES = ["polars", "pydeseq2", "pandas", "numpy", "scikit-learn"]

SIDECAR_SUFFIX = ".provenance.json"


def library_versions() -> dict[str, Optional[str]]:
    """Installed versions of the libraries that shape results (None if absent)."""
    versions = {}
    for name in TRACKED_LIBRARIES:
        try:
            versions[name] = package_version(name)
        except PackageNotFoundError:
            versions[name] = None
    return versions


class ProvenanceTracker:
    """
    Collects what a run did so its outputs can be traced and reproduced.

    Holds the config hash, the sample -> count file mapping, library versions
    and an ordered log of processing steps. Each step carries a UTC timestamp
    and the seconds elapsed since the tracker was created.
    """

    def __init__(self, pipeline_version: str, config: "PipelineConfig"):
        self.pipeline_version = pipeline_version
        self.config_hash = config.config_hash()
        self.samples = {s.sample_id: str(s.counts_path) for s in config.samples}
        self.library_versions = library_versions()
        self.processing_steps: list[dict] = []
        self.created_at = datetime.now(timezone.utc)
        self._started = time.monotonic()

    @classmethod
    def from_config(
        cls,
        config: "PipelineConfig",
        version: Optional[str] = None
    ) -> "ProvenanceTracker":
        """Tracker stamped with the installed dge_pipeline version unless one is given."""
        if version is None:
            from dge_pipeline import __version__
            version = __version__
        return cls(version, config)

    def record_step(self, step_name: str, details: Optional[dict] = None) -> None:
        """Append a step; details (counts, parameters) are stored only if non-empty."""
        step = {
            "step_name": step_name,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "elapsed_seconds": round(time.monotonic() - self._started, 3),
        }
        if details:
            step["details"] = details
        self.processing_steps.append(step)

    def get_steps(self) -> list[dict]:
        return self.processing_steps

    def create_metadata(self) -> dict:
        return {
            "pipeline_version": self.pipeline_version,
            "created_at": self.created_at.isoformat(),
            "config_hash": self.config_hash,
            "samples": self.samples,
            "library_versions": self.library_versions,
            "processing_steps": self.processing_steps,
        }

    def save_sidecar(self, output_path: Path) -> Path:
        """
        Write the metadata as JSON next to an output file.

        count_matrix.tsv gets count_matrix.provenance.json; a suffix-less
        path such as results/run gets results/run.provenance.json.

        Returns:
            Path of the sidecar written
        """
        sidecar_path = Path(output_path).with_suffix(SIDECAR_SUFFIX)
        sidecar_path.parent.mkdir(parents=True, exist_ok=True)
        sidecar_path.write_text(json.dumps(self.create_metadata(), indent=2, default=str))
        return sidecar_path

    @staticmethod
    def load_sidecar(sidecar_path: Path) -> dict:
        return json.loads(Path(sidecar_path).read_text())
