"""Read pipeline configuration YAML into a validated PipelineConfig."""

from pathlib import Path
from typing import Any

import pydantic_yaml

from .schema import PipelineConfig


def load_config(config_path: Path | str) -> PipelineConfig:
    """
    Parse and validate a pipeline configuration file.

    Raises:
        FileNotFoundError: config_path does not exist
        pydantic.ValidationError: a field is missing or invalid
    """
    config_path = Path(config_path)
    if not config_path.is_file():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    return pydantic_yaml.parse_yaml_raw_as(PipelineConfig, config_path.read_text())


def _assign(tree: dict, dotted_key: str, value: Any) -> None:
    *parents, leaf = dotted_key.split(".")
    node = tree
    for name in parents:
        if not isinstance(node.get(name), dict):
            raise KeyError(f"Unknown config section in override {dotted_key!r}: {name!r}")
        node = node[name]
    node[leaf] = value


def load_config_with_overrides(
    config_path: Path | str,
    overrides: dict[str, Any],
) -> PipelineConfig:
    """
    Load a config file, replace selected values and validate the result again.

    Args:
        config_path: YAML configuration file
        overrides: Values keyed by field name; nested fields use dotted
            keys such as "deseq.alpha" or "counts.alignment"

    Raises:
        FileNotFoundError: config_path does not exist
        KeyError: an override names a section that does not exist
        pydantic.ValidationError: the overridden config is invalid
    """
    tree = load_config(config_path).model_dump()
    for key, value in overrides.items():
        _assign(tree, key, value)
    return PipelineConfig.model_validate(tree)
