"""Tests for configuration loading and validation."""

import pytest
from pydantic import ValidationError

from dge_pipeline.config import load_config, load_config_with_overrides
from dge_pipeline.config.schema import PipelineConfig


def _write(tmp_path, body):
    path = tmp_path / "config.yaml"
    path.write_text(body)
    return path


def _minimal(tmp_path, extra=""):
    return f"""
output_dir: {tmp_path}/out
samples:
  - sample_id: s1
    counts_path: s1.counts
    condition: control
  - sample_id: s2
    counts_path: s2.counts
    condition: treated
{extra}"""


def test_load_valid_config():
    """Test loading the shipped default configuration."""
    config = load_config("config/default.yaml")

    assert isinstance(config, PipelineConfig)
    assert config.sample_ids() == ["sample1", "sample2", "sample3"]
    assert config.counts.alignment == "positional"
    assert config.annotation.symbol_column == "Symbol"
    assert config.annotation.key_prefix == "gene:"
    assert config.deseq.contrast == ["condition", "treated", "control"]
    assert config.deseq.alpha == 0.05


def test_defaults_applied(tmp_path):
    config = load_config(_write(tmp_path, _minimal(tmp_path)))

    assert config.counts.drop_all_zero is True
    assert config.counts.drop_special_counters is True
    assert config.annotation.path is None
    assert config.deseq.contrast is None
    assert config.plots.top_n_genes == 50
    assert (tmp_path / "out").is_dir()


def test_missing_config_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "nope.yaml")


def test_invalid_config_missing_field(tmp_path):
    """Missing samples raises ValidationError naming the field."""
    path = _write(tmp_path, f"output_dir: {tmp_path}/out\n")

    with pytest.raises(ValidationError) as exc_info:
        load_config(path)

    assert "samples" in str(exc_info.value)


def test_duplicate_sample_ids_rejected(tmp_path):
    body = f"""
output_dir: {tmp_path}/out
samples:
  - sample_id: s1
    counts_path: a.counts
    condition: control
  - sample_id: s1
    counts_path: b.counts
    condition: treated
"""
    with pytest.raises(ValidationError, match="Duplicate sample IDs"):
        load_config(_write(tmp_path, body))


def test_invalid_alignment_rejected(tmp_path):
    path = _write(tmp_path, _minimal(tmp_path, "counts:\n  alignment: sorted\n"))

    with pytest.raises(ValidationError) as exc_info:
        load_config(path)

    assert "alignment" in str(exc_info.value)


def test_contrast_must_have_three_parts(tmp_path):
    extra = "deseq:\n  contrast: [condition, treated]\n"

    with pytest.raises(ValidationError, match="contrast"):
        load_config(_write(tmp_path, _minimal(tmp_path, extra)))


def test_contrast_levels_must_exist(tmp_path):
    extra = "deseq:\n  contrast: [condition, knockout, control]\n"

    with pytest.raises(ValidationError, match="knockout"):
        load_config(_write(tmp_path, _minimal(tmp_path, extra)))


def test_contrast_factor_must_be_design_factor(tmp_path):
    extra = "deseq:\n  contrast: [batch, treated, control]\n"

    with pytest.raises(ValidationError, match="design factor"):
        load_config(_write(tmp_path, _minimal(tmp_path, extra)))


def test_alpha_bounds(tmp_path):
    extra = "deseq:\n  alpha: 1.5\n"

    with pytest.raises(ValidationError):
        load_config(_write(tmp_path, _minimal(tmp_path, extra)))


def test_compare_pairs_parsed_as_tuples(tmp_path):
    extra = "deseq:\n  compare_pairs:\n    - [s2, s1]\n"

    config = load_config(_write(tmp_path, _minimal(tmp_path, extra)))

    assert config.deseq.compare_pairs == [("s2", "s1")]


def test_config_hash_deterministic(tmp_path):
    """Test that config hash is deterministic and changes with config."""
    path = _write(tmp_path, _minimal(tmp_path))
    config1 = load_config(path)
    config2 = load_config(path)

    assert config1.config_hash() == config2.config_hash()
    assert len(config1.config_hash()) == 64

    config3 = load_config_with_overrides(path, {"deseq.alpha": 0.1})
    assert config3.config_hash() != config1.config_hash()


def test_config_with_overrides(tmp_path):
    path = _write(tmp_path, _minimal(tmp_path))

    config = load_config_with_overrides(path, {
        "counts.alignment": "by_key",
        "plots.enabled": False,
    })

    assert config.counts.alignment == "by_key"
    assert config.plots.enabled is False


def test_invalid_override_revalidated(tmp_path):
    path = _write(tmp_path, _minimal(tmp_path))

    with pytest.raises(ValidationError):
        load_config_with_overrides(path, {"deseq.n_cpus": 0})


def test_override_unknown_section_rejected(tmp_path):
    path = _write(tmp_path, _minimal(tmp_path))

    with pytest.raises(KeyError, match="nosuch"):
        load_config_with_overrides(path, {"nosuch.alpha": 0.1})


def test_sample_id_gene_id_rejected(tmp_path):
    body = f"""
output_dir: {tmp_path}/out
samples:
  - sample_id: s1
    counts_path: a.counts
    condition: control
  - sample_id: gene_id
    counts_path: b.counts
    condition: treated
"""
    with pytest.raises(ValidationError, match="reserved"):
        load_config(_write(tmp_path, body))
